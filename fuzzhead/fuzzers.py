import curses
import logging
import time

from fuzzhead.adapters import ExecutionAdapter
from fuzzhead.compiler import PuyaCompiler
from fuzzhead.config import FuzzConfig
from fuzzhead.errors import InitError, SetupError
from fuzzhead.generate import MethodGenerator
from fuzzhead.introspect import ContractDescriptor, EntryPoint
from fuzzhead.outcome import Outcome, Status
from fuzzhead.SessionSummary import ContractSummary, InitStatus, MethodSummary, Phase, SessionSummary

logger = logging.getLogger(__name__)


class ContractFuzzer:
    """Runs every fuzzable entry point of every qualifying contract.

    Trials run one after the other against a single deployment per
    contract, so each trial sees the state left by the previous ones. With
    ``reset_between_methods`` the contract is deployed again for every
    entry point.
    """

    def __init__(self, adapter: ExecutionAdapter, config: FuzzConfig, compiler: PuyaCompiler | None = None):
        self.adapter = adapter
        self.config = config
        self.compiler = compiler
        self.summary: SessionSummary | None = None
        self.stdscr = None

    def start(self, contracts: list[ContractDescriptor]) -> SessionSummary:
        self.summary = SessionSummary(iterations=self.config.runs)
        start_time = time.time()

        if self.config.live:
            self.stdscr = curses.initscr()
        try:
            for contract in contracts:
                source = str(contract.source_path)
                if source not in self.summary.sources:
                    self.summary.sources.append(source)

                result = ContractSummary(contract.name)
                try:
                    if not self._qualifies(contract):
                        continue
                except SetupError as e:
                    if not contract.is_fuzzable:
                        logger.debug("Ignoring %s: %s", contract.name, e)
                        continue
                    result.fail(e.phase, str(e))
                    logger.error("Cannot load %s: %s", contract.name, e)
                    self.summary.contracts.append(result)
                    continue

                self.summary.contracts.append(result)
                self.fuzz_contract(contract, result)
        finally:
            self.summary.elapsed = time.time() - start_time
            if self.stdscr is not None:
                curses.endwin()
                self.stdscr = None

        return self.summary

    def _qualifies(self, contract: ContractDescriptor) -> bool:
        runtime = self.adapter.qualifies(contract)
        if runtime is None:
            if not contract.is_fuzzable:
                logger.debug("Skipping %s: not a contract", contract.name)
            return contract.is_fuzzable

        if runtime != contract.is_fuzzable:
            logger.warning(
                "%s: declaration %s a contract but the loaded class %s, using the loaded class",
                contract.name,
                "is" if contract.is_fuzzable else "is not",
                "is" if runtime else "is not",
            )
        elif not runtime:
            logger.debug("Skipping %s: not a contract", contract.name)
        return runtime

    def fuzz_contract(self, contract: ContractDescriptor, result: ContractSummary | None = None) -> ContractSummary:
        result = result or ContractSummary(contract.name)
        logger.info("Fuzzing contract %s", contract.name)

        handle = None
        try:
            artifact = self._compile(contract, result)
            handle = self._setup(contract, artifact, result)

            fuzzed_any = False
            for entry_point in contract.entry_points:
                if not entry_point.parameters:
                    logger.info("Skipping method: %s (no input parameters)", entry_point)
                    result.not_fuzzed.append(entry_point.name)
                    continue

                if self.config.reset_between_methods and fuzzed_any:
                    self.adapter.close(handle)
                    handle = None
                    handle = self._setup(contract, artifact, result)
                fuzzed_any = True

                result.phase = Phase.FUZZING
                self._fuzz_entry_point(handle, entry_point, result)

            result.phase = Phase.DONE
        except SetupError as e:
            if result.methods and not result.methods[-1].complete:
                result.methods.pop()
            result.fail(e.phase, str(e))
            logger.error("Setup of %s failed (%s): %s", contract.name, e.phase, e)
        finally:
            if handle is not None:
                self.adapter.close(handle)

        return result

    def _compile(self, contract: ContractDescriptor, result: ContractSummary):
        if not self.config.compile or self.compiler is None:
            return None
        artifact = self.compiler.artifact_for(contract.source_path, contract.name)
        result.phase = Phase.COMPILED
        return artifact

    def _setup(self, contract: ContractDescriptor, artifact, result: ContractSummary):
        handle = self.adapter.deploy(contract, artifact)
        result.phase = Phase.DEPLOYED
        try:
            self._initialize(handle, contract, result)
        except SetupError:
            self.adapter.close(handle)
            raise
        return handle

    def _initialize(self, handle, contract: ContractDescriptor, result: ContractSummary) -> None:
        init = contract.init
        if init is None:
            result.init_status = InitStatus.ABSENT
            return

        if self.config.skip_init:
            logger.info("Skipping %s (initialization disabled)", init)
            result.init_status = InitStatus.SKIPPED_CONFIG
            return

        generator = MethodGenerator(init, self.config)
        reason = self.adapter.unsupported(handle, init)
        args = None if reason else generator.generate()
        if args is None:
            logger.info("Skipping %s: %s", init, reason or generator.skip_reason)
            result.init_status = InitStatus.SKIPPED_UNSUPPORTED
            return

        invocation = self.adapter.invoke(handle, init, args)
        if not invocation.success:
            raise InitError(f"{init} failed with args {args!r}: {invocation.error}")

        logger.info("Called %s", init)
        result.init_status = InitStatus.INVOKED
        result.phase = Phase.INITIALIZED

    def _fuzz_entry_point(self, handle, entry_point: EntryPoint, result: ContractSummary) -> MethodSummary:
        generator = MethodGenerator(entry_point, self.config)
        method = MethodSummary(
            entry_point.contract, entry_point.name, entry_point.signature, self.config.runs, readonly=entry_point.readonly
        )
        result.methods.append(method)

        skip_reason = generator.skip_reason or self.adapter.unsupported(handle, entry_point)
        if skip_reason:
            logger.info("Skipping calls to %s: %s", entry_point, skip_reason)
        else:
            logger.info("Testing method: %s", entry_point.signature)

        keep_passes = self.config.verbosity >= 2
        for iteration in range(self.config.runs):
            outcome = self._trial(handle, entry_point, generator, skip_reason)
            method.record(iteration, outcome, keep_passes)
            if outcome.status is Status.FAILED:
                logger.debug("❌ %s FAILED on iteration %d: %s", entry_point, iteration, outcome.message)
            self._print_status(entry_point, method, iteration + 1)

        return method

    def _trial(self, handle, entry_point: EntryPoint, generator: MethodGenerator, skip_reason: str | None = None) -> Outcome:
        if skip_reason:
            return Outcome.skipped(skip_reason)
        args = generator.generate()
        if args is None:
            return Outcome.skipped(generator.skip_reason)

        invocation = self.adapter.invoke(handle, entry_point, args)
        if invocation.success:
            return Outcome.passed(args)
        return Outcome.failed(invocation.error or "invocation failed without a message", args)

    def _print_status(self, entry_point: EntryPoint, method: MethodSummary, calls: int) -> None:
        if self.stdscr is None:
            return
        self.stdscr.erase()
        self.stdscr.addstr(0, 0, f"Fuzzing contract {entry_point.contract} on the {self.adapter.name} backend\n")
        self.stdscr.addstr(2, 0, f"Method: \t\t{entry_point.signature}")
        self.stdscr.addstr(3, 0, f"Calls executed: \t{calls}/{self.config.runs}")
        self.stdscr.addstr(4, 0, f"Passed: \t\t{method.passed}")
        self.stdscr.addstr(5, 0, f"Failed: \t\t{method.failed} ({method.failed / calls * 100:.2f}%)")
        self.stdscr.addstr(6, 0, f"Skipped: \t\t{method.skipped}\n")
        self.stdscr.refresh()

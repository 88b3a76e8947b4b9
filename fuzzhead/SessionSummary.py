from dataclasses import dataclass, field
from enum import Enum

from fuzzhead.outcome import Outcome, Status


class Phase(Enum):
    NOT_STARTED = "not started"
    COMPILED = "compiled"
    DEPLOYED = "deployed"
    INITIALIZED = "initialized"
    FUZZING = "fuzzing"
    DONE = "done"
    FAILED = "failed"


class InitStatus(Enum):
    ABSENT = "no init method"
    INVOKED = "invoked"
    SKIPPED_CONFIG = "skipped (configured)"
    SKIPPED_UNSUPPORTED = "skipped (unsupported parameter types)"


@dataclass
class TrialRecord:
    iteration: int
    args: list | None
    message: str | None = None


@dataclass
class MethodSummary:
    contract: str
    method: str
    signature: str
    iterations: int
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    skip_reason: str | None = None
    readonly: bool = False
    failures: list[TrialRecord] = field(default_factory=list)
    passes: list[TrialRecord] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.passed + self.failed + self.skipped

    @property
    def complete(self) -> bool:
        return self.attempted == self.iterations

    def record(self, iteration: int, outcome: Outcome, keep_passes: bool = False) -> None:
        match outcome.status:
            case Status.PASSED:
                self.passed += 1
                if keep_passes:
                    self.passes.append(TrialRecord(iteration, outcome.args))
            case Status.FAILED:
                self.failed += 1
                self.failures.append(TrialRecord(iteration, outcome.args, outcome.message))
            case Status.SKIPPED:
                self.skipped += 1
                self.skip_reason = outcome.message


@dataclass
class ContractSummary:
    name: str
    phase: Phase = Phase.NOT_STARTED
    error: str | None = None
    failed_phase: str | None = None
    init_status: InitStatus = InitStatus.ABSENT
    methods: list[MethodSummary] = field(default_factory=list)
    not_fuzzed: list[str] = field(default_factory=list)

    def fail(self, phase: str, error: str) -> None:
        self.phase = Phase.FAILED
        self.failed_phase = phase
        self.error = error

    @property
    def failed_setup(self) -> bool:
        return self.phase is Phase.FAILED

    @property
    def passed(self) -> int:
        return sum(m.passed for m in self.methods)

    @property
    def failed(self) -> int:
        return sum(m.failed for m in self.methods)

    @property
    def skipped(self) -> int:
        return sum(m.skipped for m in self.methods)

    @property
    def attempted(self) -> int:
        return sum(m.attempted for m in self.methods)

    @property
    def executed(self) -> int:
        """Trials that actually reached the backend."""
        return self.passed + self.failed


@dataclass
class SessionSummary:
    iterations: int
    sources: list[str] = field(default_factory=list)
    contracts: list[ContractSummary] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def methods(self) -> list[MethodSummary]:
        return [m for c in self.contracts for m in c.methods]

    @property
    def passed(self) -> int:
        return sum(c.passed for c in self.contracts)

    @property
    def failed(self) -> int:
        return sum(c.failed for c in self.contracts)

    @property
    def skipped(self) -> int:
        return sum(c.skipped for c in self.contracts)

    @property
    def attempted(self) -> int:
        return sum(c.attempted for c in self.contracts)

    @property
    def not_fuzzed(self) -> int:
        return sum(len(c.not_fuzzed) for c in self.contracts)

    @property
    def setup_failures(self) -> list[ContractSummary]:
        return [c for c in self.contracts if c.failed_setup]

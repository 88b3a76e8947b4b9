import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

import algopy
from algopy_testing import algopy_testing_context

from fuzzhead.adapters import ExecutionAdapter, InvocationOutcome
from fuzzhead.binding import bind_contract, coerce, find_contract, load_module, resolve_annotation
from fuzzhead.errors import BindingError, DeployError
from fuzzhead.introspect import ContractDescriptor, EntryPoint

logger = logging.getLogger(__name__)


@dataclass
class EmulatorHandle:
    contract: ContractDescriptor
    instance: Any
    namespace: dict
    stack: ExitStack = field(repr=False)
    #: entry point name to the reason it cannot be called
    unsupported: dict[str, str] = field(default_factory=dict)


class EmulatorAdapter(ExecutionAdapter):
    """Runs contracts in process on the algorand-python-testing emulator.

    Every deployment gets its own emulator context, so state is shared by
    all invocations on one handle and nothing else.
    """

    name = "emulator"
    marker = algopy.ARC4Contract

    def __init__(self):
        self._modules: dict[Path, ModuleType] = {}

    def _module(self, contract: ContractDescriptor) -> ModuleType:
        path = Path(contract.source_path).resolve()
        if path not in self._modules:
            self._modules[path] = load_module(path)
        return self._modules[path]

    def qualifies(self, contract: ContractDescriptor) -> bool | None:
        cls = find_contract(self._module(contract), contract)
        if cls is None:
            logger.info("Skipping %s: not exported", contract.name)
            return False
        return issubclass(cls, self.marker)

    def deploy(self, contract: ContractDescriptor, artifact: Any = None, constructor_args: list | None = None) -> EmulatorHandle:
        module = self._module(contract)
        cls = bind_contract(module, contract)
        namespace = vars(module)

        unsupported = {}
        for entry_point in (contract.init, *contract.entry_points):
            if entry_point is None:
                continue
            if not callable(getattr(cls, entry_point.name, None)):
                raise BindingError(f"{contract.name} has no callable {entry_point.name}")
            try:
                for param in entry_point.parameters:
                    if param.recognized:
                        resolve_annotation(param.descriptor.name, namespace)
            except BindingError as e:
                logger.info("Skipping %s: %s", entry_point, e)
                unsupported[entry_point.name] = str(e)

        stack = ExitStack()
        try:
            stack.enter_context(algopy_testing_context())
            instance = cls(*(constructor_args or []))
        except Exception as e:
            stack.close()
            raise DeployError(f"Cannot instantiate {contract.name}: {type(e).__name__}: {e}") from e

        logger.debug("Deployed %s on the emulator", contract.name)
        return EmulatorHandle(contract, instance, namespace, stack, unsupported)

    def invoke(self, handle: EmulatorHandle, entry_point: EntryPoint, args: list) -> InvocationOutcome:
        method = getattr(handle.instance, entry_point.name)
        try:
            converted = [
                coerce(param.descriptor, value, handle.namespace)
                for param, value in zip(entry_point.parameters, args)
            ]
        except Exception as e:
            return InvocationOutcome(False, f"argument conversion failed: {type(e).__name__}: {e}")

        try:
            result = method(*converted)
        except Exception as e:
            return InvocationOutcome(False, _describe_error(e))
        return InvocationOutcome(True, side_effects={"return": result})

    def unsupported(self, handle: EmulatorHandle, entry_point: EntryPoint) -> str | None:
        return handle.unsupported.get(entry_point.name)

    def close(self, handle: EmulatorHandle) -> None:
        handle.stack.close()


def _describe_error(e: Exception) -> str:
    message = str(e)
    if not message:
        return type(e).__name__
    return f"{type(e).__name__}: {message}"

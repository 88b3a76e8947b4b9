from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from fuzzhead.introspect import ContractDescriptor, EntryPoint


@dataclass
class InvocationOutcome:
    success: bool
    error: str | None = None
    #: backend specific observations (return value, txid, fee, ...)
    side_effects: dict = field(default_factory=dict)


class ExecutionAdapter(ABC):
    """Boundary between the fuzz loop and whatever runs contract code.

    Calls block until the backend has answered. Contract level errors are
    reported through ``InvocationOutcome``, transport failures raise
    ``BackendUnreachable`` and setup problems raise ``SetupError``.
    """

    name = "adapter"

    def qualifies(self, contract: ContractDescriptor) -> bool | None:
        """Instance level check of the contract marker, None when not available."""
        return None

    @abstractmethod
    def deploy(self, contract: ContractDescriptor, artifact: Any = None, constructor_args: list | None = None) -> Any:
        pass

    @abstractmethod
    def invoke(self, handle: Any, entry_point: EntryPoint, args: list) -> InvocationOutcome:
        pass

    def unsupported(self, handle: Any, entry_point: EntryPoint) -> str | None:
        """Why the backend cannot call ``entry_point`` on ``handle``, None when it can."""
        return None

    def close(self, handle: Any) -> None:
        pass

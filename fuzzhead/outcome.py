from dataclasses import dataclass
from enum import Enum


class Status(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Outcome:
    """Classification of one trial.

    Skipped trials never reached the backend, so they carry no arguments.
    """
    status: Status
    message: str | None = None
    args: list | None = None

    @classmethod
    def passed(cls, args: list) -> "Outcome":
        return cls(Status.PASSED, None, args)

    @classmethod
    def failed(cls, message: str, args: list) -> "Outcome":
        return cls(Status.FAILED, message, args)

    @classmethod
    def skipped(cls, reason: str) -> "Outcome":
        return cls(Status.SKIPPED, reason)

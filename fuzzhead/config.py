import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_RUNS = 200
DEFAULT_SEQUENCE_LENGTH = 3
DEFAULT_STRING_LENGTH = 5
DEFAULT_BYTES_LENGTH = 32

BACKENDS = ("emulator", "algod")


def env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_int(name: str, default: int | None, minimum: int | None = None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if minimum is not None and number < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {number}")
    return number


@dataclass
class FuzzConfig:
    #: trials per fuzzed entry point
    runs: int = DEFAULT_RUNS
    backend: str = "emulator"
    compile: bool = False
    skip_init: bool = False
    seed: int | None = None
    sequence_length: int = DEFAULT_SEQUENCE_LENGTH
    string_length: int = DEFAULT_STRING_LENGTH
    bytes_length: int = DEFAULT_BYTES_LENGTH
    #: accounts used as senders on the algod backend
    senders: int = 1
    reset_between_methods: bool = False
    artifacts: Path | None = None
    verbosity: int = 1
    live: bool = False

    @classmethod
    def from_env(cls, backend: str | None = None) -> "FuzzConfig":
        """Builds the configuration from environment variables.

        Call ``load_dotenv()`` first to pick up a ``.env`` file. Compilation
        defaults to on for the algod backend and off for the emulator.
        """
        backend = backend or os.getenv("FUZZ_BACKEND", "emulator")
        if backend not in BACKENDS:
            raise ValueError(f"unknown backend {backend!r}, expected one of {', '.join(BACKENDS)}")

        artifacts = os.getenv("FUZZ_ARTIFACTS")
        return cls(
            runs=env_int("FUZZ_RUNS", DEFAULT_RUNS, minimum=1),
            backend=backend,
            compile=env_flag("COMPILE", default=backend == "algod"),
            skip_init=env_flag("SKIP_INIT"),
            seed=env_int("FUZZ_SEED", None),
            sequence_length=env_int("FUZZ_SEQUENCE_LENGTH", DEFAULT_SEQUENCE_LENGTH, minimum=1),
            string_length=env_int("FUZZ_STRING_LENGTH", DEFAULT_STRING_LENGTH, minimum=1),
            bytes_length=env_int("FUZZ_BYTES_LENGTH", DEFAULT_BYTES_LENGTH, minimum=1),
            senders=env_int("FUZZ_SENDERS", 1, minimum=1),
            reset_between_methods=env_flag("FUZZ_RESET"),
            artifacts=Path(artifacts) if artifacts else None,
            verbosity=env_int("FUZZ_VERBOSITY", 1, minimum=0),
        )

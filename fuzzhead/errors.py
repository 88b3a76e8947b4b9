class FuzzError(Exception):
    pass


class DiscoveryError(FuzzError):
    """The source unit could not be read or parsed. Aborts the run."""


class BackendUnreachable(FuzzError):
    """The execution backend could not be reached at all. Aborts the run."""


class GenerationDefect(FuzzError):
    """A value could not be built for a recognized type."""


class SetupError(FuzzError):
    """Setting up one contract failed. The contract is excluded, the session goes on."""

    phase = "setup"

    def __init__(self, message: str, phase: str | None = None):
        super().__init__(message)
        if phase is not None:
            self.phase = phase


class CompilationError(SetupError):
    phase = "compile"


class BindingError(SetupError):
    phase = "bind"


class DeployError(SetupError):
    phase = "deploy"


class InitError(SetupError):
    phase = "init"

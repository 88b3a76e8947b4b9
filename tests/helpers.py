from pathlib import Path
from types import SimpleNamespace

from fuzzhead.adapters import ExecutionAdapter, InvocationOutcome
from fuzzhead.catalog import TypeCatalog
from fuzzhead.errors import DeployError
from fuzzhead.introspect import ContractDescriptor, EntryPoint, Parameter

CONTRACTS_DIR = Path(__file__).parent / "contracts"

ENV_VARS = [
    "FUZZ_RUNS", "COMPILE", "SKIP_INIT", "FUZZ_BACKEND", "FUZZ_SEED", "FUZZ_SEQUENCE_LENGTH",
    "FUZZ_STRING_LENGTH", "FUZZ_BYTES_LENGTH", "FUZZ_SENDERS", "FUZZ_RESET", "FUZZ_ARTIFACTS",
    "FUZZ_VERBOSITY",
]


def always_pass(entry_point, args, index):
    return InvocationOutcome(True)


class FakeAdapter(ExecutionAdapter):
    """Records every call; ``respond(entry_point, args, index)`` decides the outcome."""

    name = "fake"

    def __init__(self, respond=always_pass, runtime=None, fail_deploy=(), unsupported=None):
        self.respond = respond
        self.runtime = runtime or {}
        self.fail_deploy = set(fail_deploy)
        self.refused = unsupported or {}
        self.calls: list[tuple[str, list]] = []
        self.deployed: list[str] = []
        self.closed = 0

    def qualifies(self, contract):
        return self.runtime.get(contract.name)

    def deploy(self, contract, artifact=None, constructor_args=None):
        if contract.name in self.fail_deploy:
            raise DeployError(f"cannot deploy {contract.name}")
        self.deployed.append(contract.name)
        return SimpleNamespace(contract=contract, artifact=artifact)

    def invoke(self, handle, entry_point, args):
        self.calls.append((entry_point.name, args))
        return self.respond(entry_point, args, len(self.calls) - 1)

    def unsupported(self, handle, entry_point):
        return self.refused.get(entry_point.name)

    def close(self, handle):
        self.closed += 1

    def calls_to(self, name: str) -> list[list]:
        return [args for method, args in self.calls if method == name]


def make_entry_point(name, *annotations, contract="Sample", is_init=False, readonly=False):
    catalog = TypeCatalog()
    parameters = tuple(
        Parameter(f"arg{i}", annotation, catalog.recognize(annotation))
        for i, annotation in enumerate(annotations)
    )
    return EntryPoint(contract, name, parameters, is_init, readonly)


def make_contract(name="Sample", entry_points=(), init=None, is_fuzzable=True):
    return ContractDescriptor(
        name=name,
        is_fuzzable=is_fuzzable,
        entry_points=tuple(entry_points),
        init=init,
        exported_as=(name,),
        source_path=Path(f"{name.lower()}.py"),
    )

import ast
import logging
from dataclasses import dataclass, field
from pathlib import Path

from fuzzhead.catalog import TypeCatalog, TypeDescriptor, Unrecognized, last_segment
from fuzzhead.errors import DiscoveryError

logger = logging.getLogger(__name__)

CONTRACT_MARKERS = frozenset({"ARC4Contract"})
METHOD_MARKERS = frozenset({"abimethod"})
CREATE_MODES = ("require", "allow")


@dataclass(frozen=True)
class Parameter:
    name: str
    annotation: str
    descriptor: TypeDescriptor | Unrecognized

    @property
    def recognized(self) -> bool:
        return isinstance(self.descriptor, TypeDescriptor)

    def __str__(self) -> str:
        return f"{self.name}: {self.annotation or '?'}"


@dataclass(frozen=True)
class EntryPoint:
    contract: str
    name: str
    parameters: tuple[Parameter, ...] = ()
    is_init: bool = False
    readonly: bool = False

    @property
    def unrecognized(self) -> list[Parameter]:
        return [p for p in self.parameters if not p.recognized]

    @property
    def signature(self) -> str:
        return f"{self.name}({', '.join(str(p) for p in self.parameters)})"

    def __str__(self) -> str:
        return f"{self.contract}.{self.name}()"


@dataclass(frozen=True)
class ContractDescriptor:
    name: str
    is_fuzzable: bool
    entry_points: tuple[EntryPoint, ...] = ()
    init: EntryPoint | None = None
    bases: tuple[str, ...] = ()
    exported_as: tuple[str, ...] = ()
    source_path: Path | None = None
    lineno: int = 0


@dataclass
class SourceUnit:
    path: Path
    tree: ast.Module = field(repr=False)


def parse_source(path: Path | str) -> SourceUnit:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DiscoveryError(f"Cannot read {path}: {e}")

    try:
        tree = ast.parse(text, filename=str(path))
    except SyntaxError as e:
        raise DiscoveryError(f"Cannot parse {path}: {e.msg} (line {e.lineno})")

    return SourceUnit(path, tree)


def discover(unit: SourceUnit, catalog: TypeCatalog | None = None) -> list[ContractDescriptor]:
    """Lists the contract declarations of a source unit, in declaration order.

    Only module level bindings are considered. A declaration bound to
    several names (aliases, ``__all__``) is described once. Every class is
    returned with ``is_fuzzable`` resolved from its ancestry.
    """
    catalog = catalog or TypeCatalog()
    classes, bindings = _module_scope(unit.tree)

    by_name: dict[str, ast.ClassDef] = {}
    for node in classes:
        by_name[node.name] = node

    contracts = []
    for node in classes:
        names = tuple(n for n, bound in bindings.items() if bound is node)
        if not names:
            logger.info("Skipping class %s (line %d): not bound at module level", node.name, node.lineno)
            continue

        is_fuzzable = _qualifies(node, by_name, set())
        contract = _describe(node, by_name, is_fuzzable, names, unit.path, catalog)
        logger.debug(
            "Found class %s (line %d, fuzzable: %s, exported as %s)",
            contract.name, contract.lineno, is_fuzzable, ", ".join(names),
        )
        contracts.append(contract)

    return contracts


def _module_scope(tree: ast.Module) -> tuple[list[ast.ClassDef], dict[str, ast.ClassDef]]:
    """Collects module level class declarations and the names bound to them."""
    classes: list[ast.ClassDef] = []
    bindings: dict[str, ast.ClassDef] = {}

    def visit(body):
        for stmt in body:
            if isinstance(stmt, ast.ClassDef):
                classes.append(stmt)
                bindings[stmt.name] = stmt
            elif isinstance(stmt, ast.Assign) and isinstance(stmt.value, ast.Name):
                target = bindings.get(stmt.value.id)
                for name in stmt.targets:
                    if isinstance(name, ast.Name):
                        if target is not None:
                            bindings[name.id] = target
                        else:
                            bindings.pop(name.id, None)
            elif isinstance(stmt, ast.If):
                visit(stmt.body)
                visit(stmt.orelse)
            elif isinstance(stmt, ast.Try):
                visit(stmt.body)
                for handler in stmt.handlers:
                    visit(handler.body)
                visit(stmt.orelse)
                visit(stmt.finalbody)

    visit(tree.body)
    return classes, bindings


def _qualifies(node: ast.ClassDef, by_name: dict[str, ast.ClassDef], visiting: set[str]) -> bool:
    visiting.add(node.name)
    for base in node.bases:
        name = last_segment(base)
        if name is None:
            continue
        if name in CONTRACT_MARKERS:
            return True
        parent = by_name.get(name)
        if parent is not None and parent.name not in visiting and _qualifies(parent, by_name, visiting):
            return True
    return False


def _describe(
    node: ast.ClassDef,
    by_name: dict[str, ast.ClassDef],
    is_fuzzable: bool,
    names: tuple[str, ...],
    path: Path,
    catalog: TypeCatalog,
) -> ContractDescriptor:
    entry_points = []
    init = None
    for member in _members(node, by_name):
        marker = _method_marker(member)
        if marker is None:
            continue

        is_init = init is None and _keyword(marker, "create") in CREATE_MODES
        readonly = _keyword(marker, "readonly") is True
        entry_point = EntryPoint(
            contract=node.name,
            name=member.name,
            parameters=_parameters(member, catalog),
            is_init=is_init,
            readonly=readonly,
        )
        if is_init:
            init = entry_point
        else:
            entry_points.append(entry_point)

    return ContractDescriptor(
        name=node.name,
        is_fuzzable=is_fuzzable,
        entry_points=tuple(entry_points),
        init=init,
        bases=tuple(ast.unparse(b) for b in node.bases),
        exported_as=names,
        source_path=path,
        lineno=node.lineno,
    )


def _method_marker(member: ast.FunctionDef | ast.AsyncFunctionDef) -> ast.expr | None:
    for decorator in member.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if last_segment(target) in METHOD_MARKERS:
            return decorator
    return None


def _keyword(decorator: ast.expr, name: str):
    if not isinstance(decorator, ast.Call):
        return None
    for keyword in decorator.keywords:
        if keyword.arg == name and isinstance(keyword.value, ast.Constant):
            return keyword.value.value
    return None


def _parameters(member: ast.FunctionDef | ast.AsyncFunctionDef, catalog: TypeCatalog) -> tuple[Parameter, ...]:
    args = member.args
    if args.vararg is not None or args.kwarg is not None:
        variadic = args.vararg or args.kwarg
        return (Parameter(
            variadic.arg, "", Unrecognized(f"*{variadic.arg}", "variadic parameters cannot be read")
        ),)

    params = [*args.posonlyargs, *args.args][1:] + args.kwonlyargs
    result = []
    for param in params:
        if param.annotation is None:
            result.append(Parameter(param.arg, "", Unrecognized(param.arg, "missing type annotation")))
            continue
        annotation = ast.unparse(param.annotation)
        result.append(Parameter(param.arg, annotation, catalog.recognize(annotation)))
    return tuple(result)


def _members(node: ast.ClassDef, by_name: dict[str, ast.ClassDef]) -> list[ast.FunctionDef | ast.AsyncFunctionDef]:
    """Own methods first, then methods inherited from classes of the same unit."""
    members = []
    names = set()
    pending = [node]
    visited = set()
    while pending:
        current = pending.pop(0)
        if current.name in visited:
            continue
        visited.add(current.name)
        for member in current.body:
            if isinstance(member, (ast.FunctionDef, ast.AsyncFunctionDef)) and member.name not in names:
                names.add(member.name)
                members.append(member)
        for base in current.bases:
            parent = by_name.get(last_segment(base) or "")
            if parent is not None:
                pending.append(parent)
    return members

"""Maps introspected descriptors onto the loaded contract module.

Discovery never runs contract code. Backends that execute the contract in
process use these helpers to load the module once, find the class each
descriptor names and turn annotation text into the runtime types used to
build arguments.
"""
import ast
import builtins
import importlib.util
import logging
import sys
import typing
from pathlib import Path
from types import ModuleType

from fuzzhead.catalog import TypeDescriptor
from fuzzhead.errors import BindingError
from fuzzhead.introspect import ContractDescriptor

logger = logging.getLogger(__name__)

PLAIN_TYPES = (bool, int, str, bytes)


def load_module(path: Path, name: str | None = None) -> ModuleType:
    path = Path(path)
    name = name or f"fuzzhead_target_{path.stem}"
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise BindingError(f"Cannot load {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[name]
        raise BindingError(f"Cannot load {path}: {type(e).__name__}: {e}") from e
    return module


def find_contract(module: ModuleType, contract: ContractDescriptor) -> type | None:
    """Returns the class bound to the first exported name of the declaration."""
    if not contract.exported_as:
        return None
    cls = getattr(module, contract.exported_as[0], None)
    return cls if isinstance(cls, type) else None


def bind_contract(module: ModuleType, contract: ContractDescriptor) -> type:
    cls = find_contract(module, contract)
    if cls is None:
        raise BindingError(f"{contract.name} is not exported by {module.__name__}")
    return cls


def resolve_annotation(text: str, namespace: dict) -> typing.Any:
    """Evaluates annotation text against a module namespace.

    Only names, attribute access, subscripts, tuples and constants are
    accepted, so no contract code runs here.
    """
    try:
        node = ast.parse(text, mode="eval").body
    except SyntaxError as e:
        raise BindingError(f"Cannot read annotation {text!r}") from e
    return _evaluate(node, namespace, text)


def _evaluate(node: ast.expr, namespace: dict, text: str):
    match node:
        case ast.Name(id=name):
            if name in namespace:
                return namespace[name]
            if hasattr(builtins, name):
                return getattr(builtins, name)
            raise BindingError(f"Cannot resolve {name!r} in annotation {text!r}")
        case ast.Attribute(value=value, attr=attr):
            owner = _evaluate(value, namespace, text)
            try:
                return getattr(owner, attr)
            except AttributeError as e:
                raise BindingError(f"Cannot resolve {attr!r} in annotation {text!r}") from e
        case ast.Subscript(value=value, slice=index):
            generic = _evaluate(value, namespace, text)
            try:
                return generic[_evaluate(index, namespace, text)]
            except TypeError as e:
                raise BindingError(f"Cannot resolve annotation {text!r}: {e}") from e
        case ast.Tuple(elts=elements):
            return tuple(_evaluate(e, namespace, text) for e in elements)
        case ast.Constant(value=str() as forward):
            return resolve_annotation(forward, namespace)
        case ast.Constant(value=value):
            return value
    raise BindingError(f"Unsupported annotation {text!r}")


def coerce(descriptor: TypeDescriptor, value, namespace: dict):
    """Converts a generated value into the parameter's runtime type."""
    annotation = resolve_annotation(descriptor.name, namespace)

    if descriptor.is_sequence:
        items = [coerce(descriptor.element, item, namespace) for item in value]
        origin = typing.get_origin(annotation) or annotation
        if origin in (list, tuple):
            return origin(items)
        return annotation(*items)

    if annotation in PLAIN_TYPES:
        return value
    return annotation(value)

import ast
from dataclasses import dataclass
from enum import Enum


class Kind(Enum):
    UINT = "uint"
    BOOL = "bool"
    BYTES = "bytes"
    PUBLIC_KEY = "public_key"
    PRIVATE_KEY = "private_key"
    SIGNATURE = "signature"
    GROUP_ELEMENT = "group_element"
    SCALAR = "scalar"
    TEXT = "text"
    NUMBER = "number"
    FLAG = "flag"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class TypeDescriptor:
    kind: Kind
    name: str
    #: bit width of unsigned integers
    width: int = 0
    #: bits actually drawn by the generator, narrower than width for BigUInt
    sample_width: int = 0
    #: element type and element count of sequences
    element: "TypeDescriptor | None" = None
    length: int = 0

    @property
    def is_sequence(self) -> bool:
        return self.kind is Kind.SEQUENCE

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Unrecognized:
    name: str
    reason: str

    def __str__(self) -> str:
        return self.name


def _uint(width: int, sample_width: int | None = None):
    def build(name: str) -> TypeDescriptor:
        return TypeDescriptor(Kind.UINT, name, width, sample_width or width)
    return build


def _scalar(kind: Kind):
    def build(name: str) -> TypeDescriptor:
        return TypeDescriptor(kind, name)
    return build


# Keyed by the last segment of a (possibly qualified) type name.
SCALAR_TYPES = {
    "UInt64": _uint(64),
    "UInt8": _uint(8),
    "UInt16": _uint(16),
    "UInt32": _uint(32),
    "UInt128": _uint(128),
    "UInt256": _uint(256),
    "UInt512": _uint(512),
    "Byte": _uint(8),
    # arbitrary precision, sampled from the 64-bit range only
    "BigUInt": _uint(512, 64),
    "Bool": _scalar(Kind.BOOL),
    "bool": _scalar(Kind.FLAG),
    "Bytes": _scalar(Kind.BYTES),
    "DynamicBytes": _scalar(Kind.BYTES),
    "bytes": _scalar(Kind.BYTES),
    "Account": _scalar(Kind.PUBLIC_KEY),
    "Address": _scalar(Kind.PUBLIC_KEY),
    "PublicKey": _scalar(Kind.PUBLIC_KEY),
    "PrivateKey": _scalar(Kind.PRIVATE_KEY),
    "Signature": _scalar(Kind.SIGNATURE),
    "Group": _scalar(Kind.GROUP_ELEMENT),
    "GroupElement": _scalar(Kind.GROUP_ELEMENT),
    "Scalar": _scalar(Kind.SCALAR),
    "String": _scalar(Kind.TEXT),
    "str": _scalar(Kind.TEXT),
    "int": _scalar(Kind.NUMBER),
}

SIZED_UINT_TYPES = {"UIntN", "BigUIntN"}
DYNAMIC_SEQUENCE_TYPES = {"DynamicArray", "list", "List"}
STATIC_SEQUENCE_TYPES = {"StaticArray"}


def last_segment(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


class TypeCatalog:
    """Answers "can this parameter type be mocked?" for annotation text.

    Recognition is a pure lookup over a closed table. Sequences get
    ``sequence_length`` elements unless their type fixes the length.
    """

    def __init__(self, sequence_length: int = 3):
        self.sequence_length = sequence_length

    def recognize(self, type_name: str) -> TypeDescriptor | Unrecognized:
        text = type_name.strip()
        if not text:
            return Unrecognized(type_name, "missing type annotation")
        try:
            node = ast.parse(text, mode="eval").body
        except SyntaxError:
            return Unrecognized(text, "unreadable type annotation")
        return self._recognize(node, text)

    def _recognize(self, node: ast.expr, text: str) -> TypeDescriptor | Unrecognized:
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            # forward reference
            return self.recognize(node.value)

        if isinstance(node, ast.Subscript):
            return self._recognize_subscript(node, text)

        name = last_segment(node)
        if name in SCALAR_TYPES:
            return SCALAR_TYPES[name](text)
        return Unrecognized(text, "unsupported type")

    def _recognize_subscript(self, node: ast.Subscript, text: str) -> TypeDescriptor | Unrecognized:
        base = last_segment(node.value)
        args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]

        if base in SIZED_UINT_TYPES and len(args) == 1:
            width = _literal_int(args[0])
            if width is None or width <= 0:
                return Unrecognized(text, "unsupported integer width")
            return TypeDescriptor(Kind.UINT, text, width, width)

        if base in DYNAMIC_SEQUENCE_TYPES and len(args) == 1:
            return self._sequence(args[0], self.sequence_length, text)

        if base in STATIC_SEQUENCE_TYPES and len(args) == 2:
            length = _literal_int(args[1])
            if length is None or length < 0:
                return Unrecognized(text, "unsupported array length")
            return self._sequence(args[0], length, text)

        return Unrecognized(text, "unsupported type")

    def _sequence(self, element_node: ast.expr, length: int, text: str) -> TypeDescriptor | Unrecognized:
        element = self._recognize(element_node, ast.unparse(element_node))
        if isinstance(element, Unrecognized):
            return Unrecognized(text, f"unsupported element type {element.name}")
        return TypeDescriptor(Kind.SEQUENCE, text, element=element, length=length)


def _literal_int(node: ast.expr) -> int | None:
    """Reads ``N`` or ``Literal[N]``."""
    if isinstance(node, ast.Subscript) and last_segment(node.value) == "Literal":
        node = node.slice
    if isinstance(node, ast.Constant) and type(node.value) is int:
        return node.value
    return None

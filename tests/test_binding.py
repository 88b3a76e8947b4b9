import sys
import typing

import pytest

from fuzzhead.binding import bind_contract, coerce, find_contract, load_module, resolve_annotation
from fuzzhead.catalog import Kind, TypeCatalog, TypeDescriptor
from fuzzhead.errors import BindingError
from helpers import make_contract


class Wrapped:
    def __init__(self, value):
        self.value = value


class Pair:
    def __init__(self, *items):
        self.items = items


NAMESPACE = {"typing": typing, "Wrapped": Wrapped, "Pair": Pair}


def test_resolve_builtins_and_generics():
    assert resolve_annotation("int", NAMESPACE) is int
    assert resolve_annotation("list[int]", NAMESPACE) == list[int]
    assert resolve_annotation("typing.List[bytes]", NAMESPACE) == typing.List[bytes]
    assert resolve_annotation("'Wrapped'", NAMESPACE) is Wrapped


@pytest.mark.parametrize("text", ["Missing", "typing.Nope", "print('x')", "int[", "1 + 2"])
def test_unresolvable_annotations(text):
    with pytest.raises(BindingError):
        resolve_annotation(text, NAMESPACE)


def test_coerce_plain_values():
    catalog = TypeCatalog()
    assert coerce(catalog.recognize("int"), 5, NAMESPACE) == 5
    assert coerce(catalog.recognize("list[int]"), [1, 2], NAMESPACE) == [1, 2]


def test_coerce_wraps_runtime_types():
    descriptor = TypeDescriptor(Kind.UINT, "Wrapped", 64, 64)
    assert coerce(descriptor, 7, NAMESPACE).value == 7

    sequence = TypeDescriptor(Kind.SEQUENCE, "Pair", element=descriptor, length=2)
    pair = coerce(sequence, [1, 2], NAMESPACE)
    assert [item.value for item in pair.items] == [1, 2]


def test_load_module_and_bind(tmp_path):
    path = tmp_path / "sample.py"
    path.write_text("class Sample:\n    pass\n\nAlias = Sample\nvalue = 3\n")
    module = load_module(path)

    assert module.__name__ in sys.modules
    assert bind_contract(module, make_contract("Sample")) is module.Sample
    assert find_contract(module, make_contract("value")) is None
    with pytest.raises(BindingError, match="not exported"):
        bind_contract(module, make_contract("Other"))


def test_module_that_fails_to_import(tmp_path):
    path = tmp_path / "exploding.py"
    path.write_text("raise RuntimeError('boom')\n")
    with pytest.raises(BindingError, match="boom") as e:
        load_module(path)
    assert e.value.phase == "bind"
    assert "fuzzhead_target_exploding" not in sys.modules

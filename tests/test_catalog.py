import pytest
from hypothesis import given, strategies as st

from fuzzhead.catalog import Kind, TypeCatalog, TypeDescriptor, Unrecognized


@pytest.fixture
def catalog():
    return TypeCatalog()


@pytest.mark.parametrize(
    "name, kind, width",
    [
        ("UInt64", Kind.UINT, 64),
        ("algopy.UInt64", Kind.UINT, 64),
        ("arc4.UInt8", Kind.UINT, 8),
        ("arc4.UInt16", Kind.UINT, 16),
        ("arc4.UInt32", Kind.UINT, 32),
        ("arc4.UInt256", Kind.UINT, 256),
        ("arc4.Byte", Kind.UINT, 8),
        ("BigUInt", Kind.UINT, 512),
        ("arc4.Bool", Kind.BOOL, 0),
        ("bool", Kind.FLAG, 0),
        ("Bytes", Kind.BYTES, 0),
        ("arc4.DynamicBytes", Kind.BYTES, 0),
        ("Account", Kind.PUBLIC_KEY, 0),
        ("arc4.Address", Kind.PUBLIC_KEY, 0),
        ("PrivateKey", Kind.PRIVATE_KEY, 0),
        ("Signature", Kind.SIGNATURE, 0),
        ("Group", Kind.GROUP_ELEMENT, 0),
        ("Scalar", Kind.SCALAR, 0),
        ("String", Kind.TEXT, 0),
        ("arc4.String", Kind.TEXT, 0),
        ("str", Kind.TEXT, 0),
        ("int", Kind.NUMBER, 0),
    ],
)
def test_recognizes_scalars(catalog, name, kind, width):
    descriptor = catalog.recognize(name)
    assert isinstance(descriptor, TypeDescriptor)
    assert descriptor.kind is kind
    assert descriptor.width == width
    assert descriptor.name == name


def test_big_uint_is_sampled_from_64_bits(catalog):
    descriptor = catalog.recognize("BigUInt")
    assert descriptor.sample_width == 64


@given(st.integers(min_value=1, max_value=512))
def test_sized_uint_widths(width):
    descriptor = TypeCatalog().recognize(f"arc4.UIntN[typing.Literal[{width}]]")
    assert descriptor.kind is Kind.UINT
    assert descriptor.width == width
    assert descriptor.sample_width == width


@pytest.mark.parametrize("name", ["arc4.DynamicArray[arc4.UInt32]", "list[int]", "typing.List[Bytes]"])
def test_dynamic_sequences_use_configured_length(catalog, name):
    descriptor = catalog.recognize(name)
    assert descriptor.is_sequence
    assert descriptor.length == 3


def test_sequence_length_comes_from_configuration():
    descriptor = TypeCatalog(sequence_length=7).recognize("list[arc4.Bool]")
    assert descriptor.length == 7
    assert descriptor.element.kind is Kind.BOOL


def test_static_array_fixes_length(catalog):
    descriptor = catalog.recognize("arc4.StaticArray[arc4.UInt8, typing.Literal[4]]")
    assert descriptor.is_sequence
    assert descriptor.length == 4
    assert descriptor.element.width == 8


def test_nested_sequences(catalog):
    descriptor = catalog.recognize("arc4.DynamicArray[arc4.DynamicArray[arc4.UInt16]]")
    assert descriptor.element.is_sequence
    assert descriptor.element.element.width == 16


def test_forward_reference_is_unwrapped(catalog):
    descriptor = catalog.recognize("'UInt64'")
    assert descriptor.kind is Kind.UINT
    assert descriptor.name == "UInt64"


@pytest.mark.parametrize(
    "name",
    [
        "Deposit",
        "arc4.Tuple[arc4.UInt8, arc4.Bool]",
        "Asset",
        "gtxn.PaymentTransaction",
        "arc4.UIntN[typing.Literal[0]]",
        "arc4.StaticArray[arc4.UInt8]",
    ],
)
def test_unsupported_types_are_unrecognized(catalog, name):
    result = catalog.recognize(name)
    assert isinstance(result, Unrecognized)
    assert result.name == name


def test_unrecognized_element_makes_sequence_unrecognized(catalog):
    result = catalog.recognize("arc4.DynamicArray[Deposit]")
    assert isinstance(result, Unrecognized)
    assert "Deposit" in result.reason


@pytest.mark.parametrize("name", ["", "   ", "list[", "1 +"])
def test_unreadable_text_never_raises(catalog, name):
    assert isinstance(catalog.recognize(name), Unrecognized)

import base64
import random

import pytest
from algosdk import account, encoding
from hypothesis import given, settings, strategies as st
from nacl import bindings

from fuzzhead.catalog import TypeCatalog, TypeDescriptor
from fuzzhead.config import FuzzConfig
from fuzzhead.errors import GenerationDefect
from fuzzhead.generate import (
    NUMBER_RANGE,
    MethodGenerator,
    SequenceGenerator,
    UintGenerator,
    get_generator,
)
from helpers import make_entry_point


def _generate(name: str, config: FuzzConfig | None = None):
    config = config or FuzzConfig()
    descriptor = TypeCatalog(config.sequence_length).recognize(name)
    return get_generator(descriptor, config).generate()


@given(st.sampled_from([8, 16, 32, 64, 128, 256, 512]))
@settings(max_examples=50)
def test_uint_values_stay_in_range(width):
    value = UintGenerator(width).generate()
    assert 0 <= value < 2 ** width


def test_uint_values_use_the_whole_range():
    random.seed(3)
    values = [UintGenerator(8).generate() for _ in range(2000)]
    assert min(values) < 16
    assert max(values) > 240


def test_big_uint_is_sampled_from_64_bits():
    random.seed(5)
    values = [_generate("BigUInt") for _ in range(200)]
    assert all(0 <= v < 2 ** 64 for v in values)


def test_uint32_sequence_has_configured_length():
    value = _generate("arc4.DynamicArray[arc4.UInt32]")
    assert len(value) == 3
    assert all(0 <= v < 2 ** 32 for v in value)


def test_static_array_length():
    value = _generate("arc4.StaticArray[arc4.Bool, typing.Literal[5]]")
    assert len(value) == 5
    assert all(isinstance(v, bool) for v in value)


def test_text_is_short_alphanumeric():
    value = _generate("String")
    assert len(value) == 5
    assert value.isalnum()


def test_text_and_bytes_lengths_follow_configuration():
    config = FuzzConfig(string_length=12, bytes_length=7)
    assert len(_generate("arc4.String", config)) == 12
    assert len(_generate("Bytes", config)) == 7


def test_numbers():
    values = [_generate("int") for _ in range(100)]
    assert all(0 <= v < NUMBER_RANGE for v in values)


def test_public_key_is_a_valid_address():
    address = _generate("Account")
    assert encoding.is_valid_address(address)


def test_private_key_matches_algosdk_format():
    private_key = _generate("PrivateKey")
    assert len(base64.b64decode(private_key)) == 64
    assert encoding.is_valid_address(account.address_from_private_key(private_key))


def test_signature_is_64_bytes():
    signature = _generate("Signature")
    assert isinstance(signature, bytes)
    assert len(signature) == 64


def test_group_element_is_on_the_curve():
    point = _generate("Group")
    assert len(point) == 32
    assert bindings.crypto_core_ed25519_is_valid_point(point)


def test_scalar_is_reduced():
    scalar = _generate("Scalar")
    assert len(scalar) == 32
    assert bindings.crypto_core_ed25519_scalar_reduce(scalar + bytes(32)) == scalar


def test_keys_are_fresh():
    assert _generate("Account") != _generate("Account")


def test_values_repeat_under_the_same_seed():
    random.seed(11)
    first = [_generate("Account"), _generate("UInt64"), _generate("String")]
    random.seed(11)
    assert [_generate("Account"), _generate("UInt64"), _generate("String")] == first


def test_method_generator_builds_one_value_per_parameter():
    entry_point = make_entry_point("deposit", "UInt64", "Bytes", "arc4.Bool")
    args = MethodGenerator(entry_point, FuzzConfig()).generate()
    assert len(args) == 3
    assert isinstance(args[0], int)
    assert isinstance(args[1], bytes)
    assert isinstance(args[2], bool)


def test_method_generator_returns_none_for_unrecognized_parameters():
    entry_point = make_entry_point("record", "UInt64", "Deposit")
    generator = MethodGenerator(entry_point, FuzzConfig())
    assert generator.generate() is None
    assert "arg1: Deposit" in generator.skip_reason


def test_sequence_generator_recurses():
    descriptor = TypeCatalog(2).recognize("list[list[arc4.UInt8]]")
    value = SequenceGenerator(descriptor, FuzzConfig()).generate()
    assert len(value) == 2
    assert all(len(inner) == 2 for inner in value)


def test_unknown_kind_is_a_defect():
    with pytest.raises(GenerationDefect):
        get_generator(TypeDescriptor(None, "broken"), FuzzConfig())

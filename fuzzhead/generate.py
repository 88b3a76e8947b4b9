import base64
import random
import string

from algosdk import encoding
from nacl import bindings
from nacl.signing import SigningKey

from fuzzhead.catalog import Kind, TypeDescriptor, Unrecognized
from fuzzhead.config import FuzzConfig
from fuzzhead.errors import GenerationDefect
from fuzzhead.introspect import EntryPoint

NUMBER_RANGE = 1000
TEXT_ALPHABET = string.ascii_lowercase + string.digits
MESSAGE_LENGTH = 32


def random_signing_key() -> SigningKey:
    return SigningKey(random.randbytes(32))


# uintN generator
class UintGenerator:
    def __init__(self, N: int = 64, sample_bits: int | None = None):
        self.N = N # bit size
        self.sample_bits = sample_bits or N

    def generate(self) -> int:
        return random.getrandbits(self.sample_bits)


class BoolGenerator:
    def generate(self) -> bool:
        return random.random() < 0.5


class NumberGenerator:
    def generate(self) -> int:
        return random.randrange(NUMBER_RANGE)


class TextGenerator:
    def __init__(self, length: int = 5):
        self.length = length

    def generate(self) -> str:
        return "".join(random.choices(TEXT_ALPHABET, k=self.length))


class BytesGenerator:
    def __init__(self, length: int = 32):
        self.length = length

    def generate(self) -> bytes:
        return random.randbytes(self.length)


class PublicKeyGenerator:
    """Algorand address of a fresh Ed25519 key pair."""
    def generate(self) -> str:
        key = random_signing_key()
        return encoding.encode_address(bytes(key.verify_key))


class PrivateKeyGenerator:
    """Private key in the algosdk format: base64 of seed and public key."""
    def generate(self) -> str:
        key = random_signing_key()
        return base64.b64encode(bytes(key) + bytes(key.verify_key)).decode()


class SignatureGenerator:
    def generate(self) -> bytes:
        key = random_signing_key()
        return key.sign(random.randbytes(MESSAGE_LENGTH)).signature


class ScalarGenerator:
    """Ed25519 scalar, reduced modulo the group order."""
    def generate(self) -> bytes:
        return bindings.crypto_core_ed25519_scalar_reduce(random.randbytes(64))


class GroupElementGenerator:
    """Ed25519 point obtained by multiplying the base point with a random scalar."""
    def __init__(self):
        self.scalars = ScalarGenerator()

    def generate(self) -> bytes:
        return bindings.crypto_scalarmult_ed25519_base_noclamp(self.scalars.generate())


class SequenceGenerator:
    def __init__(self, descriptor: TypeDescriptor, config: FuzzConfig):
        self.length = descriptor.length
        self.generator = get_generator(descriptor.element, config)

    def generate(self) -> list:
        return [self.generator.generate() for _ in range(self.length)]


def get_generator(descriptor: TypeDescriptor, config: FuzzConfig):
    match descriptor.kind:
        case Kind.UINT: return UintGenerator(descriptor.width, descriptor.sample_width)
        case Kind.BOOL | Kind.FLAG: return BoolGenerator()
        case Kind.NUMBER: return NumberGenerator()
        case Kind.TEXT: return TextGenerator(config.string_length)
        case Kind.BYTES: return BytesGenerator(config.bytes_length)
        case Kind.PUBLIC_KEY: return PublicKeyGenerator()
        case Kind.PRIVATE_KEY: return PrivateKeyGenerator()
        case Kind.SIGNATURE: return SignatureGenerator()
        case Kind.SCALAR: return ScalarGenerator()
        case Kind.GROUP_ELEMENT: return GroupElementGenerator()
        case Kind.SEQUENCE: return SequenceGenerator(descriptor, config)
    raise GenerationDefect(f"No generator for {descriptor.kind} ({descriptor.name})")


class MethodGenerator:
    """Builds argument vectors for one entry point.

    ``generate`` returns None when a parameter type is unrecognized, the
    trial must then be skipped.
    """
    def __init__(self, entry_point: EntryPoint, config: FuzzConfig) -> None:
        self.entry_point = entry_point
        self.unrecognized = entry_point.unrecognized
        self._generators = [] if self.unrecognized else [
            get_generator(param.descriptor, config) for param in entry_point.parameters
        ]

    @property
    def skip_reason(self) -> str | None:
        if not self.unrecognized:
            return None
        return "unsupported parameter types: " + ", ".join(
            f"{p} ({p.descriptor.reason})" if isinstance(p.descriptor, Unrecognized) else str(p)
            for p in self.unrecognized
        )

    def generate(self) -> list | None:
        if self.unrecognized:
            return None
        try:
            return [generator.generate() for generator in self._generators]
        except Exception as e:
            raise GenerationDefect(f"Could not generate arguments for {self.entry_point}: {e}") from e

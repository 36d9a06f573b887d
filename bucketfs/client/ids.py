"""
Identifiers for containers and objects.

Both identifier kinds are opaque 32-byte keys whose text form is base58
(Bitcoin alphabet). Anything that does not decode to exactly 32 bytes is
not an identifier.
"""
import os

ID_SIZE = 32

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {c: i for i, c in enumerate(BASE58_ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode bytes as base58 text."""
    num = int.from_bytes(data, "big")
    encoded = ""
    while num:
        num, rem = divmod(num, 58)
        encoded = BASE58_ALPHABET[rem] + encoded
    # Leading zero bytes are encoded as '1'
    pad = len(data) - len(data.lstrip(b"\0"))
    return BASE58_ALPHABET[0] * pad + encoded


def b58decode(text: str) -> bytes:
    """
    Decode base58 text.

    Raises:
        ValueError: If the text contains characters outside the alphabet.
    """
    num = 0
    for char in text:
        if char not in _BASE58_INDEX:
            raise ValueError(f"invalid base58 character {char!r}")
        num = num * 58 + _BASE58_INDEX[char]
    pad = len(text) - len(text.lstrip(BASE58_ALPHABET[0]))
    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\0" * pad + body


class _ID:
    """Fixed-size opaque key with a base58 text form."""

    __slots__ = ("_value",)

    def __init__(self, value: bytes):
        if len(value) != ID_SIZE:
            raise ValueError(f"{type(self).__name__} must be {ID_SIZE} bytes, got {len(value)}")
        self._value = bytes(value)

    @classmethod
    def parse(cls, text: str):
        """
        Decode an identifier from its text form.

        Args:
            text (str): base58 text

        Returns:
            The decoded identifier.

        Raises:
            ValueError: If the text is empty, not base58, or not 32 bytes long.
        """
        if not text:
            raise ValueError(f"empty {cls.__name__}")
        return cls(b58decode(text))

    @classmethod
    def random(cls):
        return cls(os.urandom(ID_SIZE))

    def to_bytes(self) -> bytes:
        return self._value

    def __str__(self):
        return b58encode(self._value)

    def __repr__(self):
        return f"{type(self).__name__}({str(self)!r})"

    def __eq__(self, other):
        return type(other) is type(self) and other._value == self._value

    def __hash__(self):
        return hash((type(self).__name__, self._value))


class ContainerID(_ID):
    """Identifier of a container (bucket)."""
    __slots__ = ()


class ObjectID(_ID):
    """Identifier of an object within a container."""
    __slots__ = ()

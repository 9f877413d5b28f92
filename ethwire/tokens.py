"""Conversion between Python values and contract ABI tokens."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from .errors import InvalidOutputTypeError

_U256_BITS = 256
_U256_LIMIT = 1 << _U256_BITS
_U256_MAX = _U256_LIMIT - 1
_LOW_128 = (1 << 128) - 1
_ADDRESS_LENGTH = 20


class TokenKind(enum.Enum):
    """The kinds of ABI token."""

    ADDRESS = "Address"
    FIXED_BYTES = "FixedBytes"
    BYTES = "Bytes"
    INT = "Int"
    UINT = "Uint"
    BOOL = "Bool"
    STRING = "String"
    FIXED_ARRAY = "FixedArray"
    ARRAY = "Array"
    TUPLE = "Tuple"


_BYTE_KINDS = frozenset({TokenKind.ADDRESS, TokenKind.FIXED_BYTES, TokenKind.BYTES})
_INT_KINDS = frozenset({TokenKind.INT, TokenKind.UINT})
_SEQUENCE_KINDS = frozenset({TokenKind.FIXED_ARRAY, TokenKind.ARRAY, TokenKind.TUPLE})


@dataclass(frozen=True)
class Token:
    """One ABI value.

    Integers are held as unsigned 256-bit words; a negative ``INT`` is stored
    in two's complement. Sequences hold a tuple of tokens.
    """

    kind: TokenKind
    value: Any

    def __post_init__(self) -> None:
        kind, value = self.kind, self.value
        if not isinstance(kind, TokenKind):
            raise TypeError(f"invalid token kind {kind!r}")
        if kind in _BYTE_KINDS:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise TypeError(f"{kind.value} token needs bytes, got {value!r}")
            value = bytes(value)
            if kind is TokenKind.ADDRESS and len(value) != _ADDRESS_LENGTH:
                raise ValueError(f"address must be {_ADDRESS_LENGTH} bytes, got {len(value)}")
        elif kind in _INT_KINDS:
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{kind.value} token needs an int, got {value!r}")
            if not 0 <= value <= _U256_MAX:
                raise ValueError(f"{kind.value} token value out of the 256-bit range: {value}")
        elif kind is TokenKind.BOOL:
            if not isinstance(value, bool):
                raise TypeError(f"Bool token needs a bool, got {value!r}")
        elif kind is TokenKind.STRING:
            if not isinstance(value, str):
                raise TypeError(f"String token needs a str, got {value!r}")
        else:
            value = tuple(value)
            if not all(isinstance(item, Token) for item in value):
                raise TypeError(f"{kind.value} token needs tokens as items")
        object.__setattr__(self, "value", value)

    def __repr__(self) -> str:
        kind, value = self.kind, self.value
        if kind in _BYTE_KINDS:
            shown = "0x" + value.hex()
        elif kind in _SEQUENCE_KINDS:
            shown = "[" + ", ".join(repr(item) for item in value) + "]"
        else:
            shown = repr(value)
        return f"{kind.value}({shown})"


def _invalid(message: str) -> InvalidOutputTypeError:
    return InvalidOutputTypeError(message)


@dataclass(frozen=True)
class IntType:
    """A fixed-width integer type, such as ``i8`` or ``u64``."""

    bits: int
    signed: bool = False

    def __post_init__(self) -> None:
        if self.bits not in (8, 16, 32, 64, 128, 256):
            raise ValueError(f"unsupported integer width {self.bits}")
        if self.signed and self.bits == 256:
            raise ValueError("signed 256-bit integers are not supported")

    @property
    def name(self) -> str:
        if self.bits == 256:
            return "U256"
        return f"{'i' if self.signed else 'u'}{self.bits}"

    @property
    def min(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def to_token(self, value: int) -> Token:
        """Encode ``value``; negative values are sign-extended to 256 bits."""
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{self.name} needs an int, got {value!r}")
        if not self.min <= value <= self.max:
            raise ValueError(f"{value} does not fit in {self.name}")
        kind = TokenKind.INT if self.signed else TokenKind.UINT
        return Token(kind, value % _U256_LIMIT)

    def from_token(self, token: Token) -> int:
        """Decode an ``INT`` or ``UINT`` token, truncating to the type's width."""
        if not isinstance(token, Token) or token.kind not in _INT_KINDS:
            raise _invalid(f"Expected `{self.name}`, got {token!r}")
        if self.bits == 256:
            return token.value
        value = (token.value & _LOW_128) & ((1 << self.bits) - 1)
        if self.signed and value >= 1 << (self.bits - 1):
            value -= 1 << self.bits
        return value


I8 = IntType(8, True)
I16 = IntType(16, True)
I32 = IntType(32, True)
I64 = IntType(64, True)
I128 = IntType(128, True)
U8 = IntType(8)
U16 = IntType(16)
U32 = IntType(32)
U64 = IntType(64)
U128 = IntType(128)
U256 = IntType(256)


@dataclass(frozen=True)
class ArrayOf:
    """A dynamic array whose items decode as ``item``."""

    item: Any


@dataclass(frozen=True)
class FixedArrayOf:
    """A fixed-size array of ``size`` items that decode as ``item``."""

    item: Any
    size: int

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError("fixed array size must be positive")


@dataclass(frozen=True)
class FixedBytesOf:
    """A fixed-size byte string of ``size`` bytes."""

    size: int

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError("fixed bytes size must be positive")


class _Named(enum.Enum):
    ADDRESS = "Address"
    H256 = "H256"


ADDRESS = _Named.ADDRESS
H256 = _Named.H256


def into_token(value: Any) -> Token:
    """Encode a Python value as a token.

    Tokens pass through; ``bool``, ``str`` and ``bytes`` map to their kinds; a
    non-negative ``int`` becomes ``UINT`` and a negative one a sign-extended
    ``INT``; a ``list`` becomes an ``ARRAY`` and a ``tuple`` a ``FIXED_ARRAY``.
    """
    if isinstance(value, Token):
        return value
    if isinstance(value, bool):
        return Token(TokenKind.BOOL, value)
    if isinstance(value, int):
        if value < 0:
            if value < -(1 << (_U256_BITS - 1)):
                raise ValueError(f"{value} does not fit in 256 bits")
            return Token(TokenKind.INT, value % _U256_LIMIT)
        if value > _U256_MAX:
            raise ValueError(f"{value} does not fit in 256 bits")
        return Token(TokenKind.UINT, value)
    if isinstance(value, str):
        return Token(TokenKind.STRING, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Token(TokenKind.BYTES, bytes(value))
    if isinstance(value, list):
        return Token(TokenKind.ARRAY, tuple(into_token(item) for item in value))
    if isinstance(value, tuple):
        return Token(TokenKind.FIXED_ARRAY, tuple(into_token(item) for item in value))
    raise TypeError(f"cannot convert {type(value).__name__} to a token")


def into_tokens(params: Any) -> list[Token]:
    """Encode call parameters.

    A tuple holds one parameter per item, so ``()`` means none; a list made
    only of tokens is taken as the parameter list itself; anything else is a
    single parameter.
    """
    if isinstance(params, tuple):
        return [into_token(item) for item in params]
    if isinstance(params, list) and all(isinstance(item, Token) for item in params):
        return list(params)
    return [into_token(params)]


def _from_sequence(token: Token, item: Any) -> list[Any]:
    return [from_token(element, item) for element in token.value]


def from_token(token: Token, spec: Any) -> Any:
    """Decode one token as described by ``spec``.

    ``spec`` is ``Token``, ``str``, ``bytes``, ``bool``, ``int`` (a U256), an
    ``IntType``, ``ArrayOf``, ``FixedArrayOf``, ``FixedBytesOf``, ``ADDRESS``
    or ``H256``.
    """
    kind = token.kind if isinstance(token, Token) else None
    if spec is Token:
        return token
    if spec is str:
        if kind is TokenKind.STRING:
            return token.value
        raise _invalid(f"Expected `String`, got {token!r}")
    if spec is bytes:
        if kind in (TokenKind.BYTES, TokenKind.FIXED_BYTES):
            return token.value
        raise _invalid(f"Expected `bytes`, got {token!r}")
    if spec is bool:
        if kind is TokenKind.BOOL:
            return token.value
        raise _invalid(f"Expected `bool`, got {token!r}")
    if spec is int:
        return U256.from_token(token)
    if isinstance(spec, IntType):
        return spec.from_token(token)
    if spec is ADDRESS:
        if kind is TokenKind.ADDRESS:
            return token.value
        raise _invalid(f"Expected `Address`, got {token!r}")
    if spec is H256:
        if kind is TokenKind.FIXED_BYTES:
            if len(token.value) != 32:
                raise _invalid(f"Expected `H256`, got {list(token.value)!r}")
            return token.value
        raise _invalid(f"Expected `H256`, got {token!r}")
    if isinstance(spec, FixedBytesOf):
        if kind is TokenKind.FIXED_BYTES:
            if len(token.value) != spec.size:
                raise _invalid(
                    f"Expected `FixedBytes({spec.size})`, got FixedBytes({len(token.value)})"
                )
            return token.value
        raise _invalid(f"Expected `FixedBytes({spec.size})`, got {token!r}")
    if isinstance(spec, ArrayOf):
        if kind in (TokenKind.FIXED_ARRAY, TokenKind.ARRAY):
            return _from_sequence(token, spec.item)
        raise _invalid(f"Expected `Array`, got {token!r}")
    if isinstance(spec, FixedArrayOf):
        if kind is TokenKind.FIXED_ARRAY:
            if len(token.value) != spec.size:
                raise _invalid(
                    f"Expected `FixedArray({spec.size})`, got FixedArray({len(token.value)})"
                )
            return tuple(_from_sequence(token, spec.item))
        raise _invalid(f"Expected `FixedArray({spec.size})`, got {token!r}")
    raise TypeError(f"unsupported output type {spec!r}")


def from_tokens(tokens: list[Token], spec: Any) -> Any:
    """Decode a function's output tokens.

    A tuple ``spec`` decodes that many tokens into a tuple; any other spec
    expects exactly one token.
    """
    tokens = list(tokens)
    if isinstance(spec, tuple):
        if len(tokens) != len(spec):
            raise _invalid(
                f"Expected {len(spec)} elements, got a list of {len(tokens)}: {tokens!r}"
            )
        return tuple(from_token(token, item) for token, item in zip(tokens, spec))
    if len(tokens) != 1:
        raise _invalid(f"Expected single element, got a list: {tokens!r}")
    return from_token(tokens[0], spec)
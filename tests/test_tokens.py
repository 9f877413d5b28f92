import pytest

from ethwire.errors import InvalidOutputTypeError
from ethwire.tokens import (
    ADDRESS,
    H256,
    I8,
    I16,
    I32,
    I64,
    I128,
    U8,
    U64,
    U256,
    ArrayOf,
    FixedArrayOf,
    FixedBytesOf,
    IntType,
    Token,
    TokenKind,
    from_token,
    from_tokens,
    into_token,
    into_tokens,
)

U256_MAX = 2**256 - 1


def uint(value):
    return Token(TokenKind.UINT, value)


def fixed_bytes(data):
    return Token(TokenKind.FIXED_BYTES, data)


def test_should_decode_array_of_fixed_bytes():
    tokens = [Token(TokenKind.FIXED_ARRAY, [fixed_bytes(bytes([i])) for i in range(1, 9)])]
    data = from_tokens(tokens, FixedArrayOf(FixedBytesOf(1), 8))
    assert data[0][0] == 1
    assert data[1][0] == 2
    assert data[2][0] == 3
    assert data[7][0] == 8


def test_should_decode_array_of_bytes():
    token = Token(TokenKind.ARRAY, [uint(0), uint(1)])
    data = from_token(token, ArrayOf(U8))
    assert data[0] == 0
    assert data[1] == 1


@pytest.mark.parametrize(
    "int_type, value, expected",
    [
        (I8, -1, U256_MAX),
        (I16, -2, U256_MAX - 1),
        (I32, -3, U256_MAX - 2),
        (I64, -4, U256_MAX - 3),
        (I128, -5, U256_MAX - 4),
    ],
)
def test_should_sign_extend_negative_integers(int_type, value, expected):
    assert int_type.to_token(value) == Token(TokenKind.INT, expected)


def test_signed_positive_is_int_and_unsigned_is_uint():
    assert I32.to_token(7) == Token(TokenKind.INT, 7)
    assert U64.to_token(7) == Token(TokenKind.UINT, 7)


def test_int_type_rejects_out_of_range():
    with pytest.raises(ValueError):
        I8.to_token(128)
    with pytest.raises(ValueError):
        U8.to_token(-1)


def test_int_type_truncates_and_sign_wraps():
    assert U8.from_token(uint(0x1FF)) == 0xFF
    assert I8.from_token(Token(TokenKind.INT, U256_MAX)) == -1
    assert I128.from_token(I128.to_token(-5)) == -5


def test_int_type_wrong_kind():
    with pytest.raises(InvalidOutputTypeError) as info:
        U64.from_token(Token(TokenKind.BOOL, True))
    assert "Expected `u64`" in str(info.value)


def test_signed_256_is_rejected():
    with pytest.raises(ValueError):
        IntType(256, True)


def test_into_token_values():
    assert into_token(True) == Token(TokenKind.BOOL, True)
    assert into_token(5) == uint(5)
    assert into_token(-1) == Token(TokenKind.INT, U256_MAX)
    assert into_token("hi") == Token(TokenKind.STRING, "hi")
    assert into_token(b"\x01") == Token(TokenKind.BYTES, b"\x01")
    assert into_token([1, 2]) == Token(TokenKind.ARRAY, [uint(1), uint(2)])
    assert into_token((1,)) == Token(TokenKind.FIXED_ARRAY, [uint(1)])


def test_into_token_rejects_too_large():
    with pytest.raises(ValueError):
        into_token(2**256)


def test_into_tokens():
    assert into_tokens(()) == []
    assert into_tokens((1, "a")) == [uint(1), Token(TokenKind.STRING, "a")]
    assert into_tokens(3) == [uint(3)]
    tokens = [uint(1), uint(2)]
    assert into_tokens(tokens) == tokens


def test_round_trip_mixed_tuple():
    params = (10, "name", True, b"\xab", [1, 2, 3])
    decoded = from_tokens(into_tokens(params), (int, str, bool, bytes, ArrayOf(U256)))
    assert decoded == (10, "name", True, b"\xab", [1, 2, 3])


def test_from_tokens_wrong_count():
    with pytest.raises(InvalidOutputTypeError) as info:
        from_tokens([uint(1)], (int, int))
    assert str(info.value).startswith("Invalid output type: Expected 2 elements, got a list of 1")


def test_from_tokens_single_requires_one():
    with pytest.raises(InvalidOutputTypeError) as info:
        from_tokens([uint(1), uint(2)], int)
    assert "Expected single element, got a list" in str(info.value)


def test_string_wrong_kind():
    with pytest.raises(InvalidOutputTypeError) as info:
        from_token(uint(1), str)
    assert str(info.value) == "Invalid output type: Expected `String`, got Uint(1)"


def test_address_and_h256():
    address = bytes(range(20))
    assert from_token(Token(TokenKind.ADDRESS, address), ADDRESS) == address
    digest = bytes(32)
    assert from_token(fixed_bytes(digest), H256) == digest
    with pytest.raises(InvalidOutputTypeError):
        from_token(fixed_bytes(b"\x01\x02"), H256)


def test_fixed_bytes_length_mismatch():
    with pytest.raises(InvalidOutputTypeError) as info:
        from_token(fixed_bytes(b"\x01\x02"), FixedBytesOf(4))
    assert str(info.value) == "Invalid output type: Expected `FixedBytes(4)`, got FixedBytes(2)"


def test_fixed_array_length_mismatch():
    token = Token(TokenKind.FIXED_ARRAY, [uint(1)])
    with pytest.raises(InvalidOutputTypeError) as info:
        from_token(token, FixedArrayOf(int, 2))
    assert str(info.value) == "Invalid output type: Expected `FixedArray(2)`, got FixedArray(1)"


def test_array_accepts_fixed_array():
    token = Token(TokenKind.FIXED_ARRAY, [uint(4), uint(5)])
    assert from_token(token, ArrayOf(int)) == [4, 5]


def test_bytes_accepts_fixed_bytes():
    assert from_token(fixed_bytes(b"\x09"), bytes) == b"\x09"


def test_token_passthrough():
    token = uint(9)
    assert from_tokens([token], Token) == token


def test_address_token_length_validated():
    with pytest.raises(ValueError):
        Token(TokenKind.ADDRESS, bytes(19))


def test_unsupported_spec():
    with pytest.raises(TypeError):
        from_token(uint(1), float)
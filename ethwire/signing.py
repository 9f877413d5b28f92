"""Signing with secp256k1 keys, sender recovery and Keccak-256 hashing."""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from Crypto.Hash import keccak

from .errors import Web3Error

FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_Point = Optional[Tuple[int, int]]


class SigningError(Web3Error):
    """A message could not be signed."""

    INVALID_MESSAGE = "Message has to be a non-zero 32-bytes slice."

    def __init__(self, message: str = INVALID_MESSAGE) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class RecoveryError(Web3Error):
    """The sender of a signature could not be recovered."""

    INVALID_MESSAGE = "Message has to be a non-zero 32-bytes slice."
    INVALID_SIGNATURE = "Signature is invalid (check recovery id)."

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Recovery error: {self.message}"


def keccak256(data: bytes) -> bytes:
    """Compute the Keccak-256 hash of ``data``."""
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


def _add(p: _Point, q: _Point) -> _Point:
    if p is None:
        return q
    if q is None:
        return p
    (x1, y1), (x2, y2) = p, q
    if x1 == x2:
        if (y1 + y2) % FIELD_PRIME == 0:
            return None
        slope = 3 * x1 * x1 * pow(2 * y1, -1, FIELD_PRIME)
    else:
        slope = (y2 - y1) * pow(x2 - x1, -1, FIELD_PRIME)
    slope %= FIELD_PRIME
    x3 = (slope * slope - x1 - x2) % FIELD_PRIME
    y3 = (slope * (x1 - x3) - y1) % FIELD_PRIME
    return x3, y3


def _mul(k: int, point: _Point) -> _Point:
    result: _Point = None
    addend = point
    while k:
        if k & 1:
            result = _add(result, addend)
        addend = _add(addend, addend)
        k >>= 1
    return result


def _lift_x(x: int, odd: bool) -> _Point:
    if x >= FIELD_PRIME:
        return None
    y_squared = (pow(x, 3, FIELD_PRIME) + 7) % FIELD_PRIME
    y = pow(y_squared, (FIELD_PRIME + 1) // 4, FIELD_PRIME)
    if y * y % FIELD_PRIME != y_squared:
        return None
    if (y & 1) != odd:
        y = FIELD_PRIME - y
    return x, y


def _serialize_uncompressed(point: Tuple[int, int]) -> bytes:
    return b"\x04" + point[0].to_bytes(32, "big") + point[1].to_bytes(32, "big")


def _nonces(secret: int, z: int) -> Iterator[int]:
    """Deterministic nonces following RFC 6979 with HMAC-SHA256."""

    def mac(key: bytes, data: bytes) -> bytes:
        return hmac.new(key, data, hashlib.sha256).digest()

    seed = secret.to_bytes(32, "big") + (z % CURVE_ORDER).to_bytes(32, "big")
    v = b"\x01" * 32
    k = b"\x00" * 32
    k = mac(k, v + b"\x00" + seed)
    v = mac(k, v)
    k = mac(k, v + b"\x01" + seed)
    v = mac(k, v)
    while True:
        v = mac(k, v)
        candidate = int.from_bytes(v, "big")
        if 1 <= candidate < CURVE_ORDER:
            yield candidate
        k = mac(k, v + b"\x00")
        v = mac(k, v)


@dataclass(frozen=True)
class Signature:
    """The components of a secp256k1 signature."""

    v: int
    r: bytes
    s: bytes


class SecretKey:
    """A secp256k1 private key able to sign 32-byte message hashes."""

    __slots__ = ("_secret",)

    def __init__(self, secret: bytes) -> None:
        secret = bytes(secret)
        if len(secret) != 32:
            raise ValueError("secret key must be 32 bytes")
        value = int.from_bytes(secret, "big")
        if not 1 <= value < CURVE_ORDER:
            raise ValueError("secret key is out of range")
        self._secret = value

    @classmethod
    def from_hex(cls, text: str) -> "SecretKey":
        """Build a key from 64 hex digits, with or without a ``0x`` prefix."""
        if text.startswith(("0x", "0X")):
            text = text[2:]
        return cls(bytes.fromhex(text))

    def __repr__(self) -> str:
        return "SecretKey(<hidden>)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretKey):
            return NotImplemented
        return hmac.compare_digest(
            self._secret.to_bytes(32, "big"), other._secret.to_bytes(32, "big")
        )

    def __hash__(self) -> int:
        return hash(keccak256(self._secret.to_bytes(32, "big")))

    @property
    def public_key(self) -> bytes:
        """The 65-byte uncompressed public key, prefixed with 0x04."""
        point = _mul(self._secret, _G)
        assert point is not None
        return _serialize_uncompressed(point)

    def _sign_recoverable(self, message: bytes) -> Tuple[int, bytes, bytes]:
        message = bytes(message)
        if len(message) != 32:
            raise SigningError()
        z = int.from_bytes(message, "big")
        for k in _nonces(self._secret, z):
            point = _mul(k, _G)
            assert point is not None
            r = point[0] % CURVE_ORDER
            if r == 0:
                continue
            s = pow(k, -1, CURVE_ORDER) * (z + r * self._secret) % CURVE_ORDER
            if s == 0:
                continue
            recovery_id = (point[1] & 1) | (2 if point[0] >= CURVE_ORDER else 0)
            if s > CURVE_ORDER // 2:
                s = CURVE_ORDER - s
                recovery_id ^= 1
            return recovery_id, r.to_bytes(32, "big"), s.to_bytes(32, "big")
        raise SigningError()  # pragma: no cover

    def sign(self, message: bytes, chain_id: int | None = None) -> Signature:
        """Sign a 32-byte hash; V carries EIP-155 replay protection or Electrum notation."""
        recovery_id, r, s = self._sign_recoverable(message)
        if chain_id is not None:
            v = recovery_id + 35 + chain_id * 2
        else:
            v = recovery_id + 27
        return Signature(v=v, r=r, s=s)

    def sign_message(self, message: bytes) -> Signature:
        """Sign a 32-byte hash, leaving V as the bare recovery id."""
        recovery_id, r, s = self._sign_recoverable(message)
        return Signature(v=recovery_id, r=r, s=s)

    def address(self) -> bytes:
        """The 20-byte address this key controls."""
        return secret_key_address(self)


def recover(message: bytes, signature: bytes, recovery_id: int) -> bytes:
    """Recover the sender address from a message hash and a 64-byte compact signature."""
    message = bytes(message)
    if len(message) != 32:
        raise RecoveryError(RecoveryError.INVALID_MESSAGE)
    if not 0 <= recovery_id <= 3:
        raise RecoveryError(RecoveryError.INVALID_SIGNATURE)
    signature = bytes(signature)
    if len(signature) != 64:
        raise RecoveryError(RecoveryError.INVALID_SIGNATURE)
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    if not (1 <= r < CURVE_ORDER and 1 <= s < CURVE_ORDER):
        raise RecoveryError(RecoveryError.INVALID_SIGNATURE)
    x = r + (CURVE_ORDER if recovery_id & 2 else 0)
    big_r = _lift_x(x, bool(recovery_id & 1))
    if big_r is None:
        raise RecoveryError(RecoveryError.INVALID_SIGNATURE)
    z = int.from_bytes(message, "big") % CURVE_ORDER
    r_inv = pow(r, -1, CURVE_ORDER)
    u1 = (-z * r_inv) % CURVE_ORDER
    u2 = (s * r_inv) % CURVE_ORDER
    public = _add(_mul(u1, _G), _mul(u2, big_r))
    if public is None:
        raise RecoveryError(RecoveryError.INVALID_SIGNATURE)
    return public_key_address(_serialize_uncompressed(public))


def public_key_address(public_key: bytes) -> bytes:
    """The low 20 bytes of the Keccak-256 hash of an uncompressed public key."""
    public_key = bytes(public_key)
    if len(public_key) != 65 or public_key[0] != 0x04:
        raise ValueError("public key must be 65 bytes, uncompressed, starting with 0x04")
    return keccak256(public_key[1:])[12:]


def secret_key_address(key: SecretKey) -> bytes:
    """The address of the public key that belongs to ``key``."""
    return public_key_address(key.public_key)
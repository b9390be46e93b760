"""Ed25519 keys, digests and signatures."""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat


class CryptoError(Exception):
    """A key or signature could not be loaded or did not verify."""


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64: {exc}") from exc


def _fixed(data: bytes, size: int, what: str) -> bytes:
    data = bytes(data)
    if len(data) != size:
        raise ValueError(f"{what} must be {size} bytes, got {len(data)}")
    return data


@dataclass(frozen=True, order=True, repr=False)
class Digest:
    """A 32-byte digest."""

    value: bytes = bytes(32)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _fixed(self.value, 32, "digest"))

    @classmethod
    def from_bytes(cls, data: bytes) -> Digest:
        return cls(bytes(data))

    def to_bytes(self) -> bytes:
        return self.value

    def size(self) -> int:
        return len(self.value)

    def __bytes__(self) -> bytes:
        return self.value

    def __repr__(self) -> str:
        return _b64encode(self.value)

    def __str__(self) -> str:
        return _b64encode(self.value)[:16]


@dataclass(frozen=True, order=True, repr=False)
class PublicKey:
    """A 32-byte Ed25519 public key."""

    value: bytes = bytes(32)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _fixed(self.value, 32, "public key"))

    def to_base64(self) -> str:
        return _b64encode(self.value)

    @classmethod
    def from_base64(cls, text: str) -> PublicKey:
        """Decode a key; only the first 32 decoded bytes are used."""
        data = _b64decode(text)
        if len(data) < 32:
            raise ValueError("invalid length for a public key")
        return cls(data[:32])

    def __repr__(self) -> str:
        return self.to_base64()

    def __str__(self) -> str:
        return self.to_base64()[:16]


@dataclass(frozen=True, repr=False)
class SecretKey:
    """A 64-byte Ed25519 keypair: the 32-byte seed followed by the public key."""

    value: bytes = field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _fixed(self.value, 64, "secret key"))

    def to_base64(self) -> str:
        return _b64encode(self.value)

    @classmethod
    def from_base64(cls, text: str) -> SecretKey:
        """Decode a key; only the first 64 decoded bytes are used."""
        data = _b64decode(text)
        if len(data) < 64:
            raise ValueError("invalid length for a secret key")
        return cls(data[:64])

    def __repr__(self) -> str:
        return "SecretKey(...)"


def generate_keypair(rng: Callable[[int], bytes]) -> tuple[PublicKey, SecretKey]:
    """Generate a keypair from `rng(n)`, a source of `n` random bytes."""
    seed = _fixed(rng(32), 32, "seed")
    private = Ed25519PrivateKey.from_private_bytes(seed)
    public = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return PublicKey(public), SecretKey(seed + public)


def generate_production_keypair() -> tuple[PublicKey, SecretKey]:
    """Generate a keypair from the operating system's random source."""
    return generate_keypair(os.urandom)


@dataclass(frozen=True, order=True)
class Signature:
    """An Ed25519 signature, stored as two 32-byte halves."""

    part1: bytes = bytes(32)
    part2: bytes = bytes(32)

    def __post_init__(self) -> None:
        object.__setattr__(self, "part1", _fixed(self.part1, 32, "signature half"))
        object.__setattr__(self, "part2", _fixed(self.part2, 32, "signature half"))

    @staticmethod
    def sign(digest: Digest, secret: SecretKey) -> Signature:
        """Sign a digest with a secret key."""
        private = Ed25519PrivateKey.from_private_bytes(secret.value[:32])
        raw = private.sign(digest.value)
        return Signature(raw[:32], raw[32:64])

    def __bytes__(self) -> bytes:
        return self.part1 + self.part2

    def verify(self, digest: Digest, public_key: PublicKey) -> None:
        """Raise CryptoError unless this is a valid signature of `digest` by `public_key`."""
        try:
            key = Ed25519PublicKey.from_public_bytes(public_key.value)
        except ValueError as exc:
            raise CryptoError(f"invalid public key: {exc}") from exc
        try:
            key.verify(bytes(self), digest.value)
        except InvalidSignature as exc:
            raise CryptoError("signature verification failed") from exc

    @staticmethod
    def verify_batch(digest: Digest, votes: Iterable[tuple[PublicKey, Signature]]) -> None:
        """Raise CryptoError unless every (key, signature) pair signs `digest`."""
        for public_key, signature in votes:
            signature.verify(digest, public_key)


class SignatureService:
    """Signs digests on request with a secret key it keeps to itself."""

    def __init__(self, secret: SecretKey) -> None:
        self._secret = secret

    async def request_signature(self, digest: Digest) -> Signature:
        return Signature.sign(digest, self._secret)
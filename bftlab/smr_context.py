"""Interfaces a state-machine-replication context provides to a consensus node."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")
S = TypeVar("S")

_INT_KINDS = {
    "u8": (1, False),
    "u16": (2, False),
    "u32": (4, False),
    "u64": (8, False),
    "u128": (16, False),
    "i8": (1, True),
    "i16": (2, True),
    "i32": (4, True),
    "i64": (8, True),
    "i128": (16, True),
}


def _uleb128(value: int, out: bytearray) -> None:
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)


def _encode(value: Any, out: bytearray, kind: Optional[str]) -> None:
    if isinstance(value, bool):
        out.append(1 if value else 0)
    elif isinstance(value, Enum):
        _uleb128(list(type(value)).index(value), out)
    elif isinstance(value, int):
        if kind is None:
            kind = "u64" if value >= 0 else "i64"
        width, signed = _INT_KINDS[kind]
        out += value.to_bytes(width, "little", signed=signed)
    elif isinstance(value, str):
        data = value.encode("utf-8")
        _uleb128(len(data), out)
        out += data
    elif isinstance(value, (bytes, bytearray)):
        _uleb128(len(value), out)
        out += value
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        for f in dataclasses.fields(value):
            _encode(getattr(value, f.name), out, f.metadata.get("bcs"))
    elif isinstance(value, tuple):
        for item in value:
            _encode(item, out, kind)
    elif isinstance(value, list):
        _uleb128(len(value), out)
        for item in value:
            _encode(item, out, kind)
    elif isinstance(value, dict):
        entries = sorted((bcs_serialize(k), bcs_serialize(v)) for k, v in value.items())
        _uleb128(len(entries), out)
        for key, item in entries:
            out += key
            out += item
    else:
        raise TypeError(f"cannot serialize {type(value).__name__} canonically")


def bcs_serialize(value: Any) -> bytes:
    """Serialize a value into canonical BCS bytes.

    Integers are u64 (i64 when negative) unless a dataclass field carries
    `metadata={"bcs": "u32"}` or another width; tuples are fixed-size,
    lists and strings are length-prefixed, maps are sorted by key bytes.
    """
    out = bytearray()
    _encode(value, out, None)
    return bytes(out)


class CommitCertificate(ABC, Generic[S]):
    """A commit certificate."""

    @abstractmethod
    def committed_state(self) -> Optional[S]:
        """The state committed by this certificate, if any."""


class Signable(ABC):
    """Something that can be hashed and signed."""

    @abstractmethod
    def write(self, hasher: Any) -> None:
        """Feed the canonical bytes of this value to `hasher.write`."""


class BcsSignable(Signable):
    """Signable through its type name followed by its BCS bytes."""

    def write(self, hasher: Any) -> None:
        hasher.write(f"{type(self).__name__}::".encode("utf-8"))
        hasher.write(bcs_serialize(self))


class SmrContext(ABC):
    """Everything a consensus node needs from its environment."""

    @abstractmethod
    def fetch(self) -> Any:
        """Fetch a command to propose, or None."""

    @abstractmethod
    def compute(self, base_state, command, time, previous_author, previous_voters) -> Any:
        """Execute a command on a state; None means the command is rejected."""

    @abstractmethod
    def commit(self, state, certificate) -> None:
        """Report that a state was committed, with an optional certificate."""

    @abstractmethod
    def discard(self, state) -> None:
        """Report that a state was discarded."""

    @abstractmethod
    def last_committed_state(self) -> Any:
        """The last committed state, or the genesis state."""

    @abstractmethod
    def read_epoch_id(self, state) -> Any:
        """The epoch id recorded in a state."""

    @abstractmethod
    def configuration(self, state) -> Any:
        """The voting rights of the epoch starting at a state."""

    @abstractmethod
    def hash(self, message: Signable) -> Any:
        """Hash a signable message."""

    @abstractmethod
    def verify(self, author, hash_value, signature) -> None:
        """Check a signature; raise ValueError when it does not match."""

    @abstractmethod
    def author(self) -> Any:
        """The identity of this node."""

    @abstractmethod
    def sign(self, hash_value) -> Any:
        """Sign a hash with the key of this node."""

    @abstractmethod
    async def read_value(self, key: str) -> Optional[bytes]:
        """Read a value from storage."""

    @abstractmethod
    async def store_value(self, key: str, value: bytes) -> None:
        """Write a value to storage."""


class Authored(ABC):
    """A value that names its author."""

    @abstractmethod
    def author(self) -> Any:
        """The author of this value."""


@dataclass
class SignedValue(Generic[T, S]):
    """A value together with its author's signature."""

    value: T
    signature: S

    @staticmethod
    def make(context: Any, value: Any) -> SignedValue:
        """Sign `value` with the context's key; the value must be authored by the context."""
        if value.author() != context.author():
            raise ValueError("value is not authored by the signing context")
        signature = context.sign(context.hash(value))
        return SignedValue(value, signature)

    def verify(self, context: Any) -> None:
        """Raise if the signature does not match the value and its author."""
        context.verify(self.value.author(), context.hash(self.value), self.signature)
"""A deterministic SMR context used for simulations and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from bftlab.base_types import EpochId, NodeTime
from bftlab.configuration import EpochConfiguration
from bftlab.smr_context import CommitCertificate, Signable, SmrContext, bcs_serialize

logger = logging.getLogger(__name__)

_MASK64 = (1 << 64) - 1


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (64 - k))) & _MASK64


def _sipround(v0: int, v1: int, v2: int, v3: int) -> tuple[int, int, int, int]:
    v0 = (v0 + v1) & _MASK64
    v1 = _rotl(v1, 13) ^ v0
    v0 = _rotl(v0, 32)
    v2 = (v2 + v3) & _MASK64
    v3 = _rotl(v3, 16) ^ v2
    v0 = (v0 + v3) & _MASK64
    v3 = _rotl(v3, 21) ^ v0
    v2 = (v2 + v1) & _MASK64
    v1 = _rotl(v1, 17) ^ v2
    v2 = _rotl(v2, 32)
    return v0, v1, v2, v3


def _siphash13(data: bytes) -> int:
    """SipHash-1-3 with a zero key."""
    v = (0x736F6D6570736575, 0x646F72616E646F6D, 0x6C7967656E657261, 0x7465646279746573)
    tail_start = len(data) - len(data) % 8
    for offset in range(0, tail_start, 8):
        m = int.from_bytes(data[offset : offset + 8], "little")
        v0, v1, v2, v3 = _sipround(v[0], v[1], v[2], v[3] ^ m)
        v = (v0 ^ m, v1, v2, v3)
    b = ((len(data) & 0xFF) << 56) | int.from_bytes(data[tail_start:], "little")
    v0, v1, v2, v3 = _sipround(v[0], v[1], v[2], v[3] ^ b)
    v = (v0 ^ b, v1, v2 ^ 0xFF, v3)
    for _ in range(3):
        v = _sipround(*v)
    return v[0] ^ v[1] ^ v[2] ^ v[3]


@dataclass(frozen=True, order=True)
class Author:
    """Identity of a simulated node."""

    value: int


@dataclass(frozen=True)
class Signature:
    """A simulated signature: the signer and the signed hash."""

    author: int = 0
    hash_value: int = 0


@dataclass(frozen=True)
class State:
    """Key of a simulated ledger state."""

    value: int


@dataclass(frozen=True)
class Command:
    """A simulated command."""

    proposer: Author
    index: int


class SimulatedHasher:
    """A streaming 64-bit hasher."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes) -> int:
        self._buffer += data
        return len(data)

    def finish(self) -> int:
        return _siphash13(bytes(self._buffer))


@dataclass
class SimulatedLedgerState:
    """All executed commands with their consensus times of execution."""

    execution_history: list = field(default_factory=list)

    def key(self) -> State:
        hasher = SimulatedHasher()
        hasher.write(bcs_serialize(self.execution_history))
        return State(hasher.finish())

    def execute(self, command: Command, time: NodeTime) -> None:
        self.execution_history.append((command, time))

    def happened_just_before(self, other: SimulatedLedgerState) -> bool:
        size = len(self.execution_history)
        return (
            len(other.execution_history) == size + 1
            and other.execution_history[:size] == self.execution_history
        )

    def copy(self) -> SimulatedLedgerState:
        return SimulatedLedgerState(list(self.execution_history))


class SimulatedContext(SmrContext):
    """An in-memory SMR context with fake cryptography."""

    def __init__(self, author: Author, num_nodes: int, max_command_per_epoch: int) -> None:
        self._author = author
        self._database: dict[str, bytes] = {}
        self._num_nodes = num_nodes
        self._max_command_per_epoch = max_command_per_epoch
        self._next_fetched_command_index = 0
        self._last_committed_ledger_state = SimulatedLedgerState()
        self._pending_ledger_states: dict[State, SimulatedLedgerState] = {}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimulatedContext):
            return NotImplemented
        return vars(self) == vars(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"SimulatedContext(author={self._author!r}, "
            f"committed={len(self._last_committed_ledger_state.execution_history)}, "
            f"pending={len(self._pending_ledger_states)})"
        )

    def committed_history(self) -> list:
        return self._last_committed_ledger_state.execution_history

    def _get_ledger_state(self, state: State) -> Optional[SimulatedLedgerState]:
        if state == self._last_committed_ledger_state.key():
            return self._last_committed_ledger_state
        return self._pending_ledger_states.get(state)

    def fetch(self) -> Command:
        command = Command(self._author, self._next_fetched_command_index)
        self._next_fetched_command_index += 1
        return command

    def compute(
        self,
        base_state: State,
        command: Command,
        time: NodeTime,
        previous_author: Optional[Author] = None,
        previous_voters: Optional[list] = None,
    ) -> Optional[State]:
        ledger_state = self._get_ledger_state(base_state)
        if ledger_state is None:
            logger.error(
                "%r%r Trying to execute %r after %r but the base state is not available",
                self._author, time, command, base_state,
            )
            return None
        new_ledger_state = ledger_state.copy()
        new_ledger_state.execute(command, time)
        new_state = new_ledger_state.key()
        self._pending_ledger_states[new_state] = new_ledger_state
        logger.info(
            "%r%r Executing %r after %r gave %r", self._author, time, command, base_state, new_state
        )
        return new_state

    def commit(self, state: State, certificate: Optional[CommitCertificate] = None) -> None:
        logger.info("%r Delivering commit for state: %r", self._author, state)
        ledger_state = self._pending_ledger_states.pop(state, None)
        if ledger_state is None:
            raise KeyError("Committed states should be known")
        if not self._last_committed_ledger_state.happened_just_before(ledger_state):
            raise ValueError("Committed state does not extend the last committed state")
        if certificate is not None:
            committed = certificate.committed_state()
            if committed is not None:
                if committed != state:
                    raise ValueError("Commit certificate is for a different state")
                logger.info("%r Received commit certificate for state: %r", self._author, state)
        self._last_committed_ledger_state = ledger_state

    def discard(self, state: State) -> None:
        logger.debug("%r Discarding state: %r", self._author, state)
        if self._pending_ledger_states.pop(state, None) is None:
            raise KeyError("Discarded states should be known")

    def last_committed_state(self) -> State:
        return self._last_committed_ledger_state.key()

    def read_epoch_id(self, state: State) -> EpochId:
        ledger_state = self._get_ledger_state(state)
        if ledger_state is None:
            raise KeyError("Read states should be known")
        return EpochId(len(ledger_state.execution_history) // self._max_command_per_epoch)

    def configuration(self, state: State) -> EpochConfiguration:
        # Voting rights do not change in simulations.
        return EpochConfiguration((Author(index), 1) for index in range(self._num_nodes))

    def hash(self, message: Signable) -> int:
        hasher = SimulatedHasher()
        message.write(hasher)
        return hasher.finish()

    def verify(self, author: Author, hash_value: int, signature: Signature) -> None:
        if author.value != signature.author:
            raise ValueError("Unexpected signer in signature")
        if hash_value != signature.hash_value:
            raise ValueError("Unexpected hash in signature")

    def author(self) -> Author:
        return self._author

    def sign(self, hash_value: int) -> Signature:
        return Signature(self._author.value, hash_value)

    async def read_value(self, key: str) -> Optional[bytes]:
        return self._database.get(key)

    async def store_value(self, key: str, value: bytes) -> None:
        self._database[key] = bytes(value)
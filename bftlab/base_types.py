"""Common value types shared by consensus nodes and contexts."""

from __future__ import annotations

from dataclasses import dataclass

from bftlab.smr_context import BcsSignable

I64_MAX = 2**63 - 1


@dataclass(order=True, unsafe_hash=True)
class Round:
    """A protocol round number."""

    value: int = 0

    def __add__(self, other: int) -> Round:
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        return Round(self.value + other)

    def max_update(self, round: Round) -> None:
        """Raise this round in place to `round` if that one is larger."""
        self.value = max(self.value, round.value)


@dataclass(frozen=True, order=True)
class Duration:
    """A signed amount of time, in milliseconds."""

    value: int = 0


@dataclass(frozen=True, order=True)
class NodeTime:
    """Local time of a node; defaults to the far future."""

    value: int = I64_MAX

    @classmethod
    def never(cls) -> NodeTime:
        return cls(I64_MAX)

    def __add__(self, other: Duration) -> NodeTime:
        if not isinstance(other, Duration):
            return NotImplemented
        return NodeTime(self.value + other.value)

    def __repr__(self) -> str:
        return f"@{self.value}"


@dataclass(frozen=True, order=True)
class EpochId(BcsSignable):
    """Identifier of an epoch."""

    value: int = 0

    def previous(self) -> EpochId | None:
        """Return None for the first epoch, otherwise an epoch id carrying the same value."""
        if self.value == 0:
            return None
        return EpochId(self.value)
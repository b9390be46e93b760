"""Simulated clock, network delays and the events a simulator schedules."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from bftlab.base_types import Duration, NodeTime, Round
from bftlab.rng import Xoshiro256StarStar
from bftlab.simulated_context import Author

logger = logging.getLogger(__name__)


class RandomDelay:
    """A log-normal distribution of delays with the given mean and variance."""

    def __init__(self, mean: float, variance: float) -> None:
        if not mean > 0:
            raise ValueError("mean delay must be positive")
        if not variance >= 0:
            raise ValueError("variance of the delay must not be negative")
        spread = 1.0 + variance / (mean * mean)
        mu = math.log(mean / math.sqrt(spread))
        sigma = math.sqrt(math.log(spread))
        if not (math.isfinite(mu) and math.isfinite(sigma)):
            raise ValueError("delay parameters give an invalid distribution")
        self.mean = mean
        self.variance = variance
        self.mu = mu
        self.sigma = sigma

    def sample(self, rng: Xoshiro256StarStar) -> float:
        """Draw one delay."""
        return math.exp(self.mu + self.sigma * rng.normal())

    def __repr__(self) -> str:
        return f"RandomDelay(mean={self.mean!r}, variance={self.variance!r})"


@dataclass(frozen=True, order=True)
class GlobalTime:
    """The simulated global clock."""

    value: int

    def __add__(self, other: Duration) -> GlobalTime:
        if not isinstance(other, Duration):
            return NotImplemented
        return GlobalTime(self.value + other.value)

    def add_delay(self, rng: Xoshiro256StarStar, delay: RandomDelay) -> GlobalTime:
        """This time plus a random delay, truncated to whole milliseconds."""
        v = delay.sample(rng)
        logger.debug("Picked random delay: %s", v)
        return GlobalTime(self.value + int(v))

    def to_node_time(self, startup_time: GlobalTime) -> NodeTime:
        return NodeTime(self.value - startup_time.value)

    @staticmethod
    def from_node_time(node_time: NodeTime, startup_time: GlobalTime) -> GlobalTime:
        return GlobalTime(node_time.value + startup_time.value)


class ActiveRound(ABC):
    """Something that can report the round it is currently in."""

    @abstractmethod
    def active_round(self) -> Round:
        """The current round."""


@dataclass
class DataSyncNotifyEvent:
    """A notification travelling from `sender` to `receiver`."""

    kind: ClassVar[int] = 0
    receiver: Author
    sender: Author
    notification: Any


@dataclass
class DataSyncRequestEvent:
    """A request travelling from `receiver` to `sender`."""

    kind: ClassVar[int] = 1
    receiver: Author
    sender: Author
    request: Any


@dataclass
class DataSyncResponseEvent:
    """A response travelling from `sender` back to `receiver`."""

    kind: ClassVar[int] = 2
    receiver: Author
    sender: Author
    response: Any


@dataclass
class UpdateTimerEvent:
    """A scheduled call to `update_node` for `author`."""

    kind: ClassVar[int] = 3
    author: Author


Event = Union[DataSyncNotifyEvent, DataSyncRequestEvent, DataSyncResponseEvent, UpdateTimerEvent]

_EVENT_TYPES = (DataSyncNotifyEvent, DataSyncRequestEvent, DataSyncResponseEvent, UpdateTimerEvent)


def event_kind(event: Event) -> int:
    """Rank of an event kind; lower kinds go first among events due at the same time."""
    if not isinstance(event, _EVENT_TYPES):
        raise TypeError(f"not a simulator event: {type(event).__name__}")
    return event.kind
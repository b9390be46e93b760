"""Committee of authorities and consensus parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from bftlab.base_types import Duration
from bftlab.crypto import PublicKey

SocketAddr = tuple[str, int]


@dataclass
class Parameters:
    """Timing and tuning parameters of the consensus protocol."""

    target_commit_interval: Duration = field(default_factory=lambda: Duration(500))
    delta: Duration = field(default_factory=lambda: Duration(5_000))
    gamma: float = 500.0
    lambda_: float = 100.0


@dataclass(frozen=True)
class Authority:
    """A member of the committee."""

    name: PublicKey
    stake: int
    address: SocketAddr


@dataclass
class Committee:
    """The authorities of an epoch, keyed by public key."""

    authorities: dict[PublicKey, Authority] = field(default_factory=dict)
    epoch: int = 0

    @classmethod
    def from_info(cls, info: Iterable[tuple[PublicKey, int, SocketAddr]], epoch: int) -> Committee:
        return cls(
            {name: Authority(name, stake, address) for name, stake, address in info},
            epoch,
        )

    def size(self) -> int:
        return len(self.authorities)

    def stake(self, name: PublicKey) -> int:
        authority = self.authorities.get(name)
        return 0 if authority is None else authority.stake

    def quorum_threshold(self) -> int:
        # With N = 3f + 1 + k (0 <= k < 3), this equals N - f.
        total_votes = sum(authority.stake for authority in self.authorities.values())
        return 2 * total_votes // 3 + 1

    def address(self, name: PublicKey) -> Optional[SocketAddr]:
        authority = self.authorities.get(name)
        return None if authority is None else authority.address

    def broadcast_addresses(self, myself: PublicKey) -> list[tuple[PublicKey, SocketAddr]]:
        return [
            (authority.name, authority.address)
            for authority in self.authorities.values()
            if authority.name != myself
        ]
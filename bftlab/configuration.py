"""Voting rights of the nodes during an epoch."""

from __future__ import annotations

from typing import Generic, Hashable, Iterable, TypeVar

from bftlab.rng import Xoshiro256StarStar

A = TypeVar("A", bound=Hashable)


class EpochConfiguration(Generic[A]):
    """BFT permissions during an epoch.

    The order of the authors is recorded and influences `pick_author`.
    """

    def __init__(self, authors: Iterable[tuple[A, int]]) -> None:
        self._authors: list[tuple[A, int]] = list(authors)
        self._voting_rights: dict[A, int] = dict(self._authors)
        self._total_votes = sum(votes for _, votes in self._authors)

    @property
    def authors(self) -> list[tuple[A, int]]:
        return list(self._authors)

    @property
    def total_votes(self) -> int:
        return self._total_votes

    def weight(self, author: A) -> int:
        return self._voting_rights.get(author, 0)

    def count_votes(self, authors: Iterable[A]) -> int:
        return sum(self._voting_rights.get(author, 0) for author in authors)

    def quorum_threshold(self) -> int:
        # With N = 3f + 1 + k (0 <= k < 3), this equals N - f.
        return 2 * self._total_votes // 3 + 1

    def validity_threshold(self) -> int:
        # With N = 3f + 1 + k (0 <= k < 3), this equals f + 1.
        return (self._total_votes + 2) // 3

    def pick_author(self, seed: int) -> A:
        """Pick an author at random, weighted by voting rights."""
        rng = Xoshiro256StarStar(seed)
        target = rng.gen_range(0, self._total_votes)
        for author, votes in self._authors:
            if votes > target:
                return author
            target -= votes
        raise AssertionError("voting rights do not add up to the total")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EpochConfiguration):
            return NotImplemented
        if self._authors != other._authors:
            return False
        for author, rights in self._authors:
            if other._voting_rights.get(author) != rights:
                return False
        assert self._total_votes == other._total_votes
        return True

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"EpochConfiguration({self._authors!r})"
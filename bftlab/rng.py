"""Deterministic xoshiro256** random number generator."""

from __future__ import annotations

import math
from typing import Any, MutableSequence

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (64 - k))) & _MASK64


def _splitmix64(state: int) -> tuple[int, int]:
    state = (state + 0x9E3779B97F4A7C15) & _MASK64
    z = state
    z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK64
    return state, z ^ (z >> 31)


def _leading_zeros(x: int, bits: int) -> int:
    return bits - x.bit_length()


class Xoshiro256StarStar:
    """xoshiro256** seeded from a 64-bit value through SplitMix64."""

    def __init__(self, seed: int) -> None:
        state = seed & _MASK64
        words = []
        for _ in range(4):
            state, word = _splitmix64(state)
            words.append(word)
        self._s = words

    def next_u64(self) -> int:
        s = self._s
        result = (_rotl((s[1] * 5) & _MASK64, 7) * 9) & _MASK64
        t = (s[1] << 17) & _MASK64
        s[2] ^= s[0]
        s[3] ^= s[1]
        s[1] ^= s[2]
        s[0] ^= s[3]
        s[2] ^= t
        s[3] = _rotl(s[3], 45)
        return result

    def _next_u32(self) -> int:
        return self.next_u64() >> 32

    def gen_range(self, low: int, high: int) -> int:
        """Uniform integer in [low, high), using widening multiply with rejection."""
        if high <= low:
            raise ValueError("cannot sample empty range")
        span = (high - low) & _MASK64
        if span == 0:
            return low + self.next_u64()
        zone = ((span << _leading_zeros(span, 64)) & _MASK64) - 1
        while True:
            product = self.next_u64() * span
            if product & _MASK64 <= zone:
                return low + (product >> 64)

    def _gen_index_u32(self, bound: int) -> int:
        zone = ((bound << _leading_zeros(bound, 32)) & _MASK32) - 1
        while True:
            product = self._next_u32() * bound
            if product & _MASK32 <= zone:
                return product >> 32

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return (self.next_u64() >> 11) * (1.0 / (1 << 53))

    def normal(self) -> float:
        """Sample from the standard normal distribution."""
        u1 = 1.0 - self.random()
        u2 = self.random()
        return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    def shuffle(self, items: MutableSequence[Any]) -> None:
        """Shuffle `items` in place (Fisher-Yates from the end)."""
        for i in reversed(range(1, len(items))):
            bound = i + 1
            j = self._gen_index_u32(bound) if bound <= _MASK32 else self.gen_range(0, bound)
            items[i], items[j] = items[j], items[i]
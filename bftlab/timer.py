"""A resettable asynchronous timer."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Generator, Optional


class Timer:
    """Completes once its deadline, in milliseconds from the last (re)set, has passed."""

    def __init__(self, duration: int) -> None:
        self._deadline = time.monotonic() + duration / 1000
        self._changed: Optional[asyncio.Event] = None

    def reset(self, duration: int) -> None:
        """Move the deadline to `duration` milliseconds from now."""
        self._deadline = time.monotonic() + duration / 1000
        if self._changed is not None:
            self._changed.set()

    async def wait(self) -> None:
        """Wait until the current deadline; follows resets made meanwhile."""
        if self._changed is None:
            self._changed = asyncio.Event()
        changed = self._changed
        while True:
            remaining = self._deadline - time.monotonic()
            if remaining <= 0:
                return
            changed.clear()
            try:
                await asyncio.wait_for(changed.wait(), remaining)
            except asyncio.TimeoutError:
                pass

    def __await__(self) -> Generator[Any, None, None]:
        return self.wait().__await__()
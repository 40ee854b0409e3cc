"""
Shared state for the Block Announcer.

Holds the hash of the last announced block and the process start time behind
an asyncio lock. The poller is the only writer of ``last_seen``; command
handlers only read ``start_time``.
"""

import asyncio
import time
from typing import Optional


class BotState:
    """
    Lock-guarded mutable state shared between the poller and command handlers.

    The lock is held only for the duration of a single read or write, never
    across a network call.
    """

    def __init__(self, last_seen: str, start_time: Optional[int] = None):
        """
        Initialize the state.

        Args:
            last_seen: Hash of the block to start reconciling from
            start_time: Unix timestamp the service started at (defaults to now)
        """
        if not last_seen:
            raise ValueError("last_seen must be a non-empty block hash")
        self._last_seen = last_seen
        self._start_time = int(time.time()) if start_time is None else start_time
        self._lock = asyncio.Lock()

    async def get_last_seen(self) -> str:
        async with self._lock:
            return self._last_seen

    async def set_last_seen(self, block_hash: str) -> None:
        """
        Advance the last seen block.

        Args:
            block_hash: New chain tip hash
        """
        if not block_hash:
            raise ValueError("last_seen must be a non-empty block hash")
        async with self._lock:
            self._last_seen = block_hash

    async def get_start_time(self) -> int:
        async with self._lock:
            return self._start_time

    async def uptime(self, now: Optional[int] = None) -> int:
        """
        Seconds elapsed since the service started.

        Args:
            now: Current Unix timestamp (defaults to the wall clock)

        Returns:
            Elapsed seconds, never negative
        """
        start_time = await self.get_start_time()
        current = int(time.time()) if now is None else now
        return max(0, current - start_time)

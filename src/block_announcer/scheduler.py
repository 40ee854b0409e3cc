"""
Polling scheduler for newly mined blocks.

Runs the reconciler on a fixed interval against the shared state, publishes
new-block announcements and rate limits the notices sent on failures.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from .exceptions import BlockSourceError
from .formatter import DEFAULT_EXPLORER_URL, format_new_blocks, format_unreachable_notice
from .models import Message
from .publisher import Publisher
from .reconciler import BlockReconciler
from .state import BotState


class BlockPoller:
    """
    Polls the block source on a fixed interval and announces new blocks.

    Failures are rate limited: at most one "unreachable" notice is published
    per ``error_cooldown`` seconds, the rest are logged and suppressed.
    """

    def __init__(
        self,
        reconciler: BlockReconciler,
        state: BotState,
        publisher: Publisher,
        interval: float = 30,
        error_cooldown: float = 3600,
        explorer_url: str = DEFAULT_EXPLORER_URL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the poller.

        Args:
            reconciler: Reconciler used to discover new blocks
            state: Shared state holding the last seen block
            publisher: Destination for announcements and notices
            interval: Seconds to sleep between ticks
            error_cooldown: Minimum seconds between two failure notices
            explorer_url: Base URL for block links
            clock: Monotonic clock used for the failure cooldown
        """
        self.reconciler = reconciler
        self.state = state
        self.publisher = publisher
        self.interval = interval
        self.error_cooldown = error_cooldown
        self.explorer_url = explorer_url
        self.clock = clock

        # None until the first notice goes out, so the first failure is reported
        self.last_notice_time: Optional[float] = None
        self.is_running = False

        # Metrics
        self.ticks = 0
        self.failures = 0
        self.blocks_announced = 0
        self.notices_sent = 0

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def poll_once(self) -> None:
        """
        Run a single polling tick without sleeping.

        Reads the last seen block, reconciles against the current tip and
        either announces the new blocks or applies the failure policy.
        """
        self.ticks += 1
        last_seen = await self.state.get_last_seen()

        try:
            result = await self.reconciler.reconcile(last_seen)
        except BlockSourceError as e:
            self.failures += 1
            await self._handle_failure(e)
            return

        await self.state.set_last_seen(result.new_tip)

        if result.has_new_blocks:
            self.blocks_announced += len(result.blocks)
            await self._publish(format_new_blocks(result.blocks, self.explorer_url))

    async def _handle_failure(self, error: BlockSourceError) -> None:
        """Publish an unreachable notice unless one went out recently."""
        now = self.clock()
        if self.last_notice_time is not None and now - self.last_notice_time <= self.error_cooldown:
            self.logger.warning(f"Block source error (notice suppressed): {error}")
            return

        self.logger.error(f"Block source error: {error}")
        self.last_notice_time = now
        self.notices_sent += 1
        await self._publish(format_unreachable_notice())

    async def _publish(self, message: Message) -> None:
        # Delivery is the publisher's concern; a failed publish must not stop polling
        try:
            await self.publisher.publish(message)
        except Exception as e:
            self.logger.error(f"Failed to publish message: {e}", exc_info=True)

    async def start_polling(self) -> None:
        """
        Poll until stopped or cancelled.

        Sleeps ``interval`` seconds after every tick, whatever its outcome.
        """
        if self.is_running:
            self.logger.warning("Polling already running")
            return

        self.is_running = True
        self.logger.info(f"Starting block polling every {self.interval} seconds")

        try:
            while self.is_running:
                await self.poll_once()
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            self.logger.info("Polling cancelled")
            raise
        finally:
            self.is_running = False

    async def stop(self) -> None:
        """Stop the polling loop after the current tick."""
        self.logger.info("Stopping block polling")
        self.is_running = False

    def get_status(self) -> Dict[str, Any]:
        """
        Get current status of the poller.

        Returns:
            Dictionary with status information
        """
        return {
            "is_running": self.is_running,
            "ticks": self.ticks,
            "failures": self.failures,
            "blocks_announced": self.blocks_announced,
            "notices_sent": self.notices_sent,
            "interval": self.interval,
            "error_cooldown": self.error_cooldown,
        }

"""
Block Announcer service.

This module wires the block source, reconciler, poller and command handler
together and manages the lifecycle of the background polling task.
"""

import asyncio
import logging
from typing import Optional

from .commands import CommandHandler
from .config import BotConfig
from .models import Message
from .publisher import LogPublisher, Publisher
from .reconciler import BlockReconciler
from .scheduler import BlockPoller
from .state import BotState
from .utils.mempool_utility import MempoolUtility

logger = logging.getLogger(__name__)


class BlockAnnouncer:
    """
    Announces newly mined blocks to a messaging network.

    Owns the shared ``BotState`` and hands it to the poller and the command
    handler. ``start()`` must complete before ``run()`` or ``handle_command()``.
    """

    def __init__(
        self,
        config: BotConfig,
        publisher: Optional[Publisher] = None,
        source: Optional[MempoolUtility] = None,
    ):
        """
        Initialize the announcer.

        Args:
            config: Announcer configuration
            publisher: Messaging-network publisher (LogPublisher in local mode)
            source: Block source client (built from config if omitted)

        Raises:
            ValueError: If no publisher is given outside local mode
        """
        self.config = config

        if publisher is None:
            if not config.local_mode:
                raise ValueError(
                    "A publisher is required outside local mode; run with --local "
                    "to log messages instead"
                )
            publisher = LogPublisher()
        self.publisher = publisher

        self.source = source or MempoolUtility(
            api_url=config.provider.api_url,
            request_timeout=config.polling.request_timeout,
        )
        self.reconciler = BlockReconciler(
            self.source,
            max_depth=config.polling.max_backtrack_depth,
        )

        self.state: Optional[BotState] = None
        self.poller: Optional[BlockPoller] = None
        self.commands: Optional[CommandHandler] = None

        self.shutdown_event = asyncio.Event()
        self._poll_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """
        Seed the shared state and build the components that use it.

        Raises:
            TransportError: If the tip cannot be fetched to seed the state
            DecodeError: If the tip response is malformed
        """
        if self.config.start_block_hash:
            logger.info(f"Using {self.config.start_block_hash} as last block.")
            last_seen = self.config.start_block_hash
        else:
            logger.warning("Last block hash not specified, using current tip.")
            last_seen = await self.source.fetch_tip_hash()

        self.state = BotState(last_seen=last_seen)
        self.poller = BlockPoller(
            reconciler=self.reconciler,
            state=self.state,
            publisher=self.publisher,
            interval=self.config.polling.polling_interval,
            error_cooldown=self.config.polling.error_cooldown,
            explorer_url=self.config.provider.explorer_url,
        )
        self.commands = CommandHandler(self.state)
        logger.info(f"Block Announcer started from block {last_seen}")

    async def handle_command(
        self,
        text: str,
        event_id: Optional[str] = None,
        author: Optional[str] = None,
    ) -> Optional[Message]:
        """
        Answer a text command and publish the reply.

        Args:
            text: Raw command text
            event_id: Id of the inbound message, tagged on the reply
            author: Public key of the inbound message's author

        Returns:
            The published reply, or None for unknown commands
        """
        if self.commands is None:
            raise RuntimeError("Block Announcer not started")

        reply = await self.commands.handle(text, event_id=event_id, author=author)
        if reply is not None:
            await self.publisher.publish(reply)
        return reply

    async def run(self) -> None:
        """Run the polling task until stopped or until it fails."""
        if self.poller is None:
            await self.start()
        assert self.poller is not None

        self._poll_task = asyncio.create_task(self.poller.start_polling())
        shutdown_task = asyncio.create_task(self.shutdown_event.wait())
        logger.info("Block polling started, waiting for new blocks...")

        try:
            done, _ = await asyncio.wait(
                {self._poll_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if self._poll_task in done and not self._poll_task.cancelled():
                # Propagate an unexpected crash of the polling task
                self._poll_task.result()
        finally:
            await self._cleanup(shutdown_task)
            logger.info("Block Announcer stopped")

    async def _cleanup(self, shutdown_task: asyncio.Task) -> None:
        """Cancel running tasks and close the HTTP client."""
        if self.poller is not None:
            await self.poller.stop()

        for task in (self._poll_task, shutdown_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass  # Expected when cancelling

        await self.source.aclose()

    def stop(self) -> None:
        """Request shutdown of the running service."""
        self.shutdown_event.set()

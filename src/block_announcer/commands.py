"""
Text command handling for the Block Announcer.

Only ``!uptime`` is handled here; help text and command routing for the
messaging network live in the external bot framework. Replies carry ``e``
and ``p`` tags pointing at the triggering message and its author when those
are known, so the publisher can thread them.
"""

import logging
from typing import Optional

from .formatter import format_uptime
from .models import Message
from .state import BotState

logger = logging.getLogger(__name__)


def reply_tags(event_id: Optional[str], author: Optional[str]) -> tuple[tuple[str, str], ...]:
    """Tags marking a message as a reply to ``event_id`` by ``author``."""
    tags = []
    if event_id:
        tags.append(("e", event_id))
    if author:
        tags.append(("p", author))
    return tuple(tags)


class CommandHandler:
    """Answers text commands using the shared bot state."""

    UPTIME_COMMAND = "!uptime"

    def __init__(self, state: BotState):
        self.state = state

    async def uptime(
        self,
        now: Optional[int] = None,
        event_id: Optional[str] = None,
        author: Optional[str] = None,
    ) -> Message:
        """Build the reply to ``!uptime``."""
        running_secs = await self.state.uptime(now)
        return Message(
            content=f"Running for {format_uptime(running_secs)}",
            tags=reply_tags(event_id, author),
        )

    async def handle(
        self,
        text: str,
        now: Optional[int] = None,
        event_id: Optional[str] = None,
        author: Optional[str] = None,
    ) -> Optional[Message]:
        """
        Dispatch a command message.

        Args:
            text: Raw message content
            now: Current Unix timestamp (defaults to the wall clock)
            event_id: Id of the message carrying the command, if known
            author: Public key of the command's author, if known

        Returns:
            Reply message, or None if the text is not a known command
        """
        command = text.strip().split(maxsplit=1)[0] if text.strip() else ""
        if command == self.UPTIME_COMMAND:
            return await self.uptime(now, event_id=event_id, author=author)

        logger.debug(f"Ignoring unknown command: {command!r}")
        return None

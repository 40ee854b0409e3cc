"""
Outbound publishing interface.

The messaging-network client (signing, relay connections) lives outside this
package; the service only depends on the ``Publisher`` protocol below.
"""

import json
import logging
from typing import Protocol

from .models import Message

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Delivers messages to the messaging network."""

    async def publish(self, message: Message) -> None: ...


class LogPublisher:
    """
    Publisher that writes messages to the log instead of a network.

    Used in local mode to run the service without a messaging client.
    """

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self.published: int = 0

    async def publish(self, message: Message) -> None:
        self.published += 1
        logger.log(self.level, f"Publishing message #{self.published}:\n{message.content}")
        logger.debug(f"Message payload: {json.dumps(message.to_dict())}")

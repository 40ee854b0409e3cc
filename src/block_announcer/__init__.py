"""
Block Announcer package.

Polls a block data API for newly mined blocks and announces them to a
messaging network.
"""

from .announcer import BlockAnnouncer
from .config import BotConfig
from .models import BlockRecord, Message, ReconciliationResult
from .reconciler import BlockReconciler
from .scheduler import BlockPoller
from .state import BotState

__all__ = [
    "BlockAnnouncer",
    "BlockPoller",
    "BlockReconciler",
    "BlockRecord",
    "BotConfig",
    "BotState",
    "Message",
    "ReconciliationResult",
]
__version__ = "0.1.0"

"""Error types raised while talking to the block data provider.

All of them are recoverable inside the polling loop: the poller catches
``BlockSourceError`` and applies its notification policy.
"""


class BlockSourceError(Exception):
    """Base class for failures while discovering new blocks."""


class TransportError(BlockSourceError):
    """The provider could not be reached or answered with a non-2xx status."""


class DecodeError(BlockSourceError):
    """The provider answered, but the body is not a well-formed record."""


class ReconciliationDivergedError(BlockSourceError):
    """The last seen block was not found among the tip's ancestors.

    Attributes:
        last_seen: Hash the walk was looking for
        depth: Number of blocks walked before giving up
    """

    def __init__(self, last_seen: str, depth: int) -> None:
        self.last_seen = last_seen
        self.depth = depth
        super().__init__(
            f"Block {last_seen} not found within {depth} ancestors of the current tip"
        )

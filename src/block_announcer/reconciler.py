#!/usr/bin/env python3
"""Backfill reconciliation for the Block Announcer.

Given the hash of the last block we announced, this module discovers every
block mined since then by walking parent links backwards from the current
chain tip.
"""

import logging
from typing import Protocol

from .exceptions import ReconciliationDivergedError
from .models import BlockRecord, ReconciliationResult

# Get logger for this module
logger = logging.getLogger(__name__)


class BlockSource(Protocol):
    """Anything that can report the chain tip and fetch blocks by hash."""

    async def fetch_tip_hash(self) -> str: ...

    async def fetch_block(self, block_hash: str) -> BlockRecord: ...


class BlockReconciler:
    """Discovers newly mined blocks since a previously seen block.

    Fetches are sequential because each one depends on the parent hash of
    the previous block. The walk is bounded by ``max_depth`` so a last seen
    hash that dropped out of the chain (e.g. after a reorganization) fails
    with ``ReconciliationDivergedError`` instead of walking back forever.
    """

    def __init__(self, source: BlockSource, max_depth: int = 1000) -> None:
        """Initialize the reconciler.

        Args:
            source: Block source to query
            max_depth: Maximum number of blocks to walk back per pass
        """
        if max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        self.source = source
        self.max_depth = max_depth

    async def reconcile(self, last_seen: str) -> ReconciliationResult:
        """Collect the blocks mined after ``last_seen``.

        Args:
            last_seen: Hash of the most recent block already announced

        Returns:
            ReconciliationResult with blocks newest first and the new tip

        Raises:
            TransportError: If the provider cannot be reached
            DecodeError: If a provider response is malformed
            ReconciliationDivergedError: If ``last_seen`` is not found
                within ``max_depth`` ancestors of the tip
        """
        tip = await self.source.fetch_tip_hash()
        logger.debug(f"last_seen: {last_seen}, current tip: {tip}")

        if tip == last_seen:
            return ReconciliationResult(blocks=(), new_tip=tip)

        blocks: list[BlockRecord] = []
        cursor: str | None = tip
        while cursor != last_seen:
            if cursor is None or len(blocks) >= self.max_depth:
                # Ran past genesis or the depth bound without meeting last_seen
                raise ReconciliationDivergedError(last_seen, len(blocks))
            block = await self.source.fetch_block(cursor)
            blocks.append(block)
            cursor = block.previous_block_hash

        logger.info(f"Discovered {len(blocks)} new block(s), tip is now {tip}")
        return ReconciliationResult(blocks=tuple(blocks), new_tip=tip)

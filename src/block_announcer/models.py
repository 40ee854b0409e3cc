#!/usr/bin/env python3
"""Data models for the Block Announcer.

This module provides immutable data classes for representing blocks fetched
from the data provider, the outcome of a reconciliation pass and the
messages handed to the publisher.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .exceptions import DecodeError


def _require_int(payload: dict[str, Any], key: str) -> int:
    """Read a non-negative integer field from a provider payload."""
    if key not in payload:
        raise DecodeError(f"Block record is missing field '{key}'")
    value = payload[key]
    # bool is a subclass of int, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"Block field '{key}' must be an integer, got {value!r}")
    if value < 0:
        raise DecodeError(f"Block field '{key}' must be non-negative, got {value}")
    return value


def _require_timestamp(payload: dict[str, Any]) -> int:
    """Read a Unix timestamp that a UTC datetime can represent."""
    timestamp = _require_int(payload, "timestamp")
    try:
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise DecodeError(f"Block field 'timestamp' is out of range: {timestamp}") from e
    return timestamp


@dataclass(frozen=True, slots=True)
class BlockRecord:
    """Represents a block as reported by the data provider.

    Attributes:
        block_hash: The block hash
        previous_block_hash: Hash of the parent block (None for genesis)
        height: Block height
        timestamp: Block timestamp (Unix seconds, UTC)
        tx_count: Number of transactions in the block
        size: Block size in bytes
        weight: Block weight in weight units
    """

    block_hash: str
    previous_block_hash: str | None
    height: int
    timestamp: int
    tx_count: int
    size: int
    weight: int

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"BlockRecord(height={self.height}, hash={self.block_hash[:16]}...)"

    @classmethod
    def from_api(cls, payload: Any) -> "BlockRecord":
        """Build a record from a decoded ``GET /block/{hash}`` response.

        Args:
            payload: Decoded JSON body

        Returns:
            Validated BlockRecord

        Raises:
            DecodeError: If the payload is not an object or a field is
                missing or has the wrong type
        """
        if not isinstance(payload, dict):
            raise DecodeError(f"Block record must be a JSON object, got {type(payload).__name__}")

        block_hash = payload.get("id")
        if not isinstance(block_hash, str) or not block_hash:
            raise DecodeError("Block record is missing field 'id'")

        previous_block_hash = payload.get("previousblockhash")
        if previous_block_hash is not None and not isinstance(previous_block_hash, str):
            raise DecodeError(
                f"Block field 'previousblockhash' must be a string, got {previous_block_hash!r}"
            )

        return cls(
            block_hash=block_hash,
            previous_block_hash=previous_block_hash or None,
            height=_require_int(payload, "height"),
            timestamp=_require_timestamp(payload),
            tx_count=_require_int(payload, "tx_count"),
            size=_require_int(payload, "size"),
            weight=_require_int(payload, "weight"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert back to the provider's field names."""
        return {
            "id": self.block_hash,
            "previousblockhash": self.previous_block_hash,
            "height": self.height,
            "timestamp": self.timestamp,
            "tx_count": self.tx_count,
            "size": self.size,
            "weight": self.weight,
        }


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Outcome of a single reconciliation pass.

    Attributes:
        blocks: Newly mined blocks, newest first (discovery order)
        new_tip: Chain tip hash observed at the start of the pass
    """

    blocks: tuple[BlockRecord, ...]
    new_tip: str

    @property
    def has_new_blocks(self) -> bool:
        return bool(self.blocks)


@dataclass(frozen=True, slots=True)
class Message:
    """An unsigned message for the messaging network.

    Attributes:
        content: Text body
        tags: Ordered (key, value) tag pairs
        kind: Numeric kind discriminator (1 is a plain text note)
        created_at: Unix timestamp of creation
    """

    content: str
    tags: tuple[tuple[str, str], ...] = ()
    kind: int = 1
    created_at: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire form expected by the publisher."""
        return {
            "created_at": self.created_at,
            "kind": self.kind,
            "content": self.content,
            "tags": [list(tag) for tag in self.tags],
        }

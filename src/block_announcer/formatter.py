#!/usr/bin/env python3
"""Message rendering for the Block Announcer.

Turns batches of newly mined blocks, uptimes and error conditions into the
text payloads published to the messaging network.
"""

from collections.abc import Sequence
from datetime import datetime, timezone

from .models import BlockRecord, Message

DEFAULT_EXPLORER_URL = "https://mempool.space"

TOPIC_TAG = ("#t", "bitcoin")

UNREACHABLE_NOTICE = "I'm unable to reach the API."


def format_number(value: int) -> str:
    """Render an integer with US English digit grouping (1,500,000)."""
    return f"{value:,}"


def format_timestamp(timestamp: int) -> str:
    """Render a Unix timestamp as a UTC datetime with second precision."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def block_url(block_hash: str, explorer_url: str = DEFAULT_EXPLORER_URL) -> str:
    return f"{explorer_url.rstrip('/')}/block/{block_hash}"


def format_block(block: BlockRecord, explorer_url: str = DEFAULT_EXPLORER_URL) -> str:
    """Render the section describing a single block (no trailing newline)."""
    lines = [
        block.block_hash,
        f"- height: {format_number(block.height)}",
        f"- tx count: {format_number(block.tx_count)}",
        f"- size: {format_number(block.size)}",
        f"- weight: {format_number(block.weight)}",
        f"- timestamp: {format_timestamp(block.timestamp)}",
        f"- {block_url(block.block_hash, explorer_url)}",
    ]
    return "\n".join(lines)


def format_new_blocks(
    blocks: Sequence[BlockRecord],
    explorer_url: str = DEFAULT_EXPLORER_URL,
) -> Message:
    """Render a batch of newly mined blocks.

    Blocks are rendered in the order given. The reconciler hands them over
    newest first, so the most recent block leads the message.

    Args:
        blocks: Blocks to announce
        explorer_url: Base URL of the block explorer used for links

    Returns:
        Message with a ``#t`` topic tag and one ``#r`` tag per block
    """
    header = f"Got {len(blocks)} newly mined block(s):"
    sections = [format_block(block, explorer_url) for block in blocks]
    tags = [TOPIC_TAG]
    tags.extend(("#r", block_url(block.block_hash, explorer_url)) for block in blocks)

    return Message(
        content=header + "\n" + "\n\n".join(sections),
        tags=tuple(tags),
    )


def format_uptime(seconds: int) -> str:
    """Render elapsed seconds as a compound duration, e.g. ``1d 2h 3m 4s``.

    Zero-valued units are omitted; a zero duration renders as ``0s``.

    Raises:
        ValueError: If ``seconds`` is negative
    """
    if seconds < 0:
        raise ValueError(f"Duration must be non-negative, got {seconds}")

    days, remainder = divmod(int(seconds), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = [
        f"{amount}{unit}"
        for amount, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (secs, "s"))
        if amount
    ]
    return " ".join(parts) or "0s"


def format_unreachable_notice() -> Message:
    """Fixed notice sent when the data provider cannot be reached."""
    return Message(content=UNREACHABLE_NOTICE)

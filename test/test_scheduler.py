#!/usr/bin/env python3
"""Unit tests for the BlockPoller module."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from block_announcer.exceptions import (
    DecodeError,
    ReconciliationDivergedError,
    TransportError,
)
from block_announcer.models import BlockRecord, ReconciliationResult
from block_announcer.reconciler import BlockReconciler
from block_announcer.scheduler import BlockPoller
from block_announcer.state import BotState
from block_announcer.utils.mempool_utility import MempoolUtility


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_block(block_hash: str, parent: str, height: int) -> BlockRecord:
    return BlockRecord(
        block_hash=block_hash,
        previous_block_hash=parent,
        height=height,
        timestamp=1690000000,
        tx_count=2500,
        size=1500000,
        weight=4000000,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reconciler():
    mock = MagicMock()
    mock.reconcile = AsyncMock()
    return mock


@pytest.fixture
def publisher():
    mock = MagicMock()
    mock.publish = AsyncMock()
    return mock


@pytest.fixture
def state():
    return BotState(last_seen="h0", start_time=1690000000)


@pytest.fixture
def poller(reconciler, state, publisher, clock):
    return BlockPoller(
        reconciler=reconciler,
        state=state,
        publisher=publisher,
        interval=30,
        error_cooldown=3600,
        clock=clock,
    )


class TestPollOnce:
    """Tests for a single polling tick."""

    @pytest.mark.asyncio
    async def test_new_blocks_published_and_state_advanced(self, poller, reconciler, state, publisher):
        reconciler.reconcile.return_value = ReconciliationResult(
            blocks=(make_block("h2", "h1", 2), make_block("h1", "h0", 1)),
            new_tip="h2",
        )

        await poller.poll_once()

        reconciler.reconcile.assert_awaited_once_with("h0")
        assert await state.get_last_seen() == "h2"
        publisher.publish.assert_awaited_once()
        message = publisher.publish.await_args.args[0]
        assert message.content.startswith("Got 2 newly mined block(s):")
        assert poller.blocks_announced == 2

    @pytest.mark.asyncio
    async def test_no_dispatch_for_empty_batch(self, poller, reconciler, state, publisher):
        """Test that an empty batch sends nothing at all."""
        reconciler.reconcile.return_value = ReconciliationResult(blocks=(), new_tip="h0")

        await poller.poll_once()

        publisher.publish.assert_not_awaited()
        assert await state.get_last_seen() == "h0"

    @pytest.mark.asyncio
    async def test_next_tick_uses_new_tip(self, poller, reconciler):
        reconciler.reconcile.side_effect = [
            ReconciliationResult(blocks=(make_block("h1", "h0", 1),), new_tip="h1"),
            ReconciliationResult(blocks=(), new_tip="h1"),
        ]

        await poller.poll_once()
        await poller.poll_once()

        assert [c.args[0] for c in reconciler.reconcile.await_args_list] == ["h0", "h1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        TransportError("connection refused"),
        DecodeError("Block record is missing field 'height'"),
        ReconciliationDivergedError("h0", 1000),
    ])
    async def test_failure_keeps_state(self, poller, reconciler, state, publisher, error):
        """Test that every error kind leaves last_seen untouched and sends a notice."""
        reconciler.reconcile.side_effect = error

        await poller.poll_once()

        assert await state.get_last_seen() == "h0"
        publisher.publish.assert_awaited_once()
        assert publisher.publish.await_args.args[0].content == "I'm unable to reach the API."
        assert poller.failures == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, poller, reconciler):
        reconciler.reconcile.side_effect = KeyError("boom")
        with pytest.raises(KeyError):
            await poller.poll_once()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_raise(self, poller, reconciler, state, publisher):
        reconciler.reconcile.return_value = ReconciliationResult(
            blocks=(make_block("h1", "h0", 1),), new_tip="h1"
        )
        publisher.publish.side_effect = ConnectionError("relay down")

        await poller.poll_once()

        assert await state.get_last_seen() == "h1"


class TestMalformedProviderData:
    """Malformed provider bodies are handled like any other provider failure."""

    GOOD_BLOCK = {
        "id": "h2", "previousblockhash": "h1", "height": 2, "timestamp": 1690000600,
        "tx_count": 3000, "size": 1200000, "weight": 3990000,
    }

    def make_poller(self, block_payload, publisher, clock):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/blocks/tip/hash":
                return httpx.Response(200, text="h2")
            return httpx.Response(200, json=block_payload)

        source = MempoolUtility(
            api_url="https://mempool.test/api",
            transport=httpx.MockTransport(handler),
        )
        state = BotState(last_seen="h1", start_time=1690000000)
        poller = BlockPoller(
            reconciler=BlockReconciler(source),
            state=state,
            publisher=publisher,
            clock=clock,
        )
        return poller, state, source

    @pytest.mark.asyncio
    async def test_out_of_range_timestamp_keeps_state(self, publisher, clock):
        poller, state, source = self.make_poller(
            {**self.GOOD_BLOCK, "timestamp": 10**12}, publisher, clock
        )

        await poller.poll_once()
        await source.aclose()

        assert await state.get_last_seen() == "h1"
        publisher.publish.assert_awaited_once()
        assert publisher.publish.await_args.args[0].content == "I'm unable to reach the API."
        assert poller.failures == 1

    @pytest.mark.asyncio
    async def test_unrequestable_parent_hash_keeps_state(self, publisher, clock):
        poller, state, source = self.make_poller(
            {**self.GOOD_BLOCK, "previousblockhash": "bad\nhash"}, publisher, clock
        )

        await poller.poll_once()
        await source.aclose()

        assert await state.get_last_seen() == "h1"
        assert publisher.publish.await_args.args[0].content == "I'm unable to reach the API."
        assert poller.failures == 1


class TestFailureRateLimit:
    """Tests for the failure notice cooldown."""

    @pytest.mark.asyncio
    async def test_one_notice_per_cooldown(self, poller, reconciler, publisher, clock):
        """Three failures within 10 seconds produce a single notice."""
        reconciler.reconcile.side_effect = TransportError("timeout")

        for _ in range(3):
            await poller.poll_once()
            clock.advance(5)

        assert publisher.publish.await_count == 1
        assert poller.notices_sent == 1
        assert poller.failures == 3

        # A fourth failure once the cooldown has elapsed sends another notice
        clock.advance(3600)
        await poller.poll_once()

        assert publisher.publish.await_count == 2
        assert poller.notices_sent == 2

    @pytest.mark.asyncio
    async def test_exactly_cooldown_is_suppressed(self, poller, reconciler, publisher, clock):
        reconciler.reconcile.side_effect = TransportError("timeout")

        await poller.poll_once()
        clock.advance(3600)
        await poller.poll_once()
        assert publisher.publish.await_count == 1

        clock.advance(1)
        await poller.poll_once()
        assert publisher.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_success_does_not_reset_cooldown(self, poller, reconciler, publisher, clock):
        reconciler.reconcile.side_effect = [
            TransportError("timeout"),
            ReconciliationResult(blocks=(), new_tip="h0"),
            TransportError("timeout"),
        ]

        for _ in range(3):
            await poller.poll_once()
            clock.advance(60)

        assert publisher.publish.await_count == 1


class TestPollingLoop:
    """Tests for the long-running loop."""

    @pytest.mark.asyncio
    async def test_loop_sleeps_after_each_tick(self, poller, reconciler, monkeypatch):
        reconciler.reconcile.side_effect = [
            TransportError("timeout"),
            ReconciliationResult(blocks=(), new_tip="h0"),
        ]
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 2:
                await poller.stop()

        monkeypatch.setattr("block_announcer.scheduler.asyncio.sleep", fake_sleep)

        await poller.start_polling()

        assert sleeps == [30, 30]
        assert poller.ticks == 2
        assert poller.is_running is False

    @pytest.mark.asyncio
    async def test_loop_cancellation(self, reconciler, state, publisher):
        reconciler.reconcile.return_value = ReconciliationResult(blocks=(), new_tip="h0")
        poller = BlockPoller(reconciler, state, publisher, interval=0.01)

        task = asyncio.create_task(poller.start_polling())
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert poller.ticks >= 1
        assert poller.is_running is False

    @pytest.mark.asyncio
    async def test_start_twice_is_ignored(self, poller):
        poller.is_running = True
        await poller.start_polling()
        assert poller.ticks == 0

    def test_get_status(self, poller):
        status = poller.get_status()
        assert status["is_running"] is False
        assert status["interval"] == 30
        assert status["error_cooldown"] == 3600
        assert status["notices_sent"] == 0

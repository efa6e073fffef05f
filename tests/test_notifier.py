"""Tests for the outbound notification queue."""

from __future__ import annotations

import asyncio

import pytest
from unittest.mock import AsyncMock, call

from burnwatch.notifier import NotificationQueue, QueuedNotification


def _channel(message_id: int = 42) -> AsyncMock:
    channel = AsyncMock()
    channel.send_photo = AsyncMock(return_value=message_id)
    channel.send_text = AsyncMock(return_value=message_id)
    channel.pin = AsyncMock()
    return channel


def _item(caption: str = "hello", pin: bool = False) -> QueuedNotification:
    return QueuedNotification(image_url="https://example.org/a.png", caption=caption, pin=pin)


class TestDelivery:
    """Photo first, text fallback, then drop."""

    @pytest.mark.asyncio
    async def test_photo_success(self):
        channel = _channel()
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item())
        await queue.join()

        channel.send_photo.assert_awaited_once_with("https://example.org/a.png", "hello", silent=False)
        channel.send_text.assert_not_awaited()
        assert queue.delivered == 1

    @pytest.mark.asyncio
    async def test_text_fallback(self):
        """Photo failure -> exactly one text send with the same caption."""
        channel = _channel()
        channel.send_photo.side_effect = RuntimeError("wrong file identifier")
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item("caption"))
        await queue.join()

        channel.send_text.assert_awaited_once_with("caption", silent=False)
        assert queue.delivered == 1
        assert queue.dropped == 0

    @pytest.mark.asyncio
    async def test_both_fail_drops_and_continues(self):
        """A dropped item never blocks the next one."""
        channel = _channel()
        channel.send_photo.side_effect = [RuntimeError("photo"), 7]
        channel.send_text.side_effect = RuntimeError("text")
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item("first"))
        queue.enqueue(_item("second"))
        await queue.join()

        assert queue.dropped == 1
        assert queue.delivered == 1
        assert queue.pending == 0
        assert channel.send_photo.await_args_list[-1] == call("https://example.org/a.png", "second", silent=False)


class TestPinning:
    """Burn alerts are pinned silently."""

    @pytest.mark.asyncio
    async def test_pin_after_send(self):
        channel = _channel(message_id=99)
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item(pin=True))
        await queue.join()

        channel.send_photo.assert_awaited_once_with("https://example.org/a.png", "hello", silent=True)
        channel.pin.assert_awaited_once_with(99)

    @pytest.mark.asyncio
    async def test_pin_failure_does_not_resend(self):
        channel = _channel()
        channel.pin.side_effect = RuntimeError("not enough rights")
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item(pin=True))
        await queue.join()

        assert channel.send_photo.await_count == 1
        channel.send_text.assert_not_awaited()
        assert queue.delivered == 1

    @pytest.mark.asyncio
    async def test_no_pin_when_dropped(self):
        channel = _channel()
        channel.send_photo.side_effect = RuntimeError("photo")
        channel.send_text.side_effect = RuntimeError("text")
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item(pin=True))
        await queue.join()

        channel.pin.assert_not_awaited()


class TestDrain:
    """Ordering, pacing and the single consumer."""

    @pytest.mark.asyncio
    async def test_fifo_order_and_pacing(self):
        channel = _channel()
        sleep = AsyncMock()
        queue = NotificationQueue(channel, min_interval=2.0, sleep=sleep)

        for caption in ("a", "b", "c"):
            queue.enqueue(_item(caption))
        await queue.join()

        captions = [c.args[1] for c in channel.send_photo.await_args_list]
        assert captions == ["a", "b", "c"]
        assert sleep.await_args_list == [call(2.0)] * 3

    @pytest.mark.asyncio
    async def test_single_consumer(self):
        """Items enqueued mid-drain join the running drain."""
        in_flight = 0
        peak = 0

        async def send_photo(photo, caption, silent=False):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return 1

        channel = _channel()
        channel.send_photo.side_effect = send_photo
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item("a"))
        assert queue.busy is True
        queue.enqueue(_item("b"))
        await asyncio.sleep(0)
        queue.enqueue(_item("c"))
        await queue.join()

        assert peak == 1
        assert queue.delivered == 3
        assert queue.busy is False

    @pytest.mark.asyncio
    async def test_restarts_after_idle(self):
        channel = _channel()
        queue = NotificationQueue(channel, sleep=AsyncMock())

        queue.enqueue(_item("a"))
        await queue.join()
        assert queue.busy is False
        queue.enqueue(_item("b"))
        await queue.join()

        assert channel.send_photo.await_count == 2

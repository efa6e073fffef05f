"""Outbound notification queue.

One FIFO, one drain task at a time. Each item is tried as photo +
caption, then as text only; if both fail it is logged and dropped so a
broken channel can never stall or grow the queue. Pins are best-effort
and never cause a second send. Every attempt is followed by a fixed
pause to stay under Telegram's per-chat rate limit.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable

from burnwatch.clients.telegram import Channel

log = logging.getLogger("burnwatch.notifier")


@dataclass(frozen=True)
class QueuedNotification:
    image_url: str
    caption: str
    pin: bool = False


class NotificationQueue:
    """Single-consumer delivery queue."""

    def __init__(
        self,
        channel: Channel,
        min_interval: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.channel = channel
        self.min_interval = min_interval
        self._sleep = sleep
        self._pending: deque[QueuedNotification] = deque()
        self._busy = False
        self._task: asyncio.Task | None = None
        self.delivered = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def busy(self) -> bool:
        return self._busy

    def enqueue(self, item: QueuedNotification) -> None:
        """Append and make sure a drain is running. Never blocks."""
        self._pending.append(item)
        if not self._busy:
            self._busy = True
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        """Wait until everything queued so far has been attempted."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def _drain(self) -> None:
        try:
            while self._pending:
                item = self._pending.popleft()
                await self.deliver(item)
                await self._sleep(self.min_interval)
        finally:
            self._busy = False

    async def deliver(self, item: QueuedNotification) -> bool:
        """Photo, then text fallback. Returns True if a message went out."""
        try:
            message_id = await self.channel.send_photo(item.image_url, item.caption, silent=item.pin)
        except Exception as e:
            log.warning("Failed to send photo: %s. Falling back to text...", e)
            try:
                message_id = await self.channel.send_text(item.caption, silent=item.pin)
            except Exception as e2:
                log.warning("Failed to send fallback text, dropping notification: %s", e2)
                self.dropped += 1
                return False

        self.delivered += 1
        log.info("Message sent successfully")
        if item.pin:
            await self._pin(message_id)
        return True

    async def _pin(self, message_id: int) -> None:
        try:
            await self.channel.pin(message_id)
        except Exception as e:
            log.warning("Failed to pin message %s: %s", message_id, e)

"""Telegram delivery channels.

TelegramChannel wraps python-telegram-bot's ``Bot`` for the three calls
the notification queue makes. LogChannel has the same surface and only
logs, for dry runs.
"""

from __future__ import annotations

import logging
from typing import Protocol

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode

log = logging.getLogger("burnwatch.telegram")


class Channel(Protocol):
    async def send_photo(self, photo: str, caption: str, silent: bool = False) -> int: ...

    async def send_text(self, text: str, silent: bool = False) -> int: ...

    async def pin(self, message_id: int) -> None: ...


class TelegramChannel:
    """Posts HTML-formatted messages to one chat."""

    def __init__(self, bot: Bot, chat_id: str | int):
        self.bot = bot
        self.chat_id = chat_id

    async def send_photo(self, photo: str, caption: str, silent: bool = False) -> int:
        message = await self.bot.send_photo(
            chat_id=self.chat_id,
            photo=photo,
            caption=caption,
            parse_mode=ParseMode.HTML,
            disable_notification=silent,
        )
        return message.message_id

    async def send_text(self, text: str, silent: bool = False) -> int:
        message = await self.bot.send_message(
            chat_id=self.chat_id,
            text=text,
            parse_mode=ParseMode.HTML,
            disable_notification=silent,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        )
        return message.message_id

    async def pin(self, message_id: int) -> None:
        await self.bot.pin_chat_message(
            chat_id=self.chat_id,
            message_id=message_id,
            disable_notification=True,
        )


class LogChannel:
    """Dry-run channel: logs what would have been posted."""

    def __init__(self) -> None:
        self._next_id = 0

    async def send_photo(self, photo: str, caption: str, silent: bool = False) -> int:
        self._next_id += 1
        log.info("[dry-run] photo %s\n%s", photo, caption)
        return self._next_id

    async def send_text(self, text: str, silent: bool = False) -> int:
        self._next_id += 1
        log.info("[dry-run] text\n%s", text)
        return self._next_id

    async def pin(self, message_id: int) -> None:
        log.info("[dry-run] pin message %d", message_id)

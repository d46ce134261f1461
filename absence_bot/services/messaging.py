from __future__ import annotations

import logging
from typing import Protocol, Union

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from absence_bot.errors import MessagingFailure

logger = logging.getLogger(__name__)


class Messenger(Protocol):
    async def send_message(self, body: str) -> None:
        """Deliver ``body`` to the school's reporting channel.

        Raises ``MessagingFailure`` when delivery did not happen.
        """

        raise NotImplementedError


class TelegramMessenger:
    """Posts absence reports to the school's reporting chat."""

    def __init__(self, bot: Bot, chat_id: Union[int, str]) -> None:
        self._bot = bot
        self._chat_id = chat_id

    async def send_message(self, body: str) -> None:
        try:
            await self._bot.send_message(self._chat_id, body, parse_mode=None)
        except TelegramAPIError as exc:
            logger.exception("Failed to deliver absence report to chat %s", self._chat_id)
            raise MessagingFailure(str(exc)) from exc


class LoggingMessenger:
    """Used when no reporting chat is configured; the report is only logged."""

    async def send_message(self, body: str) -> None:
        logger.info("REPORT_CHAT_ID is not set, absence report dropped (%d chars)", len(body))


__all__ = ["LoggingMessenger", "Messenger", "TelegramMessenger"]

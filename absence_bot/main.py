import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from absence_bot.config import Config, load_children, load_config
from absence_bot.handlers import build_router
from absence_bot.services.identity_cache import IdentityCache
from absence_bot.services.messaging import LoggingMessenger, Messenger, TelegramMessenger
from absence_bot.texts import Texts
from absence_bot.utils.registry import JsonKeyValueStore

logger = logging.getLogger(__name__)


def build_messenger(bot: Bot, config: Config) -> Messenger:
    if config.report_chat_id is None:
        logger.warning("REPORT_CHAT_ID is not set, reports will only be logged")
        return LoggingMessenger()
    return TelegramMessenger(bot, config.report_chat_id)


def build_dispatcher(bot: Bot, config: Config) -> Dispatcher:
    # Live AbsenceFormController objects are kept in FSM data, so the storage
    # must hold Python objects as-is; serializing storages (Redis) cannot.
    dp = Dispatcher(
        storage=MemoryStorage(),
        config=config,
        children=load_children(config.children_file),
        messenger=build_messenger(bot, config),
        identity_cache=IdentityCache(JsonKeyValueStore(config.cache_file)),
        texts=Texts(),
    )
    dp.include_router(build_router())
    return dp


async def set_commands(bot: Bot) -> None:
    await bot.set_my_commands([
        BotCommand(command="start", description="Starta boten"),
        BotCommand(command="absence", description="Anmäl frånvaro"),
        BotCommand(command="cancel", description="Avbryt anmälan"),
    ])


async def main() -> None:
    config = load_config()
    logging.basicConfig(level=config.log_level)

    bot = Bot(
        token=config.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = build_dispatcher(bot, config)

    await set_commands(bot)
    logging.info("🤖 Bot started.")
    await dp.start_polling(bot)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

from aiogram import Router, types
from aiogram.filters import CommandStart
from aiogram.fsm.context import FSMContext

from absence_bot.texts import Texts

router = Router()


@router.message(CommandStart())
async def start_cmd(message: types.Message, state: FSMContext, texts: Texts):
    await state.clear()
    await message.answer(texts.translate("general.start"))

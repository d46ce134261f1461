from __future__ import annotations

import logging
from typing import List, Optional

from aiogram import F, Router, html
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder

from absence_bot.config import Config, parse_time
from absence_bot.errors import AbsenceError, ErrorKind
from absence_bot.models import Child
from absence_bot.services.form import (
    AbsenceFormController,
    BlurIdentity,
    FormStatus,
    SetEndTime,
    SetFullDay,
    SetIdentity,
    SetStartTime,
)
from absence_bot.services.identity_cache import IdentityCache
from absence_bot.services.messaging import Messenger
from absence_bot.states import AbsenceStates
from absence_bot.texts import Texts

logger = logging.getLogger(__name__)

router = Router()

WINDOW_ERRORS = (ErrorKind.OUT_OF_RANGE, ErrorKind.MISALIGNED, ErrorKind.INVERTED_RANGE)


def _format_personal_number(canonical: str) -> str:
    if len(canonical) == 10 and canonical.isdigit():
        return f"{canonical[:6]}-{canonical[6:]}"
    return canonical


async def _get_controller(state: FSMContext) -> Optional[AbsenceFormController]:
    data = await state.get_data()
    return data.get("controller")


async def _session_expired(target: Message, state: FSMContext, texts: Texts) -> None:
    await state.clear()
    await target.answer(texts.translate("abscense.sessionExpired"))


@router.message(Command("absence"))
async def cmd_absence(message: Message, state: FSMContext, children: List[Child], texts: Texts) -> None:
    await state.clear()
    if not children:
        await message.answer(texts.translate("abscense.noChildren"))
        return

    builder = InlineKeyboardBuilder()
    for child in children:
        builder.button(text=child.name.display_name, callback_data=f"child:{child.id}")
    builder.adjust(1)

    await message.answer(texts.translate("abscense.selectChild"), reply_markup=builder.as_markup())
    await state.set_state(AbsenceStates.choosing_child)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, texts: Texts) -> None:
    if await state.get_state() is None:
        return
    await state.clear()
    await message.answer(texts.translate("abscense.cancelled"))


@router.callback_query(F.data == "cancel_absence")
async def cancel_absence(callback: CallbackQuery, state: FSMContext, texts: Texts) -> None:
    await state.clear()
    await callback.message.edit_reply_markup()
    await callback.message.answer(texts.translate("abscense.cancelled"))
    await callback.answer()


@router.callback_query(AbsenceStates.choosing_child, F.data.startswith("child:"))
async def choose_child(
    callback: CallbackQuery,
    state: FSMContext,
    config: Config,
    children: List[Child],
    messenger: Messenger,
    identity_cache: IdentityCache,
    texts: Texts,
) -> None:
    child_id = callback.data.split(":", 1)[1]
    child = next((c for c in children if c.id == child_id), None)
    if child is None:
        await callback.answer(texts.translate("abscense.noChildren"), show_alert=True)
        return

    logger.debug("User %s started an absence report for child %s", callback.from_user.id, child.id)
    await callback.message.edit_reply_markup()
    controller = AbsenceFormController(
        child,
        messenger,
        identity_cache,
        texts=texts,
        policy=config.policy,
        send_timeout=config.send_timeout,
    )
    await controller.mount()
    await state.update_data(controller=controller)
    await state.set_state(AbsenceStates.waiting_for_personal_number)

    await callback.message.answer(
        f"{html.bold(texts.translate('abscense.title'))}: {html.quote(child.name.display_name)}"
    )
    await _ask_personal_number(callback.message, controller, texts)
    await callback.answer()


async def _ask_personal_number(target: Message, controller: AbsenceFormController, texts: Texts) -> None:
    builder = InlineKeyboardBuilder()
    cached = controller.state.identity
    if cached and controller.state.identity_pristine:
        label = f"{texts.translate('abscense.useSavedPersonalNumber')} ({_format_personal_number(cached)})"
        builder.button(text=label, callback_data="use_saved_number")
    builder.button(text=texts.translate("general.abort"), callback_data="cancel_absence")
    builder.adjust(1)
    await target.answer(texts.translate("abscense.enterPersonalNumber"), reply_markup=builder.as_markup())


async def _ask_day_part(target: Message, state: FSMContext, texts: Texts) -> None:
    builder = InlineKeyboardBuilder()
    builder.button(text=texts.translate("abscense.entireDay"), callback_data="day:full")
    builder.button(text=texts.translate("abscense.partOfDay"), callback_data="day:partial")
    builder.button(text=texts.translate("general.abort"), callback_data="cancel_absence")
    builder.adjust(2, 1)
    await target.answer(texts.translate("abscense.entireDay") + "?", reply_markup=builder.as_markup())
    await state.set_state(AbsenceStates.choosing_day_part)


@router.message(AbsenceStates.waiting_for_personal_number)
async def handle_personal_number(message: Message, state: FSMContext, texts: Texts) -> None:
    controller = await _get_controller(state)
    if controller is None:
        await _session_expired(message, state, texts)
        return

    controller.dispatch(SetIdentity(message.text or ""))
    controller.dispatch(BlurIdentity())
    if controller.state.identity_error is not None:
        await message.answer(controller.error_text() or texts.error(controller.state.identity_error))
        return

    await _ask_day_part(message, state, texts)


@router.callback_query(AbsenceStates.waiting_for_personal_number, F.data == "use_saved_number")
async def use_saved_number(callback: CallbackQuery, state: FSMContext, texts: Texts) -> None:
    controller = await _get_controller(state)
    if controller is None:
        await _session_expired(callback.message, state, texts)
        await callback.answer()
        return

    await callback.message.edit_reply_markup()
    controller.dispatch(BlurIdentity())
    await _ask_day_part(callback.message, state, texts)
    await callback.answer()


@router.callback_query(AbsenceStates.choosing_day_part, F.data.startswith("day:"))
async def choose_day_part(callback: CallbackQuery, state: FSMContext, texts: Texts) -> None:
    controller = await _get_controller(state)
    if controller is None:
        await _session_expired(callback.message, state, texts)
        await callback.answer()
        return

    await callback.message.edit_reply_markup()
    is_full_day = callback.data == "day:full"
    controller.dispatch(SetFullDay(is_full_day))
    if is_full_day:
        await _present_confirmation(callback.message, state, controller, texts)
    else:
        await _ask_start_time(callback.message, state, controller, texts)
    await callback.answer()


async def _ask_start_time(
    target: Message, state: FSMContext, controller: AbsenceFormController, texts: Texts
) -> None:
    default = controller.state.start_time
    await target.answer(f"{texts.translate('abscense.selectAbscenseStartTime')} ({default:%H:%M})")
    await state.set_state(AbsenceStates.waiting_for_start_time)


@router.message(AbsenceStates.waiting_for_start_time)
async def handle_start_time(message: Message, state: FSMContext, texts: Texts) -> None:
    controller = await _get_controller(state)
    if controller is None:
        await _session_expired(message, state, texts)
        return

    try:
        start = parse_time(message.text or "")
    except ValueError:
        await message.answer(texts.translate("abscense.invalidTime"))
        return

    controller.dispatch(SetStartTime(start))
    default = controller.state.end_time
    await message.answer(f"{texts.translate('abscense.selectAbscenseEndTime')} ({default:%H:%M})")
    await state.set_state(AbsenceStates.waiting_for_end_time)


@router.message(AbsenceStates.waiting_for_end_time)
async def handle_end_time(message: Message, state: FSMContext, texts: Texts) -> None:
    controller = await _get_controller(state)
    if controller is None:
        await _session_expired(message, state, texts)
        return

    try:
        end = parse_time(message.text or "")
    except ValueError:
        await message.answer(texts.translate("abscense.invalidTime"))
        return

    controller.dispatch(SetEndTime(end))
    await _present_confirmation(message, state, controller, texts)


async def _present_confirmation(
    target: Message, state: FSMContext, controller: AbsenceFormController, texts: Texts
) -> None:
    try:
        _, body = controller.build_message()
    except AbsenceError as exc:
        await _route_error(target, state, controller, texts, exc.kind)
        return

    builder = InlineKeyboardBuilder()
    builder.button(text=texts.translate("general.send"), callback_data="send_absence")
    builder.button(text=texts.translate("general.abort"), callback_data="cancel_absence")
    builder.adjust(2)

    summary = f"{texts.translate('abscense.confirm')}\n{html.code(body)}"
    await target.answer(summary, reply_markup=builder.as_markup())
    await state.set_state(AbsenceStates.confirmation)


async def _route_error(
    target: Message,
    state: FSMContext,
    controller: AbsenceFormController,
    texts: Texts,
    kind: ErrorKind,
) -> None:
    await target.answer(texts.error(kind))
    if kind in (ErrorKind.MISSING_IDENTITY, ErrorKind.INVALID_IDENTITY):
        await state.set_state(AbsenceStates.waiting_for_personal_number)
        await _ask_personal_number(target, controller, texts)
    elif kind in WINDOW_ERRORS:
        await _ask_start_time(target, state, controller, texts)
    else:
        await _present_confirmation(target, state, controller, texts)


@router.callback_query(AbsenceStates.confirmation, F.data == "send_absence")
async def send_absence(callback: CallbackQuery, state: FSMContext, texts: Texts) -> None:
    controller = await _get_controller(state)
    if controller is None:
        await _session_expired(callback.message, state, texts)
        await callback.answer()
        return

    if not controller.state.can_submit:
        await callback.answer(texts.translate("abscense.busy"))
        return

    await callback.message.edit_reply_markup()
    result = await controller.submit()
    if result.status is FormStatus.SUBMITTED:
        await callback.message.answer(texts.translate("abscense.sent"))
        await state.clear()
    elif result.error is not None:
        await _route_error(callback.message, state, controller, texts, result.error)
    await callback.answer()


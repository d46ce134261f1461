"""Absence form session: immutable state, a pure reducer and the effects around it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, time
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from absence_bot.errors import AbsenceError, ErrorKind, MessagingFailure
from absence_bot.models import Child
from absence_bot.services.identity_cache import IdentityCache
from absence_bot.services.messaging import Messenger
from absence_bot.texts import ERROR_KEYS, TextProvider, Texts
from absence_bot.utils.message import encode
from absence_bot.utils.personnummer import validate
from absence_bot.utils.window import SCHOOL_DAY_END, SCHOOL_DAY_START, WindowPolicy, make_window

logger = logging.getLogger(__name__)

IDENTITY_ERRORS = (ErrorKind.MISSING_IDENTITY, ErrorKind.INVALID_IDENTITY)


class FormStatus(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass(frozen=True)
class FormState:
    status: FormStatus = FormStatus.IDLE
    identity: str = ""
    # False once the guardian has edited the field; a late cache read must not win
    identity_pristine: bool = True
    identity_touched: bool = False
    identity_error: Optional[ErrorKind] = None
    is_full_day: bool = True
    start_time: time = SCHOOL_DAY_START
    end_time: time = SCHOOL_DAY_END
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def can_submit(self) -> bool:
        return self.status in (FormStatus.EDITING, FormStatus.FAILED)


@dataclass(frozen=True)
class Mount:
    start_time: time
    end_time: time


@dataclass(frozen=True)
class CachedIdentityLoaded:
    value: str


@dataclass(frozen=True)
class SetIdentity:
    value: str


@dataclass(frozen=True)
class BlurIdentity:
    pass


@dataclass(frozen=True)
class SetFullDay:
    value: bool


@dataclass(frozen=True)
class SetStartTime:
    value: time


@dataclass(frozen=True)
class SetEndTime:
    value: time


@dataclass(frozen=True)
class SubmitStarted:
    pass


@dataclass(frozen=True)
class SubmitRejected:
    kind: ErrorKind


@dataclass(frozen=True)
class SubmitSucceeded:
    message: str


Action = Union[
    Mount,
    CachedIdentityLoaded,
    SetIdentity,
    BlurIdentity,
    SetFullDay,
    SetStartTime,
    SetEndTime,
    SubmitStarted,
    SubmitRejected,
    SubmitSucceeded,
]


def identity_error(raw: str) -> Optional[ErrorKind]:
    try:
        validate(raw)
    except AbsenceError as exc:
        return exc.kind
    return None


def _edited(state: FormState, **changes) -> FormState:
    # Any edit after a failed submit puts the session back into editing.
    if state.status is FormStatus.FAILED:
        changes.update(status=FormStatus.EDITING, error=None)
    return replace(state, **changes)


def reduce(state: FormState, action: Action) -> FormState:
    """Return the state that follows ``action``. Pure; never touches I/O."""

    if isinstance(action, Mount):
        if state.status is not FormStatus.IDLE:
            return state
        return replace(
            state,
            status=FormStatus.EDITING,
            start_time=action.start_time,
            end_time=action.end_time,
        )

    if isinstance(action, CachedIdentityLoaded):
        if not state.identity_pristine or not action.value:
            return state
        return replace(state, identity=action.value)

    if isinstance(action, SetIdentity):
        return _edited(
            state,
            identity=action.value,
            identity_pristine=False,
            identity_error=identity_error(action.value) if state.identity_touched else None,
        )

    if isinstance(action, BlurIdentity):
        return replace(state, identity_touched=True, identity_error=identity_error(state.identity))

    if isinstance(action, SetFullDay):
        return _edited(state, is_full_day=action.value)

    if isinstance(action, SetStartTime):
        return _edited(state, start_time=action.value)

    if isinstance(action, SetEndTime):
        return _edited(state, end_time=action.value)

    if isinstance(action, SubmitStarted):
        return replace(state, status=FormStatus.SUBMITTING, error=None, identity_touched=True)

    if isinstance(action, SubmitRejected):
        return replace(
            state,
            status=FormStatus.FAILED,
            error=action.kind,
            identity_error=action.kind if action.kind in IDENTITY_ERRORS else None,
        )

    if isinstance(action, SubmitSucceeded):
        return replace(state, status=FormStatus.SUBMITTED, error=None, message=action.message)

    raise TypeError(f"Unknown form action: {action!r}")


class AbsenceFormController:
    """Runs one absence report session for a single child.

    Collaborators are injected so the bot and the tests can swap them.
    """

    def __init__(
        self,
        child: Child,
        messenger: Messenger,
        cache: IdentityCache,
        *,
        texts: Optional[TextProvider] = None,
        policy: Optional[WindowPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        send_timeout: Optional[float] = None,
    ) -> None:
        self.child = child
        self._messenger = messenger
        self._cache = cache
        self._texts = texts or Texts()
        self.policy = policy or WindowPolicy()
        self._clock = clock
        self._send_timeout = send_timeout
        self._state = FormState()

    @property
    def state(self) -> FormState:
        return self._state

    def dispatch(self, action: Action) -> FormState:
        self._state = reduce(self._state, action)
        return self._state

    def default_times(self) -> Tuple[time, time]:
        current_hour = time(self._clock().hour, 0)
        return max(self.policy.min, current_hour), self.policy.max

    async def mount(self) -> FormState:
        if self._state.status is not FormStatus.IDLE:
            return self._state

        start, end = self.default_times()
        self.dispatch(Mount(start_time=start, end_time=end))

        cached = await self._cache.get(self.child.id)
        if cached:
            self.dispatch(CachedIdentityLoaded(cached))
        return self._state

    def build_message(self) -> Tuple[str, str]:
        """Validate the current form and return ``(canonical, message)``."""

        state = self._state
        canonical = validate(state.identity)
        window = make_window(state.is_full_day, state.start_time, state.end_time, self.policy)
        return canonical, encode(canonical, window)

    async def submit(self) -> FormState:
        if not self._state.can_submit:
            logger.info("Ignoring submit for child %s while %s", self.child.id, self._state.status.value)
            return self._state

        self.dispatch(SubmitStarted())
        try:
            canonical, body = self.build_message()
        except AbsenceError as exc:
            logger.debug("Absence form for child %s rejected: %s", self.child.id, exc.kind.value)
            return self.dispatch(SubmitRejected(exc.kind))

        try:
            await self._send(body)
        except MessagingFailure as exc:
            logger.warning("Absence report for child %s was not sent: %s", self.child.id, exc)
            return self.dispatch(SubmitRejected(ErrorKind.MESSAGING_FAILURE))

        await self._cache.set(self.child.id, canonical)
        logger.info("Absence reported for child %s", self.child.id)
        return self.dispatch(SubmitSucceeded(body))

    async def _send(self, body: str) -> None:
        if self._send_timeout is None:
            await self._messenger.send_message(body)
            return
        try:
            await asyncio.wait_for(self._messenger.send_message(body), self._send_timeout)
        except asyncio.TimeoutError as exc:
            raise MessagingFailure(f"No delivery confirmation within {self._send_timeout}s") from exc

    def error_text(self) -> Optional[str]:
        kind = self._state.error or self._state.identity_error
        if kind is None:
            return None
        return self._texts.translate(ERROR_KEYS[kind])


__all__ = [
    "AbsenceFormController",
    "Action",
    "BlurIdentity",
    "CachedIdentityLoaded",
    "FormState",
    "FormStatus",
    "Mount",
    "SetEndTime",
    "SetFullDay",
    "SetIdentity",
    "SetStartTime",
    "SubmitRejected",
    "SubmitStarted",
    "SubmitSucceeded",
    "reduce",
]

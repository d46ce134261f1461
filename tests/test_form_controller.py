from __future__ import annotations

import asyncio
from datetime import datetime, time

from absence_bot.errors import ErrorKind, MessagingFailure
from absence_bot.models import Child, PersonName
from absence_bot.services.form import (
    AbsenceFormController,
    FormStatus,
    SetEndTime,
    SetFullDay,
    SetIdentity,
    SetStartTime,
)
from absence_bot.services.identity_cache import IdentityCache
from absence_bot.texts import Texts
from absence_bot.utils.registry import MemoryKeyValueStore

CHILD = Child(id="c1", name=PersonName(first_name="Alva", last_name="Svensson"))


def fixed_clock(hour: int, minute: int = 0):
    return lambda: datetime(2026, 10, 19, hour, minute)


class FakeMessenger:
    def __init__(self, events: list | None = None, *, fail: bool = False):
        self.sent: list[str] = []
        self.events = events if events is not None else []
        self.fail = fail

    async def send_message(self, body: str) -> None:
        self.events.append("send")
        if self.fail:
            raise MessagingFailure("no network")
        self.sent.append(body)


class BlockingMessenger:
    def __init__(self):
        self.release = asyncio.Event()
        self.sent: list[str] = []

    async def send_message(self, body: str) -> None:
        await self.release.wait()
        self.sent.append(body)


class RecordingStore(MemoryKeyValueStore):
    def __init__(self, events: list, initial=None):
        super().__init__(initial)
        self.events = events

    async def set(self, key, value):
        self.events.append("cache")
        await super().set(key, value)


class SlowStore(MemoryKeyValueStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.release = asyncio.Event()

    async def get(self, key):
        await self.release.wait()
        return await super().get(key)


class FailingWriteStore(MemoryKeyValueStore):
    async def set(self, key, value):
        raise OSError("read-only file system")


def make_controller(messenger=None, store=None, **kwargs):
    store = store if store is not None else MemoryKeyValueStore()
    messenger = messenger or FakeMessenger()
    kwargs.setdefault("clock", fixed_clock(9))
    controller = AbsenceFormController(CHILD, messenger, IdentityCache(store), **kwargs)
    return controller, messenger, store


def test_mount_sets_defaults():
    controller, _, _ = make_controller(clock=fixed_clock(10, 45))

    state = asyncio.run(controller.mount())

    assert state.status is FormStatus.EDITING
    assert state.identity == ""
    assert state.is_full_day is True
    assert state.start_time == time(10, 0)
    assert state.end_time == time(17, 0)


def test_mount_before_school_starts_uses_school_start():
    controller, _, _ = make_controller(clock=fixed_clock(6, 30))

    state = asyncio.run(controller.mount())

    assert state.start_time == time(8, 0)


def test_mount_seeds_cached_identity():
    controller, _, _ = make_controller(store=MemoryKeyValueStore({"@childssn.c1": "8112189876"}))

    state = asyncio.run(controller.mount())

    assert state.identity == "8112189876"
    assert state.identity_pristine is True


def test_late_cache_read_does_not_overwrite_typed_identity():
    store = SlowStore({"@childssn.c1": "8112189876"})
    controller, _, _ = make_controller(store=store)

    async def scenario():
        task = asyncio.create_task(controller.mount())
        await asyncio.sleep(0)
        assert controller.state.status is FormStatus.EDITING
        controller.dispatch(SetIdentity("000101-1238"))
        store.release.set()
        return await task

    state = asyncio.run(scenario())

    assert state.identity == "000101-1238"


def test_full_day_submit_sends_then_caches_canonical():
    events: list = []
    messenger = FakeMessenger(events)
    store = RecordingStore(events)
    controller, _, _ = make_controller(messenger=messenger, store=store)

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("811218-9876"))
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.status is FormStatus.SUBMITTED
    assert state.message == "8112189876"
    assert messenger.sent == ["8112189876"]
    assert store.data == {"@childssn.c1": "8112189876"}
    assert events == ["send", "cache"]


def test_partial_day_submit():
    controller, messenger, _ = make_controller()

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("19811218-9876"))
        controller.dispatch(SetFullDay(False))
        controller.dispatch(SetStartTime(time(9, 0)))
        controller.dispatch(SetEndTime(time(11, 30)))
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.status is FormStatus.SUBMITTED
    assert messenger.sent == ["8112189876 0900-1130"]


def test_invalid_identity_has_no_side_effects_and_is_repeatable():
    events: list = []
    messenger = FakeMessenger(events)
    store = RecordingStore(events)
    controller, _, _ = make_controller(messenger=messenger, store=store)

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("811218-9875"))
        first = await controller.submit()
        second = await controller.submit()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.status is FormStatus.FAILED
    assert first.error is ErrorKind.INVALID_IDENTITY
    assert second.error is first.error
    assert second.identity_error is ErrorKind.INVALID_IDENTITY
    assert events == []
    assert store.data == {}


def test_missing_identity():
    controller, messenger, _ = make_controller()

    async def scenario():
        await controller.mount()
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.error is ErrorKind.MISSING_IDENTITY
    assert controller.error_text() == Texts().translate("abscense.personalNumberMissing")
    assert messenger.sent == []


def test_window_error_has_no_side_effects():
    controller, messenger, store = make_controller()

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("8112189876"))
        controller.dispatch(SetFullDay(False))
        controller.dispatch(SetStartTime(time(11, 0)))
        controller.dispatch(SetEndTime(time(9, 0)))
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.status is FormStatus.FAILED
    assert state.error is ErrorKind.INVERTED_RANGE
    assert state.identity_error is None
    assert messenger.sent == []
    assert store.data == {}


def test_messaging_failure_skips_cache_write():
    controller, messenger, store = make_controller(messenger=FakeMessenger(fail=True))

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("8112189876"))
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.status is FormStatus.FAILED
    assert state.error is ErrorKind.MESSAGING_FAILURE
    assert messenger.events == ["send"]
    assert store.data == {}


def test_cache_write_failure_does_not_fail_submission():
    controller, messenger, _ = make_controller(store=FailingWriteStore())

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("8112189876"))
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.status is FormStatus.SUBMITTED
    assert messenger.sent == ["8112189876"]


def test_submit_is_ignored_while_submitting():
    messenger = BlockingMessenger()
    controller, _, _ = make_controller(messenger=messenger)

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("8112189876"))
        first = asyncio.create_task(controller.submit())
        await asyncio.sleep(0)
        assert controller.state.status is FormStatus.SUBMITTING
        second = await controller.submit()
        messenger.release.set()
        return second, await first

    second, first = asyncio.run(scenario())

    assert second.status is FormStatus.SUBMITTING
    assert first.status is FormStatus.SUBMITTED
    assert messenger.sent == ["8112189876"]


def test_send_timeout_turns_into_messaging_failure():
    controller, _, store = make_controller(messenger=BlockingMessenger(), send_timeout=0.01)

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("8112189876"))
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.error is ErrorKind.MESSAGING_FAILURE
    assert store.data == {}


def test_retry_after_messaging_failure_succeeds():
    messenger = FakeMessenger(fail=True)
    controller, _, store = make_controller(messenger=messenger)

    async def scenario():
        await controller.mount()
        controller.dispatch(SetIdentity("811218-9876"))
        await controller.submit()
        messenger.fail = False
        return await controller.submit()

    state = asyncio.run(scenario())

    assert state.status is FormStatus.SUBMITTED
    assert store.data == {"@childssn.c1": "8112189876"}

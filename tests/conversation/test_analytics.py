import pytest

from chatstate.conversation import SessionRegistry
from chatstate.conversation.analytics import apply_message, rebuild
from chatstate.models import Analytics, Message, MessageRole
from chatstate.storage import InMemorySessionStore
from tests.utils import ManualClock


def _registry(clock: ManualClock) -> SessionRegistry:
    return SessionRegistry(InMemorySessionStore(), clock=clock)


@pytest.mark.asyncio
async def test_single_exchange_records_response_time():
    clock = ManualClock(1000)
    session = _registry(clock).get("s1")

    await session.submit_user_message("hello")
    clock.now = 1500
    await session.submit_assistant_message("hi there")

    analytics = await session.get_analytics()
    assert analytics.total_messages == 2
    assert analytics.user_messages == 1
    assert analytics.assistant_messages == 1
    assert analytics.average_response_time == 500
    assert analytics.first_message_time == 1000
    assert analytics.last_message_time == 1000


@pytest.mark.asyncio
async def test_second_exchange_updates_running_mean():
    clock = ManualClock(1000)
    session = _registry(clock).get("s1")

    await session.submit_user_message("q1")
    clock.now = 1500
    await session.submit_assistant_message("a1")
    clock.now = 2000
    await session.submit_user_message("q2")
    clock.now = 2300
    await session.submit_assistant_message("a2")

    analytics = await session.get_analytics()
    assert analytics.average_response_time == 400
    assert analytics.assistant_messages == 2
    assert analytics.first_message_time == 1000
    assert analytics.last_message_time == 2000


@pytest.mark.asyncio
async def test_assistant_without_prior_user_keeps_mean():
    clock = ManualClock(1000)
    session = _registry(clock).get("s1")

    await session.submit_assistant_message("greeting")
    analytics = await session.get_analytics()
    assert analytics.average_response_time == 0
    assert analytics.assistant_messages == 1
    assert analytics.total_messages == 1
    assert analytics.first_message_time is None
    assert analytics.last_message_time is None


@pytest.mark.asyncio
async def test_counters_stay_consistent_after_every_append():
    clock = ManualClock(1000)
    session = _registry(clock).get("s1")
    roles = ["user", "assistant", "assistant", "user", "user", "assistant"]

    for idx, role in enumerate(roles):
        clock.now += 100
        if role == "user":
            await session.submit_user_message(f"u{idx}")
        else:
            await session.submit_assistant_message(f"a{idx}")
        analytics = await session.get_analytics()
        assert analytics.total_messages == analytics.user_messages + analytics.assistant_messages
        assert analytics.total_messages == idx + 1


@pytest.mark.asyncio
async def test_first_message_time_is_set_once():
    clock = ManualClock(1000)
    session = _registry(clock).get("s1")

    await session.submit_user_message("one")
    clock.now = 5000
    await session.submit_user_message("two")

    analytics = await session.get_analytics()
    assert analytics.first_message_time == 1000
    assert analytics.last_message_time == 5000


def test_apply_message_pairs_with_latest_user_message():
    history = [
        Message(role=MessageRole.USER, content="old", timestamp=100),
        Message(role=MessageRole.USER, content="new", timestamp=400),
        Message(role=MessageRole.ASSISTANT, content="reply", timestamp=1000),
    ]
    before = rebuild(history[:2])
    after = apply_message(before, history[-1], history)
    assert after.average_response_time == 600
    # Input is not mutated.
    assert before.assistant_messages == 0


def test_system_messages_are_not_counted():
    history = [
        Message(role=MessageRole.SYSTEM, content="be nice", timestamp=1),
        Message(role=MessageRole.USER, content="hi", timestamp=2),
    ]
    analytics = rebuild(history)
    assert analytics.total_messages == 1
    assert analytics.user_messages == 1


def test_analytics_serialises_with_camel_case_names():
    dumped = Analytics(total_messages=2, first_message_time=5).model_dump(by_alias=True)
    assert dumped["totalMessages"] == 2
    assert dumped["averageResponseTime"] == 0.0
    assert dumped["firstMessageTime"] == 5
    assert Analytics.model_validate(dumped).total_messages == 2

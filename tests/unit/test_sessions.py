import asyncio

import pytest

from dca_chat.plans.plan import DcaPlanData
from dca_chat.plans.sessions import ANONYMOUS_SESSION, PlanSessionStore, SessionSweeper

WALLET = "0x" + "AB" * 20


@pytest.fixture
def store(clock):
    return PlanSessionStore(ttl=1800, transcript_limit=10, clock=clock)


def test_get_or_create_returns_same_session(store):
    first = store.get_or_create(WALLET)
    second = store.get_or_create(WALLET)

    assert first is second
    assert first.is_active
    assert len(store) == 1


def test_missing_key_maps_to_anonymous(store):
    assert store.get_or_create(None).id == ANONYMOUS_SESSION
    assert store.get_or_create("").id == ANONYMOUS_SESSION


def test_merge_fields_accumulates(store):
    store.merge_fields(WALLET, DcaPlanData(from_token="USDC"))
    merged = store.merge_fields(WALLET, {"toToken": "ETH", "amount": "10"})

    assert merged == DcaPlanData(from_token="USDC", to_token="ETH", amount="10")
    assert store.has_partial_data(WALLET)


def test_session_expires_after_inactivity(store, clock):
    store.merge_fields(WALLET, DcaPlanData(from_token="USDC"))

    clock.advance(1800)
    assert store.get(WALLET) is not None

    clock.advance(1)
    assert store.get(WALLET) is None
    assert not store.has_partial_data(WALLET)
    assert store.get_or_create(WALLET).fields == DcaPlanData()


def test_activity_keeps_session_alive(store, clock):
    store.merge_fields(WALLET, DcaPlanData(from_token="USDC"))
    clock.advance(1500)
    store.append_transcript(WALLET, "user", "still here")
    clock.advance(1500)

    assert store.get(WALLET).fields.from_token == "USDC"


def test_transcript_keeps_most_recent_entries(store):
    for index in range(12):
        store.append_transcript(WALLET, "user", f"m{index}")

    transcript = store.get(WALLET).transcript
    assert len(transcript) == 10
    assert transcript[0].content == "m2"
    assert transcript[-1].content == "m11"
    assert store.conversation_context(WALLET)[-1] == {"role": "user", "content": "m11"}


def test_clear_invalidates_session(store):
    store.merge_fields(WALLET, DcaPlanData(from_token="USDC"))
    store.append_transcript(WALLET, "user", "hello")

    store.clear(WALLET)

    session = store.get(WALLET)
    assert session.is_active is False
    assert session.fields == DcaPlanData()
    assert session.transcript == []
    assert store.get_or_create(WALLET).is_active


@pytest.mark.parametrize(
    "message",
    [
        "Please create plan for me",
        "I'd like a new plan",
        "what's a good DCA strategy",
        "Create a DCA for ETH",
        "I want to invest in ARB",
        "start buying weth",
    ],
)
def test_plan_creation_intent(store, message):
    assert store.is_plan_creation_intent(message)


@pytest.mark.parametrize(
    "message",
    ["what is the price of eth", "show my plans", "hello there", "platform stats"],
)
def test_not_plan_creation_intent(store, message):
    assert not store.is_plan_creation_intent(message)


def test_intent_is_sticky_while_fields_are_collected(store):
    assert not store.is_plan_creation_intent("every week", WALLET)

    store.merge_fields(WALLET, DcaPlanData(amount="50"))

    assert store.is_plan_creation_intent("every week", WALLET)


def test_sweep_removes_only_expired_sessions(store, clock):
    store.get_or_create("old")
    clock.advance(1000)
    store.get_or_create("fresh")
    clock.advance(900)

    assert store.sweep() == 1
    assert store.get("fresh") is not None
    assert len(store) == 1


def test_stats(store, clock):
    store.merge_fields("a", DcaPlanData(from_token="USDC"))
    store.get_or_create("b")
    clock.advance(1801)
    store.get_or_create("c")

    assert store.stats() == {"totalSessions": 3, "activeSessions": 1, "sessionsWithPlanData": 0}


@pytest.mark.asyncio
async def test_sweeper_runs_until_stopped(store, clock):
    store.get_or_create(WALLET)
    clock.advance(3600)
    sweeper = SessionSweeper(store, interval=0.01)

    sweeper.start()
    assert sweeper.running
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert not sweeper.running
    assert len(store) == 0


@pytest.mark.asyncio
async def test_sweeper_stop_without_start_is_noop(store):
    await SessionSweeper(store).stop()


def test_intent_is_sticky_for_wallet_less_users(store):
    store.merge_fields(None, {"fromToken": "USDC"})

    assert store.is_plan_creation_intent("weekly", None)
    assert store.is_plan_creation_intent("weekly")
    assert not store.is_plan_creation_intent("weekly", WALLET)

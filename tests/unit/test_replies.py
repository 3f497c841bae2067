import pytest

from dca_chat.service import replies


@pytest.mark.parametrize(
    "message, category",
    [
        ("hello", "greeting"),
        ("Good morning!", "greeting"),
        ("what can you do?", "help"),
        ("thanks a lot", "thanks"),
        ("who are you", "identity"),
        ("bye", "farewell"),
    ],
)
def test_classify_general(message, category):
    assert replies.classify_general(message) == category


@pytest.mark.parametrize(
    "message",
    ["hi, create a DCA plan", "hello, what about ETH?", "show my plans", "", "this is something else"],
)
def test_dca_messages_are_not_general(message):
    assert replies.classify_general(message) is None


def test_help_reply_carries_help_text():
    reply = replies.canned_reply("help")

    assert reply.action == "show_help"
    assert "Quick Commands" in reply.response


def test_fallback_for_plan_creation_mentions_wallet():
    without_wallet = replies.fallback_reply("create a plan please")
    with_wallet = replies.fallback_reply("create a plan please", "0x" + "1" * 40)

    assert without_wallet.action == "request_plan_details"
    assert "connect your wallet" in without_wallet.response
    assert "wallet is connected" in with_wallet.response


def test_fallback_for_portfolio_depends_on_wallet():
    assert replies.fallback_reply("my balance").action == "request_wallet_connection"
    assert replies.fallback_reply("my portfolio", "0x" + "1" * 40).action == "fetch_portfolio"


def test_fallback_default_echoes_message():
    reply = replies.fallback_reply("what is the meaning of life")

    assert reply.action == "show_help"
    assert '"what is the meaning of life"' in reply.response


def test_format_message_with_context_keeps_last_turns():
    history = [{"role": "user", "content": f"m{i}"} for i in range(5)]

    text = replies.format_message_with_context("pause plan 3", "0xabc", history)

    assert text.splitlines() == [
        "User Address: 0xabc",
        "Recent conversation:",
        "user: m2",
        "user: m3",
        "user: m4",
        "",
        "Current request: pause plan 3",
    ]


def test_format_message_without_context_is_just_the_request():
    assert replies.format_message_with_context("status") == "Current request: status"


@pytest.mark.parametrize(
    "text, action",
    [
        ("Your DCA plan has been set up", "plan_created"),
        ("Plan paused successfully", "plan_paused"),
        ("Plan resumed", "plan_resumed"),
        ("The swap went through", "execution_triggered"),
        ("ETH is trading at 3000", None),
    ],
)
def test_analyze_response_for_actions(text, action):
    assert replies.analyze_response_for_actions(text) == action


def test_backend_query_detection():
    assert replies.is_show_plans_query("Show my plans")
    assert not replies.is_show_plans_query("plans?")
    assert replies.is_stats_query("platform statistics please")


def test_format_plans():
    plans = [
        {
            "fromToken": "USDC",
            "toToken": "ETH",
            "amount": "100",
            "intervalMinutes": 1440,
            "status": "active",
            "executionCount": 2,
            "totalExecutions": 30,
            "nextExecution": "2026-01-02T03:04:00Z",
        }
    ]

    reply = replies.format_plans(plans)

    assert reply.action == "show_plans"
    assert "**USDC → ETH**" in reply.response
    assert "Progress: 2/30 executions" in reply.response
    assert "Next: 2026-01-02 03:04 UTC" in reply.response
    assert reply.data == plans


def test_format_plans_empty_suggests_creation():
    assert replies.format_plans([]).action == "suggest_create_plan"


def test_format_stats():
    reply = replies.format_stats({"totalPlans": 5, "activePlans": 2})

    assert reply.action == "show_stats"
    assert "Total Plans: 5" in reply.response
    assert "Total Users: 0" in reply.response

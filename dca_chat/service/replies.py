"""
Locally generated replies: canned answers for general conversation, the help
text, fallbacks used when the agent is unavailable, and formatting for DCA
backend query results.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from dca_chat.models.chat import ChatResponse
from dca_chat.plans.tokens import TokenRegistry

CANCELLED_MESSAGE = "❌ DCA plan creation cancelled. Feel free to start over whenever you're ready!"
MALFORMED_TOKEN_MESSAGE = (
    "I couldn't read that plan confirmation. Please try again by describing the plan you'd like to create."
)
WALLET_REQUIRED_MESSAGE = "🔐 Please connect your wallet first so I can create the DCA plan for your address."
CREATE_FAILED_MESSAGE = (
    "⚠️ I could not create your DCA plan right now because the DCA agent is unavailable. "
    "Your plan details are unchanged, please try confirming again in a moment."
)
PLAN_CREATED_DEFAULT = "✅ Your DCA plan has been submitted for creation."

HELP_TEXT = (
    "🤖 **I'm your DCA Investment Assistant!** Here's what I can help you with:\n\n"
    "📈 **Create DCA Plans**: Set up automated investment strategies\n"
    "💼 **Manage Plans**: View, pause, resume, or cancel your strategies\n"
    "📊 **Track Performance**: Monitor your investment progress\n"
    "🎯 **Smart Recommendations**: Get personalized investment advice\n"
    "⚙️ **Platform Stats**: View overall platform performance\n\n"
    "**Quick Commands:**\n"
    '• "Show my plans" - View your DCA strategies\n'
    '• "Create plan" - Set up new investment strategy\n'
    '• "Platform stats" - See platform statistics\n'
    '• "Pause plan [ID]" - Pause a specific plan\n\n'
    "Just ask me anything in natural language!"
)

# Category -> word-bounded patterns; first match wins
_GENERAL_PATTERNS: Dict[str, Sequence[str]] = {
    "help": (r"help", r"what can you do", r"how does (?:this|it) work"),
    "identity": (r"who are you", r"what are you", r"your name"),
    "thanks": (r"thanks?", r"thank you", r"thx", r"ty"),
    "farewell": (r"bye", r"goodbye", r"see you", r"good night"),
    "greeting": (r"hi", r"hello", r"hey", r"gm", r"good (?:morning|afternoon|evening)", r"yo", r"sup"),
}
_GENERAL_REGEX = {
    category: re.compile(r"\b(?:" + "|".join(patterns) + r")\b", re.IGNORECASE)
    for category, patterns in _GENERAL_PATTERNS.items()
}
_DCA_VOCABULARY = re.compile(
    r"\b(?:dca|plans?|strateg(?:y|ies)|invest\w*|buy|sell|swap\w*|tokens?|stats|statistics|"
    r"platform|portfolio|balance|amount|interval|duration|slippage|daily|weekly|monthly|hourly)\b",
    re.IGNORECASE,
)

_CANNED_REPLIES: Dict[str, tuple[str, Optional[str]]] = {
    "greeting": (
        "👋 Hi there! I'm your DCA assistant. I can help you set up automated "
        "dollar-cost-averaging plans on Arbitrum. Try something like "
        '"Invest 100 USDC into ETH every week for 6 months".',
        "greeting",
    ),
    "help": (HELP_TEXT, "show_help"),
    "thanks": ("You're welcome! Let me know whenever you want to create or review a DCA plan. 🙌", None),
    "identity": (
        "I'm a DCA (dollar-cost averaging) assistant. I collect the details of your "
        "investment plan, confirm them with you and hand them to the DCA agent for creation.",
        None,
    ),
    "farewell": ("Goodbye! Your DCA plans keep running while you're away. 👋", None),
}

_ACTION_KEYWORDS: Sequence[tuple[str, Sequence[str]]] = (
    ("plan_created", ("plan created", "dca plan")),
    ("plan_paused", ("plan paused", "paused")),
    ("plan_resumed", ("plan resumed", "activated")),
    ("execution_triggered", ("execution", "swap")),
)


def classify_general(message: str) -> Optional[str]:
    """Return the general-conversation category, or None if the message is about DCA."""
    text = (message or "").strip()
    if not text or _DCA_VOCABULARY.search(text) or _mentions_token(text):
        return None
    for category, pattern in _GENERAL_REGEX.items():
        if pattern.search(text):
            return category
    return None


def _mentions_token(text: str) -> bool:
    lower = text.lower()
    return any(re.search(rf"\b{re.escape(term)}\b", lower) for term in TokenRegistry.vocabulary())


def canned_reply(category: str) -> ChatResponse:
    text, action = _CANNED_REPLIES.get(category, _CANNED_REPLIES["help"])
    return ChatResponse(response=text, action=action)


def _short_wallet(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def fallback_reply(message: str, user_address: Optional[str] = None) -> ChatResponse:
    """Keyword-based answer used whenever the agent cannot be reached."""
    lower = (message or "").lower()

    if "create" in lower and ("plan" in lower or "strategy" in lower):
        wallet_note = (
            "I see your wallet is connected, so we can proceed once you provide the details!"
            if user_address
            else "Also, please connect your wallet to create the plan."
        )
        return ChatResponse(
            response=(
                "I'd be happy to help you create a DCA plan! To get started, I'll need some information:\n\n"
                "🎯 **Investment Details:**\n"
                "• Which token do you want to invest FROM? (e.g., USDC, USDT)\n"
                "• Which token do you want to invest INTO? (e.g., ETH, WBTC, ARB)\n"
                "• How much do you want to invest each time?\n"
                "• How often? (daily, weekly, monthly)\n"
                "• For how long? (duration in weeks/months)\n\n"
                'Example: "Invest 100 USDC into ETH every week for 6 months"\n\n'
                f"{wallet_note}"
            ),
            action="request_plan_details",
        )

    if "balance" in lower or "portfolio" in lower:
        if user_address:
            detail = (
                f"I can see your address ({_short_wallet(user_address)}), let me fetch your "
                "current DCA plans and their performance."
            )
        else:
            detail = "Please connect your wallet first."
        return ChatResponse(
            response=(
                "To check your portfolio balance and performance, I need to connect to your wallet data. "
                f"{detail}\n\nWould you like me to show your active DCA plans and their current status?"
            ),
            action="fetch_portfolio" if user_address else "request_wallet_connection",
        )

    return ChatResponse(
        response=(
            f'I understand you\'re asking about: "{message}"\n\n'
            "I'm here to help with your DCA investment strategies! Here are some things you can ask me:\n\n"
            '💡 **"Create a DCA plan"** - Set up automated investments\n'
            '📊 **"Show my plans"** - View your current strategies\n'
            '💰 **"Check my portfolio"** - See your investment performance\n'
            '⏸️ **"Pause my plan"** - Temporarily stop investments\n'
            '📈 **"Platform stats"** - View overall platform metrics\n\n'
            "What would you like to do?"
        ),
        action="show_help",
    )


def format_message_with_context(
    message: str,
    user_address: Optional[str] = None,
    history: Iterable[Mapping[str, Any]] = (),
    turns: int = 3,
) -> str:
    """Prefix the instruction with the wallet and the last few conversation turns."""
    lines: List[str] = []
    if user_address:
        lines.append(f"User Address: {user_address}")

    recent = list(history)[-turns:] if turns > 0 else []
    if recent:
        lines.append("Recent conversation:")
        lines.extend(f"{turn.get('role')}: {turn.get('content')}" for turn in recent)
        lines.append("")

    lines.append(f"Current request: {message}")
    return "\n".join(lines)


def analyze_response_for_actions(text: str) -> Optional[str]:
    """Infer the UI action implied by the agent's reply text."""
    lower = (text or "").lower()
    for action, keywords in _ACTION_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return action
    return None


# ---------------------------------------------------------------------------
# DCA backend queries
# ---------------------------------------------------------------------------


def is_show_plans_query(message: str) -> bool:
    lower = (message or "").lower()
    return "show" in lower and ("plans" in lower or "strategies" in lower)


def is_stats_query(message: str) -> bool:
    lower = (message or "").lower()
    return any(word in lower for word in ("stats", "statistics", "platform"))


def _format_timestamp(value: Any) -> str:
    if not value:
        return "Completed"
    try:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def format_plans(plans: Sequence[Mapping[str, Any]]) -> ChatResponse:
    if not plans:
        return ChatResponse(
            response=(
                "You don't have any DCA plans yet. Would you like me to help you create "
                "your first investment strategy?"
            ),
            action="suggest_create_plan",
        )

    blocks = []
    for index, plan in enumerate(plans, start=1):
        blocks.append(
            f"{index}. **{plan.get('fromToken')} → {plan.get('toToken')}**\n"
            f"   Amount: {plan.get('amount')} {plan.get('fromToken')}\n"
            f"   Interval: Every {plan.get('intervalMinutes')} minutes\n"
            f"   Status: {plan.get('status')}\n"
            f"   Progress: {plan.get('executionCount', 0)}/{plan.get('totalExecutions', 0)} executions\n"
            f"   Next: {_format_timestamp(plan.get('nextExecution'))}"
        )
    return ChatResponse(
        response=(
            "Here are your current DCA plans:\n\n"
            + "\n\n".join(blocks)
            + "\n\nWould you like to modify any of these plans or create a new one?"
        ),
        action="show_plans",
        data=list(plans),
    )


def format_stats(stats: Mapping[str, Any]) -> ChatResponse:
    return ChatResponse(
        response=(
            "📊 **Platform Statistics**\n\n"
            f"💰 Total Plans: {stats.get('totalPlans', 0)}\n"
            f"🔥 Active Plans: {stats.get('activePlans', 0)}\n"
            f"👥 Total Users: {stats.get('totalUsers', 0)}\n"
            f"⚡ Total Executions: {stats.get('totalExecutions', 0)}\n"
            f"📈 Last 24h: {stats.get('last24hExecutions', 0)} executions\n"
            f"📅 Last 7 days: {stats.get('last7dExecutions', 0)} executions\n\n"
            "The platform is actively helping users with their DCA strategies!"
        ),
        action="show_stats",
        data=dict(stats),
    )


def show_plans_requires_wallet() -> ChatResponse:
    return ChatResponse(
        response=(
            "I'd be happy to show your DCA plans! However, I need your wallet address to fetch "
            "your specific plans. Please connect your wallet first."
        ),
        action="request_wallet_connection",
    )

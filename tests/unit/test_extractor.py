import pytest

from dca_chat.plans.extractor import (
    ExtractionAttempt,
    PlanExtractor,
    RuleBasedStrategy,
    normalize_typos,
)
from dca_chat.plans.plan import DcaPlanData


@pytest.fixture
def rules():
    return RuleBasedStrategy()


def test_full_sentence_extracts_every_field(rules):
    fields = rules.extract_fields("Invest 100 USDC into ETH every week for 6 months with 1% slippage")

    assert fields == DcaPlanData(
        from_token="USDC",
        to_token="ETH",
        amount="100",
        interval="1 week",
        duration="6 months",
        slippage="1",
    )


def test_two_tokens_use_order_of_appearance(rules):
    fields = rules.extract_fields("swap WETH for ARB")

    assert fields.from_token == "WETH"
    assert fields.to_token == "ARB"


def test_aliases_resolve_to_symbols(rules):
    fields = rules.extract_fields("put 50 dai into bitcoin")

    assert fields.from_token == "DAI"
    assert fields.to_token == "WBTC"


def test_repeated_token_counts_once(rules):
    fields = rules.extract_fields("buy ETH, yes ETH please")

    assert fields.from_token is None
    assert fields.to_token == "ETH"


@pytest.mark.parametrize(
    "message, expected_from, expected_to",
    [
        ("I want to invest from USDC", "USDC", None),
        ("convert my USDT into something", "USDT", None),
        ("invest into LINK", None, "LINK"),
        ("buy ARB", None, "ARB"),
        ("what about GMX", None, None),
    ],
)
def test_single_token_direction_from_prepositions(rules, message, expected_from, expected_to):
    fields = rules.extract_fields(message)

    assert fields.from_token == expected_from
    assert fields.to_token == expected_to


def test_three_tokens_extract_nothing(rules):
    fields = rules.extract_fields("split USDC between ETH and ARB")

    assert fields.from_token is None
    assert fields.to_token is None


@pytest.mark.parametrize(
    "message, amount",
    [
        ("100 USDC", "100"),
        ("12.5 usdt please", "12.5"),
        ("$50 each time", "50"),
        ("50 dollars each time", "50"),
        ("1,000 USDC", "1000"),
        ("every 5 minutes", None),
    ],
)
def test_amount(rules, message, amount):
    assert rules.extract_fields(message).amount == amount


@pytest.mark.parametrize(
    "message, interval",
    [
        ("every 5 minitues", "5 minutes"),
        ("every 2 mins", "2 minutes"),
        ("every 3 hrs", "3 hours"),
        ("every day", "1 day"),
        ("every 1 week", "1 week"),
        ("10 minutes interval", "10 minutes"),
        ("run it weekly", "weekly"),
        ("Daily please", "daily"),
        ("no schedule here", None),
    ],
)
def test_interval(rules, message, interval):
    assert rules.extract_fields(message).interval == interval


@pytest.mark.parametrize(
    "message, duration",
    [
        ("for 6 months", "6 months"),
        ("over 1 year", "1 year"),
        ("every 5 minutes for 2 days", "2 days"),
        ("5 minutes interval 3 weeks", "3 weeks"),
        ("every 5 minutes", None),
    ],
)
def test_duration_never_reuses_interval_text(rules, message, duration):
    assert rules.extract_fields(message).duration == duration


def test_normalize_typos():
    assert normalize_typos("every 2 Minitues and 3 hrs") == "every 2 minutes and 3 hours"


@pytest.mark.asyncio
async def test_rules_merge_on_top_of_current_partial(rules):
    current = DcaPlanData(from_token="USDC", to_token="ETH", amount="100", interval="daily")

    attempt = await rules.try_extract("every 2 hours for 3 weeks", [], current)

    assert attempt.ok
    assert attempt.strategy == "rules"
    assert attempt.result.is_complete
    assert attempt.result.plan_data.interval == "2 hours"
    assert attempt.result.plan_data.duration == "3 weeks"


@pytest.mark.asyncio
async def test_rules_report_next_question(rules):
    attempt = await rules.try_extract("buy ETH", [], None)

    assert attempt.result.missing_fields == ["fromToken", "amount", "interval", "duration"]
    assert attempt.result.next_question.startswith("Which token would you like to invest from?")


class _FailingStrategy:
    name = "broken"

    def __init__(self):
        self.calls = 0

    async def try_extract(self, message, history=(), current=None):
        self.calls += 1
        return ExtractionAttempt.failed(self.name, "offline")


@pytest.mark.asyncio
async def test_extractor_falls_through_to_rules():
    failing = _FailingStrategy()
    extractor = PlanExtractor([failing])

    result = await extractor.extract("Invest 100 USDC into ETH daily for 1 month")

    assert failing.calls == 1
    assert result.is_complete
    assert result.plan_data.interval == "daily"


def test_extractor_always_ends_with_rules():
    extractor = PlanExtractor()

    assert len(extractor.strategies) == 1
    assert isinstance(extractor.strategies[0], RuleBasedStrategy)


@pytest.mark.asyncio
async def test_same_message_twice_gives_same_result():
    extractor = PlanExtractor()
    current = DcaPlanData(from_token="USDC", amount="25")
    message = "into ETH every 3 hours for 2 weeks"

    first = await extractor.extract(message, [], current)
    second = await extractor.extract(message, [], current)
    reapplied = await extractor.extract(message, [], first.plan_data)

    assert first == second
    assert reapplied.plan_data == first.plan_data
    assert reapplied.is_complete


@pytest.mark.asyncio
async def test_missing_to_token_is_asked_first():
    result = await PlanExtractor().extract("hmm", [], DcaPlanData(from_token="USDC"))

    assert result.missing_fields == ["toToken", "amount", "interval", "duration"]
    assert result.next_question.startswith("Which token would you like to invest into?")

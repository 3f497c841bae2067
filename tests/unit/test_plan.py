import pytest

from dca_chat.plans.errors import PlanValidationError
from dca_chat.plans.plan import (
    DcaPlanData,
    ExtractionResult,
    creation_instruction,
    plan_summary,
    validate_plan_data,
)
from dca_chat.plans.tokens import TokenRegistry

COMPLETE = DcaPlanData(
    from_token="USDC", to_token="ETH", amount="100", interval="1 week", duration="6 months"
)


def test_missing_fields_follow_priority_order():
    validation = validate_plan_data(DcaPlanData(amount="10"))

    assert validation.missing_fields == ["fromToken", "toToken", "interval", "duration"]
    assert validation.next_question.startswith("Which token would you like to invest from?")
    assert not validation.is_complete


def test_next_question_moves_to_amount():
    validation = validate_plan_data(DcaPlanData(from_token="USDC", to_token="ETH"))

    assert validation.missing_fields[0] == "amount"
    assert "How much USDC" in validation.next_question


def test_complete_plan_is_valid():
    validation = validate_plan_data(COMPLETE)

    assert validation.is_complete
    assert validation.missing_fields == []
    assert validation.validation_errors == []
    assert validation.next_question is None


def test_unknown_token_is_reported_without_blocking_other_fields():
    plan = DcaPlanData(from_token="DOGE", to_token="ETH", amount="5")
    validation = validate_plan_data(plan)

    assert "Token DOGE is not available on Arbitrum" in validation.validation_errors
    assert validation.missing_fields == ["interval", "duration"]
    assert "How often" in validation.next_question


def test_same_token_is_rejected():
    validation = validate_plan_data(COMPLETE.merged({"toToken": "USDC"}))

    assert not validation.is_complete
    assert "From token and to token cannot be the same" in validation.validation_errors
    assert validation.next_question.startswith("Please correct the following")


@pytest.mark.parametrize("amount", ["0", "-5", "abc", "NaN"])
def test_non_positive_amount_is_rejected(amount):
    validation = validate_plan_data(COMPLETE.merged({"amount": amount}))

    assert not validation.is_complete
    assert "Amount must be a positive number" in validation.validation_errors


def test_require_complete_raises_with_details():
    with pytest.raises(PlanValidationError) as info:
        DcaPlanData(from_token="USDC").require_complete()

    assert "toToken" in info.value.missing_fields


def test_merged_overwrites_only_non_null_values():
    base = DcaPlanData(from_token="USDC", amount="100")
    merged = base.merged(DcaPlanData(amount="250", interval="daily"))

    assert merged == DcaPlanData(from_token="USDC", amount="250", interval="daily")
    assert base.amount == "100"


def test_wire_serialisation_drops_missing_values():
    assert DcaPlanData(from_token="USDC", amount="1").to_dict() == {"fromToken": "USDC", "amount": "1"}


def test_from_dict_accepts_wire_and_attribute_names():
    plan = DcaPlanData.from_dict({"fromToken": " usdc ", "to_token": "eth", "amount": 10, "bogus": "x"})

    assert plan == DcaPlanData(from_token="USDC", to_token="ETH", amount="10")


def test_extraction_result_to_dict():
    result = ExtractionResult.from_plan(COMPLETE)

    assert result.to_dict()["isComplete"] is True
    assert result.to_dict()["planData"]["toToken"] == "ETH"


def test_plan_summary_mentions_every_field():
    summary = plan_summary(COMPLETE)

    assert "100 USDC" in summary
    assert "Target: ETH" in summary
    assert "Interval: 1 week" in summary
    assert "Duration: 6 months" in summary
    assert "Slippage: 2%" in summary
    address = TokenRegistry.address("USDC")
    assert f"{address[:8]}...{address[-6:]}" in summary


def test_creation_instruction_includes_wallet():
    wallet = "0x" + "a" * 40
    instruction = creation_instruction(COMPLETE, wallet)

    assert wallet in instruction
    assert "invest 100 USDC into ETH" in instruction


def test_constructor_normalises_values():
    plan = DcaPlanData(from_token=" usdc ", to_token="eth", amount=" 100 ", interval="weekly ", slippage="  ")

    assert plan.from_token == "USDC"
    assert plan.to_token == "ETH"
    assert plan.amount == "100"
    assert plan.interval == "weekly"
    assert plan.slippage is None
    assert plan == DcaPlanData.from_dict(plan.to_dict())

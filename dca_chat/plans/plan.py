"""DCA plan data model, validation and the confirmation summary."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from .errors import PlanValidationError
from .tokens import TokenRegistry

# Wire name for every plan attribute, in the order missing fields are asked for.
WIRE_NAMES: Dict[str, str] = {
    "from_token": "fromToken",
    "to_token": "toToken",
    "amount": "amount",
    "interval": "interval",
    "duration": "duration",
    "slippage": "slippage",
}
REQUIRED_FIELDS: tuple[str, ...] = ("fromToken", "toToken", "amount", "interval", "duration")
DEFAULT_SLIPPAGE = "2"

_ATTRS_BY_WIRE = {wire: attr for attr, wire in WIRE_NAMES.items()}


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value).replace(",", ""))
    except (InvalidOperation, TypeError, ValueError):
        return None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class DcaPlanData:
    """Partial or complete DCA plan. Interval and duration stay free-form strings."""

    from_token: Optional[str] = None
    to_token: Optional[str] = None
    amount: Optional[str] = None
    interval: Optional[str] = None
    duration: Optional[str] = None
    slippage: Optional[str] = None

    def __post_init__(self) -> None:
        # Canonical form: trimmed strings, upper-case token symbols, blanks as None
        for f in fields(self):
            value = _clean(getattr(self, f.name))
            if value is not None and f.name in ("from_token", "to_token"):
                value = value.upper()
            object.__setattr__(self, f.name, value)

    def merged(self, other: "DcaPlanData | Mapping[str, Any] | None") -> "DcaPlanData":
        """Return a copy where every non-null value of ``other`` overwrites ours."""
        if other is None:
            return self
        if not isinstance(other, DcaPlanData):
            other = DcaPlanData.from_dict(other)
        updates = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **updates) if updates else self

    def has_any(self) -> bool:
        return any(getattr(self, f.name) is not None for f in fields(self))

    def missing_fields(self) -> List[str]:
        data = self.to_dict()
        return [name for name in REQUIRED_FIELDS if not data.get(name)]

    def amount_decimal(self) -> Optional[Decimal]:
        return _to_decimal(self.amount)

    def require_complete(self) -> "DcaPlanData":
        validation = validate_plan_data(self)
        if not validation.is_complete:
            raise PlanValidationError(validation.validation_errors, validation.missing_fields)
        return self

    def to_dict(self) -> Dict[str, str]:
        return {
            WIRE_NAMES[f.name]: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DcaPlanData":
        values: Dict[str, Any] = {}
        for key, raw in (data or {}).items():
            attr = _ATTRS_BY_WIRE.get(key) or (key if key in WIRE_NAMES else None)
            if attr is not None:
                values[attr] = raw
        return cls(**values)


@dataclass
class PlanValidation:
    is_complete: bool
    missing_fields: List[str] = field(default_factory=list)
    next_question: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)


@dataclass
class ExtractionResult:
    is_complete: bool
    plan_data: DcaPlanData
    missing_fields: List[str] = field(default_factory=list)
    next_question: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)

    @classmethod
    def from_plan(cls, plan: DcaPlanData) -> "ExtractionResult":
        validation = validate_plan_data(plan)
        return cls(
            is_complete=validation.is_complete,
            plan_data=plan,
            missing_fields=validation.missing_fields,
            next_question=validation.next_question,
            validation_errors=validation.validation_errors,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isComplete": self.is_complete,
            "planData": self.plan_data.to_dict(),
            "missingFields": list(self.missing_fields),
            "nextQuestion": self.next_question,
            "validationErrors": list(self.validation_errors),
        }


def _question_for(field_name: str, plan: DcaPlanData) -> str:
    if field_name == "fromToken":
        options = ", ".join(TokenRegistry.symbols()[:10])
        return f"Which token would you like to invest from? Available options include: {options}, etc."
    if field_name == "toToken":
        return "Which token would you like to invest into? Popular choices: ETH, WBTC, ARB, LINK, etc."
    if field_name == "amount":
        return f"How much {plan.from_token or 'tokens'} would you like to invest per execution?"
    if field_name == "interval":
        return 'How often would you like to invest? (e.g., "2 minutes", "daily", "weekly", "monthly")'
    return 'For how long should this plan run? (e.g., "1 day", "3 weeks", "2 months", "1 year")'


def validate_plan_data(plan: DcaPlanData) -> PlanValidation:
    """Check completeness and correctness; pick the next question by field priority."""
    missing = plan.missing_fields()
    errors: List[str] = []
    network = TokenRegistry.network().capitalize() or "this network"

    if plan.from_token and not TokenRegistry.is_available(plan.from_token):
        errors.append(f"Token {plan.from_token} is not available on {network}")
    if plan.to_token and not TokenRegistry.is_available(plan.to_token):
        errors.append(f"Token {plan.to_token} is not available on {network}")
    if plan.from_token and plan.to_token and plan.from_token == plan.to_token:
        errors.append("From token and to token cannot be the same")

    if plan.amount is not None:
        amount = plan.amount_decimal()
        if amount is None or not amount.is_finite() or amount <= 0:
            errors.append("Amount must be a positive number")

    next_question: Optional[str] = None
    if missing:
        next_question = _question_for(missing[0], plan)
    elif errors:
        next_question = "Please correct the following and try again: " + "; ".join(errors) + "."

    return PlanValidation(
        is_complete=not missing and not errors,
        missing_fields=missing,
        next_question=next_question,
        validation_errors=errors,
    )


def _short_address(address: Optional[str]) -> str:
    if not address:
        return "N/A"
    if len(address) <= 20:
        return address
    return f"{address[:8]}...{address[-6:]}"


def plan_summary(plan: DcaPlanData) -> str:
    """Human-readable summary shown while the plan awaits confirmation."""
    return (
        "📊 **DCA Plan Summary:**\n"
        f"• Investment: {plan.amount} {plan.from_token}\n"
        f"• Target: {plan.to_token}\n"
        f"• Duration: {plan.duration}\n"
        f"• Interval: {plan.interval}\n"
        f"• Slippage: {plan.slippage or DEFAULT_SLIPPAGE}%\n\n"
        f"💰 **Token:** {_short_address(TokenRegistry.address(plan.from_token or ''))}\n"
        f"⚠️ **Note:** You'll need to approve spending of {plan.from_token} tokens to the executor."
    )


def creation_instruction(plan: DcaPlanData, user_address: str) -> str:
    """Imperative instruction that asks the agent to actually create the plan."""
    return (
        f"Create a DCA plan for wallet {user_address}: invest {plan.amount} {plan.from_token} "
        f"into {plan.to_token}, interval {plan.interval}, duration {plan.duration}, "
        f"slippage {plan.slippage or DEFAULT_SLIPPAGE}%."
    )

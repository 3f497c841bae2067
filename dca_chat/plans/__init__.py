"""DCA plan collection: token registry, extraction, sessions and confirmation tokens."""

from . import confirmation
from .errors import MalformedToken, PlanError, PlanValidationError, WalletRequired
from .extractor import (
    ExtractionAttempt,
    ExtractionFailure,
    LLMBackedStrategy,
    PlanExtractor,
    RuleBasedStrategy,
)
from .plan import (
    DcaPlanData,
    ExtractionResult,
    creation_instruction,
    plan_summary,
    validate_plan_data,
)
from .sessions import PlanSession, PlanSessionStore, SessionSweeper
from .tokens import TokenRegistry

__all__ = [
    "confirmation",
    "MalformedToken",
    "PlanError",
    "PlanValidationError",
    "WalletRequired",
    "ExtractionAttempt",
    "ExtractionFailure",
    "LLMBackedStrategy",
    "PlanExtractor",
    "RuleBasedStrategy",
    "DcaPlanData",
    "ExtractionResult",
    "creation_instruction",
    "plan_summary",
    "validate_plan_data",
    "PlanSession",
    "PlanSessionStore",
    "SessionSweeper",
    "TokenRegistry",
]

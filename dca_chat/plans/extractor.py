"""
DCA plan parameter extraction.

Two strategies produce the same ``ExtractionResult``:

- ``LLMBackedStrategy`` asks a chat model for structured JSON and may fail
  (no credential, forced fallback, provider error, rate limit, bad reply).
- ``RuleBasedStrategy`` scans the message with regular expressions and never
  fails.

``PlanExtractor`` tries them in order and returns the first success, so callers
never see which one ran.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from ..llm import (
    LLMError,
    LLMFactory,
    LLMRateLimitError,
    is_rate_limit_error,
    resolve_api_key,
)
from .plan import DcaPlanData, ExtractionResult
from .prompt import build_system_prompt, build_user_prompt
from .tokens import TokenRegistry

logger = logging.getLogger(__name__)

HistoryTurn = Mapping[str, Any]

_INTERVAL_UNITS = r"(minute|hour|day|week|month)"
_DURATION_UNITS = r"(minute|hour|day|week|month|year)"
_NUMBER = r"\d[\d,]*(?:\.\d+)?"

_TYPO_FIXES = (
    (re.compile(r"\b(?:minitues?|minuts|mins)\b", re.IGNORECASE), "minutes"),
    (re.compile(r"\bhrs\b", re.IGNORECASE), "hours"),
)
_EVERY_PATTERN = re.compile(rf"\bevery\s+(?:(\d+)\s*)?{_INTERVAL_UNITS}s?\b", re.IGNORECASE)
_INTERVAL_KEYWORD_PATTERN = re.compile(
    rf"\b(\d+)\s*{_INTERVAL_UNITS}(?:ly|s)?\s*(?:interval|frequency)\b", re.IGNORECASE
)
_ADVERB_PATTERN = re.compile(r"\b(hourly|daily|weekly|monthly)\b", re.IGNORECASE)
_DURATION_PREFIXED_PATTERN = re.compile(
    rf"\b(?:for|over)\s*(\d+)\s*{_DURATION_UNITS}s?\b", re.IGNORECASE
)
_DURATION_BARE_PATTERN = re.compile(rf"\b(\d+)\s*{_DURATION_UNITS}s?\b", re.IGNORECASE)
_SLIPPAGE_PATTERNS = (
    re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*slippage", re.IGNORECASE),
    re.compile(r"slippage\s*(?:of|at|to)?\s*(\d+(?:\.\d+)?)\s*%", re.IGNORECASE),
)
_CURRENCY_PREFIX_PATTERN = re.compile(rf"\$\s*({_NUMBER})")
_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _render_period(count: int, unit: str) -> str:
    unit = unit.lower()
    return f"{count} {unit}{'s' if count > 1 else ''}"


def normalize_typos(message: str) -> str:
    for pattern, replacement in _TYPO_FIXES:
        message = pattern.sub(replacement, message)
    return message


# ---------------------------------------------------------------------------
# Attempt values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtractionFailure:
    reason: str
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ExtractionAttempt:
    """Outcome of one strategy: exactly one of ``result`` / ``failure`` is set."""

    strategy: str
    result: Optional[ExtractionResult] = None
    failure: Optional[ExtractionFailure] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, strategy: str, result: ExtractionResult) -> "ExtractionAttempt":
        return cls(strategy=strategy, result=result)

    @classmethod
    def failed(
        cls, strategy: str, reason: str, error: Optional[BaseException] = None
    ) -> "ExtractionAttempt":
        return cls(strategy=strategy, failure=ExtractionFailure(reason, error))


# ---------------------------------------------------------------------------
# Rule-based strategy
# ---------------------------------------------------------------------------


class RuleBasedStrategy:
    """Regex extraction over the token vocabulary. Always produces a result."""

    name = "rules"

    def __init__(self) -> None:
        vocabulary = TokenRegistry.vocabulary()
        alternation = "|".join(re.escape(term) for term in vocabulary)
        self._token_pattern = re.compile(rf"\b({alternation})\b", re.IGNORECASE)
        self._amount_pattern = re.compile(
            rf"({_NUMBER})\s*(?:(?:{alternation}|usd|dollars?)\b|\$)", re.IGNORECASE
        )
        self._aliases: Dict[str, List[str]] = {}
        for term in vocabulary:
            symbol = TokenRegistry.resolve(term)
            if symbol:
                self._aliases.setdefault(symbol, []).append(re.escape(term))

    async def try_extract(
        self,
        message: str,
        history: Sequence[HistoryTurn] = (),
        current: Optional[DcaPlanData] = None,
    ) -> ExtractionAttempt:
        merged = (current or DcaPlanData()).merged(self.extract_fields(message))
        return ExtractionAttempt.success(self.name, ExtractionResult.from_plan(merged))

    def extract_fields(self, message: str) -> DcaPlanData:
        """Pull whatever plan fields the message states explicitly."""
        text = normalize_typos(message or "")
        from_token, to_token = self._extract_tokens(text)
        interval, interval_span = self._extract_interval(text)
        return DcaPlanData(
            from_token=from_token,
            to_token=to_token,
            amount=self._extract_amount(text),
            interval=interval,
            duration=self._extract_duration(text, interval_span),
            slippage=self._extract_slippage(text),
        )

    def _extract_amount(self, text: str) -> Optional[str]:
        match = self._amount_pattern.search(text) or _CURRENCY_PREFIX_PATTERN.search(text)
        if not match:
            return None
        return match.group(1).replace(",", "")

    def _extract_tokens(self, text: str) -> tuple[Optional[str], Optional[str]]:
        found: List[str] = []
        for match in self._token_pattern.finditer(text):
            symbol = TokenRegistry.resolve(match.group(1))
            if symbol and symbol not in found:
                found.append(symbol)

        if len(found) == 2:
            return found[0], found[1]
        if len(found) != 1:
            return None, None

        symbol = found[0]
        names = "|".join(self._aliases.get(symbol, [re.escape(symbol.lower())]))
        if re.search(rf"\bfrom\s+(?:{names})\b|\b(?:{names})\s+into\b", text, re.IGNORECASE):
            return symbol, None
        if re.search(rf"\b(?:into|buy)\s+(?:{names})\b", text, re.IGNORECASE):
            return None, symbol
        return None, None

    @staticmethod
    def _extract_interval(text: str) -> tuple[Optional[str], Optional[tuple[int, int]]]:
        for pattern in (_EVERY_PATTERN, _INTERVAL_KEYWORD_PATTERN):
            match = pattern.search(text)
            if match:
                count = int(match.group(1)) if match.group(1) else 1
                return _render_period(count, match.group(2)), match.span()
        match = _ADVERB_PATTERN.search(text)
        if match:
            return match.group(1).lower(), match.span()
        return None, None

    @staticmethod
    def _extract_duration(text: str, interval_span: Optional[tuple[int, int]]) -> Optional[str]:
        match = _DURATION_PREFIXED_PATTERN.search(text)
        if match:
            return _render_period(int(match.group(1)), match.group(2))
        for match in _DURATION_BARE_PATTERN.finditer(text):
            if interval_span and match.start() < interval_span[1] and interval_span[0] < match.end():
                continue
            return _render_period(int(match.group(1)), match.group(2))
        return None

    @staticmethod
    def _extract_slippage(text: str) -> Optional[str]:
        for pattern in _SLIPPAGE_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None


# ---------------------------------------------------------------------------
# LLM-backed strategy
# ---------------------------------------------------------------------------


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("type") == "text":
                parts.append(item.get("text", ""))
        return "".join(parts)
    return str(content or "")


def clean_json_reply(reply: str) -> str:
    """Strip code fences and leading prose so only the JSON object remains."""
    cleaned = _CODE_FENCE_PATTERN.sub("", reply.strip()).strip()
    if cleaned.startswith("{"):
        return cleaned
    match = _JSON_OBJECT_PATTERN.search(cleaned)
    if not match:
        raise ValueError("No JSON object found in model reply")
    return match.group(0)


class LLMBackedStrategy:
    """Structured extraction through a LangChain chat model."""

    name = "llm"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        temperature: float = 0.1,
        force_fallback: bool = False,
        history_turns: int = 4,
        llm: Any = None,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.force_fallback = force_fallback
        self.history_turns = history_turns
        self._llm = llm

    def _get_llm(self):
        if self._llm is None:
            self._llm = LLMFactory.create(
                self.model,
                temperature=self.temperature,
                api_key=resolve_api_key(self.model, self.api_key),
            )
        return self._llm

    def unavailable_reason(self) -> Optional[str]:
        if self.force_fallback:
            return "FORCE_FALLBACK_MODE enabled"
        if self._llm is not None:
            return None
        try:
            if not resolve_api_key(self.model, self.api_key):
                return f"no API key configured for {self.model}"
        except LLMError as exc:
            return str(exc)
        return None

    def build_messages(
        self,
        message: str,
        history: Sequence[HistoryTurn],
        current: DcaPlanData,
    ) -> List[BaseMessage]:
        messages: List[BaseMessage] = [SystemMessage(content=build_system_prompt())]
        recent = list(history)[-self.history_turns:] if self.history_turns > 0 else []
        for turn in recent:
            content = str(turn.get("content") or "")
            if not content:
                continue
            if turn.get("role") == "assistant":
                messages.append(AIMessage(content=content))
            else:
                messages.append(HumanMessage(content=content))
        messages.append(HumanMessage(content=build_user_prompt(message, current.to_dict())))
        return messages

    async def try_extract(
        self,
        message: str,
        history: Sequence[HistoryTurn] = (),
        current: Optional[DcaPlanData] = None,
    ) -> ExtractionAttempt:
        current = current or DcaPlanData()
        reason = self.unavailable_reason()
        if reason:
            return ExtractionAttempt.failed(self.name, reason)

        try:
            llm = self._get_llm()
            response = await llm.ainvoke(self.build_messages(message, history, current))
            extracted = self.parse_reply(_message_text(getattr(response, "content", response)))
        except Exception as exc:
            if is_rate_limit_error(exc):
                logger.warning("Extraction model %s is rate limited; falling back", self.model)
                error = exc if isinstance(exc, LLMRateLimitError) else LLMRateLimitError(
                    str(exc), model=self.model
                )
                return ExtractionAttempt.failed(self.name, "rate limited", error)
            logger.exception("LLM extraction failed for model %s", self.model)
            return ExtractionAttempt.failed(self.name, str(exc) or type(exc).__name__, exc)

        merged = current.merged(extracted)
        return ExtractionAttempt.success(self.name, ExtractionResult.from_plan(merged))

    @staticmethod
    def parse_reply(reply: str) -> DcaPlanData:
        """Parse the model reply into plan fields, canonicalising token aliases."""
        if not reply or not reply.strip():
            raise ValueError("Empty reply from extraction model")
        parsed = json.loads(clean_json_reply(reply))
        if not isinstance(parsed, dict) or not isinstance(parsed.get("extractedData"), dict):
            raise ValueError("Model reply has no 'extractedData' object")

        plan = DcaPlanData.from_dict(parsed["extractedData"])
        return DcaPlanData(
            from_token=TokenRegistry.resolve(plan.from_token) or plan.from_token,
            to_token=TokenRegistry.resolve(plan.to_token) or plan.to_token,
            amount=plan.amount.replace(",", "") if plan.amount else None,
            interval=plan.interval,
            duration=plan.duration,
            slippage=plan.slippage.rstrip("%").strip() if plan.slippage else None,
        )


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


class PlanExtractor:
    """Run strategies in order; the rule-based strategy always closes the chain."""

    def __init__(self, strategies: Optional[Sequence[Any]] = None) -> None:
        chain = list(strategies) if strategies is not None else []
        if not any(isinstance(strategy, RuleBasedStrategy) for strategy in chain):
            chain.append(RuleBasedStrategy())
        self.strategies = chain

    @classmethod
    def from_settings(cls, settings) -> "PlanExtractor":
        llm_strategy = LLMBackedStrategy(
            model=settings.extraction_model,
            api_key=settings.openai_api_key,
            force_fallback=settings.force_fallback_mode,
        )
        if settings.force_fallback_mode:
            logger.warning("FORCE_FALLBACK_MODE enabled. Using rule-based extraction only.")
        return cls([llm_strategy, RuleBasedStrategy()])

    async def extract(
        self,
        message: str,
        history: Sequence[HistoryTurn] = (),
        current: Optional[DcaPlanData] = None,
    ) -> ExtractionResult:
        attempt: Optional[ExtractionAttempt] = None
        for strategy in self.strategies:
            attempt = await strategy.try_extract(message, history, current)
            if attempt.ok:
                logger.debug("Plan fields extracted by %s strategy", attempt.strategy)
                return attempt.result
            logger.info(
                "Extraction strategy %s unavailable: %s", attempt.strategy, attempt.failure.reason
            )
        # Only reachable when every configured strategy failed, which RuleBasedStrategy prevents
        raise RuntimeError("No extraction strategy produced a result")

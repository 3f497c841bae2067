"""Prompts for LLM-backed DCA parameter extraction."""

import json
from typing import Any, Mapping

from .tokens import TokenRegistry

# Number of registry symbols listed to the model
PROMPT_TOKEN_LIMIT = 20

EXTRACTION_SYSTEM_PROMPT = """You are a JSON data extraction bot for DCA plan parameters. You MUST respond with ONLY valid JSON, no other text.

Available Tokens: {tokens} (and more)

Extract these parameters:
- fromToken: Source token symbol
- toToken: Target token symbol
- amount: Investment amount per execution
- interval: Frequency string ("2 minutes", "daily", "weekly", etc.)
- duration: Duration string ("1 day", "3 weeks", "2 months", etc.)
- slippage: Optional slippage percentage

Only fill a field when the user actually stated it. Never guess a token direction.

CRITICAL: Your response must be ONLY valid JSON in this exact format:
{{
  "extractedData": {{
    "fromToken": null,
    "toToken": null,
    "amount": null,
    "interval": null,
    "duration": null,
    "slippage": null
  }},
  "missingFields": [],
  "nextQuestion": "text",
  "validationErrors": []
}}

Do not include any markdown, explanations, or formatting. Only pure JSON."""

EXTRACTION_USER_PROMPT = """Current plan data: {current}
User message: "{message}"

Extract any new DCA parameters from this message and provide the next question for missing information."""


def build_system_prompt() -> str:
    symbols = TokenRegistry.symbols()[:PROMPT_TOKEN_LIMIT]
    return EXTRACTION_SYSTEM_PROMPT.format(tokens=", ".join(symbols))


def build_user_prompt(message: str, current: Mapping[str, Any]) -> str:
    return EXTRACTION_USER_PROMPT.format(
        current=json.dumps(dict(current), sort_keys=True),
        message=message,
    )

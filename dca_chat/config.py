from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the chat service and its collaborators."""

    # Remote agent (SSE + JSON-RPC)
    agent_base_url: str = "http://localhost:3001"
    agent_tool_name: str = "dca-swapping"
    agent_connect_timeout: float = 10.0
    agent_response_timeout: float = 60.0

    # Plan extraction
    extraction_model: str = "gpt-4o-mini"
    openai_api_key: Optional[str] = None
    force_fallback_mode: bool = False

    # Plan sessions
    session_ttl: float = 30 * 60
    session_sweep_interval: float = 10 * 60
    transcript_limit: int = 10

    # HTTP surface
    rate_limit_chat: str = "30/minute"
    rate_limit_default: str = "100/minute"
    log_level: str = "INFO"
    log_format: str = "color"

    @classmethod
    def load(cls) -> "Settings":
        return cls(
            agent_base_url=os.getenv("DCA_AGENT_URL", "http://localhost:3001").rstrip("/"),
            agent_tool_name=os.getenv("DCA_AGENT_TOOL", "dca-swapping"),
            agent_connect_timeout=float(os.getenv("AGENT_CONNECT_TIMEOUT", "10")),
            agent_response_timeout=float(os.getenv("AGENT_RESPONSE_TIMEOUT", "60")),
            extraction_model=os.getenv("EXTRACTION_MODEL", "gpt-4o-mini"),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            force_fallback_mode=_env_flag("FORCE_FALLBACK_MODE"),
            session_ttl=float(os.getenv("PLAN_SESSION_TTL", str(30 * 60))),
            session_sweep_interval=float(os.getenv("PLAN_SESSION_SWEEP_INTERVAL", str(10 * 60))),
            transcript_limit=int(os.getenv("PLAN_TRANSCRIPT_LIMIT", "10")),
            rate_limit_chat=os.getenv("RATE_LIMIT_CHAT", "30/minute"),
            rate_limit_default=os.getenv("RATE_LIMIT_DEFAULT", "100/minute"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "color").lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Memoized accessor so callers share a single settings instance."""

    return Settings.load()

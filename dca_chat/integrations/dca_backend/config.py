from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(slots=True)
class DcaBackendSettings:
    """Runtime configuration for the DCA backend REST client."""

    base_url: str = "http://localhost:3002"
    request_timeout: float = 10.0
    max_retries: int = 3

    @classmethod
    def load(cls) -> "DcaBackendSettings":
        return cls(
            base_url=os.getenv("DCA_API_URL", "http://localhost:3002").rstrip("/"),
            request_timeout=float(os.getenv("DCA_API_TIMEOUT", "10")),
            max_retries=int(os.getenv("DCA_API_MAX_RETRIES", "3")),
        )


@lru_cache(maxsize=1)
def get_dca_backend_settings() -> DcaBackendSettings:
    """Memoized accessor so callers share a single settings instance."""

    return DcaBackendSettings.load()

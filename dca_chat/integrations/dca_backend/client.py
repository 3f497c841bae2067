from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from dca_chat.infrastructure.retry import RetryConfig, execute_with_retry

from .config import DcaBackendSettings, get_dca_backend_settings

logger = logging.getLogger(__name__)


class DcaBackendError(RuntimeError):
    """Raised when the DCA backend returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class DcaBackendClient:
    """Async read-only client for the DCA backend's plan and stats endpoints."""

    def __init__(
        self,
        settings: DcaBackendSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_dca_backend_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout,
        )
        self._retry = RetryConfig(max_retries=max(1, self._settings.max_retries))

    async def __aenter__(self) -> "DcaBackendClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---- low-level helpers -------------------------------------------------
    async def _get(self, path: str) -> httpx.Response:
        return await self._client.get(path, headers={"Accept": "application/json"})

    async def _request_data(self, path: str) -> Any:
        try:
            response = await execute_with_retry(self._get, path, config=self._retry)
        except httpx.HTTPError as exc:
            raise DcaBackendError(f"DCA backend unreachable: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if response.status_code >= 400:
            raise DcaBackendError(
                f"DCA backend request failed ({response.status_code})",
                response.status_code,
                payload,
            )
        if not isinstance(payload, dict) or not payload.get("success"):
            message = (payload.get("message") or payload.get("error")) if isinstance(payload, dict) else None
            raise DcaBackendError(
                message or "DCA backend reported failure",
                response.status_code,
                payload,
            )
        return payload.get("data")

    # ---- queries -----------------------------------------------------------
    async def get_user_plans(self, user_address: str) -> List[Dict[str, Any]]:
        data = await self._request_data(f"/api/dca/plans/{user_address}")
        if data is None:
            return []
        if not isinstance(data, list):
            raise DcaBackendError("Unexpected plans payload", payload=data)
        return data

    async def get_platform_stats(self) -> Dict[str, Any]:
        data = await self._request_data("/api/dca/stats")
        if not isinstance(data, dict):
            raise DcaBackendError("Unexpected stats payload", payload=data)
        return data

"""
Agent bridge: one tool call per chat request over a fresh SSE session.

``AgentTransport`` owns the HTTP side (``GET /sse`` and
``POST /messages?sessionId=<id>``), ``AgentBridge`` composes the session
establisher and the response waiter into a single ``call``.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from .correlator import PostReply, ResponseWaiter
from .errors import AgentResponseError, ConnectError, RequestRejected, StreamEnded
from .sse import AgentStream, SessionEstablisher

logger = logging.getLogger(__name__)

DEFAULT_TOOL_NAME = "dca-swapping"

# Seeded from wall-clock milliseconds so ids stay unique across restarts.
_request_ids = itertools.count(int(time.time() * 1000))
_request_ids_lock = threading.Lock()


def next_request_id() -> int:
    with _request_ids_lock:
        return next(_request_ids)


@dataclass(frozen=True)
class PendingRequest:
    id: int
    session_id: str
    issued_at: float


def build_tool_call(
    request_id: Any,
    tool_name: str,
    instruction: str,
    user_address: Optional[str] = None,
) -> Dict[str, Any]:
    arguments: Dict[str, Any] = {"instruction": instruction}
    if user_address:
        arguments["userAddress"] = user_address
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": tool_name, "arguments": arguments},
    }


def extract_response_text(envelope: Dict[str, Any]) -> str:
    """
    Return the text content of a tool-call response envelope.

    Raises:
        AgentResponseError: error envelope, tool error, or no text content
    """
    if not isinstance(envelope, dict):
        raise AgentResponseError("Agent response is not an object", envelope)

    error = envelope.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise AgentResponseError(f"Agent returned an error: {message or 'unknown error'}", envelope)

    result = envelope.get("result")
    if isinstance(result, str):
        text = result.strip()
    elif isinstance(result, dict):
        content = result.get("content") or []
        if isinstance(content, str):
            content = [{"type": "text", "text": content}]
        parts = [
            str(item.get("text", ""))
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        ]
        text = "\n".join(part for part in parts if part).strip()
        if result.get("isError"):
            raise AgentResponseError(f"Agent tool failed: {text or 'no details'}", envelope)
    else:
        text = ""

    if not text:
        raise AgentResponseError("Agent response has no text content", envelope)
    return text


class AgentTransport:
    """HTTP access to the agent's SSE endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        connect_timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.connect_timeout = connect_timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(connect_timeout),
        )

    async def __aenter__(self) -> "AgentTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def open_stream(self) -> AgentStream:
        request = self._client.build_request(
            "GET",
            "/sse",
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            # Reads stay open for as long as the caller waits on the stream
            timeout=httpx.Timeout(self.connect_timeout, read=None),
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise ConnectError(f"Could not reach agent at {self.base_url}: {exc}") from exc

        if not response.is_success:
            await response.aclose()
            raise ConnectError(
                f"Agent stream handshake failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        chunks = self._iter_chunks(response)

        async def close() -> None:
            await chunks.aclose()
            await response.aclose()

        return AgentStream(chunks, on_close=close)

    @staticmethod
    async def _iter_chunks(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            raise StreamEnded(f"Agent stream broke: {exc}") from exc

    async def post_message(self, session_id: str, payload: Dict[str, Any]) -> PostReply:
        try:
            response = await self._client.post(
                "/messages",
                params={"sessionId": session_id},
                json=payload,
            )
        except httpx.HTTPError as exc:
            raise RequestRejected(
                f"Could not post request to agent: {exc}", session_id=session_id
            ) from exc
        return PostReply(response.status_code, response.text)


class AgentBridge:
    """Send one instruction to the agent's DCA tool and wait for its answer."""

    def __init__(
        self,
        transport: AgentTransport,
        *,
        tool_name: str = DEFAULT_TOOL_NAME,
        connect_timeout: float = 10.0,
        response_timeout: float = 60.0,
    ) -> None:
        self.transport = transport
        self.tool_name = tool_name
        self._establisher = SessionEstablisher(transport.open_stream, connect_timeout)
        self._waiter = ResponseWaiter(transport.post_message, response_timeout)

    @classmethod
    def from_settings(cls, settings) -> "AgentBridge":
        transport = AgentTransport(
            settings.agent_base_url,
            connect_timeout=settings.agent_connect_timeout,
        )
        return cls(
            transport,
            tool_name=settings.agent_tool_name,
            connect_timeout=settings.agent_connect_timeout,
            response_timeout=settings.agent_response_timeout,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def call(self, instruction: str, user_address: Optional[str] = None) -> Dict[str, Any]:
        """Return the raw response envelope for ``instruction``. Raises ``BridgeError``."""
        session = await self._establisher.connect()
        pending = PendingRequest(
            id=next_request_id(),
            session_id=session.session_id,
            issued_at=time.monotonic(),
        )
        payload = build_tool_call(pending.id, self.tool_name, instruction, user_address)
        logger.info("Calling agent tool %s (request %s)", self.tool_name, pending.id)

        envelope = await self._waiter.send_and_wait(
            session.stream, pending.session_id, pending.id, payload
        )
        logger.info(
            "Agent answered request %s in %.2fs",
            pending.id,
            time.monotonic() - pending.issued_at,
        )
        return envelope

    async def ask(self, instruction: str, user_address: Optional[str] = None) -> str:
        """Like ``call`` but returns the reply text. Raises ``BridgeError``."""
        envelope = await self.call(instruction, user_address)
        return extract_response_text(envelope)

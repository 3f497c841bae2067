"""
Match an asynchronous agent response to the request that caused it.

The agent acknowledges a POST with ``Accepted`` and later pushes the JSON-RPC
response onto the session's SSE stream. Frames for other ids, keep-alives and
session echoes are skipped until the matching id shows up.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, NamedTuple

from .errors import RequestRejected, ResponseTimeout, StreamEnded
from .sse import SESSION_ENDPOINT_PREFIX, AgentStream

logger = logging.getLogger(__name__)

ACCEPTED_BODY = "Accepted"
DEFAULT_RESPONSE_TIMEOUT = 60.0


class PostReply(NamedTuple):
    status_code: int
    text: str


PostMessage = Callable[[str, Dict[str, Any]], Awaitable[PostReply]]


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return left == right or str(left) == str(right)


def synchronous_envelope(request_id: Any, body: str) -> Dict[str, Any]:
    """Wrap a body returned directly by the POST as a response envelope."""
    try:
        parsed = json.loads(body)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "result": {"content": [{"type": "text", "text": body}]},
    }


class ResponseWaiter:
    def __init__(self, post_message: PostMessage, response_timeout: float = DEFAULT_RESPONSE_TIMEOUT):
        self._post_message = post_message
        self.response_timeout = response_timeout

    async def send_and_wait(
        self,
        stream: AgentStream,
        session_id: str,
        request_id: Any,
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Post ``payload`` and return the envelope whose ``id`` equals ``request_id``.

        Raises:
            RequestRejected: the POST answered with a non-2xx status
            ResponseTimeout: no matching frame within ``response_timeout``
            StreamEnded: the stream closed before a matching frame

        ``stream`` is closed before this returns or raises.
        """
        try:
            reply = await self._post_message(session_id, payload)
            if not 200 <= reply.status_code < 300:
                raise RequestRejected(
                    f"Agent rejected request {request_id} with HTTP {reply.status_code}",
                    status_code=reply.status_code,
                    body=reply.text,
                    session_id=session_id,
                )
            body = (reply.text or "").strip()
            if body and body != ACCEPTED_BODY:
                logger.debug("Agent answered request %s synchronously", request_id)
                return synchronous_envelope(request_id, body)

            try:
                return await asyncio.wait_for(
                    self._await_match(stream, session_id, request_id),
                    timeout=self.response_timeout,
                )
            except asyncio.TimeoutError as exc:
                raise ResponseTimeout(
                    f"No response for request {request_id} within {self.response_timeout:g}s",
                    session_id=session_id,
                    request_id=request_id,
                ) from exc
        finally:
            await stream.aclose()

    async def _await_match(self, stream: AgentStream, session_id: str, request_id: Any) -> Dict[str, Any]:
        while True:
            frame = await stream.next_frame()
            if frame is None:
                raise StreamEnded(
                    f"Agent stream ended before responding to request {request_id}",
                    session_id=session_id,
                    request_id=request_id,
                )
            if frame.data.startswith(SESSION_ENDPOINT_PREFIX):
                continue
            try:
                envelope = json.loads(frame.data)
            except ValueError:
                logger.warning("Skipping unparseable agent frame: %s", frame.data[:200])
                continue
            if not isinstance(envelope, dict):
                logger.debug("Skipping non-object agent frame")
                continue
            if not _same_id(envelope.get("id"), request_id):
                logger.debug(
                    "Skipping frame for request %s while waiting for %s",
                    envelope.get("id"),
                    request_id,
                )
                continue
            return envelope

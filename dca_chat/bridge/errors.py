"""
Failures raised while talking to the remote DCA agent over SSE.

Every error derives from ``BridgeError`` so the chat layer can turn any of
them into a fallback reply with a single ``except``.
"""

from typing import Any, Optional


class BridgeError(Exception):
    """Base exception for agent bridge failures."""

    def __init__(self, message: str, session_id: Optional[str] = None):
        self.session_id = session_id
        super().__init__(message)


class ConnectTimeout(BridgeError):
    """No session announcement arrived within the connect timeout."""


class ConnectError(BridgeError):
    """The stream handshake failed (non-2xx status or transport error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SessionNotFound(BridgeError):
    """The stream ended before announcing a session id."""


class ResponseTimeout(BridgeError):
    """No response frame matched the request id in time."""

    def __init__(self, message: str, session_id: Optional[str] = None, request_id: Any = None):
        self.request_id = request_id
        super().__init__(message, session_id)


class StreamEnded(BridgeError):
    """The stream closed before the matching response frame arrived."""

    def __init__(self, message: str, session_id: Optional[str] = None, request_id: Any = None):
        self.request_id = request_id
        super().__init__(message, session_id)


class RequestRejected(BridgeError):
    """The agent refused the posted request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message, session_id)


class AgentResponseError(BridgeError):
    """The agent answered with an error envelope or without usable content."""

    def __init__(self, message: str, envelope: Any = None):
        self.envelope = envelope
        super().__init__(message)

"""Bridge to the remote DCA agent (SSE stream + JSON-RPC tool calls)."""

from .agent import (
    AgentBridge,
    AgentTransport,
    PendingRequest,
    build_tool_call,
    extract_response_text,
    next_request_id,
)
from .correlator import PostReply, ResponseWaiter
from .errors import (
    AgentResponseError,
    BridgeError,
    ConnectError,
    ConnectTimeout,
    RequestRejected,
    ResponseTimeout,
    SessionNotFound,
    StreamEnded,
)
from .sse import AgentStream, EstablishedSession, SSEFrame, SSELineParser, SessionEstablisher

__all__ = [
    "AgentBridge",
    "AgentTransport",
    "PendingRequest",
    "build_tool_call",
    "extract_response_text",
    "next_request_id",
    "PostReply",
    "ResponseWaiter",
    "AgentResponseError",
    "BridgeError",
    "ConnectError",
    "ConnectTimeout",
    "RequestRejected",
    "ResponseTimeout",
    "SessionNotFound",
    "StreamEnded",
    "AgentStream",
    "EstablishedSession",
    "SSEFrame",
    "SSELineParser",
    "SessionEstablisher",
]

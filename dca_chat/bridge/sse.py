"""
Server-sent-event plumbing for the agent bridge.

``SSELineParser`` rebuilds lines from raw chunks (chunk boundaries may split a
line or a multi-byte UTF-8 sequence), ``AgentStream`` turns those lines into
frames, and ``SessionEstablisher`` waits for the agent to announce the
``/messages?sessionId=<id>`` endpoint of a fresh stream.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Deque, List, Optional

from .errors import ConnectError, ConnectTimeout, SessionNotFound, StreamEnded

logger = logging.getLogger(__name__)

SESSION_ENDPOINT_PREFIX = "/messages?sessionId="
DEFAULT_CONNECT_TIMEOUT = 10.0


class SSELineParser:
    """Incremental bytes -> lines decoder."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        """Return every line completed by ``chunk``; the trailing partial line is kept."""
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def flush(self) -> List[str]:
        """Emit whatever is left once the byte stream has ended."""
        rest = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if rest.endswith("\r"):
            rest = rest[:-1]
        return [rest] if rest else []


@dataclass(frozen=True)
class SSEFrame:
    data: str
    event: Optional[str] = None


def parse_session_id(endpoint: str) -> Optional[str]:
    """Everything after ``sessionId=``, trimmed; the agent's id is used verbatim."""
    if not endpoint.startswith(SESSION_ENDPOINT_PREFIX):
        return None
    return endpoint[len(SESSION_ENDPOINT_PREFIX):].strip() or None


class AgentStream:
    """An open SSE stream. ``aclose`` is idempotent and runs ``on_close`` at most once."""

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self._chunks = chunks
        self._on_close = on_close
        self._parser = SSELineParser()
        self._lines: Deque[str] = deque()
        self._exhausted = False
        self._closed = False
        self._event: Optional[str] = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def next_line(self) -> Optional[str]:
        """Next decoded line, or None once the stream has ended."""
        while not self._lines:
            if self._exhausted or self._closed:
                return None
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                self._lines.extend(self._parser.flush())
                continue
            self._lines.extend(self._parser.feed(chunk))
        return self._lines.popleft()

    async def next_frame(self) -> Optional[SSEFrame]:
        """
        Next ``data:`` line as a frame, tagged with the latest ``event:`` name.

        Blank lines and ``:`` comments (keep-alives) are skipped.
        """
        while True:
            line = await self.next_line()
            if line is None:
                return None
            if not line or line.startswith(":"):
                continue
            field, _, value = line.partition(":")
            value = value[1:] if value.startswith(" ") else value
            if field == "event":
                self._event = value or None
            elif field == "data":
                event, self._event = self._event, None
                return SSEFrame(data=value, event=event)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        callback, self._on_close = self._on_close, None
        if callback is not None:
            try:
                await callback()
            except Exception:
                logger.warning("Error while closing agent stream", exc_info=True)

    async def __aenter__(self) -> "AgentStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


@dataclass
class EstablishedSession:
    session_id: str
    stream: AgentStream


class SessionEstablisher:
    """Open a stream and wait for its session announcement."""

    def __init__(
        self,
        open_stream: Callable[[], Awaitable[AgentStream]],
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        self._open_stream = open_stream
        self.connect_timeout = connect_timeout

    async def connect(self) -> EstablishedSession:
        """
        Return the announced session with its stream still open.

        Raises:
            ConnectTimeout: no announcement within ``connect_timeout``
            ConnectError: handshake rejected or transport failure
            SessionNotFound: stream ended before announcing a session

        The stream is closed on every failure path.
        """
        opened: List[AgentStream] = []
        established: Optional[EstablishedSession] = None
        try:
            established = await asyncio.wait_for(
                self._await_announcement(opened), timeout=self.connect_timeout
            )
            return established
        except asyncio.TimeoutError as exc:
            raise ConnectTimeout(
                f"No session announced within {self.connect_timeout:g}s"
            ) from exc
        finally:
            if established is None and opened:
                await opened[0].aclose()

    async def _await_announcement(self, opened: List[AgentStream]) -> EstablishedSession:
        stream = await self._open_stream()
        opened.append(stream)
        while True:
            try:
                frame = await stream.next_frame()
            except StreamEnded as exc:
                raise ConnectError(f"Agent stream failed during handshake: {exc}") from exc
            if frame is None:
                raise SessionNotFound("Agent stream ended before announcing a session")
            if not frame.data.startswith(SESSION_ENDPOINT_PREFIX):
                logger.debug("Ignoring pre-session frame: %s", frame.data[:200])
                continue
            session_id = parse_session_id(frame.data)
            if session_id is None:
                continue
            logger.debug("Agent session %s established", session_id)
            return EstablishedSession(session_id=session_id, stream=stream)


__all__ = [
    "AgentStream",
    "EstablishedSession",
    "SSEFrame",
    "SSELineParser",
    "SessionEstablisher",
    "parse_session_id",
]

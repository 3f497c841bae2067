"""
In-memory plan sessions.

Each session key (wallet address or ``anonymous``) owns one partially filled
plan plus a short transcript. Sessions expire after a period of inactivity and
are swept periodically by ``SessionSweeper``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from .plan import DcaPlanData
from .tokens import TokenRegistry

logger = logging.getLogger(__name__)

ANONYMOUS_SESSION = "anonymous"
DEFAULT_SESSION_TTL = 30 * 60
DEFAULT_TRANSCRIPT_LIMIT = 10
DEFAULT_SWEEP_INTERVAL = 10 * 60

STRONG_INTENT_PHRASES = (
    "create plan",
    "create dca",
    "set up plan",
    "start plan",
    "make plan",
    "new plan",
    "investment plan",
    "dca strategy",
)
CREATION_KEYWORDS = ("create", "make", "set up", "start", "begin", "invest")
INVESTMENT_KEYWORDS = ("dca", "plan", "strategy", "investment", "buy", "swap")


@dataclass
class TranscriptEntry:
    role: str
    content: str
    timestamp: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


@dataclass
class PlanSession:
    id: str
    fields: DcaPlanData = field(default_factory=DcaPlanData)
    transcript: List[TranscriptEntry] = field(default_factory=list)
    created_at: float = 0.0
    last_active_at: float = 0.0
    is_active: bool = True


class PlanSessionStore:
    """Thread-safe session map with inactivity expiry."""

    def __init__(
        self,
        ttl: float = DEFAULT_SESSION_TTL,
        transcript_limit: int = DEFAULT_TRANSCRIPT_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self.transcript_limit = transcript_limit
        self._clock = clock
        self._sessions: Dict[str, PlanSession] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _key(key: Optional[str]) -> str:
        return (key or "").strip().lower() or ANONYMOUS_SESSION

    def _is_expired(self, session: PlanSession, now: float) -> bool:
        return now - session.last_active_at > self.ttl

    def _live(self, key: str, now: float) -> Optional[PlanSession]:
        session = self._sessions.get(key)
        if session is None or self._is_expired(session, now):
            return None
        return session

    def get_or_create(self, key: Optional[str]) -> PlanSession:
        """Return the live session for ``key``; expired or invalidated ones start over."""
        key = self._key(key)
        with self._lock:
            now = self._clock()
            session = self._live(key, now)
            if session is None or not session.is_active:
                session = PlanSession(id=key, created_at=now, last_active_at=now)
                self._sessions[key] = session
                logger.debug("Started plan session %s", key)
            session.last_active_at = now
            return session

    def get(self, key: Optional[str]) -> Optional[PlanSession]:
        with self._lock:
            return self._live(self._key(key), self._clock())

    def merge_fields(self, key: Optional[str], partial: DcaPlanData | Mapping[str, Any]) -> DcaPlanData:
        with self._lock:
            session = self.get_or_create(key)
            session.fields = session.fields.merged(partial)
            return session.fields

    def append_transcript(self, key: Optional[str], role: str, content: str) -> None:
        with self._lock:
            session = self.get_or_create(key)
            stamp = datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()
            session.transcript.append(TranscriptEntry(role=role, content=content, timestamp=stamp))
            if len(session.transcript) > self.transcript_limit:
                del session.transcript[: -self.transcript_limit]

    def has_partial_data(self, key: Optional[str]) -> bool:
        with self._lock:
            session = self.get(key)
            return bool(session and session.is_active and session.fields.has_any())

    def conversation_context(self, key: Optional[str]) -> List[Dict[str, str]]:
        """Transcript as ``{role, content}`` turns for the extraction model."""
        with self._lock:
            session = self.get(key)
            if session is None:
                return []
            return [{"role": entry.role, "content": entry.content} for entry in session.transcript]

    def clear(self, key: Optional[str]) -> None:
        """Invalidate the session after its plan was confirmed or cancelled."""
        with self._lock:
            session = self._sessions.get(self._key(key))
            if session is not None:
                session.fields = DcaPlanData()
                session.transcript = []
                session.is_active = False

    def is_plan_creation_intent(self, message: str, key: Optional[str] = None) -> bool:
        lower = (message or "").lower()
        if any(phrase in lower for phrase in STRONG_INTENT_PHRASES):
            return True
        if self.has_partial_data(key):
            return True

        has_creation = any(word in lower for word in CREATION_KEYWORDS)
        if not has_creation:
            return False
        has_investment = any(word in lower for word in INVESTMENT_KEYWORDS)
        return has_investment or _mentions_token(lower)

    def sweep(self) -> int:
        """Drop expired sessions and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, session in self._sessions.items() if self._is_expired(session, now)]
            for key in expired:
                del self._sessions[key]
        if expired:
            logger.info("Swept %d expired plan sessions", len(expired))
        return len(expired)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            now = self._clock()
            live = [s for s in self._sessions.values() if not self._is_expired(s, now)]
            return {
                "totalSessions": len(self._sessions),
                "activeSessions": len(live),
                "sessionsWithPlanData": sum(1 for s in live if s.fields.has_any()),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _mentions_token(lower: str) -> bool:
    if re.search(r"\btokens?\b", lower):
        return True
    return any(re.search(rf"\b{re.escape(term)}\b", lower) for term in TokenRegistry.vocabulary())


class SessionSweeper:
    """Background task calling ``store.sweep()`` every ``interval`` seconds."""

    def __init__(self, store: PlanSessionStore, interval: float = DEFAULT_SWEEP_INTERVAL):
        self.store = store
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="plan-session-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        try:
            await self._task
        finally:
            self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                try:
                    self.store.sweep()
                except Exception:
                    logger.exception("Plan session sweep failed")

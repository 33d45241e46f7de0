"""
SSE Session Transport

One Session per open GET /sse stream. JSON-RPC responses produced by POST
/message submissions are queued on the matching Session and written out by
that session's stream generator, interleaved with keep-alive comments.
"""

import asyncio
import json
import logging
import secrets
import threading
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ":keepalive\n\n"


def format_event(event: str, data: str) -> str:
    """Render one SSE event frame."""
    lines = "".join(f"data: {line}\n" for line in data.split("\n"))
    return f"event: {event}\n{lines}\n"


def generate_session_id() -> str:
    return secrets.token_hex(16)


def external_base_url(headers: Mapping[str, str], scheme: str, netloc: str) -> str:
    """
    Scheme and host the client connected through.

    X-Forwarded-Proto / X-Forwarded-Host win over the request's own scheme
    and Host header; only the first (client-most) value of each is used.
    """
    forwarded_proto = headers.get("x-forwarded-proto")
    forwarded_host = headers.get("x-forwarded-host")

    proto = forwarded_proto.split(",")[0].strip() if forwarded_proto else scheme
    host = forwarded_host.split(",")[0].strip() if forwarded_host else (headers.get("host") or netloc)
    return f"{proto}://{host}"


class Session:
    """An open event stream and its pending outbound frames."""

    def __init__(self, session_id: str):
        self.id = session_id
        self.created_at = datetime.now()
        self.closed = False
        self._queue: "asyncio.Queue[str]" = asyncio.Queue()

    def send(self, message: Dict[str, Any]) -> bool:
        """
        Queue a JSON-RPC envelope as an `event: message` frame.

        Returns False (and drops the message) if the stream already closed.
        """
        if self.closed:
            logger.info(f"Discarding message for closed session {self.id}")
            return False
        self._queue.put_nowait(format_event("message", json.dumps(message)))
        return True

    def close(self) -> None:
        self.closed = True

    async def next_frame(self, timeout: float) -> Optional[str]:
        """Next queued frame, or None if nothing arrived within timeout."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def pending_frames(self) -> list:
        """Drain and return every queued frame without waiting."""
        frames = []
        while not self._queue.empty():
            frames.append(self._queue.get_nowait())
        return frames


class SessionRegistry:
    """Process-scoped table of open sessions, keyed by session id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def open(self) -> Session:
        session = Session(generate_session_id())
        with self._lock:
            self._sessions[session.id] = session
        logger.info(f"New SSE connection: {session.id}")
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
            logger.info(f"SSE connection closed: {session_id}")

    def close_all(self) -> None:
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            self.close(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions


async def event_stream(
    registry: SessionRegistry,
    session: Session,
    endpoint_url: str,
    keepalive_interval: float,
) -> AsyncIterator[str]:
    """
    Frames for one session's SSE response body.

    The endpoint event always comes first. The session is removed from the
    registry when the generator finishes for any reason, including the
    client disconnecting.
    """
    try:
        yield format_event("endpoint", endpoint_url)
        while not session.closed:
            frame = await session.next_frame(keepalive_interval)
            yield frame if frame is not None else KEEPALIVE_FRAME
    finally:
        registry.close(session.id)

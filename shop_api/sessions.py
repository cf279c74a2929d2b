"""
Server-side sessions keyed by an opaque HTTP-only cookie.

The cookie carries only a random session id. Session data (identity and
cart) lives in a store: Redis in deployments, an in-process dict for local
runs and tests. A session is written, and its cookie set, only once it has
been modified.
"""
import json
import logging
import secrets
import threading
import time
from typing import Any, Dict, Optional

import redis
from fastapi import Request
from opentelemetry.instrumentation.redis import RedisInstrumentor
from starlette.middleware.base import BaseHTTPMiddleware

from shop_api.config import (
    REDIS_URL,
    SESSION_BACKEND,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SECURE,
    SESSION_TTL_SECONDS,
)

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class Session(dict):
    """
    Dict-like session data with change tracking.

    Handlers mutate the session through the mapping interface; nested
    values (such as the cart list) are reassigned after changes so the
    write is noticed.
    """

    def __init__(self, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(data or {})
        self.session_id = session_id
        self.modified = False
        self.destroyed = False
        self.previous_id: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return self.session_id is None

    def __setitem__(self, key, value):
        super().__setitem__(key, value)
        self.modified = True

    def __delitem__(self, key):
        super().__delitem__(key)
        self.modified = True

    def pop(self, key, *args):
        self.modified = True
        return super().pop(key, *args)

    def update(self, *args, **kwargs):
        super().update(*args, **kwargs)
        self.modified = True

    def clear(self):
        super().clear()
        self.modified = True

    def regenerate(self) -> None:
        """Move the data to a fresh id; the old id is dropped on save."""
        if self.session_id is not None and self.previous_id is None:
            self.previous_id = self.session_id
        self.session_id = None
        self.modified = True

    def destroy(self) -> None:
        """Discard the session and expire its cookie."""
        super().clear()
        self.destroyed = True


class MemorySessionStore:
    """
    In-process session store with per-entry expiry.

    Expired entries are dropped when loaded and in a sweep that runs every
    ``purge_interval`` saves, so abandoned sessions do not accumulate.
    """

    def __init__(self, ttl_seconds: int = SESSION_TTL_SECONDS, purge_interval: int = 100):
        self.ttl_seconds = ttl_seconds
        self.purge_interval = purge_interval
        self._sessions: Dict[str, tuple] = {}
        self._saves = 0
        self._lock = threading.Lock()

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at <= time.time():
                del self._sessions[session_id]
                return None
            return json.loads(payload)

    def save(self, session_id: str, data: Dict[str, Any]) -> None:
        # Stored as JSON so callers never share mutable state with the store
        with self._lock:
            self._sessions[session_id] = (time.time() + self.ttl_seconds, json.dumps(data))
            self._saves += 1
            if self._saves % self.purge_interval == 0:
                self._purge_expired()

    def _purge_expired(self) -> None:
        now = time.time()
        expired = [sid for sid, (expires_at, _) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.debug("Purged expired sessions", extra={"count": len(expired)})

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


class RedisSessionStore:
    """Session store backed by Redis string keys with a TTL."""

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        prefix: str = "session:"
    ):
        """
        Initialize Redis session store.

        Args:
            redis_client: Redis connection
            ttl_seconds: Session lifetime, refreshed on every save
            prefix: Key prefix for session entries
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        payload = self.redis.get(self._key(session_id))
        if payload is None:
            return None
        return json.loads(payload)

    def save(self, session_id: str, data: Dict[str, Any]) -> None:
        self.redis.setex(self._key(session_id), self.ttl_seconds, json.dumps(data))

    def delete(self, session_id: str) -> None:
        self.redis.delete(self._key(session_id))


def build_session_store(backend: str = SESSION_BACKEND):
    """Create the configured session store."""
    if backend == "memory":
        logger.info("Using in-memory session store")
        return MemorySessionStore()
    if backend == "redis":
        logger.info("Using Redis session store", extra={"redis_url": REDIS_URL})
        redis_client = redis.from_url(REDIS_URL, decode_responses=True)
        RedisInstrumentor().instrument(redis_client=redis_client)
        return RedisSessionStore(redis_client)
    raise ValueError(f"Unknown session backend: {backend}")


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Load the session for each request and persist it afterwards.

    The session is exposed as ``request.state.session``.
    """

    def __init__(
        self,
        app,
        store,
        cookie_name: str = SESSION_COOKIE_NAME,
        max_age: int = SESSION_TTL_SECONDS,
        secure: bool = SESSION_COOKIE_SECURE
    ):
        super().__init__(app)
        self.store = store
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.secure = secure

    async def dispatch(self, request: Request, call_next):
        session_id = request.cookies.get(self.cookie_name)
        data = None
        if session_id:
            try:
                data = self.store.load(session_id)
            except redis.RedisError as e:
                # Fail open: serve the request with a fresh anonymous session
                logger.error("Session store unavailable", extra={
                    "path": request.url.path,
                    "error": str(e)
                })
        if data is None:
            session = Session()
        else:
            session = Session(session_id, data)
        request.state.session = session

        response = await call_next(request)

        try:
            self._persist(session, response)
        except redis.RedisError as e:
            logger.error("Failed to persist session", extra={
                "path": request.url.path,
                "error": str(e)
            })

        return response

    def _persist(self, session: Session, response) -> None:
        if session.destroyed:
            for stale_id in (session.session_id, session.previous_id):
                if stale_id:
                    self.store.delete(stale_id)
            response.delete_cookie(self.cookie_name, httponly=True, samesite="lax")
            return

        if session.modified:
            if session.previous_id:
                self.store.delete(session.previous_id)
            if session.session_id is None:
                session.session_id = new_session_id()
            self.store.save(session.session_id, dict(session))
            response.set_cookie(
                self.cookie_name,
                session.session_id,
                max_age=self.max_age,
                httponly=True,
                samesite="lax",
                secure=self.secure,
            )

# sessions.py
"""
Серверные сессии: в cookie лежит только случайный sid, данные сессии хранятся
в ``SessionStore``. По умолчанию это ``MemorySessionStore`` с периодической
очисткой протухших записей; хранилище можно заменить (Redis и т.п.), реализовав
тот же протокол.
"""
from __future__ import annotations
import secrets
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from flask import Flask, Request, Response
from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict


class SessionStore(Protocol):
    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, sid: str, data: Dict[str, Any], ttl: int) -> None:
        ...

    def delete(self, sid: str) -> None:
        ...


class MemorySessionStore:
    def __init__(self, check_period: int = 24 * 60 * 60, clock: Callable[[], float] = time.monotonic):
        self._data: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._check_period = check_period
        self._next_purge = clock() + check_period

    def _maybe_purge(self, now: float) -> None:
        if now < self._next_purge:
            return
        for sid in [k for k, (exp, _) in self._data.items() if exp <= now]:
            del self._data[sid]
        self._next_purge = now + self._check_period

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            now = self._clock()
            self._maybe_purge(now)
            item = self._data.get(sid)
            if item is None:
                return None
            exp, data = item
            if exp <= now:
                del self._data[sid]
                return None
            return dict(data)

    def set(self, sid: str, data: Dict[str, Any], ttl: int) -> None:
        with self._lock:
            now = self._clock()
            self._maybe_purge(now)
            self._data[sid] = (now + ttl, dict(data))

    def delete(self, sid: str) -> None:
        with self._lock:
            self._data.pop(sid, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class ServerSession(CallbackDict, SessionMixin):
    def __init__(self, initial: Optional[Dict[str, Any]] = None, sid: str = "", new: bool = False):
        def on_update(self):
            self.modified = True
        CallbackDict.__init__(self, initial, on_update)
        self.sid = sid
        self.new = new
        self.modified = False
        self.previous_sid: Optional[str] = None


def _new_sid() -> str:
    return secrets.token_urlsafe(32)


class ServerSessionInterface(SessionInterface):
    def __init__(self, store: SessionStore):
        self.store = store

    def open_session(self, app: Flask, request: Request) -> ServerSession:
        sid = request.cookies.get(self.get_cookie_name(app))
        if sid:
            data = self.store.get(sid)
            if data is not None:
                return ServerSession(data, sid=sid)
        return ServerSession(sid=_new_sid(), new=True)

    def regenerate(self, session: ServerSession) -> None:
        """Новый sid для тех же данных (после логина, против фиксации сессии)."""
        if not session.new:
            session.previous_sid = session.sid
        session.sid = _new_sid()
        session.modified = True

    def save_session(self, app: Flask, session: ServerSession, response: Response) -> None:
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if session.previous_sid:
            self.store.delete(session.previous_sid)

        if not session:
            # сессию очистили (logout): убираем и запись, и cookie
            if session.modified and not session.new:
                self.store.delete(session.sid)
                response.delete_cookie(name, domain=domain, path=path)
            return

        if not self.should_set_cookie(app, session):
            return

        ttl = int(app.permanent_session_lifetime.total_seconds())
        self.store.set(session.sid, dict(session), ttl)
        response.set_cookie(
            name,
            session.sid,
            expires=self.get_expiration_time(app, session),
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )


def init_sessions(app: Flask, store: Optional[SessionStore] = None) -> SessionStore:
    store = store or MemorySessionStore(check_period=int(app.config.get("SESSION_CHECK_PERIOD", 86400)))
    app.session_interface = ServerSessionInterface(store)
    app.extensions["session_store"] = store
    return store

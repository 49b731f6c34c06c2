import datetime
import logging
import secrets
import threading
from typing import Dict, NamedTuple, Optional

from fastapi import Depends, Request
from jose import JWTError, jwt

from src.api.errors import SessionError
from src.config import SESSION_COOKIE_NAME

logger = logging.getLogger("food_journal.sessions")


# PUBLIC_INTERFACE
class SessionData(NamedTuple):
    """What the server remembers about a logged-in browser."""
    user_id: int
    username: str
    expires_at: datetime.datetime


# PUBLIC_INTERFACE
class SessionStore:
    """
    Server-side session store.

    Sessions live in process memory keyed by a random session id. The cookie
    only carries that id, signed with the session secret, so a client can
    neither forge one nor learn anything from it.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", max_age: datetime.timedelta = datetime.timedelta(days=1)):
        self.secret = secret
        self.algorithm = algorithm
        self.max_age = max_age
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def create(self, user_id: int, username: str) -> str:
        """Open a session for the user and return the signed cookie value."""
        sid = secrets.token_urlsafe(32)
        now = datetime.datetime.now(datetime.timezone.utc)
        expires_at = now + self.max_age
        with self._lock:
            self._sweep(now)
            self._sessions[sid] = SessionData(user_id, username, expires_at)
        return jwt.encode({"sid": sid, "exp": expires_at}, self.secret, algorithm=self.algorithm)

    def _sweep(self, now: datetime.datetime) -> None:
        # caller holds the lock
        expired = [sid for sid, data in self._sessions.items() if data.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]

    def _decode(self, token: str) -> Optional[str]:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return None
        return payload.get("sid")

    def get(self, token: Optional[str]) -> Optional[SessionData]:
        """Resolve a cookie value to its session, or None if unknown, forged or expired."""
        if not token:
            return None
        sid = self._decode(token)
        if sid is None:
            return None
        with self._lock:
            data = self._sessions.get(sid)
            if data is None:
                return None
            if data.expires_at <= datetime.datetime.now(datetime.timezone.utc):
                del self._sessions[sid]
                return None
        return data

    def destroy(self, token: str) -> bool:
        """
        Forget the session behind a cookie value.

        Expired tokens still close their session. A token that is malformed or
        signed with another secret has nothing to close and returns False.
        Raises SessionError when a correctly signed token names no session.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm], options={"verify_exp": False})
        except JWTError:
            logger.info("Ignoring stale session cookie")
            return False
        sid = payload.get("sid")
        if sid is None:
            logger.error("Error destroying session: signed token carries no session id")
            raise SessionError()
        with self._lock:
            return self._sessions.pop(sid, None) is not None


# PUBLIC_INTERFACE
def get_session_store(request: Request) -> SessionStore:
    """Session store attached to the running app."""
    return request.app.state.session_store


# PUBLIC_INTERFACE
def get_current_session(request: Request, store: SessionStore = Depends(get_session_store)) -> Optional[SessionData]:
    """Session of the requesting browser, or None when not logged in."""
    return store.get(request.cookies.get(SESSION_COOKIE_NAME))

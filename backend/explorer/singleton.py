from __future__ import annotations

import threading

from explorer.session import ExplorerSession

_SESSION: ExplorerSession | None = None
_SESSION_LOCK = threading.RLock()


def get_session() -> ExplorerSession:
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = ExplorerSession()
        return _SESSION


def set_session(session: ExplorerSession) -> None:
    # Tests install a session whose upstream client is backed by a mock transport.
    global _SESSION
    with _SESSION_LOCK:
        _SESSION = session


def reset_session() -> None:
    global _SESSION
    with _SESSION_LOCK:
        _SESSION = None

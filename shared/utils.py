from __future__ import annotations
import uuid
from urllib.parse import urlsplit

# ========================================
#           INPUT VALIDATION HELPERS
# ========================================
"""
Helpers the CLI and config loader call to decide whether user-supplied
values are safe to put on the wire.
"""

_WS_SCHEMES = {"ws", "wss"}


def is_uuid_v4(s: str) -> bool:
    """
    enforces that session ids are valid UUIDv4s in canonical string form
    """
    try:
        u = uuid.UUID(s)
        return u.version == 4 and str(u) == s.lower()
    except Exception:
        return False


def new_session_id() -> str:
    return str(uuid.uuid4())


def is_ws_url(s: str) -> bool:
    """
    Accepts 'ws://host[:port][/path]' or 'wss://...'.

    - scheme must be ws or wss
    - host must be non-empty
    - port, when given, must be between 1 and 65535
    """
    try:
        parts = urlsplit(s)
        if parts.scheme not in _WS_SCHEMES or not parts.hostname:
            return False
        port = parts.port
        return port is None or 0 < port <= 65535
    except ValueError:
        return False

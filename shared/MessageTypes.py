from __future__ import annotations

from enum import Enum


class MessageType(str, Enum):
    """Agent server envelope types."""

    # Client-to-Server
    USER_MESSAGE = "user_message"                # Chat prompt wrapping an SDK user message

    # Server-to-Client
    CONNECTED = "connected"                      # Handshake confirmation
    SDK_MESSAGE = "sdk_message"                  # Opaque agent SDK response
    ERROR = "error"                              # Server-side failure report


class SdkMessageType(str, Enum):
    """Inner `data.type` values of SDK messages sent by this client."""
    USER = "user"


class Role(str, Enum):
    USER = "user"

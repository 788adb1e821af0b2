from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import json

from shared.MessageTypes import MessageType, Role, SdkMessageType


class MalformedFrameError(Exception):
    """Raised when an inbound frame is not a JSON object."""
    pass


@dataclass
class Envelope:
    """
    Inbound frame from the agent server:
    {
    "type": "STRING",
    "data": { ... }      (optional, present on sdk_message)
    "error": "STRING"    (optional, present on error)
    }

    Only the top level is parsed. `data` is opaque and kept as-is, and an
    unrecognised or missing `type` is left for the dispatcher to report.
    """
    type: Optional[str]
    data: Any = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_json(cls, json_str: str | bytes) -> 'Envelope':
        """Parse a text (or UTF-8 binary) frame into an Envelope"""
        if isinstance(json_str, bytes):
            try:
                json_str = json_str.decode('utf-8')
            except UnicodeDecodeError as e:
                raise MalformedFrameError(f"Frame is not UTF-8: {e}")
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise MalformedFrameError(f"Invalid JSON: {e}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> 'Envelope':
        if not isinstance(data, dict):
            raise MalformedFrameError(f"Frame must be a JSON object, got {type(data).__name__}")

        msg_type = data.get('type')
        error = data.get('error')
        return cls(
            type=msg_type if isinstance(msg_type, str) else None,
            data=data.get('data'),
            error=error if error is None else str(error),
            raw=data,
        )


@dataclass
class UserMessage:
    """
    Outbound chat prompt. Wire shape is fixed by the agent server:
    {
    "type": "user_message",
    "data": {
        "type": "user",
        "session_id": "UUID",
        "parent_tool_use_id": null,
        "message": {"role": "user", "content": "STRING"}
    }
    }
    """
    session_id: str
    content: str
    parent_tool_use_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': MessageType.USER_MESSAGE.value,
            'data': {
                'type': SdkMessageType.USER.value,
                'session_id': self.session_id,
                'parent_tool_use_id': self.parent_tool_use_id,
                'message': {
                    'role': Role.USER.value,
                    'content': self.content,
                },
            },
        }

    def to_json(self) -> str:
        """Convert message to JSON string"""
        return json.dumps(self.to_dict(), separators=(',', ':'))


def create_user_message(session_id: str, content: str) -> UserMessage:
    """Helper to build a fresh outbound prompt for the given session"""
    return UserMessage(session_id=session_id, content=content)

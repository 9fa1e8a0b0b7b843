"""Conversation data types and their OpenAI chat-completions wire shape."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCallRequest:
    """One tool invocation requested by the model within a round."""

    id: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory = dict)
    raw_arguments: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Return the `tool_calls[]` entry the backend expects back."""
        arguments = self.raw_arguments
        if arguments is None:
            arguments = json.dumps(self.arguments, ensure_ascii = False)
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.tool_name,
                "arguments": arguments,
            },
        }


@dataclass
class Message:
    """A single conversation message."""

    role: Role
    content: str = ""
    tool_calls: List[ToolCallRequest] = field(default_factory = list)
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role = Role.SYSTEM, content = content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role = Role.USER, content = content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[List[ToolCallRequest]] = None) -> "Message":
        return cls(role = Role.ASSISTANT, content = content or "", tool_calls = list(tool_calls or []))

    @classmethod
    def tool(cls, tool_call_id: str, tool_name: str, content: str) -> "Message":
        return cls(
            role = Role.TOOL,
            content = content,
            tool_call_id = tool_call_id,
            tool_name = tool_name,
        )

    def to_wire(self) -> Dict[str, Any]:
        """Convert to an OpenAI-compatible message dict."""
        payload: Dict[str, Any] = {
            "role": self.role.value,
            "content": self.content or "",
        }
        if self.role is Role.ASSISTANT and self.tool_calls:
            payload["tool_calls"] = [tool_call.to_wire() for tool_call in self.tool_calls]
        if self.role is Role.TOOL:
            payload["tool_call_id"] = self.tool_call_id
        return payload


@dataclass
class ConversationState:
    """Per-user conversation state owned by the context store."""

    user_id: str
    history: List[Message] = field(default_factory = list)
    preferences: Dict[str, str] = field(default_factory = dict)
    last_active_at: datetime = field(default_factory = lambda: utc_now())

    def touch(self) -> None:
        self.last_active_at = utc_now()


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def to_wire_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    return [message.to_wire() for message in messages]

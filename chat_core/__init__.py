"""Tool-augmented chat orchestration: context store, tool catalog and turn loop."""

from .chat_tools import ChatTools
from .completion_stream import (
    CompletionEvent,
    CompletionStreamAdapter,
    Failed,
    RoundComplete,
    TextDelta,
    ToolCallRequested,
)
from .context_store import ContextStore
from .errors import (
    BackendFailure,
    ChatError,
    DuplicateToolError,
    InvalidArguments,
    ToolChainExceeded,
    ToolError,
    ToolExecutionError,
    ToolNotFound,
    TurnCancelled,
    TurnError,
)
from .models import ConversationState, Message, Role, ToolCallRequest
from .runtime_config import RuntimeOptions, add_runtime_args, runtime_options_from_args
from .session_driver import CLEAR_CONTEXT_COMMAND, SessionDriver, is_clear_command
from .tool_catalog import ParameterSpec, ToolCatalog, ToolDescriptor, ToolResult, tool
from .trace_logger import TraceLogger
from .turn_orchestrator import TurnOrchestrator, TurnResult, TurnState

__all__ = [
    "ChatTools",
    "CompletionEvent",
    "CompletionStreamAdapter",
    "Failed",
    "RoundComplete",
    "TextDelta",
    "ToolCallRequested",
    "ContextStore",
    "BackendFailure",
    "ChatError",
    "DuplicateToolError",
    "InvalidArguments",
    "ToolChainExceeded",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFound",
    "TurnCancelled",
    "TurnError",
    "ConversationState",
    "Message",
    "Role",
    "ToolCallRequest",
    "RuntimeOptions",
    "add_runtime_args",
    "runtime_options_from_args",
    "CLEAR_CONTEXT_COMMAND",
    "SessionDriver",
    "is_clear_command",
    "ParameterSpec",
    "ToolCatalog",
    "ToolDescriptor",
    "ToolResult",
    "tool",
    "TraceLogger",
    "TurnOrchestrator",
    "TurnResult",
    "TurnState",
]

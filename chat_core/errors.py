"""Error taxonomy for tool invocation and turn execution."""

from typing import Optional


class ChatError(Exception):
    """Base class for all orchestrator errors."""


class DuplicateToolError(ChatError, ValueError):
    """Raised when a tool name is registered twice in one catalog."""

    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name}")
        self.name = name


# -----------------------------------------------------------------------------
# Tool-level errors: recovered locally and reported to the model.
# -----------------------------------------------------------------------------

class ToolError(ChatError):
    """Failure of a single tool invocation."""

    error_type = "tool_error"

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name
        self.message = message


class ToolNotFound(ToolError):
    error_type = "tool_not_found"

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Unknown tool: {tool_name}")


class InvalidArguments(ToolError):
    error_type = "invalid_arguments"


class ToolExecutionError(ToolError):
    error_type = "execution_error"

    def __init__(self, tool_name: str, cause: BaseException):
        super().__init__(tool_name, f"{type(cause).__name__}: {cause}")
        self.cause = cause

    @property
    def timed_out(self) -> bool:
        return isinstance(self.cause, TimeoutError)


# -----------------------------------------------------------------------------
# Turn-level errors: the turn ends and nothing is committed.
# -----------------------------------------------------------------------------

class TurnError(ChatError):
    """A turn that did not reach a final answer."""


class BackendFailure(TurnError):
    """The completion backend failed or returned a malformed stream."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ToolChainExceeded(TurnError):
    """The model kept requesting tools past the configured round cap."""

    def __init__(self, rounds: int):
        super().__init__(f"Tool-calling round limit reached ({rounds} rounds)")
        self.rounds = rounds


class TurnCancelled(TurnError):
    """The turn was aborted by its caller."""

    def __init__(self, message: str = "Turn cancelled"):
        super().__init__(message)

"""Runtime option parsing for the chat orchestrator front ends."""

import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional


BOOL_TRUE = {"1", "true", "yes", "y", "on"}
BOOL_FALSE = {"0", "false", "no", "n", "off"}

DEFAULT_MAX_TOOL_ROUNDS = 8
DEFAULT_TOOL_TIMEOUT = 30.0
DEFAULT_COMPLETION_TIMEOUT = 120.0
DEFAULT_MAX_TOKENS = 4096


@dataclass
class RuntimeOptions:
    """Runtime switches and limits merged from CLI and environment variables."""

    show_llm_response: bool = False
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    max_tool_retries: int = 0
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT
    completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT
    max_tokens: int = DEFAULT_MAX_TOKENS
    user_id: str = field(default_factory = lambda: str(uuid.uuid4()))

    def as_dict(self) -> dict:
        """Return JSON-serializable dict form for logging."""
        return {
            "show_llm_response": self.show_llm_response,
            "max_tool_rounds": self.max_tool_rounds,
            "max_tool_retries": self.max_tool_retries,
            "tool_timeout": self.tool_timeout,
            "completion_timeout": self.completion_timeout,
            "max_tokens": self.max_tokens,
            "user_id": self.user_id,
        }


def add_runtime_args(parser: Any) -> None:
    """Attach shared runtime flags to an argparse parser."""
    import argparse

    parser.add_argument(
        "--show-llm-response",
        dest = "show_llm_response",
        action = argparse.BooleanOptionalAction,
        default = None,
        help = "Show per-round LLM assistant/tool trace logs.",
    )
    parser.add_argument(
        "--max-tool-rounds",
        dest = "max_tool_rounds",
        type = int,
        default = None,
        help = f"Maximum tool-calling rounds per turn (default: {DEFAULT_MAX_TOOL_ROUNDS}).",
    )
    parser.add_argument(
        "--max-tool-retries",
        dest = "max_tool_retries",
        type = int,
        default = None,
        help = "Retries for a tool call that failed during execution (default: 0).",
    )
    parser.add_argument(
        "--tool-timeout",
        dest = "tool_timeout",
        type = float,
        default = None,
        help = f"Seconds allowed per tool invocation (default: {DEFAULT_TOOL_TIMEOUT}).",
    )
    parser.add_argument(
        "--completion-timeout",
        dest = "completion_timeout",
        type = float,
        default = None,
        help = f"Seconds allowed for the completion stream (default: {DEFAULT_COMPLETION_TIMEOUT}).",
    )
    parser.add_argument(
        "--max-tokens",
        dest = "max_tokens",
        type = int,
        default = None,
        help = f"Max tokens per completion round (default: {DEFAULT_MAX_TOKENS}).",
    )
    parser.add_argument(
        "--user-id",
        dest = "user_id",
        default = None,
        help = "User id for this session (default: random UUID).",
    )


def runtime_options_from_args(args: Any) -> RuntimeOptions:
    """Build runtime options with CLI > ENV > default precedence."""
    show_llm_response = _resolve_bool(
        cli_value = getattr(args, "show_llm_response", None),
        env_name = "AGENT_SHOW_LLM_RESPONSE",
        default = False,
    )
    max_tool_rounds = _resolve_int(
        cli_value = getattr(args, "max_tool_rounds", None),
        env_name = "AGENT_MAX_TOOL_ROUNDS",
        default = DEFAULT_MAX_TOOL_ROUNDS,
    )
    max_tool_retries = _resolve_int(
        cli_value = getattr(args, "max_tool_retries", None),
        env_name = "AGENT_MAX_TOOL_RETRIES",
        default = 0,
    )
    tool_timeout = _resolve_positive_float(
        cli_value = getattr(args, "tool_timeout", None),
        env_name = "AGENT_TOOL_TIMEOUT",
        default = DEFAULT_TOOL_TIMEOUT,
    )
    completion_timeout = _resolve_positive_float(
        cli_value = getattr(args, "completion_timeout", None),
        env_name = "AGENT_COMPLETION_TIMEOUT",
        default = DEFAULT_COMPLETION_TIMEOUT,
    )
    max_tokens = _resolve_int(
        cli_value = getattr(args, "max_tokens", None),
        env_name = "AGENT_MAX_TOKENS",
        default = DEFAULT_MAX_TOKENS,
    )
    user_id = _resolve_str(
        cli_value = getattr(args, "user_id", None),
        env_name = "AGENT_USER_ID",
        default = str(uuid.uuid4()),
    )

    return RuntimeOptions(
        show_llm_response = show_llm_response,
        max_tool_rounds = max(0, max_tool_rounds),
        max_tool_retries = max(0, max_tool_retries),
        tool_timeout = tool_timeout,
        completion_timeout = completion_timeout,
        max_tokens = max_tokens if max_tokens > 0 else DEFAULT_MAX_TOKENS,
        user_id = user_id,
    )


def _resolve_bool(cli_value: Any, env_name: str, default: bool) -> bool:
    """Resolve bool with CLI > ENV > default precedence."""
    if cli_value is not None:
        return bool(cli_value)

    raw_env = os.getenv(env_name)
    if raw_env is None:
        return default

    normalized = raw_env.strip().lower()
    if normalized in BOOL_TRUE:
        return True
    if normalized in BOOL_FALSE:
        return False
    return default


def _resolve_int(cli_value: Any, env_name: str, default: int) -> int:
    """Resolve int option with fallback to default on parse failure."""
    if cli_value is not None:
        return int(cli_value)

    raw_env = os.getenv(env_name)
    if raw_env is None:
        return default

    try:
        return int(raw_env.strip())
    except ValueError:
        return default


def _resolve_positive_float(cli_value: Any, env_name: str, default: float) -> float:
    """Resolve a float that must be > 0; anything else falls back to default."""
    value: Optional[float] = None
    if cli_value is not None:
        value = float(cli_value)
    else:
        raw_env = os.getenv(env_name)
        if raw_env is not None:
            try:
                value = float(raw_env.strip())
            except ValueError:
                value = None

    if value is None or value <= 0:
        return default
    return value


def _resolve_str(cli_value: Any, env_name: str, default: str) -> str:
    """Resolve string option with CLI > ENV > default precedence."""
    if cli_value is not None and str(cli_value).strip():
        return str(cli_value)

    raw_env = os.getenv(env_name)
    if raw_env is not None and raw_env.strip():
        return raw_env.strip()

    return default

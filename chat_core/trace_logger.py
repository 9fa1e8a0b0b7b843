"""Per-round model response and tool result trace logger."""

import json
import logging
from typing import List, Optional

from .models import ToolCallRequest


class TraceLogger:
    """Conditional trace logging for assistant replies, tool calls and tool results."""

    def __init__(self, enabled: bool, logger: Optional[logging.Logger] = None):
        self.enabled = bool(enabled)
        self.logger = logger or logging.getLogger("TraceLogger")

    def log_round(
        self,
        actor: str,
        round_index: int,
        assistant_content: str,
        tool_calls: Optional[List[ToolCallRequest]] = None,
    ) -> None:
        """Log assistant text and tool-call summaries for one backend round."""
        if not self.enabled:
            return

        content_preview = _shorten(assistant_content or "", 400)
        self.logger.info(f"[LLM:{actor}#{round_index}] assistant: {content_preview or '(empty)'}")

        if tool_calls:
            summary = "; ".join(_summarize_tool_call(tool_call) for tool_call in tool_calls)
            self.logger.info(f"[LLM:{actor}#{round_index}] tool_calls: {summary}")

    def log_tool_result(self, actor: str, tool_call: ToolCallRequest, ok: bool, output: str) -> None:
        if not self.enabled:
            return

        status = "ok" if ok else "error"
        self.logger.info(f"[TOOL:{actor}] {tool_call.tool_name} ({tool_call.id}) {status}: {_shorten(output, 200)}")


def _summarize_tool_call(tool_call: ToolCallRequest) -> str:
    """Build compact 'name(args)' summary from a tool call request."""
    args_preview = json.dumps(tool_call.arguments, ensure_ascii = False, default = str)
    return f"{tool_call.tool_name or 'unknown'}({_shorten(args_preview, 160)})"


def _shorten(text: str, max_chars: int) -> str:
    """Trim long text for concise logs."""
    normalized = text.replace("\n", "\\n").strip()
    if len(normalized) <= max_chars:
        return normalized
    return normalized[:max_chars] + "..."

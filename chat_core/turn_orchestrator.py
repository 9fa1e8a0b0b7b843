"""Tool-calling turn state machine: stream, execute tools, repeat until a final answer."""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .completion_stream import CompletionStreamAdapter, Failed, RoundComplete, TextDelta, ToolCallRequested
from .errors import BackendFailure, ToolChainExceeded, ToolExecutionError, TurnCancelled
from .models import Message, ToolCallRequest, to_wire_messages
from .tool_catalog import ToolCatalog, ToolResult
from .trace_logger import TraceLogger


logger = logging.getLogger("Turn-Orchestrator")

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Use the available tools to answer questions and perform actions."
)
DEFAULT_MAX_TOOL_ROUNDS = 8

# How often a waiting tool invocation re-checks the cancel event.
_CANCEL_POLL_SECONDS = 0.05


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_COMPLETION = "awaiting_completion"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TurnResult:
    """A completed turn: updated history (no system message) and final answer."""

    messages: List[Message]
    answer: str
    rounds: int
    tool_calls: int


class TurnOrchestrator:
    """
    Drive one user turn from new input to final answer.

    Shared by all users: it keeps no per-turn state on the instance. Each
    call works on its own copy of the history, so a failed or cancelled turn
    leaves the caller's list untouched.
    """

    def __init__(
        self,
        adapter: CompletionStreamAdapter,
        catalog: ToolCatalog,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        tool_timeout: Optional[float] = None,
        max_tool_retries: int = 0,
        trace_logger: Optional[TraceLogger] = None,
    ):
        self.adapter = adapter
        self.catalog = catalog
        self.system_prompt = system_prompt
        self.max_tool_rounds = max(0, int(max_tool_rounds))
        self.tool_timeout = tool_timeout
        self.max_tool_retries = max(0, int(max_tool_retries))
        self.tracer = trace_logger or TraceLogger(enabled = False)

    def run_turn(
        self,
        history: List[Message],
        user_text: str,
        on_text: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None,
        actor: str = "main",
    ) -> TurnResult:
        """
        Run the full tool-calling loop for one user input.

        Raises:
            BackendFailure: the backend failed or the stream ended early.
            ToolChainExceeded: more tool rounds were requested than allowed.
            TurnCancelled: `cancel_event` was set.
        """
        messages = [Message.system(self.system_prompt)]
        messages.extend(history)
        messages.append(Message.user(user_text))

        tool_schemas = self.catalog.schemas()
        tool_rounds = 0
        tool_call_count = 0
        round_index = 0
        seen_call_ids = set()
        state = TurnState.IDLE

        while True:
            _check_cancelled(cancel_event)
            round_index += 1
            state = self._transition(state, TurnState.AWAITING_COMPLETION, actor, round_index)

            text_parts, pending_calls = self._consume_round(
                messages = messages,
                tool_schemas = tool_schemas,
                on_text = on_text,
                cancel_event = cancel_event,
                actor = actor,
            )
            content = "".join(text_parts)
            _ensure_unique_ids(pending_calls, seen_call_ids, round_index)

            self.tracer.log_round(
                actor = actor,
                round_index = round_index,
                assistant_content = content,
                tool_calls = pending_calls,
            )

            if not pending_calls:
                messages.append(Message.assistant(content))
                self._transition(state, TurnState.DONE, actor, round_index)
                return TurnResult(
                    messages = messages[1:],
                    answer = content,
                    rounds = round_index,
                    tool_calls = tool_call_count,
                )

            if tool_rounds >= self.max_tool_rounds:
                self._transition(state, TurnState.FAILED, actor, round_index)
                logger.warning(f"[{actor}] Tool round cap of {self.max_tool_rounds} exceeded")
                raise ToolChainExceeded(tool_rounds)

            messages.append(Message.assistant(content, tool_calls = pending_calls))
            state = self._transition(state, TurnState.EXECUTING_TOOLS, actor, round_index)

            for tool_call in pending_calls:
                result = self._invoke_tool(tool_call, cancel_event)
                output = result.to_text()
                self.tracer.log_tool_result(actor = actor, tool_call = tool_call, ok = result.ok, output = output)
                messages.append(Message.tool(tool_call.id, tool_call.tool_name, output))

            tool_rounds += 1
            tool_call_count += len(pending_calls)

    def _consume_round(
        self,
        messages: List[Message],
        tool_schemas: List[Dict[str, Any]],
        on_text: Optional[Callable[[str], None]],
        cancel_event: Optional[threading.Event],
        actor: str,
    ):
        """Read one backend round; return accumulated text parts and tool calls."""
        text_parts: List[str] = []
        pending_calls: List[ToolCallRequest] = []
        round_completed = False

        events = self.adapter.stream(
            messages = to_wire_messages(messages),
            tool_schemas = tool_schemas,
            cancel_event = cancel_event,
        )
        try:
            for event in events:
                if isinstance(event, TextDelta):
                    text_parts.append(event.text)
                    if on_text is not None:
                        on_text(event.text)
                elif isinstance(event, ToolCallRequested):
                    pending_calls.append(event.request)
                elif isinstance(event, RoundComplete):
                    round_completed = True
                    break
                elif isinstance(event, Failed):
                    logger.error(f"[{actor}] Backend failure: {event.cause}")
                    raise BackendFailure(f"Completion backend failed: {event.cause}", cause = event.cause)
        finally:
            close = getattr(events, "close", None)
            if callable(close):
                close()

        _check_cancelled(cancel_event)
        if not round_completed:
            raise BackendFailure("Completion stream ended before the round completed")

        return text_parts, pending_calls

    def _invoke_tool(self, tool_call: ToolCallRequest, cancel_event: Optional[threading.Event]) -> ToolResult:
        """Invoke through the catalog with timeout and retries for execution errors."""
        attempts = 1 + self.max_tool_retries
        result = None
        for attempt in range(1, attempts + 1):
            result = _run_with_timeout(
                lambda: self.catalog.invoke(tool_call.tool_name, tool_call.arguments),
                tool_name = tool_call.tool_name,
                timeout = self.tool_timeout,
                cancel_event = cancel_event,
            )
            if not isinstance(result.error, ToolExecutionError):
                return result
            if attempt < attempts:
                logger.info(f"Retrying {tool_call.tool_name} after error (attempt {attempt + 1}/{attempts})")
        return result

    @staticmethod
    def _transition(current: TurnState, target: TurnState, actor: str, round_index: int) -> TurnState:
        logger.debug(f"[{actor}] round {round_index}: {current.value} -> {target.value}")
        return target


def _run_with_timeout(
    invoke: Callable[[], ToolResult],
    tool_name: str,
    timeout: Optional[float],
    cancel_event: Optional[threading.Event],
) -> ToolResult:
    """
    Run `invoke` on a daemon thread and wait for it.

    A timeout becomes a ToolExecutionError result; cancellation raises
    TurnCancelled. In both cases the worker thread is abandoned and its late
    result discarded.
    """
    outcome: Dict[str, Any] = {}
    finished = threading.Event()

    def _target():
        try:
            outcome["result"] = invoke()
        except BaseException as exc:
            outcome["error"] = exc
        finally:
            finished.set()

    worker = threading.Thread(target = _target, name = f"tool-{tool_name}", daemon = True)
    worker.start()

    deadline = None if timeout is None else time.monotonic() + timeout
    while not finished.is_set():
        _check_cancelled(cancel_event)
        wait_for = _CANCEL_POLL_SECONDS
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"Tool {tool_name} timed out after {timeout}s")
                return ToolResult(
                    tool_name = tool_name,
                    error = ToolExecutionError(tool_name, TimeoutError(f"timed out after {timeout}s")),
                )
            wait_for = min(wait_for, remaining)
        finished.wait(wait_for)

    if "error" in outcome:
        return ToolResult(tool_name = tool_name, error = ToolExecutionError(tool_name, outcome["error"]))
    return outcome["result"]


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise TurnCancelled()


def _ensure_unique_ids(tool_calls: List[ToolCallRequest], seen: set, round_index: int) -> None:
    """Tool results are correlated by id, so ids must be unique within the turn."""
    for index, tool_call in enumerate(tool_calls):
        if not tool_call.id or tool_call.id in seen:
            tool_call.id = f"call_r{round_index}_{index}"
        seen.add(tool_call.id)

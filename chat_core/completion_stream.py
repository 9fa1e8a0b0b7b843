"""Streaming chat-completion adapter producing uniform completion events."""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Union

import openai

from .models import ToolCallRequest


logger = logging.getLogger("Completion-Stream")


@dataclass
class TextDelta:
    """Incremental assistant text, in emission order."""

    text: str


@dataclass
class ToolCallRequested:
    """The backend asks for a tool to be executed."""

    request: ToolCallRequest


@dataclass
class RoundComplete:
    """The current generation round has ended."""

    finish_reason: Optional[str] = None


@dataclass
class Failed:
    """The backend failed mid-stream; no further events follow."""

    cause: BaseException


CompletionEvent = Union[TextDelta, ToolCallRequested, RoundComplete, Failed]


class CompletionStreamAdapter:
    """Wrap an OpenAI-compatible client as a lazy sequence of CompletionEvents."""

    def __init__(
        self,
        client: Any,
        model: str,
        max_tokens: int = 4096,
        timeout: Optional[float] = None,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

    def stream(
        self,
        messages: List[Dict[str, Any]],
        tool_schemas: Optional[List[Dict[str, Any]]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[CompletionEvent]:
        """
        Run one backend round.

        Yields TextDelta as chunks arrive, then every assembled tool call in
        index order, then RoundComplete. Errors, including a stream that ends
        without a finish reason, yield a single Failed. When
        `cancel_event` is set the HTTP stream is closed and iteration stops
        without RoundComplete.
        """
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "stream": True,
        }
        if tool_schemas:
            request["tools"] = tool_schemas
        if self.timeout is not None:
            request["timeout"] = self.timeout

        try:
            stream_iter = self.client.chat.completions.create(**request)
        except openai.OpenAIError as exc:
            logger.error(f"Completion request failed: {exc}")
            yield Failed(cause = exc)
            return

        tool_buffers: Dict[int, Dict[str, Any]] = {}
        finish_reason = None
        chunk_count = 0

        try:
            try:
                for chunk in stream_iter:
                    if cancel_event is not None and cancel_event.is_set():
                        logger.info("Completion stream cancelled")
                        return

                    chunk_count += 1
                    choices = getattr(chunk, "choices", None) or []
                    if not choices:
                        continue

                    choice = choices[0]
                    finish_reason = getattr(choice, "finish_reason", None) or finish_reason
                    delta = getattr(choice, "delta", None)
                    if delta is None:
                        continue

                    content_piece = _extract_content_from_delta(delta)
                    if content_piece:
                        yield TextDelta(text = content_piece)

                    delta_tool_calls = getattr(delta, "tool_calls", None)
                    if delta_tool_calls:
                        _merge_stream_tool_calls(tool_buffers = tool_buffers, delta_tool_calls = delta_tool_calls)
            except openai.OpenAIError as exc:
                logger.error(f"Completion stream failed after {chunk_count} chunks: {exc}")
                yield Failed(cause = exc)
                return
            except Exception as exc:
                logger.error(f"Malformed or interrupted completion stream: {exc}")
                yield Failed(cause = exc)
                return

            if cancel_event is not None and cancel_event.is_set():
                return

            if finish_reason is None:
                logger.error(f"Completion stream ended without a finish reason after {chunk_count} chunks")
                yield Failed(cause = ValueError("completion stream ended before the round finished"))
                return

            for index in sorted(tool_buffers.keys()):
                yield ToolCallRequested(request = _build_request(tool_buffers[index]))

            logger.debug(f"Round complete: {chunk_count} chunks, finish_reason={finish_reason}")
            yield RoundComplete(finish_reason = finish_reason)
        finally:
            _close_quietly(stream_iter)


def _build_request(buffer: Dict[str, Any]) -> ToolCallRequest:
    """Turn one merged tool-call buffer into a ToolCallRequest."""
    function_block = buffer.get("function") or {}
    raw_arguments = function_block.get("arguments") or "{}"
    arguments = _parse_tool_args(raw_arguments)
    if arguments is None:
        logger.warning(f"Unparsable arguments for tool call {buffer.get('id')}: {raw_arguments[:200]}")
        arguments = {}
    return ToolCallRequest(
        id = buffer.get("id"),
        tool_name = function_block.get("name") or "",
        arguments = arguments,
        raw_arguments = raw_arguments,
    )


def _merge_stream_tool_calls(tool_buffers: Dict[int, Dict[str, Any]], delta_tool_calls: Any) -> None:
    """Merge incremental stream tool-call chunks by index."""
    for delta_tool_call in delta_tool_calls:
        raw_index = _read_obj(delta_tool_call, "index")
        index = int(raw_index) if raw_index is not None else len(tool_buffers)

        if index not in tool_buffers:
            tool_buffers[index] = {
                "id": _read_obj(delta_tool_call, "id") or f"call_{index}",
                "type": _read_obj(delta_tool_call, "type") or "function",
                "function": {
                    "name": "",
                    "arguments": "",
                },
            }

        buffer = tool_buffers[index]
        tool_id = _read_obj(delta_tool_call, "id")
        if tool_id:
            buffer["id"] = tool_id

        function_payload = _read_obj(delta_tool_call, "function")
        if function_payload:
            name_piece = _read_obj(function_payload, "name")
            if name_piece:
                existing_name = buffer["function"]["name"]
                if not existing_name:
                    buffer["function"]["name"] = name_piece
                elif not existing_name.endswith(name_piece):
                    buffer["function"]["name"] += name_piece

            args_piece = _read_obj(function_payload, "arguments")
            if args_piece:
                buffer["function"]["arguments"] += args_piece


def _parse_tool_args(arguments: str) -> Optional[Dict[str, Any]]:
    """Parse tool call arguments; None when they are not a JSON object."""
    if not arguments or not arguments.strip():
        return {}

    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        cleaned = "".join(character for character in arguments if character >= " " or character in "\t\n\r")
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, dict) else None


def _extract_content_from_delta(delta: Any) -> str:
    """Extract streamed assistant content from delta payload."""
    content = getattr(delta, "content", None)
    if isinstance(content, list):
        segments = []
        for part in content:
            part_type = _read_obj(part, "type")
            if part_type in {"reasoning", "thinking"}:
                continue
            segments.append(_coerce_text(_read_obj(part, "text") or _read_obj(part, "content")))
        return "".join(segments)

    return _coerce_text(content)


def _coerce_text(value: Any) -> str:
    """Flatten value to text conservatively."""
    if value is None:
        return ""

    if isinstance(value, str):
        return value

    if isinstance(value, list):
        return "".join(_coerce_text(item) for item in value)

    if isinstance(value, dict):
        if "text" in value:
            return _coerce_text(value.get("text"))
        if "content" in value:
            return _coerce_text(value.get("content"))
        return ""

    for attr_name in ["text", "content"]:
        attr_value = getattr(value, attr_name, None)
        if attr_value is not None:
            return _coerce_text(attr_value)

    return str(value)


def _read_obj(obj: Any, key: str) -> Any:
    """Read key from object or dict safely."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _close_quietly(stream_iter: Any) -> None:
    """Release the underlying HTTP response if the SDK stream exposes close()."""
    close = getattr(stream_iter, "close", None)
    if not callable(close):
        return
    try:
        close()
    except Exception as exc:
        logger.debug(f"Ignoring error while closing stream: {exc}")

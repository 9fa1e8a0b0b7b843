"""
Shared test utilities for this repository.

Provides:
1) OpenAI-compatible live test client (optional)
2) Scripted fake chat client that replays streaming chunks offline
3) Chunk builders for text and tool-call rounds
4) Common test runner
"""

import copy
import json
import os
import threading
import traceback
from pathlib import Path
from types import SimpleNamespace

from openai import OpenAI
from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(PROJECT_ROOT / ".env")

MODEL = os.getenv("TEST_MODEL") or os.getenv("LLM_MODEL") or "gpt-4o-mini"


def get_client():
    """
    Build OpenAI-compatible client for live tests.

    Parameters:
        None.
    """
    api_key = os.getenv("TEST_API_KEY") or os.getenv("LLM_API_KEY")
    base_url = os.getenv("TEST_BASE_URL") or os.getenv("LLM_BASE_URL")
    if not api_key or not base_url:
        return None
    return OpenAI(
        api_key = api_key,
        base_url = base_url,
    )


# =============================================================================
# Chunk builders
# =============================================================================

def _chunk(content = None, tool_calls = None, finish_reason = None):
    """One streaming chunk shaped like the OpenAI SDK's ChatCompletionChunk."""
    delta = SimpleNamespace(content = content, tool_calls = tool_calls, role = "assistant")
    choice = SimpleNamespace(index = 0, delta = delta, finish_reason = finish_reason)
    return SimpleNamespace(id = "chatcmpl-fake", model = "fake-model", choices = [choice])


def text_round(*pieces):
    """A round that streams `pieces` as text deltas and stops."""
    chunks = [_chunk(content = piece) for piece in pieces]
    chunks.append(_chunk(finish_reason = "stop"))
    return chunks


def tool_round(*calls, text = None):
    """
    A round requesting tools. Each call is (id, name, arguments_dict).

    Arguments are split over two chunks and the id/name only appear on the
    first fragment, the way real streams deliver them.
    """
    chunks = []
    if text:
        chunks.append(_chunk(content = text))

    for index, (call_id, name, arguments) in enumerate(calls):
        encoded = json.dumps(arguments)
        middle = len(encoded) // 2
        chunks.append(_chunk(tool_calls = [
            SimpleNamespace(
                index = index,
                id = call_id,
                type = "function",
                function = SimpleNamespace(name = name, arguments = encoded[:middle]),
            )
        ]))
        chunks.append(_chunk(tool_calls = [
            SimpleNamespace(
                index = index,
                id = None,
                type = None,
                function = SimpleNamespace(name = None, arguments = encoded[middle:]),
            )
        ]))

    chunks.append(_chunk(finish_reason = "tool_calls"))
    return chunks


def raw_tool_round(call_id, name, raw_arguments):
    """A tool round whose argument text is passed through verbatim."""
    return [
        _chunk(tool_calls = [
            SimpleNamespace(
                index = 0,
                id = call_id,
                type = "function",
                function = SimpleNamespace(name = name, arguments = raw_arguments),
            )
        ]),
        _chunk(finish_reason = "tool_calls"),
    ]


class FailingRound:
    """A round that streams some chunks and then raises."""

    def __init__(self, chunks, error):
        self.chunks = list(chunks)
        self.error = error


class TruncatedRound:
    """A round whose stream ends without a finish chunk."""

    def __init__(self, chunks):
        self.chunks = list(chunks)


# =============================================================================
# Fake client
# =============================================================================

class FakeStream:
    """Iterable stream with close() tracking, like openai.Stream."""

    def __init__(self, chunks, error = None):
        self._chunks = list(chunks)
        self._error = error
        self.closed = False

    def __iter__(self):
        for chunk in self._chunks:
            if self.closed:
                return
            yield chunk
        if self._error is not None:
            raise self._error

    def close(self):
        self.closed = True


class FakeChatClient:
    """
    Scripted stand-in for `OpenAI()`.

    Parameters:
        rounds: Scripted rounds consumed in order; an Exception instance is
            raised from create() instead of streaming.
        responder: Optional callable(request) -> round, used when set.
    """

    def __init__(self, rounds = None, responder = None):
        self.rounds = list(rounds or [])
        self.responder = responder
        self.requests = []
        self.streams = []
        self._lock = threading.Lock()
        self.chat = SimpleNamespace(completions = SimpleNamespace(create = self._create))

    def _create(self, **request):
        with self._lock:
            self.requests.append(copy.deepcopy(request))
            if self.responder is None:
                assert self.rounds, "FakeChatClient ran out of scripted rounds"
                script = self.rounds.pop(0)
            else:
                script = None

        if script is None:
            script = self.responder(request)

        if isinstance(script, Exception):
            raise script
        if isinstance(script, FailingRound):
            stream = FakeStream(script.chunks, error = script.error)
        elif isinstance(script, TruncatedRound):
            stream = FakeStream(script.chunks)
        else:
            stream = FakeStream(script)

        with self._lock:
            self.streams.append(stream)
        return stream


def last_user_text(request):
    """Content of the last user message in a create() request."""
    for message in reversed(request["messages"]):
        if message["role"] == "user":
            return message["content"]
    return ""


def run_tests(test_functions):
    """
    Run test callables and print a compact summary.

    Parameters:
        test_functions: List of test functions.
    """
    failed = []
    for test_function in test_functions:
        print(f"\n{'=' * 60}")
        print(f"Running: {test_function.__name__}")
        print("=" * 60)
        try:
            if not test_function():
                failed.append(test_function.__name__)
        except Exception as exc:
            print(f"FAILED: {exc}")
            traceback.print_exc()
            failed.append(test_function.__name__)

    passed = len(test_functions) - len(failed)
    print(f"\n{'=' * 60}")
    print(f"Results: {passed}/{len(test_functions)} passed")
    print("=" * 60)
    if failed:
        print(f"FAILED: {failed}")
        return False
    print("All tests passed!")
    return True

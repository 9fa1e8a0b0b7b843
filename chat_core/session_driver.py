"""Per-user entry point: serialize turns, run the orchestrator, commit history."""

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from .context_store import ContextStore
from .turn_orchestrator import TurnOrchestrator


logger = logging.getLogger("Session-Driver")

CLEAR_CONTEXT_COMMAND = "clear my context"


def is_clear_command(text: str) -> bool:
    return (text or "").strip().lower() == CLEAR_CONTEXT_COMMAND


class _TurnSlot:
    """A per-user lock and the number of turns holding or waiting on it."""

    def __init__(self, lock: Any):
        self.lock = lock
        self.holders = 0


class SessionDriver:
    """
    Accept `(user_id, text)` and return the final answer text.

    Turns for the same user queue on a per-user lock because history
    mutation is not commutative; turns for different users never share a
    lock. A user's slot is dropped once no turn holds or waits on it. A turn
    is committed to the store only when it completes; any TurnError
    propagates with the stored state untouched.
    """

    def __init__(self, store: ContextStore, orchestrator: TurnOrchestrator):
        self.store = store
        self.orchestrator = orchestrator
        self._turn_slots: Dict[str, _TurnSlot] = {}
        self._slots_guard = threading.Lock()
        # Used only from the event loop thread.
        self._async_slots: Dict[str, _TurnSlot] = {}

    def handle_input(
        self,
        user_id: str,
        text: str,
        on_text: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Run one turn for `user_id`, or clear the user's context on the sentinel command."""
        with self._user_turn(user_id):
            if is_clear_command(text):
                self.store.clear(user_id)
                return f"Context for user '{user_id}' cleared from memory."

            state = self.store.get_or_create(user_id)
            logger.info(f"User query ({user_id}): {text}")

            result = self.orchestrator.run_turn(
                history = state.history,
                user_text = text,
                on_text = on_text,
                cancel_event = cancel_event,
                actor = user_id,
            )

            state.history = result.messages
            self.store.update(state)
            logger.info(f"Turn finished for {user_id}: {result.rounds} round(s), {result.tool_calls} tool call(s)")
            return result.answer

    async def handle_input_async(
        self,
        user_id: str,
        text: str,
        on_text: Optional[Callable[[str], None]] = None,
    ) -> str:
        """
        Event-loop entry point. The turn runs on a worker thread; cancelling
        the awaiting task aborts the turn before anything is committed.

        Same-user turns wait on an asyncio.Lock, so a queued turn suspends
        on the loop instead of occupying a worker thread that another user's
        turn needs.
        """
        slot = self._async_slots.get(user_id)
        if slot is None:
            slot = self._async_slots[user_id] = _TurnSlot(asyncio.Lock())
        slot.holders += 1

        cancel_event = threading.Event()
        try:
            async with slot.lock:
                return await asyncio.to_thread(
                    self.handle_input,
                    user_id,
                    text,
                    on_text,
                    cancel_event,
                )
        except asyncio.CancelledError:
            cancel_event.set()
            logger.info(f"Turn for {user_id} cancelled by caller")
            raise
        finally:
            slot.holders -= 1
            if slot.holders == 0:
                self._async_slots.pop(user_id, None)

    def active_users(self):
        """Users with a turn running or queued on the blocking path."""
        with self._slots_guard:
            return list(self._turn_slots)

    @contextmanager
    def _user_turn(self, user_id: str):
        with self._slots_guard:
            slot = self._turn_slots.get(user_id)
            if slot is None:
                slot = self._turn_slots[user_id] = _TurnSlot(threading.Lock())
            slot.holders += 1

        try:
            with slot.lock:
                yield
        finally:
            with self._slots_guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._turn_slots[user_id]

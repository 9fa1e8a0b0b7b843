"""In-memory per-user conversation state store."""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from .models import ConversationState, utc_now


logger = logging.getLogger("Context-Store")


class ContextStore:
    """
    Concurrent map of user id -> ConversationState.

    State lives only for the lifetime of the instance. Every operation is a
    single dict operation, so calls for different users never wait on each
    other and there is no store-wide lock. Callers serialize read-modify-write
    cycles for one user themselves (see SessionDriver).
    """

    def __init__(self):
        self._states: Dict[str, ConversationState] = {}

    def get_or_create(self, user_id: str) -> ConversationState:
        """Return the user's state, creating it on first access."""
        state = self._states.get(user_id)
        if state is not None:
            logger.debug(f"Fetched context for user: {user_id}")
            return state

        # setdefault is atomic: a racing creator gets the winner's instance back.
        state = self._states.setdefault(user_id, ConversationState(user_id = user_id))
        logger.info(f"Fetched/created context for user: {user_id}")
        return state

    def get(self, user_id: str) -> Optional[ConversationState]:
        return self._states.get(user_id)

    def update(self, state: ConversationState) -> None:
        """Store `state` for its user and refresh its activity timestamp."""
        state.touch()
        self._states[state.user_id] = state
        logger.info(f"Updated context for user: {state.user_id} ({len(state.history)} messages)")

    def clear(self, user_id: str) -> None:
        """Drop the user's state. Unknown users are ignored."""
        self._states.pop(user_id, None)
        logger.info(f"Cleared context for user: {user_id}")

    def prune_idle(self, max_idle: timedelta) -> List[str]:
        """Evict states not updated within `max_idle`; return evicted ids."""
        cutoff = utc_now() - max_idle
        evicted = []
        for user_id, state in list(self._states.items()):
            if state.last_active_at < cutoff:
                # Only evict the exact instance we inspected.
                if self._states.get(user_id) is state:
                    self._states.pop(user_id, None)
                    evicted.append(user_id)
        if evicted:
            logger.info(f"Pruned {len(evicted)} idle context(s)")
        return evicted

    def user_ids(self) -> List[str]:
        return list(self._states)

    def __len__(self) -> int:
        return len(self._states)

"""Unit tests for the in-memory per-user context store."""

import os
import sys
import threading
import time
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from tests.helpers import run_tests
from chat_core.context_store import ContextStore
from chat_core.models import Message


def test_concurrent_first_access_returns_same_instance():
    """Racing first calls for one user must all observe a single state."""
    store = ContextStore()
    barrier = threading.Barrier(16)
    seen = []
    seen_lock = threading.Lock()

    def _worker():
        barrier.wait()
        state = store.get_or_create("u1")
        with seen_lock:
            seen.append(state)

    threads = [threading.Thread(target = _worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(seen) == 16
    assert all(state is seen[0] for state in seen), "Duplicate ConversationState created"
    assert len(store) == 1
    print("PASS: test_concurrent_first_access_returns_same_instance")
    return True


def test_clear_then_get_or_create_is_fresh():
    store = ContextStore()
    state = store.get_or_create("u1")
    state.history.append(Message.user("hi"))
    state.preferences["city"] = "Paris"
    store.update(state)

    store.clear("u1")
    fresh = store.get_or_create("u1")

    assert fresh is not state
    assert fresh.history == []
    assert fresh.preferences == {}
    print("PASS: test_clear_then_get_or_create_is_fresh")
    return True


def test_clear_unknown_user_is_noop():
    store = ContextStore()
    store.clear("ghost")
    assert store.get("ghost") is None
    assert len(store) == 0
    print("PASS: test_clear_unknown_user_is_noop")
    return True


def test_update_replaces_and_refreshes_timestamp():
    store = ContextStore()
    state = store.get_or_create("u1")
    before = state.last_active_at
    time.sleep(0.01)

    replacement = type(state)(user_id = "u1", history = [Message.user("hello")])
    store.update(replacement)

    stored = store.get_or_create("u1")
    assert stored is replacement
    assert stored.last_active_at > before
    assert [message.content for message in stored.history] == ["hello"]
    print("PASS: test_update_replaces_and_refreshes_timestamp")
    return True


def test_prune_idle_evicts_only_stale_states():
    store = ContextStore()
    stale = store.get_or_create("old")
    stale.last_active_at = stale.last_active_at - timedelta(hours = 2)
    store.get_or_create("new")

    evicted = store.prune_idle(timedelta(hours = 1))

    assert evicted == ["old"]
    assert store.user_ids() == ["new"]
    print("PASS: test_prune_idle_evicts_only_stale_states")
    return True


if __name__ == "__main__":
    sys.exit(0 if run_tests([
        test_concurrent_first_access_returns_same_instance,
        test_clear_then_get_or_create_is_fresh,
        test_clear_unknown_user_is_noop,
        test_update_replaces_and_refreshes_timestamp,
        test_prune_idle_evicts_only_stale_states,
    ]) else 1)

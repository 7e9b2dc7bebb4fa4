"""Tests for the completion session cache."""

from langchain_core.messages import AIMessage, HumanMessage

from chat.session_cache import SessionCache, to_langchain_messages


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_history_maps_roles_to_langchain_messages() -> None:
    messages = to_langchain_messages([{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}])

    assert isinstance(messages[0], HumanMessage)
    assert isinstance(messages[1], AIMessage)
    assert [m.content for m in messages] == ["hi", "hello"]


def test_create_from_seeds_and_get_returns_same_session() -> None:
    cache = SessionCache()
    history = [{"role": "user", "content": "hi"}]

    session = cache.create_from("c1", history)

    assert cache.get("c1") is session
    assert session.seed_history == history
    assert "c1" in cache
    assert len(cache) == 1


def test_record_turn_extends_messages() -> None:
    session = SessionCache().create_from("c1", [])

    session.record_turn("question", "answer")

    assert [type(m) for m in session.messages] == [HumanMessage, AIMessage]


def test_invalidate_removes_entry() -> None:
    cache = SessionCache()
    cache.create_from("c1", [])

    cache.invalidate("c1")
    cache.invalidate("missing")

    assert cache.get("c1") is None


def test_least_recently_used_entry_is_evicted() -> None:
    cache = SessionCache(max_entries=2)
    cache.create_from("c1", [])
    cache.create_from("c2", [])
    cache.get("c1")

    cache.create_from("c3", [])

    assert "c2" not in cache
    assert "c1" in cache
    assert "c3" in cache


def test_idle_entry_expires() -> None:
    clock = FakeClock()
    cache = SessionCache(ttl_seconds=10, clock=clock)
    cache.create_from("c1", [])

    clock.now = 5
    assert cache.get("c1") is not None
    clock.now = 14
    assert cache.get("c1") is not None
    clock.now = 30
    assert cache.get("c1") is None
    assert len(cache) == 0


def test_keys_are_normalized_to_strings() -> None:
    from uuid import uuid4

    cache = SessionCache()
    conversation_id = uuid4()
    cache.create_from(conversation_id, [])

    assert cache.get(str(conversation_id)) is not None

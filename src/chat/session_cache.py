"""In-memory cache of multi-turn completion sessions, keyed by conversation."""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from utils.logging import logger


def to_langchain_messages(history: Sequence[Dict[str, str]]) -> List[BaseMessage]:
    """Map stored ``{role, content}`` turns onto LangChain messages.

    ``user`` becomes a human turn; every other role becomes a model turn.
    """
    return [
        HumanMessage(content=turn["content"]) if turn["role"] == "user" else AIMessage(content=turn["content"])
        for turn in history
    ]


@dataclass
class ChatSession:
    """Running multi-turn context for one conversation."""

    conversation_id: str
    seed_history: List[Dict[str, str]]
    messages: List[BaseMessage] = field(default_factory=list)
    last_used: float = 0.0

    def record_turn(self, user_text: str, reply: str) -> None:
        self.messages.append(HumanMessage(content=user_text))
        self.messages.append(AIMessage(content=reply))


class SessionCache:
    """Process-wide map of conversation id to ``ChatSession``.

    The store remains the source of truth: a missing entry only means the next
    completion is reseeded from stored history. Entries are evicted least
    recently used first above ``max_entries`` and expire after ``ttl_seconds``
    without use. Callers mutate an entry only while holding that
    conversation's lock.
    """

    def __init__(self, max_entries: int = 1000, ttl_seconds: Optional[float] = 3600, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: "OrderedDict[str, ChatSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, conversation_id) -> bool:
        return self.get(conversation_id) is not None

    def get(self, conversation_id) -> Optional[ChatSession]:
        key = str(conversation_id)
        session = self._sessions.get(key)
        if session is None:
            return None

        now = self._clock()
        if self.ttl_seconds is not None and now - session.last_used > self.ttl_seconds:
            logger.debug(f"Session for conversation {key} expired")
            del self._sessions[key]
            return None

        session.last_used = now
        self._sessions.move_to_end(key)
        return session

    def create_from(self, conversation_id, history: Sequence[Dict[str, str]]) -> ChatSession:
        """Seed a fresh session from stored history, replacing any existing one."""
        key = str(conversation_id)
        session = ChatSession(
            conversation_id=key,
            seed_history=list(history),
            messages=to_langchain_messages(history),
            last_used=self._clock(),
        )
        self._sessions[key] = session
        self._sessions.move_to_end(key)

        while len(self._sessions) > self.max_entries:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug(f"Evicted session for conversation {evicted}")

        logger.debug(f"Seeded session for conversation {key} with {len(history)} messages")
        return session

    def invalidate(self, conversation_id) -> None:
        if self._sessions.pop(str(conversation_id), None) is not None:
            logger.info(f"Invalidated session for conversation {conversation_id}")

    def clear(self) -> None:
        self._sessions.clear()

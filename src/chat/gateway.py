"""Completion gateway: the single boundary to the chat-completion provider."""

import asyncio
from dataclasses import dataclass
from typing import Dict, Sequence

import anthropic
import openai
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage

from chat.errors import GatewayFailure, GatewayFailureReason
from chat.session_cache import SessionCache
from utils.logging import logger
from utils.text import estimate_tokens

FILTERED_FINISH_REASONS = {"content_filter", "safety", "refusal"}


class BlockedResponseError(Exception):
    """The provider answered, but withheld the content."""


class EmptyResponseError(Exception):
    """The provider answered with no text."""


@dataclass
class Completion:
    text: str
    tokens: int


def response_text(response: BaseMessage) -> str:
    content = response.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def classify_failure(error: BaseException) -> GatewayFailureReason:
    """Map a provider or transport exception onto the closed failure set."""
    if isinstance(error, (asyncio.TimeoutError, openai.APITimeoutError, anthropic.APITimeoutError)):
        return GatewayFailureReason.TIMEOUT
    if isinstance(error, BlockedResponseError):
        return GatewayFailureReason.CONTENT_FILTERED
    if isinstance(error, (openai.RateLimitError, anthropic.RateLimitError)):
        return GatewayFailureReason.QUOTA_EXCEEDED
    if isinstance(error, openai.BadRequestError) and error.code in ("content_filter", "content_policy_violation"):
        return GatewayFailureReason.CONTENT_FILTERED

    detail = str(error).lower()
    if "safety" in detail or "content_filter" in detail or "content policy" in detail:
        return GatewayFailureReason.CONTENT_FILTERED
    if "quota" in detail or "rate limit" in detail:
        return GatewayFailureReason.QUOTA_EXCEEDED
    if "timeout" in detail or "timed out" in detail:
        return GatewayFailureReason.TIMEOUT
    return GatewayFailureReason.UNKNOWN


class CompletionGateway:
    """Runs one completion turn for a conversation.

    Reuses the conversation's cached session, or seeds a new one from the
    supplied history. Any failure drops the session so the next call reseeds
    from the store, and surfaces as ``GatewayFailure``.
    """

    def __init__(self, chat_model: BaseChatModel, session_cache: SessionCache, timeout_seconds: float = 30.0):
        self.chat_model = chat_model
        self.session_cache = session_cache
        self.timeout_seconds = timeout_seconds

    async def complete(self, conversation_id: str, user_text: str, history: Sequence[Dict[str, str]]) -> Completion:
        session = self.session_cache.get(conversation_id)
        if session is None:
            session = self.session_cache.create_from(conversation_id, history)

        try:
            response = await asyncio.wait_for(
                self.chat_model.ainvoke(session.messages + [HumanMessage(content=user_text)]),
                timeout=self.timeout_seconds,
            )
            finish_reason = response.response_metadata.get("finish_reason") or response.response_metadata.get("stop_reason")
            if finish_reason in FILTERED_FINISH_REASONS:
                raise BlockedResponseError(f"Completion stopped with reason {finish_reason}")

            text = response_text(response)
            if not text.strip():
                raise EmptyResponseError("Completion returned no text")

        except Exception as e:
            self.session_cache.invalidate(conversation_id)
            reason = classify_failure(e)
            logger.error(f"Completion failed for conversation {conversation_id} ({reason.value}): {str(e)}", exc_info=True)
            raise GatewayFailure(reason) from e

        session.record_turn(user_text, text)
        return Completion(text=text, tokens=estimate_tokens(text))

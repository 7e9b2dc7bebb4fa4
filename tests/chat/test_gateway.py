"""Tests for the completion gateway."""

import asyncio

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage

from chat.errors import GatewayFailure, GatewayFailureReason
from chat.gateway import BlockedResponseError, CompletionGateway, classify_failure, response_text
from chat.session_cache import SessionCache
from tests.fakes import ScriptedChatModel


def rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    return openai.RateLimitError("You exceeded your current quota", response=response, body=None)


class TestClassifyFailure:
    def test_timeouts(self) -> None:
        assert classify_failure(asyncio.TimeoutError()) == GatewayFailureReason.TIMEOUT
        assert classify_failure(RuntimeError("Request timed out")) == GatewayFailureReason.TIMEOUT

    def test_blocked(self) -> None:
        assert classify_failure(BlockedResponseError("stopped")) == GatewayFailureReason.CONTENT_FILTERED
        assert classify_failure(RuntimeError("Response blocked by SAFETY settings")) == GatewayFailureReason.CONTENT_FILTERED

    def test_quota(self) -> None:
        assert classify_failure(rate_limit_error()) == GatewayFailureReason.QUOTA_EXCEEDED
        assert classify_failure(RuntimeError("quota exhausted")) == GatewayFailureReason.QUOTA_EXCEEDED

    def test_unknown(self) -> None:
        assert classify_failure(RuntimeError("boom")) == GatewayFailureReason.UNKNOWN


def test_response_text_joins_text_blocks() -> None:
    message = AIMessage(content=[{"type": "text", "text": "It is "}, {"type": "tool_use", "id": "x"}, "sunny."])
    assert response_text(message) == "It is sunny."


@pytest.mark.asyncio
class TestCompletionGateway:
    """Tests for completion turns."""

    async def test_seeds_session_from_history(self, gateway: CompletionGateway, chat_model: ScriptedChatModel, session_cache: SessionCache) -> None:
        chat_model.replies = ["It is sunny."]
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]

        completion = await gateway.complete("c1", "What's the weather?", history)

        assert completion.text == "It is sunny."
        assert completion.tokens == 3
        prompt = chat_model.calls[0]
        assert [m.content for m in prompt] == ["hi", "hello", "What's the weather?"]
        assert isinstance(prompt[-1], HumanMessage)
        assert len(session_cache.get("c1").messages) == 4

    async def test_reuses_cached_session(self, gateway: CompletionGateway, chat_model: ScriptedChatModel) -> None:
        chat_model.replies = ["first", "second"]

        await gateway.complete("c1", "one", [])
        await gateway.complete("c1", "two", [{"role": "user", "content": "ignored"}])

        assert [m.content for m in chat_model.calls[1]] == ["one", "first", "two"]

    async def test_timeout_invalidates_session(self, chat_model: ScriptedChatModel, session_cache: SessionCache) -> None:
        gateway = CompletionGateway(chat_model, session_cache, timeout_seconds=0.05)
        chat_model.delay = 1.0

        with pytest.raises(GatewayFailure) as exc_info:
            await gateway.complete("c1", "hi", [])

        assert exc_info.value.reason == GatewayFailureReason.TIMEOUT
        assert exc_info.value.message == "Request timeout. Please try again."
        assert session_cache.get("c1") is None

    async def test_provider_error_is_classified(self, gateway: CompletionGateway, chat_model: ScriptedChatModel, session_cache: SessionCache) -> None:
        chat_model.replies = [rate_limit_error()]

        with pytest.raises(GatewayFailure) as exc_info:
            await gateway.complete("c1", "hi", [])

        assert exc_info.value.reason == GatewayFailureReason.QUOTA_EXCEEDED
        assert exc_info.value.to_payload() == {
            "kind": "gateway_failure",
            "message": "API quota exceeded. Try again later.",
            "reason": "quota_exceeded",
        }
        assert "c1" not in session_cache

    async def test_empty_reply_is_a_failure(self, gateway: CompletionGateway, chat_model: ScriptedChatModel) -> None:
        chat_model.replies = ["   "]

        with pytest.raises(GatewayFailure) as exc_info:
            await gateway.complete("c1", "hi", [])

        assert exc_info.value.reason == GatewayFailureReason.UNKNOWN

    async def test_failure_then_retry_reseeds(self, gateway: CompletionGateway, chat_model: ScriptedChatModel) -> None:
        chat_model.replies = ["first", RuntimeError("boom"), "third"]
        await gateway.complete("c1", "one", [])

        with pytest.raises(GatewayFailure):
            await gateway.complete("c1", "two", [])

        history = [{"role": "user", "content": "one"}, {"role": "assistant", "content": "first"}, {"role": "user", "content": "two"}]
        await gateway.complete("c1", "three", history)

        assert [m.content for m in chat_model.calls[2]] == ["one", "first", "two", "three"]

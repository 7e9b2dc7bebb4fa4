"""Chat model construction."""

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI

from utils.logging import logger


def build_chat_model(settings) -> BaseChatModel:
    """Build the configured provider's chat model.

    Retries are disabled: a failed completion is reported to the user, who
    resends manually.
    """
    provider = settings.llm_provider.lower()
    logger.info(f"Using {provider} chat model {settings.llm_model}")

    if provider == "openai":
        return ChatOpenAI(
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            max_retries=0,
        )
    if provider == "anthropic":
        return ChatAnthropic(
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            max_retries=0,
        )
    raise ValueError(f"Unsupported LLM provider: {settings.llm_provider}")

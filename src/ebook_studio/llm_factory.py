"""Factory helpers for LangChain chat models used by the text capabilities."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from langchain.chat_models import init_chat_model
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from ebook_studio.error_handling import CapabilityError
from ebook_studio.models import CapabilityConfig
from ebook_studio.utils.validation_helpers import parse_llm_json

logger = logging.getLogger(__name__)

# Providers whose chat completions accept ``response_format``.
JSON_MODE_PROVIDERS = {"openai", "azure_openai", "groq", "fireworks", "together", "deepseek", "xai"}


def _coerce_message_content(content: Any) -> str:
    """Convert LangChain message content (which may be structured) into text."""

    if content is None:
        return ""

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if item is None:
                continue
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                text = item.get("text") or item.get("content")
                if text:
                    parts.append(str(text))
            else:
                parts.append(str(item))
        return "\n".join(part for part in parts if part)

    return str(content)


def create_chat_model(
    config: CapabilityConfig,
    *,
    model: str,
    temperature: float | None = None,
    json_mode: bool = False,
) -> Any:
    """Instantiate a chat model for a resolved capability configuration.

    ``model`` is the fallback used when the configuration does not name one.
    """

    provider = (config.provider or "openai").lower()
    if not config.api_key:
        raise CapabilityError(f"No API key configured for text provider '{provider}'")

    kwargs: dict[str, Any] = {"api_key": config.api_key}
    if config.base_url:
        kwargs["base_url"] = config.base_url
    if temperature is not None:
        kwargs["temperature"] = temperature

    # LangChain expects bare model name without provider prefix
    model_name = (config.model or model).split(":", 1)[-1]

    llm = init_chat_model(model=model_name, model_provider=provider, **kwargs)

    if json_mode and provider in JSON_MODE_PROVIDERS:
        llm = llm.bind(response_format={"type": "json_object"})

    return llm


def build_messages(prompt: str, system_prompt: str | None = None) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    messages.append(HumanMessage(content=prompt))
    return messages


async def generate_text(llm: Any, prompt: str, system_prompt: str | None = None) -> str:
    """Run one prompt through a chat model and return the reply text."""

    messages: Sequence[BaseMessage] = build_messages(prompt, system_prompt)
    response = await llm.ainvoke(messages)
    return _coerce_message_content(getattr(response, "content", response)).strip()


async def generate_json(llm: Any, prompt: str, system_prompt: str | None = None) -> Any:
    """Run a prompt that must answer with JSON and return the parsed object."""

    text = await generate_text(llm, prompt, system_prompt)
    parsed = parse_llm_json(text)
    if parsed is None:
        logger.warning("Model reply was not valid JSON: %.200s", text)
        raise CapabilityError("Model returned malformed JSON")
    return parsed

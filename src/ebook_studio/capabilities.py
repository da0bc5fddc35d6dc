"""Resolution of per-user capability configuration."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from ebook_studio.context import StudioContext, get_default_context
from ebook_studio.llm_factory import create_chat_model
from ebook_studio.models import ApiConfig, CapabilityConfig, CapabilityType
from ebook_studio.providers import ImageGenerationProvider, ProviderFactory

logger = logging.getLogger(__name__)


class ApiConfigSource(Protocol):
    def get_active_api_config(self, user_id: str, config_type: CapabilityType) -> Optional[ApiConfig]:
        ...


def _default_provider(capability: CapabilityType) -> str:
    return "gemini" if capability == CapabilityType.IMAGE_GENERATION else "openai"


class CapabilityResolver:
    """Picks the configuration used for a (user, capability) pair.

    The user's active ApiConfig wins; ``reasoning`` falls back to the user's
    ``text_generation`` config; otherwise the process-wide default applies.
    """

    def __init__(self, configs: ApiConfigSource | None = None, context: StudioContext | None = None):
        self.configs = configs
        self.context = context or get_default_context()

    def _user_config(self, user_id: Optional[str], capability: CapabilityType) -> Optional[ApiConfig]:
        if self.configs is None or not user_id:
            return None
        return self.configs.get_active_api_config(user_id, capability)

    def resolve(self, user_id: Optional[str], capability: CapabilityType) -> CapabilityConfig:
        """Return the configuration to use for one capability call."""

        user_config = self._user_config(user_id, capability)
        if user_config is None and capability == CapabilityType.REASONING:
            user_config = self._user_config(user_id, CapabilityType.TEXT_GENERATION)

        if user_config is not None:
            logger.debug("Using user config '%s' for %s", user_config.name, capability.value)
            return CapabilityConfig(
                provider=user_config.provider or _default_provider(capability),
                api_key=user_config.api_key,
                base_url=user_config.base_url,
                model=user_config.model,
            )

        return self.context.default_config(capability)

    def chat_model(
        self,
        user_id: Optional[str],
        capability: CapabilityType,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> Any:
        """Build a LangChain chat model for a text capability."""

        config = self.resolve(user_id, capability)
        return create_chat_model(
            config,
            model=model or self.context.text_model,
            temperature=temperature,
            json_mode=json_mode,
        )

    def image_provider(self, user_id: Optional[str]) -> ImageGenerationProvider:
        """Build the image provider for a user."""

        return ProviderFactory.create_provider(self.resolve(user_id, CapabilityType.IMAGE_GENERATION))

"""Runtime context holding process-wide capability defaults."""

import os

from pydantic import BaseModel, Field

from ebook_studio.models import CapabilityConfig, CapabilityType


class StudioContext(BaseModel):
    """Default provider configuration used when a user has none active."""

    # Text generation
    text_provider: str = Field(default="openai", description="LangChain model provider for text capabilities")
    openai_api_key: str | None = Field(default=None, description="API key for the default text provider")
    openai_base_url: str | None = Field(default=None, description="Optional OpenAI-compatible base URL")
    text_model: str = Field(default="gpt-4o", description="Model used for chapters, humanizing and translation")
    fast_text_model: str = Field(default="gpt-4o-mini", description="Model used for trends, outlines and grammar")

    # Image generation
    image_provider: str = Field(default="gemini", description="Default image provider (gemini | openai)")
    gemini_api_key: str | None = Field(default=None, description="API key for the Gemini image model")
    gemini_base_url: str | None = Field(default=None, description="Optional Gemini API base URL")
    image_model: str = Field(default="gemini-2.5-flash-image", description="Default image model")

    # Image retry policy
    image_retry_attempts: int = Field(default=4, ge=1, description="Attempts per image before falling back")
    image_retry_min_delay: float = Field(default=2.0, ge=0, description="First backoff delay in seconds")
    image_retry_max_delay: float = Field(default=10.0, ge=0, description="Backoff delay cap in seconds")

    model_config = {"extra": "allow"}

    def default_config(self, capability: CapabilityType) -> CapabilityConfig:
        """Return the process-wide configuration for a capability type."""

        if capability == CapabilityType.IMAGE_GENERATION:
            if self.image_provider == "openai":
                return CapabilityConfig(
                    provider="openai",
                    api_key=self.openai_api_key,
                    base_url=self.openai_base_url,
                    # the provider picks its own model when only the Gemini default is set
                    model=None if self.image_model.startswith("gemini") else self.image_model,
                )
            return CapabilityConfig(
                provider=self.image_provider,
                api_key=self.gemini_api_key,
                base_url=self.gemini_base_url,
                model=self.image_model,
            )

        return CapabilityConfig(
            provider=self.text_provider,
            api_key=self.openai_api_key,
            base_url=self.openai_base_url,
            model=None,
        )


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def get_default_context() -> StudioContext:
    """Get default context with environment variables."""

    return StudioContext(
        text_provider=os.getenv("TEXT_PROVIDER", "openai"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        text_model=os.getenv("TEXT_MODEL", "gpt-4o"),
        fast_text_model=os.getenv("FAST_TEXT_MODEL", "gpt-4o-mini"),
        image_provider=os.getenv("IMAGE_PROVIDER", "gemini").lower(),
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        gemini_base_url=os.getenv("GEMINI_BASE_URL") or None,
        image_model=os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image"),
        image_retry_attempts=int(os.getenv("IMAGE_RETRY_ATTEMPTS", "4")),
        image_retry_min_delay=_float_env("IMAGE_RETRY_MIN_DELAY", 2.0),
        image_retry_max_delay=_float_env("IMAGE_RETRY_MAX_DELAY", 10.0),
    )

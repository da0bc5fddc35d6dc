"""Image generation providers speaking directly to the provider HTTP APIs."""

import base64
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ebook_studio.error_handling import CapabilityError
from ebook_studio.models import CapabilityConfig

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_IMAGE_MODEL = "gpt-image-1"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_GEMINI_IMAGE_MODEL = "gemini-2.5-flash-image"

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[^,]*)?;base64,(?P<data>.+)$", re.DOTALL)


def is_data_url(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:")


def split_data_url(data_url: str) -> Tuple[str, str]:
    """Return ``(mime_type, base64_payload)`` for a base64 data URL."""
    match = _DATA_URL_PATTERN.match(data_url or "")
    if not match:
        raise ValueError("Reference image must be a base64 data URL")
    return match.group("mime") or "image/png", match.group("data")


async def _error_message(response: aiohttp.ClientResponse) -> str:
    try:
        payload = await response.json(content_type=None)
    except (aiohttp.ContentTypeError, ValueError):
        return (await response.text())[:500] or response.reason or "Unknown error"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return error.get("message") or str(error)
    return str(error or payload)


def _failure(provider: str, status: int, message: str) -> Dict[str, Any]:
    return {
        'success': False,
        'error': f"HTTP {status}: {message}",
        'status_code': status,
        'metadata': {'provider': provider},
    }


class ImageGenerationProvider(ABC):
    """Abstract base class for image generation providers."""

    provider_name = "base"

    def __init__(self, api_key: str, *, base_url: Optional[str] = None, model: Optional[str] = None,
                 timeout: float = 120.0) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @abstractmethod
    async def generate_image(self, prompt: str, reference_image: Optional[str] = None) -> Dict[str, Any]:
        """Generate an image.

        Returns ``{'success': True, 'image_data': <base64>, 'mime_type', 'metadata'}``
        or ``{'success': False, 'error', 'status_code'}``.
        """


class OpenAIImageProvider(ImageGenerationProvider):
    """OpenAI Images API provider (generations, or edits with a reference image)."""

    provider_name = "openai"

    def __init__(self, api_key: str, *, base_url: Optional[str] = None, model: Optional[str] = None,
                 size: str = "1536x1024", timeout: float = 120.0) -> None:
        super().__init__(
            api_key,
            base_url=(base_url or DEFAULT_OPENAI_BASE_URL).rstrip("/"),
            model=model or DEFAULT_OPENAI_IMAGE_MODEL,
            timeout=timeout,
        )
        self.size = size

    async def generate_image(self, prompt: str, reference_image: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            if reference_image:
                mime_type, payload = split_data_url(reference_image)
                form = aiohttp.FormData()
                form.add_field("model", self.model)
                form.add_field("prompt", prompt)
                form.add_field("size", self.size)
                form.add_field(
                    "image",
                    base64.b64decode(payload),
                    filename="reference.png",
                    content_type=mime_type,
                )
                request = session.post(f"{self.base_url}/images/edits", headers=headers, data=form)
            else:
                body = {"model": self.model, "prompt": prompt, "n": 1, "size": self.size}
                if self.model.startswith("dall-e"):
                    body["response_format"] = "b64_json"
                request = session.post(f"{self.base_url}/images/generations", headers=headers, json=body)

            async with request as response:
                if response.status != 200:
                    return _failure(self.provider_name, response.status, await _error_message(response))
                data = await response.json()

        try:
            item = data['data'][0]
            image_data = item['b64_json']
        except (KeyError, IndexError, TypeError):
            return {'success': False, 'error': "No image data in response", 'status_code': 200}

        return {
            'success': True,
            'image_data': image_data,
            'mime_type': "image/png",
            'metadata': {
                'provider': self.provider_name,
                'model': self.model,
                'prompt': prompt,
                'revised_prompt': item.get('revised_prompt', prompt),
            },
        }


class GeminiImageProvider(ImageGenerationProvider):
    """Gemini ``generateContent`` provider returning inline image parts."""

    provider_name = "gemini"

    def __init__(self, api_key: str, *, base_url: Optional[str] = None, model: Optional[str] = None,
                 timeout: float = 120.0) -> None:
        super().__init__(
            api_key,
            base_url=(base_url or DEFAULT_GEMINI_BASE_URL).rstrip("/"),
            model=model or DEFAULT_GEMINI_IMAGE_MODEL,
            timeout=timeout,
        )

    def _endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    def build_payload(self, prompt: str, reference_image: Optional[str] = None) -> Dict[str, Any]:
        parts: list = [{"text": prompt}]
        if reference_image:
            mime_type, payload = split_data_url(reference_image)
            parts.append({"inlineData": {"mimeType": mime_type, "data": payload}})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    async def generate_image(self, prompt: str, reference_image: Optional[str] = None) -> Dict[str, Any]:
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        payload = self.build_payload(prompt, reference_image)

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(self._endpoint(), headers=headers, json=payload) as response:
                if response.status != 200:
                    return _failure(self.provider_name, response.status, await _error_message(response))
                data = await response.json()

        for candidate in data.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    return {
                        'success': True,
                        'image_data': inline["data"],
                        'mime_type': inline.get("mimeType") or inline.get("mime_type") or "image/png",
                        'metadata': {'provider': self.provider_name, 'model': self.model, 'prompt': prompt},
                    }

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        return {
            'success': False,
            'error': f"No image data in response{f' (blocked: {block_reason})' if block_reason else ''}",
            'status_code': 200,
        }


class ProviderFactory:
    """Factory for creating image generation providers."""

    PROVIDERS = {
        "openai": OpenAIImageProvider,
        "gemini": GeminiImageProvider,
        "google": GeminiImageProvider,
    }

    @classmethod
    def create_provider(cls, config: CapabilityConfig) -> ImageGenerationProvider:
        """Create a provider instance for a resolved image configuration."""
        provider = (config.provider or "gemini").lower()
        provider_cls = cls.PROVIDERS.get(provider)
        if provider_cls is None:
            raise CapabilityError(f"Unsupported image provider: {config.provider}")
        if not config.api_key:
            raise CapabilityError(f"No API key configured for image provider '{provider}'")
        return provider_cls(config.api_key, base_url=config.base_url, model=config.model)

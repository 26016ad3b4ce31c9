"""Thin client for the external text-enhancement (chat completions) API."""

import requests

from .config import Settings, settings as default_settings
from .domain import EnhancementContext
from .narration import build_enhancement_messages
from utils.logging_utils import get_tagged_logger, mask_secret

logger = get_tagged_logger(__name__, tag="surf_ai/enhancement_client")


class EnhancementError(Exception):
    """Base class for enhancement service failures."""


class EnhancementNotConfigured(EnhancementError):
    """No credentials are configured; enhancement is simply off."""


class EnhancementServiceError(EnhancementError):
    """Transport failure or non-2xx reply."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedEnhancementResponse(EnhancementError):
    """Reply was not JSON or did not carry message content."""


class EnhancementClient:
    """Minimal client for an OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: Settings | None = None):
        """Initialize client configuration from settings."""
        config = config or default_settings
        self.url = config.enhancement_api_url
        self.api_key = config.enhancement_api_key
        self.model = config.enhancement_model
        self.max_tokens = config.enhancement_max_tokens
        self.temperature = config.enhancement_temperature
        # the pipeline enforces the hard bound; this only stops sockets lingering
        self.request_timeout = config.enhancement_timeout_seconds + 5.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def enhance(self, narrative: str, context: EnhancementContext) -> str:
        """Send the narrative for enhancement and return the raw reply content."""
        if not self.configured:
            raise EnhancementNotConfigured("Enhancement API key not configured")

        payload = {
            "model": self.model,
            "messages": build_enhancement_messages(narrative, context),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            logger.debug("Enhancement POST to %s (key %s), narrative length %d",
                         self.url, mask_secret(self.api_key), len(narrative))
            r = requests.post(self.url, json=payload, headers=headers, timeout=self.request_timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("Enhancement POST failed: %s", exc)
            raise EnhancementServiceError(f"Enhancement request failed: {exc}") from exc

        logger.info("Enhancement POST took %.2fs, status %d", r.elapsed.total_seconds(), r.status_code)
        if r.status_code != 200:
            error_text = (r.text or "")[:200]
            raise EnhancementServiceError(
                f"Enhancement API error {r.status_code}: {error_text} (model={self.model})",
                status_code=r.status_code,
            )

        try:
            data = r.json()
        except ValueError as exc:
            raise MalformedEnhancementResponse(f"Enhancement returned non-JSON response: {r.text[:200]}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedEnhancementResponse(f"Unexpected enhancement payload shape: {str(data)[:200]}") from exc
        if not isinstance(content, str):
            raise MalformedEnhancementResponse(f"Enhancement content is {type(content).__name__}, not text")
        return content.strip()

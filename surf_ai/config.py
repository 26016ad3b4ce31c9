"""Service configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, mask_secret
logger = get_tagged_logger(__name__, tag="surf_ai/config")


class Settings(BaseSettings):
    """Environment-driven configuration for the surf report service."""
    model_config = SettingsConfigDict(env_prefix="SURF_", extra="ignore")

    # external text-enhancement service (OpenAI-compatible chat completions)
    enhancement_api_key: str | None = None
    enhancement_api_url: str = "https://api.openai.com/v1/chat/completions"
    enhancement_model: str = "gpt-3.5-turbo"
    enhancement_max_tokens: int = 150
    enhancement_temperature: float = 0.3

    # enhancement pipeline timing and bounds
    debounce_ms: int = 500
    enhancement_timeout_seconds: float = 10.0
    cache_ttl_seconds: int = 1800
    duplicate_window_seconds: float = 2.0
    max_enhanced_chars: int = 400
    min_enhanced_chars: int = 10
    max_length_ratio: float = 2.0

    # external prediction service; unset means "no data"
    prediction_api_url: str | None = None
    prediction_timeout_seconds: float = 5.0

    cache_redis_url: str | None = None
    cache_socket_timeout_seconds: float = 2.0
    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("enhancement_api_url", "prediction_api_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize URLs to avoid double slashes."""
        if v is None:
            return v
        return str(v).rstrip("/")

    @property
    def enhancement_configured(self) -> bool:
        """True when credentials for the enhancement service are present."""
        return bool(self.enhancement_api_key)


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(
        "Loaded settings: %s (enhancement key %s)",
        settings.model_dump_json(indent=4, exclude={"enhancement_api_key", "api_key"}),
        mask_secret(settings.enhancement_api_key),
    )

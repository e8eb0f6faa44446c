"""
Configuration for the resilient cache facade.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.retry import RetryConfig

DEFAULT_TTL_SECONDS = 3600


class CacheConfig(BaseSettings):
    """Remote tier endpoint, credential and retry policy.

    Resolved once at start-up and immutable afterwards. An empty endpoint or
    credential is a recognized mode rather than an error: the remote tier is
    disabled and every operation is served by the local tier.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    endpoint: str = Field(default="", validation_alias=AliasChoices("ENDPOINT_URL", "REDIS_URL", "endpoint"))
    credential: str = Field(default="", validation_alias=AliasChoices("CREDENTIAL", "REDIS_TOKEN", "credential"))
    timeout_ms: int = Field(default=5000, gt=0, validation_alias=AliasChoices("TIMEOUT_MS", "REDIS_TIMEOUT", "timeout_ms"))
    max_retries: int = Field(default=3, ge=0, validation_alias=AliasChoices("MAX_RETRIES", "REDIS_MAX_RETRIES", "max_retries"))
    retry_delay_ms: int = Field(default=1000, ge=0, validation_alias=AliasChoices("RETRY_DELAY_MS", "REDIS_RETRY_DELAY", "retry_delay_ms"))
    cleanup_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("CACHE_CLEANUP_INTERVAL_SECONDS", "cleanup_interval_seconds"),
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint) and bool(self.credential)

    def retry_config(self) -> RetryConfig:
        """Linear, jitter-free retry policy in seconds."""
        return RetryConfig(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay_ms / 1000,
            timeout=self.timeout_ms / 1000,
            jitter=False,
            backoff_strategy="linear",
        )


def get_cache_config() -> CacheConfig:
    """Read cache configuration from the environment."""
    return CacheConfig()

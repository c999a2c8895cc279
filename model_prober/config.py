"""Application configuration.

Environment Variables:
    MODEL_PROBER_BASE_URL: Provider base URL (default: https://api.openai.com)
    MODEL_PROBER_TIMEOUT: Per-request timeout in seconds (default: httpx default)
    MODEL_PROBER_HOST: HTTP API bind host (default: 127.0.0.1)
    MODEL_PROBER_PORT: HTTP API port (default: 10250)
    MODEL_PROBER_API_KEY: Read by the CLI as the default credential
    MODEL_PROBER_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
    MODEL_PROBER_LOG_DIR: Log directory path (default: logs/)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

OPENAI_API_URL = "https://api.openai.com"

DEFAULT_PORT = 10250


class Settings(BaseSettings):
    """Application settings.

    All settings can be configured via environment variables with the
    MODEL_PROBER_ prefix. The credential is deliberately not a setting;
    it is passed to each operation by the caller.

    Logging is configured separately via MODEL_PROBER_LOG_LEVEL and
    MODEL_PROBER_LOG_DIR environment variables (see logging_config.py).
    """

    model_config = SettingsConfigDict(env_prefix="MODEL_PROBER_", extra="ignore")

    # Provider
    base_url: str = OPENAI_API_URL
    # None keeps the transport's default timeout
    timeout: float | None = None

    # HTTP API
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT


settings = Settings()

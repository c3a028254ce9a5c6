"""Provider configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import BASE_URL, CACHE_TTL_SECONDS, MAX_MATCHES


class ProviderConfig(BaseSettings):
    """All provider configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- Catalog --
    base_url: str = BASE_URL
    request_timeout: float = 15.0
    user_agent: str = "Mozilla/5.0 (compatible; lubimyczytac-provider)"

    # -- Server --
    host: str = "0.0.0.0"
    port: int = 3000

    # -- Pipeline --
    cache_ttl: int = CACHE_TTL_SECONDS
    max_matches: int = MAX_MATCHES
    max_workers: int = MAX_MATCHES

    # -- Logging --
    log_level: str = "INFO"
    log_dir: Path | None = None

    def setup_logging(self) -> None:
        """Configure loguru for the provider."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<10} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        if self.log_dir is None:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "provider.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )

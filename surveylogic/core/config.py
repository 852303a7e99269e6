"""
Engine configuration and logging setup.

Configuration is read from environment variables (a local .env file is
honored) and passed explicitly to the evaluators. There is no global
engine state.

Variables:
    SURVEYLOGIC_CACHE_LIFETIME   "single-pass" (default) or "none"
    SURVEYLOGIC_LOG_DIAGNOSTICS  log evaluation diagnostics at WARNING
    SURVEYLOGIC_LOG_LEVEL        root log level for configure_logging
"""

import logging
import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

CacheLifetime = Literal["single-pass", "none"]


class EngineConfig(BaseModel):
    """Tunables for one engine instance."""

    cache_lifetime: CacheLifetime = Field(
        default="single-pass",
        description="Memoize rule conditions within one evaluation pass, or not at all",
    )
    log_diagnostics: bool = Field(
        default=False,
        description="Log evaluation diagnostics at WARNING instead of DEBUG",
    )

    @property
    def diagnostic_log_level(self) -> int:
        return logging.WARNING if self.log_diagnostics else logging.DEBUG


def _is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> EngineConfig:
    """Build an EngineConfig from the environment."""
    load_dotenv()

    cache_lifetime = os.getenv("SURVEYLOGIC_CACHE_LIFETIME", "single-pass").strip().lower()
    if cache_lifetime not in ("single-pass", "none"):
        logger.warning(
            "Unknown SURVEYLOGIC_CACHE_LIFETIME %r, using 'single-pass'", cache_lifetime
        )
        cache_lifetime = "single-pass"

    return EngineConfig(
        cache_lifetime=cache_lifetime,
        log_diagnostics=_is_truthy(os.getenv("SURVEYLOGIC_LOG_DIAGNOSTICS"), default=False),
    )


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging in the standard format.

    Args:
        level: Log level name or number. Defaults to SURVEYLOGIC_LOG_LEVEL, then INFO.
    """
    if level is None:
        load_dotenv()
        level = os.getenv("SURVEYLOGIC_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    LOG_LEVEL: str = "INFO"

    # Server (palmmatch-serve)
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WEB_WORKERS: int = 1

    # Operator key for maintenance routes; unset disables them
    ADMIN_KEY: Optional[str] = None

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None
    STORE_TIMEOUT_SECONDS: float = 2.0
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Code broker / lifecycle TTLs
    CODE_TTL_DAYS: int = 30
    INVITE_TTL_DAYS: int = 7
    PUBLIC_FEED_LIMIT: int = 20

    # Palm scoring weights (must sum to 1.0)
    SCORE_WEIGHT_AFFINITY: float = 0.30
    SCORE_WEIGHT_COMMUNICATION: float = 0.25
    SCORE_WEIGHT_LIFE_DIRECTION: float = 0.25
    SCORE_WEIGHT_VITALITY: float = 0.20

    # Cross-system blend (must sum to 1.0)
    BLEND_WEIGHT_ASTROLOGY: float = 0.4
    BLEND_WEIGHT_PALM: float = 0.4
    BLEND_WEIGHT_CORRELATION: float = 0.2
    CORRELATION_TAG_THRESHOLD: int = 75

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def _weights_sum_to_one(*weights: float) -> bool:
    return abs(sum(weights) - 1.0) <= 0.001


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("palmmatch")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []

    if cfg.ENV.lower() == "production" and not cfg.DATABASE_URL:
        problems.append("Missing required configuration: DATABASE_URL")

    if not _weights_sum_to_one(
        cfg.SCORE_WEIGHT_AFFINITY,
        cfg.SCORE_WEIGHT_COMMUNICATION,
        cfg.SCORE_WEIGHT_LIFE_DIRECTION,
        cfg.SCORE_WEIGHT_VITALITY,
    ):
        problems.append("SCORE_WEIGHT_* must sum to 1.0")

    if not _weights_sum_to_one(
        cfg.BLEND_WEIGHT_ASTROLOGY,
        cfg.BLEND_WEIGHT_PALM,
        cfg.BLEND_WEIGHT_CORRELATION,
    ):
        problems.append("BLEND_WEIGHT_* must sum to 1.0")

    if cfg.CODE_TTL_DAYS <= 0 or cfg.INVITE_TTL_DAYS <= 0:
        problems.append("CODE_TTL_DAYS and INVITE_TTL_DAYS must be positive")

    if problems:
        message = "; ".join(problems)
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True

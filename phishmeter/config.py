"""Configuration management for PhishMeter."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Set

from dotenv import load_dotenv

from .constants import (
    CACHE_CLEANUP_INTERVAL_MINUTES,
    CACHE_FRESHNESS_SECONDS,
    CACHE_MAX_AGE_SECONDS,
    TABLE_REFRESH_INTERVAL_MINUTES,
    RiskThresholds,
)

logger = logging.getLogger(__name__)


# Page-level checks are skipped on these hosts (and their subdomains).
DEFAULT_TRUSTED_DOMAINS: set[str] = {
    "google.com",
    "youtube.com",
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "linkedin.com",
    "github.com",
    "stackoverflow.com",
    "wikipedia.org",
    "amazon.com",
    "netflix.com",
    "spotify.com",
    "apple.com",
    "microsoft.com",
    "mozilla.org",
}


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Protection toggles
    protection_enabled: bool = True
    real_time_scanning: bool = True
    warning_popups: bool = True

    # Risk banding
    risk_thresholds: RiskThresholds = field(default_factory=RiskThresholds.strict)

    # Result cache and periodic work
    cache_freshness_seconds: int = CACHE_FRESHNESS_SECONDS
    cache_max_age_seconds: int = CACHE_MAX_AGE_SECONDS
    cache_cleanup_interval_minutes: int = CACHE_CLEANUP_INTERVAL_MINUTES
    table_refresh_interval_minutes: int = TABLE_REFRESH_INTERVAL_MINUTES

    # Health/metrics server (optional)
    health_host: str = "127.0.0.1"
    health_port: int = 8081
    health_enabled: bool = True

    # Paths
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    trusted_domains: Set[str] = field(default_factory=lambda: set(DEFAULT_TRUSTED_DOMAINS))

    def __post_init__(self):
        """Normalize paths and make sure the data dir exists."""
        self.data_dir = Path(self.data_dir)
        self.config_dir = Path(self.config_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.trusted_domains = {d.strip().lower() for d in self.trusted_domains if d.strip()}

    @property
    def stats_path(self) -> Path:
        return self.data_dir / "stats.json"

    @property
    def blocked_sites_path(self) -> Path:
        return self.data_dir / "blocked_sites.txt"


def _load_thresholds() -> RiskThresholds:
    """Resolve risk thresholds from RISK_CONVENTION or explicit cutoffs."""
    convention = os.getenv("RISK_CONVENTION", "strict").strip().lower()
    base = RiskThresholds.lenient() if convention == "lenient" else RiskThresholds.strict()

    safe_at = os.getenv("RISK_SAFE_AT", "").strip()
    warning_at = os.getenv("RISK_WARNING_AT", "").strip()
    if not safe_at and not warning_at:
        return base
    return RiskThresholds(
        safe_at=int(safe_at) if safe_at else base.safe_at,
        warning_at=int(warning_at) if warning_at else base.warning_at,
    )


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    trusted_str = os.getenv("TRUSTED_DOMAINS", "")
    extra_kwargs: dict[str, object] = {}
    if trusted_str.strip():
        trusted = {d.strip().lower() for d in trusted_str.split(",") if d.strip()}
        extra_kwargs["trusted_domains"] = set(DEFAULT_TRUSTED_DOMAINS) | trusted

    return Config(
        protection_enabled=os.getenv("PROTECTION_ENABLED", "true").lower() == "true",
        real_time_scanning=os.getenv("REAL_TIME_SCANNING", "true").lower() == "true",
        warning_popups=os.getenv("WARNING_POPUPS", "true").lower() == "true",
        risk_thresholds=_load_thresholds(),
        cache_freshness_seconds=int(os.getenv("CACHE_FRESHNESS_SECONDS", str(CACHE_FRESHNESS_SECONDS))),
        cache_max_age_seconds=int(os.getenv("CACHE_MAX_AGE_SECONDS", str(CACHE_MAX_AGE_SECONDS))),
        cache_cleanup_interval_minutes=int(
            os.getenv("CACHE_CLEANUP_INTERVAL_MINUTES", str(CACHE_CLEANUP_INTERVAL_MINUTES))
        ),
        table_refresh_interval_minutes=int(
            os.getenv("TABLE_REFRESH_INTERVAL_MINUTES", str(TABLE_REFRESH_INTERVAL_MINUTES))
        ),
        health_host=os.getenv("HEALTH_HOST", "127.0.0.1"),
        health_port=int(os.getenv("HEALTH_PORT", "8081")),
        health_enabled=os.getenv("HEALTH_ENABLED", "true").lower() == "true",
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        config_dir=Path(os.getenv("CONFIG_DIR", "./config")),
        **extra_kwargs,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if config.cache_freshness_seconds <= 0:
        errors.append("CACHE_FRESHNESS_SECONDS must be positive")
    if config.cache_max_age_seconds < config.cache_freshness_seconds:
        errors.append("CACHE_MAX_AGE_SECONDS must be at least CACHE_FRESHNESS_SECONDS")
    if config.cache_cleanup_interval_minutes <= 0:
        errors.append("CACHE_CLEANUP_INTERVAL_MINUTES must be positive")
    if config.table_refresh_interval_minutes <= 0:
        errors.append("TABLE_REFRESH_INTERVAL_MINUTES must be positive")
    if not 0 < config.health_port < 65536:
        errors.append("HEALTH_PORT must be between 1 and 65535")

    if not (config.config_dir / "lexical_tables.yaml").exists():
        logger.info("No lexical_tables.yaml in %s; built-in tables will be used", config.config_dir)

    return errors

"""Centralized constants for PhishMeter.

Risk bands and the thresholds that map a 0-100 safety score onto them.
Scores run the other way from a threat score: 100 is clean, 0 is worst.
"""

from dataclasses import dataclass
from enum import IntEnum


class RiskLevel(IntEnum):
    """Risk bands with ranking for comparison (higher is worse)."""

    SAFE = 0
    WARNING = 1
    DANGER = 2

    @classmethod
    def from_string(cls, value: str | None) -> "RiskLevel":
        """Convert a band name to the enum, defaulting to DANGER for unknown input."""
        if not value:
            return cls.DANGER
        mapping = {
            "safe": cls.SAFE,
            "warning": cls.WARNING,
            "danger": cls.DANGER,
        }
        return mapping.get(value.strip().lower(), cls.DANGER)

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class RiskThresholds:
    """Score cutoffs: ``score >= safe_at`` is safe, ``>= warning_at`` is warning."""

    safe_at: int = 80
    warning_at: int = 60

    def __post_init__(self):
        if not 0 <= self.warning_at <= self.safe_at <= 100:
            raise ValueError(
                f"thresholds must satisfy 0 <= warning_at <= safe_at <= 100 "
                f"(got warning_at={self.warning_at}, safe_at={self.safe_at})"
            )

    @classmethod
    def strict(cls) -> "RiskThresholds":
        """The canonical convention: safe >= 80, warning >= 60, else danger."""
        return cls(safe_at=80, warning_at=60)

    @classmethod
    def lenient(cls) -> "RiskThresholds":
        """The older convention: danger < 40, warning < 70, else safe."""
        return cls(safe_at=70, warning_at=40)

    def classify(self, score: int) -> RiskLevel:
        if score >= self.safe_at:
            return RiskLevel.SAFE
        if score >= self.warning_at:
            return RiskLevel.WARNING
        return RiskLevel.DANGER


DEFAULT_THRESHOLDS = RiskThresholds.strict()

# Starting score for every check; penalties only ever subtract from it.
MAX_SCORE = 100
MIN_SCORE = 0

UNPARSEABLE_THREAT = "unparseable URL"

# Freshness windows for the caller-owned cache and refresh cadence.
CACHE_FRESHNESS_SECONDS = 5 * 60
CACHE_MAX_AGE_SECONDS = 24 * 60 * 60
CACHE_CLEANUP_INTERVAL_MINUTES = 60
TABLE_REFRESH_INTERVAL_MINUTES = 6 * 60


def clamp_score(score: int) -> int:
    """Clamp a score into [MIN_SCORE, MAX_SCORE]."""
    return max(MIN_SCORE, min(MAX_SCORE, int(score)))


def compare_risk(r1: str | None, r2: str | None) -> int:
    """Compare two band names. Positive if r1 is worse than r2."""
    return RiskLevel.from_string(r1) - RiskLevel.from_string(r2)


def risk_escalated(current: str | None, previous: str | None) -> bool:
    """Check if the band has gotten worse."""
    return compare_risk(current, previous) > 0

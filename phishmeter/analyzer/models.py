"""Evaluation data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from ..constants import DEFAULT_THRESHOLDS, MAX_SCORE, RiskLevel, RiskThresholds, clamp_score


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single check: a 0-100 score plus the threats it found."""

    score: int = MAX_SCORE
    threats: tuple[str, ...] = ()
    status: RiskLevel = RiskLevel.SAFE

    @classmethod
    def build(
        cls,
        score: int,
        threats: list[str] | tuple[str, ...] = (),
        thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
    ) -> "CheckResult":
        """Clamp the score once and derive the status band."""
        score = clamp_score(score)
        return cls(score=score, threats=tuple(threats), status=thresholds.classify(score))

    def to_dict(self) -> dict:
        return {"score": self.score, "threats": list(self.threats), "status": str(self.status)}


@dataclass(frozen=True)
class Analysis:
    """Aggregate of one evaluation run."""

    url: str
    domain: str
    timestamp: datetime
    checks: Mapping[str, CheckResult] = field(default_factory=dict)
    overall_score: int = MAX_SCORE
    risk_level: RiskLevel = RiskLevel.SAFE
    threats: tuple[str, ...] = ()

    # Set only for the synthetic result of an unparseable URL.
    error: Optional[str] = None

    @property
    def is_unparseable(self) -> bool:
        return self.error is not None

    @property
    def is_dangerous(self) -> bool:
        return self.risk_level == RiskLevel.DANGER

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "timestamp": self.timestamp.isoformat(),
            "checks": {name: result.to_dict() for name, result in self.checks.items()},
            "overall_score": self.overall_score,
            "risk_level": str(self.risk_level),
            "threats": list(self.threats),
            "error": self.error,
        }

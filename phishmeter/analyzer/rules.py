"""Rule-based building blocks for the check battery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..constants import DEFAULT_THRESHOLDS, MAX_SCORE, RiskThresholds
from ..utils.domains import ParsedUrl
from .models import CheckResult
from .page import PageSnapshot
from .tables import LexicalTables


@dataclass(frozen=True)
class EvaluationContext:
    """Shared, read-only input passed to each check."""

    parsed: ParsedUrl
    tables: LexicalTables
    page: Optional[PageSnapshot] = None
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS

    @property
    def url(self) -> str:
        return self.parsed.url

    @property
    def domain(self) -> str:
        return self.parsed.host


@dataclass
class Penalties:
    """Accumulates penalties for one check; the score is clamped only at the end."""

    score: int = MAX_SCORE
    threats: list[str] = field(default_factory=list)

    def add(self, points: int, threat: str) -> None:
        self.score -= points
        self.threats.append(threat)

    def result(self, thresholds: RiskThresholds = DEFAULT_THRESHOLDS) -> CheckResult:
        return CheckResult.build(self.score, self.threats, thresholds)


class CheckRule(Protocol):
    """Interface for checks."""

    name: str
    requires_page: bool

    def apply(self, context: EvaluationContext) -> CheckResult:  # pragma: no cover - interface
        ...

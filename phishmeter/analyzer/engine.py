"""Risk evaluation engine: runs the check battery and aggregates the results."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from ..constants import DEFAULT_THRESHOLDS, MIN_SCORE, UNPARSEABLE_THREAT, RiskLevel, RiskThresholds
from ..utils.domains import InputError, parse_url
from .models import Analysis, CheckResult
from .page import PageSnapshot
from .page_rules import PAGE_RULES
from .rules import CheckRule, EvaluationContext
from .tables import LexicalTables, TableStore
from .url_rules import URL_RULES

logger = logging.getLogger(__name__)

ALL_RULES: tuple[CheckRule, ...] = URL_RULES + PAGE_RULES


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate(
    url: str,
    domain: str,
    results: Mapping[str, CheckResult],
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
    timestamp: Optional[datetime] = None,
) -> Analysis:
    """Reduce named check results (in evaluation order) to one Analysis."""
    checks = dict(results)
    if checks:
        overall = _round_half_up(sum(r.score for r in checks.values()) / len(checks))
    else:
        overall = MIN_SCORE

    threats: list[str] = []
    for result in checks.values():
        threats.extend(result.threats)

    return Analysis(
        url=url,
        domain=domain,
        timestamp=timestamp or datetime.now(timezone.utc),
        checks=checks,
        overall_score=overall,
        risk_level=thresholds.classify(overall),
        threats=tuple(threats),
    )


def unparseable_analysis(url: str, error: str) -> Analysis:
    """Maximal-risk stand-in for a URL that cannot be parsed."""
    return Analysis(
        url=url or "",
        domain="",
        timestamp=datetime.now(timezone.utc),
        checks={},
        overall_score=MIN_SCORE,
        risk_level=RiskLevel.DANGER,
        threats=(UNPARSEABLE_THREAT,),
        error=error or UNPARSEABLE_THREAT,
    )


def run_checks(
    context: EvaluationContext,
    rules: Sequence[CheckRule] = ALL_RULES,
) -> dict[str, CheckResult]:
    """Apply each rule in order; rules without their inputs, or that fail, are omitted."""
    results: dict[str, CheckResult] = {}
    for rule in rules:
        if rule.requires_page and context.page is None:
            continue
        try:
            results[rule.name] = rule.apply(context)
        except Exception as exc:  # pragma: no cover
            logger.warning(
                "Check %s failed for %s: %s",
                getattr(rule, "name", "unknown"),
                context.domain,
                exc,
            )
    return results


def _evaluate(
    url: str,
    tables: LexicalTables,
    page: Optional[PageSnapshot],
    thresholds: RiskThresholds,
) -> Analysis:
    try:
        parsed = parse_url(url)
    except InputError as exc:
        logger.info("Unparseable URL %r: %s", url, exc)
        return unparseable_analysis(url, str(exc))

    context = EvaluationContext(parsed=parsed, tables=tables, page=page, thresholds=thresholds)
    results = run_checks(context)
    analysis = aggregate(parsed.url, parsed.host, results, thresholds)
    logger.debug(
        "Evaluated %s: score=%s risk=%s threats=%s",
        parsed.host,
        analysis.overall_score,
        analysis.risk_level,
        len(analysis.threats),
    )
    return analysis


def evaluate_url(
    url: str,
    tables: LexicalTables,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> Analysis:
    """URL/domain checks only."""
    return _evaluate(url, tables, None, thresholds)


def evaluate_page(
    url: str,
    snapshot: Optional[PageSnapshot],
    tables: LexicalTables,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> Analysis:
    """Full battery; page checks are skipped when no snapshot is supplied."""
    return _evaluate(url, tables, snapshot, thresholds)


class RiskEvaluator:
    """Evaluates URLs against whatever tables the store currently holds."""

    def __init__(
        self,
        store: Optional[TableStore] = None,
        thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
    ):
        self.store = store or TableStore()
        self.thresholds = thresholds

    def evaluate_url(self, url: str) -> Analysis:
        return evaluate_url(url, self.store.current(), self.thresholds)

    def evaluate_page(self, url: str, snapshot: Optional[PageSnapshot]) -> Analysis:
        return evaluate_page(url, snapshot, self.store.current(), self.thresholds)

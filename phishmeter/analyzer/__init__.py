"""Heuristic check battery and risk aggregation for PhishMeter."""

from .engine import RiskEvaluator, aggregate, evaluate_page, evaluate_url, unparseable_analysis
from .models import Analysis, CheckResult
from .page import PageSnapshot
from .similarity import is_typosquatting, levenshtein_distance
from .tables import LexicalTables, TablesLoader, TableStore

__all__ = [
    "RiskEvaluator",
    "aggregate",
    "evaluate_page",
    "evaluate_url",
    "unparseable_analysis",
    "Analysis",
    "CheckResult",
    "PageSnapshot",
    "is_typosquatting",
    "levenshtein_distance",
    "LexicalTables",
    "TablesLoader",
    "TableStore",
]

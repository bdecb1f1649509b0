"""Tests for the evaluation engine and risk aggregation."""

from datetime import datetime, timezone

import pytest

from phishmeter.analyzer import (
    PageSnapshot,
    RiskEvaluator,
    TableStore,
    aggregate,
    evaluate_page,
    evaluate_url,
)
from phishmeter.analyzer.engine import run_checks
from phishmeter.analyzer.models import CheckResult
from phishmeter.analyzer.rules import EvaluationContext
from phishmeter.analyzer.url_rules import SslRule
from phishmeter.constants import RiskLevel, RiskThresholds
from phishmeter.utils.domains import parse_url

URL_CHECKS = ["blacklist", "domain_reputation", "url_structure", "ssl", "phishing_patterns"]
PAGE_CHECKS = ["page_elements", "page_content", "page_forms"]

SAMPLE_URLS = [
    "https://www.google.com/search?q=x",
    "http://paypa1-secure-login.tk/verify",
    "http://192.168.1.1/login",
    "https://a.b.c.d.e.secure-verify-update-login-account.tk/login/verify?redirect=x&url=y",
    "https://bit.ly/abc?goto=z",
    "https://xn--mnchen-3ya.de/",
    "ftp://fake-bank.net/",
    "not a url",
    "",
]


def _without_timestamp(analysis):
    data = analysis.to_dict()
    data.pop("timestamp")
    return data


class TestScenarios:
    def test_popular_site_is_clean(self, tables):
        analysis = evaluate_url("https://www.google.com/search?q=x", tables)
        assert list(analysis.checks) == URL_CHECKS
        assert all(result.score == 100 for result in analysis.checks.values())
        assert analysis.overall_score == 100
        assert analysis.risk_level == RiskLevel.SAFE
        assert analysis.threats == ()
        assert analysis.domain == "www.google.com"

    def test_leet_phishing_url_is_dangerous(self, tables):
        analysis = evaluate_url("http://paypa1-secure-login.tk/verify", tables)
        assert analysis.checks["ssl"].score <= 50
        assert analysis.checks["domain_reputation"].score == 30
        assert analysis.checks["url_structure"].score == 55
        assert analysis.checks["phishing_patterns"].score == 50
        assert analysis.overall_score == 57
        assert analysis.risk_level == RiskLevel.DANGER
        assert "No SSL encryption" in analysis.threats
        assert "Suspicious top-level domain" in analysis.threats

    def test_ip_address_url(self, tables):
        analysis = evaluate_url("http://192.168.1.1/login", tables)
        assert analysis.checks["url_structure"].score == 60
        assert "IP address used instead of domain" in analysis.threats

    def test_malformed_url_never_raises(self, tables):
        analysis = evaluate_url("not a url", tables)
        assert analysis.is_unparseable
        assert analysis.overall_score == 0
        assert analysis.risk_level == RiskLevel.DANGER
        assert analysis.threats == ("unparseable URL",)
        assert analysis.checks == {}

    def test_leet_url_under_lenient_thresholds(self, tables):
        analysis = evaluate_url("http://paypa1-secure-login.tk/verify", tables, RiskThresholds.lenient())
        assert analysis.overall_score == 57
        assert analysis.risk_level == RiskLevel.WARNING


class TestProperties:
    def test_deterministic(self, tables):
        for url in SAMPLE_URLS:
            first = evaluate_url(url, tables)
            second = evaluate_url(url, tables)
            assert _without_timestamp(first) == _without_timestamp(second)

    def test_scores_bounded(self, tables):
        for url in SAMPLE_URLS:
            analysis = evaluate_url(url, tables)
            assert 0 <= analysis.overall_score <= 100
            for result in analysis.checks.values():
                assert 0 <= result.score <= 100

    def test_blacklist_dominance(self, tables):
        custom = tables.with_overrides(blacklist=["www.google.com"])
        analysis = evaluate_url("https://www.google.com/", custom)
        assert analysis.checks["blacklist"].score == 0
        assert analysis.threats[0] == "Domain is blacklisted"

    @pytest.mark.parametrize(
        "clean,dirty",
        [
            ("https://example.com/", "http://example.com/"),
            ("https://example.com/", "https://example.tk/"),
            ("https://example.com/a", "https://example.com/login/verify"),
            ("https://example.com/", "https://example.com/?redirect=x"),
        ],
    )
    def test_monotonic_penalty(self, tables, clean, dirty):
        before = evaluate_url(clean, tables)
        after = evaluate_url(dirty, tables)
        for name in URL_CHECKS:
            assert after.checks[name].score <= before.checks[name].score
        assert after.overall_score < before.overall_score

    def test_threats_follow_check_order(self, tables):
        analysis = evaluate_url("http://paypa1-secure-login.tk/verify", tables)
        expected = []
        for result in analysis.checks.values():
            expected.extend(result.threats)
        assert list(analysis.threats) == expected
        assert analysis.threats[0] == "Suspicious top-level domain"


class TestAggregate:
    def test_mean_rounds_half_up(self):
        results = {"a": CheckResult.build(100), "b": CheckResult.build(45)}
        analysis = aggregate("https://x.test/", "x.test", results)
        assert analysis.overall_score == 73
        assert analysis.risk_level == RiskLevel.WARNING

    def test_empty_results_are_maximal_risk(self):
        analysis = aggregate("https://x.test/", "x.test", {})
        assert analysis.overall_score == 0
        assert analysis.risk_level == RiskLevel.DANGER

    def test_timestamp_passthrough(self):
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        analysis = aggregate("u", "d", {"a": CheckResult.build(90)}, timestamp=stamp)
        assert analysis.timestamp == stamp
        assert analysis.to_dict()["timestamp"] == "2024-01-01T00:00:00+00:00"


class TestPageEvaluation:
    HTML = (
        "<p>Urgent action required</p>"
        '<form action="/login"><input type="password" name="pw"></form>'
    )

    def test_page_checks_included(self, tables):
        url = "http://shop.example.com/"
        snapshot = PageSnapshot.from_html(self.HTML, url)
        analysis = evaluate_page(url, snapshot, tables)
        assert list(analysis.checks) == URL_CHECKS + PAGE_CHECKS
        assert analysis.checks["page_content"].score == 85
        assert analysis.checks["page_forms"].score == 60
        assert "Password form on non-HTTPS page" in analysis.threats

    def test_missing_snapshot_skips_page_checks(self, tables):
        analysis = evaluate_page("https://example.com/", None, tables)
        assert list(analysis.checks) == URL_CHECKS


class _ExplodingRule:
    name = "exploding"
    requires_page = False

    def apply(self, context):
        raise RuntimeError("boom")


def test_failing_check_is_omitted(tables):
    context = EvaluationContext(parsed=parse_url("http://example.com/"), tables=tables)
    results = run_checks(context, [_ExplodingRule(), SslRule()])
    assert list(results) == ["ssl"]


def test_evaluator_sees_replaced_tables(tables):
    store = TableStore(tables=tables)
    evaluator = RiskEvaluator(store)
    assert evaluator.evaluate_url("https://example.com/").checks["blacklist"].score == 100

    store.replace(tables.with_overrides(blacklist=["example.com"], version="v2"))
    assert evaluator.evaluate_url("https://example.com/").checks["blacklist"].score == 0

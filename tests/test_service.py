"""Tests for the protection service layer."""

import asyncio
import json
import threading

import pytest

from phishmeter.analyzer import PageSnapshot
from phishmeter.constants import RiskLevel
from phishmeter.service import (
    PeriodicTasks,
    ProtectionService,
    ScanStats,
    StatsStore,
    is_internal_url,
)
from phishmeter.utils.domains import InputError
from phishmeter.utils.lists import read_domain_list

PHISH_URL = "http://paypa1-secure-login.tk/verify"


class RecordingNotifier:
    def __init__(self):
        self.seen = []

    def notify_danger(self, analysis):
        self.seen.append(analysis)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(config, notifier):
    return ProtectionService(config, notifier=notifier)


@pytest.mark.parametrize(
    "url",
    ["chrome://settings", "chrome-extension://abc/popup.html", "moz-extension://x/y", "about:blank", ""],
)
def test_internal_urls(url):
    assert is_internal_url(url)


def test_internal_urls_are_skipped(service):
    assert service.scan("chrome://extensions") is None
    assert service.stats.snapshot().sites_scanned == 0


def test_safe_scan_counts_site(service, notifier):
    analysis = service.scan("https://www.google.com/")
    assert analysis.risk_level == RiskLevel.SAFE
    stats = service.stats.snapshot()
    assert stats.sites_scanned == 1
    assert stats.threats_blocked == 0
    assert notifier.seen == []


def test_dangerous_scan_blocks_and_notifies(service, notifier, config):
    analysis = service.scan(PHISH_URL)
    assert analysis.risk_level == RiskLevel.DANGER
    assert service.stats.snapshot().threats_blocked == 1
    assert notifier.seen == [analysis]
    assert service.is_blocked("http://paypa1-secure-login.tk/anything")
    assert "paypa1-secure-login.tk" in read_domain_list(config.blocked_sites_path)


def test_protection_disabled_only_counts(config, notifier):
    config.protection_enabled = False
    service = ProtectionService(config, notifier=notifier)
    service.scan(PHISH_URL)
    assert service.stats.snapshot().threats_blocked == 1
    assert notifier.seen == []
    assert not service.is_blocked(PHISH_URL)


def test_warning_popups_disabled(config, notifier):
    config.warning_popups = False
    service = ProtectionService(config, notifier=notifier)
    service.scan(PHISH_URL)
    assert notifier.seen == []
    assert service.is_blocked(PHISH_URL)


def test_fresh_cache_hit_is_not_recounted(service):
    first = service.scan("https://example.com/a")
    second = service.scan("https://example.com/b")
    assert second is first
    assert service.stats.snapshot().sites_scanned == 1


def test_unparseable_url_is_counted_as_threat(service):
    analysis = service.scan("not a url")
    assert analysis.is_unparseable
    assert service.stats.snapshot().threats_blocked == 1
    assert service.blocked_sites == set()


def test_trusted_domains_skip_page_checks(service):
    snapshot = PageSnapshot(text="urgent action required")
    assert service.should_analyze_page("https://mail.google.com/") is False
    assert service.should_analyze_page("https://evil.test/") is True

    trusted = service.scan("https://www.github.com/", snapshot)
    assert "page_content" not in trusted.checks

    other = service.scan("https://evil.test/", snapshot)
    assert other.checks["page_content"].score == 85


def test_handle_navigation_respects_real_time_toggle(config):
    config.real_time_scanning = False
    service = ProtectionService(config)
    assert service.handle_navigation("https://example.com/") is None

    config.real_time_scanning = True
    assert service.handle_navigation("https://example.com/") is not None


def test_report_site(service, config):
    assert service.report_site("https://Reported.Example/path?x=1") == "reported.example"
    assert service.is_blocked("https://reported.example/")

    reloaded = ProtectionService(config)
    assert reloaded.is_blocked("https://reported.example/other")


def test_report_site_rejects_malformed(service):
    with pytest.raises(InputError):
        service.report_site("not a url")


def test_refresh_tables_picks_up_new_blacklist(service, config):
    config.config_dir.mkdir(parents=True, exist_ok=True)
    (config.config_dir / "blacklist.txt").write_text("newly-bad.test\n")
    service.refresh_tables()
    analysis = service.scan("https://newly-bad.test/")
    assert analysis.checks["blacklist"].score == 0


def test_status(service):
    service.scan("https://example.com/")
    status = service.status()
    assert status["sites_scanned"] == 1
    assert status["cached_analyses"] == 1
    assert status["tables_version"] == "builtin"


class TestStatsStore:
    def test_persisted_atomically(self, tmp_path, service):
        path = tmp_path / "stats.json"
        store = StatsStore(path)
        store.record(service.evaluator.evaluate_url(PHISH_URL))

        data = json.loads(path.read_text())
        assert data["sites_scanned"] == 1
        assert data["threats_blocked"] == 1
        assert not path.with_suffix(".json.tmp").exists()

        assert StatsStore(path).snapshot().sites_scanned == 1

    def test_corrupt_file_starts_fresh(self, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text("{not json")
        assert StatsStore(path).snapshot() == ScanStats()


@pytest.mark.asyncio
async def test_periodic_tasks_run_and_stop(config):
    config.cache_cleanup_interval_minutes = 0.0001
    config.table_refresh_interval_minutes = 0.0001
    service = ProtectionService(config)
    calls = {"cleanup": 0, "refresh": 0}
    threads = set()

    def cleanup():
        calls["cleanup"] += 1
        threads.add(threading.get_ident())
        return 0

    def refresh():
        calls["refresh"] += 1
        threads.add(threading.get_ident())
        return "builtin"

    service.cleanup_cache = cleanup
    service.refresh_tables = refresh

    tasks = PeriodicTasks(service)
    await tasks.start()
    await asyncio.sleep(0.05)
    await tasks.stop()

    assert calls["cleanup"] >= 1
    assert calls["refresh"] >= 1
    assert threading.get_ident() not in threads

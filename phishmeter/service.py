"""Protection service: caching, statistics and blocking around the evaluator."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from .analyzer import PageSnapshot, RiskEvaluator, TablesLoader, TableStore
from .analyzer.models import Analysis
from .cache import AnalysisCache
from .config import Config
from .constants import risk_escalated
from .utils.domains import extract_hostname, parse_url
from .utils.lists import read_domain_list, write_domain_list

logger = logging.getLogger(__name__)

INTERNAL_URL_PREFIXES = ("chrome://", "chrome-extension://", "moz-extension://", "about:")


def is_internal_url(url: str) -> bool:
    """Browser-internal pages are never scanned."""
    value = (url or "").strip().lower()
    return not value or value.startswith(INTERNAL_URL_PREFIXES)


@dataclass
class ScanStats:
    sites_scanned: int = 0
    threats_blocked: int = 0
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ScanStats":
        return cls(
            sites_scanned=int(data.get("sites_scanned") or 0),
            threats_blocked=int(data.get("threats_blocked") or 0),
            updated_at=data.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


class StatsStore:
    """Scan counters persisted as JSON (in memory only when no path is given)."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._stats = self._load()

    def _load(self) -> ScanStats:
        if not self.path or not self.path.exists():
            return ScanStats()
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read stats from %s: %s", self.path, exc)
            return ScanStats()
        if not isinstance(data, dict):
            return ScanStats()
        return ScanStats.from_dict(data)

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._stats.to_dict(), indent=2, sort_keys=True))
        tmp_path.replace(self.path)

    def record(self, analysis: Analysis) -> ScanStats:
        """Count one scan, and one blocked threat if it was dangerous."""
        with self._lock:
            self._stats.sites_scanned += 1
            if analysis.is_dangerous:
                self._stats.threats_blocked += 1
            self._stats.updated_at = datetime.now(timezone.utc).isoformat()
            self._save()
            return ScanStats(**self._stats.to_dict())

    def snapshot(self) -> ScanStats:
        with self._lock:
            return ScanStats(**self._stats.to_dict())


class Notifier(Protocol):
    """Anything that can tell the user about a dangerous site."""

    def notify_danger(self, analysis: Analysis) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes warnings to the log."""

    def notify_danger(self, analysis: Analysis) -> None:
        logger.warning(
            "Dangerous website blocked: %s (score %s, %s threats)",
            analysis.domain,
            analysis.overall_score,
            len(analysis.threats),
        )


class ProtectionService:
    """Evaluates visited URLs and keeps the protection state for the caller."""

    def __init__(
        self,
        config: Config,
        store: Optional[TableStore] = None,
        cache: Optional[AnalysisCache] = None,
        stats: Optional[StatsStore] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.config = config
        self.store = store or TableStore(TablesLoader(config.config_dir))
        self.evaluator = RiskEvaluator(self.store, thresholds=config.risk_thresholds)
        self.cache = cache or AnalysisCache(
            freshness_seconds=config.cache_freshness_seconds,
            max_age_seconds=config.cache_max_age_seconds,
        )
        self.stats = stats or StatsStore(config.stats_path)
        self.notifier: Notifier = notifier or LoggingNotifier()
        self._blocked_lock = threading.Lock()
        self.blocked_sites: set[str] = read_domain_list(config.blocked_sites_path)

    def should_analyze_page(self, url: str) -> bool:
        """Page checks are skipped on trusted domains and their subdomains."""
        host = extract_hostname(url)
        if not host:
            return False
        return not any(host == d or host.endswith(f".{d}") for d in self.config.trusted_domains)

    def scan(self, url: str, snapshot: Optional[PageSnapshot] = None) -> Optional[Analysis]:
        """Evaluate a URL (and its page, if given). Returns None for internal URLs."""
        if is_internal_url(url):
            logger.debug("Skipping internal URL %s", url)
            return None

        cached = self.cache.get_fresh(url)
        if cached is not None:
            logger.debug("Cache hit for %s", cached.domain)
            return cached

        previous = self.cache.get_any(url)
        if snapshot is not None and self.should_analyze_page(url):
            analysis = self.evaluator.evaluate_page(url, snapshot)
        else:
            analysis = self.evaluator.evaluate_url(url)

        self.cache.put(analysis)
        self.stats.record(analysis)

        if previous is not None and risk_escalated(str(analysis.risk_level), str(previous.risk_level)):
            logger.info(
                "Risk escalated for %s: %s -> %s",
                analysis.domain,
                previous.risk_level,
                analysis.risk_level,
            )

        if analysis.is_dangerous and self.config.protection_enabled:
            self._handle_dangerous(analysis)

        return analysis

    def handle_navigation(self, url: str) -> Optional[Analysis]:
        """Automatic scan on navigation; a no-op while real-time scanning is off."""
        if not self.config.real_time_scanning:
            return None
        return self.scan(url)

    def _handle_dangerous(self, analysis: Analysis) -> None:
        if analysis.domain:
            self._block(analysis.domain)
        if self.config.warning_popups:
            try:
                self.notifier.notify_danger(analysis)
            except Exception as exc:
                logger.warning("Notifier failed for %s: %s", analysis.domain, exc)

    def _block(self, host: str) -> None:
        with self._blocked_lock:
            if host in self.blocked_sites:
                return
            self.blocked_sites.add(host)
            write_domain_list(
                self.config.blocked_sites_path,
                self.blocked_sites,
                header=["PhishMeter blocked sites (one host per line)"],
            )
        logger.info("Blocked %s", host)

    def report_site(self, url: str) -> str:
        """Add a user-reported site to the blocked list. Returns the host.

        Raises InputError if the URL cannot be parsed.
        """
        host = parse_url(url).host
        self._block(host)
        logger.info("Site reported by user: %s", host)
        return host

    def is_blocked(self, url: str) -> bool:
        host = extract_hostname(url)
        return bool(host) and host in self.blocked_sites

    def cleanup_cache(self) -> int:
        return self.cache.cleanup()

    def refresh_tables(self) -> str:
        return self.store.refresh()

    def status(self) -> dict:
        """Snapshot used by the health/metrics endpoints."""
        stats = self.stats.snapshot()
        return {
            "protection_enabled": self.config.protection_enabled,
            "real_time_scanning": self.config.real_time_scanning,
            "sites_scanned": stats.sites_scanned,
            "threats_blocked": stats.threats_blocked,
            "blocked_sites": len(self.blocked_sites),
            "cached_analyses": len(self.cache),
            "tables_version": self.store.current().version,
        }


class PeriodicTasks:
    """Background loops for cache cleanup and table refresh."""

    def __init__(self, service: ProtectionService):
        self.service = service
        self._tasks: list[asyncio.Task] = []
        self._running = False

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        config = self.service.config
        self._tasks = [
            asyncio.create_task(
                self._loop(
                    "cache-cleanup",
                    config.cache_cleanup_interval_minutes * 60,
                    self.service.cleanup_cache,
                )
            ),
            asyncio.create_task(
                self._loop(
                    "table-refresh",
                    config.table_refresh_interval_minutes * 60,
                    self.service.refresh_tables,
                )
            ),
        ]
        logger.info("Periodic tasks started")

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Periodic tasks stopped")

    async def _loop(self, name: str, interval_seconds: float, action) -> None:
        while self._running:
            try:
                await asyncio.sleep(interval_seconds)
                await asyncio.to_thread(action)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("%s task error: %s", name, e)
        logger.info("%s task stopped", name)

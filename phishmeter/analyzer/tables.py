"""Lexical tables loader and store for PhishMeter."""

from __future__ import annotations

import dataclasses
import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from ..utils.lists import read_domain_list
from .similarity import DEFAULT_SUBSTITUTIONS

logger = logging.getLogger(__name__)


DEFAULT_BLACKLIST = (
    "phishing-example.com",
    "fake-bank.net",
    "suspicious-site.org",
)

DEFAULT_SUSPICIOUS_TLDS = (".tk", ".ml", ".ga", ".cf", ".pw", ".top", ".click", ".download")

DEFAULT_POPULAR_DOMAINS = (
    "google.com",
    "youtube.com",
    "facebook.com",
    "amazon.com",
    "wikipedia.org",
    "twitter.com",
    "instagram.com",
    "linkedin.com",
    "github.com",
    "stackoverflow.com",
    "microsoft.com",
    "apple.com",
    "netflix.com",
    "paypal.com",
    "ebay.com",
)

DEFAULT_SUSPICIOUS_KEYWORDS = ("secure", "verify", "update", "login", "account")

DEFAULT_SHORTENERS = ("bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "short.link")

DEFAULT_URL_PATTERNS = (
    r"login.*verify",
    r"account.*suspend",
    r"security.*alert",
    r"urgent.*action",
    r"click.*here.*now",
    r"limited.*time",
)

DEFAULT_REDIRECT_PARAMS = ("redirect=", "url=", "goto=")

# Hidden iframes from these sources are ordinary tracking, not phishing.
DEFAULT_TRACKER_ALLOWLIST = ("google", "facebook", "instagram", "twitter", "youtube", "analytics")

DEFAULT_SECURITY_BRANDS = ("verisign", "norton", "mcafee", "ssl")

DEFAULT_URGENT_PHRASES = (
    "urgent action required",
    "account will be closed",
    "verify immediately",
    "suspended account",
    "click here now",
    "limited time offer",
    "act now",
)

DEFAULT_MISSPELLINGS = ("recieve", "seperate", "occured", "neccessary", "definately")


def compile_patterns(patterns) -> tuple[re.Pattern, ...]:
    """Compile case-insensitive URL patterns, skipping invalid ones."""
    compiled: list[re.Pattern] = []
    for pattern in patterns or []:
        if isinstance(pattern, re.Pattern):
            compiled.append(pattern)
            continue
        text = str(pattern or "").strip()
        if not text:
            continue
        try:
            compiled.append(re.compile(text, re.I))
        except re.error as exc:
            logger.warning("Skipping invalid URL pattern %r: %s", text, exc)
    return tuple(compiled)


def _normalize_tld(value: str) -> str:
    value = value.strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


@dataclass(frozen=True)
class LexicalTables:
    """Read-only reference lists used by the checks.

    Instances are never mutated; a refresh builds a new instance and swaps it in.
    """

    version: str = "builtin"
    blacklist: frozenset[str] = frozenset(DEFAULT_BLACKLIST)
    suspicious_tlds: tuple[str, ...] = DEFAULT_SUSPICIOUS_TLDS
    popular_domains: tuple[str, ...] = DEFAULT_POPULAR_DOMAINS
    suspicious_keywords: tuple[str, ...] = DEFAULT_SUSPICIOUS_KEYWORDS
    shorteners: tuple[str, ...] = DEFAULT_SHORTENERS
    url_patterns: tuple[re.Pattern, ...] = field(
        default_factory=lambda: compile_patterns(DEFAULT_URL_PATTERNS)
    )
    redirect_params: tuple[str, ...] = DEFAULT_REDIRECT_PARAMS
    substitutions: tuple[tuple[str, str], ...] = DEFAULT_SUBSTITUTIONS
    tracker_allowlist: tuple[str, ...] = DEFAULT_TRACKER_ALLOWLIST
    security_brands: tuple[str, ...] = DEFAULT_SECURITY_BRANDS
    urgent_phrases: tuple[str, ...] = DEFAULT_URGENT_PHRASES
    misspellings: tuple[str, ...] = DEFAULT_MISSPELLINGS

    @classmethod
    def default(cls) -> "LexicalTables":
        return cls()

    def with_overrides(self, **changes) -> "LexicalTables":
        """Return a copy with some tables replaced (normalizing their contents)."""
        if "blacklist" in changes:
            changes["blacklist"] = frozenset(d.strip().lower() for d in changes["blacklist"] if d.strip())
        if "suspicious_tlds" in changes:
            changes["suspicious_tlds"] = tuple(
                t for t in (_normalize_tld(v) for v in changes["suspicious_tlds"]) if t
            )
        if "url_patterns" in changes:
            changes["url_patterns"] = compile_patterns(changes["url_patterns"])
        if "substitutions" in changes:
            changes["substitutions"] = tuple((str(a), str(b)) for a, b in changes["substitutions"])
        for name in (
            "popular_domains",
            "suspicious_keywords",
            "shorteners",
            "redirect_params",
            "tracker_allowlist",
            "security_brands",
            "urgent_phrases",
            "misspellings",
        ):
            if name in changes:
                changes[name] = tuple(
                    str(v).strip().lower() for v in changes[name] if str(v).strip()
                )
        return dataclasses.replace(self, **changes)

    def is_blacklisted(self, domain: str) -> bool:
        return domain.lower() in self.blacklist

    def is_popular(self, domain: str) -> bool:
        return domain.lower() in self.popular_domains


class TablesLoader:
    """Loads lexical tables from ``lexical_tables.yaml`` and ``blacklist.txt``."""

    def __init__(self, config_dir: Path):
        self.config_dir = Path(config_dir)
        self.tables_file = self.config_dir / "lexical_tables.yaml"
        self.blacklist_file = self.config_dir / "blacklist.txt"

    def load(self) -> LexicalTables:
        """Build tables from the defaults plus whatever the config dir overrides."""
        tables = LexicalTables.default()
        data = self._read_yaml()

        overrides: dict = {}
        if data:
            domain_cfg = self._section(data, "domain")
            url_cfg = self._section(data, "url")
            page_cfg = self._section(data, "page")

            for key in ("blacklist", "suspicious_tlds", "popular_domains", "suspicious_keywords"):
                value = domain_cfg.get(key)
                if isinstance(value, list):
                    overrides[key] = [str(v) for v in value]

            for key, target in (
                ("shorteners", "shorteners"),
                ("patterns", "url_patterns"),
                ("redirect_params", "redirect_params"),
            ):
                value = url_cfg.get(key)
                if isinstance(value, list):
                    overrides[target] = value

            for key in ("tracker_allowlist", "security_brands", "urgent_phrases", "misspellings"):
                value = page_cfg.get(key)
                if isinstance(value, list):
                    overrides[key] = value

            substitutions = self._coerce_substitutions(data.get("substitutions"))
            if substitutions:
                overrides["substitutions"] = substitutions

            overrides["version"] = str(data.get("version") or "custom")

        extra_blacklist = read_domain_list(self.blacklist_file)
        if extra_blacklist:
            base = overrides.get("blacklist", list(tables.blacklist))
            overrides["blacklist"] = list(base) + sorted(extra_blacklist)

        if overrides:
            tables = tables.with_overrides(**overrides)

        logger.info(
            "Loaded lexical tables v%s (%s blacklisted, %s popular, %s patterns)",
            tables.version,
            len(tables.blacklist),
            len(tables.popular_domains),
            len(tables.url_patterns),
        )
        return tables

    def _read_yaml(self) -> dict:
        if not self.tables_file.exists():
            logger.debug("No lexical tables file at %s; using defaults", self.tables_file)
            return {}
        try:
            data = yaml.safe_load(self.tables_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to parse %s: %s", self.tables_file, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: top level must be a mapping", self.tables_file)
            return {}
        return data

    def _section(self, data: dict, name: str) -> dict:
        value = data.get(name)
        if value is None:
            return {}
        if not isinstance(value, dict):
            logger.warning("Ignoring %s section in %s: expected a mapping", name, self.tables_file)
            return {}
        return value

    def _coerce_substitutions(self, raw) -> list[tuple[str, str]]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Ignoring substitutions in %s: expected a list", self.tables_file)
            return []
        items: list[tuple[str, str]] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            original = str(entry.get("from") or "")
            replacement = str(entry.get("to") or "")
            if original and replacement:
                items.append((original, replacement))
        return items


class TableStore:
    """Holds the current tables and swaps them wholesale on refresh.

    Readers grab ``current()`` once per evaluation and keep that reference, so
    an evaluation sees either the old tables or the new ones, never a mix.
    """

    def __init__(self, loader: Optional[TablesLoader] = None, tables: Optional[LexicalTables] = None):
        self._loader = loader
        self._lock = threading.Lock()
        if tables is None:
            tables = loader.load() if loader else LexicalTables.default()
        self._tables = tables

    def current(self) -> LexicalTables:
        return self._tables

    def replace(self, tables: LexicalTables) -> LexicalTables:
        """Swap in new tables; returns the previous ones."""
        with self._lock:
            previous = self._tables
            self._tables = tables
        logger.info("Lexical tables replaced: v%s -> v%s", previous.version, tables.version)
        return previous

    def refresh(self) -> str:
        """Reload tables from the loader (hot reload). Returns the active version."""
        if self._loader is None:
            return self._tables.version
        try:
            tables = self._loader.load()
        except Exception as exc:
            logger.error("Lexical table refresh failed, keeping v%s: %s", self._tables.version, exc)
            return self._tables.version
        self.replace(tables)
        return tables.version

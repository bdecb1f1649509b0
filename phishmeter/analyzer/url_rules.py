"""URL and domain level checks."""

from __future__ import annotations

import re

from ..utils.domains import decode_idn, registered_label
from .rules import EvaluationContext, Penalties
from .models import CheckResult
from .similarity import find_substitution_target, find_typosquat_target

IP_URL_RE = re.compile(r"^https?://\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}", re.I)
HOMOGRAPH_RE = re.compile(
    r"[а-я]|[αβγδεζηθικλμνξοπρστυφχψω]|[àáâãäåæçèéêëìíîïðñòóôõöøùúûüýþÿ]",
    re.I,
)

MAX_SUBDOMAINS = 3
LONG_LABEL = 10
SHORT_LABEL = 4


class BlacklistRule:
    name = "blacklist"
    requires_page = False

    def apply(self, context: EvaluationContext) -> CheckResult:
        if context.tables.is_blacklisted(context.domain):
            return CheckResult.build(0, ["Domain is blacklisted"], context.thresholds)
        return CheckResult.build(100, [], context.thresholds)


class DomainReputationRule:
    name = "domain_reputation"
    requires_page = False

    def apply(self, context: EvaluationContext) -> CheckResult:
        tables = context.tables
        domain = context.domain
        penalties = Penalties()

        if any(domain.endswith(tld) for tld in tables.suspicious_tlds):
            penalties.add(30, "Suspicious top-level domain")

        target = find_typosquat_target(domain, tables.popular_domains)
        if target:
            penalties.add(50, f"Possible typosquatting of {target}")

        label = registered_label(domain)
        if label and len(label) < SHORT_LABEL:
            penalties.add(20, "Very short domain name")

        if not tables.is_popular(domain):
            for keyword in tables.suspicious_keywords:
                if keyword in domain:
                    penalties.add(20, f"Suspicious keyword in domain: {keyword}")

        return penalties.result(context.thresholds)


class UrlStructureRule:
    name = "url_structure"
    requires_page = False

    def apply(self, context: EvaluationContext) -> CheckResult:
        domain = context.domain
        url = context.url
        penalties = Penalties()

        if len(domain.split(".")) - 2 > MAX_SUBDOMAINS:
            penalties.add(25, "Excessive subdomains")

        for pattern in context.tables.url_patterns:
            if pattern.search(url):
                penalties.add(30, "Suspicious URL pattern")
                break

        if IP_URL_RE.match(url):
            penalties.add(40, "IP address used instead of domain")

        first_label = domain.split(".")[0]
        if any(ch.isdigit() for ch in domain.replace(".", "")) and len(first_label) > LONG_LABEL:
            penalties.add(15, "Suspicious characters in domain")

        return penalties.result(context.thresholds)


class SslRule:
    name = "ssl"
    requires_page = False

    def apply(self, context: EvaluationContext) -> CheckResult:
        penalties = Penalties()
        if not context.parsed.is_https:
            penalties.add(50, "No SSL encryption")
        return penalties.result(context.thresholds)


class PhishingPatternRule:
    name = "phishing_patterns"
    requires_page = False

    def apply(self, context: EvaluationContext) -> CheckResult:
        tables = context.tables
        domain = context.domain
        query = context.parsed.query.lower()
        penalties = Penalties()

        if any(shortener in domain for shortener in tables.shorteners):
            penalties.add(30, "URL shortener detected")

        if any(param in query for param in tables.redirect_params):
            penalties.add(25, "Redirect parameters detected")

        if HOMOGRAPH_RE.search(decode_idn(domain)):
            penalties.add(40, "Potential homograph attack")

        target = find_substitution_target(domain, tables.popular_domains, tables.substitutions)
        if target:
            penalties.add(50, f"Possible typosquatting of {target} (character substitution)")

        return penalties.result(context.thresholds)


URL_RULES = (
    BlacklistRule(),
    DomainReputationRule(),
    UrlStructureRule(),
    SslRule(),
    PhishingPatternRule(),
)

__all__ = [
    "BlacklistRule",
    "DomainReputationRule",
    "UrlStructureRule",
    "SslRule",
    "PhishingPatternRule",
    "URL_RULES",
]

"""Page-level checks over a PageSnapshot."""

from __future__ import annotations

from .models import CheckResult
from .rules import EvaluationContext, Penalties

BADGE_CLAIMS = ("secure", "verified")
INLINE_SCHEMES = ("data:", "javascript:")
EVAL_MARKERS = ("eval(", "document.write(")

SSN_PLACEHOLDERS = ("ssn", "social security")
SSN_NAMES = ("ssn", "social")
CARD_PLACEHOLDERS = ("credit card", "card number")
CARD_NAMES = ("credit", "card")


def is_suspicious_script_src(src: str) -> bool:
    """Script sources that smuggle code inline instead of loading it."""
    src = (src or "").strip().lower()
    if not src:
        return False
    if src.startswith("data:text/javascript") or src.startswith("javascript:"):
        return True
    return src.startswith("data:") and any(marker in src for marker in EVAL_MARKERS)


class PageElementsRule:
    name = "page_elements"
    requires_page = True

    def apply(self, context: EvaluationContext) -> CheckResult:
        page = context.page
        tables = context.tables
        penalties = Penalties()

        hidden_frames = [
            frame
            for frame in page.frames
            if frame.is_hidden
            and frame.src
            and not any(tracker in frame.src.lower() for tracker in tables.tracker_allowlist)
        ]
        if hidden_frames:
            penalties.add(30, "Hidden iframe detected")

        for script in page.scripts:
            if is_suspicious_script_src(script.src):
                penalties.add(25, "Suspicious script source")

        fake_badges = [
            image
            for image in page.images
            if any(claim in image.alt.lower() for claim in BADGE_CLAIMS)
            and not any(brand in image.src.lower() for brand in tables.security_brands)
        ]
        if fake_badges:
            penalties.add(20, "Fake security badge detected")

        return penalties.result(context.thresholds)


class PageContentRule:
    name = "page_content"
    requires_page = True

    def apply(self, context: EvaluationContext) -> CheckResult:
        text = (context.page.text or "").lower()
        tables = context.tables
        penalties = Penalties()

        for phrase in tables.urgent_phrases:
            if phrase in text:
                penalties.add(15, f'Urgent language detected: "{phrase}"')

        for misspelling in dict.fromkeys(tables.misspellings):
            if misspelling in text:
                penalties.add(10, "Spelling errors detected")

        return penalties.result(context.thresholds)


class PageFormsRule:
    name = "page_forms"
    requires_page = True

    def apply(self, context: EvaluationContext) -> CheckResult:
        secure_page = context.parsed.is_https
        penalties = Penalties()

        for form in context.page.forms:
            if form.has_password and not secure_page:
                penalties.add(40, "Password form on non-HTTPS page")

            action = form.action.lower()
            if any(scheme in action for scheme in INLINE_SCHEMES):
                penalties.add(35, "Suspicious form action")

            for field in form.inputs:
                placeholder = field.placeholder.lower()
                name = field.name.lower()

                if any(p in placeholder for p in SSN_PLACEHOLDERS) or any(n in name for n in SSN_NAMES):
                    penalties.add(30, "Form requesting SSN")

                if any(p in placeholder for p in CARD_PLACEHOLDERS) or any(n in name for n in CARD_NAMES):
                    penalties.add(25, "Form requesting credit card")

        return penalties.result(context.thresholds)


PAGE_RULES = (
    PageElementsRule(),
    PageContentRule(),
    PageFormsRule(),
)

__all__ = ["PageElementsRule", "PageContentRule", "PageFormsRule", "PAGE_RULES", "is_suspicious_script_src"]

"""Typosquatting detection: edit distance and look-alike substitutions."""

from __future__ import annotations

from typing import Iterable, Sequence

from ..utils.domains import registered_domain, registered_label

MAX_TYPO_DISTANCE = 2

# Order matters: substitutions are applied cumulatively, left to right.
DEFAULT_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("o", "0"),
    ("i", "1"),
    ("l", "1"),
    ("e", "3"),
    ("a", "@"),
    ("m", "rn"),
    ("w", "vv"),
    ("cl", "d"),
)


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum single-character inserts, deletes or substitutions turning a into b.

    Classic (len(a)+1) x (len(b)+1) dynamic-programming table.
    """
    rows = len(a) + 1
    cols = len(b) + 1
    table = [[0] * cols for _ in range(rows)]

    for i in range(rows):
        table[i][0] = i
    for j in range(cols):
        table[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            if a[i - 1] == b[j - 1]:
                table[i][j] = table[i - 1][j - 1]
            else:
                table[i][j] = 1 + min(
                    table[i - 1][j - 1],
                    table[i][j - 1],
                    table[i - 1][j],
                )

    return table[rows - 1][cols - 1]


def is_typosquatting(candidate: str, reference: str) -> bool:
    """Whether candidate is a near-miss spelling of reference."""
    if candidate == reference:
        return False
    if len(candidate) < len(reference) - MAX_TYPO_DISTANCE:
        return False
    return levenshtein_distance(candidate, reference) <= MAX_TYPO_DISTANCE


def find_typosquat_target(candidate: str, references: Iterable[str]) -> str | None:
    """First reference (in the given order) that candidate typosquats."""
    for reference in references:
        if is_typosquatting(candidate, reference):
            return reference
    return None


def substitution_variants(
    label: str,
    substitutions: Sequence[tuple[str, str]] = DEFAULT_SUBSTITUTIONS,
) -> list[str]:
    """Look-alike spellings of label, one per substitution step that changes it."""
    variants: list[str] = []
    current = label
    for original, replacement in substitutions:
        current = current.replace(original, replacement)
        if current != label and current not in variants:
            variants.append(current)
    return variants


def is_character_substitution(
    candidate: str,
    reference: str,
    substitutions: Sequence[tuple[str, str]] = DEFAULT_SUBSTITUTIONS,
) -> bool:
    """Whether candidate embeds a look-alike spelling of reference's label.

    ``paypa1-secure.tk`` embeds ``paypa1`` and so disguises ``paypal.com``.
    """
    if not candidate or candidate == reference:
        return False
    if registered_domain(candidate) == registered_domain(reference):
        return False

    label = registered_label(reference)
    if not label:
        return False
    return any(variant in candidate for variant in substitution_variants(label, substitutions))


def find_substitution_target(
    candidate: str,
    references: Iterable[str],
    substitutions: Sequence[tuple[str, str]] = DEFAULT_SUBSTITUTIONS,
) -> str | None:
    """First reference whose look-alike spelling appears in candidate.

    Only the reference's registrable label (``paypal``) is rewritten, not the
    full domain.
    """
    for reference in references:
        if is_character_substitution(candidate, reference, substitutions):
            return reference
    return None

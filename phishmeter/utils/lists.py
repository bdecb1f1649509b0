"""Domain list file helpers."""

from __future__ import annotations

from pathlib import Path

from .domains import extract_hostname


def read_domain_list(path: Path) -> set[str]:
    """Read one host per line, skipping blanks and ``#`` comments."""
    if not path.exists():
        return set()

    entries: set[str] = set()
    for line in path.read_text().splitlines():
        value = line.strip()
        if not value or value.startswith("#"):
            continue
        host = extract_hostname(value)
        if host:
            entries.add(host)
    return entries


def write_domain_list(path: Path, entries: set[str], header: list[str] | None = None) -> None:
    """Write hosts to disk (sorted, atomic)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"# {line}" for line in (header or [])]
    content = "\n".join(lines + sorted(entries) + [""])
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content)
    tmp_path.replace(path)

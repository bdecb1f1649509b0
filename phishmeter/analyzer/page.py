"""Read-only page snapshot consumed by the page-level checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from html.parser import HTMLParser
from urllib.parse import urljoin

_SKIP_TEXT_TAGS = {"script", "style", "noscript", "svg", "canvas", "template"}
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class InputField:
    type: str = "text"
    name: str = ""
    placeholder: str = ""


@dataclass(frozen=True)
class FormElement:
    action: str = ""
    method: str = "get"
    inputs: tuple[InputField, ...] = ()

    @property
    def has_password(self) -> bool:
        return any(item.type == "password" for item in self.inputs)


@dataclass(frozen=True)
class ScriptElement:
    src: str = ""
    inline: bool = False


@dataclass(frozen=True)
class ImageElement:
    src: str = ""
    alt: str = ""


@dataclass(frozen=True)
class FrameElement:
    src: str = ""
    style: str = ""
    hidden: bool = False

    @property
    def is_hidden(self) -> bool:
        if self.hidden:
            return True
        style = self.style.replace(" ", "").lower()
        return "display:none" in style or "visibility:hidden" in style


@dataclass(frozen=True)
class PageSnapshot:
    """What the page-level checks may see of a rendered page."""

    url: str = ""
    text: str = ""
    forms: tuple[FormElement, ...] = ()
    scripts: tuple[ScriptElement, ...] = ()
    images: tuple[ImageElement, ...] = ()
    frames: tuple[FrameElement, ...] = ()

    @classmethod
    def from_html(cls, html: str, url: str = "") -> "PageSnapshot":
        """Parse raw HTML into a snapshot; relative src/action values resolve against url."""
        parser = _SnapshotParser(base_url=url)
        parser.feed(html or "")
        parser.close()
        return parser.snapshot(url)


class _SnapshotParser(HTMLParser):
    def __init__(self, base_url: str = "") -> None:
        super().__init__(convert_charrefs=True)
        self.base_url = base_url
        self._chunks: list[str] = []
        self._skip_depth = 0
        self._forms: list[FormElement] = []
        self._open_form: dict | None = None
        self._scripts: list[ScriptElement] = []
        self._images: list[ImageElement] = []
        self._frames: list[FrameElement] = []

    def _resolve(self, value: str) -> str:
        value = (value or "").strip()
        if not value or not self.base_url:
            return value
        return urljoin(self.base_url, value)

    def handle_starttag(self, tag: str, attrs) -> None:  # type: ignore[override]
        attributes = {name.lower(): (value or "") for name, value in attrs}

        if tag in _SKIP_TEXT_TAGS:
            self._skip_depth += 1

        if tag == "form":
            self._close_form()
            self._open_form = {
                "action": self._resolve(attributes.get("action", "")),
                "method": (attributes.get("method") or "get").lower(),
                "inputs": [],
            }
        elif tag == "input" and self._open_form is not None:
            self._open_form["inputs"].append(
                InputField(
                    type=(attributes.get("type") or "text").lower(),
                    name=attributes.get("name", ""),
                    placeholder=attributes.get("placeholder", ""),
                )
            )
        elif tag == "script":
            src = attributes.get("src", "")
            self._scripts.append(ScriptElement(src=self._resolve(src), inline=not src))
        elif tag == "img":
            self._images.append(
                ImageElement(src=self._resolve(attributes.get("src", "")), alt=attributes.get("alt", ""))
            )
        elif tag == "iframe":
            self._frames.append(
                FrameElement(
                    src=self._resolve(attributes.get("src", "")),
                    style=attributes.get("style", ""),
                    hidden="hidden" in attributes,
                )
            )

    def handle_endtag(self, tag: str) -> None:  # type: ignore[override]
        if tag in _SKIP_TEXT_TAGS and self._skip_depth:
            self._skip_depth -= 1
        if tag == "form":
            self._close_form()

    def handle_data(self, data: str) -> None:  # type: ignore[override]
        if self._skip_depth:
            return
        if data and data.strip():
            self._chunks.append(data)

    def _close_form(self) -> None:
        if self._open_form is None:
            return
        form = self._open_form
        self._forms.append(
            FormElement(action=form["action"], method=form["method"], inputs=tuple(form["inputs"]))
        )
        self._open_form = None

    def snapshot(self, url: str) -> PageSnapshot:
        self._close_form()
        text = _WS_RE.sub(" ", " ".join(self._chunks)).strip()
        return PageSnapshot(
            url=url,
            text=text,
            forms=tuple(self._forms),
            scripts=tuple(self._scripts),
            images=tuple(self._images),
            frames=tuple(self._frames),
        )

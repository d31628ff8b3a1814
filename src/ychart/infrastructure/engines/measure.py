"""Natural-height estimation for HTML card markup.

There is no browser to reflow the content, so the natural height of a
card is estimated from its markup: block elements start new lines, text
wraps at an average glyph width, and explicit ``height`` / ``min-height``
styles act as a floor. The estimate is deterministic, which is all height
synchronization needs.
"""

from __future__ import annotations

import math
import re
from html.parser import HTMLParser

DEFAULT_FONT_SIZE = 14.0
LINE_HEIGHT = 1.3
GLYPH_WIDTH = 0.55

_BLOCK_TAGS = frozenset(
    {
        "div", "p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li",
        "section", "header", "footer", "table", "tr", "blockquote", "pre", "hr",
    }
)  # fmt: skip
_VOID_TAGS = frozenset({"br", "img", "hr", "input", "meta", "link", "wbr"})
_TAG_FONT_SIZES = {
    "h1": 32.0,
    "h2": 24.0,
    "h3": 18.7,
    "h4": 16.0,
    "h5": 13.3,
    "h6": 10.7,
    "small": 11.7,
}
_PX_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$")


def parse_style(style: str | None) -> dict[str, str]:
    """``"a: 1; b: 2"`` -> ``{"a": "1", "b": "2"}`` (lower-cased keys)."""
    result: dict[str, str] = {}
    for declaration in (style or "").split(";"):
        name, sep, value = declaration.partition(":")
        if sep:
            result[name.strip().lower()] = value.strip()
    return result


def px(value: str | None) -> float | None:
    """Parse a pixel length (``"12px"`` or ``"12"``); other units give None."""
    if not value:
        return None
    match = _PX_RE.match(value)
    return float(match.group(1)) if match else None


class _HeightEstimator(HTMLParser):
    def __init__(self, width: float) -> None:
        super().__init__(convert_charrefs=True)
        self.width = max(width, 1.0)
        self.fonts: list[float] = [DEFAULT_FONT_SIZE]
        self.text_height = 0.0
        self.padding = 0.0
        self.floor = 0.0
        self._chars = 0
        self._line_font = 0.0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        style = parse_style(dict(attrs).get("style"))
        if tag in _BLOCK_TAGS or tag == "br":
            self._break(force=tag == "br")

        for key in ("height", "min-height"):
            value = px(style.get(key))
            if value is not None:
                self.floor = max(self.floor, value)
        if tag in _VOID_TAGS:
            return

        padding = px(style.get("padding"))
        if padding is not None:
            self.padding += 2 * padding
        font = px(style.get("font-size")) or _TAG_FONT_SIZES.get(tag) or self.fonts[-1]
        self.fonts.append(font)

    def handle_endtag(self, tag: str) -> None:
        if tag in _VOID_TAGS:
            return
        if len(self.fonts) > 1:
            self.fonts.pop()
        if tag in _BLOCK_TAGS:
            self._break()

    def handle_data(self, data: str) -> None:
        text = " ".join(data.split())
        if not text:
            return
        if self._chars:
            self._chars += 1
        self._chars += len(text)
        self._line_font = max(self._line_font, self.fonts[-1])

    def _break(self, *, force: bool = False) -> None:
        if self._chars:
            per_line = max(1, int(self.width / (self._line_font * GLYPH_WIDTH)))
            lines = math.ceil(self._chars / per_line)
            self.text_height += lines * self._line_font * LINE_HEIGHT
        elif force:
            self.text_height += self.fonts[-1] * LINE_HEIGHT
        self._chars = 0
        self._line_font = 0.0

    def result(self) -> float:
        self._break()
        return max(self.floor, self.text_height + self.padding)


def estimate_content_height(html: str, width: float) -> float:
    """Estimated natural height in pixels of *html* laid out at *width*."""
    estimator = _HeightEstimator(width)
    estimator.feed(html)
    estimator.close()
    return math.ceil(estimator.result())

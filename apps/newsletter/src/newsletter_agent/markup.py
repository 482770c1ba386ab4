"""Inline micro-format used in generated newsletter text.

Generated copy carries two kinds of inline tokens:

- ``{{LINK:display text|https://example.com/article}}`` - an inline link
- ``**bold span**`` - emphasis

This module parses those tokens and renders them for three targets: rich
console text, static HTML markup and plain text. Parsing never fails; a
malformed token is treated as literal text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from rich.style import Style
from rich.text import Text

LINK_PATTERN = re.compile(r"\{\{LINK:([^|{}]+)\|([^}]+)\}\}")
BOLD_PATTERN = re.compile(r"\*\*([^*]+)\*\*")

# Links stay in body text colour with an accent underline so they never
# dominate the copy.
LINK_TEXT_COLOR = "#1F2937"
LINK_UNDERLINE_COLOR = "#8B5CF6"
LINK_INLINE_STYLE = (
    f"text-decoration: none; color: {LINK_TEXT_COLOR}; "
    f"border-bottom: 2px solid {LINK_UNDERLINE_COLOR}; padding-bottom: 1px;"
)


@dataclass(frozen=True)
class Segment:
    """A run of parsed text.

    Attributes:
        kind: Either ``"text"`` or ``"link"``
        text: Literal text, or the display text of a link
        url: Link target (empty for text segments)
        source: The exact slice of the raw string this segment came from
    """
    kind: str
    text: str
    url: str = ""
    source: str = ""

    @property
    def is_link(self) -> bool:
        return self.kind == "link"


class Segments:
    """Lazy, restartable sequence of segments for one raw string.

    Each iteration re-scans the raw string, so the object can be iterated
    any number of times.
    """

    def __init__(self, raw: str):
        self.raw = raw

    def __iter__(self) -> Iterator[Segment]:
        position = 0
        for match in LINK_PATTERN.finditer(self.raw):
            if match.start() > position:
                literal = self.raw[position:match.start()]
                yield Segment(kind="text", text=literal, source=literal)
            yield Segment(
                kind="link",
                text=match.group(1),
                url=match.group(2),
                source=match.group(0),
            )
            position = match.end()

        if position < len(self.raw) or position == 0:
            literal = self.raw[position:]
            yield Segment(kind="text", text=literal, source=literal)

    def __repr__(self) -> str:
        return f"Segments({self.raw!r})"


def parse(raw: str) -> Segments:
    """Split formatted text into text and link segments."""
    return Segments(raw)


def _emphasis_spans(text: str) -> Iterator[tuple[str, bool]]:
    """Yield (span, is_bold) pairs; odd split positions are bold."""
    for i, part in enumerate(BOLD_PATTERN.split(text)):
        if part:
            yield part, i % 2 == 1


def render_rich(raw: str) -> Text:
    """Render formatted text as a rich ``Text`` for console preview."""
    rendered = Text()
    for segment in parse(raw):
        if segment.is_link:
            rendered.append(
                segment.text,
                style=Style(color=LINK_TEXT_COLOR, underline=True, link=segment.url),
            )
            continue
        for span, bold in _emphasis_spans(segment.text):
            rendered.append(span, style="bold" if bold else None)
    return rendered


def anchor_html(display: str, url: str) -> str:
    """Anchor element with the link styling; ``display`` is inserted as given."""
    href = url.replace('"', "%22")
    return (
        f'<a href="{href}" target="_blank" rel="noopener noreferrer" '
        f'style="{LINK_INLINE_STYLE}">{display}</a>'
    )


def render_markup(raw: str) -> str:
    """Render formatted text as HTML for export.

    Non-token text is emitted unchanged; callers are expected to pass text
    that is already safe to embed.
    """
    parts: list[str] = []
    for segment in parse(raw):
        if segment.is_link:
            parts.append(anchor_html(segment.text, segment.url))
            continue
        for span, bold in _emphasis_spans(segment.text):
            parts.append(f"<strong>{span}</strong>" if bold else span)
    return "".join(parts)


def strip(raw: str) -> str:
    """Reduce formatted text to plain text.

    Links become their display text and bold markers are dropped. Repeats
    until nothing changes, so ``strip(strip(x)) == strip(x)``.
    """
    result = raw
    while True:
        stripped = BOLD_PATTERN.sub(r"\1", LINK_PATTERN.sub(r"\1", result))
        if stripped == result:
            return result
        result = stripped


def extract_links(raw: str) -> list[tuple[str, str]]:
    """Return (display, url) pairs for every link token, in order."""
    return [(segment.text, segment.url) for segment in parse(raw) if segment.is_link]

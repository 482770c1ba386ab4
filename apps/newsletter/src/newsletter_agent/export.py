"""Export an issue as standalone HTML or as plain text."""

from __future__ import annotations

from html import escape

from .document import (
    AdvisoryItems,
    Document,
    MetricsDashboard,
    OpeningHook,
    PreHeader,
    QuickHits,
    Recommendation,
    Recommendations,
    SecondaryStories,
    Section,
    StatSection,
    StorySection,
    SummaryDigest,
    WordOfTheDay,
)
from .games import Game
from .markup import anchor_html, render_markup, strip

ACCENT = "#8B5CF6"

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        body {{
            font-family: Georgia, 'Times New Roman', serif;
            line-height: 1.6;
            max-width: 640px;
            margin: 0 auto;
            padding: 2rem;
            color: #1F2937;
        }}
        .rw-label {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            font-size: 12px;
            font-weight: bold;
            letter-spacing: 0.08em;
            color: {accent};
            margin: 2.5em 0 0.5em;
        }}
        h1, h2 {{ line-height: 1.25; margin: 0.2em 0 0.6em; }}
        .rw-meta {{ font-size: 12px; color: #64748B; }}
        .rw-metrics {{ display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }}
        .rw-metric {{ border: 1px solid #E5E7EB; border-radius: 6px; padding: 12px; text-align: center; }}
        .rw-metric strong {{ display: block; font-size: 22px; }}
        .rw-stat {{ font-size: 48px; font-weight: bold; color: {accent}; }}
        .rw-image {{ background: #F3F4F6; padding: 2em; text-align: center; color: #6B7280; }}
    </style>
</head>
<body>
{content}
</body>
</html>"""


def _paragraphs(text: str) -> str:
    return "\n".join(f"<p>{render_markup(p)}</p>" for p in text.split("\n\n") if p.strip())


def _label(text: str) -> str:
    return f'<p class="rw-label">{escape(text)}</p>'


def _sources_line(sources) -> str:
    if not sources:
        return ""
    links = ", ".join(anchor_html(escape(s.title), escape(s.url)) for s in sources)
    return f'<p class="rw-meta">Sources: {links}</p>'


def _recommendation_html(name: str, pick: Recommendation) -> str:
    if not pick.link_text and not pick.prefix:
        return ""
    linked = anchor_html(escape(pick.link_text), escape(pick.url)) if pick.url and pick.link_text else escape(pick.link_text)
    return f"<p><strong>{name}:</strong> {escape(pick.prefix)} {linked} {escape(pick.suffix)}</p>"


def section_html(key: str, section: Section) -> str:
    """Render one section as an HTML fragment; empty sections render nothing."""
    if isinstance(section, PreHeader):
        if not section.subject_line:
            return ""
        return f"<h1>{escape(section.subject_line)}</h1>\n<p class=\"rw-meta\">Issue #{section.issue_number} &middot; {escape(section.date)}</p>"
    if isinstance(section, OpeningHook):
        return _paragraphs(section.content)
    if isinstance(section, SummaryDigest):
        if not section.items:
            return ""
        items = "\n".join(f"<li>{render_markup(item)}</li>" for item in section.items)
        return f"{_label(section.label)}\n<ul>\n{items}\n</ul>"
    if isinstance(section, MetricsDashboard):
        if not section.metrics:
            return ""
        cells = "\n".join(
            f'<div class="rw-metric"><strong>{escape(m.value)}</strong>{escape(m.label)}<br>'
            f'<span class="rw-meta">{escape(m.change)}</span></div>'
            for m in section.metrics
        )
        return f'{_label(section.title)}\n<div class="rw-metrics">\n{cells}\n</div>\n<p class="rw-meta">As of {escape(section.as_of)}</p>'
    if isinstance(section, StorySection):
        if not section.headline:
            return ""
        image = f'<div class="rw-image">{escape(section.image.placeholder)}<br><span class="rw-meta">{escape(section.image.credit)}</span></div>'
        return "\n".join([
            _label(section.label),
            f"<h2>{escape(section.headline)}</h2>",
            f'<p class="rw-meta">{escape(section.published_date)}</p>',
            image,
            _paragraphs(section.content),
            _sources_line(section.sources),
        ])
    if isinstance(section, SecondaryStories):
        if not section.stories:
            return ""
        stories = "\n".join(
            f"<p><strong>{render_markup(s.bold_lead)}</strong> {render_markup(s.content)}</p>" for s in section.stories
        )
        return f"{_label(section.label)}\n{stories}"
    if isinstance(section, StatSection):
        if not section.prime_number:
            return ""
        return "\n".join([
            _label(section.label),
            f'<p class="rw-stat">{escape(section.prime_number)}</p>',
            f"<h2>{escape(section.headline)}</h2>",
            _paragraphs(section.content),
        ])
    if isinstance(section, QuickHits):
        if not section.items:
            return ""
        items = "\n".join(
            f'<li>{render_markup(item.text)} <span class="rw-meta">{escape(item.source)}, {escape(item.date)}</span></li>'
            for item in section.items
        )
        return f"{_label(section.label)}\n<h2>{escape(section.title)}</h2>\n<ul>\n{items}\n</ul>"
    if isinstance(section, AdvisoryItems):
        if not section.items:
            return ""
        items = "\n".join(
            f"<li><strong>{escape(item.type)}: {escape(item.title)}</strong> "
            f'<span class="rw-meta">{escape(item.date)}</span><br>{render_markup(item.description)}</li>'
            for item in section.items
        )
        return f"{_label(section.label)}\n<ul>\n{items}\n</ul>"
    if isinstance(section, Recommendations):
        picks = [
            _recommendation_html("Read", section.read),
            _recommendation_html("Watch", section.watch),
            _recommendation_html("Try", section.try_it),
            _recommendation_html("Listen", section.listen),
        ]
        picks = [p for p in picks if p]
        if not picks:
            return ""
        return "\n".join([_label(section.label), *picks])
    if isinstance(section, WordOfTheDay):
        if not section.word:
            return ""
        credit = f' <span class="rw-meta">Suggested by {escape(section.suggested_by)}'
        credit += f", {escape(section.location)}</span>" if section.location else "</span>"
        return (
            f"{_label('WORD OF THE DAY')}\n<p><strong>{escape(section.word)}</strong>: "
            f"{render_markup(section.definition)}{credit if section.suggested_by else ''}</p>"
        )
    return ""


def game_html(game: Game) -> str:
    content = escape(game.content).replace("\n", "<br>")
    return "\n".join([
        _label("GAME OF THE WEEK"),
        f"<h2>{escape(game.title)}</h2>",
        f"<p>{escape(game.intro)}</p>",
        f"<p>{content}</p>",
        f'<p class="rw-meta">Answer: {escape(game.answer)}</p>',
    ])


def render_issue_html(document: Document, game: Game | None = None) -> str:
    """Render the whole issue as a standalone HTML page."""
    parts = [section_html(key, section) for key, section in document.sections.items()]
    if game is not None:
        parts.append(game_html(game))
    content = "\n\n".join(p for p in parts if p)
    return HTML_TEMPLATE.format(title=escape(document.title), accent=ACCENT, content=content)


def section_plain_text(document: Document, key: str) -> str:
    """Plain-text copy of one section, with link and bold markup removed."""
    section = document[key]
    lines: list[str] = []
    if isinstance(section, PreHeader):
        lines = [section.subject_line, section.preview_text]
    elif isinstance(section, OpeningHook):
        lines = [section.content]
    elif isinstance(section, SummaryDigest):
        lines = [section.label, *(f"- {item}" for item in section.items)] if section.items else []
    elif isinstance(section, MetricsDashboard):
        lines = [section.title, *(f"{m.label}: {m.value} ({m.change})" for m in section.metrics)] if section.metrics else []
    elif isinstance(section, StorySection):
        lines = [section.headline, section.content]
    elif isinstance(section, SecondaryStories):
        lines = [f"{s.bold_lead} {s.content}" for s in section.stories]
    elif isinstance(section, StatSection):
        lines = [section.prime_number, section.headline, section.content]
    elif isinstance(section, QuickHits):
        lines = [section.title, *(f"- {item.text}" for item in section.items)] if section.items else []
    elif isinstance(section, AdvisoryItems):
        lines = [f"{item.type}: {item.title} ({item.date}) {item.description}" for item in section.items]
    elif isinstance(section, Recommendations):
        picks = [("Read", section.read), ("Watch", section.watch), ("Try", section.try_it), ("Listen", section.listen)]
        lines = [f"{name}: {p.prefix} {p.link_text} {p.suffix}".strip() for name, p in picks if p.link_text]
    elif isinstance(section, WordOfTheDay):
        lines = [f"{section.word}: {section.definition}"] if section.word else []
    return strip("\n\n".join(line for line in lines if line and line.strip()))


def render_issue_text(document: Document) -> str:
    """Plain text for every non-empty section, in render order."""
    blocks = [section_plain_text(document, key) for key in document.sections]
    return "\n\n---\n\n".join(b for b in blocks if b)

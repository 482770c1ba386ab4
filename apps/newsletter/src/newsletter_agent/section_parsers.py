"""Turn raw generation output into document sections.

Responses come back in one of three shapes:

- prose, where the first line is the headline and the rest is the body
- a JSON array somewhere inside the text
- a JSON object somewhere inside the text

Each section key has a parser that knows its shape and builds the section
dataclass. A parser either returns a complete section or raises
``ParseError``; it never returns a partial one.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Callable

from .document import (
    STORY_LABELS,
    AdvisoryItem,
    AdvisoryItems,
    ImageSlot,
    OpeningHook,
    QuickHit,
    QuickHits,
    Recommendation,
    Recommendations,
    SecondaryStories,
    Section,
    Source,
    StatSection,
    Story,
    StorySection,
    SummaryDigest,
    WordOfTheDay,
    display_date,
)
from .errors import ParseError
from .image_prompts import image_prompt_for
from .markup import LINK_PATTERN, extract_links
from .publishers import publisher_name

logger = logging.getLogger(__name__)

HEADING_MARKER = re.compile(r"^#+\s*")
TRAILING_ATTRIBUTION = re.compile(r"\s*\[([^\[\]]+)\]\s*$")
NO_RESULTS_MARKER = "NO RECENT ARTICLES FOUND"

_ARTIFACT_PATTERNS = [
    re.compile(r"<cite[^>]*>"),
    re.compile(r"</cite>"),
    re.compile(r"\[AI Generated[^\]]*\]", re.IGNORECASE),
    re.compile(r"^\*\*\*+$", re.MULTILINE),
]

# Conversational lead-ins that sometimes precede the requested copy. Each
# pattern only reaches to the end of the first line.
_PREAMBLE_PATTERNS = [
    re.compile(r"^(Perfect!|Great!|Excellent!|Sure!|Okay!|Alright!|Absolutely!|Of course!)[^.!?\n]*[.!?]?\s*", re.IGNORECASE),
    re.compile(r"^I (found|discovered|searched|located|identified|need to|have found|will|can|should|'ll|'ve)[^.\n]*\.\s*", re.IGNORECASE),
    re.compile(r"^(Based on|Looking at|After searching|After reviewing|Here is|Here are|Here's|Let me|Now I)[^.\n]*[.:]\s*", re.IGNORECASE),
    re.compile(r"^(The search|My search|I've found|I have found|Most of these)[^.\n]*\.\s*", re.IGNORECASE),
    re.compile(r"^[^.\n]*?(exactly what|what you requested|what the user|for your newsletter|sources are older)[^.\n]*\.\s*", re.IGNORECASE),
]
_PREAMBLE_PASSES = 5


def clean_output(text: str) -> str:
    """Remove citation artifacts and conversational preamble from a response."""
    if not text:
        return ""
    cleaned = text
    for pattern in _ARTIFACT_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = cleaned.strip()
    for _ in range(_PREAMBLE_PASSES):
        before = cleaned
        for pattern in _PREAMBLE_PATTERNS:
            cleaned = pattern.sub("", cleaned, count=1).lstrip()
        if cleaned == before:
            break
    return cleaned.strip()


def split_prose(raw: str, has_headline: bool = True) -> tuple[str, str]:
    """Split prose into (headline, body).

    Blank lines are dropped. The first line becomes the headline with any
    heading or bold markers removed; the remaining lines are joined with a
    blank line between them.
    """
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    if not has_headline:
        return "", "\n\n".join(lines)
    if not lines:
        return "", ""
    headline = HEADING_MARKER.sub("", lines[0])
    if headline.startswith("**"):
        headline = headline[2:]
    if headline.endswith("**"):
        headline = headline[:-2]
    return headline.strip(), "\n\n".join(lines[1:])


def _find_json(raw: str, opener: str, kind: type) -> Any | None:
    """Return the first decodable JSON value of ``kind`` starting at ``opener``."""
    decoder = json.JSONDecoder()
    start = raw.find(opener)
    while start != -1:
        try:
            value, _ = decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, kind):
            return value
        start = raw.find(opener, start + 1)
    return None


def extract_json_array(section_key: str, raw: str) -> list:
    """Locate the first well-formed JSON array in ``raw``."""
    value = _find_json(raw, "[", list)
    if value is None:
        raise ParseError(section_key, "no JSON array found in response")
    return value


def extract_json_object(section_key: str, raw: str) -> dict:
    """Locate the first well-formed JSON object in ``raw``."""
    value = _find_json(raw, "{", dict)
    if value is None:
        raise ParseError(section_key, "no JSON object found in response")
    return value


def extract_sources(content: str, today: date) -> list[Source]:
    """Build the source list from link tokens, one entry per distinct URL."""
    sources: list[Source] = []
    seen: set[str] = set()
    for display, url in extract_links(content):
        if url in seen:
            continue
        seen.add(url)
        sources.append(Source(title=publisher_name(url, fallback=display), url=url, date=display_date(today)))
    return sources


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


class SectionParser(ABC):
    """Parses one raw response into a section."""

    @abstractmethod
    def parse(self, section_key: str, raw: str, today: date) -> Section:
        """Build a section from ``raw``.

        Raises:
            ParseError: If the response does not have the expected shape.
        """


def _check_not_empty(section_key: str, raw: str) -> None:
    if not raw or not raw.strip():
        raise ParseError(section_key, "empty response")
    if NO_RESULTS_MARKER in raw.upper():
        raise ParseError(section_key, "service found no recent articles")


ProseBuilder = Callable[[str, str, str, date], Section]
ArrayBuilder = Callable[[str, list, date], Section]
ObjectBuilder = Callable[[str, dict, date], Section]


class ProseParser(SectionParser):
    """Headline-plus-body prose, or body only when ``has_headline`` is false."""

    def __init__(self, build: ProseBuilder, has_headline: bool = True):
        self.build = build
        self.has_headline = has_headline

    def parse(self, section_key: str, raw: str, today: date) -> Section:
        _check_not_empty(section_key, raw)
        headline, body = split_prose(raw, self.has_headline)
        if self.has_headline and not headline:
            raise ParseError(section_key, "missing headline")
        if not body:
            raise ParseError(section_key, "missing body text")
        return self.build(section_key, headline, body, today)


class JsonArrayParser(SectionParser):
    """A JSON array with a minimum length; longer arrays are truncated to ``max_items``."""

    def __init__(self, build: ArrayBuilder, min_items: int = 1, max_items: int | None = None):
        self.build = build
        self.min_items = min_items
        self.max_items = max_items

    def parse(self, section_key: str, raw: str, today: date) -> Section:
        _check_not_empty(section_key, raw)
        items = extract_json_array(section_key, raw)
        if len(items) < self.min_items:
            raise ParseError(
                section_key,
                f"expected at least {self.min_items} items, got {len(items)}",
            )
        if self.max_items is not None and len(items) > self.max_items:
            logger.warning(
                f"{section_key}: truncated {len(items) - self.max_items} of {len(items)} items "
                f"to fit the limit of {self.max_items}"
            )
            items = items[:self.max_items]
        return self.build(section_key, items, today)


class JsonObjectParser(SectionParser):
    """A JSON object whose ``required_keys`` must all be present and non-empty."""

    def __init__(self, build: ObjectBuilder, required_keys: list[str]):
        self.build = build
        self.required_keys = required_keys

    def parse(self, section_key: str, raw: str, today: date) -> Section:
        _check_not_empty(section_key, raw)
        data = extract_json_object(section_key, raw)
        missing = [key for key in self.required_keys if not _present(data.get(key))]
        if missing:
            raise ParseError(section_key, f"missing required keys: {', '.join(missing)}")
        return self.build(section_key, data, today)


# -- builders -----------------------------------------------------------------

STORY_IMAGE_KINDS = {
    "lead_story": "stem_cell",
    "research_roundup": "clinical_trial",
    "deep_dive": "general",
}


def build_opening_hook(section_key: str, headline: str, body: str, today: date) -> OpeningHook:
    return OpeningHook(content=body, as_of=today.isoformat())


def build_story(section_key: str, headline: str, body: str, today: date) -> StorySection:
    return StorySection(
        label=STORY_LABELS.get(section_key, ""),
        headline=headline,
        content=body,
        published_date=display_date(today),
        sources=extract_sources(body, today),
        image=ImageSlot(generated_prompt=image_prompt_for(headline, STORY_IMAGE_KINDS.get(section_key, "general"))),
        as_of=today.isoformat(),
    )


def build_summary_digest(section_key: str, items: list, today: date) -> SummaryDigest:
    lines = [_text(item) for item in items if _text(item)]
    if not lines:
        raise ParseError(section_key, "all items were empty")
    return SummaryDigest(items=lines, as_of=today.isoformat())


def _sources_from(section_key: str, value: Any, content: str, today: date) -> list[Source]:
    if isinstance(value, list) and value:
        sources = []
        for item in value:
            url = item.get("url") if isinstance(item, dict) else None
            if isinstance(url, str) and url.strip():
                sources.append(Source(
                    title=_text(item.get("title")) or publisher_name(url.strip()),
                    url=url.strip(),
                    date=_text(item.get("date")) or display_date(today),
                ))
        if sources:
            return sources
    return extract_sources(content, today)


def build_secondary_stories(section_key: str, items: list, today: date) -> SecondaryStories:
    stories = []
    for i, item in enumerate(items, 1):
        if not isinstance(item, dict):
            raise ParseError(section_key, f"story {i} is not an object")
        content = _text(item.get("content"))
        if not content:
            raise ParseError(section_key, f"story {i} has no content")
        stories.append(Story(
            bold_lead=_text(item.get("boldLead", item.get("bold_lead"))),
            content=content,
            published_date=_text(item.get("publishedDate")) or display_date(today),
            sources=_sources_from(section_key, item.get("sources"), content, today),
        ))
    return SecondaryStories(stories=stories, as_of=today.isoformat())


def build_statistic(section_key: str, data: dict, today: date) -> StatSection:
    content = _text(data["content"])
    return StatSection(
        prime_number=_text(data["primeNumber"]),
        headline=_text(data["headline"]),
        content=content,
        sources=extract_sources(content, today),
        as_of=today.isoformat(),
    )


def parse_quick_hit(text: str, today: date) -> QuickHit:
    """Split a quick-hit line into text, source, url and date.

    A trailing ``[Source, Date]`` is treated as the attribution; the first
    link token supplies the url.
    """
    source, item_date = "Web Research", display_date(today)
    match = TRAILING_ATTRIBUTION.search(text)
    if match and not LINK_PATTERN.search(match.group(0)):
        name, _, when = match.group(1).partition(",")
        source = name.strip() or source
        item_date = when.strip() or item_date
        text = text[:match.start()]
    links = extract_links(text)
    return QuickHit(text=text.strip(), source=source, url=links[0][1] if links else "", date=item_date)


def build_quick_hits(section_key: str, items: list, today: date) -> QuickHits:
    hits = []
    for item in items:
        text = _text(item.get("text")) if isinstance(item, dict) else _text(item)
        if text:
            hits.append(parse_quick_hit(text, today))
    if not hits:
        raise ParseError(section_key, "all items were empty")
    return QuickHits(items=hits, as_of=today.isoformat())


def build_advisory_items(section_key: str, items: list, today: date) -> AdvisoryItems:
    entries = []
    for i, item in enumerate(items, 1):
        if not isinstance(item, dict) or not _present(item.get("title")):
            raise ParseError(section_key, f"item {i} has no title")
        entries.append(AdvisoryItem(
            type=_text(item.get("type")) or "Resource",
            title=_text(item["title"]),
            date=_text(item.get("date")),
            description=_text(item.get("description")),
            link=_text(item.get("link")),
        ))
    return AdvisoryItems(items=entries, as_of=today.isoformat())


def _recommendation(section_key: str, name: str, value: Any) -> Recommendation:
    if not isinstance(value, dict):
        raise ParseError(section_key, f"'{name}' is not an object")
    return Recommendation(
        prefix=_text(value.get("prefix")),
        link_text=_text(value.get("linkText", value.get("link_text"))),
        suffix=_text(value.get("suffix")),
        url=_text(value.get("url")),
    )


def build_recommendations(section_key: str, data: dict, today: date) -> Recommendations:
    return Recommendations(
        read=_recommendation(section_key, "read", data["read"]),
        watch=_recommendation(section_key, "watch", data["watch"]),
        try_it=_recommendation(section_key, "try", data["try"]),
        listen=_recommendation(section_key, "listen", data["listen"]),
        as_of=today.isoformat(),
    )


def build_word_of_the_day(section_key: str, data: dict, today: date) -> WordOfTheDay:
    return WordOfTheDay(
        word=_text(data["word"]),
        definition=_text(data["definition"]),
        suggested_by=_text(data.get("suggestedBy")),
        location=_text(data.get("location")),
        as_of=today.isoformat(),
    )


PARSERS: dict[str, SectionParser] = {
    "opening_hook": ProseParser(build_opening_hook, has_headline=False),
    "lead_story": ProseParser(build_story),
    "summary_digest": JsonArrayParser(build_summary_digest, min_items=1, max_items=4),
    "research_roundup": ProseParser(build_story),
    "secondary_stories": JsonArrayParser(build_secondary_stories, min_items=3, max_items=3),
    "deep_dive": ProseParser(build_story),
    "statistic": JsonObjectParser(build_statistic, ["primeNumber", "headline", "content"]),
    "quick_hits": JsonArrayParser(build_quick_hits, min_items=1, max_items=7),
    "advisory_items": JsonArrayParser(build_advisory_items, min_items=1, max_items=4),
    "recommendations": JsonObjectParser(build_recommendations, ["read", "watch", "try", "listen"]),
    "word_of_the_day": JsonObjectParser(build_word_of_the_day, ["word", "definition"]),
}


def parse_section(section_key: str, raw: str, today: date) -> Section:
    """Parse ``raw`` with the registered parser for ``section_key``."""
    if section_key not in PARSERS:
        raise KeyError(f"No parser for section: {section_key}")
    return PARSERS[section_key].parse(section_key, raw, today)

"""Newsletter document model and the store that owns it.

The document is a fixed set of named sections. Each section is a dataclass
that serializes to plain JSON via ``to_dict`` and back via ``from_dict``.
Sections are only ever replaced wholesale through ``DocumentStore``.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class Source:
    """A cited article."""
    title: str
    url: str
    date: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Source:
        return cls(title=data.get("title", ""), url=data.get("url", ""), date=data.get("date", ""))


@dataclass
class ImageSlot:
    """Image placeholder for a story section.

    Attributes:
        placeholder: Text shown where the image will go
        credit: Image credit line
        generated_prompt: Prompt for an image generator, derived from the headline
    """
    placeholder: str = "Image placeholder"
    credit: str = "Image: Midjourney"
    generated_prompt: str = ""

    @classmethod
    def from_dict(cls, data: dict | None) -> ImageSlot:
        return _from_flat_dict(cls, data or {})


@dataclass
class Metric:
    label: str
    value: str
    change: str = ""
    source: str = ""


@dataclass
class Story:
    """One entry in the secondary stories list."""
    bold_lead: str
    content: str
    published_date: str = ""
    sources: list[Source] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Story:
        return cls(
            bold_lead=data.get("bold_lead", ""),
            content=data.get("content", ""),
            published_date=data.get("published_date", ""),
            sources=[Source.from_dict(s) for s in data.get("sources", [])],
        )


@dataclass
class QuickHit:
    text: str
    source: str = "Web Research"
    url: str = ""
    date: str = ""


@dataclass
class AdvisoryItem:
    type: str
    title: str
    date: str = ""
    description: str = ""
    link: str = ""


@dataclass
class Recommendation:
    """A single pick: ``prefix`` + linked ``link_text`` + ``suffix``."""
    prefix: str = ""
    link_text: str = ""
    suffix: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: dict | None) -> Recommendation:
        return _from_flat_dict(cls, data or {})


def _from_flat_dict(cls, data: dict):
    """Build a dataclass from a dict, ignoring unknown keys."""
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


class Section:
    """Base for all document sections."""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        return _from_flat_dict(cls, data)


@dataclass
class PreHeader(Section):
    subject_line: str = ""
    preview_text: str = ""
    issue_number: int = 0
    date: str = ""


@dataclass
class OpeningHook(Section):
    content: str = ""
    as_of: str = ""


@dataclass
class SummaryDigest(Section):
    label: str = "IN TODAY'S EDITION"
    items: list[str] = field(default_factory=list)
    as_of: str = ""


@dataclass
class MetricsDashboard(Section):
    title: str = "This Week in Health News"
    metrics: list[Metric] = field(default_factory=list)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> MetricsDashboard:
        return cls(
            title=data.get("title", cls.title),
            metrics=[_from_flat_dict(Metric, m) for m in data.get("metrics", [])],
            as_of=data.get("as_of", ""),
        )


@dataclass
class StorySection(Section):
    """A headline story with body copy, sources and an image slot."""
    label: str = ""
    headline: str = ""
    content: str = ""
    published_date: str = ""
    sources: list[Source] = field(default_factory=list)
    image: ImageSlot = field(default_factory=ImageSlot)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> StorySection:
        return cls(
            label=data.get("label", ""),
            headline=data.get("headline", ""),
            content=data.get("content", ""),
            published_date=data.get("published_date", ""),
            sources=[Source.from_dict(s) for s in data.get("sources", [])],
            image=ImageSlot.from_dict(data.get("image")),
            as_of=data.get("as_of", ""),
        )


@dataclass
class SecondaryStories(Section):
    label: str = "ON OUR RADAR"
    stories: list[Story] = field(default_factory=list)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> SecondaryStories:
        return cls(
            label=data.get("label", cls.label),
            stories=[Story.from_dict(s) for s in data.get("stories", [])],
            as_of=data.get("as_of", ""),
        )


@dataclass
class StatSection(Section):
    label: str = "STAT OF THE WEEK"
    prime_number: str = ""
    headline: str = ""
    content: str = ""
    sources: list[Source] = field(default_factory=list)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> StatSection:
        return cls(
            label=data.get("label", cls.label),
            prime_number=data.get("prime_number", ""),
            headline=data.get("headline", ""),
            content=data.get("content", ""),
            sources=[Source.from_dict(s) for s in data.get("sources", [])],
            as_of=data.get("as_of", ""),
        )


@dataclass
class QuickHits(Section):
    label: str = "THE PULSE"
    title: str = "Quick hits"
    items: list[QuickHit] = field(default_factory=list)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> QuickHits:
        return cls(
            label=data.get("label", cls.label),
            title=data.get("title", cls.title),
            items=[_from_flat_dict(QuickHit, i) for i in data.get("items", [])],
            as_of=data.get("as_of", ""),
        )


@dataclass
class AdvisoryItems(Section):
    label: str = "WORTH KNOWING"
    title: str = "Dates, deadlines and resources"
    items: list[AdvisoryItem] = field(default_factory=list)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> AdvisoryItems:
        return cls(
            label=data.get("label", cls.label),
            title=data.get("title", cls.title),
            items=[_from_flat_dict(AdvisoryItem, i) for i in data.get("items", [])],
            as_of=data.get("as_of", ""),
        )


@dataclass
class Recommendations(Section):
    label: str = "RENEWAL WEEKLY RECOMMENDS"
    read: Recommendation = field(default_factory=Recommendation)
    watch: Recommendation = field(default_factory=Recommendation)
    try_it: Recommendation = field(default_factory=Recommendation)
    listen: Recommendation = field(default_factory=Recommendation)
    as_of: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Recommendations:
        return cls(
            label=data.get("label", cls.label),
            read=Recommendation.from_dict(data.get("read")),
            watch=Recommendation.from_dict(data.get("watch")),
            try_it=Recommendation.from_dict(data.get("try_it")),
            listen=Recommendation.from_dict(data.get("listen")),
            as_of=data.get("as_of", ""),
        )


@dataclass
class WordOfTheDay(Section):
    word: str = ""
    definition: str = ""
    suggested_by: str = ""
    location: str = ""
    as_of: str = ""


# Render order of the issue.
SECTION_TYPES: dict[str, type[Section]] = {
    "preheader": PreHeader,
    "opening_hook": OpeningHook,
    "summary_digest": SummaryDigest,
    "metrics": MetricsDashboard,
    "lead_story": StorySection,
    "research_roundup": StorySection,
    "secondary_stories": SecondaryStories,
    "deep_dive": StorySection,
    "statistic": StatSection,
    "quick_hits": QuickHits,
    "advisory_items": AdvisoryItems,
    "recommendations": Recommendations,
    "word_of_the_day": WordOfTheDay,
}

SECTION_KEYS: list[str] = list(SECTION_TYPES)

STORY_LABELS: dict[str, str] = {
    "lead_story": "THE BIG STORY",
    "research_roundup": "YOUR OPTIONS THIS WEEK",
    "deep_dive": "INDUSTRY DEEP DIVE",
}


def default_section(key: str) -> Section:
    """Return a fresh, empty section for ``key``."""
    if key not in SECTION_TYPES:
        raise KeyError(f"Unknown section: {key}")
    if key in STORY_LABELS:
        return StorySection(label=STORY_LABELS[key])
    return SECTION_TYPES[key]()


@dataclass
class Document:
    """A newsletter issue: every section keyed by its stable name."""
    sections: dict[str, Section] = field(default_factory=dict)

    @classmethod
    def new(cls) -> Document:
        """Create a document with every section empty."""
        return cls(sections={key: default_section(key) for key in SECTION_KEYS})

    def __getitem__(self, key: str) -> Section:
        return self.sections[key]

    @property
    def title(self) -> str:
        """Subject line, falling back to the lead headline."""
        preheader = self.sections.get("preheader")
        if isinstance(preheader, PreHeader) and preheader.subject_line:
            return preheader.subject_line
        lead = self.sections.get("lead_story")
        if isinstance(lead, StorySection) and lead.headline:
            return lead.headline
        return "Untitled issue"

    def to_dict(self) -> dict[str, Any]:
        return {"sections": {key: section.to_dict() for key, section in self.sections.items()}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Load a document, filling any missing section with its default."""
        raw_sections = data.get("sections", {})
        sections: dict[str, Section] = {}
        for key in SECTION_KEYS:
            if key in raw_sections:
                section = SECTION_TYPES[key].from_dict(raw_sections[key])
                if isinstance(section, StorySection) and not section.label:
                    section.label = STORY_LABELS[key]
                sections[key] = section
            else:
                sections[key] = default_section(key)
        return cls(sections=sections)


SectionUpdater = Callable[[Section], Section]
ChangeCallback = Callable[[Document], None]


class DocumentStore:
    """Owns the live document.

    Readers get deep copies; writers replace one section at a time through
    ``update_section`` or the whole document through ``replace_all``.
    """

    def __init__(self, document: Document | None = None, on_change: ChangeCallback | None = None):
        self._document = copy.deepcopy(document) if document else Document.new()
        self._on_change = on_change
        self._lock = threading.Lock()

    def get(self) -> Document:
        """Return a read-only snapshot of the current document."""
        with self._lock:
            return copy.deepcopy(self._document)

    def section(self, key: str) -> Section:
        """Return a copy of one section."""
        with self._lock:
            return copy.deepcopy(self._document.sections[key])

    def update_section(self, key: str, updater: SectionUpdater) -> None:
        """Atomically replace one section with ``updater(current)``.

        Args:
            key: Section key
            updater: Receives a copy of the current section and returns the
                replacement; it must be the same section type

        Raises:
            KeyError: If the key is not a document section
            TypeError: If the updater returns the wrong section type
        """
        with self._lock:
            if key not in self._document.sections:
                raise KeyError(f"Unknown section: {key}")
            current = copy.deepcopy(self._document.sections[key])
            replacement = updater(current)
            expected = SECTION_TYPES[key]
            if not isinstance(replacement, expected):
                raise TypeError(
                    f"Section '{key}' must be {expected.__name__}, got {type(replacement).__name__}"
                )
            self._document.sections[key] = copy.deepcopy(replacement)
            snapshot = copy.deepcopy(self._document)
        logger.debug(f"Updated section {key}")
        self._notify(snapshot)

    def replace_all(self, document: Document) -> None:
        """Replace the whole document (used by history restore)."""
        missing = [key for key in SECTION_KEYS if key not in document.sections]
        if missing:
            raise KeyError(f"Document is missing sections: {', '.join(missing)}")
        with self._lock:
            self._document = copy.deepcopy(document)
            snapshot = copy.deepcopy(self._document)
        self._notify(snapshot)

    def _notify(self, document: Document) -> None:
        if self._on_change:
            self._on_change(document)


def display_date(value: date) -> str:
    """Format a date the way the newsletter prints it, e.g. ``Oct 9, 2026``."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"

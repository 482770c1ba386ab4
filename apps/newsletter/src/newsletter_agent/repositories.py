"""Preferred sources and the log of content already used in past issues."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

MAX_USED_HEADLINES = 20
MAX_USED_URLS = 50


@dataclass
class NewsSource:
    name: str
    url: str
    enabled: bool = True


DEFAULT_SOURCES: list[NewsSource] = [
    NewsSource("ScienceDaily - Stem Cells", "https://www.sciencedaily.com/news/health_medicine/stem_cells/"),
    NewsSource("Nature - Stem Cells", "https://www.nature.com/subjects/stem-cells"),
    NewsSource("STAT News", "https://www.statnews.com"),
    NewsSource("Healthline", "https://www.healthline.com"),
    NewsSource("Mayo Clinic News Network", "https://newsnetwork.mayoclinic.org"),
    NewsSource("Longevity Technology", "https://longevity.technology"),
]


class SourceList:
    """Editable list of preferred news sources."""

    def __init__(self, sources: list[NewsSource] | None = None):
        self._sources = list(sources) if sources is not None else [NewsSource(**asdict(s)) for s in DEFAULT_SOURCES]

    def __iter__(self):
        return iter(list(self._sources))

    def __len__(self) -> int:
        return len(self._sources)

    @property
    def enabled(self) -> list[NewsSource]:
        return [s for s in self._sources if s.enabled]

    def add(self, name: str, url: str) -> NewsSource:
        """Add a source, or re-enable an existing one with the same URL."""
        for source in self._sources:
            if source.url == url:
                source.enabled = True
                return source
        source = NewsSource(name=name, url=url)
        self._sources.append(source)
        return source

    def _index(self, name_or_url: str) -> int:
        for i, source in enumerate(self._sources):
            if name_or_url in (source.name, source.url):
                return i
        raise KeyError(f"Unknown source: {name_or_url}")

    def toggle(self, name_or_url: str) -> NewsSource:
        source = self._sources[self._index(name_or_url)]
        source.enabled = not source.enabled
        return source

    def remove(self, name_or_url: str) -> None:
        del self._sources[self._index(name_or_url)]

    def to_list(self) -> list[dict]:
        return [asdict(s) for s in self._sources]

    @classmethod
    def from_list(cls, data: list[dict] | None) -> SourceList:
        if data is None:
            return cls()
        return cls([NewsSource(**item) for item in data])


@dataclass
class UsedContentLog:
    """Recently used lead headlines and article URLs, most recent first."""
    headlines: list[dict] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)

    def record_headline(self, headline: str, when: datetime | None = None) -> None:
        if not headline:
            return
        when = when or datetime.now(timezone.utc)
        self.headlines = [h for h in self.headlines if h["headline"] != headline]
        self.headlines.insert(0, {"headline": headline, "used_at": when.isoformat()})
        del self.headlines[MAX_USED_HEADLINES:]

    def record_urls(self, urls: list[str]) -> None:
        for url in urls:
            if not url:
                continue
            if url in self.urls:
                self.urls.remove(url)
            self.urls.insert(0, url)
        del self.urls[MAX_USED_URLS:]

    @property
    def recent_headlines(self) -> list[str]:
        return [h["headline"] for h in self.headlines]

    def to_dict(self) -> dict:
        return {"headlines": list(self.headlines), "urls": list(self.urls)}

    @classmethod
    def from_dict(cls, data: dict | None) -> UsedContentLog:
        data = data or {}
        return cls(headlines=list(data.get("headlines", [])), urls=list(data.get("urls", [])))

"""Article pool from the curated JSON feed.

The feed is a JSON Feed document (``items`` with ``url``, ``title``,
``date_published``, ``content_text``, ``authors`` and ``image``). Articles
are normalized, tagged with a category, filtered to a recency window and
returned newest first.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx

from .document import display_date
from .errors import FeedError
from .publishers import publisher_name

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 500

CATEGORY_LABELS: dict[str, str] = {
    "stem_cells": "Stem Cells & Regenerative Medicine",
    "longevity": "Anti-Aging & Longevity",
    "chronic_disease": "Chronic Disease Management",
    "nutrition": "Nutrition & Supplements",
    "general": "General Health",
}

# Checked in order; first match wins.
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("stem_cells", ("stem cell", "regenerat", "tissue engineer")),
    ("longevity", ("longevity", "anti-aging", "lifespan", "senolytic")),
    ("chronic_disease", ("diabetes", "parkinson", "alzheimer", "chronic")),
    ("nutrition", ("nutrition", "supplement", "vitamin", "diet")),
]


@dataclass
class Article:
    """A normalized feed article."""
    id: str
    title: str
    url: str
    date: datetime
    source: str
    summary: str = ""
    category: str = "general"
    author: str = ""
    image: str | None = None

    @property
    def date_formatted(self) -> str:
        return display_date(self.date.date())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "date": self.date.isoformat(),
            "source": self.source,
            "summary": self.summary,
            "category": self.category,
            "author": self.author,
            "image": self.image,
        }


def detect_category(title: str, content: str) -> str:
    """Assign a category from keywords in the title and body."""
    text = f"{title} {content}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return "general"


def clean_summary(text: str) -> str:
    """Strip HTML tags, collapse whitespace and cap the length."""
    if not text:
        return ""
    text = re.sub(r"<[^>]*>", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text[:SUMMARY_LIMIT]


def _parse_date(value: str | None, fallback: datetime) -> datetime:
    if not value:
        return fallback
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_article(item: dict, now: datetime) -> Article:
    """Convert a raw feed item into an ``Article``."""
    url = item.get("url") or ""
    title = item.get("title") or "Untitled"
    content = item.get("content_text") or ""
    source = publisher_name(url, fallback="Unknown")
    authors = item.get("authors") or []
    author = authors[0].get("name", "") if authors and isinstance(authors[0], dict) else ""
    attachments = item.get("attachments") or []
    image = item.get("image") or (attachments[0].get("url") if attachments else None)
    return Article(
        id=str(item.get("id") or hashlib.md5(url.encode()).hexdigest()[:12]),
        title=title,
        url=url,
        date=_parse_date(item.get("date_published"), now),
        source=source,
        summary=clean_summary(content),
        category=detect_category(title, content),
        author=author or source,
        image=image,
    )


class ArticleFeed:
    """Fetches the article pool over HTTP.

    Supports use as a context manager; the underlying ``httpx.Client`` is
    created lazily unless one is passed in.
    """

    def __init__(self, url: str, timeout: float = 30, client: httpx.Client | None = None):
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def fetch_article_pool(self, days_back: int = 7, now: datetime | None = None) -> list[Article]:
        """Fetch articles published within the last ``days_back`` days.

        Args:
            days_back: Size of the recency window in days
            now: Reference time (defaults to the current UTC time)

        Returns:
            Normalized articles, newest first

        Raises:
            FeedError: If the feed cannot be fetched or has the wrong structure
        """
        now = now or datetime.now(timezone.utc)
        try:
            response = self.client.get(self.url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise FeedError(f"Feed fetch failed: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FeedError(f"Feed fetch failed: {e}") from e
        except ValueError as e:
            raise FeedError(f"Feed is not valid JSON: {e}") from e

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise FeedError("Invalid feed structure: missing 'items' list")

        cutoff = now - timedelta(days=days_back)
        articles = [
            normalize_article(item, now)
            for item in items
            if isinstance(item, dict) and item.get("url")
        ]
        articles = [a for a in articles if a.date > cutoff]
        articles.sort(key=lambda a: a.date, reverse=True)

        logger.info(f"Fetched {len(articles)} articles from the past {days_back} days")
        return articles

"""Metrics and per-section article assignment from the feed pool."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date

from .document import Metric, MetricsDashboard
from .feeds import Article

METRIC_CATEGORY_LABELS: dict[str, str] = {
    "stem_cells": "Stem Cells",
    "longevity": "Longevity",
    "chronic_disease": "Chronic Disease",
    "nutrition": "Nutrition",
    "general": "General Health",
}


def build_metrics(articles: list[Article], today: date) -> MetricsDashboard:
    """Summarize the article pool as four dashboard metrics.

    The dashboard date is the newest article's publication date, since that
    is when the feed was last current; an empty pool falls back to ``today``.
    """
    sources = list(dict.fromkeys(a.source for a in articles))
    categories = Counter(a.category for a in articles)
    top = categories.most_common(1)

    metrics = [
        Metric(
            label="Articles This Week",
            value=str(len(articles)),
            change=f"from {len(sources)} sources",
            source="RSS Feed",
        ),
        Metric(
            label="Top Topic",
            value=METRIC_CATEGORY_LABELS.get(top[0][0], top[0][0]) if top else "Stem Cells",
            change=f"{top[0][1]} articles" if top else "",
            source="This Issue",
        ),
        Metric(
            label="Sources Featured",
            value=str(len(sources)),
            change=", ".join(sources[:2]),
            source="Curated Feed",
        ),
        Metric(
            label="Research Categories",
            value=str(len(categories)),
            change="topics covered",
            source="This Issue",
        ),
    ]
    as_of = max(a.date for a in articles).date() if articles else today
    return MetricsDashboard(metrics=metrics, as_of=as_of.isoformat())


@dataclass
class ArticleDistribution:
    """Candidate articles assigned to each generated section."""
    lead_story: Article | None = None
    research_roundup: Article | None = None
    secondary_stories: list[Article] = field(default_factory=list)
    deep_dive: Article | None = None
    statistic: Article | None = None
    advisory_items: list[Article] = field(default_factory=list)
    quick_hits: list[Article] = field(default_factory=list)

    def for_section(self, section_key: str) -> list[Article]:
        value = getattr(self, section_key, None)
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]


def _first(articles: list[Article], categories: tuple[str, ...], taken: list[Article]) -> Article | None:
    for article in articles:
        if article.category in categories and article not in taken:
            return article
    for article in articles:
        if article not in taken:
            return article
    return None


def distribute_articles(articles: list[Article], used_urls: list[str] | None = None) -> ArticleDistribution:
    """Assign pool articles to sections without reusing an article.

    Articles whose URL was already used in a previous issue are skipped.
    ``articles`` is expected newest first.
    """
    used = set(used_urls or [])
    pool = [a for a in articles if a.url not in used]
    taken: list[Article] = []

    def claim(article: Article | None) -> Article | None:
        if article is not None:
            taken.append(article)
        return article

    distribution = ArticleDistribution()
    distribution.lead_story = claim(_first(pool, ("stem_cells", "chronic_disease"), taken))
    distribution.research_roundup = claim(_first(pool, ("stem_cells", "longevity"), taken))
    distribution.secondary_stories = [a for a in pool if a not in taken][:3]
    taken.extend(distribution.secondary_stories)
    distribution.deep_dive = claim(_first(pool, ("nutrition", "longevity", "chronic_disease"), taken))
    distribution.statistic = claim(_first(pool, ("stem_cells", "chronic_disease", "longevity"), taken))
    distribution.advisory_items = [a for a in pool if a not in taken][:4]
    taken.extend(distribution.advisory_items)
    distribution.quick_hits = [a for a in pool if a not in taken][:7]
    return distribution


def format_articles_for_prompt(articles: list[Article]) -> str:
    """Render candidate articles as a numbered list for a prompt."""
    lines = []
    for i, article in enumerate(articles, 1):
        lines.append(f"{i}. {article.title} ({article.source}, {article.date_formatted})")
        lines.append(f"   URL: {article.url}")
        if article.summary:
            lines.append(f"   Summary: {article.summary}")
    return "\n".join(lines)

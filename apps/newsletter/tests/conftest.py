"""Shared fixtures: a fixed clock, fake generation client and fake feed."""

import json
from datetime import date, datetime, timezone

import pytest

from newsletter_agent.config import NewsletterConfig
from newsletter_agent.document import DocumentStore
from newsletter_agent.errors import FeedError
from newsletter_agent.feeds import Article
from newsletter_agent.history import HistoryStore
from newsletter_agent.llm import GenerationClient, GenerationRequest, GenerationResponse, UsageCost
from newsletter_agent.orchestrator import NewsletterOrchestrator
from newsletter_agent.repositories import SourceList, UsedContentLog

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


SAMPLE_RESPONSES = {
    "opening_hook": (
        "Happy Monday! October is Breast Cancer Awareness month, and this week's "
        "research news has plenty of reasons for **hope**."
    ),
    "lead_story": (
        "Stem Cell Patch Restores Heart Function in Trial\n\n"
        "Researchers reported that a lab-grown patch improved pumping strength "
        "({{LINK:Nature|https://www.nature.com/articles/heart-patch}}).\n\n"
        "The **phase 2** results arrive after a decade of work."
    ),
    "summary_digest": json.dumps([
        "A heart patch shows promise",
        "New retinal cell therapy enters trials",
        "What a senolytic diet really does",
    ]),
    "research_roundup": (
        "Three Trials Now Enrolling Near You\n\n"
        "Trials for knee cartilage repair are recruiting "
        "({{LINK:ClinicalTrials|https://clinicaltrials.gov/study/NCT1}})."
    ),
    "secondary_stories": json.dumps([
        {"boldLead": "Vision:", "content": "A retina study {{LINK:STAT|https://www.statnews.com/a}}."},
        {"boldLead": "Diabetes:", "content": "Insulin cells from stem cells {{LINK:Cell|https://www.cell.com/b}}."},
        {"boldLead": "Aging:", "content": "Senolytics in mice {{LINK:Nature|https://www.nature.com/c}}."},
    ]),
    "deep_dive": (
        "Inside the Race to Scale Cell Manufacturing\n\n"
        "Manufacturing costs remain the bottleneck "
        "({{LINK:BioSpace|https://www.biospace.com/d}})."
    ),
    "statistic": json.dumps({
        "primeNumber": "73%",
        "headline": "of patients improved",
        "content": "In the trial {{LINK:Nature|https://www.nature.com/e}}, most patients improved.",
    }),
    "quick_hits": json.dumps([
        "FDA clears a new cartilage implant {{LINK:FDA|https://www.fda.gov/f}} [FDA, Oct 15, 2026]",
        "Walking 7,000 steps cuts risk {{LINK:NPR|https://www.npr.org/g}}",
    ]),
    "advisory_items": json.dumps([
        {"type": "Deadline", "title": "Open enrollment ends", "date": "Dec 15", "description": "Review your plan."},
    ]),
    "recommendations": json.dumps({
        "read": {"prefix": "Read", "linkText": "this essay", "suffix": "on aging.", "url": "https://example.com/r"},
        "watch": {"prefix": "Watch", "linkText": "the talk", "suffix": "", "url": "https://example.com/w"},
        "try": {"prefix": "Try", "linkText": "the app", "suffix": "", "url": "https://example.com/t"},
        "listen": {"prefix": "Listen to", "linkText": "the podcast", "suffix": "", "url": "https://example.com/l"},
    }),
    "word_of_the_day": json.dumps({
        "word": "Senolytic",
        "definition": "A drug that clears aging cells.",
        "suggestedBy": "Dana",
        "location": "Ohio",
    }),
}


class FakeClient(GenerationClient):
    """Returns canned text per section; an Exception value is raised instead."""

    def __init__(self, responses=None):
        self.responses = dict(SAMPLE_RESPONSES if responses is None else responses)
        self.requests: list[GenerationRequest] = []

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        value = self.responses.get(request.section_key, "")
        if isinstance(value, Exception):
            raise value
        return GenerationResponse(text=value, usage=UsageCost(input_tokens=100, output_tokens=50, cost_usd=0.001))

    @property
    def called_sections(self) -> list[str]:
        return [r.section_key for r in self.requests]


class FakeFeed:
    """Stands in for ``ArticleFeed``."""

    def __init__(self, articles=None, error: str | None = None):
        self.articles = articles or []
        self.error = error
        self.calls = 0

    def fetch_article_pool(self, days_back=7, now=None):
        self.calls += 1
        if self.error:
            raise FeedError(self.error)
        return list(self.articles)


def make_article(n: int, category: str = "stem_cells", source: str = "Nature", days_ago: int = 1) -> Article:
    return Article(
        id=f"a{n}",
        title=f"Article {n}",
        url=f"https://example.com/{n}",
        date=datetime(2026, 10, 19 - days_ago, tzinfo=timezone.utc),
        source=source,
        summary=f"Summary {n}",
        category=category,
    )


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def config(tmp_path) -> NewsletterConfig:
    return NewsletterConfig(anthropic_api_key="test-key", data_dir=tmp_path / "data")


@pytest.fixture
def articles() -> list[Article]:
    return [
        make_article(1, "stem_cells", "Nature"),
        make_article(2, "longevity", "STAT News"),
        make_article(3, "nutrition", "Healthline", days_ago=2),
        make_article(4, "chronic_disease", "Nature", days_ago=3),
    ]


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def fake_feed(articles) -> FakeFeed:
    return FakeFeed(articles)


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore()


@pytest.fixture
def history() -> HistoryStore:
    return HistoryStore()


@pytest.fixture
def orchestrator(config, store, history, fake_client, fake_feed) -> NewsletterOrchestrator:
    return NewsletterOrchestrator(
        config=config,
        store=store,
        history=history,
        client=fake_client,
        feed=fake_feed,
        sources=SourceList(),
        used_content=UsedContentLog(),
        clock=lambda: NOW,
    )

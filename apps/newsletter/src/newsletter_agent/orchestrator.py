"""Newsletter generation orchestrator.

Runs the fixed sequence of steps that fills an issue: one metrics step fed
from the article pool, then one generation call per content section. Each
step's response is parsed and written back through the ``DocumentStore``.
A failed content step keeps the section's previous content and the run
continues; only a missing credential or a failed metrics step stops it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

from .articles import ArticleDistribution, build_metrics, distribute_articles, format_articles_for_prompt
from .awareness import hook_context
from .config import NEWSLETTER_NAME, NewsletterConfig
from .document import (
    AdvisoryItems,
    DocumentStore,
    QuickHits,
    Recommendations,
    SecondaryStories,
    Section,
    StatSection,
    StorySection,
    WordOfTheDay,
    display_date,
)
from .errors import CredentialMissing, FeedError, GenerationError, ParseError, PipelineBusy
from .feeds import ArticleFeed
from .history import HistoryStore
from .llm import GenerationClient, GenerationRequest, LLMClient, UsageCost
from .markup import strip
from .prompts import format_prompt, get_system_prompt
from .repositories import SourceList, UsedContentLog
from .section_parsers import clean_output, parse_section

logger = logging.getLogger(__name__)

METRICS_STEP = "metrics"

# Content steps in execution order. Later steps may read what earlier ones
# wrote (the summary digest and word of the day use the lead headline).
CONTENT_STEPS: list[str] = [
    "opening_hook",
    "lead_story",
    "summary_digest",
    "research_roundup",
    "secondary_stories",
    "deep_dive",
    "statistic",
    "quick_hits",
    "advisory_items",
    "recommendations",
    "word_of_the_day",
]

STEPS: list[str] = [METRICS_STEP, *CONTENT_STEPS]

STEP_NAMES: dict[str, str] = {
    "metrics": "metrics dashboard",
    "opening_hook": "opening hook",
    "lead_story": "lead story",
    "summary_digest": "summary digest",
    "research_roundup": "research roundup",
    "secondary_stories": "secondary stories",
    "deep_dive": "deep dive",
    "statistic": "stat of the week",
    "quick_hits": "quick hits",
    "advisory_items": "worth knowing",
    "recommendations": "recommendations",
    "word_of_the_day": "word of the day",
}

SOURCE_WINDOW_DAYS = 14


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification for subscribers.

    Attributes:
        step_index: 1-based step number (0 for run-level messages)
        step_count: Total number of steps in a full run
        step_name: Human-readable step name
        status: Status text for display
    """
    step_index: int
    step_count: int
    step_name: str
    status: str


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class StepIssue:
    """A non-fatal step failure recorded during a run or refresh."""
    section_key: str
    kind: str
    message: str


@dataclass
class PipelineResult:
    """Outcome of a full run."""
    state: PipelineState
    status: str
    issues: list[StepIssue] = field(default_factory=list)
    usage: UsageCost = field(default_factory=UsageCost)
    snapshot_id: str | None = None

    @property
    def failed_sections(self) -> list[str]:
        return [issue.section_key for issue in self.issues]


@dataclass
class RefreshResult:
    """Outcome of a single-section refresh."""
    section_key: str
    succeeded: bool
    status: str
    issue: StepIssue | None = None
    usage: UsageCost = field(default_factory=UsageCost)


def credential_guidance(config: NewsletterConfig) -> str:
    provider = "OpenAI" if config.provider == "openai" else "Anthropic"
    return f"Please add your {provider} API key (set {config.credential_env_var}) before generating."


class NewsletterOrchestrator:
    """Drives full-issue generation and single-section refreshes."""

    def __init__(
        self,
        config: NewsletterConfig,
        store: DocumentStore,
        history: HistoryStore,
        client: GenerationClient | None = None,
        feed: ArticleFeed | None = None,
        sources: SourceList | None = None,
        used_content: UsedContentLog | None = None,
        aux_state: Callable[[], dict[str, Any]] | None = None,
        on_progress: ProgressCallback | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.store = store
        self.history = history
        self.client = client or LLMClient(config.active_model, config.credential, config.llm_log_dir)
        self.feed = feed or ArticleFeed(config.feed_url)
        self.sources = sources if sources is not None else SourceList()
        self.used_content = used_content if used_content is not None else UsedContentLog()
        self._aux_state = aux_state or dict
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._subscribers: list[ProgressCallback] = [on_progress] if on_progress else []

        self._lock = threading.Lock()
        self._state = PipelineState.IDLE
        self._status = ""
        self._in_flight: dict[str, bool] = {}

    # -- observation -----------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def status(self) -> str:
        return self._status

    @property
    def in_flight(self) -> dict[str, bool]:
        with self._lock:
            return {key: True for key, busy in self._in_flight.items() if busy}

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a progress callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, step_index: int, step_name: str, status: str) -> None:
        """Record the status and notify subscribers."""
        self._status = status
        logger.info(status)
        event = ProgressEvent(step_index, len(STEPS), step_name, status)
        for callback in list(self._subscribers):
            callback(event)

    def _set_in_flight(self, key: str, busy: bool) -> None:
        with self._lock:
            if busy:
                self._in_flight[key] = True
            else:
                self._in_flight.pop(key, None)

    # -- prompts ---------------------------------------------------------------

    def _today(self) -> date:
        return self._clock().date()

    def _prompt_context(self, today: date, topic_hint: str, candidates: list | None = None) -> dict[str, Any]:
        lead = self.store.section("lead_story")
        enabled = self.sources.enabled
        recent = self.used_content.recent_headlines
        cutoff = today - timedelta(days=SOURCE_WINDOW_DAYS)
        return {
            "newsletter_name": NEWSLETTER_NAME,
            "today": f"{today.strftime('%A, %B')} {today.day}, {today.year}",
            "cutoff": display_date(cutoff),
            "preferred_sources": "\n".join(f"- {s.name} ({s.url})" for s in enabled) or "- Any reputable health publication",
            "recent_headlines": "\n".join(f"- {h}" for h in recent[:10]) or "- (none)",
            "hook_context": hook_context(today),
            "topic_hint": topic_hint,
            "candidates": format_articles_for_prompt(candidates) if candidates else "(none supplied; use web search)",
            "lead_headline": lead.headline if isinstance(lead, StorySection) and lead.headline else "(not written yet)",
        }

    def build_request(
        self,
        section_key: str,
        today: date,
        topic_hint: str = "",
        candidates: list | None = None,
    ) -> GenerationRequest:
        """Build the generation request for one content step."""
        context = self._prompt_context(today, topic_hint, candidates)
        settings = self.config.settings_for(section_key)
        return GenerationRequest(
            section_key=section_key,
            system=get_system_prompt(**context),
            prompt=format_prompt(section_key, **context),
            web_search=settings.web_search,
            max_tokens=settings.max_tokens,
        )

    def _generate_section(
        self,
        section_key: str,
        today: date,
        topic_hint: str = "",
        candidates: list | None = None,
    ) -> UsageCost:
        """Generate, parse and store one section. Returns the call's usage.

        Raises:
            GenerationError: If the service call fails
            ParseError: If the response is empty or has the wrong shape
        """
        request = self.build_request(section_key, today, topic_hint, candidates)
        response = self.client.generate(request)
        text = clean_output(response.text)
        if not text:
            raise ParseError(section_key, "empty response")
        section = parse_section(section_key, text, today)
        self.store.update_section(section_key, lambda _current: section)
        return response.usage

    # -- full run --------------------------------------------------------------

    def run(self, topic: str | None = None) -> PipelineResult:
        """Generate the whole issue.

        Args:
            topic: Optional topic hint added to every step's instructions

        Returns:
            The run outcome. A missing credential returns an IDLE result with
            guidance and takes no snapshot.

        Raises:
            PipelineBusy: If a run or a section refresh is already in progress
        """
        with self._lock:
            if self._state == PipelineState.RUNNING:
                raise PipelineBusy("A newsletter run is already in progress")
            busy = [key for key, flag in self._in_flight.items() if flag]
            if busy:
                raise PipelineBusy(f"Wait for the refresh of {', '.join(busy)} to finish")
            has_credential = bool(self.config.credential)
            if has_credential:
                self._state = PipelineState.RUNNING
            else:
                self._state = PipelineState.IDLE

        if not has_credential:
            guidance = credential_guidance(self.config)
            self._emit(0, "credential check", guidance)
            return PipelineResult(state=PipelineState.IDLE, status=guidance)

        try:
            snapshot_id = self.history.snapshot(self.store.get(), self._aux_state())
            result = self._run_steps(topic)
            result.snapshot_id = snapshot_id
            return result
        except Exception:
            self._finish(PipelineState.FAILED)
            raise

    def _finish(self, state: PipelineState) -> None:
        with self._lock:
            self._state = state
            self._in_flight.clear()

    def _run_steps(self, topic: str | None) -> PipelineResult:
        today = self._today()
        total = len(STEPS)
        topic_hint = f"Focus on: {topic}" if topic else ""

        self.store.update_section(
            "preheader",
            lambda p: replace(p, issue_number=p.issue_number + 1, date=display_date(today)),
        )

        name = STEP_NAMES[METRICS_STEP]
        self._set_in_flight(METRICS_STEP, True)
        self._emit(1, name, f"Step 1 of {total}: building {name}...")
        try:
            articles = self.feed.fetch_article_pool(self.config.days_back)
        except FeedError as e:
            logger.error(f"Metrics step failed: {e}")
            status = f"Could not load the article feed: {e.message}"
            self._finish(PipelineState.FAILED)
            self._emit(1, name, status)
            return PipelineResult(
                state=PipelineState.FAILED,
                status=status,
                issues=[StepIssue(METRICS_STEP, "feed", e.message)],
            )
        self.store.update_section(METRICS_STEP, lambda _current: build_metrics(articles, today))
        self._set_in_flight(METRICS_STEP, False)
        self._emit(1, name, f"Step 1 of {total}: {name} done ({len(articles)} articles)")

        distribution = distribute_articles(articles, self.used_content.urls)
        issues: list[StepIssue] = []
        usage = UsageCost()

        for index, key in enumerate(CONTENT_STEPS, 2):
            try:
                issue, step_usage = self._run_content_step(index, key, today, topic_hint, distribution)
            except CredentialMissing as e:
                logger.error(f"Run stopped at {key}: {e.message}")
                self._finish(PipelineState.FAILED)
                status = credential_guidance(self.config)
                self._emit(index, STEP_NAMES[key], status)
                issues.append(StepIssue(key, "credential", e.message))
                return PipelineResult(state=PipelineState.FAILED, status=status, issues=issues, usage=usage)
            usage = usage + step_usage
            if issue:
                issues.append(issue)

        self._record_used_content()
        self._finish(PipelineState.COMPLETED)

        succeeded = total - len(issues)
        status = f"Newsletter created! {succeeded} of {total} steps succeeded."
        if issues:
            kept = ", ".join(STEP_NAMES[i.section_key] for i in issues)
            status += f" Kept previous content for: {kept}."
        self._emit(total, "complete", status)
        return PipelineResult(state=PipelineState.COMPLETED, status=status, issues=issues, usage=usage)

    def _run_content_step(
        self,
        index: int,
        key: str,
        today: date,
        topic_hint: str,
        distribution: ArticleDistribution,
    ) -> tuple[StepIssue | None, UsageCost]:
        total = len(STEPS)
        name = STEP_NAMES[key]
        self._set_in_flight(key, True)
        self._emit(index, name, f"Step {index} of {total}: writing {name}...")
        try:
            usage = self._generate_section(key, today, topic_hint, distribution.for_section(key))
        except CredentialMissing:
            raise
        except GenerationError as e:
            issue = StepIssue(key, "generation", e.message)
        except ParseError as e:
            issue = StepIssue(key, "parse", e.cause)
        except Exception as e:
            logger.exception(f"Unexpected error building {key}")
            issue = StepIssue(key, "parse", str(e))
        else:
            self._set_in_flight(key, False)
            self._emit(index, name, f"Step {index} of {total}: {name} done")
            return None, usage

        logger.warning(f"Step {key} failed ({issue.kind}): {issue.message}")
        self._set_in_flight(key, False)
        self._emit(index, name, f"Step {index} of {total}: {name} failed ({issue.message}); keeping previous content")
        return issue, UsageCost()

    def _record_used_content(self) -> None:
        """Set the subject line from the lead story and log what was used."""
        document = self.store.get()
        lead = document["lead_story"]
        if not isinstance(lead, StorySection) or not lead.headline:
            return
        self.store.update_section("preheader", lambda p: replace(p, subject_line=lead.headline))
        self.used_content.record_headline(lead.headline, self._clock())
        urls = [s.url for key in ("lead_story", "research_roundup", "deep_dive") for s in document[key].sources]
        secondary = document["secondary_stories"]
        if isinstance(secondary, SecondaryStories):
            urls += [s.url for story in secondary.stories for s in story.sources]
        self.used_content.record_urls(urls)

    # -- single-section refresh ------------------------------------------------

    def refresh_section(self, section_key: str, hint: str | None = None) -> RefreshResult:
        """Regenerate one section, steering away from its current topic.

        Runs independently of a full run and takes no history snapshot.

        Args:
            section_key: One of ``STEPS``
            hint: Optional extra direction for the new content

        Raises:
            KeyError: If the section has no generation step
            PipelineBusy: If a full run is in progress or this section is
                already being refreshed
        """
        if section_key not in STEPS:
            raise KeyError(f"Section cannot be refreshed: {section_key}")

        with self._lock:
            if self._state == PipelineState.RUNNING:
                raise PipelineBusy("A newsletter run is in progress")
            if self._in_flight.get(section_key):
                raise PipelineBusy(f"{STEP_NAMES[section_key]} is already being refreshed")
            self._in_flight[section_key] = True

        name = STEP_NAMES[section_key]
        try:
            if section_key == METRICS_STEP:
                return self._refresh_metrics()
            if not self.config.credential:
                guidance = credential_guidance(self.config)
                self._emit(0, name, guidance)
                return RefreshResult(section_key, succeeded=False, status=guidance)

            self._emit(0, name, f"Refreshing {name}...")
            topic_hint = avoid_topic_hint(self.store.section(section_key), hint)
            try:
                usage = self._generate_section(section_key, self._today(), topic_hint)
            except GenerationError as e:
                issue = StepIssue(section_key, "generation", e.message)
            except ParseError as e:
                issue = StepIssue(section_key, "parse", e.cause)
            except Exception as e:
                logger.exception(f"Unexpected error refreshing {section_key}")
                issue = StepIssue(section_key, "parse", str(e))
            else:
                status = f"Refreshed {name}"
                self._emit(0, name, status)
                return RefreshResult(section_key, succeeded=True, status=status, usage=usage)

            status = f"Could not refresh {name} ({issue.message}); kept previous content"
            logger.warning(status)
            self._emit(0, name, status)
            return RefreshResult(section_key, succeeded=False, status=status, issue=issue)
        finally:
            self._set_in_flight(section_key, False)

    def _refresh_metrics(self) -> RefreshResult:
        name = STEP_NAMES[METRICS_STEP]
        self._emit(0, name, f"Refreshing {name}...")
        try:
            articles = self.feed.fetch_article_pool(self.config.days_back)
        except FeedError as e:
            status = f"Could not refresh {name} ({e.message}); kept previous content"
            self._emit(0, name, status)
            return RefreshResult(METRICS_STEP, False, status, StepIssue(METRICS_STEP, "feed", e.message))
        today = self._today()
        self.store.update_section(METRICS_STEP, lambda _current: build_metrics(articles, today))
        status = f"Refreshed {name}"
        self._emit(0, name, status)
        return RefreshResult(METRICS_STEP, True, status)


def _current_topic(section: Section) -> str:
    """What the section is currently about, for an avoid-topic instruction."""
    if isinstance(section, (StorySection, StatSection)):
        return section.headline
    if isinstance(section, SecondaryStories):
        return "; ".join(s.bold_lead for s in section.stories if s.bold_lead)
    if isinstance(section, QuickHits):
        return "; ".join(strip(item.text) for item in section.items)
    if isinstance(section, AdvisoryItems):
        return "; ".join(item.title for item in section.items)
    if isinstance(section, Recommendations):
        picks = [section.read, section.watch, section.try_it, section.listen]
        return "; ".join(p.url for p in picks if p.url)
    if isinstance(section, WordOfTheDay):
        return section.word
    return ""


def avoid_topic_hint(section: Section, hint: str | None = None) -> str:
    """Instruction steering a refresh away from the section's current content."""
    lines = []
    topic = _current_topic(section)
    if topic:
        lines.append(f'DO NOT write about: "{topic}"')
        lines.append("Find something COMPLETELY DIFFERENT: a different condition, institution and source.")
    if hint:
        lines.append(f"Focus on: {hint}")
    return "\n".join(lines)

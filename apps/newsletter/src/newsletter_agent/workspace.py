"""Persistent newsletter state wired to an orchestrator.

A workspace loads the document, history, source list, used-content log and
game of the week from a ``JsonFileStore`` and writes them back as they
change.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from .config import NewsletterConfig
from .document import Document, DocumentStore
from .feeds import ArticleFeed
from .games import Game, game_from_dict, next_game
from .history import HistoryStore
from .llm import GenerationClient
from .orchestrator import NewsletterOrchestrator, ProgressCallback
from .repositories import SourceList, UsedContentLog
from .storage import DOCUMENT_KEY, GAME_KEY, HISTORY_KEY, SOURCES_KEY, USED_CONTENT_KEY, JsonFileStore

logger = logging.getLogger(__name__)


class Workspace:
    """Everything one newsletter needs, loaded from ``data_dir``."""

    def __init__(self, config: NewsletterConfig, data_dir: Path | None = None):
        self.config = config
        self.storage = JsonFileStore(data_dir or config.data_dir)

        stored = self.storage.get(DOCUMENT_KEY)
        document = Document.from_dict(stored) if stored else Document.new()
        self.store = DocumentStore(document, on_change=self._save_document)
        self.history = HistoryStore.from_list(self.storage.get(HISTORY_KEY, []), limit=config.history_limit)
        self.sources = SourceList.from_list(self.storage.get(SOURCES_KEY))
        self.used_content = UsedContentLog.from_dict(self.storage.get(USED_CONTENT_KEY))
        self.game = game_from_dict(self.storage.get(GAME_KEY), date.today())

    def _save_document(self, document: Document) -> None:
        self.storage.set(DOCUMENT_KEY, document.to_dict())

    def save_history(self) -> None:
        self.storage.set(HISTORY_KEY, self.history.to_list())

    def save_sources(self) -> None:
        self.storage.set(SOURCES_KEY, self.sources.to_list())

    def save_used_content(self) -> None:
        self.storage.set(USED_CONTENT_KEY, self.used_content.to_dict())

    def save_game(self) -> None:
        self.storage.set(GAME_KEY, self.game.to_dict())

    def aux_state(self) -> dict:
        return {"game": self.game.to_dict()}

    def orchestrator(
        self,
        client: GenerationClient | None = None,
        feed: ArticleFeed | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> NewsletterOrchestrator:
        """Build an orchestrator over this workspace's state."""
        return NewsletterOrchestrator(
            config=self.config,
            store=self.store,
            history=self.history,
            client=client,
            feed=feed,
            sources=self.sources,
            used_content=self.used_content,
            aux_state=self.aux_state,
            on_progress=on_progress,
        )

    def after_run(self) -> None:
        """Persist state a run may have changed besides the document."""
        self.save_history()
        self.save_used_content()

    def restore(self, entry_id: str) -> Document:
        """Restore a history entry into the live document and game.

        Raises:
            NotFound: If the entry does not exist.
        """
        entry = self.history.get(entry_id)
        document = Document.from_dict(entry.document)
        self.store.replace_all(document)
        game_data = entry.aux_state.get("game")
        if game_data:
            self.game = game_from_dict(game_data, date.today())
            self.save_game()
        logger.info(f"Restored history entry {entry_id}")
        return document

    def remove_history(self, entry_id: str) -> None:
        self.history.remove(entry_id)
        self.save_history()

    def clear_history(self) -> None:
        self.history.clear()
        self.save_history()

    def rotate_game(self) -> Game:
        self.game = next_game(self.game)
        self.save_game()
        return self.game

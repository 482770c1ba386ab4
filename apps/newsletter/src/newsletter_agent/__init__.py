from .document import Document, DocumentStore
from .history import HistoryStore
from .markup import parse, render_markup, render_rich, strip
from .orchestrator import NewsletterOrchestrator, PipelineResult, PipelineState, ProgressEvent

__all__ = [
    "Document",
    "DocumentStore",
    "HistoryStore",
    "parse",
    "render_markup",
    "render_rich",
    "strip",
    "NewsletterOrchestrator",
    "PipelineResult",
    "PipelineState",
    "ProgressEvent",
]

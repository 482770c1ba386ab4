"""Exceptions raised by the newsletter pipeline."""


class NewsletterError(Exception):
    """Base exception for all newsletter errors."""

    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


class GenerationError(NewsletterError):
    """Raised when the generation service cannot produce text for a section."""

    def __init__(self, section_key: str, message: str):
        self.section_key = section_key
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.section_key}: {self.message}"


class CredentialMissing(GenerationError):
    """Raised when no API key is configured for the selected provider."""


class TransportError(GenerationError):
    """Raised when the provider returns an error status or the connection fails."""

    def __init__(self, section_key: str, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(section_key, message)


class ParseError(NewsletterError):
    """Raised when a response cannot be turned into a section."""

    def __init__(self, section_key: str, cause: str):
        self.section_key = section_key
        self.cause = cause
        super().__init__(f"{section_key}: {cause}")


class NotFound(NewsletterError, KeyError):
    """Raised when a history entry does not exist."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"History entry not found: {entry_id}")

    def __str__(self) -> str:
        return self.message


class FeedError(NewsletterError):
    """Raised when the article feed cannot be fetched or decoded."""


class PipelineBusy(NewsletterError):
    """Raised when a run or refresh would overlap one already in flight."""

"""Error types raised by the ingestion and retrieval components."""


class EventsError(Exception):
    """Base class for all engine errors."""


class UnknownVariantError(EventsError, ValueError):
    """Raised when a string is outside a closed vocabulary."""

    def __init__(self, kind: str, value):
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown {kind}: {value!r}")


class DuplicateError(EventsError):
    """Raised when a candidate's natural key is already stored."""

    def __init__(self, source: str, source_event_id: str):
        self.source = source
        self.source_event_id = source_event_id
        super().__init__(
            f"duplicate event found: {source} - {source_event_id}"
        )


class StoreError(EventsError):
    """Raised when a document store call fails."""


class NotFoundError(StoreError):
    """Raised when a record does not exist."""


class BatchDeleteError(StoreError):
    """Raised when a batch delete chunk fails.

    ``deleted`` is the number of ids removed by earlier chunks.
    """

    def __init__(self, message: str, deleted: int):
        self.deleted = deleted
        super().__init__(message)


class ClassificationError(EventsError):
    """Raised when the classifier fails or returns an invalid payload."""


class ClassifierUnavailableError(ClassificationError):
    """Raised when the classifier cannot be reached at all."""


class ScrapeError(EventsError):
    """Raised when a single page cannot be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Failed to scrape {url}: {reason}")

"""Event processor for validating and normalizing scraped candidates."""
import dataclasses
import logging
import uuid
from datetime import datetime, timezone

from processor.models import Event, SourceType
from storage.buckets import to_utc

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor for validating and normalizing candidate events."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 4000

    def process_event(self, candidate: Event) -> Event:
        """
        Validate a scraped candidate and normalize it for storage.

        The returned event has a fresh event_id, UTC start/end, a fetch
        timestamp and empty classification fields.

        Args:
            candidate: Event produced by a scraper

        Returns:
            Normalized copy of the candidate

        Raises:
            ValueError: If a required field is missing
        """
        self._validate_required_fields(candidate)

        start = to_utc(candidate.start)
        end = to_utc(candidate.end) if candidate.end else start
        if end < start:
            logger.warning(
                f"Event '{candidate.title}' ends before it starts, "
                f"using start as end"
            )
            end = start

        return dataclasses.replace(
            candidate,
            event_id=self.generate_event_id(),
            source_name=SourceType.parse(candidate.source_name),
            title=candidate.title.strip()[:self.MAX_TITLE_LENGTH],
            description=candidate.description.strip()[:self.MAX_DESCRIPTION_LENGTH],
            start=start,
            end=end,
            start_bucket='',
            caption='',
            tags=[],
            extra_tags=[],
            categories=[],
            classified=False,
            fetched_at=to_utc(candidate.fetched_at or datetime.now(timezone.utc)),
        )

    def _validate_required_fields(self, event: Event) -> None:
        if not event.title or not event.title.strip():
            raise ValueError("Event missing required field: title")

        if not event.source_event_id or not event.source_event_id.strip():
            raise ValueError(
                f"Event '{event.title}' missing required field: source_event_id"
            )

        if event.start is None:
            raise ValueError(f"Event '{event.title}' missing required field: start")

    def generate_event_id(self) -> str:
        """Generate an opaque primary key for a new event."""
        return str(uuid.uuid4())

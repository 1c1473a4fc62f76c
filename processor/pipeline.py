"""Ingestion pipeline: normalize, deduplicate, persist."""
import logging
from typing import Iterable, Optional

from processor.deduplicator import Deduplicator
from processor.errors import DuplicateError, StoreError
from processor.event_processor import EventProcessor
from processor.models import Event, IngestResult
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Writes freshly scraped candidates to the store, once per natural key."""

    def __init__(
        self,
        store: DynamoDBManager,
        deduplicator: Optional[Deduplicator] = None,
        processor: Optional[EventProcessor] = None
    ):
        self.store = store
        self.deduplicator = deduplicator or Deduplicator(store)
        self.processor = processor or EventProcessor()

    def process(self, candidate: Event) -> Event:
        """
        Ingest a single candidate.

        Returns:
            The stored event

        Raises:
            ValueError: If the candidate is malformed
            DuplicateError: If the natural key is already stored
            StoreError: If the lookup or write fails
        """
        event = self.processor.process_event(candidate)
        event = self.deduplicator.deduplicate(event)
        return self.store.put_event(event)

    def ingest(self, candidates: Iterable[Event]) -> IngestResult:
        """
        Ingest candidates one at a time, skipping failures.

        Args:
            candidates: Events produced by a scraper

        Returns:
            IngestResult with counts of added and duplicate events
        """
        result = IngestResult()

        for candidate in candidates:
            try:
                event = self.process(candidate)
                result.added += 1
                logger.debug(
                    f"Saved event {event.source_name.value} - "
                    f"{event.source_event_id}"
                )
            except DuplicateError as e:
                result.duplicates += 1
                logger.info(f"Deduplication: {e}")
            except (StoreError, ValueError) as e:
                error_msg = (
                    f"Error saving event {candidate.source_event_id}: {e}"
                )
                logger.error(error_msg)
                result.errors.append(error_msg)

        logger.info(
            f"Ingestion complete: {result.added} added, "
            f"{result.duplicates} duplicates, {len(result.errors)} errors"
        )
        return result

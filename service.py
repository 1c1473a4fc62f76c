"""Orchestrator for the scrape, tag, purge, createTables and match commands."""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from classifier.base import Classifier
from classifier.openai_classifier import OpenAIClassifier
from config import Config
from processor.errors import ClassificationError, ClassifierUnavailableError
from processor.event_query import EventQueryEngine
from processor.matcher import EventMatcher
from processor.models import (
    Event,
    IngestResult,
    MatchingRequest,
    PurgeResult,
    SourceType,
    TagResult,
)
from processor.pipeline import IngestionPipeline
from processor.purger import RetentionPurger
from processor.tagger import EventTagger
from scraper.metro_theatre import MetroTheatreScraper
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)


class EventService:
    """
    Runs one command per invocation, sequentially.

    Item-level failures (one event, one tagging batch) are logged and the
    run moves on. Setup failures propagate to the caller.
    """

    TAG_BATCH_SIZE = 10

    def __init__(
        self,
        store: DynamoDBManager,
        classifier: Classifier,
        scrapers: Dict[SourceType, Any],
        tag_sources: Optional[List[str]] = None,
        retention_days: int = 0
    ):
        self.store = store
        self.classifier = classifier
        self.scrapers = scrapers
        self.tag_sources = [
            SourceType.parse(s) for s in (tag_sources or list(scrapers))
        ]
        self.retention_days = retention_days

        self.pipeline = IngestionPipeline(store)
        self.query_engine = EventQueryEngine(store)
        self.tagger = EventTagger(store)
        self.purger = RetentionPurger(store)
        self.matcher = EventMatcher(classifier)

    @classmethod
    def from_config(cls, config: Config) -> 'EventService':
        store = DynamoDBManager(
            events_table=config.events_table,
            users_table=config.users_table,
            region_name=config.region,
            endpoint_url=config.dynamodb_endpoint
        )
        scrapers = {
            SourceType.METRO_THEATRE: MetroTheatreScraper(
                timeout=config.timeout_seconds,
                request_delay=config.scrape_delay_seconds
            ),
        }
        return cls(
            store=store,
            classifier=OpenAIClassifier(model_name=config.openai_model),
            scrapers=scrapers,
            tag_sources=config.tag_sources,
            retention_days=config.retention_days
        )

    def load_events(self, venue: Optional[str] = None) -> IngestResult:
        """
        Scrape one venue (or every configured venue) and ingest the results.

        Raises:
            UnknownVariantError: If venue is not a known source
            ValueError: If no scraper is configured for the venue
            requests.RequestException: If a listing page cannot be fetched
        """
        if venue:
            source = SourceType.parse(venue)
            if source not in self.scrapers:
                raise ValueError(f"No scraper configured for {source.value}")
            sources = [source]
        else:
            sources = list(self.scrapers)

        total = IngestResult()
        for source in sources:
            logger.info(f"Scraping {source.value}")
            candidates = self.scrapers[source].fetch_events()
            result = self.pipeline.ingest(candidates)
            total.added += result.added
            total.duplicates += result.duplicates
            total.errors.extend(result.errors)

        return total

    def tag_events(self) -> TagResult:
        """Classify unclassified events for every configured source."""
        total = TagResult()
        first_call = True

        for source in self.tag_sources:
            result, first_call = self._tag_source(source, first_call)
            total.tagged += result.tagged
            total.skipped += result.skipped
            total.errors.extend(result.errors)

        return total

    def tag_events_for_source(self, source: SourceType) -> TagResult:
        """Classify unclassified events for a single source."""
        result, _ = self._tag_source(SourceType.parse(source), True)
        return result

    def _tag_source(self, source: SourceType, first_call: bool):
        logger.info(f"Tagging events for source {source.value}")
        events = self.store.query_by_natural_key(source, unclassified_only=True)
        logger.info(f"Found {len(events)} untagged events")

        result = TagResult()
        for i in range(0, len(events), self.TAG_BATCH_SIZE):
            batch = events[i:i + self.TAG_BATCH_SIZE]
            batch_number = i // self.TAG_BATCH_SIZE + 1
            logger.info(f"Tagging batch {batch_number}: {len(batch)} events")

            try:
                batch_out = self.classifier.tag(
                    [event.description or event.title for event in batch]
                )
            except ClassifierUnavailableError:
                if first_call:
                    raise
                error_msg = f"Classifier unavailable for batch {batch_number}"
                logger.error(error_msg)
                result.errors.append(error_msg)
                continue
            except ClassificationError as e:
                first_call = False
                error_msg = f"Error tagging batch {batch_number}: {e}"
                logger.error(error_msg)
                result.errors.append(error_msg)
                continue

            first_call = False
            batch_result = self.tagger.apply_batch(batch, batch_out.results)
            result.tagged += batch_result.tagged
            result.skipped += batch_result.skipped
            result.errors.extend(batch_result.errors)

        return result, first_call

    def purge(self, cutoff: Optional[date] = None) -> PurgeResult:
        """Delete events that started before the cutoff (default: retention window)."""
        if cutoff is None:
            cutoff = (
                datetime.now(timezone.utc).date() -
                timedelta(days=self.retention_days)
            )
        logger.info("Purging old events")
        return self.purger.purge_older_than(cutoff)

    def create_tables(self) -> None:
        self.store.create_tables()

    def match_events(self, request: MatchingRequest) -> List[Event]:
        """
        Recommend events in the request's window and category.

        Raises:
            UnknownVariantError: If the category is not in the vocabulary
            StoreError: If the range query fails
            ClassificationError: If the matcher fails
        """
        logger.debug(
            f"Matching events from {request.start_date} to {request.end_date}, "
            f"category: {request.category}, venues: {request.venues}"
        )
        events = self.query_engine.query_events(
            request.start_date, request.end_date, request.category
        )
        logger.debug(f"Found {len(events)} events to match against")
        return self.matcher.match(events, request.description, request.venues)

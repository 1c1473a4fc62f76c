"""Applies classification output to stored events."""
import logging
from typing import List

from classifier.schemas import TaggingResult
from processor.errors import StoreError
from processor.models import Category, Event, TagResult
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)


class EventTagger:
    """Tag-update protocol over the store's partial update."""

    MAX_TAGS = 5
    MAX_EXTRA_TAGS = 10
    MAX_CATEGORIES = 3

    def __init__(self, store: DynamoDBManager):
        self.store = store

    def apply_classification(
        self,
        event_id: str,
        caption: str,
        tags: List[str],
        extended_tags: List[str],
        categories: List[Category]
    ) -> Event:
        """
        Store classification output and mark the event classified.

        No other field is touched. Concurrent updates of the same event are
        last-writer-wins.

        Returns:
            The event as persisted after the update

        Raises:
            ValueError: If tags, extended_tags or categories exceed their limits
            UnknownVariantError: If a category is not in the vocabulary
            StoreError: If the update fails
        """
        if len(tags) > self.MAX_TAGS:
            raise ValueError(f"Too many tags: {len(tags)} > {self.MAX_TAGS}")
        if len(extended_tags) > self.MAX_EXTRA_TAGS:
            raise ValueError(
                f"Too many extended tags: {len(extended_tags)} > {self.MAX_EXTRA_TAGS}"
            )
        if len(categories) > self.MAX_CATEGORIES:
            raise ValueError(
                f"Too many categories: {len(categories)} > {self.MAX_CATEGORIES}"
            )

        categories = [Category.parse(c) for c in categories]
        updated = self.store.update_event_tags(
            event_id, caption, tags, extended_tags, categories
        )
        logger.debug(
            f"Tagged event {updated.source_name.value} - "
            f"{updated.source_event_id} with {len(updated.tags)} tags"
        )
        return updated

    def apply_batch(
        self,
        batch: List[Event],
        results: List[TaggingResult]
    ) -> TagResult:
        """
        Map index-keyed results back to the batch and apply each one.

        Results whose index falls outside the batch are discarded. A failed
        update is logged and the rest of the batch still proceeds.

        Args:
            batch: Events in the order they were sent to the classifier
            results: Classifier output keyed by batch position

        Returns:
            TagResult with counts of tagged and skipped results
        """
        tag_result = TagResult()

        for result in results:
            if result.index < 0 or result.index >= len(batch):
                logger.warning(
                    f"Skipping out-of-bounds result (event index {result.index})"
                )
                tag_result.skipped += 1
                continue

            event = batch[result.index]
            try:
                self.apply_classification(
                    event.event_id,
                    result.caption,
                    result.top5,
                    result.extended,
                    result.categories
                )
                tag_result.tagged += 1
            except (StoreError, ValueError) as e:
                error_msg = (
                    f"Error writing tagged event {event.source_name.value} - "
                    f"{event.source_event_id}: {e}"
                )
                logger.error(error_msg)
                tag_result.errors.append(error_msg)

        return tag_result

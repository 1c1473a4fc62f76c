"""Category and date-range queries over the month-bucketed start index."""
import logging
from datetime import date, datetime
from typing import List, Optional, Union

from processor.models import Category, Event
from storage.buckets import format_rfc3339, month_buckets, to_utc
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)


class EventQueryEngine:
    """
    Answers "events in category C between A and B".

    The StartBucketIndex is partitioned by UTC month with ``start`` as the
    sort key, so a range query touches only the buckets it overlaps.
    Results come back bucket by bucket, ascending by start within a bucket.
    """

    def __init__(self, store: DynamoDBManager):
        self.store = store

    def query_events(
        self,
        date_from: Union[datetime, date],
        date_to: Union[datetime, date],
        category: Optional[Union[Category, str]]
    ) -> List[Event]:
        """
        Fetch events of one category whose start falls in [date_from, date_to].

        Args:
            date_from: Range start, naive values are taken as UTC
            date_to: Range end, swapped with date_from if earlier
            category: Category to match; empty matches nothing

        Returns:
            Matching events, ordered by bucket then start

        Raises:
            UnknownVariantError: If category is not in the vocabulary
            StoreError: If a bucket query fails
        """
        if not category:
            logger.info("Empty category, nothing to match")
            return []
        category = Category.parse(category)

        date_from, date_to = to_utc(date_from), to_utc(date_to)
        if date_to < date_from:
            date_from, date_to = date_to, date_from

        start_from = format_rfc3339(date_from)
        start_to = format_rfc3339(date_to)
        logger.info(
            f"Querying events between {start_from} and {start_to} "
            f"for category {category.value}"
        )

        events = []
        for bucket in month_buckets(date_from, date_to):
            logger.debug(f"Querying bucket {bucket}")
            page = self.store.query_by_bucket(
                bucket, start_from, start_to, category
            )
            logger.debug(f"Found {len(page)} events in bucket {bucket}")
            events.extend(page)

        logger.info(f"Found {len(events)} events")
        return events

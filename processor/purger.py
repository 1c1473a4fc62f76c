"""Retention purge of events that have already started."""
import logging
from datetime import date, datetime
from typing import Union

from boto3.dynamodb.conditions import Attr

from processor.errors import BatchDeleteError
from processor.models import PurgeResult
from storage.buckets import to_utc
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)


class RetentionPurger:
    """
    Deletes events whose start is before a cutoff date.

    Uses a full-table scan, so each run costs O(total events).
    """

    def __init__(self, store: DynamoDBManager):
        self.store = store

    def purge_older_than(self, cutoff: Union[datetime, date]) -> PurgeResult:
        """
        Delete every event starting before the cutoff date.

        The comparison is on the date only: an event starting any time on
        the cutoff day is kept.

        Args:
            cutoff: Date (or datetime, compared on its UTC date) to purge before

        Returns:
            PurgeResult with counts of matched and deleted events

        Raises:
            StoreError: If the scan fails
        """
        cutoff_str = to_utc(cutoff).strftime('%Y-%m-%d')
        logger.info(f"Purging events older than {cutoff_str}")

        to_delete = self.store.scan_events(Attr('start').lt(cutoff_str))
        logger.info(f"Found {len(to_delete)} events to delete")

        result = PurgeResult(matched=len(to_delete))
        try:
            result.deleted = self.store.batch_delete_events(
                [event.event_id for event in to_delete]
            )
        except BatchDeleteError as e:
            error_msg = f"Batch delete failed after {e.deleted} deletions: {e}"
            logger.error(error_msg)
            result.deleted = e.deleted
            result.errors.append(error_msg)

        logger.info(
            f"Purge complete: {result.deleted} of {result.matched} deleted"
        )
        return result

"""Natural-key deduplication of candidate events."""
import logging

from processor.errors import DuplicateError
from processor.models import Event
from storage.dynamodb_manager import DynamoDBManager

logger = logging.getLogger(__name__)


class Deduplicator:
    """
    Rejects candidates whose (source, source_event_id) is already stored.

    The lookup and the following write are separate calls with no
    conditional put, so two runs ingesting the same natural key at the same
    time can both pass the check and store two rows.
    """

    def __init__(self, store: DynamoDBManager):
        self.store = store

    def deduplicate(self, candidate: Event) -> Event:
        """
        Check a candidate against the SourceEvent index.

        Returns:
            The candidate unchanged when its natural key is new

        Raises:
            DuplicateError: If one or more events share the natural key
            StoreError: If the lookup fails
        """
        existing = self.store.query_by_natural_key(
            candidate.source_name,
            candidate.source_event_id
        )
        if existing:
            raise DuplicateError(
                candidate.source_name.value, candidate.source_event_id
            )
        return candidate

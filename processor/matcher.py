"""Ranks candidate events against a user's stated desire."""
import logging
from typing import List

from classifier.base import Classifier
from classifier.schemas import MatchingFeatures
from processor.models import Event

logger = logging.getLogger(__name__)


class EventMatcher:
    """Matching step; classifier results are keyed by event id."""

    MAX_RESULTS = 5

    def __init__(self, classifier: Classifier):
        self.classifier = classifier

    def match(
        self,
        events: List[Event],
        description: str,
        venues: List[str]
    ) -> List[Event]:
        """
        Return the recommended events, best match first.

        Results naming an event id that was not sent are skipped.

        Raises:
            ClassificationError: If the classifier fails
        """
        if not events:
            return []

        events_by_id = {event.event_id: event for event in events}
        features = [
            MatchingFeatures(
                event_id=event.event_id,
                tags=event.tags,
                extra_tags=event.extra_tags,
                venue_name=event.venue_name,
            )
            for event in events
        ]

        batch = self.classifier.match(features, description, venues)

        recommended = []
        for result in batch.results:
            event = events_by_id.get(result.event_id)
            if event is None:
                logger.warning(f"Skipping unknown event id {result.event_id}")
                continue
            if event in recommended:
                continue
            logger.debug(
                f"event_id={result.event_id} score={result.score:.2f} "
                f"explanation={result.explanation}"
            )
            recommended.append(event)
            if len(recommended) == self.MAX_RESULTS:
                break

        return recommended

"""Abstract classification capability."""
from abc import ABC, abstractmethod
from typing import List

from classifier.schemas import MatchingBatch, MatchingFeatures, TaggingBatch


class Classifier(ABC):
    """
    External text-labeling service.

    Tagging results are keyed by position in the input list, matching
    results by event id.
    """

    @abstractmethod
    def tag(self, descriptions: List[str]) -> TaggingBatch:
        """
        Classify an ordered list of event descriptions.

        Raises:
            ClassifierUnavailableError: If the service cannot be reached
            ClassificationError: If the reply does not fit the schema
        """

    @abstractmethod
    def match(
        self,
        features: List[MatchingFeatures],
        description: str,
        venues: List[str]
    ) -> MatchingBatch:
        """
        Score events against a user's description and preferred venues.

        Raises:
            ClassifierUnavailableError: If the service cannot be reached
            ClassificationError: If the reply does not fit the schema
        """

"""Output schemas of the classification capability."""
from typing import List

from pydantic import BaseModel, Field

from processor.models import Category


class TaggingResult(BaseModel):
    """Classification of one event, keyed by its position in the batch."""

    index: int = Field(description="0-based position in the input batch")
    top5: List[str] = Field(max_length=5, description="Primary hashtags")
    extended: List[str] = Field(
        default_factory=list, max_length=10, description="Additional hashtags"
    )
    caption: str = Field(default="", description="One-line caption")
    categories: List[Category] = Field(
        default_factory=list, max_length=3, description="Event categories"
    )


class TaggingBatch(BaseModel):
    results: List[TaggingResult] = Field(default_factory=list)


class MatchingFeatures(BaseModel):
    """Features sent to the matcher for one event."""

    event_id: str
    tags: List[str] = Field(default_factory=list)
    extra_tags: List[str] = Field(default_factory=list)
    venue_name: str = ""


class MatchingResult(BaseModel):
    """Match score for one event, keyed by event id."""

    event_id: str
    score: float
    explanation: str = ""


class MatchingBatch(BaseModel):
    results: List[MatchingResult] = Field(default_factory=list)

"""Data models for event ingestion and retrieval."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from processor.errors import UnknownVariantError


class SourceType(str, Enum):
    """Venue sources events are scraped from."""
    MOSHTIX = 'moshtix'
    METRO_THEATRE = 'metrotheatre'
    FACTORY_THEATRE = 'factorytheatre'
    EVENTBRITE = 'eventbrite'
    OUR_SECRET_SPOT = 'oursecretspot'

    @classmethod
    def parse(cls, value) -> 'SourceType':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownVariantError('source', value) from None


class Category(str, Enum):
    """Closed category vocabulary assigned by classification."""
    MUSIC = 'music'
    CULTURE = 'culture'
    SEX_POSITIVE = 'sex-positive'
    WORKSHOP = 'workshop'
    TALK = 'talk'
    OTHER = 'other'

    @classmethod
    def parse(cls, value) -> 'Category':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownVariantError('category', value) from None


@dataclass
class Address:
    line1: str = ''
    line2: str = ''
    post_code: str = ''
    locality: str = ''
    region: str = ''
    country: str = ''


@dataclass
class Geo:
    lat: float = 0.0
    lng: float = 0.0


@dataclass
class ContentFlags:
    sex_positive: bool = False
    eighteen_plus: bool = False


@dataclass
class Event:
    """A stored event listing.

    ``start_bucket`` is derived from ``start`` by the store adapter on every
    write; values passed in by callers are ignored.
    """
    event_id: str
    source_name: SourceType
    source_event_id: str
    title: str
    start: datetime
    end: datetime
    description: str = ''
    caption: str = ''
    start_bucket: str = ''
    venue_name: str = ''
    address: Address = field(default_factory=Address)
    geo: Geo = field(default_factory=Geo)
    url: str = ''
    ticket_url: str = ''
    price_min: float = 0.0
    price_max: float = 0.0
    images: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    extra_tags: List[str] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    content_flags: ContentFlags = field(default_factory=ContentFlags)
    fetched_at: Optional[datetime] = None
    classified: bool = False


@dataclass
class Constraint:
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    max_price: float = 0.0
    week_days: bool = False
    radius: float = 0.0  # km


@dataclass
class User:
    """Read-mostly user profile."""
    user_id: str
    city: str = ''
    weights: Dict[str, float] = field(default_factory=dict)
    constraints: List[Constraint] = field(default_factory=list)
    venue_affinity: Dict[str, float] = field(default_factory=dict)


@dataclass
class MatchingRequest:
    """Request for recommended events in a date window."""
    start_date: date
    end_date: date
    category: str
    description: str = ''
    venues: List[str] = field(default_factory=list)


@dataclass
class IngestResult:
    """Result of an ingestion run."""
    added: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class TagResult:
    """Result of applying classification output."""
    tagged: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class PurgeResult:
    """Result of a purge run."""
    matched: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)

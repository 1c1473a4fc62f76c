"""Shared fixtures: a moto-backed store and an event factory."""
import os
from datetime import datetime, timezone

import pytest
from moto import mock_aws

from processor.models import Address, Event, Geo, SourceType
from storage.dynamodb_manager import DynamoDBManager


@pytest.fixture(autouse=True)
def aws_credentials():
    """Fake credentials so nothing can reach a real AWS account."""
    os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
    os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
    os.environ['AWS_SECURITY_TOKEN'] = 'testing'
    os.environ['AWS_SESSION_TOKEN'] = 'testing'
    os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'


@pytest.fixture
def store():
    """DynamoDBManager over mock Events and Users tables."""
    with mock_aws():
        manager = DynamoDBManager(
            events_table='test-events',
            users_table='test-users',
            region_name='us-east-1'
        )
        manager.create_tables()
        yield manager


@pytest.fixture
def make_event():
    """Build a candidate event with sensible defaults."""
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        n = counter['n']
        fields = dict(
            event_id=f'event-{n}',
            source_name=SourceType.METRO_THEATRE,
            source_event_id=f'https://venue.test/events/{n}',
            title=f'Test Event {n}',
            description=f'Description {n}',
            start=datetime(2025, 9, 12, 10, 0, tzinfo=timezone.utc),
            end=datetime(2025, 9, 12, 13, 0, tzinfo=timezone.utc),
            venue_name='Metro Theatre',
            address=Address(line1='624 George St', locality='Sydney'),
            geo=Geo(lat=-33.8755, lng=151.2066),
            url=f'https://venue.test/events/{n}',
            ticket_url=f'https://tickets.test/{n}',
            price_min=25.0,
            price_max=59.5,
            fetched_at=datetime(2025, 9, 1, 0, 0, tzinfo=timezone.utc),
        )
        fields.update(overrides)
        return Event(**fields)

    return _make

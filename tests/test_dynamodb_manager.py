"""Unit tests for DynamoDB manager."""
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from processor.errors import (
    BatchDeleteError,
    NotFoundError,
    StoreError,
    UnknownVariantError,
)
from processor.models import Category, Constraint, SourceType, User


def test_create_tables_is_idempotent(store):
    """Test create_tables skips tables that already exist."""
    store.create_tables()

    tables = store.dynamodb.meta.client.list_tables()['TableNames']
    assert sorted(tables) == ['test-events', 'test-users']


def test_put_and_get_event(store, make_event):
    """Test an event survives a write/read through the store."""
    event = make_event()
    store.put_event(event)

    retrieved = store.get_event(event.event_id)

    assert retrieved == event
    assert retrieved.start.tzinfo is not None
    assert retrieved.price_max == 59.5
    assert retrieved.geo.lat == -33.8755


def test_get_event_missing(store):
    with pytest.raises(NotFoundError):
        store.get_event('does-not-exist')


def test_put_event_recomputes_start_bucket(store, make_event):
    """Test caller-supplied start_bucket is ignored."""
    event = make_event(
        start=datetime(2025, 10, 3, 9, 0, tzinfo=timezone.utc),
        start_bucket='1999-01'
    )
    store.put_event(event)

    assert event.start_bucket == '2025-10'
    assert store.get_event(event.event_id).start_bucket == '2025-10'


def test_query_by_natural_key(store, make_event):
    event = make_event(source_event_id='native-1')
    store.put_event(event)
    store.put_event(make_event(source_event_id='native-2'))

    matches = store.query_by_natural_key(SourceType.METRO_THEATRE, 'native-1')

    assert [m.event_id for m in matches] == [event.event_id]
    assert store.query_by_natural_key(SourceType.MOSHTIX, 'native-1') == []


def test_query_by_natural_key_paginates(store, make_event):
    """Test every page is accumulated before returning."""
    store.PAGE_SIZE = 2
    for _ in range(7):
        store.put_event(make_event())

    events = store.query_by_natural_key(SourceType.METRO_THEATRE)

    assert len(events) == 7


def test_query_unclassified_only(store, make_event):
    pending = make_event()
    done = make_event(classified=True, categories=[Category.MUSIC])
    store.put_event(pending)
    store.put_event(done)

    events = store.query_by_natural_key(
        SourceType.METRO_THEATRE, unclassified_only=True
    )

    assert [e.event_id for e in events] == [pending.event_id]


def test_query_by_natural_key_rejects_unknown_source(store):
    with pytest.raises(UnknownVariantError):
        store.query_by_natural_key('ticketek')


def test_query_by_bucket_orders_by_start(store, make_event):
    late = make_event(start=datetime(2025, 9, 20, tzinfo=timezone.utc))
    early = make_event(start=datetime(2025, 9, 2, tzinfo=timezone.utc))
    other_month = make_event(start=datetime(2025, 10, 2, tzinfo=timezone.utc))
    for event in (late, other_month, early):
        store.put_event(event)

    events = store.query_by_bucket(
        '2025-09', '2025-09-01T00:00:00Z', '2025-09-30T23:59:59Z'
    )

    assert [e.event_id for e in events] == [early.event_id, late.event_id]


def test_query_by_bucket_filters_category(store, make_event):
    music = make_event(categories=[Category.MUSIC, Category.CULTURE])
    talk = make_event(categories=[Category.TALK])
    store.put_event(music)
    store.put_event(talk)

    events = store.query_by_bucket(
        '2025-09', '2025-09-01T00:00:00Z', '2025-09-30T23:59:59Z',
        Category.MUSIC
    )

    assert [e.event_id for e in events] == [music.event_id]


def test_unknown_category_in_item(store, make_event):
    """Test stored strings outside the vocabulary are reported."""
    event = make_event()
    store.put_event(event)
    store.events.update_item(
        Key={'event_id': event.event_id},
        UpdateExpression='SET #c = :c',
        ExpressionAttributeNames={'#c': 'categories'},
        ExpressionAttributeValues={':c': ['jazz']}
    )

    with pytest.raises(UnknownVariantError):
        store.get_event(event.event_id)


def test_malformed_start_in_item(store, make_event):
    event = make_event()
    store.put_event(event)
    store.events.update_item(
        Key={'event_id': event.event_id},
        UpdateExpression='SET #s = :s',
        ExpressionAttributeNames={'#s': 'start'},
        ExpressionAttributeValues={':s': 'next friday'}
    )

    with pytest.raises(StoreError):
        store.get_event(event.event_id)


def test_scan_events(store, make_event):
    for _ in range(3):
        store.put_event(make_event())

    assert len(store.scan_events()) == 3


def test_update_event_tags_returns_new_values(store, make_event):
    event = make_event()
    store.put_event(event)

    updated = store.update_event_tags(
        event.event_id,
        'Loud night out',
        ['#gig', '#sydney'],
        ['#live'],
        [Category.MUSIC]
    )

    assert updated.classified is True
    assert updated.caption == 'Loud night out'
    assert updated.tags == ['#gig', '#sydney']
    assert updated.extra_tags == ['#live']
    assert updated.categories == [Category.MUSIC]
    assert updated.title == event.title


def test_update_event_tags_missing_event(store):
    """Test updating a missing event does not create a partial item."""
    with pytest.raises(NotFoundError):
        store.update_event_tags('missing', '', [], [], [])

    assert store.scan_events() == []


def test_batch_delete_events_chunks_by_25(store, make_event):
    """Test no single BatchWriteItem call carries more than 25 deletes."""
    events = [make_event() for _ in range(60)]
    for event in events:
        store.put_event(event)

    with patch.object(
        store.dynamodb, 'batch_write_item',
        wraps=store.dynamodb.batch_write_item
    ) as spy:
        count = store.batch_delete_events([e.event_id for e in events])

    chunk_sizes = [
        len(call.kwargs['RequestItems']['test-events'])
        for call in spy.call_args_list
    ]
    assert chunk_sizes == [25, 25, 10]
    assert count == 60
    assert store.scan_events() == []


def test_batch_delete_events_empty(store):
    assert store.batch_delete_events([]) == 0


def test_batch_delete_events_stops_on_failed_chunk(store, make_event):
    """Test a failing chunk aborts the remaining chunks."""
    events = [make_event() for _ in range(30)]
    for event in events:
        store.put_event(event)

    real_batch_write = store.dynamodb.batch_write_item
    calls = []

    def flaky_batch_write(**kwargs):
        calls.append(kwargs)
        if len(calls) == 2:
            raise ClientError(
                {'Error': {'Code': 'InternalServerError', 'Message': 'boom'}},
                'BatchWriteItem'
            )
        return real_batch_write(**kwargs)

    with patch.object(store.dynamodb, 'batch_write_item', side_effect=flaky_batch_write):
        with pytest.raises(BatchDeleteError) as exc_info:
            store.batch_delete_events([e.event_id for e in events])

    assert exc_info.value.deleted == 25
    assert len(store.scan_events()) == 5


def test_put_and_get_user(store):
    user = User(
        user_id='someone@example.com',
        city='Sydney',
        weights={'music': 0.7, 'talk': 0.3},
        constraints=[
            Constraint(
                from_date=datetime(2025, 9, 1, tzinfo=timezone.utc),
                max_price=80.0,
                radius=12.5
            )
        ],
        venue_affinity={'Metro Theatre': 0.9}
    )
    store.put_user(user)

    assert store.get_user('someone@example.com') == user


def test_get_user_missing(store):
    with pytest.raises(NotFoundError):
        store.get_user('nobody@example.com')

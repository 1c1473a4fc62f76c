"""Tests for the bucketed category/date range query."""
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from processor.errors import UnknownVariantError
from processor.event_query import EventQueryEngine
from processor.models import Category
from processor.pipeline import IngestionPipeline
from processor.tagger import EventTagger


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def seeded_store(store, make_event):
    """
    Twelve events from 2025-08-15 to 2025-10-15, every other one music.

    Events are ingested out of order so ordering comes from the index.
    """
    starts = [
        _utc(2025, 8, 15, 20), _utc(2025, 8, 20, 20), _utc(2025, 8, 25, 20),
        _utc(2025, 8, 31, 20), _utc(2025, 9, 5, 20), _utc(2025, 9, 10, 20),
        _utc(2025, 9, 15, 20), _utc(2025, 9, 30, 20), _utc(2025, 10, 1, 20),
        _utc(2025, 10, 5, 20), _utc(2025, 10, 10, 20), _utc(2025, 10, 15, 20),
    ]
    pipeline = IngestionPipeline(store)
    tagger = EventTagger(store)

    for i in (7, 2, 11, 0, 9, 4, 1, 10, 6, 3, 8, 5):
        stored = pipeline.process(make_event(
            source_event_id=f'native-{i}',
            title=f'Event {i}',
            start=starts[i],
            end=starts[i]
        ))
        category = Category.MUSIC if i % 2 == 0 else Category.CULTURE
        tagger.apply_classification(
            stored.event_id, '', ['#tag'], [], [category]
        )

    return store


def test_query_end_to_end(seeded_store):
    engine = EventQueryEngine(seeded_store)

    with patch.object(
        seeded_store, 'query_by_bucket', wraps=seeded_store.query_by_bucket
    ) as spy:
        events = engine.query_events(
            date(2025, 8, 1), date(2025, 9, 30), 'music'
        )

    assert [e.title for e in events] == [
        'Event 0', 'Event 2', 'Event 4', 'Event 6'
    ]
    assert [e.start for e in events] == sorted(e.start for e in events)
    assert all(Category.MUSIC in e.categories for e in events)
    assert [call.args[0] for call in spy.call_args_list] == ['2025-08', '2025-09']


def test_query_swapped_range_is_equivalent(seeded_store):
    engine = EventQueryEngine(seeded_store)

    forward = engine.query_events(date(2025, 8, 1), date(2025, 9, 30), 'music')
    backward = engine.query_events(date(2025, 9, 30), date(2025, 8, 1), 'music')

    assert [e.event_id for e in backward] == [e.event_id for e in forward]


def test_query_empty_category_returns_nothing(seeded_store):
    engine = EventQueryEngine(seeded_store)

    with patch.object(seeded_store, 'query_by_bucket') as spy:
        assert engine.query_events(date(2025, 8, 1), date(2025, 10, 31), '') == []
        assert engine.query_events(date(2025, 8, 1), date(2025, 10, 31), None) == []

    spy.assert_not_called()


def test_query_unknown_category(seeded_store):
    engine = EventQueryEngine(seeded_store)

    with pytest.raises(UnknownVariantError):
        engine.query_events(date(2025, 8, 1), date(2025, 9, 30), 'jazz')


def test_query_within_one_month_touches_one_bucket(seeded_store):
    engine = EventQueryEngine(seeded_store)

    with patch.object(
        seeded_store, 'query_by_bucket', wraps=seeded_store.query_by_bucket
    ) as spy:
        events = engine.query_events(
            _utc(2025, 9, 1), _utc(2025, 9, 20), Category.MUSIC
        )

    assert [call.args[0] for call in spy.call_args_list] == ['2025-09']
    assert [e.title for e in events] == ['Event 4', 'Event 6']


def test_query_across_month_boundary_touches_two_buckets(seeded_store):
    engine = EventQueryEngine(seeded_store)

    with patch.object(
        seeded_store, 'query_by_bucket', wraps=seeded_store.query_by_bucket
    ) as spy:
        events = engine.query_events(
            _utc(2025, 9, 28), _utc(2025, 10, 2), Category.MUSIC
        )

    assert [call.args[0] for call in spy.call_args_list] == ['2025-09', '2025-10']
    assert [e.title for e in events] == ['Event 8']


def test_query_bounds_are_inclusive(seeded_store):
    engine = EventQueryEngine(seeded_store)

    events = engine.query_events(
        _utc(2025, 8, 15, 20), _utc(2025, 8, 25, 20), Category.MUSIC
    )

    assert [e.title for e in events] == ['Event 0', 'Event 2']

"""DynamoDB manager for event storage operations."""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from processor.errors import (
    BatchDeleteError,
    NotFoundError,
    StoreError,
    UnknownVariantError,
)
from processor.models import (
    Address,
    Category,
    Constraint,
    ContentFlags,
    Event,
    Geo,
    SourceType,
    User,
)
from storage.buckets import format_rfc3339, month_bucket, parse_rfc3339

logger = logging.getLogger(__name__)

SOURCE_EVENT_INDEX = 'SourceEvent'
START_BUCKET_INDEX = 'StartBucketIndex'


class DynamoDBManager:
    """Typed access to the Events and Users tables."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit
    PAGE_SIZE = 100

    def __init__(
        self,
        events_table: str = 'Events',
        users_table: str = 'Users',
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None
    ):
        """
        Initialize DynamoDB resource and table references.

        Args:
            events_table: Name of the events table
            users_table: Name of the users table
            region_name: AWS region, defaults to the environment's
            endpoint_url: Custom endpoint (DynamoDB Local, LocalStack)
        """
        self.events_table_name = events_table
        self.users_table_name = users_table
        self.dynamodb = boto3.resource(
            'dynamodb',
            region_name=region_name,
            endpoint_url=endpoint_url
        )
        self.events = self.dynamodb.Table(events_table)
        self.users = self.dynamodb.Table(users_table)
        logger.info(
            f"Initialized DynamoDBManager for tables: {events_table}, "
            f"{users_table}"
        )

    # Events

    def get_event(self, event_id: str) -> Event:
        """
        Fetch one event by primary key.

        Raises:
            NotFoundError: If no event has this id
            StoreError: If the read fails
        """
        try:
            response = self.events.get_item(
                Key={'event_id': event_id},
                ConsistentRead=True
            )
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise StoreError(f"get_item failed for {event_id}: {e}") from e

        item = response.get('Item')
        if item is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return self._item_to_event(item)

    def put_event(self, event: Event) -> Event:
        """
        Write an event, recomputing its start bucket from ``start``.

        Returns:
            The event as written
        """
        event.start_bucket = month_bucket(event.start)
        item = self._event_to_item(event)

        try:
            self.events.put_item(Item=item)
        except ClientError as e:
            logger.error(
                f"Error writing event {event.source_name.value} - "
                f"{event.source_event_id}: {e}"
            )
            raise StoreError(f"put_item failed for {event.event_id}: {e}") from e

        return event

    def query_by_natural_key(
        self,
        source: SourceType,
        source_event_id: Optional[str] = None,
        unclassified_only: bool = False
    ) -> List[Event]:
        """
        Query the SourceEvent index by source and optionally native id.

        Args:
            source: Source the events were scraped from
            source_event_id: Source-native event id, or None for the whole source
            unclassified_only: Only return events not yet classified

        Returns:
            All matching events across every page
        """
        source = SourceType.parse(source)
        key_condition = Key('source_name').eq(source.value)
        if source_event_id is not None:
            key_condition = key_condition & Key('source_event_id').eq(
                source_event_id
            )

        params = {
            'IndexName': SOURCE_EVENT_INDEX,
            'KeyConditionExpression': key_condition,
        }
        if unclassified_only:
            params['FilterExpression'] = (
                Attr('classified').not_exists() | Attr('classified').eq(False)
            )

        return self._query_all(**params)

    def query_by_bucket(
        self,
        bucket: str,
        start_from: str,
        start_to: str,
        category: Optional[Category] = None
    ) -> List[Event]:
        """
        Query one month bucket of the StartBucketIndex, earliest first.

        Args:
            bucket: Month bucket (YYYY-MM)
            start_from: Inclusive RFC3339 lower bound on start
            start_to: Inclusive RFC3339 upper bound on start
            category: Only return events carrying this category

        Returns:
            All matching events across every page
        """
        params = {
            'IndexName': START_BUCKET_INDEX,
            'KeyConditionExpression': (
                Key('start_bucket').eq(bucket) &
                Key('start').between(start_from, start_to)
            ),
            'ScanIndexForward': True,
        }
        if category is not None:
            params['FilterExpression'] = Attr('categories').contains(
                Category.parse(category).value
            )

        return self._query_all(**params)

    def scan_events(self, filter_expression=None) -> List[Event]:
        """
        Scan the whole events table, optionally filtered.

        Args:
            filter_expression: boto3 condition applied to each item

        Returns:
            All matching events across every page
        """
        params = {}
        if filter_expression is not None:
            params['FilterExpression'] = filter_expression

        items = []
        try:
            response = self.events.scan(**params)
            items.extend(response.get('Items', []))

            while 'LastEvaluatedKey' in response:
                response = self.events.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **params
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning events table: {e}")
            raise StoreError(f"scan failed: {e}") from e

        logger.info(f"Scan returned {len(items)} events")
        return [self._item_to_event(item) for item in items]

    def update_event_tags(
        self,
        event_id: str,
        caption: str,
        tags: List[str],
        extra_tags: List[str],
        categories: List[Category]
    ) -> Event:
        """
        Set the classification fields of an existing event.

        Only caption, tags, extra_tags, categories and the classified flag
        are written. The item as stored after the update is returned.

        Raises:
            NotFoundError: If the event does not exist
            StoreError: If the update fails
        """
        try:
            response = self.events.update_item(
                Key={'event_id': event_id},
                UpdateExpression=(
                    'SET #caption = :caption, #tags = :tags, '
                    '#extra_tags = :extra_tags, #categories = :categories, '
                    '#classified = :classified'
                ),
                ConditionExpression='attribute_exists(event_id)',
                ExpressionAttributeNames={
                    '#caption': 'caption',
                    '#tags': 'tags',
                    '#extra_tags': 'extra_tags',
                    '#categories': 'categories',
                    '#classified': 'classified',
                },
                ExpressionAttributeValues={
                    ':caption': caption,
                    ':tags': list(tags),
                    ':extra_tags': list(extra_tags),
                    ':categories': [
                        Category.parse(c).value for c in categories
                    ],
                    ':classified': True,
                },
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise NotFoundError(f"Event not found: {event_id}") from e
            logger.error(f"Couldn't update event {event_id}: {e}")
            raise StoreError(f"update_item failed for {event_id}: {e}") from e

        return self._item_to_event(response['Attributes'])

    def batch_delete_events(self, event_ids: Iterable[str]) -> int:
        """
        Delete events in batches of 25 items.

        Each chunk is one BatchWriteItem call. The first failing chunk stops
        the run.

        Args:
            event_ids: Event ids to delete

        Returns:
            Count of deleted events

        Raises:
            BatchDeleteError: If a chunk fails or leaves items unprocessed
        """
        event_ids = list(dict.fromkeys(event_ids))
        if not event_ids:
            return 0

        logger.info(f"Deleting {len(event_ids)} events from DynamoDB")
        deleted_count = 0

        for i in range(0, len(event_ids), self.BATCH_SIZE):
            batch = event_ids[i:i + self.BATCH_SIZE]
            batch_number = i // self.BATCH_SIZE + 1

            try:
                response = self.dynamodb.batch_write_item(
                    RequestItems={
                        self.events_table_name: [
                            {'DeleteRequest': {'Key': {'event_id': event_id}}}
                            for event_id in batch
                        ]
                    }
                )
            except ClientError as e:
                logger.error(f"Error deleting batch {batch_number}: {e}")
                raise BatchDeleteError(
                    f"batch {batch_number} failed: {e}", deleted_count
                ) from e

            unprocessed = response.get('UnprocessedItems', {}).get(
                self.events_table_name, []
            )
            deleted_count += len(batch) - len(unprocessed)
            if unprocessed:
                logger.error(
                    f"Batch {batch_number} left {len(unprocessed)} items "
                    f"unprocessed"
                )
                raise BatchDeleteError(
                    f"batch {batch_number} left {len(unprocessed)} items "
                    f"unprocessed",
                    deleted_count
                )

        logger.info(f"Successfully deleted {deleted_count} events")
        return deleted_count

    # Users

    def get_user(self, user_id: str) -> User:
        try:
            response = self.users.get_item(
                Key={'user_id': user_id},
                ConsistentRead=True
            )
        except ClientError as e:
            logger.error(f"Error reading user {user_id}: {e}")
            raise StoreError(f"get_item failed for user {user_id}: {e}") from e

        item = response.get('Item')
        if item is None:
            raise NotFoundError(f"User not found: {user_id}")
        return self._item_to_user(item)

    def put_user(self, user: User) -> None:
        try:
            self.users.put_item(Item=self._user_to_item(user))
        except ClientError as e:
            logger.error(f"Error writing user {user.user_id}: {e}")
            raise StoreError(f"put_item failed for user {user.user_id}: {e}") from e

    # Schema

    def create_tables(self) -> None:
        """Create the events and users tables if they do not exist."""
        self._create_table(
            self.events_table_name,
            key_schema=[{'AttributeName': 'event_id', 'KeyType': 'HASH'}],
            attribute_definitions=[
                {'AttributeName': 'event_id', 'AttributeType': 'S'},
                {'AttributeName': 'source_name', 'AttributeType': 'S'},
                {'AttributeName': 'source_event_id', 'AttributeType': 'S'},
                {'AttributeName': 'start_bucket', 'AttributeType': 'S'},
                {'AttributeName': 'start', 'AttributeType': 'S'},
            ],
            indexes=[
                {
                    'IndexName': SOURCE_EVENT_INDEX,
                    'KeySchema': [
                        {'AttributeName': 'source_name', 'KeyType': 'HASH'},
                        {'AttributeName': 'source_event_id', 'KeyType': 'RANGE'}
                    ],
                    'Projection': {'ProjectionType': 'ALL'}
                },
                {
                    'IndexName': START_BUCKET_INDEX,
                    'KeySchema': [
                        {'AttributeName': 'start_bucket', 'KeyType': 'HASH'},
                        {'AttributeName': 'start', 'KeyType': 'RANGE'}
                    ],
                    'Projection': {'ProjectionType': 'ALL'}
                },
            ]
        )
        self._create_table(
            self.users_table_name,
            key_schema=[{'AttributeName': 'user_id', 'KeyType': 'HASH'}],
            attribute_definitions=[
                {'AttributeName': 'user_id', 'AttributeType': 'S'},
            ]
        )

    def _create_table(
        self,
        table_name: str,
        key_schema: list,
        attribute_definitions: list,
        indexes: Optional[list] = None
    ) -> None:
        try:
            self.dynamodb.meta.client.describe_table(TableName=table_name)
            logger.info(f"Table {table_name} already exists, skipping creation")
            return
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                raise StoreError(f"describe_table failed: {e}") from e

        params = {
            'TableName': table_name,
            'KeySchema': key_schema,
            'AttributeDefinitions': attribute_definitions,
            'BillingMode': 'PAY_PER_REQUEST',
        }
        if indexes:
            params['GlobalSecondaryIndexes'] = indexes

        logger.info(f"Creating table {table_name}")
        try:
            table = self.dynamodb.create_table(**params)
            table.wait_until_exists()
        except ClientError as e:
            logger.error(f"Error creating table {table_name}: {e}")
            raise StoreError(f"create_table failed for {table_name}: {e}") from e
        logger.info(f"Table {table_name} is ready")

    # Pagination

    def _query_all(self, **params) -> List[Event]:
        items = []
        params['Limit'] = self.PAGE_SIZE

        try:
            response = self.events.query(**params)
            items.extend(response.get('Items', []))

            while 'LastEvaluatedKey' in response:
                response = self.events.query(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **params
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error querying {params.get('IndexName')}: {e}")
            raise StoreError(f"query failed: {e}") from e

        logger.debug(f"Query on {params.get('IndexName')} returned {len(items)} items")
        return [self._item_to_event(item) for item in items]

    # Conversion

    def _event_to_item(self, event: Event) -> dict:
        """
        Convert an Event to a DynamoDB item.

        Datetimes are stored as RFC3339 UTC strings and floats as Decimal.
        """
        item = {
            'event_id': event.event_id,
            'source_name': SourceType.parse(event.source_name).value,
            'source_event_id': event.source_event_id,
            'title': event.title,
            'description': event.description,
            'caption': event.caption,
            'start': format_rfc3339(event.start),
            'start_bucket': month_bucket(event.start),
            'end': format_rfc3339(event.end),
            'venue_name': event.venue_name,
            'address': {
                'line1': event.address.line1,
                'line2': event.address.line2,
                'post_code': event.address.post_code,
                'locality': event.address.locality,
                'region': event.address.region,
                'country': event.address.country,
            },
            'geo': {
                'lat': _to_decimal(event.geo.lat),
                'lng': _to_decimal(event.geo.lng),
            },
            'url': event.url,
            'ticket_url': event.ticket_url,
            'price_min': _to_decimal(event.price_min),
            'price_max': _to_decimal(event.price_max),
            'images': list(event.images),
            'tags': list(event.tags),
            'extra_tags': list(event.extra_tags),
            'categories': [Category.parse(c).value for c in event.categories],
            'content_flags': {
                'sex_positive': event.content_flags.sex_positive,
                'eighteen_plus': event.content_flags.eighteen_plus,
            },
            'classified': event.classified,
        }

        if event.fetched_at:
            item['fetched_at'] = format_rfc3339(event.fetched_at)

        return item

    def _item_to_event(self, item: dict) -> Event:
        """
        Convert a DynamoDB item to an Event.

        Raises:
            UnknownVariantError: If the source or a category is not recognised
            StoreError: If a required attribute is missing or malformed
        """
        try:
            address = item.get('address', {})
            geo = item.get('geo', {})
            flags = item.get('content_flags', {})

            return Event(
                event_id=item['event_id'],
                source_name=SourceType.parse(item['source_name']),
                source_event_id=item['source_event_id'],
                title=item.get('title', ''),
                description=item.get('description', ''),
                caption=item.get('caption', ''),
                start=parse_rfc3339(item['start']),
                start_bucket=item.get('start_bucket', ''),
                end=parse_rfc3339(item['end']),
                venue_name=item.get('venue_name', ''),
                address=Address(
                    line1=address.get('line1', ''),
                    line2=address.get('line2', ''),
                    post_code=address.get('post_code', ''),
                    locality=address.get('locality', ''),
                    region=address.get('region', ''),
                    country=address.get('country', ''),
                ),
                geo=Geo(
                    lat=float(geo.get('lat', 0)),
                    lng=float(geo.get('lng', 0)),
                ),
                url=item.get('url', ''),
                ticket_url=item.get('ticket_url', ''),
                price_min=float(item.get('price_min', 0)),
                price_max=float(item.get('price_max', 0)),
                images=list(item.get('images', [])),
                tags=list(item.get('tags', [])),
                extra_tags=list(item.get('extra_tags', [])),
                categories=[Category.parse(c) for c in item.get('categories', [])],
                content_flags=ContentFlags(
                    sex_positive=bool(flags.get('sex_positive', False)),
                    eighteen_plus=bool(flags.get('eighteen_plus', False)),
                ),
                fetched_at=(
                    parse_rfc3339(item['fetched_at'])
                    if item.get('fetched_at') else None
                ),
                classified=bool(item.get('classified', False)),
            )
        except UnknownVariantError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(
                f"Malformed event item {item.get('event_id')}: {e}"
            ) from e

    def _user_to_item(self, user: User) -> dict:
        return {
            'user_id': user.user_id,
            'city': user.city,
            'weights': {
                category: _to_decimal(weight)
                for category, weight in user.weights.items()
            },
            'constraints': [
                {
                    'from_date': (
                        format_rfc3339(c.from_date) if c.from_date else ''
                    ),
                    'to_date': format_rfc3339(c.to_date) if c.to_date else '',
                    'max_price': _to_decimal(c.max_price),
                    'week_days': c.week_days,
                    'radius': _to_decimal(c.radius),
                }
                for c in user.constraints
            ],
            'venue_affinity': {
                venue: _to_decimal(weight)
                for venue, weight in user.venue_affinity.items()
            },
        }

    def _item_to_user(self, item: dict) -> User:
        return User(
            user_id=item['user_id'],
            city=item.get('city', ''),
            weights={k: float(v) for k, v in item.get('weights', {}).items()},
            constraints=[
                Constraint(
                    from_date=(
                        parse_rfc3339(c['from_date'])
                        if c.get('from_date') else None
                    ),
                    to_date=(
                        parse_rfc3339(c['to_date']) if c.get('to_date') else None
                    ),
                    max_price=float(c.get('max_price', 0)),
                    week_days=bool(c.get('week_days', False)),
                    radius=float(c.get('radius', 0)),
                )
                for c in item.get('constraints', [])
            ],
            venue_affinity={
                k: float(v) for k, v in item.get('venue_affinity', {}).items()
            },
        )


def _to_decimal(value: float) -> Decimal:
    # boto3 rejects float attribute values
    return Decimal(str(value))

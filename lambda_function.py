"""AWS Lambda handler for the venue events engine."""
import argparse
import dataclasses
import json
import logging
import sys
import time
from datetime import date
from typing import Any, Dict, Optional

from config import Config
from processor.models import MatchingRequest
from service import EventService

COMMANDS = ('scrape', 'tag', 'purge', 'createTables', 'match')

_STANDARD_ATTRS = set(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__
) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including any ``extra`` fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps(body, default=str)
    }


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def run_command(service: EventService, command: Dict[str, Any]) -> Dict[str, Any]:
    """
    Dispatch one command to the service.

    Returns:
        Summary statistics for the response body
    """
    name = command.get('name')

    if name == 'scrape':
        result = service.load_events(command.get('venue'))
        return {
            'events_added': result.added,
            'duplicates': result.duplicates,
            'errors': result.errors
        }

    if name == 'tag':
        if command.get('venue'):
            result = service.tag_events_for_source(command['venue'])
        else:
            result = service.tag_events()
        return {
            'events_tagged': result.tagged,
            'results_skipped': result.skipped,
            'errors': result.errors
        }

    if name == 'purge':
        result = service.purge(_parse_date(command.get('cutoff')))
        return {
            'events_matched': result.matched,
            'events_deleted': result.deleted,
            'errors': result.errors
        }

    if name == 'createTables':
        service.create_tables()
        return {'errors': []}

    if name == 'match':
        request = MatchingRequest(
            start_date=_parse_date(command['start_date']),
            end_date=_parse_date(command['end_date']),
            category=command.get('category', ''),
            description=command.get('description', ''),
            venues=command.get('venues', [])
        )
        events = service.match_events(request)
        return {
            'events': [dataclasses.asdict(event) for event in events],
            'errors': []
        }

    raise ValueError(f"unknown command: {name}")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function.

    Args:
        event: Command payload, e.g. {"name": "scrape", "venue": "metrotheatre"}
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    try:
        config = Config.from_env()
    except ValueError as e:
        setup_logging()
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        return _response(500, {
            'message': 'Invalid configuration',
            'error': str(e),
            'error_type': type(e).__name__
        })

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    name = (event or {}).get('name')
    logger.info(
        "Lambda execution started",
        extra={'command': name, 'events_table': config.events_table}
    )

    if name not in COMMANDS:
        logger.error(f"Unknown command: {name}")
        return _response(400, {
            'message': f'Unknown command: {name}',
            'commands': list(COMMANDS)
        })

    try:
        service = EventService.from_config(config)
        statistics = run_command(service, event)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Command {name} failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'message': f'{name} failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })

    duration = time.time() - start_time
    statistics['duration_seconds'] = round(duration, 2)
    status_code = 500 if name == 'purge' and statistics['errors'] else 200

    logger.info(
        f"Command {name} completed",
        extra={'statistics': statistics, 'status_code': status_code}
    )
    return _response(status_code, {
        'message': f'{name} completed',
        'statistics': statistics
    })


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Venue events engine')
    parser.add_argument('--command', required=True, choices=COMMANDS)
    parser.add_argument('--venue', help='Source to scrape or tag')
    parser.add_argument('--cutoff', help='Purge cutoff date (YYYY-MM-DD)')
    args = parser.parse_args(argv)

    payload = {'name': args.command}
    if args.venue:
        payload['venue'] = args.venue
    if args.cutoff:
        payload['cutoff'] = args.cutoff

    response = lambda_handler(payload, None)
    print(response['body'])
    return 0 if response['statusCode'] == 200 else 1


if __name__ == '__main__':
    sys.exit(main())

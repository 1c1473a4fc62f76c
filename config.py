"""Runtime configuration read from environment variables."""
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


@dataclass
class Config:
    """Settings for one invocation."""
    events_table: str = 'Events'
    users_table: str = 'Users'
    region: Optional[str] = None
    dynamodb_endpoint: Optional[str] = None
    log_level: str = 'INFO'
    scrape_delay_seconds: float = 1.0
    timeout_seconds: int = 30
    openai_model: str = 'gpt-4o-mini'
    tag_sources: List[str] = field(
        default_factory=lambda: ['metrotheatre', 'moshtix']
    )
    retention_days: int = 0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """
        Build configuration from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        sources = env.get('TAG_SOURCES', 'metrotheatre,moshtix')

        return cls(
            events_table=env.get('EVENTS_TABLE', 'Events'),
            users_table=env.get('USERS_TABLE', 'Users'),
            region=env.get('AWS_REGION') or None,
            dynamodb_endpoint=env.get('DYNAMODB_ENDPOINT') or None,
            log_level=env.get('LOG_LEVEL', 'INFO'),
            scrape_delay_seconds=float(env.get('SCRAPE_DELAY_SECONDS', '1')),
            timeout_seconds=int(env.get('TIMEOUT_SECONDS', '30')),
            openai_model=env.get('OPENAI_MODEL', 'gpt-4o-mini'),
            tag_sources=[s.strip() for s in sources.split(',') if s.strip()],
            retention_days=int(env.get('RETENTION_DAYS', '0')),
        )

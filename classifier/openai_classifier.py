"""OpenAI-backed classification capability."""
import json
import logging
from typing import List, Optional, Type, TypeVar

import openai
from pydantic import BaseModel, ValidationError

from classifier.base import Classifier
from classifier.schemas import MatchingBatch, MatchingFeatures, TaggingBatch
from processor.errors import ClassificationError, ClassifierUnavailableError
from processor.models import Category

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

TAGGING_PROMPT = """You are a tagging assistant.
Given an ordered list of event descriptions, produce results in the SAME order.
For each event i:
- "index": i
- "top5": exactly 5 hashtags, prioritised for reach and fit
- "extended": up to 10 more hashtags
- "caption": a punchy one-liner using 2-3 of the top tags
- "categories": up to 3 categories from the set {categories}

Return ONLY a JSON object matching this schema:
{schema}

Input events (0-based indices):
{events}
"""

MATCHING_PROMPT = """You are a matching assistant.
Given a list of event features, a user desire and preferred venues (if any),
produce at most 5 recommended events, best match first, weighting:
- 0.8 for matching the user desire on event tags or extra_tags
- 0.2 for matching on venue_name (case insensitive substring match)

Return ONLY a JSON object matching this schema, with event_id exactly as
provided in the input:
{schema}

Input events:
{events}

User desire: {description}
User preferred venues: {venues}
"""


class OpenAIClassifier(Classifier):
    """Classifier using OpenAI chat completions in JSON mode."""

    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        temperature: float = 0.1,
        client: Optional[openai.OpenAI] = None,
    ):
        self.model_name = model_name
        self.temperature = temperature
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            try:
                self._client = openai.OpenAI(api_key=self._api_key)
            except openai.OpenAIError as e:
                raise ClassifierUnavailableError(str(e)) from e
        return self._client

    def tag(self, descriptions: List[str]) -> TaggingBatch:
        events = "\n".join(
            f"{i}: {json.dumps(description)}"
            for i, description in enumerate(descriptions)
        )
        prompt = TAGGING_PROMPT.format(
            categories=", ".join(c.value for c in Category),
            schema=json.dumps(TaggingBatch.model_json_schema()),
            events=events,
        )
        return self._complete(prompt, TaggingBatch)

    def match(
        self,
        features: List[MatchingFeatures],
        description: str,
        venues: List[str]
    ) -> MatchingBatch:
        prompt = MATCHING_PROMPT.format(
            schema=json.dumps(MatchingBatch.model_json_schema()),
            events=json.dumps([f.model_dump() for f in features]),
            description=description,
            venues=", ".join(venues),
        )
        return self._complete(prompt, MatchingBatch)

    def _complete(self, prompt: str, output_schema: Type[T]) -> T:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model_name,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIConnectionError as e:
            logger.error(f"Classifier unreachable: {e}")
            raise ClassifierUnavailableError(str(e)) from e
        except openai.OpenAIError as e:
            logger.error(f"Classifier request failed: {e}")
            raise ClassificationError(str(e)) from e

        content = response.choices[0].message.content or ""
        try:
            return output_schema.model_validate_json(content)
        except ValidationError as e:
            logger.error(f"Classifier reply failed validation: {e}")
            raise ClassificationError(
                f"Invalid {output_schema.__name__}: {e}"
            ) from e

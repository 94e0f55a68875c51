"""
JSON utilities for parsing and validating model output.

Models routinely wrap structured output in markdown code fences; these
helpers strip the fences, parse the JSON and validate it against the schema
for the requesting stage.
"""

import json
import logging
import re

from pydantic import BaseModel, ValidationError

from meeting_processor.common.errors import InvalidAIResponse
from meeting_processor.models.schemas import get_schema_by_type

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\n?")
_BARE_FENCE = re.compile(r"```\n?")


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code fence markers from model output.

    Args:
        text: Raw model output

    Returns:
        Text with ```json and bare ``` markers removed, whitespace trimmed
    """
    cleaned = _JSON_FENCE.sub("", text)
    cleaned = _BARE_FENCE.sub("", cleaned)
    return cleaned.strip()


def parse_ai_response(raw_text: str, kind: str) -> BaseModel:
    """
    Parse and validate model output for one analysis stage.

    Args:
        raw_text: Text returned by the model
        kind: Schema kind (summary, action_items, topics)

    Returns:
        Validated pydantic model for the stage

    Raises:
        InvalidAIResponse: If the text is not valid JSON or fails validation
    """
    schema = get_schema_by_type(kind)
    cleaned = strip_code_fences(raw_text)

    try:
        data = json.loads(cleaned)
        return schema.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to parse {kind} response: {e}")
        logger.debug(f"Raw {kind} response (first 1000 chars): {raw_text[:1000]}")
        raise InvalidAIResponse(kind, raw_text, e) from e


def dump_payload(payload: BaseModel) -> str:
    """Serialize a payload to the JSON shape ``parse_ai_response`` accepts."""
    return json.dumps(payload.model_dump(mode="json", by_alias=True), ensure_ascii=False)

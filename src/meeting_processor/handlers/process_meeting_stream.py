"""
Lambda handler for streaming meeting processing.

``iter_sse_frames`` yields server-sent event frames as the pipeline makes
progress and is what a streaming transport should consume. ``lambda_handler``
serves buffered responses: it drains the same frames into a single
``text/event-stream`` body.
"""

import logging
from typing import Any, Dict, Iterator, Optional

from meeting_processor.common.config import AppSettings
from meeting_processor.common.factory import build_meeting_processor
from meeting_processor.common.sse import sse_frames, sse_headers
from meeting_processor.common.state_machine import MeetingProcessor
from meeting_processor.handlers.request import get_meeting_id, get_user_id

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_settings: Optional[AppSettings] = None
_processor: Optional[MeetingProcessor] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings.from_env()
    return _settings


def get_processor() -> MeetingProcessor:
    global _processor
    if _processor is None:
        _processor = build_meeting_processor(get_settings())
    return _processor


def iter_sse_frames(processor: MeetingProcessor, meeting_id: str, user_id: Optional[str]) -> Iterator[str]:
    """SSE frames for one processing run; closing the iterator cancels the run."""
    return sse_frames(processor.process_stream(meeting_id, user_id))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for streaming processing through a buffered response.

    Args:
        event: API Gateway event with the meetingId path parameter and authorizer claims
        context: Lambda context (unused)

    Returns:
        API Gateway response whose body is the full SSE event sequence
    """
    meeting_id = get_meeting_id(event)
    user_id = get_user_id(event)
    headers = sse_headers(get_settings().cors_origin)

    if not user_id:
        logger.warning(f"Rejecting unauthenticated stream request for meeting {meeting_id}")
        return {
            "statusCode": 401,
            "headers": {"Content-Type": "application/json"},
            "body": '{"error": "Unauthorized"}',
        }

    if not meeting_id:
        return {
            "statusCode": 400,
            "headers": {"Content-Type": "application/json"},
            "body": '{"error": "meetingId is required"}',
        }

    logger.info(f"Streaming processing requested for meeting {meeting_id}")
    body = "".join(iter_sse_frames(get_processor(), meeting_id, user_id))

    return {
        "statusCode": 200,
        "headers": headers,
        "body": body,
    }

"""
Lambda handler for batch meeting processing.

Reads the meeting's uploaded transcript, runs the three analysis stages
concurrently and persists the results. The response carries the complete
``ProcessingResult`` or an error with the matching status code.
"""

import logging
from typing import Any, Dict, Optional

from meeting_processor.common.errors import MeetingProcessingError
from meeting_processor.common.factory import build_meeting_processor
from meeting_processor.common.state_machine import MeetingProcessor
from meeting_processor.handlers.request import error_response, get_meeting_id, get_user_id

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_processor: Optional[MeetingProcessor] = None


def get_processor() -> MeetingProcessor:
    """Build the processor once per container."""
    global _processor
    if _processor is None:
        _processor = build_meeting_processor()
    return _processor


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for processing a meeting in batch mode.

    Args:
        event: Lambda event with meeting_id and user_id (or API Gateway equivalents)
        context: Lambda context (unused)

    Returns:
        Success response with the processing result, or an error response
    """
    meeting_id = get_meeting_id(event)
    user_id = get_user_id(event)

    if not meeting_id:
        return error_response(400, "meeting_id is required", meeting_id)

    try:
        logger.info(f"Batch processing requested for meeting {meeting_id}")
        result = get_processor().process(meeting_id, user_id)

        return {
            "statusCode": 200,
            "meeting_id": meeting_id,
            "result": result.model_dump(mode="json", by_alias=True),
            "action_item_count": len(result.action_items),
            "topic_count": len(result.topics),
        }

    except MeetingProcessingError as e:
        logger.error(f"Error processing meeting {meeting_id}: {e}")
        return error_response(e.status_code, str(e), meeting_id)
    except Exception as e:
        logger.exception(f"Unexpected error processing meeting {meeting_id}")
        return error_response(500, str(e), meeting_id)

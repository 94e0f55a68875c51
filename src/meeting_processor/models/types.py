"""
Type definitions for the meeting processing pipeline.

Contains the enumerations and literal types shared by records, AI response
schemas and processing events.
"""

from enum import Enum
from typing import Literal, Tuple


class MeetingStatus(str, Enum):
    """Lifecycle status of a meeting.

    CREATED -> UPLOADED -> PROCESSING -> COMPLETED | FAILED. A FAILED or
    COMPLETED meeting may re-enter PROCESSING on a new processing request.
    """

    CREATED = "CREATED"
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ActionPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"  # UI only, never produced by the AI schema


class ActionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Priorities the model is allowed to return
AIPriority = Literal["LOW", "MEDIUM", "HIGH"]

# Schema kinds accepted by the response parser
SchemaKind = Literal["summary", "action_items", "topics"]

EventType = Literal[
    "status",
    "transcript",
    "summary",
    "actionItems",
    "topics",
    "warning",
    "error",
    "complete",
]

# Streaming stage order
STAGE_ORDER: Tuple[SchemaKind, ...] = ("summary", "action_items", "topics")

PLAIN_TEXT_TYPE = "text/plain"

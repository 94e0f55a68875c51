"""Pydantic models for the records the pipeline persists."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from pathlib import PurePosixPath
from typing import List, Optional

from pydantic import ConfigDict, Field, model_validator

from meeting_processor.models.schemas import Decision, WireModel
from meeting_processor.models.types import (
    PLAIN_TEXT_TYPE,
    ActionPriority,
    ActionStatus,
    MeetingStatus,
)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MeetingFile(WireModel):
    """An uploaded file attached to a meeting."""

    id: str = Field(default_factory=new_id)
    meeting_id: str
    file_name: str
    file_type: str
    file_path: str
    uploaded_at: datetime = Field(default_factory=utcnow)

    @property
    def is_plain_text(self) -> bool:
        if self.file_type == PLAIN_TEXT_TYPE:
            return True
        return any(
            PurePosixPath(name).suffix.lower() == ".txt"
            for name in (self.file_name, self.file_path)
        )


class Meeting(WireModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: Optional[str] = None
    user_id: str
    status: MeetingStatus = MeetingStatus.CREATED
    # True only when every analysis stage succeeded
    analysis_complete: bool = False
    files: List[MeetingFile] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Transcript(WireModel):
    """Text derived from the first meeting file. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    meeting_id: str
    content: str
    confidence_score: float = Field(ge=0.0, le=1.0)
    processing_time: float = Field(ge=0)
    created_at: datetime = Field(default_factory=utcnow)


class Summary(WireModel):
    id: str = Field(default_factory=new_id)
    meeting_id: str
    executive_summary: str
    key_points: List[str]
    decisions: List[Decision]
    next_steps: List[str]
    processing_time: int = Field(ge=0)
    created_at: datetime = Field(default_factory=utcnow)


class ActionItem(WireModel):
    id: str = Field(default_factory=new_id)
    meeting_id: str
    description: str
    priority: ActionPriority
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    context: Optional[str] = None
    status: ActionStatus = ActionStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)


class Topic(WireModel):
    id: str = Field(default_factory=new_id)
    meeting_id: str
    topic: str
    sentiment_score: float = Field(ge=-1.0, le=1.0)
    importance_score: float = Field(ge=0.0, le=1.0)
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_time_range(self) -> "Topic":
        if self.start_time is not None and self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self


class ProcessingResult(WireModel):
    """Aggregate returned by batch processing."""

    meeting_id: str
    status: MeetingStatus
    transcript: Transcript
    summary: Optional[Summary] = None
    action_items: List[ActionItem] = Field(default_factory=list)
    topics: List[Topic] = Field(default_factory=list)

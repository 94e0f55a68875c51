"""
Processing events reported while a meeting is processed.

Each event kind is its own class with a concretely typed ``content``; the
``ProcessingEvent`` union discriminates on ``type``. On the wire every event is
a ``{"type": ..., "content": ...}`` object with camelCase content.
"""

import json
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from meeting_processor.models.records import Transcript
from meeting_processor.models.schemas import ActionItemPayload, SummaryResult, TopicPayload


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    terminal: ClassVar[bool] = False

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)


class StatusEvent(_Event):
    type: Literal["status"] = "status"
    content: str


class TranscriptEvent(_Event):
    type: Literal["transcript"] = "transcript"
    content: Transcript


class SummaryEvent(_Event):
    type: Literal["summary"] = "summary"
    content: SummaryResult


class ActionItemsEvent(_Event):
    type: Literal["actionItems"] = "actionItems"
    content: List[ActionItemPayload]


class TopicsEvent(_Event):
    type: Literal["topics"] = "topics"
    content: List[TopicPayload]


class WarningEvent(_Event):
    type: Literal["warning"] = "warning"
    content: str


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    content: str

    terminal: ClassVar[bool] = True


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    content: None = None

    terminal: ClassVar[bool] = True


ProcessingEvent = Annotated[
    Union[
        StatusEvent,
        TranscriptEvent,
        SummaryEvent,
        ActionItemsEvent,
        TopicsEvent,
        WarningEvent,
        ErrorEvent,
        CompleteEvent,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter = TypeAdapter(ProcessingEvent)


def parse_event(data: Union[str, Dict[str, Any]]) -> "ProcessingEvent":
    """Decode a wire event (JSON text or dict) into its event class."""
    if isinstance(data, str):
        return _event_adapter.validate_json(data)
    return _event_adapter.validate_python(data)

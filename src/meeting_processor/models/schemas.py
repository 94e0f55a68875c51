"""
Response schemas for the AI extraction stages.

Each stage asks the model for a fixed JSON shape; these pydantic models are
the validators for those shapes. Field names on the wire are camelCase and
match the prompts exactly.
"""

from typing import Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from meeting_processor.models.types import AIPriority


class WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Decision(WireModel):
    decision: str
    rationale: str
    owner: Optional[str] = None


class SummaryPayload(WireModel):
    """Structured summary returned by the summary stage."""

    executive_summary: str
    key_points: List[str]
    decisions: List[Decision]
    next_steps: List[str]


class SummaryResult(SummaryPayload):
    """Summary payload plus the wall-clock seconds spent producing it."""

    processing_time: int = Field(ge=0)


class ActionItemPayload(WireModel):
    description: str
    assignee: Optional[str] = None
    priority: AIPriority
    due_date: Optional[str] = None
    context: Optional[str] = None


class ActionItemsPayload(WireModel):
    action_items: List[ActionItemPayload]


class TopicPayload(WireModel):
    topic: str
    sentiment_score: float = Field(ge=-1.0, le=1.0)
    importance_score: float = Field(ge=0.0, le=1.0)
    start_time: Optional[float] = None
    duration: Optional[float] = None


class TopicsPayload(WireModel):
    topics: List[TopicPayload]


SCHEMAS: Dict[str, Type[WireModel]] = {
    "summary": SummaryPayload,
    "action_items": ActionItemsPayload,
    "topics": TopicsPayload,
}


def get_schema_by_type(kind: str) -> Type[WireModel]:
    """
    Get the response schema for a stage.

    Args:
        kind: Schema kind (summary, action_items, topics)

    Returns:
        Pydantic model class validating that stage's output

    Raises:
        ValueError: If the kind is not recognized
    """
    if kind not in SCHEMAS:
        raise ValueError(f"Unknown schema kind: {kind}")

    return SCHEMAS[kind]

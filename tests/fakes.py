"""Scripted stand-ins for AWS clients used across the test modules."""

import io
import json
import os
import sys
import threading
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import ClientError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from meeting_processor.common.bedrock_client import BedrockClient
from meeting_processor.common.config import AISettings, ProcessingSettings
from meeting_processor.common.orchestrator import AnalysisOrchestrator
from meeting_processor.common.state_machine import MeetingProcessor
from meeting_processor.common.store import InMemoryMeetingStore
from meeting_processor.models.records import Meeting, MeetingFile

TRANSCRIPT = (
    "Speaker 1: Thanks everyone. The release candidate passed QA yesterday.\n"
    "Speaker 2: Marketing needs the final copy by Wednesday.\n"
    "Speaker 1: Alice will send the copy. We decide to ship Friday."
)

SUMMARY_TEXT = """```json
{
  "executiveSummary": "The team reviewed QA results and agreed on a release date.",
  "keyPoints": ["Release candidate passed QA", "Marketing copy due Wednesday"],
  "decisions": [{"decision": "Ship Friday", "rationale": "QA passed", "owner": "Speaker 1"}],
  "nextSteps": ["Send marketing copy"]
}
```"""

ACTION_ITEMS_TEXT = json.dumps(
    {
        "actionItems": [
            {
                "description": "Send final marketing copy",
                "assignee": "Alice",
                "priority": "HIGH",
                "dueDate": "2024-03-13",
                "context": "Needed before launch",
            },
            {
                "description": "Prepare release notes",
                "priority": "MEDIUM",
                "dueDate": "next Friday",
            },
        ]
    }
)

TOPICS_TEXT = json.dumps(
    {
        "topics": [
            {"topic": "QA results", "sentimentScore": 0.7, "importanceScore": 0.8, "startTime": 0, "duration": 120},
            {"topic": "Release date", "sentimentScore": 0.5, "importanceScore": 0.9},
        ]
    }
)

PROMPT_PREFIXES = {
    "Analyze this meeting transcript": "summary",
    "Extract action items": "action_items",
    "Identify and analyze discussion topics": "topics",
}

PRIMARY_MODEL = "primary-model"
FALLBACK_MODEL = "fallback-model"


def client_error(code: str, status: int, message: str = "error", operation: str = "Converse") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def throttling_error() -> ClientError:
    return client_error("ThrottlingException", 429, "Too many requests, please wait")


def stage_for_prompt(prompt: str) -> str:
    for prefix, stage in PROMPT_PREFIXES.items():
        if prompt.startswith(prefix):
            return stage
    raise AssertionError(f"Unexpected prompt: {prompt[:60]}")


class FakeBedrockRuntime:
    """
    Stand-in for a ``bedrock-runtime`` client.

    Responses are chosen by stage, recognised from the prompt. ``errors`` maps a
    stage (or ``(model_id, stage)``) to an exception to raise instead, and
    ``hooks`` maps a stage to a callable run before the response is returned.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, str]] = None,
        errors: Optional[Dict[Any, Exception]] = None,
        hooks: Optional[Dict[str, Callable[[], None]]] = None,
    ):
        self.responses = {
            "summary": SUMMARY_TEXT,
            "action_items": ACTION_ITEMS_TEXT,
            "topics": TOPICS_TEXT,
        }
        self.responses.update(responses or {})
        self.errors = errors or {}
        self.hooks = hooks or {}
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def converse(self, modelId: str, messages: List[Dict[str, Any]], inferenceConfig: Dict[str, Any]):
        prompt = messages[0]["content"][0]["text"]
        stage = stage_for_prompt(prompt)
        with self._lock:
            self.calls.append({"model_id": modelId, "stage": stage, "prompt": prompt, "config": inferenceConfig})

        error = self.errors.get((modelId, stage)) or self.errors.get(stage)
        if error is not None:
            raise error
        if stage in self.hooks:
            self.hooks[stage]()
        return {
            "output": {"message": {"role": "assistant", "content": [{"text": self.responses[stage]}]}},
            "stopReason": "end_turn",
        }

    def stages_called(self) -> List[str]:
        return [call["stage"] for call in self.calls]


class FakeS3:
    """Minimal in-memory S3 client: get/put objects and list_objects_v2 pagination."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str = ""):
        self.objects[Key] = Body
        self.content_types[Key] = ContentType
        return {}

    def get_object(self, Bucket: str, Key: str):
        if Key not in self.objects:
            raise client_error("NoSuchKey", 404, "The specified key does not exist.", "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def get_paginator(self, name: str):
        assert name == "list_objects_v2"
        objects = self.objects

        class _Paginator:
            def paginate(self, Bucket: str, Prefix: str = ""):
                keys = [key for key in objects if key.startswith(Prefix)]
                # Two pages to exercise pagination
                half = len(keys) // 2
                for chunk in (keys[:half], keys[half:]):
                    yield {"Contents": [{"Key": key} for key in chunk]}

        return _Paginator()


def ai_settings(configured: bool = True) -> AISettings:
    if not configured:
        return AISettings(primary_model_id=PRIMARY_MODEL, fallback_model_id=FALLBACK_MODEL)
    return AISettings(
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
        primary_model_id=PRIMARY_MODEL,
        fallback_model_id=FALLBACK_MODEL,
    )


def make_orchestrator(runtime: Optional[FakeBedrockRuntime] = None, configured: bool = True) -> AnalysisOrchestrator:
    client = BedrockClient(ai_settings(configured), client=runtime if configured else None)
    return AnalysisOrchestrator(client, ProcessingSettings(stage_delay_seconds=0))


def make_processor(runtime: Optional[FakeBedrockRuntime] = None, configured: bool = True, store=None):
    store = store or InMemoryMeetingStore()
    return MeetingProcessor(store, make_orchestrator(runtime, configured)), store


def seed_meeting(
    store,
    user_id: str = "user-1",
    content: Optional[bytes] = TRANSCRIPT.encode("utf-8"),
    file_type: str = "text/plain",
    file_name: str = "standup.txt",
    with_file: bool = True,
) -> Meeting:
    meeting = store.create_meeting(Meeting(title="Weekly sync", user_id=user_id))
    if with_file:
        store.add_file(
            meeting.id,
            MeetingFile(
                meeting_id=meeting.id,
                file_name=file_name,
                file_type=file_type,
                file_path=f"uploads/{meeting.id}/{file_name}",
            ),
            content=content,
        )
    return store.get_meeting(meeting.id)

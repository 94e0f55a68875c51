"""
S3-backed meeting store.

Layout, one JSON object per record::

    <prefix><meeting_id>/meeting.json
    <prefix><meeting_id>/transcripts/<created>-<id>.json
    <prefix><meeting_id>/summaries/<created>-<id>.json
    <prefix><meeting_id>/action_items/<created>-<id>.json
    <prefix><meeting_id>/topics/<created>-<id>.json

Meeting file bytes live at the S3 key stored in ``MeetingFile.file_path``.
Each write is a single PUT, so record updates are atomic per object.
"""

import logging
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from meeting_processor.common.errors import PersistenceFailure
from meeting_processor.common.s3io import S3Client
from meeting_processor.common.store import MeetingStore
from meeting_processor.models.records import (
    ActionItem,
    Meeting,
    MeetingFile,
    Summary,
    Topic,
    Transcript,
    utcnow,
)
from meeting_processor.models.types import MeetingStatus

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class S3MeetingStore(MeetingStore):
    def __init__(self, s3: S3Client, prefix: str = "meetings/"):
        self.s3 = s3
        self.prefix = prefix if prefix.endswith("/") else prefix + "/"

    def _meeting_key(self, meeting_id: str) -> str:
        return f"{self.prefix}{meeting_id}/meeting.json"

    def _record_key(self, meeting_id: str, collection: str, record) -> str:
        # Timestamped names keep listings in creation order
        stamp = record.created_at.strftime("%Y%m%dT%H%M%S%f")
        return f"{self.prefix}{meeting_id}/{collection}/{stamp}-{record.id}.json"

    def _write(self, key: str, record: BaseModel) -> None:
        self.s3.write_json_file(key, record.model_dump(mode="json", by_alias=True))

    def _load(self, key: str, model: Type[RecordT]) -> RecordT:
        data = self.s3.read_json_file(key)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise PersistenceFailure(f"Corrupt record at {key}: {e}") from e

    def _list(self, meeting_id: str, collection: str, model: Type[RecordT]) -> List[RecordT]:
        keys = self.s3.list_keys(f"{self.prefix}{meeting_id}/{collection}/")
        return [self._load(key, model) for key in keys if key.endswith(".json")]

    def _require_meeting(self, meeting_id: str) -> Meeting:
        meeting = self.get_meeting(meeting_id)
        if meeting is None:
            raise PersistenceFailure(f"Meeting {meeting_id} does not exist")
        return meeting

    def create_meeting(self, meeting: Meeting) -> Meeting:
        self._write(self._meeting_key(meeting.id), meeting)
        return meeting

    def add_file(self, meeting_id: str, file: MeetingFile, content: Optional[bytes] = None) -> MeetingFile:
        meeting = self._require_meeting(meeting_id)
        if content is not None:
            self.s3.write_bytes(file.file_path, content, content_type=file.file_type)
        meeting.files.append(file)
        if meeting.status == MeetingStatus.CREATED:
            meeting.status = MeetingStatus.UPLOADED
        meeting.updated_at = utcnow()
        self._write(self._meeting_key(meeting_id), meeting)
        return file

    def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        try:
            return self._load(self._meeting_key(meeting_id), Meeting)
        except FileNotFoundError:
            return None

    def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
        analysis_complete: Optional[bool] = None,
    ) -> Meeting:
        meeting = self._require_meeting(meeting_id)
        meeting.status = status
        if analysis_complete is not None:
            meeting.analysis_complete = analysis_complete
        meeting.updated_at = utcnow()
        self._write(self._meeting_key(meeting_id), meeting)
        logger.info(f"Meeting {meeting_id} status -> {status.value}")
        return meeting

    def read_file(self, file: MeetingFile) -> bytes:
        try:
            return self.s3.read_bytes(file.file_path)
        except FileNotFoundError as e:
            raise PersistenceFailure(str(e)) from e

    def create_transcript(self, transcript: Transcript) -> Transcript:
        self._write(self._record_key(transcript.meeting_id, "transcripts", transcript), transcript)
        return transcript

    def create_summary(self, summary: Summary) -> Summary:
        self._write(self._record_key(summary.meeting_id, "summaries", summary), summary)
        return summary

    def create_action_item(self, item: ActionItem) -> ActionItem:
        self._write(self._record_key(item.meeting_id, "action_items", item), item)
        return item

    def create_topic(self, topic: Topic) -> Topic:
        self._write(self._record_key(topic.meeting_id, "topics", topic), topic)
        return topic

    def list_transcripts(self, meeting_id: str) -> List[Transcript]:
        return self._list(meeting_id, "transcripts", Transcript)

    def list_summaries(self, meeting_id: str) -> List[Summary]:
        return self._list(meeting_id, "summaries", Summary)

    def list_action_items(self, meeting_id: str) -> List[ActionItem]:
        return self._list(meeting_id, "action_items", ActionItem)

    def list_topics(self, meeting_id: str) -> List[Topic]:
        return self._list(meeting_id, "topics", Topic)

"""
Persistence interface for meeting processing.

The pipeline only needs single-record creates and updates keyed by meeting
id; no multi-record transactions. ``InMemoryMeetingStore`` backs tests and
local runs, ``S3MeetingStore`` (see ``s3_store``) backs deployments.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional

from meeting_processor.common.errors import PersistenceFailure
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


class MeetingStore(ABC):
    """Storage operations used by the processing state machine."""

    @abstractmethod
    def create_meeting(self, meeting: Meeting) -> Meeting: ...

    @abstractmethod
    def add_file(self, meeting_id: str, file: MeetingFile, content: Optional[bytes] = None) -> MeetingFile:
        """Attach a file to a meeting and mark the meeting UPLOADED."""

    @abstractmethod
    def get_meeting(self, meeting_id: str) -> Optional[Meeting]: ...

    @abstractmethod
    def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
        analysis_complete: Optional[bool] = None,
    ) -> Meeting: ...

    @abstractmethod
    def read_file(self, file: MeetingFile) -> bytes: ...

    @abstractmethod
    def create_transcript(self, transcript: Transcript) -> Transcript: ...

    @abstractmethod
    def create_summary(self, summary: Summary) -> Summary: ...

    @abstractmethod
    def create_action_item(self, item: ActionItem) -> ActionItem: ...

    @abstractmethod
    def create_topic(self, topic: Topic) -> Topic: ...

    @abstractmethod
    def list_transcripts(self, meeting_id: str) -> List[Transcript]: ...

    @abstractmethod
    def list_summaries(self, meeting_id: str) -> List[Summary]: ...

    @abstractmethod
    def list_action_items(self, meeting_id: str) -> List[ActionItem]: ...

    @abstractmethod
    def list_topics(self, meeting_id: str) -> List[Topic]: ...

    def find_meeting(self, meeting_id: str, user_id: str) -> Optional[Meeting]:
        """Return the meeting only if it exists and belongs to ``user_id``."""
        meeting = self.get_meeting(meeting_id)
        if meeting is None or meeting.user_id != user_id:
            return None
        return meeting

    def get_transcript(self, meeting_id: str) -> Optional[Transcript]:
        """Latest transcript for a meeting."""
        transcripts = self.list_transcripts(meeting_id)
        return transcripts[-1] if transcripts else None

    def get_summary(self, meeting_id: str) -> Optional[Summary]:
        """Latest summary for a meeting."""
        summaries = self.list_summaries(meeting_id)
        return summaries[-1] if summaries else None


class InMemoryMeetingStore(MeetingStore):
    """Thread-safe in-process store. Records are copied on the way in and out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._meetings: Dict[str, Meeting] = {}
        self._blobs: Dict[str, bytes] = {}
        self._transcripts: Dict[str, List[Transcript]] = defaultdict(list)
        self._summaries: Dict[str, List[Summary]] = defaultdict(list)
        self._action_items: Dict[str, List[ActionItem]] = defaultdict(list)
        self._topics: Dict[str, List[Topic]] = defaultdict(list)

    def _require_meeting(self, meeting_id: str) -> Meeting:
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            raise PersistenceFailure(f"Meeting {meeting_id} does not exist")
        return meeting

    def create_meeting(self, meeting: Meeting) -> Meeting:
        with self._lock:
            self._meetings[meeting.id] = meeting.model_copy(deep=True)
        return meeting.model_copy(deep=True)

    def add_file(self, meeting_id: str, file: MeetingFile, content: Optional[bytes] = None) -> MeetingFile:
        with self._lock:
            meeting = self._require_meeting(meeting_id)
            meeting.files.append(file.model_copy())
            if meeting.status == MeetingStatus.CREATED:
                meeting.status = MeetingStatus.UPLOADED
            meeting.updated_at = utcnow()
            if content is not None:
                self._blobs[file.file_path] = content
        return file

    def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return meeting.model_copy(deep=True) if meeting is not None else None

    def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
        analysis_complete: Optional[bool] = None,
    ) -> Meeting:
        with self._lock:
            meeting = self._require_meeting(meeting_id)
            meeting.status = status
            if analysis_complete is not None:
                meeting.analysis_complete = analysis_complete
            meeting.updated_at = utcnow()
            return meeting.model_copy(deep=True)

    def read_file(self, file: MeetingFile) -> bytes:
        with self._lock:
            blob = self._blobs.get(file.file_path)
        if blob is not None:
            return blob
        try:
            return Path(file.file_path).read_bytes()
        except OSError as e:
            raise PersistenceFailure(f"Failed to read file {file.file_path}: {e}") from e

    def create_transcript(self, transcript: Transcript) -> Transcript:
        with self._lock:
            self._require_meeting(transcript.meeting_id)
            self._transcripts[transcript.meeting_id].append(transcript)
        return transcript

    def create_summary(self, summary: Summary) -> Summary:
        with self._lock:
            self._require_meeting(summary.meeting_id)
            self._summaries[summary.meeting_id].append(summary.model_copy(deep=True))
        return summary

    def create_action_item(self, item: ActionItem) -> ActionItem:
        with self._lock:
            self._require_meeting(item.meeting_id)
            self._action_items[item.meeting_id].append(item.model_copy(deep=True))
        return item

    def create_topic(self, topic: Topic) -> Topic:
        with self._lock:
            self._require_meeting(topic.meeting_id)
            self._topics[topic.meeting_id].append(topic.model_copy(deep=True))
        return topic

    def list_transcripts(self, meeting_id: str) -> List[Transcript]:
        with self._lock:
            return list(self._transcripts.get(meeting_id, []))

    def list_summaries(self, meeting_id: str) -> List[Summary]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._summaries.get(meeting_id, [])]

    def list_action_items(self, meeting_id: str) -> List[ActionItem]:
        with self._lock:
            return [i.model_copy(deep=True) for i in self._action_items.get(meeting_id, [])]

    def list_topics(self, meeting_id: str) -> List[Topic]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._topics.get(meeting_id, [])]

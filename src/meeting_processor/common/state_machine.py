"""
Meeting processing state machine.

Drives a meeting through PROCESSING to COMPLETED or FAILED, persisting the
transcript before any AI call and every analysis artifact before it is
reported to a caller. Two entry points share the same preconditions:

* ``process`` runs the batch pipeline and returns a ``ProcessingResult``.
* ``process_stream`` yields processing events while the pipeline runs on a
  worker thread (see ``channel.stream_events``).
"""

import logging
from datetime import date
from typing import Iterator, List, Optional

from pydantic import ValidationError

from meeting_processor.common.channel import EventChannel, stream_events
from meeting_processor.common.errors import (
    NoFilesUploaded,
    NotFoundOrForbidden,
    PersistenceFailure,
    PreconditionFailed,
    Unauthorized,
    UnsupportedMediaType,
)
from meeting_processor.common.orchestrator import AnalysisOrchestrator
from meeting_processor.common.store import MeetingStore
from meeting_processor.models.events import (
    ActionItemsEvent,
    CompleteEvent,
    ErrorEvent,
    StatusEvent,
    SummaryEvent,
    TopicsEvent,
    TranscriptEvent,
    WarningEvent,
)
from meeting_processor.models.records import (
    ActionItem,
    Meeting,
    ProcessingResult,
    Summary,
    Topic,
    Transcript,
)
from meeting_processor.models.schemas import ActionItemPayload, SummaryResult, TopicPayload
from meeting_processor.models.types import ActionPriority, MeetingStatus

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Failed to process meeting"
READING_FILES_MESSAGE = "Reading uploaded files..."
PROCESSING_TRANSCRIPT_MESSAGE = "Processing pasted transcript..."


def parse_due_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` due date; anything unparseable becomes None."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        logger.warning(f"Ignoring unparseable due date: {value!r}")
        return None


class MeetingProcessor:
    """Processes a meeting's first uploaded file into transcript and analysis records."""

    def __init__(self, store: MeetingStore, orchestrator: AnalysisOrchestrator):
        self.store = store
        self.orchestrator = orchestrator

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------
    def begin_processing(self, meeting_id: str, user_id: Optional[str]) -> Meeting:
        """
        Check preconditions and move the meeting to PROCESSING.

        Raises:
            Unauthorized: No caller identity
            NotFoundOrForbidden: Meeting absent or owned by another user
            NoFilesUploaded: Meeting has no files (status is left unchanged)
        """
        if not user_id:
            raise Unauthorized()

        meeting = self.store.find_meeting(meeting_id, user_id)
        if meeting is None:
            raise NotFoundOrForbidden(meeting_id)
        if not meeting.files:
            raise NoFilesUploaded(meeting_id)

        logger.info(f"Processing meeting {meeting_id} ({len(meeting.files)} files)")
        return self.store.update_meeting_status(
            meeting_id, MeetingStatus.PROCESSING, analysis_complete=False
        )

    def _read_transcript_source(self, meeting: Meeting) -> str:
        # Only the first file is considered
        file = meeting.files[0]
        if not file.is_plain_text:
            logger.warning(f"Rejecting {file.file_type} file {file.file_name} for meeting {meeting.id}")
            raise UnsupportedMediaType(file.file_type)
        return self.store.read_file(file).decode("utf-8", errors="replace")

    def _create_transcript(self, meeting: Meeting) -> Transcript:
        content = self._read_transcript_source(meeting)
        transcript = Transcript(
            meeting_id=meeting.id,
            content=content,
            confidence_score=1.0,
            processing_time=0,
        )
        self.store.create_transcript(transcript)
        logger.info(f"Saved transcript for meeting {meeting.id} ({len(content)} chars)")
        return transcript

    def _save_summary(self, meeting_id: str, result: SummaryResult) -> Summary:
        summary = Summary(
            meeting_id=meeting_id,
            executive_summary=result.executive_summary,
            key_points=result.key_points,
            decisions=result.decisions,
            next_steps=result.next_steps,
            processing_time=result.processing_time,
        )
        return self.store.create_summary(summary)

    def _save_action_items(self, meeting_id: str, items: List[ActionItemPayload]) -> List[ActionItem]:
        saved = []
        for item in items:
            try:
                record = ActionItem(
                    meeting_id=meeting_id,
                    description=item.description,
                    priority=ActionPriority(item.priority),
                    assignee=item.assignee,
                    due_date=parse_due_date(item.due_date),
                    context=item.context,
                )
            except (ValidationError, ValueError) as e:
                logger.warning(f"Skipping invalid action item for meeting {meeting_id}: {e}")
                continue
            saved.append(self.store.create_action_item(record))
        return saved

    def _save_topics(self, meeting_id: str, topics: List[TopicPayload]) -> List[Topic]:
        saved = []
        for payload in topics:
            end_time = None
            if payload.start_time is not None and payload.duration is not None:
                end_time = payload.start_time + payload.duration
            try:
                topic = Topic(
                    meeting_id=meeting_id,
                    topic=payload.topic,
                    sentiment_score=payload.sentiment_score,
                    importance_score=payload.importance_score,
                    start_time=payload.start_time,
                    end_time=end_time,
                )
            except ValidationError as e:
                logger.warning(f"Skipping invalid topic for meeting {meeting_id}: {e}")
                continue
            saved.append(self.store.create_topic(topic))
        return saved

    def _mark_failed(self, meeting_id: str) -> None:
        try:
            self.store.update_meeting_status(meeting_id, MeetingStatus.FAILED, analysis_complete=False)
        except PersistenceFailure as e:
            logger.error(f"Could not mark meeting {meeting_id} as FAILED: {e}")

    # ------------------------------------------------------------------
    # Batch mode
    # ------------------------------------------------------------------
    def process(self, meeting_id: str, user_id: Optional[str]) -> ProcessingResult:
        """
        Run the whole pipeline and return everything it produced.

        Any failure after the preconditions leaves the meeting FAILED (the
        transcript, if saved, is kept) and is re-raised.
        """
        meeting = self.begin_processing(meeting_id, user_id)

        try:
            transcript = self._create_transcript(meeting)
            analysis = self.orchestrator.analyze(transcript.content)

            summary = self._save_summary(meeting_id, analysis.summary) if analysis.summary else None
            action_items = self._save_action_items(meeting_id, analysis.action_items)
            topics = self._save_topics(meeting_id, analysis.topics)

            self.store.update_meeting_status(meeting_id, MeetingStatus.COMPLETED, analysis_complete=True)
        except Exception as e:
            logger.error(f"Processing failed for meeting {meeting_id}: {e}")
            self._mark_failed(meeting_id)
            raise

        logger.info(
            f"Meeting {meeting_id} completed: {len(action_items)} action items, {len(topics)} topics"
        )
        return ProcessingResult(
            meeting_id=meeting_id,
            status=MeetingStatus.COMPLETED,
            transcript=transcript,
            summary=summary,
            action_items=action_items,
            topics=topics,
        )

    # ------------------------------------------------------------------
    # Streaming mode
    # ------------------------------------------------------------------
    def run_stream(self, meeting_id: str, user_id: Optional[str], channel: EventChannel) -> None:
        """
        Producer side of a streaming run. Every path ends with a terminal
        event on ``channel`` unless the consumer cancelled first.
        """
        started = False
        finished = False
        warned = False

        def relay(event) -> None:
            nonlocal finished, warned
            if channel.cancelled:
                logger.info(f"Discarding {event.type} event for cancelled stream of meeting {meeting_id}")
                return

            if isinstance(event, SummaryEvent):
                self._save_summary(meeting_id, event.content)
            elif isinstance(event, ActionItemsEvent):
                self._save_action_items(meeting_id, event.content)
            elif isinstance(event, TopicsEvent):
                self._save_topics(meeting_id, event.content)
            elif isinstance(event, WarningEvent):
                warned = True
            elif isinstance(event, CompleteEvent):
                self.store.update_meeting_status(
                    meeting_id, MeetingStatus.COMPLETED, analysis_complete=not warned
                )
                finished = True
            elif isinstance(event, ErrorEvent):
                # AI unavailable: the transcript alone is the result
                self.store.update_meeting_status(
                    meeting_id, MeetingStatus.COMPLETED, analysis_complete=False
                )
                finished = True

            channel.send(event)

        try:
            meeting = self.begin_processing(meeting_id, user_id)
            started = True

            channel.send(StatusEvent(content=READING_FILES_MESSAGE))
            transcript = self._create_transcript(meeting)
            channel.send(StatusEvent(content=PROCESSING_TRANSCRIPT_MESSAGE))
            channel.send(TranscriptEvent(content=transcript))

            self.orchestrator.stream_analysis(
                transcript.content,
                relay,
                should_stop=lambda: channel.cancelled,
                wait_for=channel.wait_cancelled,
            )

            if not finished:
                logger.info(f"Stream for meeting {meeting_id} cancelled by consumer")
                self._mark_failed(meeting_id)
        except PreconditionFailed as e:
            logger.warning(f"Rejected processing request for meeting {meeting_id}: {e}")
            channel.send(ErrorEvent(content=str(e)))
        except UnsupportedMediaType as e:
            self._mark_failed(meeting_id)
            channel.send(ErrorEvent(content=str(e)))
        except Exception:
            logger.exception(f"Streaming processing failed for meeting {meeting_id}")
            if started:
                self._mark_failed(meeting_id)
            channel.send(ErrorEvent(content=FAILURE_MESSAGE))

    def process_stream(self, meeting_id: str, user_id: Optional[str]) -> Iterator:
        """Yield processing events for a meeting, ending with ``complete`` or ``error``."""
        return stream_events(
            lambda channel: self.run_stream(meeting_id, user_id, channel),
            name=f"process-{meeting_id}",
            failure_message=FAILURE_MESSAGE,
        )

"""
Error taxonomy for the meeting processing pipeline.

Every error carries a ``status_code`` so entry points can map failures to
responses without inspecting messages.
"""

from typing import Optional


class MeetingProcessingError(Exception):
    """Base class for all pipeline errors."""

    status_code = 500


class PreconditionFailed(MeetingProcessingError):
    """Processing request rejected before any state change."""

    status_code = 400


class Unauthorized(PreconditionFailed):
    """No verified caller was supplied."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundOrForbidden(PreconditionFailed):
    """Meeting is absent or owned by another user.

    The two cases are deliberately reported the same way so callers cannot
    probe for meeting ids they do not own.
    """

    status_code = 404

    def __init__(self, meeting_id: str):
        super().__init__("Meeting not found or access denied")
        self.meeting_id = meeting_id


class NoFilesUploaded(PreconditionFailed):
    status_code = 400

    def __init__(self, meeting_id: str):
        super().__init__("No files uploaded for this meeting")
        self.meeting_id = meeting_id


class UnsupportedMediaType(MeetingProcessingError):
    """Only plain-text transcripts can be processed."""

    status_code = 415

    def __init__(self, file_type: str, message: Optional[str] = None):
        super().__init__(
            message
            or "Audio/video transcription not supported - please upload a text transcript instead"
        )
        self.file_type = file_type


class AIUnavailable(MeetingProcessingError):
    """AI provider credentials are not configured."""

    status_code = 503

    def __init__(self, message: str = "AI provider credentials not configured - cannot process meeting content"):
        super().__init__(message)


class InvalidAIResponse(MeetingProcessingError):
    """Model output failed JSON parsing or schema validation."""

    status_code = 502

    def __init__(self, kind: str, raw_text: str, cause: Exception):
        super().__init__(f"AI returned invalid {kind} format: {cause}")
        self.kind = kind
        self.raw_text = raw_text
        self.cause = cause


class UpstreamRateLimited(MeetingProcessingError):
    """Both primary and fallback models signalled rate limiting."""

    status_code = 429


class PersistenceFailure(MeetingProcessingError):
    """Any storage error. Always fatal to the current operation."""

    status_code = 500


class AnalysisFailed(MeetingProcessingError):
    """Batch analysis failed because one stage failed."""

    status_code = 502

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"Failed to process meeting content: {stage} stage failed: {cause}")
        self.stage = stage
        self.cause = cause

"""
Orchestration of the three AI analysis stages.

The same three stages (summary, action items, topics) run in two modes:

* batch: all stages concurrently on a thread pool, joined before returning.
  ``analyze`` is all-or-nothing, ``analyze_best_effort`` keeps whatever
  succeeded and records the rest as warnings.
* streaming: stages run one after another with a delay in between, and every
  step is reported through an ``emit`` callback as a processing event.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, Field

from meeting_processor.common.bedrock_client import BedrockClient
from meeting_processor.common.config import ProcessingSettings
from meeting_processor.common.errors import AIUnavailable, AnalysisFailed
from meeting_processor.common.json_utils import parse_ai_response
from meeting_processor.models.events import (
    ActionItemsEvent,
    CompleteEvent,
    ErrorEvent,
    StatusEvent,
    SummaryEvent,
    TopicsEvent,
    WarningEvent,
)
from meeting_processor.models.schemas import (
    ActionItemPayload,
    ActionItemsPayload,
    SummaryPayload,
    SummaryResult,
    TopicPayload,
    TopicsPayload,
)
from meeting_processor.models.types import STAGE_ORDER

logger = logging.getLogger(__name__)


SUMMARY_PROMPT = PromptTemplate.from_template(
    """Analyze this meeting transcript and extract key information. Return ONLY valid JSON in the exact format specified:

{transcript}

Return exactly this JSON structure:
{{
  "executiveSummary": "[2-3 sentence executive summary]",
  "keyPoints": ["key point 1", "key point 2", "key point 3"],
  "decisions": [{{"decision": "what was decided", "rationale": "why this decision was made", "owner": "who is responsible"}}],
  "nextSteps": ["next step 1", "next step 2"]
}}"""
)

ACTION_ITEMS_PROMPT = PromptTemplate.from_template(
    """Extract action items from this meeting transcript. Return ONLY valid JSON in the exact format specified:

{transcript}

Identify specific tasks, assignments, and follow-up actions mentioned in the meeting. Return exactly this JSON structure:
{{
  "actionItems": [
    {{
      "description": "what needs to be done",
      "assignee": "person responsible (optional)",
      "priority": "LOW|MEDIUM|HIGH",
      "dueDate": "YYYY-MM-DD (optional)",
      "context": "additional context (optional)"
    }}
  ]
}}"""
)

TOPICS_PROMPT = PromptTemplate.from_template(
    """Identify and analyze discussion topics from this meeting transcript. Return ONLY valid JSON in the exact format specified:

{transcript}

For each topic discussed, analyze sentiment and importance. Return exactly this JSON structure:
{{
  "topics": [
    {{
      "topic": "topic name",
      "sentimentScore": 0.7,
      "importanceScore": 0.8,
      "startTime": 0,
      "duration": 120
    }}
  ]
}}

Sentiment score: -1 (negative) to 1 (positive)
Importance score: 0 (low) to 1 (high)
Times in seconds (optional if not determinable)"""
)


@dataclass(frozen=True)
class StageSpec:
    """Static description of one analysis stage."""

    kind: str
    label: str
    status_message: str
    warning_message: str


STAGES: Dict[str, StageSpec] = {
    "summary": StageSpec(
        kind="summary",
        label="summary",
        status_message="Generating executive summary...",
        warning_message="Failed to generate summary - continuing with other analysis",
    ),
    "action_items": StageSpec(
        kind="action_items",
        label="action items",
        status_message="Extracting action items...",
        warning_message="Failed to extract action items - continuing with other analysis",
    ),
    "topics": StageSpec(
        kind="topics",
        label="topics",
        status_message="Identifying discussion topics...",
        warning_message="Failed to extract topics - continuing with other analysis",
    ),
}


@dataclass
class StageOutcome:
    """Result of one stage: either a value or the error that stopped it."""

    stage: str
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MeetingAnalysis(BaseModel):
    """Aggregate output of the three stages."""

    summary: Optional[SummaryResult] = None
    action_items: List[ActionItemPayload] = Field(default_factory=list)
    topics: List[TopicPayload] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.warnings


def truncate_transcript(transcript: str, limit: int) -> str:
    if len(transcript) <= limit:
        return transcript
    return transcript[:limit] + "..."


def _no_stop() -> bool:
    return False


def _sleep(seconds: float) -> bool:
    time.sleep(seconds)
    return False


class AnalysisOrchestrator:
    """Runs the summary, action item and topic stages against the AI client."""

    def __init__(self, client: BedrockClient, settings: Optional[ProcessingSettings] = None):
        self.client = client
        self.settings = settings or ProcessingSettings()

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    # ------------------------------------------------------------------
    # Individual stages
    # ------------------------------------------------------------------
    def generate_summary(self, transcript: str) -> SummaryResult:
        start = time.time()
        logger.info("Calling Bedrock for summary generation...")
        prompt = SUMMARY_PROMPT.format(
            transcript=truncate_transcript(transcript, self.settings.summary_char_limit)
        )
        text = self.client.generate(prompt, self.settings.temperature)
        payload: SummaryPayload = parse_ai_response(text, "summary")  # type: ignore[assignment]
        processing_time = round(time.time() - start)
        logger.info(f"Summary generated in {processing_time}s")
        return SummaryResult(**payload.model_dump(), processing_time=processing_time)

    def extract_action_items(self, transcript: str) -> List[ActionItemPayload]:
        logger.info("Calling Bedrock for action items extraction...")
        prompt = ACTION_ITEMS_PROMPT.format(
            transcript=truncate_transcript(transcript, self.settings.extraction_char_limit)
        )
        text = self.client.generate(prompt, self.settings.temperature)
        payload: ActionItemsPayload = parse_ai_response(text, "action_items")  # type: ignore[assignment]
        logger.info(f"Extracted {len(payload.action_items)} action items")
        return payload.action_items

    def extract_topics(self, transcript: str) -> List[TopicPayload]:
        logger.info("Calling Bedrock for topic extraction...")
        prompt = TOPICS_PROMPT.format(
            transcript=truncate_transcript(transcript, self.settings.extraction_char_limit)
        )
        text = self.client.generate(prompt, self.settings.temperature)
        payload: TopicsPayload = parse_ai_response(text, "topics")  # type: ignore[assignment]
        logger.info(f"Extracted {len(payload.topics)} topics")
        return payload.topics

    def _stage_function(self, stage: str) -> Callable[[str], Any]:
        functions = {
            "summary": self.generate_summary,
            "action_items": self.extract_action_items,
            "topics": self.extract_topics,
        }
        if stage not in functions:
            raise ValueError(f"Unknown stage: {stage}")
        return functions[stage]

    def run_stage(self, stage: str, transcript: str) -> StageOutcome:
        """Run one stage, capturing any failure in the outcome."""
        func = self._stage_function(stage)
        try:
            return StageOutcome(stage=stage, value=func(transcript))
        except Exception as e:
            logger.warning(f"{STAGES[stage].label.capitalize()} stage failed: {e}")
            return StageOutcome(stage=stage, error=e)

    # ------------------------------------------------------------------
    # Batch mode
    # ------------------------------------------------------------------
    def _run_concurrently(self, transcript: str) -> List[StageOutcome]:
        with ThreadPoolExecutor(
            max_workers=self.settings.batch_workers, thread_name_prefix="analysis-stage"
        ) as executor:
            futures = [executor.submit(self.run_stage, stage, transcript) for stage in STAGE_ORDER]
            wait(futures)
        return [future.result() for future in futures]

    @staticmethod
    def _collect(outcomes: List[StageOutcome]) -> MeetingAnalysis:
        analysis = MeetingAnalysis()
        for outcome in outcomes:
            if not outcome.ok:
                analysis.warnings.append(STAGES[outcome.stage].warning_message)
            elif outcome.stage == "summary":
                analysis.summary = outcome.value
            elif outcome.stage == "action_items":
                analysis.action_items = outcome.value
            elif outcome.stage == "topics":
                analysis.topics = outcome.value
        return analysis

    def analyze(self, transcript: str) -> MeetingAnalysis:
        """
        Run all stages concurrently; fail if any stage fails.

        Raises:
            AIUnavailable: If the AI client is not configured (no stage is started)
            AnalysisFailed: Naming the first failed stage in stage order
        """
        if not self.is_configured:
            raise AIUnavailable()

        outcomes = self._run_concurrently(transcript)
        for outcome in outcomes:
            if not outcome.ok:
                raise AnalysisFailed(STAGES[outcome.stage].label, outcome.error) from outcome.error
        return self._collect(outcomes)

    def analyze_best_effort(self, transcript: str) -> MeetingAnalysis:
        """Run all stages concurrently, keeping every stage that succeeded."""
        if not self.is_configured:
            raise AIUnavailable()

        return self._collect(self._run_concurrently(transcript))

    # ------------------------------------------------------------------
    # Streaming mode
    # ------------------------------------------------------------------
    def stream_analysis(
        self,
        transcript: str,
        emit: Callable[[Any], None],
        should_stop: Callable[[], bool] = _no_stop,
        wait_for: Callable[[float], bool] = _sleep,
    ) -> bool:
        """
        Run the stages sequentially, reporting each step through ``emit``.

        Args:
            transcript: Transcript text to analyze
            emit: Receives each processing event in order; its exceptions propagate
            should_stop: Checked before each stage; True stops further stages
            wait_for: Inter-stage delay; returns True if it was interrupted by a stop

        Returns:
            True if the final ``complete`` event was emitted
        """
        if not self.is_configured:
            emit(ErrorEvent(content=str(AIUnavailable())))
            return False

        for index, stage in enumerate(STAGE_ORDER):
            if index > 0 and self.settings.stage_delay_seconds > 0:
                if wait_for(self.settings.stage_delay_seconds):
                    logger.info("Streaming analysis stopped during stage delay")
                    return False

            if should_stop():
                logger.info(f"Streaming analysis stopped before {STAGES[stage].label} stage")
                return False

            emit(StatusEvent(content=STAGES[stage].status_message))
            outcome = self.run_stage(stage, transcript)

            if not outcome.ok:
                emit(WarningEvent(content=STAGES[stage].warning_message))
            elif stage == "summary":
                emit(SummaryEvent(content=outcome.value))
            elif stage == "action_items":
                emit(ActionItemsEvent(content=outcome.value))
            else:
                emit(TopicsEvent(content=outcome.value))

        emit(CompleteEvent())
        return True

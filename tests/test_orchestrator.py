"""Tests for the batch and streaming analysis orchestration."""

import threading
import unittest

from tests.fakes import TRANSCRIPT, FakeBedrockRuntime, make_orchestrator

from meeting_processor.common.config import ProcessingSettings
from meeting_processor.common.errors import AIUnavailable, AnalysisFailed, InvalidAIResponse
from meeting_processor.common.orchestrator import AnalysisOrchestrator, truncate_transcript
from meeting_processor.models.events import (
    ActionItemsEvent,
    CompleteEvent,
    ErrorEvent,
    StatusEvent,
    SummaryEvent,
    TopicsEvent,
    WarningEvent,
)


class TestTruncation(unittest.TestCase):

    def test_short_text_unchanged(self):
        self.assertEqual(truncate_transcript("abc", 10), "abc")

    def test_long_text_truncated_with_ellipsis(self):
        self.assertEqual(truncate_transcript("abcdef", 3), "abc...")

    def test_prompts_use_stage_limits(self):
        runtime = FakeBedrockRuntime()
        orchestrator = make_orchestrator(runtime)
        transcript = "x" * 5000

        orchestrator.generate_summary(transcript)
        orchestrator.extract_topics(transcript)

        summary_prompt, topics_prompt = (call["prompt"] for call in runtime.calls)
        self.assertIn("x" * 4000 + "...", summary_prompt)
        self.assertNotIn("x" * 4001, summary_prompt)
        self.assertIn("x" * 3000 + "...", topics_prompt)
        self.assertNotIn("x" * 3001, topics_prompt)


class TestBatchAnalysis(unittest.TestCase):

    def test_all_stages_succeed(self):
        runtime = FakeBedrockRuntime()
        analysis = make_orchestrator(runtime).analyze(TRANSCRIPT)

        self.assertTrue(analysis.complete)
        self.assertEqual(analysis.summary.executive_summary[:8], "The team")
        self.assertGreaterEqual(analysis.summary.processing_time, 0)
        self.assertEqual(len(analysis.action_items), 2)
        self.assertEqual(len(analysis.topics), 2)
        self.assertEqual(sorted(runtime.stages_called()), ["action_items", "summary", "topics"])

    def test_stages_run_concurrently(self):
        # Each stage blocks until all three have started
        barrier = threading.Barrier(3, timeout=5)
        hooks = {stage: barrier.wait for stage in ("summary", "action_items", "topics")}
        runtime = FakeBedrockRuntime(hooks=hooks)

        analysis = make_orchestrator(runtime).analyze(TRANSCRIPT)

        self.assertTrue(analysis.complete)

    def test_one_failed_stage_fails_the_batch(self):
        runtime = FakeBedrockRuntime(responses={"topics": "not json"})

        with self.assertRaises(AnalysisFailed) as ctx:
            make_orchestrator(runtime).analyze(TRANSCRIPT)

        self.assertEqual(ctx.exception.stage, "topics")
        self.assertIsInstance(ctx.exception.cause, InvalidAIResponse)
        self.assertEqual(len(runtime.calls), 3)

    def test_first_failure_in_stage_order_is_reported(self):
        runtime = FakeBedrockRuntime(responses={"topics": "bad", "action_items": "bad"})

        with self.assertRaises(AnalysisFailed) as ctx:
            make_orchestrator(runtime).analyze(TRANSCRIPT)

        self.assertEqual(ctx.exception.stage, "action items")

    def test_best_effort_keeps_successful_stages(self):
        runtime = FakeBedrockRuntime(responses={"topics": "not json"})

        analysis = make_orchestrator(runtime).analyze_best_effort(TRANSCRIPT)

        self.assertFalse(analysis.complete)
        self.assertIsNotNone(analysis.summary)
        self.assertEqual(analysis.topics, [])
        self.assertEqual(analysis.warnings, ["Failed to extract topics - continuing with other analysis"])

    def test_unconfigured_provider_raises_before_any_call(self):
        orchestrator = make_orchestrator(configured=False)

        with self.assertRaises(AIUnavailable):
            orchestrator.analyze(TRANSCRIPT)


class TestStreamingAnalysis(unittest.TestCase):

    def run_stream(self, orchestrator, **kwargs):
        events = []
        finished = orchestrator.stream_analysis(TRANSCRIPT, events.append, **kwargs)
        return finished, events

    def test_event_order_when_all_stages_succeed(self):
        runtime = FakeBedrockRuntime()
        finished, events = self.run_stream(make_orchestrator(runtime))

        self.assertTrue(finished)
        self.assertEqual(
            [type(event) for event in events],
            [StatusEvent, SummaryEvent, StatusEvent, ActionItemsEvent, StatusEvent, TopicsEvent, CompleteEvent],
        )
        self.assertEqual(runtime.stages_called(), ["summary", "action_items", "topics"])
        self.assertEqual(events[0].content, "Generating executive summary...")

    def test_failed_stage_becomes_warning(self):
        runtime = FakeBedrockRuntime(responses={"summary": "```json\n{oops\n```"})
        finished, events = self.run_stream(make_orchestrator(runtime))

        self.assertTrue(finished)
        warnings = [event for event in events if isinstance(event, WarningEvent)]
        self.assertEqual(len(warnings), 1)
        self.assertEqual(warnings[0].content, "Failed to generate summary - continuing with other analysis")
        self.assertIsInstance(events[-1], CompleteEvent)

    def test_every_stage_failing_still_completes(self):
        runtime = FakeBedrockRuntime(responses={"summary": "x", "action_items": "y", "topics": "z"})
        finished, events = self.run_stream(make_orchestrator(runtime))

        self.assertTrue(finished)
        self.assertEqual(sum(isinstance(event, WarningEvent) for event in events), 3)
        self.assertEqual(sum(event.terminal for event in events), 1)
        self.assertIsInstance(events[-1], CompleteEvent)

    def test_unconfigured_provider_emits_single_error(self):
        finished, events = self.run_stream(make_orchestrator(configured=False))

        self.assertFalse(finished)
        self.assertEqual(len(events), 1)
        self.assertIsInstance(events[0], ErrorEvent)

    def test_should_stop_prevents_later_stages(self):
        runtime = FakeBedrockRuntime()
        stops = iter([False, True])
        finished, events = self.run_stream(make_orchestrator(runtime), should_stop=lambda: next(stops))

        self.assertFalse(finished)
        self.assertEqual(runtime.stages_called(), ["summary"])
        self.assertNotIsInstance(events[-1], CompleteEvent)

    def test_interrupted_delay_stops_stream(self):
        runtime = FakeBedrockRuntime()
        orchestrator = AnalysisOrchestrator(
            make_orchestrator(runtime).client, ProcessingSettings(stage_delay_seconds=2.0)
        )
        delays = []

        def wait_for(seconds):
            delays.append(seconds)
            return True

        finished, _ = self.run_stream(orchestrator, wait_for=wait_for)

        self.assertFalse(finished)
        self.assertEqual(delays, [2.0])
        self.assertEqual(runtime.stages_called(), ["summary"])

    def test_emit_errors_propagate(self):
        def emit(event):
            raise RuntimeError("transport gone")

        with self.assertRaises(RuntimeError):
            make_orchestrator(FakeBedrockRuntime()).stream_analysis(TRANSCRIPT, emit)


if __name__ == "__main__":
    unittest.main()

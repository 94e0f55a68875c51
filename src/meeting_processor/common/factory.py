"""Wiring of settings into the store, AI client, orchestrator and processor."""

import logging
from typing import Optional

from meeting_processor.common.bedrock_client import BedrockClient
from meeting_processor.common.config import AppSettings, StoreSettings
from meeting_processor.common.orchestrator import AnalysisOrchestrator
from meeting_processor.common.s3_store import S3MeetingStore
from meeting_processor.common.s3io import S3Client
from meeting_processor.common.state_machine import MeetingProcessor
from meeting_processor.common.store import InMemoryMeetingStore, MeetingStore

logger = logging.getLogger(__name__)


def build_store(settings: StoreSettings) -> MeetingStore:
    if settings.backend == "memory":
        logger.info("Using in-memory meeting store")
        return InMemoryMeetingStore()
    if settings.backend == "s3":
        logger.info(f"Using S3 meeting store s3://{settings.bucket}/{settings.prefix}")
        return S3MeetingStore(S3Client(settings.bucket, region=settings.region), prefix=settings.prefix)
    raise ValueError(f"Unknown MEETING_STORE backend: {settings.backend}")


def build_meeting_processor(
    settings: Optional[AppSettings] = None,
    store: Optional[MeetingStore] = None,
    bedrock_client: Optional[BedrockClient] = None,
) -> MeetingProcessor:
    """Assemble a ``MeetingProcessor`` from settings, loading them from the environment if omitted."""
    settings = settings or AppSettings.from_env()
    client = bedrock_client or BedrockClient(settings.ai)
    if not client.is_configured:
        logger.warning("Bedrock is not configured - meetings will get transcripts only")
    orchestrator = AnalysisOrchestrator(client, settings.processing)
    return MeetingProcessor(store or build_store(settings.store), orchestrator)

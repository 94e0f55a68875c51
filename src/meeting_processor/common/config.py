"""
Configuration for the meeting processing pipeline.

Settings are read from the environment once, at startup, and injected into
the components that need them. Nothing in the pipeline consults
``os.environ`` at call time.
"""

import logging
import os
from typing import List, Mapping, Optional

import boto3
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_MODEL_ID = "global.anthropic.claude-haiku-4-5-20251001-v1:0"
DEFAULT_FALLBACK_MODEL_ID = "meta.llama3-2-3b-instruct-v1:0"


class AISettings(BaseModel):
    """Bedrock access settings for the AI client."""

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None
    # Credentials resolved by the boto3 default chain when the client is built
    use_default_chain: bool = False
    region: str = "us-east-1"
    primary_model_id: str = DEFAULT_PRIMARY_MODEL_ID
    fallback_model_id: str = DEFAULT_FALLBACK_MODEL_ID
    max_retries: int = Field(default=3, ge=1)
    max_tokens: int = Field(default=4096, gt=0)
    read_timeout: int = 300
    connect_timeout: int = 60

    @property
    def has_credentials(self) -> bool:
        return self.has_explicit_keys or self.use_default_chain

    @property
    def has_explicit_keys(self) -> bool:
        return bool(self.aws_access_key_id and self.aws_secret_access_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AISettings":
        """
        Build AI settings from environment variables.

        Explicit ``AWS_ACCESS_KEY_ID``/``AWS_SECRET_ACCESS_KEY`` win; otherwise
        the boto3 default credential chain is checked once, here. Chain
        credentials are not copied into the settings; the Bedrock client
        resolves them through its own session so they keep refreshing.
        """
        env = os.environ if environ is None else environ
        region = env.get("REGION") or env.get("AWS_REGION") or "us-east-1"

        access_key = env.get("AWS_ACCESS_KEY_ID")
        secret_key = env.get("AWS_SECRET_ACCESS_KEY")
        session_token = env.get("AWS_SESSION_TOKEN")
        use_default_chain = False

        if not (access_key and secret_key) and environ is None:
            if boto3.Session(region_name=region).get_credentials() is not None:
                use_default_chain = True
            else:
                logger.warning("No AWS credentials found - AI analysis will be unavailable")

        return cls(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            aws_session_token=session_token,
            use_default_chain=use_default_chain,
            region=region,
            primary_model_id=env.get("BEDROCK_PRIMARY_MODEL_ID", DEFAULT_PRIMARY_MODEL_ID),
            fallback_model_id=env.get("BEDROCK_FALLBACK_MODEL_ID", DEFAULT_FALLBACK_MODEL_ID),
            max_retries=int(env.get("BEDROCK_MAX_RETRIES", "3")),
            max_tokens=int(env.get("BEDROCK_MAX_TOKENS", "4096")),
        )


class ProcessingSettings(BaseModel):
    """Tuning knobs for the analysis stages."""

    stage_delay_seconds: float = Field(default=2.0, ge=0)
    batch_workers: int = Field(default=3, ge=1)
    summary_char_limit: int = Field(default=4000, gt=0)
    extraction_char_limit: int = Field(default=3000, gt=0)
    temperature: float = Field(default=0.1, ge=0, le=1)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProcessingSettings":
        env = os.environ if environ is None else environ
        return cls(stage_delay_seconds=float(env.get("STAGE_DELAY_SECONDS", "2.0")))


class StoreSettings(BaseModel):
    backend: str = "s3"  # s3 | memory
    bucket: Optional[str] = None
    prefix: str = "meetings/"
    region: str = "us-east-1"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreSettings":
        env = os.environ if environ is None else environ
        return cls(
            backend=env.get("MEETING_STORE", "s3").lower(),
            bucket=env.get("BUCKET"),
            prefix=env.get("MEETING_PREFIX", "meetings/"),
            region=env.get("REGION", "us-east-1"),
        )


class AppSettings(BaseModel):
    ai: AISettings = Field(default_factory=AISettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3001"])
    log_level: str = "INFO"

    @property
    def cors_origin(self) -> str:
        return self.cors_origins[0] if self.cors_origins else "*"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        env = os.environ if environ is None else environ
        origins = [o.strip() for o in env.get("CORS_ORIGINS", "").split(",") if o.strip()]
        return cls(
            ai=AISettings.from_env(environ),
            processing=ProcessingSettings.from_env(environ),
            store=StoreSettings.from_env(environ),
            cors_origins=origins or ["http://localhost:3001"],
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

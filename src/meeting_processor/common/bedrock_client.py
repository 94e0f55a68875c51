"""
Amazon Bedrock client utilities for the meeting processing pipeline.

Provides a single text-generation call that tries the primary model and falls
back to a secondary model when the primary is rate limited.
"""

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from meeting_processor.common.config import AISettings
from meeting_processor.common.errors import AIUnavailable, UpstreamRateLimited

logger = logging.getLogger(__name__)

RATE_LIMIT_CODES = {"ThrottlingException", "TooManyRequestsException"}
RATE_LIMIT_PHRASES = ("rate limit", "too many requests")


def is_rate_limited(error: Exception) -> bool:
    """
    Decide whether an error signals upstream rate limiting.

    Checks the HTTP status code and error code of botocore errors first, then
    falls back to looking for well-known phrases in the message.
    """
    if isinstance(error, ClientError):
        response = error.response or {}
        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        code = response.get("Error", {}).get("Code", "")
        if status == 429 or code in RATE_LIMIT_CODES:
            return True

    status = getattr(error, "status_code", None)
    if status == 429:
        return True

    message = str(error).lower()
    return any(phrase in message for phrase in RATE_LIMIT_PHRASES)


class BedrockClient:
    """Client for text generation through Amazon Bedrock."""

    def __init__(self, settings: AISettings, client: Optional[Any] = None):
        """
        Initialize Bedrock client.

        Args:
            settings: Injected AI settings (credentials, models, retries)
            client: Pre-built ``bedrock-runtime`` client, mainly for tests
        """
        self.settings = settings
        self.client = client

        if self.client is None and settings.has_credentials:
            # Transient failures are retried by botocore itself
            config = Config(
                read_timeout=settings.read_timeout,
                connect_timeout=settings.connect_timeout,
                retries={"max_attempts": settings.max_retries, "mode": "standard"},
            )
            if settings.has_explicit_keys:
                self.client = boto3.client(
                    "bedrock-runtime",
                    region_name=settings.region,
                    aws_access_key_id=settings.aws_access_key_id,
                    aws_secret_access_key=settings.aws_secret_access_key,
                    aws_session_token=settings.aws_session_token,
                    config=config,
                )
            else:
                # Session-resolved credentials stay refreshable (instance or assumed roles)
                session = boto3.Session(region_name=settings.region)
                self.client = session.client("bedrock-runtime", config=config)

    @property
    def is_configured(self) -> bool:
        return self.settings.has_credentials and self.client is not None

    def generate(self, prompt: str, temperature: float = 0.1) -> str:
        """
        Generate text for a prompt, falling back on rate limiting.

        Args:
            prompt: Full prompt text
            temperature: Sampling temperature

        Returns:
            Raw model output text

        Raises:
            AIUnavailable: If no credentials are configured (no network call is made)
            UpstreamRateLimited: If both primary and fallback models are rate limited
        """
        if not self.is_configured:
            raise AIUnavailable()

        try:
            return self._converse(self.settings.primary_model_id, prompt, temperature)
        except Exception as e:
            if not is_rate_limited(e):
                raise
            logger.warning(
                "Primary model %s rate limited, trying fallback model %s...",
                self.settings.primary_model_id,
                self.settings.fallback_model_id,
            )

        try:
            return self._converse(self.settings.fallback_model_id, prompt, temperature)
        except Exception as e:
            if is_rate_limited(e):
                logger.error("Fallback model %s also rate limited", self.settings.fallback_model_id)
                raise UpstreamRateLimited(f"Both models rate limited: {e}") from e
            raise

    def _converse(self, model_id: str, prompt: str, temperature: float) -> str:
        response = self.client.converse(
            modelId=model_id,
            messages=[{"role": "user", "content": [{"text": prompt}]}],
            inferenceConfig={
                "temperature": temperature,
                "maxTokens": self.settings.max_tokens,
            },
        )

        content = response.get("output", {}).get("message", {}).get("content", [])
        text = "".join(block.get("text", "") for block in content if isinstance(block, dict))
        logger.debug(f"Model {model_id} returned {len(text)} characters")
        return text

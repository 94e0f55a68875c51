"""
S3 I/O utilities for the meeting processing pipeline.

Provides convenient functions for reading and writing objects in S3, with
storage errors surfaced as ``PersistenceFailure``.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from meeting_processor.common.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class S3Client:
    """Client for S3 operations in the meeting pipeline."""

    def __init__(self, bucket_name: Optional[str], region: str = "us-east-1", client: Optional[Any] = None):
        """
        Initialize S3 client.

        Args:
            bucket_name: S3 bucket name
            region: AWS region
            client: Pre-built boto3 S3 client, mainly for tests
        """
        if not bucket_name:
            raise ValueError("BUCKET environment variable is required")

        self.bucket_name = bucket_name
        self.region = region
        self.client = client or boto3.client("s3", region_name=self.region)

    def read_bytes(self, key: str) -> bytes:
        """
        Read an object from S3.

        Args:
            key: S3 object key/path

        Returns:
            Object contents

        Raises:
            FileNotFoundError: If the object does not exist
            PersistenceFailure: If the object cannot be read
        """
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
            return response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("NoSuchKey", "404"):
                raise FileNotFoundError(f"File not found: s3://{self.bucket_name}/{key}") from e
            logger.error(f"S3 error reading {key}: {e}")
            raise PersistenceFailure(f"Failed to read file from S3: {e}") from e
        except BotoCoreError as e:
            logger.error(f"AWS SDK error reading {key}: {e}")
            raise PersistenceFailure(f"Failed to read file from S3: {e}") from e

    def read_text_file(self, key: str) -> str:
        return self.read_bytes(key).decode("utf-8")

    def write_text_file(self, key: str, content: str, content_type: str = "text/plain") -> None:
        self.write_bytes(key, content.encode("utf-8"), content_type=content_type)

    def write_bytes(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """
        Write an object to S3.

        Raises:
            PersistenceFailure: If the object cannot be written
        """
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
            logger.debug(f"Wrote s3://{self.bucket_name}/{key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 error writing {key}: {e}")
            raise PersistenceFailure(f"Failed to write file to S3: {e}") from e

    def read_json_file(self, key: str) -> Dict[str, Any]:
        """
        Read and parse a JSON file from S3.

        Raises:
            FileNotFoundError: If the object does not exist
            PersistenceFailure: If the object cannot be read or parsed
        """
        content = self.read_text_file(key)
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON from {key}: {e}")
            raise PersistenceFailure(f"Invalid JSON in file {key}: {e}") from e

    def write_json_file(self, key: str, data: Dict[str, Any], indent: int = 2) -> None:
        content = json.dumps(data, indent=indent, ensure_ascii=False)
        self.write_text_file(key, content, content_type="application/json")

    def list_keys(self, prefix: str) -> List[str]:
        """
        List object keys under a prefix, sorted.

        Raises:
            PersistenceFailure: If the listing fails
        """
        keys: List[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 error listing {prefix}: {e}")
            raise PersistenceFailure(f"Failed to list S3 prefix {prefix}: {e}") from e
        return sorted(keys)

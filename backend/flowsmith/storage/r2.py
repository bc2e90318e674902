"""
Cloudflare R2 (S3-compatible) storage client.
Holds the full n8n node definitions, one JSON object per key.
"""
import asyncio
import logging
import os
from typing import Optional

import boto3
from botocore.client import BaseClient
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Bucket holding one definition file per node type
R2_NODES_BUCKET = os.getenv("R2_NODES_BUCKET", "n8n-nodes")

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class R2Client:
    """Singleton R2 client wrapper."""

    _instance: Optional['R2Client'] = None
    _client: Optional[BaseClient] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._client is None:
            endpoint_url = os.getenv("R2_ENDPOINT")
            access_key_id = os.getenv("R2_ACCESS_KEY_ID")
            secret_access_key = os.getenv("R2_SECRET_ACCESS_KEY")

            if not endpoint_url:
                raise ValueError("R2_ENDPOINT environment variable is required")
            if not access_key_id:
                raise ValueError("R2_ACCESS_KEY_ID environment variable is required")
            if not secret_access_key:
                raise ValueError("R2_SECRET_ACCESS_KEY environment variable is required")

            try:
                self._client = boto3.client(
                    "s3",
                    endpoint_url=endpoint_url,
                    aws_access_key_id=access_key_id,
                    aws_secret_access_key=secret_access_key,
                    region_name="auto"
                )
            except Exception as e:
                raise ValueError(f"Failed to create R2 client: {str(e)}")

    @property
    def client(self) -> BaseClient:
        """Get the R2 client instance."""
        if self._client is None:
            raise RuntimeError("R2 client not initialized. Check environment variables.")
        return self._client


def get_r2() -> R2Client:
    """Get the R2 client singleton."""
    return R2Client()


async def get_node_definition(key: str) -> Optional[str]:
    """
    Read one node definition from the nodes bucket.

    Returns None when the key does not exist. Any other storage error is raised.
    """
    def _read() -> Optional[str]:
        try:
            obj = get_r2().client.get_object(Bucket=R2_NODES_BUCKET, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                return None
            raise
        body = obj["Body"]
        try:
            return body.read().decode("utf-8")
        finally:
            body.close()

    return await asyncio.to_thread(_read)

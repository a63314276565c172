# app/services/storage.py
import logging
import mimetypes
import os
import time
from functools import lru_cache
from typing import Optional

import boto3
from botocore.exceptions import ClientError
from slugify import slugify

from app.config import settings
from app.exceptions import NotFound, StorageError

logger = logging.getLogger(__name__)


class ProofStorage:
    """Payment screenshots in the private R2 bucket"""

    def __init__(self, client, bucket: str, prefix: str = "payment_proofs"):
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def build_key(self, order_id: str, content_type: str, filename: Optional[str] = None) -> str:
        stem, ext = os.path.splitext(filename or "")
        ext = ext.lower() or mimetypes.guess_extension(content_type) or ""
        name = slugify(stem) or "screenshot"
        return f"{self.prefix}/{order_id}/{int(time.time())}_{name}{ext}"

    def store(self, data: bytes, content_type: str, order_id: str, filename: Optional[str] = None) -> str:
        key = self.build_key(order_id, content_type, filename)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.exception(f"Screenshot upload failed for order {order_id}")
            raise StorageError(f"Upload failed: {e}")

        logger.info(f"Stored screenshot {key} ({len(data)} bytes)")
        return key

    def fetch(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                raise NotFound("Screenshot not found")
            logger.exception(f"Screenshot download failed for {key}")
            raise StorageError(f"Download failed: {e}")

        return response["Body"].read()

    def delete(self, key: str):
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError:
            logger.warning(f"Could not delete orphaned screenshot {key}", exc_info=True)


@lru_cache(maxsize=1)
def get_storage() -> ProofStorage:
    client = boto3.client(
        "s3",
        endpoint_url=settings.r2_endpoint_url,
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        region_name="auto",
    )
    return ProofStorage(client, settings.r2_bucket_name, settings.proof_key_prefix)

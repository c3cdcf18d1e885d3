"""
Blob store client for S3-compatible object storage.

Every call is wrapped in a bounded retry loop with exponential backoff.
Retrying is safe because each upload writes under a freshly generated,
never reused object name, and removals are idempotent.
"""

import time
from typing import Any, BinaryIO, Dict, List, Optional

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from sgs.config import env
from sgs.config.constants import (
  STORE_MULTIPART_CHUNKSIZE,
  STORE_MULTIPART_THRESHOLD,
)
from sgs.exceptions import StoreError
from sgs.logger import logger

# Error codes where a retry cannot change the outcome
NON_RETRYABLE_CODES = {
  "AccessDenied",
  "InvalidBucketName",
  "NoSuchBucket",
  "NoSuchKey",
  "BucketAlreadyExists",
  "BucketAlreadyOwnedByYou",
  "BucketNotEmpty",
  "InvalidAccessKeyId",
  "SignatureDoesNotMatch",
  "404",
}
SECURITY_CODES = {"AccessDenied", "InvalidAccessKeyId", "SignatureDoesNotMatch"}
BUCKET_EXISTS_CODES = {"BucketAlreadyExists", "BucketAlreadyOwnedByYou"}


def _error_code(error: Exception) -> str:
  if isinstance(error, ClientError):
    return error.response.get("Error", {}).get("Code", "")
  return ""


class BlobStore:
  """
  Bucket and object operations used by the saga coordinator and read paths.

  Failures surface as ``StoreError`` with ``details["s3_error_code"]`` set
  when the store returned one.
  """

  def __init__(
    self,
    client: Any = None,
    max_retries: Optional[int] = None,
    retry_base_delay: Optional[float] = None,
  ):
    self.client = client or boto3.client("s3", **env.get_store_config())
    self.max_retries = max(1, max_retries or env.STORE_MAX_RETRIES)
    self.retry_base_delay = (
      env.STORE_RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay
    )
    self.region_name = self.client.meta.region_name
    self.transfer_config = TransferConfig(
      multipart_threshold=STORE_MULTIPART_THRESHOLD,
      multipart_chunksize=STORE_MULTIPART_CHUNKSIZE,
    )

  def _call(self, operation: str, func, *args, rewind: Optional[BinaryIO] = None, **kwargs):
    """Run ``func`` with bounded retries, raising StoreError when exhausted."""
    for attempt in range(self.max_retries):
      try:
        if rewind is not None:
          rewind.seek(0)
        return func(*args, **kwargs)

      except (ClientError, BotoCoreError) as e:
        error_code = _error_code(e)

        if error_code in SECURITY_CODES:
          logger.critical(
            f"Blob store security error {error_code} during {operation}: {e}"
          )

        if error_code in NON_RETRYABLE_CODES or attempt == self.max_retries - 1:
          if error_code not in NON_RETRYABLE_CODES:
            logger.error(
              f"Blob store {operation} failed after {self.max_retries} attempts: {e}"
            )
          raise StoreError(
            f"Blob store {operation} failed",
            operation=operation,
            s3_error_code=error_code or None,
          ) from e

        wait_time = self.retry_base_delay * (2**attempt)
        logger.warning(
          f"Blob store {operation} attempt {attempt + 1} failed, "
          f"retrying in {wait_time}s: {e}"
        )
        time.sleep(wait_time)

  # ------------------------------------------------------------------
  # Buckets
  # ------------------------------------------------------------------

  def create_bucket(self, bucket: str) -> None:
    params: Dict[str, Any] = {"Bucket": bucket}
    if self.region_name and self.region_name != "us-east-1":
      params["CreateBucketConfiguration"] = {"LocationConstraint": self.region_name}
    self._call("create_bucket", self.client.create_bucket, **params)
    logger.debug(f"Created bucket {bucket}")

  def remove_bucket(self, bucket: str) -> None:
    """
    Empty and delete a bucket. A bucket that no longer exists counts as
    removed.
    """
    try:
      for key in self.list_objects(bucket):
        self.remove_object(bucket, key)
      self._call("remove_bucket", self.client.delete_bucket, Bucket=bucket)
    except StoreError as e:
      if e.details.get("s3_error_code") == "NoSuchBucket":
        logger.debug(f"Bucket {bucket} already removed")
        return
      raise
    logger.debug(f"Removed bucket {bucket}")

  def bucket_exists(self, bucket: str) -> bool:
    try:
      self._call("head_bucket", self.client.head_bucket, Bucket=bucket)
      return True
    except StoreError as e:
      if e.details.get("s3_error_code") in ("404", "NoSuchBucket"):
        return False
      raise

  def list_buckets(self) -> List[str]:
    response = self._call("list_buckets", self.client.list_buckets)
    return [b["Name"] for b in response.get("Buckets", [])]

  # ------------------------------------------------------------------
  # Objects
  # ------------------------------------------------------------------

  def put_object(
    self,
    bucket: str,
    object_name: str,
    stream: BinaryIO,
    content_type: Optional[str] = None,
  ) -> None:
    """Stream a seekable payload into the store."""
    extra_args = {"ContentType": content_type} if content_type else None
    self._call(
      "put_object",
      self.client.upload_fileobj,
      stream,
      bucket,
      object_name,
      ExtraArgs=extra_args,
      Config=self.transfer_config,
      rewind=stream,
    )
    logger.debug(f"Uploaded s3://{bucket}/{object_name}")

  def get_object(self, bucket: str, object_name: str) -> Dict[str, Any]:
    """
    Open an object for reading.

    Returns a dict with ``body`` (a streaming body), ``content_type`` and
    ``content_length``.
    """
    response = self._call(
      "get_object", self.client.get_object, Bucket=bucket, Key=object_name
    )
    return {
      "body": response["Body"],
      "content_type": response.get("ContentType"),
      "content_length": response.get("ContentLength"),
    }

  def remove_object(self, bucket: str, object_name: str) -> None:
    """
    Delete an object. A missing key, or a bucket that no longer exists,
    counts as removed.
    """
    try:
      self._call(
        "remove_object", self.client.delete_object, Bucket=bucket, Key=object_name
      )
    except StoreError as e:
      if e.details.get("s3_error_code") == "NoSuchBucket":
        logger.debug(f"Bucket {bucket} already removed; nothing left at {object_name}")
        return
      raise
    logger.debug(f"Removed s3://{bucket}/{object_name}")

  def list_objects(self, bucket: str) -> List[str]:
    keys: List[str] = []
    paginator = self.client.get_paginator("list_objects_v2")
    pages = self._call("list_objects", lambda: list(paginator.paginate(Bucket=bucket)))
    for page in pages:
      keys.extend(obj["Key"] for obj in page.get("Contents", []))
    return keys

  def ping(self) -> bool:
    """Check connectivity for health reporting."""
    try:
      self.client.list_buckets()
      return True
    except (ClientError, BotoCoreError) as e:
      logger.warning(f"Blob store health check failed: {e}")
      return False

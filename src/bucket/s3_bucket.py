import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from .errors import not_found
from .ibucket import (
    Attributes,
    BlobReader,
    BlobWriter,
    BufferedWriter,
    IBucket,
    ListObject,
    ListPage,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(e: ClientError) -> bool:
    return str(e.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


class S3Reader(BlobReader):
    def __init__(self, body):
        self._body = body

    async def read(self, n: int = -1) -> bytes:
        if n is None or n < 0:
            return await asyncio.to_thread(self._body.read)
        return await asyncio.to_thread(self._body.read, n)

    async def close(self):
        await asyncio.to_thread(self._body.close)


class S3Bucket(IBucket):
    """
    Implements IBucket for an Amazon S3 (or S3-compatible) bucket.
    boto3 is synchronous, so every call runs in a worker thread.
    """

    def __init__(
        self,
        bucket_name: str,
        client: Any = None,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        """
        Args:
            bucket_name: Name of the S3 bucket
            client: Pre-configured boto3 S3 client; one is built from the default
                credential chain when omitted
            region_name: AWS region used when building the client
            endpoint_url: Custom endpoint (MinIO, localstack) used when building the client
        """
        if not bucket_name:
            raise ValueError("S3 bucket name is required.")
        self.bucket_name = bucket_name
        if client is None:
            client = boto3.client("s3", region_name=region_name, endpoint_url=endpoint_url)
        self._client = client
        logger.info(f"Initialized S3Bucket for bucket: {bucket_name}")

    async def attributes(self, name: str) -> Attributes:
        try:
            head = await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket_name, Key=name
            )
        except ClientError as e:
            if _is_not_found(e):
                raise not_found(name)
            raise
        return Attributes(
            size=head["ContentLength"],
            mod_time=head.get("LastModified"),
            etag=head.get("ETag"),
            content_type=head.get("ContentType"),
        )

    async def new_reader(self, name: str) -> BlobReader:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket_name, Key=name
            )
        except ClientError as e:
            if _is_not_found(e):
                raise not_found(name)
            raise
        return S3Reader(response["Body"])

    async def new_writer(self, name: str) -> BlobWriter:
        async def commit(data: bytes):
            try:
                await asyncio.to_thread(
                    self._client.put_object, Bucket=self.bucket_name, Key=name, Body=data
                )
            except Exception as e:
                logger.error(f"Error saving bytes to s3://{self.bucket_name}/{name}: {e}")
                raise
            logger.debug(f"Saved {len(data)} bytes to s3://{self.bucket_name}/{name}")

        return BufferedWriter(commit)

    async def delete(self, name: str):
        # S3 deletes succeed for missing keys, so existence is checked first.
        await self.attributes(name)
        await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket_name, Key=name)
        logger.debug(f"Deleted s3://{self.bucket_name}/{name}")

    async def list_page(
        self, prefix: str, page_size: int, page_token: Optional[str] = None
    ) -> ListPage:
        kwargs = {"Bucket": self.bucket_name, "Prefix": prefix, "MaxKeys": page_size}
        if page_token:
            kwargs["ContinuationToken"] = page_token
        response = await asyncio.to_thread(self._client.list_objects_v2, **kwargs)
        objects = [
            ListObject(key=obj["Key"], size=obj.get("Size", 0), mod_time=obj.get("LastModified"))
            for obj in response.get("Contents", [])
        ]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListPage(objects=objects, next_page_token=next_token)

    async def close(self):
        await asyncio.to_thread(self._client.close)

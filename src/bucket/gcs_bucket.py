import asyncio
import logging
from typing import Any, Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from .errors import not_found
from .ibucket import (
    Attributes,
    BlobReader,
    BlobWriter,
    BufferedWriter,
    BytesReader,
    IBucket,
    ListObject,
    ListPage,
)

logger = logging.getLogger(__name__)


class GCSBucket(IBucket):
    """
    Implements IBucket for a Google Cloud Storage bucket.

    Authentication is left to google-auth: either application default
    credentials or credentials supplied by the caller. The client library is
    synchronous, so calls run in worker threads.
    """

    def __init__(
        self,
        bucket_name: str,
        client: Optional[storage.Client] = None,
        credentials: Any = None,
        project: Optional[str] = None,
    ):
        if not bucket_name:
            raise ValueError("GCS bucket name is required.")
        self.bucket_name = bucket_name
        if client is None:
            client = storage.Client(project=project, credentials=credentials)
        self._client = client
        self._bucket = client.bucket(bucket_name)
        logger.info(f"Initialized GCSBucket for bucket: {bucket_name}")

    async def attributes(self, name: str) -> Attributes:
        blob = await asyncio.to_thread(self._bucket.get_blob, name)
        if blob is None:
            raise not_found(name)
        return Attributes(
            size=blob.size or 0,
            mod_time=blob.updated,
            etag=blob.etag,
            content_type=blob.content_type,
        )

    async def exists(self, name: str) -> bool:
        return await asyncio.to_thread(self._bucket.blob(name).exists)

    async def new_reader(self, name: str) -> BlobReader:
        blob = self._bucket.blob(name)
        try:
            data = await asyncio.to_thread(blob.download_as_bytes)
        except NotFound:
            raise not_found(name)
        return BytesReader(data)

    async def new_writer(self, name: str) -> BlobWriter:
        async def commit(data: bytes):
            blob = self._bucket.blob(name)
            try:
                await asyncio.to_thread(
                    blob.upload_from_string, data, content_type="application/octet-stream"
                )
            except Exception as e:
                logger.error(f"Error saving bytes to gs://{self.bucket_name}/{name}: {e}")
                raise
            logger.debug(f"Saved {len(data)} bytes to gs://{self.bucket_name}/{name}")

        return BufferedWriter(commit)

    async def delete(self, name: str):
        try:
            await asyncio.to_thread(self._bucket.blob(name).delete)
        except NotFound:
            raise not_found(name)
        logger.debug(f"Deleted gs://{self.bucket_name}/{name}")

    def _fetch_page(self, prefix: str, page_size: int, page_token: Optional[str]) -> ListPage:
        iterator = self._client.list_blobs(
            self.bucket_name, prefix=prefix or None, page_size=page_size, page_token=page_token
        )
        page = next(iterator.pages, None)
        if page is None:
            return ListPage()
        objects = [
            ListObject(key=blob.name, size=blob.size or 0, mod_time=blob.updated)
            for blob in page
        ]
        return ListPage(objects=objects, next_page_token=iterator.next_page_token)

    async def list_page(
        self, prefix: str, page_size: int, page_token: Optional[str] = None
    ) -> ListPage:
        return await asyncio.to_thread(self._fetch_page, prefix, page_size, page_token)

    async def close(self):
        await asyncio.to_thread(self._client.close)

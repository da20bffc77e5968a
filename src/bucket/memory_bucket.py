import bisect
import hashlib
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

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


class MemoryBucket(IBucket):
    """Bucket kept in process memory. Listing is in lexicographic name order."""

    def __init__(self):
        self._objects: Dict[str, Tuple[bytes, datetime]] = {}
        self._closed = False
        logger.debug("Initialized MemoryBucket")

    def _check_open(self):
        if self._closed:
            raise ValueError("bucket is closed")

    async def attributes(self, name: str) -> Attributes:
        self._check_open()
        if name not in self._objects:
            raise not_found(name)
        data, mod_time = self._objects[name]
        return Attributes(
            size=len(data),
            mod_time=mod_time,
            etag=hashlib.md5(data).hexdigest(),
        )

    async def exists(self, name: str) -> bool:
        self._check_open()
        return name in self._objects

    async def new_reader(self, name: str) -> BlobReader:
        self._check_open()
        if name not in self._objects:
            raise not_found(name)
        return BytesReader(self._objects[name][0])

    async def new_writer(self, name: str) -> BlobWriter:
        self._check_open()

        async def commit(data: bytes):
            self._check_open()
            self._objects[name] = (data, datetime.now(timezone.utc))
            logger.debug(f"Stored {len(data)} bytes in memory object {name}")

        return BufferedWriter(commit)

    async def delete(self, name: str):
        self._check_open()
        if name not in self._objects:
            raise not_found(name)
        del self._objects[name]

    async def list_page(
        self, prefix: str, page_size: int, page_token: Optional[str] = None
    ) -> ListPage:
        self._check_open()
        names = sorted(n for n in self._objects if n.startswith(prefix))
        start = bisect.bisect_right(names, page_token) if page_token else 0
        selected = names[start:start + page_size]
        objects = [
            ListObject(key=n, size=len(self._objects[n][0]), mod_time=self._objects[n][1])
            for n in selected
        ]
        next_token = None
        if start + page_size < len(names):
            next_token = selected[-1]
        return ListPage(objects=objects, next_page_token=next_token)

    async def close(self):
        self._closed = True
        self._objects.clear()

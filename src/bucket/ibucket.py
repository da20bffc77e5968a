import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from .errors import ErrorCode, error_code

# Page size used when listing; matches the largest page most providers return.
DEFAULT_PAGE_SIZE = 1000


@dataclass
class Attributes:
    """Metadata of a stored object."""

    size: int
    mod_time: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ListObject:
    """
    A single item returned by a bucket listing.

    Attributes:
        key: Full object name
        size: Size of the object in bytes (0 for directory entries)
        mod_time: Last modification time, when the provider reports one
        is_dir: True for pseudo-entries standing for a common prefix
    """

    key: str
    size: int = 0
    mod_time: Optional[datetime] = None
    is_dir: bool = False


@dataclass
class ListPage:
    objects: List[ListObject] = field(default_factory=list)
    next_page_token: Optional[str] = None


class BlobReader(abc.ABC):
    """Readable stream over one object. Always close it, preferably via `async with`."""

    @abc.abstractmethod
    async def read(self, n: int = -1) -> bytes:
        """Reads up to n bytes, or everything left when n is negative."""
        pass

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class BlobWriter(abc.ABC):
    """Writable sink for one object. The object becomes visible when close() succeeds."""

    @abc.abstractmethod
    async def write(self, data: bytes) -> int:
        pass

    @abc.abstractmethod
    async def close(self):
        """Commits the written bytes."""
        pass

    async def abort(self):
        """Discards the written bytes without committing."""
        pass


class BytesReader(BlobReader):
    """BlobReader over a payload that is already in memory."""

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0
        self._closed = False

    async def read(self, n: int = -1) -> bytes:
        if self._closed:
            raise ValueError("read from closed reader")
        if n is None or n < 0:
            end = len(self._data)
        else:
            end = min(self._pos + n, len(self._data))
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    async def close(self):
        self._closed = True


class BufferedWriter(BlobWriter):
    """
    BlobWriter that accumulates the payload and hands it to `commit` on close.
    Used by drivers whose SDK uploads a whole object in one call.
    """

    def __init__(self, commit: Callable[[bytes], Awaitable[None]]):
        self._commit = commit
        self._buffer = bytearray()
        self._closed = False

    async def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed writer")
        self._buffer.extend(data)
        return len(data)

    async def close(self):
        if self._closed:
            raise ValueError("writer already closed")
        self._closed = True
        await self._commit(bytes(self._buffer))

    async def abort(self):
        self._closed = True
        self._buffer.clear()


class ListIterator:
    """Async iterator over a prefix listing, fetching pages from the bucket lazily."""

    def __init__(self, bucket: "IBucket", prefix: str, page_size: int):
        self._bucket = bucket
        self._prefix = prefix
        self._page_size = page_size
        self._page: Optional[ListPage] = None
        self._index = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> ListObject:
        while self._page is None or self._index >= len(self._page.objects):
            if self._page is not None and not self._page.next_page_token:
                raise StopAsyncIteration
            token = self._page.next_page_token if self._page is not None else None
            self._page = await self._bucket.list_page(self._prefix, self._page_size, token)
            self._index = 0
        obj = self._page.objects[self._index]
        self._index += 1
        return obj


class IBucket(abc.ABC):
    """
    Interface for byte-level access to a bucket of named objects.
    Object names are opaque strings; '/' carries no meaning beyond prefix matching.
    Drivers raise BucketError(ErrorCode.NOT_FOUND) for missing objects and let
    every other SDK error propagate unchanged.
    """

    @abc.abstractmethod
    async def attributes(self, name: str) -> Attributes:
        """Returns the attributes of the object."""
        pass

    async def exists(self, name: str) -> bool:
        """Checks if the object exists."""
        try:
            await self.attributes(name)
        except Exception as e:
            if error_code(e) == ErrorCode.NOT_FOUND:
                return False
            raise
        return True

    @abc.abstractmethod
    async def new_reader(self, name: str) -> BlobReader:
        """Opens the object for reading."""
        pass

    @abc.abstractmethod
    async def new_writer(self, name: str) -> BlobWriter:
        """Opens the object for writing; an existing object is replaced on commit."""
        pass

    @abc.abstractmethod
    async def delete(self, name: str):
        """Deletes the object."""
        pass

    @abc.abstractmethod
    async def list_page(
        self, prefix: str, page_size: int, page_token: Optional[str] = None
    ) -> ListPage:
        """Returns one page of objects whose names start with prefix."""
        pass

    def list(self, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE) -> ListIterator:
        """Lists objects whose names start with prefix."""
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        return ListIterator(self, prefix, page_size)

    async def close(self):
        """Releases resources held by the bucket."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

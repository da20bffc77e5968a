import logging

from bucket import DEFAULT_PAGE_SIZE, ErrorCode, IBucket, error_code

from .errors import NotFoundError, UnsupportedQueryError
from .interfaces import IDatastore, KeyLike
from .key import Key, clean
from .query import Emit, Entry, Query, Result, Results

logger = logging.getLogger(__name__)


def _object_name(key: KeyLike) -> str:
    return str(key if isinstance(key, Key) else Key(key))


def _list_prefix(prefix: str) -> str:
    """Turns a query prefix into a listing prefix that only matches whole key segments."""
    prefix = clean(prefix)
    if prefix != "/":
        prefix += "/"
    return prefix


def _is_not_found(e: BaseException) -> bool:
    return error_code(e) == ErrorCode.NOT_FOUND


class CloudDatastore(IDatastore):
    """
    Implements IDatastore on top of a bucket. Each key is stored as one
    object named by the key string. Nothing is buffered or cached; the
    datastore owns the bucket and closes it on close().
    """

    def __init__(self, bucket: IBucket, bucket_name: str = "", list_page_size: int = DEFAULT_PAGE_SIZE):
        self.bucket = bucket
        self.bucket_name = bucket_name
        self.list_page_size = list_page_size
        logger.info(f"Initialized CloudDatastore on bucket: {bucket_name or type(bucket).__name__}")

    async def has(self, key: KeyLike) -> bool:
        return await self.bucket.exists(_object_name(key))

    async def get_size(self, key: KeyLike) -> int:
        """
        Returns the size of the value named by key. In some contexts, it may be
        much cheaper to only get the size of the value rather than the value itself.
        """
        name = _object_name(key)
        try:
            attrs = await self.bucket.attributes(name)
        except Exception as e:
            if _is_not_found(e):
                raise NotFoundError(name, size=-1) from e
            raise
        return attrs.size

    async def get(self, key: KeyLike) -> bytes:
        name = _object_name(key)
        try:
            reader = await self.bucket.new_reader(name)
        except Exception as e:
            if _is_not_found(e):
                raise NotFoundError(name) from e
            raise
        async with reader:
            return await reader.read()

    async def put(self, key: KeyLike, value: bytes):
        name = _object_name(key)
        writer = await self.bucket.new_writer(name)
        try:
            await writer.write(value)
        except Exception:
            try:
                await writer.abort()
            except Exception as abort_error:
                logger.warning(f"Ignoring error while discarding failed write of {name}: {abort_error}")
            raise
        await writer.close()

    async def delete(self, key: KeyLike):
        name = _object_name(key)
        try:
            await self.bucket.delete(name)
        except Exception as e:
            if _is_not_found(e):
                return
            raise

    async def sync(self, prefix: KeyLike):
        """
        Writes from put are persisted when the writer is closed, so there is
        nothing to flush. The underlying store may still be eventually consistent.
        """
        return None

    async def close(self):
        await self.bucket.close()

    async def query(self, q: Query) -> Results:
        """
        Runs q against the bucket listing. The prefix is applied by the bucket;
        offset and limit are applied while iterating.
        Filters and orders are not supported: serving them would mean reading
        every matching object, so such queries fail before touching the bucket.
        """
        if q.orders or q.filters:
            raise UnsupportedQueryError("filters or orders are not supported")

        async def produce(emit: Emit):
            await self._iterate_query(q, emit)

        return Results(q, produce)

    async def _iterate_query(self, q: Query, emit: Emit):
        """
        Skips the first q.offset objects of the listing, then emits up to
        q.limit entries. Directory entries count toward the offset but are never
        emitted.
        """
        offset = q.offset
        limit = q.limit
        objects = self.bucket.list(prefix=_list_prefix(q.prefix), page_size=self.list_page_size)

        # skip up to the offset; running out of objects here is an empty result
        while offset > 0:
            try:
                await objects.__anext__()
            except StopAsyncIteration:
                return
            offset -= 1

        while q.limit == 0 or limit > 0:
            try:
                obj = await objects.__anext__()
            except StopAsyncIteration:
                return
            if obj.is_dir:
                continue
            entry = Entry(key=obj.key)
            if q.returns_sizes:
                entry.size = obj.size
            if not q.keys_only:
                async with await self.bucket.new_reader(obj.key) as reader:
                    entry.value = await reader.read()
            await emit(Result(entry=entry))
            limit -= 1

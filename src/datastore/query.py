import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

# A filter keeps the entries for which it returns True.
Filter = Callable[["Entry"], bool]
# An order is a sort key function over entries.
Order = Callable[["Entry"], Any]


@dataclass
class Entry:
    """
    One query result.

    Attributes:
        key: Key string of the entry
        value: Stored bytes; None for keys-only queries
        size: Value size in bytes; None unless the query asked for sizes
    """

    key: str
    value: Optional[bytes] = None
    size: Optional[int] = None


@dataclass
class Result:
    """Either an entry or the error that ended the query."""

    entry: Optional[Entry] = None
    error: Optional[BaseException] = None


@dataclass
class Query:
    """
    Query over the keys of a datastore.

    Attributes:
        prefix: Only keys starting with this string are returned
        filters: Predicates every returned entry must satisfy
        orders: Sort keys applied to the results, most significant first
        limit: Maximum number of entries to return (0 means no limit)
        offset: Number of entries to skip before returning any
        keys_only: Do not load values
        returns_sizes: Report the size of each value
    """

    prefix: str = ""
    filters: List[Filter] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    limit: int = 0
    offset: int = 0
    keys_only: bool = False
    returns_sizes: bool = False

    def __post_init__(self):
        if self.limit < 0:
            raise ValueError(f"limit must not be negative, got {self.limit}")
        if self.offset < 0:
            raise ValueError(f"offset must not be negative, got {self.offset}")

    def __str__(self) -> str:
        fields = ["keys"]
        if not self.keys_only:
            fields.append("vals")
        if self.returns_sizes:
            fields.append("size")
        s = f"SELECT {','.join(fields)}"
        if self.prefix:
            s += f" FROM {self.prefix!r}"
        if self.filters:
            s += f" FILTER [{len(self.filters)} filters]"
        if self.orders:
            s += f" ORDER [{len(self.orders)} orders]"
        if self.offset:
            s += f" OFFSET {self.offset}"
        if self.limit:
            s += f" LIMIT {self.limit}"
        return s


# Passed to a producer; awaiting it hands one result to the consumer.
Emit = Callable[[Result], Awaitable[None]]
Producer = Callable[[Emit], Awaitable[None]]

_END = object()


class Results:
    """
    Lazy stream of query results.

    A background task runs the producer and hands results over through a
    bounded queue, so nothing is fetched far ahead of the consumer. Iterating
    yields entries and raises the error that ended the query, if any.
    close() (or leaving `async with`) cancels the producer, aborting any
    backend call it is waiting on.

    A stream that is not read to the end must be closed: a consumer that
    breaks out of `async for` leaves the producer waiting on the queue until
    close() runs. Prefer `async with await ds.query(q) as results:`.
    """

    def __init__(self, query: Query, producer: Producer, buffer_size: int = 1):
        self.query = query
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self._finished = False
        self._task = asyncio.create_task(self._run(producer))

    async def _run(self, producer: Producer):
        try:
            await producer(self._queue.put)
        except Exception as e:
            logger.debug(f"Query {self.query} ended with error: {e!r}")
            await self._queue.put(Result(error=e))
        await self._queue.put(_END)

    async def next_result(self) -> Optional[Result]:
        """Returns the next result, or None once the stream is exhausted or closed."""
        if self._finished:
            return None
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            return None
        if item.error is not None:
            self._finished = True
            await self.close()
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> Entry:
        result = await self.next_result()
        if result is None:
            raise StopAsyncIteration
        if result.error is not None:
            raise result.error
        return result.entry

    async def rest(self) -> List[Entry]:
        """Collects every remaining entry."""
        return [entry async for entry in self]

    async def close(self):
        self._finished = True
        if not self._task.done():
            self._task.cancel()
        # Waits for the producer to unwind; its cancellation is not an error here.
        await asyncio.gather(self._task, return_exceptions=True)
        # Wakes a consumer still waiting in next_result().
        if not self._queue.full():
            self._queue.put_nowait(_END)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

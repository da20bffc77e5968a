import asyncio
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from bucket import MemoryBucket
from bucket.ibucket import BytesReader, ListObject, ListPage
from datastore import CloudDatastore, Entry, Query, UnsupportedQueryError, new_with_bucket

pytestmark = pytest.mark.unit


async def _fill(ds: CloudDatastore, items):
    for key, value in items.items():
        await ds.put(key, value)


async def _run(ds: CloudDatastore, q: Query) -> List[Entry]:
    async with await ds.query(q) as results:
        return await results.rest()


@pytest.mark.asyncio
async def test_prefix_query(datastore: CloudDatastore):
    await _fill(datastore, {"/a/1": b"x", "/a/2": b"y", "/b/1": b"z"})

    entries = await _run(datastore, Query(prefix="/a/"))

    assert {e.key: e.value for e in entries} == {"/a/1": b"x", "/a/2": b"y"}
    assert all(e.size is None for e in entries)


@pytest.mark.asyncio
@pytest.mark.parametrize("prefix", ["a/", "a", "/a", "/a/", "a//"])
async def test_prefix_matches_whole_key_segments(datastore: CloudDatastore, prefix):
    await _fill(datastore, {"a/1": b"x", "a/2": b"y", "b/1": b"z", "ab/1": b"w"})

    entries = await _run(datastore, Query(prefix=prefix))

    assert sorted(e.key for e in entries) == ["/a/1", "/a/2"]


@pytest.mark.asyncio
async def test_prefix_is_listed_as_key_path():
    bucket = MemoryBucket()
    bucket.list_page = AsyncMock(return_value=ListPage())
    ds = CloudDatastore(bucket, "mem://")

    for prefix, listed in [("", "/"), ("/", "/"), ("a/b/", "/a/b/"), ("/a/./b/../c", "/a/c/")]:
        await _run(ds, Query(prefix=prefix, keys_only=True))
        assert bucket.list_page.await_args.args[0] == listed


@pytest.mark.asyncio
async def test_empty_prefix_returns_everything(datastore: CloudDatastore):
    await _fill(datastore, {"/a": b"1", "/b/c": b"2"})
    entries = await _run(datastore, Query())
    assert sorted(e.key for e in entries) == ["/a", "/b/c"]


@pytest.mark.asyncio
async def test_offset_and_limit(datastore: CloudDatastore):
    await _fill(datastore, {"/q/1": b"a", "/q/2": b"b", "/q/3": b"c"})
    in_order = [e.key for e in await _run(datastore, Query(prefix="/q/", keys_only=True))]

    entries = await _run(datastore, Query(prefix="/q/", offset=1, limit=1))

    assert [e.key for e in entries] == [in_order[1]]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "offset, limit, expected",
    [(0, 0, 3), (0, 2, 2), (2, 0, 1), (3, 0, 0), (5, 0, 0), (1, 10, 2)],
)
async def test_offset_limit_counts(mem_datastore, offset, limit, expected):
    await _fill(mem_datastore, {"/n/1": b"1", "/n/2": b"2", "/n/3": b"3"})
    entries = await _run(mem_datastore, Query(prefix="/n/", offset=offset, limit=limit))
    assert len(entries) == expected


@pytest.mark.asyncio
async def test_keys_only_and_sizes(datastore: CloudDatastore):
    await _fill(datastore, {"/s/1": b"abc", "/s/2": b"de"})

    keys_only = await _run(datastore, Query(prefix="/s/", keys_only=True))
    assert all(e.value is None and e.size is None for e in keys_only)

    both = await _run(datastore, Query(prefix="/s/", keys_only=True, returns_sizes=True))
    assert {e.key: e.size for e in both} == {"/s/1": 3, "/s/2": 2}
    assert all(e.value is None for e in both)

    full = await _run(datastore, Query(prefix="/s/", returns_sizes=True))
    assert all(e.size == len(e.value) for e in full)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "q",
    [
        Query(filters=[lambda e: True]),
        Query(orders=[lambda e: e.key]),
        Query(prefix="/a", filters=[lambda e: True], orders=[lambda e: e.key]),
    ],
)
async def test_orders_and_filters_rejected_before_backend_call(q):
    bucket = MagicMock()
    ds = CloudDatastore(bucket, "mock://")

    with pytest.raises(UnsupportedQueryError):
        await ds.query(q)

    assert bucket.method_calls == []


class _ScriptedBucket(MemoryBucket):
    """Memory bucket whose listing is replaced by a fixed sequence of pages."""

    def __init__(self, objects: List[ListObject], fail_after: Optional[int] = None):
        super().__init__()
        self.listed = objects
        self.fail_after = fail_after
        self.pages_served = 0

    async def list_page(self, prefix, page_size, page_token=None):
        start = int(page_token or 0)
        if self.fail_after is not None and start >= self.fail_after:
            raise ConnectionError("listing interrupted")
        self.pages_served += 1
        chunk = self.listed[start:start + page_size]
        end = start + len(chunk)
        return ListPage(objects=chunk, next_page_token=str(end) if end < len(self.listed) else None)

    async def new_reader(self, name):
        return BytesReader(name.encode())


@pytest.mark.asyncio
async def test_directory_entries_are_skipped():
    bucket = _ScriptedBucket(
        [
            ListObject(key="/d/", is_dir=True),
            ListObject(key="/d/1", size=1),
            ListObject(key="/e/", is_dir=True),
            ListObject(key="/e/1", size=1),
            ListObject(key="/e/2", size=1),
        ]
    )
    ds = CloudDatastore(bucket, "scripted://", list_page_size=2)

    assert [e.key for e in await _run(ds, Query(keys_only=True))] == ["/d/1", "/e/1", "/e/2"]
    # The offset counts listing entries, directories included.
    assert [e.key for e in await _run(ds, Query(offset=1, limit=1))] == ["/d/1"]
    assert [e.key for e in await _run(ds, Query(offset=2, limit=1))] == ["/e/1"]


@pytest.mark.asyncio
async def test_listing_error_ends_stream_after_delivered_entries():
    objects = [ListObject(key=f"/k/{i}", size=1) for i in range(4)]
    ds = CloudDatastore(_ScriptedBucket(objects, fail_after=2), "scripted://", list_page_size=2)

    results = await ds.query(Query(keys_only=True))
    delivered = []
    with pytest.raises(ConnectionError):
        async for entry in results:
            delivered.append(entry.key)
    assert delivered == ["/k/0", "/k/1"]


@pytest.mark.asyncio
async def test_listing_error_during_offset_skip():
    objects = [ListObject(key=f"/k/{i}", size=1) for i in range(4)]
    ds = CloudDatastore(_ScriptedBucket(objects, fail_after=2), "scripted://", list_page_size=2)

    results = await ds.query(Query(offset=3))
    with pytest.raises(ConnectionError):
        await results.rest()


@pytest.mark.asyncio
async def test_value_fetch_error_ends_stream():
    bucket = _ScriptedBucket([ListObject(key="/k/1", size=1), ListObject(key="/k/2", size=1)])
    bucket.new_reader = AsyncMock(side_effect=PermissionError("denied"))
    ds = CloudDatastore(bucket, "scripted://")

    results = await ds.query(Query())
    result = await results.next_result()
    assert isinstance(result.error, PermissionError)
    assert await results.next_result() is None


@pytest.mark.asyncio
async def test_closing_results_stops_backend_iteration():
    objects = [ListObject(key=f"/k/{i:03d}", size=1) for i in range(100)]
    bucket = _ScriptedBucket(objects)
    ds = CloudDatastore(bucket, "scripted://", list_page_size=5)

    results = await ds.query(Query(keys_only=True))
    first = await results.__anext__()
    assert first.key == "/k/000"
    await results.close()
    served = bucket.pages_served
    await asyncio.sleep(0.01)

    assert served <= 2
    assert bucket.pages_served == served
    with pytest.raises(StopAsyncIteration):
        await results.__anext__()


@pytest.mark.asyncio
async def test_query_on_closed_datastore_reports_error():
    ds = new_with_bucket(MemoryBucket(), "mem://")
    await ds.close()
    results = await ds.query(Query())
    with pytest.raises(ValueError):
        await results.rest()

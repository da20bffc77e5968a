import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from bucket import BucketError, ErrorCode, error_code
from bucket.s3_bucket import S3Bucket

pytestmark = pytest.mark.unit


def _client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_bucket():
    client = MagicMock()
    return S3Bucket("my-bucket", client=client), client


def test_requires_bucket_name():
    with pytest.raises(ValueError):
        S3Bucket("", client=MagicMock())


@pytest.mark.asyncio
async def test_attributes_from_head_object(s3_bucket):
    bucket, client = s3_bucket
    client.head_object.return_value = {"ContentLength": 12, "ETag": '"abc"', "ContentType": "binary/octet-stream"}

    attrs = await bucket.attributes("/k")

    client.head_object.assert_called_once_with(Bucket="my-bucket", Key="/k")
    assert attrs.size == 12
    assert attrs.etag == '"abc"'


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
async def test_not_found_codes(s3_bucket, code):
    bucket, client = s3_bucket
    client.head_object.side_effect = _client_error(code)
    client.get_object.side_effect = _client_error(code, "GetObject")

    assert await bucket.exists("/k") is False
    for operation in (bucket.attributes, bucket.new_reader):
        with pytest.raises(BucketError) as excinfo:
            await operation("/k")
        assert error_code(excinfo.value) == ErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_other_client_errors_pass_through(s3_bucket):
    bucket, client = s3_bucket
    client.head_object.side_effect = _client_error("403")
    with pytest.raises(ClientError):
        await bucket.exists("/k")


@pytest.mark.asyncio
async def test_reader_streams_body(s3_bucket):
    bucket, client = s3_bucket
    client.get_object.return_value = {"Body": io.BytesIO(b"hello world")}

    async with await bucket.new_reader("/k") as reader:
        assert await reader.read(5) == b"hello"
        assert await reader.read() == b" world"


@pytest.mark.asyncio
async def test_writer_puts_object_on_close(s3_bucket):
    bucket, client = s3_bucket
    writer = await bucket.new_writer("/k")
    await writer.write(b"data")
    client.put_object.assert_not_called()
    await writer.close()
    client.put_object.assert_called_once_with(Bucket="my-bucket", Key="/k", Body=b"data")


@pytest.mark.asyncio
async def test_delete_missing_is_not_found(s3_bucket):
    bucket, client = s3_bucket
    client.head_object.side_effect = _client_error("404")
    with pytest.raises(BucketError):
        await bucket.delete("/k")
    client.delete_object.assert_not_called()


@pytest.mark.asyncio
async def test_delete_existing(s3_bucket):
    bucket, client = s3_bucket
    client.head_object.return_value = {"ContentLength": 1}
    await bucket.delete("/k")
    client.delete_object.assert_called_once_with(Bucket="my-bucket", Key="/k")


@pytest.mark.asyncio
async def test_list_uses_continuation_tokens(s3_bucket):
    bucket, client = s3_bucket
    client.list_objects_v2.side_effect = [
        {
            "Contents": [{"Key": "/a/1", "Size": 1}, {"Key": "/a/2", "Size": 2}],
            "IsTruncated": True,
            "NextContinuationToken": "t1",
        },
        {"Contents": [{"Key": "/a/3", "Size": 3}], "IsTruncated": False},
    ]

    objects = [obj async for obj in bucket.list(prefix="/a/", page_size=2)]

    assert [(o.key, o.size) for o in objects] == [("/a/1", 1), ("/a/2", 2), ("/a/3", 3)]
    second_call = client.list_objects_v2.call_args_list[1]
    assert second_call.kwargs == {"Bucket": "my-bucket", "Prefix": "/a/", "MaxKeys": 2, "ContinuationToken": "t1"}


@pytest.mark.asyncio
async def test_empty_listing(s3_bucket):
    bucket, client = s3_bucket
    client.list_objects_v2.return_value = {"KeyCount": 0, "IsTruncated": False}
    assert [obj async for obj in bucket.list()] == []


@pytest.mark.asyncio
async def test_close_closes_client(s3_bucket):
    bucket, client = s3_bucket
    await bucket.close()
    client.close.assert_called_once()

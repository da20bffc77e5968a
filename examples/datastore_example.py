"""
Example usage of the bucket-backed datastore.

The bucket is chosen by DSBLOB_BUCKET_URL (see .env.example), so the same
script runs against a local directory, Azure Blob, S3 or GCS.
"""

import asyncio
import logging

from config import get_datastore
from datastore import Key, Query

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def example_usage():
    """Example of storing, reading and listing values."""

    try:
        async with get_datastore() as ds:
            logger.info(f"Using datastore on bucket: {ds.bucket_name}")

            await ds.put(Key("/examples/hello"), b"hello world")
            await ds.put(Key("/examples/answer"), b"42")

            value = await ds.get(Key("/examples/hello"))
            logger.info(f"Read back {len(value)} bytes: {value!r}")

            async with await ds.query(Query(prefix="/examples/", keys_only=True, returns_sizes=True)) as results:
                async for entry in results:
                    logger.info(f"{entry.key} ({entry.size} bytes)")

            await ds.delete(Key("/examples/hello"))
            logger.info(f"Still present after delete: {await ds.has(Key('/examples/hello'))}")

    except Exception as e:
        logger.error(f"Datastore example failed: {e}")
        raise


if __name__ == "__main__":
    asyncio.run(example_usage())

# Ensure the src directory is in sys.path for test discovery and imports
import sys
import os

src_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if src_path not in sys.path:
    sys.path.insert(0, src_path)

import logging
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from bucket import IBucket, LocalFileBucket, MemoryBucket
from datastore import CloudDatastore, new_with_bucket

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def load_test_env():
    """
    Automatically load .env.test for all tests in this session.
    """
    env_path = Path(__file__).parent.parent / ".env.test"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=True)
        logger.info(f"Loaded test environment from: {env_path}")


@pytest.fixture
def clean_env(monkeypatch):
    """Removes every variable the settings classes read, so tests start from defaults."""
    for key in list(os.environ.keys()):
        if key.startswith(("STORAGE_", "DSBLOB_", "AWS_", "GCP_")):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


# --- Bucket Fixtures ---
@pytest_asyncio.fixture
async def memory_bucket() -> AsyncGenerator[IBucket, None]:
    bucket = MemoryBucket()
    yield bucket
    await bucket.close()


@pytest.fixture
def local_bucket(tmp_path) -> LocalFileBucket:
    """LocalFileBucket rooted in a fresh temporary directory."""
    return LocalFileBucket(root_path=str(tmp_path / "bucket"))


# --- Datastore Fixtures ---
@pytest_asyncio.fixture
async def mem_datastore() -> AsyncGenerator[CloudDatastore, None]:
    ds = new_with_bucket(MemoryBucket(), "mem://")
    yield ds
    await ds.close()


@pytest_asyncio.fixture(params=["mem", "file"])
async def datastore(request, tmp_path) -> AsyncGenerator[CloudDatastore, None]:
    """CloudDatastore over each local bucket driver."""
    if request.param == "mem":
        bucket = MemoryBucket()
    else:
        bucket = LocalFileBucket(root_path=str(tmp_path / "ds"))
    ds = new_with_bucket(bucket, f"{request.param}://test")
    yield ds
    await ds.close()

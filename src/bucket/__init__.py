"""
Bucket abstraction over object stores.

Provides a common async interface (IBucket) with drivers for memory, local
filesystem, Azure Blob Storage, S3 and GCS, selected by URL scheme.
"""

from bucket.errors import BucketError, ErrorCode, error_code
from bucket.ibucket import (
    DEFAULT_PAGE_SIZE,
    Attributes,
    BlobReader,
    BlobWriter,
    IBucket,
    ListIterator,
    ListObject,
    ListPage,
)
from bucket.memory_bucket import MemoryBucket
from bucket.local_file_bucket import LocalFileBucket
from bucket.registry import BucketRegistry, open_bucket
from bucket.openers import register_default_openers

register_default_openers()

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "Attributes",
    "BlobReader",
    "BlobWriter",
    "BucketError",
    "BucketRegistry",
    "ErrorCode",
    "IBucket",
    "ListIterator",
    "ListObject",
    "ListPage",
    "LocalFileBucket",
    "MemoryBucket",
    "error_code",
    "open_bucket",
]

"""
URL openers for the built-in bucket drivers.

    mem://                      fresh in-memory bucket
    file:///abs/dir             local directory (file://rel/dir for a relative one)
    azblob://container          Azure Blob container; ?account=name selects managed identity
    s3://bucket                 S3 bucket; ?region=...&endpoint=... override settings
    gs://bucket                 GCS bucket; ?project=... overrides settings

Credentials not present in the URL come from BucketConfig (environment / .env).
"""

import logging
from typing import Dict
from urllib.parse import ParseResult
from urllib.request import url2pathname

from .azure_blob_bucket import AzureBlobBucket
from .bucket_settings import BucketConfig
from .gcs_bucket import GCSBucket
from .ibucket import IBucket
from .local_file_bucket import LocalFileBucket
from .memory_bucket import MemoryBucket
from .registry import BucketRegistry
from .s3_bucket import S3Bucket

logger = logging.getLogger(__name__)

_FALSE_VALUES = {"0", "false", "no", "off"}


def _open_mem(url: ParseResult, params: Dict[str, str]) -> IBucket:
    return MemoryBucket()


def _open_file(url: ParseResult, params: Dict[str, str]) -> IBucket:
    path = url2pathname(url.netloc + url.path)
    if not path:
        raise ValueError("file:// bucket URL needs a directory path")
    create_dir = params.get("create_dir", "true").lower() not in _FALSE_VALUES
    return LocalFileBucket(root_path=path, create_dir=create_dir)


def _open_azblob(url: ParseResult, params: Dict[str, str]) -> IBucket:
    config = BucketConfig()
    if "account" in params:
        # An explicit account in the URL authenticates with managed identity.
        return AzureBlobBucket(
            container_name=url.netloc,
            account_name=params["account"],
            use_managed_identity=True,
            create_container=config.create_container,
        )
    return AzureBlobBucket(
        container_name=url.netloc,
        connection_string=(
            config.connection_string.get_secret_value() if config.connection_string else None
        ),
        account_name=config.account_name,
        use_managed_identity=config.use_managed_identity,
        create_container=config.create_container,
    )


def _open_s3(url: ParseResult, params: Dict[str, str]) -> IBucket:
    config = BucketConfig()
    return S3Bucket(
        bucket_name=url.netloc,
        region_name=params.get("region") or config.aws_region,
        endpoint_url=params.get("endpoint") or config.s3_endpoint_url,
    )


def _open_gs(url: ParseResult, params: Dict[str, str]) -> IBucket:
    config = BucketConfig()
    return GCSBucket(bucket_name=url.netloc, project=params.get("project") or config.gcp_project_id)


def register_default_openers():
    """Registers the built-in drivers. Runs once when the package is imported."""
    for scheme, opener in (
        ("mem", _open_mem),
        ("file", _open_file),
        ("azblob", _open_azblob),
        ("s3", _open_s3),
        ("gs", _open_gs),
    ):
        BucketRegistry.register(scheme, opener, replace=True)
    logger.debug(f"Registered bucket schemes: {BucketRegistry.schemes()}")

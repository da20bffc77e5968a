"""
Constructors for CloudDatastore.

    open_datastore("mem://")
    open_datastore("file:///var/lib/blocks")
    open_datastore("azblob://my-container")
    open_datastore("s3://my-bucket?region=eu-west-1")
    open_datastore("gs://my-bucket")

Provider-specific constructors take credentials or clients the caller has
already authenticated.
"""

import logging
from typing import Any, Optional

import boto3

from bucket import DEFAULT_PAGE_SIZE, IBucket, open_bucket
from bucket.azure_blob_bucket import AzureBlobBucket
from bucket.bucket_settings import BucketConfig
from bucket.gcs_bucket import GCSBucket
from bucket.s3_bucket import S3Bucket

from .cloud_datastore import CloudDatastore
from .datastore_settings import DatastoreConfig

logger = logging.getLogger(__name__)


def open_datastore(bucket_url: str, list_page_size: int = DEFAULT_PAGE_SIZE) -> CloudDatastore:
    """
    Create a CloudDatastore using a bucket URL and default parameters
    appropriate for the bucket type. The scheme selects the driver.
    """
    bucket = open_bucket(bucket_url)
    return new_with_bucket(bucket, bucket_url, list_page_size=list_page_size)


def new_with_bucket(
    bucket: IBucket, bucket_name: str = "", list_page_size: int = DEFAULT_PAGE_SIZE
) -> CloudDatastore:
    """Wraps an already opened bucket. The datastore takes ownership of it."""
    return CloudDatastore(bucket, bucket_name=bucket_name, list_page_size=list_page_size)


def new_gcs_with_credentials(
    credentials: Any, bucket_name: str, project: Optional[str] = None
) -> CloudDatastore:
    """
    Create a CloudDatastore on a GCS bucket. The caller authenticates with GCP
    separately and passes the google-auth credentials.
    bucket_name should look like "my-bucket".
    """
    bucket = GCSBucket(bucket_name, credentials=credentials, project=project)
    return new_with_bucket(bucket, f"gs://{bucket_name}")


def new_s3_with_client(bucket_name: str, client: Any) -> CloudDatastore:
    """Create a CloudDatastore on an S3 bucket using a configured boto3 S3 client."""
    return new_with_bucket(S3Bucket(bucket_name, client=client), f"s3://{bucket_name}")


def new_s3_with_session(
    bucket_name: str, session: boto3.session.Session, endpoint_url: Optional[str] = None
) -> CloudDatastore:
    """Create a CloudDatastore on an S3 bucket with the region and credentials of a boto3 session."""
    client = session.client("s3", endpoint_url=endpoint_url)
    return new_s3_with_client(bucket_name, client)


def new_azure_with_credential(
    account_name: str, container_name: str, credential: Any
) -> CloudDatastore:
    """Create a CloudDatastore on an Azure Blob container using an async azure credential."""
    bucket = AzureBlobBucket(
        container_name=container_name, account_name=account_name, credential=credential
    )
    return new_with_bucket(bucket, f"azblob://{container_name}")


def create_datastore(
    bucket_config: BucketConfig, datastore_config: Optional[DatastoreConfig] = None
) -> CloudDatastore:
    """
    Create the datastore described by configuration.

    Raises:
        ValueError: If the bucket URL is invalid or its scheme is unknown
    """
    datastore_config = datastore_config or DatastoreConfig()
    logger.info(f"Creating CloudDatastore for bucket URL: {bucket_config.bucket_url}")
    return open_datastore(bucket_config.bucket_url, list_page_size=datastore_config.list_page_size)

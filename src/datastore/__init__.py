"""
Key-value datastore backed by a bucket.
"""

from datastore.errors import DatastoreError, NotFoundError, UnsupportedQueryError
from datastore.key import Key
from datastore.query import Entry, Query, Result, Results
from datastore.interfaces import IDatastore
from datastore.cloud_datastore import CloudDatastore
from datastore.datastore_factory import (
    create_datastore,
    new_azure_with_credential,
    new_gcs_with_credentials,
    new_s3_with_client,
    new_s3_with_session,
    new_with_bucket,
    open_datastore,
)

__all__ = [
    "CloudDatastore",
    "DatastoreError",
    "Entry",
    "IDatastore",
    "Key",
    "NotFoundError",
    "Query",
    "Result",
    "Results",
    "UnsupportedQueryError",
    "create_datastore",
    "new_azure_with_credential",
    "new_gcs_with_credentials",
    "new_s3_with_client",
    "new_s3_with_session",
    "new_with_bucket",
    "open_datastore",
]

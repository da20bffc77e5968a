import logging
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class BucketConfig(BaseSettings):
    """
    Bucket location and provider credentials.
    URL openers fall back to these values for whatever the URL leaves out.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    bucket_url: str = Field(default="mem://", validation_alias="DSBLOB_BUCKET_URL")

    # Azure: either connection string OR account name with managed identity
    connection_string: Optional[SecretStr] = Field(
        default=None, validation_alias="STORAGE_AZURE_CONNECTION_STRING"
    )
    account_name: Optional[str] = Field(
        default=None, validation_alias="STORAGE_AZURE_ACCOUNT_NAME"
    )
    use_managed_identity: bool = Field(
        default=False, validation_alias="STORAGE_AZURE_USE_MANAGED_IDENTITY"
    )
    create_container: bool = Field(
        default=False, validation_alias="STORAGE_AZURE_CREATE_CONTAINER"
    )

    # S3
    aws_region: Optional[str] = Field(default=None, validation_alias="AWS_REGION")
    s3_endpoint_url: Optional[str] = Field(
        default=None, validation_alias="DSBLOB_S3_ENDPOINT_URL"
    )

    # GCS
    gcp_project_id: Optional[str] = Field(default=None, validation_alias="GCP_PROJECT_ID")

    @property
    def scheme(self) -> str:
        return self.bucket_url.split("://", 1)[0].lower() if "://" in self.bucket_url else ""

    def has_azure_credentials(self) -> bool:
        return bool(self.connection_string or (self.account_name and self.use_managed_identity))

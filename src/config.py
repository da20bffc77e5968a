import logging
import os
import sys
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bucket.bucket_settings import BucketConfig
from datastore.datastore_settings import DatastoreConfig

logging.basicConfig(
    level=os.getenv("DSBLOB_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Top-level settings object to hold nested configs
    bucket: BucketConfig = Field(default_factory=BucketConfig)
    datastore: DatastoreConfig = Field(default_factory=DatastoreConfig)
    log_level: str = Field(default="INFO", validation_alias="DSBLOB_LOG_LEVEL")

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings(env_file: Optional[str] = ".env") -> Settings:
    logger.info(f"Attempting to load Settings with env_file: {env_file}")
    try:
        bucket_config = BucketConfig(_env_file=env_file)
        datastore_config = DatastoreConfig(_env_file=env_file)
        settings = Settings(
            bucket=bucket_config, datastore=datastore_config, _env_file=env_file
        )
        logging.getLogger().setLevel(settings.log_level.upper())
        logger.info(f"Loaded Settings for bucket URL: {settings.bucket.bucket_url}")
        return settings
    except Exception as e:
        logger.error(f"Error loading Settings with env_file {env_file}: {e}", exc_info=True)
        raise


def get_datastore():
    """
    Create and return the datastore described by the current settings.

    Returns:
        Configured CloudDatastore instance
    """
    from datastore.datastore_factory import create_datastore

    settings = get_settings()
    return create_datastore(settings.bucket, settings.datastore)

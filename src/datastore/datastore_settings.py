from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bucket import DEFAULT_PAGE_SIZE


class DatastoreConfig(BaseSettings):
    """Settings of the datastore adapter itself."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    list_page_size: int = Field(
        default=DEFAULT_PAGE_SIZE, gt=0, validation_alias="DSBLOB_LIST_PAGE_SIZE"
    )

import logging
from typing import Any, Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob.aio import BlobServiceClient, ContainerClient, StorageStreamDownloader

from .errors import not_found
from .ibucket import (
    Attributes,
    BlobReader,
    BlobWriter,
    BufferedWriter,
    IBucket,
    ListObject,
    ListPage,
)

try:
    from azure.identity.aio import DefaultAzureCredential

    AZURE_IDENTITY_AVAILABLE = True
except ImportError:
    AZURE_IDENTITY_AVAILABLE = False

logger = logging.getLogger(__name__)


class AzureBlobReader(BlobReader):
    def __init__(self, downloader: StorageStreamDownloader):
        self._downloader = downloader

    async def read(self, n: int = -1) -> bytes:
        if n is None or n < 0:
            return await self._downloader.readall()
        return await self._downloader.read(n)


class AzureBlobBucket(IBucket):
    """Implements IBucket for an Azure Blob Storage container."""

    def __init__(
        self,
        container_name: str,
        connection_string: Optional[str] = None,
        account_name: Optional[str] = None,
        use_managed_identity: bool = False,
        credential: Any = None,
        container_client: Optional[ContainerClient] = None,
        create_container: bool = False,
    ):
        """
        Initialize the bucket with one of the supported authentication options.

        Args:
            container_name: Name of the storage container
            connection_string: Connection string with account key or SAS
            account_name: Storage account name (required with a credential or managed identity)
            use_managed_identity: Authenticate with DefaultAzureCredential
            credential: Pre-authenticated async credential supplied by the caller
            container_client: Ready ContainerClient; takes precedence over everything else
            create_container: Create the container on first use when it does not exist
        """
        if not container_name:
            raise ValueError("Azure container name is required.")

        self.container_name = container_name
        self.account_name = account_name
        self.connection_string = connection_string
        self.create_container = create_container
        self._service_client: Optional[BlobServiceClient] = None
        self._container_client: Optional[ContainerClient] = container_client
        self._credential = credential
        self._owns_credential = False

        if container_client is not None:
            self.auth_mode = "client"
        elif credential is not None:
            if not account_name:
                raise ValueError("account_name is required when a credential is supplied.")
            self.auth_mode = "credential"
        elif use_managed_identity or (not connection_string and account_name):
            if not AZURE_IDENTITY_AVAILABLE:
                raise ValueError(
                    "azure-identity package is required for managed identity authentication. "
                    "Install with: pip install azure-identity"
                )
            if not account_name:
                raise ValueError(
                    "account_name is required when using managed identity authentication."
                )
            self.auth_mode = "managed_identity"
        elif connection_string:
            self.auth_mode = "connection_string"
        else:
            raise ValueError(
                "Either connection_string, a credential, or (account_name + use_managed_identity=True) must be provided."
            )
        logger.info(f"Initialized AzureBlobBucket for container: {container_name} ({self.auth_mode})")

    async def _get_container_client(self) -> ContainerClient:
        """Initializes and returns the ContainerClient."""
        if self._container_client is None:
            try:
                if self.auth_mode == "connection_string":
                    self._service_client = BlobServiceClient.from_connection_string(
                        self.connection_string
                    )
                else:
                    if self.auth_mode == "managed_identity":
                        self._credential = DefaultAzureCredential()
                        self._owns_credential = True
                    account_url = f"https://{self.account_name}.blob.core.windows.net"
                    self._service_client = BlobServiceClient(
                        account_url=account_url, credential=self._credential
                    )
                container_client = self._service_client.get_container_client(self.container_name)

                if self.create_container:
                    try:
                        await container_client.get_container_properties()
                    except ResourceNotFoundError:
                        logger.warning(
                            f"Azure container '{self.container_name}' not found, creating..."
                        )
                        await container_client.create_container()
                self._container_client = container_client
            except Exception as e:
                logger.error(
                    f"Failed to initialize Azure Blob Storage client for container {self.container_name}: {e}"
                )
                await self.close()
                raise
        return self._container_client

    async def attributes(self, name: str) -> Attributes:
        container_client = await self._get_container_client()
        blob_client = container_client.get_blob_client(name)
        try:
            props = await blob_client.get_blob_properties()
        except ResourceNotFoundError:
            raise not_found(name)
        content_settings = getattr(props, "content_settings", None)
        return Attributes(
            size=props.size,
            mod_time=props.last_modified,
            etag=props.etag,
            content_type=getattr(content_settings, "content_type", None),
        )

    async def exists(self, name: str) -> bool:
        container_client = await self._get_container_client()
        blob_client = container_client.get_blob_client(name)
        exists = await blob_client.exists()
        logger.debug(f"Checked existence for blob {self.container_name}/{name}: {exists}")
        return exists

    async def new_reader(self, name: str) -> BlobReader:
        container_client = await self._get_container_client()
        blob_client = container_client.get_blob_client(name)
        try:
            downloader = await blob_client.download_blob()
        except ResourceNotFoundError:
            logger.debug(f"Azure blob not found: {self.container_name}/{name}")
            raise not_found(name)
        return AzureBlobReader(downloader)

    async def new_writer(self, name: str) -> BlobWriter:
        container_client = await self._get_container_client()

        async def commit(data: bytes):
            blob_client = container_client.get_blob_client(name)
            try:
                await blob_client.upload_blob(data, overwrite=True)
            except Exception as e:
                logger.error(f"Error saving bytes to Azure blob {self.container_name}/{name}: {e}")
                raise
            logger.debug(f"Saved {len(data)} bytes to Azure blob: {self.container_name}/{name}")

        return BufferedWriter(commit)

    async def delete(self, name: str):
        container_client = await self._get_container_client()
        blob_client = container_client.get_blob_client(name)
        try:
            await blob_client.delete_blob(delete_snapshots="include")
        except ResourceNotFoundError:
            raise not_found(name)
        logger.debug(f"Deleted blob: {self.container_name}/{name}")

    async def list_page(
        self, prefix: str, page_size: int, page_token: Optional[str] = None
    ) -> ListPage:
        container_client = await self._get_container_client()
        pages = container_client.list_blobs(
            name_starts_with=prefix or None, results_per_page=page_size
        ).by_page(continuation_token=page_token)
        objects = []
        try:
            page = await pages.__anext__()
        except StopAsyncIteration:
            return ListPage()
        async for blob in page:
            objects.append(
                ListObject(key=blob.name, size=blob.size or 0, mod_time=blob.last_modified)
            )
        return ListPage(objects=objects, next_page_token=pages.continuation_token or None)

    async def close(self):
        """Closes the service client and any credential created by this bucket."""
        if self._service_client is not None:
            try:
                await self._service_client.close()
                logger.info("Closed Azure BlobServiceClient.")
            finally:
                self._service_client = None
                self._container_client = None
        elif self._container_client is not None and self.auth_mode == "client":
            await self._container_client.close()
            self._container_client = None
        if self._credential is not None and self._owns_credential:
            try:
                await self._credential.close()
                logger.info("Closed Azure credential.")
            finally:
                self._credential = None
                self._owns_credential = False

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas

from whatshook.logging_config import get_logger
from whatshook.services.result import STORAGE_ERROR, Result

logger = get_logger("blob_service")

SAS_VALIDITY = timedelta(hours=24)


class BlobStorageService:
    """Uploads bytes and hands back a time-limited read URL."""

    def __init__(self, service_client: BlobServiceClient, container_name: str = "whats-audio"):
        self.service_client = service_client
        self.container_name = container_name
        self._container = None
        self._lock = threading.Lock()

    @classmethod
    def from_connection_string(cls, connection_string: str, container_name: str = "whats-audio") -> "BlobStorageService":
        return cls(BlobServiceClient.from_connection_string(connection_string), container_name)

    def _get_container(self):
        with self._lock:
            if self._container is None:
                container = self.service_client.get_container_client(self.container_name)
                try:
                    container.create_container()
                    logger.info(f"Blob container created: {self.container_name}")
                except ResourceExistsError:
                    pass
                self._container = container
            return self._container

    def _signed_url(self, blob_client, expiry: datetime) -> str:
        sas = generate_blob_sas(
            account_name=blob_client.account_name,
            container_name=self.container_name,
            blob_name=blob_client.blob_name,
            account_key=self.service_client.credential.account_key,
            permission=BlobSasPermissions(read=True),
            expiry=expiry,
        )
        return f"{blob_client.url}?{sas}"

    def upload(self, data: bytes, name: str, content_type: str, now: Optional[datetime] = None) -> Result[str]:
        try:
            blob_client = self._get_container().get_blob_client(name)
            blob_client.upload_blob(data, overwrite=True, content_settings=ContentSettings(content_type=content_type))
            url = self._signed_url(blob_client, (now or datetime.now(timezone.utc)) + SAS_VALIDITY)
        except AzureError as e:
            logger.error(f"Failed to upload {name} to blob storage: {e}")
            return Result.failure(str(e), STORAGE_ERROR)

        logger.info(f"Uploaded {name} ({len(data)} bytes) to blob storage")
        return Result.success(url)

"""Outbound WhatsApp messages through Azure Communication Services."""

from typing import Optional

from azure.communication.messages import NotificationMessagesClient
from azure.communication.messages.models import (
    AudioNotificationContent,
    DocumentNotificationContent,
    ImageNotificationContent,
    TextNotificationContent,
    VideoNotificationContent,
)
from azure.core.exceptions import AzureError

from whatshook.logging_config import get_logger, mask_phone
from whatshook.services.blob_service import BlobStorageService
from whatshook.services.result import DOWNLOAD_ERROR, MALFORMED, SEND_ERROR, Result

logger = get_logger("notification_service")

AUDIO_UNAVAILABLE_TEXT = "[Audio unavailable]"


class NotificationService:
    def __init__(self, client: NotificationMessagesClient, channel_registration_id: str):
        self.client = client
        self.channel_registration_id = channel_registration_id

    @classmethod
    def from_connection_string(cls, connection_string: str, channel_registration_id: str) -> "NotificationService":
        return cls(NotificationMessagesClient.from_connection_string(connection_string), channel_registration_id)

    def _send(self, content, kind: str, recipients: list[str]) -> Result[list[str]]:
        try:
            response = self.client.send(content)
        except AzureError as e:
            logger.error(
                f"Failed to send {kind} notification: {e}",
                extra={"context": {"recipients": [mask_phone(r) for r in recipients]}},
            )
            return Result.failure(str(e), SEND_ERROR)

        message_ids = [receipt.message_id for receipt in (response.receipts or [])]
        logger.info(
            f"{kind.capitalize()} notification sent",
            extra={"context": {"message_ids": message_ids, "recipients": [mask_phone(r) for r in recipients]}},
        )
        return Result.success(message_ids)

    def send_text(self, text: str, recipients: list[str]) -> Result[list[str]]:
        content = TextNotificationContent(
            channel_registration_id=self.channel_registration_id,
            to=recipients,
            content=text,
        )
        return self._send(content, "text", recipients)

    def send_image(self, url: str, recipients: list[str], caption: Optional[str] = None) -> Result[list[str]]:
        content = ImageNotificationContent(
            channel_registration_id=self.channel_registration_id,
            to=recipients,
            media_uri=url,
            content=caption,
        )
        return self._send(content, "image", recipients)

    def send_audio(self, url: str, recipients: list[str]) -> Result[list[str]]:
        content = AudioNotificationContent(
            channel_registration_id=self.channel_registration_id,
            to=recipients,
            media_uri=url,
        )
        return self._send(content, "audio", recipients)

    def send_document(
        self, url: str, recipients: list[str], file_name: str, caption: Optional[str] = None
    ) -> Result[list[str]]:
        content = DocumentNotificationContent(
            channel_registration_id=self.channel_registration_id,
            to=recipients,
            media_uri=url,
            file_name=file_name,
            caption=caption,
        )
        return self._send(content, "document", recipients)

    def send_video(self, url: str, recipients: list[str], caption: Optional[str] = None) -> Result[list[str]]:
        content = VideoNotificationContent(
            channel_registration_id=self.channel_registration_id,
            to=recipients,
            media_uri=url,
            caption=caption,
        )
        return self._send(content, "video", recipients)

    def send_audio_bytes(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        blob_service: BlobStorageService,
        recipients: list[str],
    ) -> Result[list[str]]:
        """Upload audio and send it; fall back to a short text when upload fails."""
        upload = blob_service.upload(data, file_name, content_type)
        if not upload.ok:
            logger.warning("Failed to upload audio; falling back to text notification")
            return self.send_text(AUDIO_UNAVAILABLE_TEXT, recipients)
        return self.send_audio(upload.value, recipients)

    def download_media(self, media_id: str) -> Result[bytes]:
        try:
            data = b"".join(self.client.download_media(media_id))
        except AzureError as e:
            logger.error(f"Failed to download media {media_id}: {e}")
            return Result.failure(str(e), DOWNLOAD_ERROR)

        if not data:
            logger.warning(f"Downloaded media is empty for media id {media_id}")
            return Result.failure("Empty media", MALFORMED)

        logger.info(f"Downloaded media {media_id}: {len(data)} bytes")
        return Result.success(data)

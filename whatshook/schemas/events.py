from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ADVANCED_MESSAGE_RECEIVED = "Microsoft.Communication.AdvancedMessageReceived"

MEDIA_URI_FIELDS = ("mediaUri", "url", "uri")
MEDIA_TYPE_FIELDS = ("mediaContentType", "contentType", "mimeType")


class EventGridEvent(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    event_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("eventType", "type"))
    subject: Optional[str] = None
    event_time: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("eventTime", "time"))
    data: Optional[Any] = None

    @property
    def is_advanced_message(self) -> bool:
        return (self.event_type or "").lower() == ADVANCED_MESSAGE_RECEIVED.lower()


class SubscriptionValidationData(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    validation_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("validationCode"))
    validation_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("validationUrl"))


class SubscriptionValidationResponse(BaseModel):
    validationResponse: str


class MediaReference(BaseModel):
    id: Optional[str] = None
    mime_type: Optional[str] = None
    uri: Optional[str] = None


class InboundMessage(BaseModel):
    sender: Optional[str] = None
    recipient: Optional[str] = None
    text: str = ""
    channel_type: str = "whatsapp"
    received_at: Optional[datetime] = None
    media: Optional[MediaReference] = None

    @property
    def caption(self) -> str:
        return self.text

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


def _first(data: dict, fields: tuple[str, ...]) -> Optional[str]:
    for field in fields:
        value = data.get(field)
        if value:
            return str(value)
    return None


def extract_media(data: dict) -> Optional[MediaReference]:
    """Media metadata from the shapes the channel has been seen to send.

    1. top-level ``mediaUri`` + ``mediaContentType``
    2. first entry of ``attachments``
    3. a ``media`` object with an id and a type

    For the first two shapes the media URI doubles as the download id.
    """
    if data.get("mediaUri") and data.get("mediaContentType"):
        uri = str(data["mediaUri"])
        return MediaReference(id=uri, mime_type=str(data["mediaContentType"]), uri=uri)

    attachments = data.get("attachments")
    if isinstance(attachments, list) and attachments and isinstance(attachments[0], dict):
        attachment = attachments[0]
        uri = _first(attachment, MEDIA_URI_FIELDS)
        mime_type = _first(attachment, MEDIA_TYPE_FIELDS)
        if uri and mime_type:
            return MediaReference(id=uri, mime_type=mime_type, uri=uri)

    media = data.get("media")
    if isinstance(media, dict):
        media_id = _first(media, ("id", "mediaId"))
        mime_type = _first(media, ("mimeType", "type"))
        if media_id and mime_type:
            return MediaReference(id=media_id, mime_type=mime_type)

    return None


def parse_advanced_message(event: EventGridEvent) -> InboundMessage:
    data = event.data if isinstance(event.data, dict) else {}
    text = data.get("body")
    if text is None:
        text = data.get("content")
    if isinstance(text, dict):
        text = text.get("text") or text.get("body")

    return InboundMessage(
        sender=data.get("from") or None,
        recipient=data.get("to") or None,
        text=text if isinstance(text, str) else "",
        channel_type=data.get("channelType") or data.get("channelKind") or "whatsapp",
        received_at=event.event_time,
        media=extract_media(data),
    )

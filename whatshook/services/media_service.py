import re
from typing import Optional

from whatshook.logging_config import get_logger
from whatshook.schemas.events import InboundMessage, MediaReference
from whatshook.services import media_codec
from whatshook.services.chat_client import ChatApiClient, OcrResult, SpeechToTextResult, base_content_type
from whatshook.services.notification_service import NotificationService
from whatshook.services.result import INVALID_INPUT, MALFORMED, Result

logger = get_logger("media_service")

IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/tiff",
    }
)

VOICE_MIME_TYPES = frozenset(
    {
        "audio/ogg; codecs=opus",
        "audio/ogg",
        "video/mp4",
        "audio/mpeg",
        "audio/wav",
        "audio/mp3",
        "audio/aac",
        "audio/m4a",
    }
)

MEDIA_IMAGE = "image"
MEDIA_VOICE = "voice"
MEDIA_UNSUPPORTED = "unsupported"

FILE_EXTENSIONS = {
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/aac": "aac",
    "audio/m4a": "m4a",
    "video/mp4": "mp4",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


def classify_media(mime_type: Optional[str]) -> str:
    if not mime_type:
        return MEDIA_UNSUPPORTED
    lowered = mime_type.strip().lower()
    base = base_content_type(lowered, "")
    if lowered in IMAGE_MIME_TYPES or base in IMAGE_MIME_TYPES or base.startswith("image/"):
        return MEDIA_IMAGE
    if lowered in VOICE_MIME_TYPES or base in VOICE_MIME_TYPES or base.startswith("audio/"):
        return MEDIA_VOICE
    return MEDIA_UNSUPPORTED


def validate_media(media: Optional[MediaReference]) -> list[str]:
    if media is None:
        return ["Message has no media"]

    errors = []
    if not media.id:
        errors.append("Media id is missing")
    if classify_media(media.mime_type) == MEDIA_UNSUPPORTED:
        errors.append(f"Unsupported media type: {media.mime_type or 'unknown'}")
    return errors


def _file_stem(media_id: Optional[str]) -> str:
    # Ids may be full media URIs.
    stem = (media_id or "").split("?")[0].rstrip("/").rsplit("/", 1)[-1]
    return re.sub(r"[^A-Za-z0-9_-]", "_", stem) or "media"


def media_file_name(media: MediaReference, default_extension: str) -> str:
    extension = FILE_EXTENSIONS.get(base_content_type(media.mime_type, "").lower(), default_extension)
    return f"{_file_stem(media.id)}.{extension}"


class MediaService:
    """Downloads inbound media and runs it through speech-to-text or OCR."""

    def __init__(self, notifications: NotificationService, chat_client: ChatApiClient):
        self.notifications = notifications
        self.chat_client = chat_client

    def _download(self, message: InboundMessage) -> Result[bytes]:
        errors = validate_media(message.media)
        if errors:
            logger.warning(f"Invalid media: {'; '.join(errors)}")
            return Result.failure("; ".join(errors), INVALID_INPUT)
        return self.notifications.download_media(message.media.id)

    def transcribe_voice(self, message: InboundMessage) -> Result[SpeechToTextResult]:
        download = self._download(message)
        if not download.ok:
            return Result.failure(download.error, download.error_code)

        audio = download.value
        file_name = media_file_name(message.media, "ogg")
        content_type = message.media.mime_type

        if media_codec.ffmpeg_available():
            converted = media_codec.ogg_to_wav(audio)
            if converted.ok:
                audio = converted.value
                file_name = f"{_file_stem(message.media.id)}.wav"
                content_type = "audio/wav"
            else:
                logger.warning(f"Audio conversion failed, sending original bytes: {converted.error}")
        else:
            logger.info("ffmpeg not available, sending original audio to speech-to-text")

        transcription = self.chat_client.speech_to_text(audio, file_name, content_type)
        if not transcription.ok:
            return transcription

        if not transcription.value.text:
            logger.warning("Speech-to-text returned an empty transcript")
            return Result.failure("Empty transcript", MALFORMED)

        logger.info(
            "Voice message transcribed",
            extra={"context": {"language": transcription.value.language, "chars": len(transcription.value.text)}},
        )
        return transcription

    def extract_invoice(self, message: InboundMessage) -> Result[OcrResult]:
        download = self._download(message)
        if not download.ok:
            return Result.failure(download.error, download.error_code)

        image = download.value
        oriented = media_codec.auto_orient(image)
        if oriented.ok:
            image = oriented.value
        else:
            logger.warning(f"Image orientation failed, sending original bytes: {oriented.error}")

        ocr = self.chat_client.extract_contract(image, media_file_name(message.media, "jpg"), message.media.mime_type)
        if ocr.ok:
            logger.info(
                "Invoice processed",
                extra={"context": {"has_contracts": ocr.value.has_contracts, "status": ocr.value.status}},
            )
        return ocr

"""Per-event orchestration: inbound WhatsApp message -> backend -> reply."""

import uuid
from typing import Iterable, Optional

from whatshook.config import Settings
from whatshook.logging_config import get_logger, mask_phone
from whatshook.schemas.events import EventGridEvent, InboundMessage, parse_advanced_message
from whatshook.services import media_codec
from whatshook.services.blob_service import BlobStorageService
from whatshook.services.catalog_store_service import CatalogStoreClient
from whatshook.services.chat_client import ChatApiClient
from whatshook.services.conversation_store import ConversationStore
from whatshook.services.localization import format_contract_reply, get_message, resolve_language
from whatshook.services.media_service import MEDIA_IMAGE, MEDIA_VOICE, MediaService, classify_media
from whatshook.services.notification_service import NotificationService
from whatshook.services.phone_service import derive_session_id, format_for_whatsapp
from whatshook.services.result import Result

logger = get_logger("relay_service")

VOICE_REPLY_CONTENT_TYPE = "audio/ogg"


class RelayService:
    def __init__(
        self,
        settings: Settings,
        store: ConversationStore,
        chat: ChatApiClient,
        notifications: NotificationService,
        media: MediaService,
        catalog: Optional[CatalogStoreClient] = None,
        blob: Optional[BlobStorageService] = None,
    ):
        self.settings = settings
        self.store = store
        self.chat = chat
        self.notifications = notifications
        self.media = media
        self.catalog = catalog
        self.blob = blob

    @property
    def default_language(self) -> str:
        return resolve_language(self.settings.default_language, "fr")

    def handle_events(self, events: Iterable[EventGridEvent]) -> int:
        processed = 0
        for event in events:
            if not event.is_advanced_message:
                logger.info(f"Skipping event type {event.event_type}", extra={"context": {"event_id": event.id}})
                continue
            self.handle_message(parse_advanced_message(event))
            processed += 1
        return processed

    def handle_message(self, message: InboundMessage) -> None:
        if not message.sender:
            logger.warning("Message without sender, nothing to reply to")
            return

        sender = message.sender
        recipients = [format_for_whatsapp(sender)]
        language = self.default_language

        logger.info(
            "Processing inbound message",
            extra={
                "context": {
                    "sender": mask_phone(sender),
                    "has_media": message.media is not None,
                    "chars": len(message.text),
                }
            },
        )

        if self.settings.store_lookup_enabled and self.catalog is not None:
            store = self.catalog.get_store_by_phone(sender)
            if not store.ok:
                logger.warning(f"Access denied for {mask_phone(sender)}: {store.error_code}")
                self.notifications.send_text(get_message("access_denied", language), recipients)
                return

        if message.media is not None:
            kind = classify_media(message.media.mime_type)
            if kind == MEDIA_VOICE:
                self._handle_voice(message, recipients)
            elif kind == MEDIA_IMAGE:
                self._handle_image(message, recipients)
            else:
                logger.info(f"Unsupported media type {message.media.mime_type}")
                self.notifications.send_text(get_message("unsupported_media", language), recipients)
            return

        if not message.has_text:
            logger.info(f"Empty message from {mask_phone(sender)}, nothing to do")
            return

        self._chat_and_reply(sender, message.text, language, recipients)

    def _chat(self, sender: str, text: str, language: str) -> Result:
        conversation_id = self.store.get(sender) or derive_session_id(sender)
        reply = self.chat.send_chat(text, conversation_id, language)
        if reply.ok:
            self.store.set(sender, reply.value.conversation_id or conversation_id)
        return reply

    def _chat_and_reply(self, sender: str, text: str, language: str, recipients: list[str]) -> Result:
        reply = self._chat(sender, text, language)
        if not reply.ok:
            logger.error(f"Chat failed for {mask_phone(sender)}: {reply.error_code}")
            self.notifications.send_text(get_message("generic_error", language), recipients)
            return reply
        self.notifications.send_text(reply.value.text, recipients)
        return reply

    def _handle_voice(self, message: InboundMessage, recipients: list[str]) -> None:
        transcription = self.media.transcribe_voice(message)
        if not transcription.ok:
            self.notifications.send_text(get_message("voice_error", self.default_language), recipients)
            return

        language = resolve_language(transcription.value.language, self.default_language)
        reply = self._chat_and_reply(message.sender, transcription.value.text, language, recipients)
        if reply.ok and self.settings.voice_reply_enabled and self.blob is not None:
            self._send_voice_reply(reply.value.text, recipients)

    def _send_voice_reply(self, text: str, recipients: list[str]) -> None:
        speech = self.chat.synthesize_speech(text)
        if not speech.ok:
            logger.warning(f"Voice reply skipped, synthesis failed: {speech.error}")
            return

        ogg = media_codec.wav_to_ogg(speech.value)
        if not ogg.ok:
            logger.warning(f"Voice reply skipped, conversion failed: {ogg.error}")
            return

        file_name = f"reply-{uuid.uuid4().hex}.ogg"
        self.notifications.send_audio_bytes(ogg.value, file_name, VOICE_REPLY_CONTENT_TYPE, self.blob, recipients)

    def _handle_image(self, message: InboundMessage, recipients: list[str]) -> None:
        language = self.default_language
        ocr = self.media.extract_invoice(message)
        if not ocr.ok:
            self.notifications.send_text(get_message("image_error", language), recipients)
            return

        reply = format_contract_reply(ocr.value.water_contract, ocr.value.electricity_contract, language)
        self.notifications.send_text(reply, recipients)

        if message.has_text:
            self._chat_and_reply(message.sender, message.caption, language, recipients)

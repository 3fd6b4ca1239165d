from types import SimpleNamespace
from unittest.mock import Mock

from azure.core.exceptions import HttpResponseError, ServiceRequestError

from whatshook.services.notification_service import AUDIO_UNAVAILABLE_TEXT, NotificationService
from whatshook.services.result import DOWNLOAD_ERROR, MALFORMED, SEND_ERROR, Result

RECIPIENTS = ["+15551234567"]


def make_service(client=None) -> NotificationService:
    if client is None:
        client = Mock()
        client.send.return_value = SimpleNamespace(receipts=[SimpleNamespace(message_id="msg-1", to="+15551234567")])
    return NotificationService(client, "channel-123")


class TestSend:
    def test_send_text(self):
        service = make_service()
        result = service.send_text("Bonjour", RECIPIENTS)

        assert result.ok is True
        assert result.value == ["msg-1"]
        content = service.client.send.call_args.args[0]
        assert content.channel_registration_id == "channel-123"
        assert content.to == RECIPIENTS
        assert content.content == "Bonjour"

    def test_send_image(self):
        service = make_service()
        service.send_image("https://blob.test/img.jpg", RECIPIENTS, caption="facture")
        content = service.client.send.call_args.args[0]
        assert content.media_uri == "https://blob.test/img.jpg"
        assert content.content == "facture"

    def test_send_image_without_caption(self):
        service = make_service()
        assert service.send_image("https://blob.test/img.jpg", RECIPIENTS).ok is True
        assert service.client.send.call_args.args[0].content is None

    def test_send_audio(self):
        service = make_service()
        assert service.send_audio("https://blob.test/a.ogg", RECIPIENTS).ok is True
        assert service.client.send.call_args.args[0].media_uri == "https://blob.test/a.ogg"

    def test_send_document_and_video(self):
        service = make_service()
        assert service.send_document("https://blob.test/f.pdf", RECIPIENTS, "f.pdf").ok is True
        assert service.client.send.call_args.args[0].file_name == "f.pdf"
        assert service.send_video("https://blob.test/v.mp4", RECIPIENTS).ok is True

    def test_send_failure(self):
        client = Mock()
        client.send.side_effect = HttpResponseError(message="forbidden")
        result = make_service(client).send_text("hi", RECIPIENTS)
        assert result.ok is False
        assert result.error_code == SEND_ERROR


class TestSendAudioBytes:
    def test_uploads_and_sends_audio(self):
        service = make_service()
        blob = Mock()
        blob.upload.return_value = Result.success("https://blob.test/reply.ogg?sig")

        result = service.send_audio_bytes(b"OggS", "reply.ogg", "audio/ogg", blob, RECIPIENTS)

        assert result.ok is True
        blob.upload.assert_called_once_with(b"OggS", "reply.ogg", "audio/ogg")
        assert service.client.send.call_args.args[0].media_uri == "https://blob.test/reply.ogg?sig"

    def test_upload_failure_falls_back_to_text(self):
        service = make_service()
        blob = Mock()
        blob.upload.return_value = Result.failure("denied", "storage_error")

        service.send_audio_bytes(b"OggS", "reply.ogg", "audio/ogg", blob, RECIPIENTS)

        assert service.client.send.call_args.args[0].content == AUDIO_UNAVAILABLE_TEXT


class TestDownloadMedia:
    def test_joins_chunks(self):
        client = Mock()
        client.download_media.return_value = iter([b"Ogg", b"S"])
        result = make_service(client).download_media("media-1")
        assert result.value == b"OggS"
        client.download_media.assert_called_once_with("media-1")

    def test_empty_media(self):
        client = Mock()
        client.download_media.return_value = iter([])
        assert make_service(client).download_media("media-1").error_code == MALFORMED

    def test_download_error(self):
        client = Mock()
        client.download_media.side_effect = ServiceRequestError("unreachable")
        assert make_service(client).download_media("media-1").error_code == DOWNLOAD_ERROR

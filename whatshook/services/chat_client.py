import json
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from whatshook.logging_config import get_logger
from whatshook.services.resilience import CircuitOpenError, ResilientHttpClient
from whatshook.services.result import CIRCUIT_OPEN, HTTP_ERROR, MALFORMED, TRANSPORT_ERROR, Result

logger = get_logger("chat_client")

REPLY_FIELDS = ("response", "message", "answer", "whatsapp_summary", "completion")
HEALTH_TIMEOUT_SECONDS = 2.0


@dataclass
class ChatReply:
    text: str
    conversation_id: Optional[str] = None


@dataclass
class SpeechToTextResult:
    text: str
    language: Optional[str] = None
    status: Optional[str] = None


@dataclass
class OcrResult:
    water_contract: Optional[str] = None
    electricity_contract: Optional[str] = None
    status: Optional[str] = None

    @property
    def has_contracts(self) -> bool:
        return bool(self.water_contract or self.electricity_contract)


def parse_json_body(body: str) -> Optional[Any]:
    """Parse body as JSON only when it looks like an object or an array."""
    stripped = (body or "").strip()
    if not stripped:
        return None
    if not (
        (stripped.startswith("{") and stripped.endswith("}"))
        or (stripped.startswith("[") and stripped.endswith("]"))
    ):
        return None
    try:
        return json.loads(stripped)
    except ValueError:
        return None


def extract_reply_text(payload: Any) -> Optional[str]:
    """Pick the reply text out of a chat response payload."""
    if isinstance(payload, str):
        return payload
    if not isinstance(payload, dict):
        return None
    for field in REPLY_FIELDS:
        if field in payload:
            value = payload[field]
            return value if isinstance(value, str) else None
    return None


def base_content_type(content_type: Optional[str], default: str) -> str:
    """``audio/ogg; codecs=opus`` -> ``audio/ogg``."""
    if not content_type:
        return default
    return content_type.split(";")[0].strip() or default


class ChatApiClient:
    """Client for the SRM API: chat, speech and OCR endpoints."""

    def __init__(self, http: ResilientHttpClient):
        self.http = http

    def _call(self, method: str, path: str, **kwargs) -> Result[httpx.Response]:
        try:
            response = self.http.request(method, path, **kwargs)
        except CircuitOpenError as e:
            logger.warning(f"SRM API call skipped: {e}")
            return Result.failure(str(e), CIRCUIT_OPEN)
        except httpx.HTTPError as e:
            logger.error(f"SRM API {method} {path} failed: {e}")
            return Result.failure(str(e), TRANSPORT_ERROR)

        if not response.is_success:
            logger.error(
                f"SRM API {method} {path} returned {response.status_code}",
                extra={"context": {"body": response.text[:500]}},
            )
            return Result.failure(f"HTTP {response.status_code}", HTTP_ERROR)
        return Result.success(response)

    def send_chat(self, message: str, conversation_id: Optional[str], language: str = "fr") -> Result[ChatReply]:
        payload = {"message": message, "language": language}
        if conversation_id:
            payload["conversation_id"] = conversation_id

        logger.info(
            "Sending chat message",
            extra={"context": {"conversation_id": conversation_id, "language": language}},
        )
        call = self._call("POST", "/api/chat", json=payload)
        if not call.ok:
            return Result.failure(call.error, call.error_code)

        body = call.value.text
        logger.debug(f"Chat response: {body[:500]}")
        parsed = parse_json_body(body)
        if parsed is None:
            if not body.strip():
                return Result.failure("Empty chat response", MALFORMED)
            # Plain text replies are passed through unchanged.
            return Result.success(ChatReply(text=body, conversation_id=conversation_id))

        text = extract_reply_text(parsed)
        if not text:
            fields = sorted(parsed.keys()) if isinstance(parsed, dict) else []
            logger.warning(f"No reply field in chat response, available: {fields}")
            return Result.failure("No reply field in chat response", MALFORMED)

        returned_id = parsed.get("conversation_id") if isinstance(parsed, dict) else None
        return Result.success(ChatReply(text=text, conversation_id=returned_id or conversation_id))

    def speech_to_text(self, audio: bytes, filename: str, content_type: Optional[str]) -> Result[SpeechToTextResult]:
        files = {"audio": (filename, audio, base_content_type(content_type, "audio/wav"))}
        call = self._call("POST", "/api/speech-to-text", files=files)
        if not call.ok:
            return Result.failure(call.error, call.error_code)

        data = parse_json_body(call.value.text)
        if not isinstance(data, dict):
            logger.error(f"Invalid JSON from speech-to-text: {call.value.text[:200]}")
            return Result.failure("Invalid speech-to-text response", MALFORMED)

        return Result.success(
            SpeechToTextResult(
                text=(data.get("text") or "").strip(),
                language=data.get("language"),
                status=data.get("status"),
            )
        )

    def synthesize_speech(self, text: str) -> Result[bytes]:
        call = self._call("POST", "/api/synthesize/speech", json={"text": text})
        if not call.ok:
            return Result.failure(call.error, call.error_code)
        audio = call.value.content
        if not audio:
            return Result.failure("Empty audio from speech synthesis", MALFORMED)
        return Result.success(audio)

    def extract_contract(self, image: bytes, filename: str, content_type: Optional[str]) -> Result[OcrResult]:
        files = {"file": (filename, image, base_content_type(content_type, "image/jpeg"))}
        call = self._call("POST", "/api/ocr/extract-contract", files=files)
        if not call.ok:
            return Result.failure(call.error, call.error_code)

        data = parse_json_body(call.value.text)
        if not isinstance(data, dict):
            logger.error(f"Invalid JSON from OCR: {call.value.text[:200]}")
            return Result.failure("Invalid OCR response", MALFORMED)

        return Result.success(
            OcrResult(
                water_contract=data.get("water_contract"),
                electricity_contract=data.get("electricity_contract"),
                status=data.get("status"),
            )
        )

    def ping(self) -> Result[int]:
        call = self._call("GET", "/health", retry=False, timeout=HEALTH_TIMEOUT_SECONDS)
        if not call.ok:
            return Result.failure(call.error, call.error_code)
        return Result.success(call.value.status_code)

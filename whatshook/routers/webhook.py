import json
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from whatshook.dependencies import get_relay_service
from whatshook.logging_config import get_logger
from whatshook.schemas.events import EventGridEvent, SubscriptionValidationData, SubscriptionValidationResponse
from whatshook.services.relay_service import RelayService

logger = get_logger("webhook")

router = APIRouter(prefix="/webhook", tags=["webhook"])

EVENT_TYPE_HEADER = "aeg-event-type"
SUBSCRIPTION_VALIDATION = "SubscriptionValidation"
NOTIFICATION = "Notification"

SERVICE_VERSION = "1.0"


class InvalidPayloadError(ValueError):
    """Request body is not a JSON array of Event Grid events."""


def parse_events(raw: bytes) -> list[EventGridEvent]:
    try:
        payload = json.loads(raw or b"")
    except ValueError as e:
        raise InvalidPayloadError(f"Invalid JSON: {e}") from e

    if not isinstance(payload, list):
        raise InvalidPayloadError("Expected a JSON array of events")

    try:
        return [EventGridEvent.model_validate(item) for item in payload]
    except ValidationError as e:
        raise InvalidPayloadError(f"Invalid event: {e.error_count()} errors") from e


def _bad_request(error: str = "Invalid event data") -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": error})


def handle_validation(raw: bytes) -> JSONResponse:
    try:
        events = parse_events(raw)
    except InvalidPayloadError as e:
        logger.warning(f"Subscription validation payload rejected: {e}")
        return _bad_request()

    if not events or not isinstance(events[0].data, dict):
        return _bad_request()

    try:
        data = SubscriptionValidationData.model_validate(events[0].data)
    except ValidationError as e:
        logger.warning(f"Subscription validation data rejected: {e.error_count()} errors")
        return _bad_request()
    if not data.validation_code:
        return _bad_request()

    logger.info("Subscription validation handshake answered", extra={"context": {"event_id": events[0].id}})
    return JSONResponse(content=SubscriptionValidationResponse(validationResponse=data.validation_code).model_dump())


async def handle_notification(raw: bytes, relay: RelayService) -> JSONResponse:
    try:
        events = parse_events(raw)
    except InvalidPayloadError as e:
        logger.warning(f"Notification payload rejected: {e}")
        return _bad_request()

    logger.info(f"Processing {len(events)} Event Grid events")
    try:
        processed = await run_in_threadpool(relay.handle_events, events)
    except Exception:
        # Re-raised so the delivery is retried.
        logger.exception("Event processing failed")
        raise
    return JSONResponse(content={"processed": processed})


@router.post("")
async def receive_events(request: Request, relay: RelayService = Depends(get_relay_service)):
    event_type = request.headers.get(EVENT_TYPE_HEADER)
    raw = await request.body()
    logger.info(
        "Webhook POST received",
        extra={
            "context": {
                "event_type": event_type,
                "content_type": request.headers.get("content-type"),
                "length": len(raw),
            }
        },
    )
    logger.debug(f"Raw payload: {raw[:500].decode(errors='replace')}")

    if event_type == SUBSCRIPTION_VALIDATION:
        return handle_validation(raw)

    if event_type == NOTIFICATION:
        return await handle_notification(raw, relay)

    logger.warning(f"Unsupported or missing {EVENT_TYPE_HEADER} header ({event_type}), trying notification processing")
    try:
        return await handle_notification(raw, relay)
    except Exception:
        return _bad_request()


@router.options("")
async def abuse_protection_handshake(request: Request):
    response = Response(status_code=200)
    response.headers["WebHook-Allowed-Rate"] = "*"
    response.headers["WebHook-Allowed-Origin"] = request.headers.get("WebHook-Request-Origin") or "*"
    callback = request.headers.get("WebHook-Request-Callback")
    if callback:
        response.headers["WebHook-Allowed-Callback"] = callback
    return response


@router.get("/health")
async def webhook_health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": SERVICE_VERSION,
        "services": {"media": "ready", "session": "ready", "notification": "ready"},
    }

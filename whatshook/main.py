import sys
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response

from whatshook.config import ConfigurationError, Settings, get_settings
from whatshook.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from whatshook.logging_config import get_logger, setup_logging
from whatshook.routers import health, webhook
from whatshook.services.blob_service import BlobStorageService
from whatshook.services.catalog_store_service import CatalogStoreClient
from whatshook.services.chat_client import ChatApiClient
from whatshook.services.conversation_store import ConversationStore
from whatshook.services.health_service import HealthService
from whatshook.services.media_service import MediaService
from whatshook.services.notification_service import NotificationService
from whatshook.services.relay_service import RelayService
from whatshook.services.resilience import CircuitBreaker, ResilientHttpClient

logger = get_logger("main")


def _http_client(settings: Settings, base_url: str, name: str, transport: Optional[httpx.BaseTransport]):
    return ResilientHttpClient(
        base_url,
        timeout=settings.http_timeout_seconds,
        max_attempts=settings.http_max_attempts,
        backoff_seconds=settings.http_retry_backoff_seconds,
        breaker=CircuitBreaker(
            name,
            failure_threshold=settings.circuit_failure_threshold,
            reset_timeout=settings.circuit_reset_seconds,
        ),
        transport=transport,
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    notification_service: Optional[NotificationService] = None,
    blob_service: Optional[BlobStorageService] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
) -> FastAPI:
    """Build the application and its services.

    Raises ConfigurationError when a required setting is missing.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    logger.info("Configuration loaded", extra={"context": settings.summary()})
    settings.validate_required()

    srm_http = _http_client(settings, settings.srm_api_url, "srm-api", http_transport)
    catalog_http = _http_client(settings, settings.catalog_store_api_url, "catalog-store", http_transport)

    chat_client = ChatApiClient(srm_http)
    notifications = notification_service or NotificationService.from_connection_string(
        settings.communication_services_connection_string, settings.channel_registration_id
    )
    if blob_service is None and settings.azure_storage_connection_string:
        blob_service = BlobStorageService.from_connection_string(
            settings.azure_storage_connection_string, settings.blob_container_name
        )
    if blob_service is None:
        logger.info("Blob storage not configured, voice replies disabled")

    store = ConversationStore()
    relay = RelayService(
        settings,
        store,
        chat_client,
        notifications,
        MediaService(notifications, chat_client),
        catalog=CatalogStoreClient(catalog_http),
        blob=blob_service,
    )

    app = FastAPI(
        title="WhatsHook",
        description="WhatsApp relay between Azure Communication Services and the SRM API",
        version=webhook.SERVICE_VERSION,
    )
    app.state.settings = settings
    app.state.conversation_store = store
    app.state.relay_service = relay
    app.state.health_service = HealthService(settings, chat_client)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    @app.on_event("shutdown")
    def close_http_clients() -> None:
        srm_http.close()
        catalog_http.close()

    app.include_router(webhook.router)
    app.include_router(health.router)

    return app


def main() -> None:
    try:
        app = create_app()
    except ConfigurationError as e:
        logger.error(f"Configuration validation failed: {e}")
        sys.exit(1)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    main()

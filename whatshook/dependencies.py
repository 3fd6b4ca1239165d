"""FastAPI dependencies resolving the services built by create_app()."""

from fastapi import Request

from whatshook.services.health_service import HealthService
from whatshook.services.relay_service import RelayService


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service


def get_health_service(request: Request) -> HealthService:
    return request.app.state.health_service

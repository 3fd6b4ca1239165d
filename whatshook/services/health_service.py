import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from whatshook.config import Settings
from whatshook.logging_config import get_logger
from whatshook.services.chat_client import ChatApiClient

logger = get_logger("health_service")

HEALTHY = "Healthy"
DEGRADED = "Degraded"
UNHEALTHY = "Unhealthy"

READY_TAG = "ready"


@dataclass
class CheckResult:
    status: str
    detail: Optional[str] = None


@dataclass
class HealthCheck:
    name: str
    check: Callable[[], CheckResult]
    tags: frozenset = field(default_factory=frozenset)


def _timed(check: HealthCheck) -> dict:
    started = time.perf_counter()
    try:
        result = check.check()
    except Exception as e:
        logger.error(f"Health check {check.name} raised: {e}")
        result = CheckResult(UNHEALTHY, str(e))
    return {
        "name": check.name,
        "status": result.status,
        "detail": result.detail,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
    }


def overall_status(statuses: list[str]) -> str:
    if UNHEALTHY in statuses:
        return UNHEALTHY
    if DEGRADED in statuses:
        return DEGRADED
    return HEALTHY


class HealthService:
    def __init__(self, settings: Settings, chat_client: Optional[ChatApiClient] = None):
        self.settings = settings
        self.chat_client = chat_client
        self.checks = [
            HealthCheck("media-service", self._check_media_config),
            HealthCheck("notification-service", self._check_notification_config, frozenset({READY_TAG})),
            HealthCheck("session-service", self._check_session_config),
            HealthCheck("srm-api", self._check_srm_api, frozenset({READY_TAG})),
        ]

    def _check_media_config(self) -> CheckResult:
        if not (self.settings.communication_services_connection_string or "").strip():
            return CheckResult(UNHEALTHY, "COMMUNICATION_SERVICES_CONNECTION_STRING not configured")
        return CheckResult(HEALTHY, "Media service configured")

    def _check_notification_config(self) -> CheckResult:
        missing = self.settings.missing_required()
        if missing:
            return CheckResult(UNHEALTHY, f"Missing configuration: {', '.join(missing)}")
        return CheckResult(HEALTHY, "Notification channel configured")

    def _check_session_config(self) -> CheckResult:
        if not (self.settings.srm_api_url or "").strip():
            return CheckResult(UNHEALTHY, "SRM_API_URL is not configured")
        return CheckResult(HEALTHY, "Session service configured")

    def _check_srm_api(self) -> CheckResult:
        if self.chat_client is None:
            return CheckResult(UNHEALTHY, "SRM API client is not configured")
        ping = self.chat_client.ping()
        if ping.ok:
            return CheckResult(HEALTHY, f"SRM API responded {ping.value}")
        return CheckResult(UNHEALTHY, f"SRM API unreachable: {ping.error}")

    def run(self, tag: Optional[str] = None) -> dict:
        started = time.perf_counter()
        selected = [c for c in self.checks if tag is None or tag in c.tags]
        checks = [_timed(c) for c in selected]
        report = {
            "status": overall_status([c["status"] for c in checks]),
            "checks": checks,
            "total_duration_ms": round((time.perf_counter() - started) * 1000, 2),
        }
        if report["status"] != HEALTHY:
            logger.warning("Health check not healthy", extra={"context": report})
        return report

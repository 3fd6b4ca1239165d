"""Timeout, bounded retry and circuit breaker around httpx."""

import threading
import time
from typing import Callable, Optional

import httpx

from whatshook.correlation import CORRELATION_ID_HEADER, generate_correlation_id, get_correlation_id
from whatshook.logging_config import get_logger

logger = get_logger("resilience")

RETRY_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def is_transient_status(status_code: int) -> bool:
    # 429 is retried but does not count against the breaker.
    return status_code == 408 or status_code >= 500


class CircuitOpenError(Exception):
    """Raised instead of calling a collaborator whose circuit is open."""


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    closed -> open after ``failure_threshold`` transient failures in a row.
    open -> half_open once ``reset_timeout`` seconds passed; only the next call is
    let through as a trial, and a trial with no recorded outcome expires after
    ``reset_timeout``. A trial success closes the circuit, a trial failure reopens it.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = max(1, failure_threshold)
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._state = self.CLOSED
        self._trial_started_at: Optional[float] = None

    @property
    def state(self) -> str:
        with self._lock:
            return self._current_state()

    def _current_state(self) -> str:
        if self._state == self.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.reset_timeout:
                self._state = self.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        with self._lock:
            state = self._current_state()
            if state == self.OPEN:
                return False
            if state == self.HALF_OPEN:
                now = self._clock()
                if self._trial_started_at is not None and now - self._trial_started_at < self.reset_timeout:
                    return False
                self._trial_started_at = now
            return True

    def record_success(self) -> None:
        with self._lock:
            if self._state != self.CLOSED:
                logger.info(f"Circuit {self.name} closed")
            self._failures = 0
            self._opened_at = None
            self._state = self.CLOSED
            self._trial_started_at = None

    def record_failure(self) -> None:
        with self._lock:
            state = self._current_state()
            self._failures += 1
            if state == self.HALF_OPEN or self._failures >= self.failure_threshold:
                if state != self.OPEN:
                    logger.warning(
                        f"Circuit {self.name} opened",
                        extra={"context": {"failures": self._failures, "cooldown_seconds": self.reset_timeout}},
                    )
                self._state = self.OPEN
                self._opened_at = self._clock()
            self._trial_started_at = None


def _attach_correlation_id(request: httpx.Request) -> None:
    if CORRELATION_ID_HEADER not in request.headers:
        request.headers[CORRELATION_ID_HEADER] = get_correlation_id() or generate_correlation_id()


class ResilientHttpClient:
    """httpx.Client wrapper applying retries and a circuit breaker per call.

    Transport errors are re-raised after the last attempt; a retryable status
    on the last attempt is returned as-is so callers can inspect it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.2,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.breaker = breaker or CircuitBreaker(self.base_url)
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [_attach_correlation_id]},
        )

    def request(self, method: str, path: str, *, retry: bool = True, **kwargs) -> httpx.Response:
        attempts = self.max_attempts if retry else 1
        for attempt in range(1, attempts + 1):
            if not self.breaker.allow_request():
                raise CircuitOpenError(f"Circuit {self.breaker.name} is open")

            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                self.breaker.record_failure()
                if attempt >= attempts:
                    raise
                logger.warning(f"{method} {path} failed ({e.__class__.__name__}), attempt {attempt}/{attempts}")
                self._sleep(self.backoff_seconds * attempt)
                continue

            if is_transient_status(response.status_code):
                self.breaker.record_failure()
            else:
                self.breaker.record_success()

            if response.status_code in RETRY_STATUS_CODES and attempt < attempts:
                logger.warning(f"{method} {path} returned {response.status_code}, attempt {attempt}/{attempts}")
                self._sleep(self.backoff_seconds * attempt)
                continue

            return response

        raise RuntimeError("unreachable")  # pragma: no cover

    def get(self, path: str, **kwargs) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def close(self) -> None:
        self._client.close()

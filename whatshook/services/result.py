from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")

NOT_FOUND = "not_found"
TRANSPORT_ERROR = "transport_error"
HTTP_ERROR = "http_error"
MALFORMED = "malformed"
CIRCUIT_OPEN = "circuit_open"
INVALID_INPUT = "invalid_input"
CONVERSION_ERROR = "conversion_error"
SEND_ERROR = "send_error"
DOWNLOAD_ERROR = "download_error"
STORAGE_ERROR = "storage_error"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    @property
    def is_not_found(self) -> bool:
        return not self.ok and self.error_code == NOT_FOUND

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """Apply fn to the value of a success, pass failures through unchanged."""
        if not self.ok:
            return Result(ok=False, error=self.error, error_code=self.error_code)
        return Result.success(fn(self.value))

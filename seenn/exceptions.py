"""
Seenn error taxonomy.

Every failure raised by the client is a SeennError tagged with an ErrorKind.
The kind set is closed; callers branch on ``error.kind`` instead of on
exception subclasses. Only rate limit errors carry RateLimitInfo.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Classified failure conditions."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    API = "api"


# Kinds that are transient regardless of status code
_TRANSIENT_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.TIMEOUT, ErrorKind.NETWORK})

DEFAULT_RETRY_AFTER_SECONDS = 60


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate limit headers captured from a 429 response."""

    retry_after: int = DEFAULT_RETRY_AFTER_SECONDS
    limit: int = 0
    remaining: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "retryAfter": self.retry_after,
            "limit": self.limit,
            "remaining": self.remaining,
        }


class SeennError(Exception):
    """
    Classified failure from the Seenn API or the transport beneath it.

    Attributes:
        message: Human-readable description
        kind: ErrorKind tag
        code: Stable error code (server-supplied where available)
        status_code: HTTP status (408 for timeouts, 0 for network errors)
        details: Optional server-supplied details
        rate_limit: RateLimitInfo, only set when kind is RATE_LIMIT
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.API,
        code: str = "UNKNOWN",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        rate_limit: Optional[RateLimitInfo] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code
        self.status_code = status_code
        self.details = details
        self.rate_limit = rate_limit

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(kind={self.kind.value!r}, code={self.code!r}, "
            f"message={self.message!r}, status_code={self.status_code})"
        )

    @property
    def retryable(self) -> bool:
        """Whether an idempotent call failing this way may be attempted again."""
        if self.kind in _TRANSIENT_KINDS:
            return True
        if self.kind == ErrorKind.API:
            return self.status_code >= 500
        return False

    @property
    def retry_after(self) -> Optional[int]:
        """Server-advised wait in seconds for rate limit errors."""
        return self.rate_limit.retry_after if self.rate_limit else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "statusCode": self.status_code,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.rate_limit is not None:
            data["rateLimit"] = self.rate_limit.to_dict()
        return data

    # ------------------------------------------------------------------
    # Named constructors
    # ------------------------------------------------------------------

    @classmethod
    def validation(
        cls, message: str, details: Optional[Dict[str, Any]] = None
    ) -> "SeennError":
        return cls(message, ErrorKind.VALIDATION, "VALIDATION_ERROR", 400, details)

    @classmethod
    def authentication(
        cls, message: str = "Invalid or missing API key"
    ) -> "SeennError":
        return cls(message, ErrorKind.AUTHENTICATION, "AUTHENTICATION_ERROR", 401)

    @classmethod
    def not_found(cls, resource: str, resource_id: str) -> "SeennError":
        return cls(
            f"{resource} not found: {resource_id}",
            ErrorKind.NOT_FOUND,
            "NOT_FOUND",
            404,
            {"resource": resource, "id": resource_id},
        )

    @classmethod
    def rate_limited(
        cls,
        retry_after: int = DEFAULT_RETRY_AFTER_SECONDS,
        limit: int = 0,
        remaining: int = 0,
    ) -> "SeennError":
        info = RateLimitInfo(retry_after=retry_after, limit=limit, remaining=remaining)
        return cls(
            f"Rate limit exceeded. Retry after {retry_after} seconds",
            ErrorKind.RATE_LIMIT,
            "RATE_LIMIT_EXCEEDED",
            429,
            info.to_dict(),
            rate_limit=info,
        )

    @classmethod
    def timeout(cls, message: str = "Request timeout") -> "SeennError":
        return cls(message, ErrorKind.TIMEOUT, "TIMEOUT", 408)

    @classmethod
    def network(cls, message: str = "Connection error - unable to reach Seenn API") -> "SeennError":
        return cls(message, ErrorKind.NETWORK, "NETWORK_ERROR", 0)

    @classmethod
    def invalid_response(cls, message: str, status_code: int = 200) -> "SeennError":
        """A 2xx body that cannot be decoded into the expected shape."""
        return cls(message, ErrorKind.API, "INVALID_RESPONSE", status_code)

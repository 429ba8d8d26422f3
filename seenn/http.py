"""
Resilient request executor for the Seenn API.

HttpClient turns one logical API call into a reliable network operation:
- Per-request deadline (httpx timeout)
- Classification of every failure into a SeennError
- Retries with exponential backoff and jitter for idempotent calls

A call is idempotent when it is a GET or carries an Idempotency-Key.
Non-idempotent calls get exactly one attempt.

SECURITY: API key is sent only in the Authorization header and never logged.
"""

import asyncio
import logging
import random
from typing import Optional, Dict, Any

import httpx

from seenn.config import SeennConfig
from seenn.exceptions import SeennError, ErrorKind, DEFAULT_RETRY_AFTER_SECONDS

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 30.0
MAX_JITTER = 0.2


def is_idempotent(method: str, idempotency_key: Optional[str] = None) -> bool:
    """GET requests and requests with an idempotency key are safe to retry."""
    return method.upper() == "GET" or bool(idempotency_key)


def calculate_backoff_delay(attempt: int, jitter: Optional[float] = None) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        jitter: Jitter fraction in [0, 0.2] (default: random)

    Returns:
        Delay in seconds, capped at MAX_DELAY_SECONDS
    """
    if jitter is None:
        jitter = random.uniform(0, MAX_JITTER)
    delay = BASE_DELAY_SECONDS * (2 ** attempt) * (1 + jitter)
    return min(delay, MAX_DELAY_SECONDS)


def _header_int(headers: httpx.Headers, name: str, default: int) -> int:
    value = headers.get(name)
    if value is None:
        return default
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return default


class HttpClient:
    """
    Async HTTP executor bound to one immutable SeennConfig.

    All methods return the decoded JSON body or raise SeennError.
    """

    def __init__(
        self,
        config: SeennConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the executor.

        Args:
            config: Client configuration
            transport: Optional httpx transport (mock transports in tests)
        """
        self.config = config

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": config.user_agent,
            },
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request("POST", path, json=json, idempotency_key=idempotency_key)

    async def put(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request("PUT", path, json=json, idempotency_key=idempotency_key)

    async def delete(self, path: str, idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("DELETE", path, idempotency_key=idempotency_key)

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Execute a request with retry policy applied.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path, e.g. /v1/jobs
            json: Request body as JSON
            params: Query parameters
            idempotency_key: Marks the call idempotent and is sent as Idempotency-Key

        Returns:
            Response data as dictionary ({} for empty bodies)

        Raises:
            SeennError: The last classified failure once retries are exhausted
        """
        method = method.upper()
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        max_attempts = self.config.max_retries if is_idempotent(method, idempotency_key) else 1

        attempt = 0
        while True:
            try:
                return await self._send(method, path, json, params, headers)
            except SeennError as e:
                attempt += 1
                if not e.retryable or attempt >= max_attempts:
                    raise

                delay = calculate_backoff_delay(attempt - 1)
                logger.log(
                    logging.INFO if self.config.debug else logging.DEBUG,
                    "Retrying Seenn API request",
                    extra={
                        "method": method,
                        "path": path,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error_kind": e.kind.value,
                        "status_code": e.status_code,
                        "delay_seconds": round(delay, 3),
                    },
                )
                await asyncio.sleep(delay)

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
    ) -> Dict[str, Any]:
        """Perform a single attempt and classify its outcome."""
        url = f"{self.config.base_url}/{path.lstrip('/')}"

        try:
            response = await self._client.request(
                method=method,
                url=url,
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "Seenn API timeout",
                extra={"method": method, "path": path, "error": str(e)},
            )
            raise SeennError.timeout() from e
        except httpx.RequestError as e:
            logger.warning(
                "Seenn API connection error",
                extra={"method": method, "path": path, "error": str(e)},
            )
            raise SeennError.network(str(e) or "Connection error - unable to reach Seenn API") from e

        if not 200 <= response.status_code < 300:
            raise self._classify_error(response, path)

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise SeennError.invalid_response(
                "Invalid JSON in Seenn API response", response.status_code
            ) from e

    def _classify_error(self, response: httpx.Response, path: str) -> SeennError:
        """Map a non-2xx response onto the error taxonomy."""
        status = response.status_code

        try:
            payload = response.json()
        except ValueError:
            payload = None

        error = payload.get("error") if isinstance(payload, dict) else None
        if not isinstance(error, dict):
            error = {}

        message = error.get("message") or response.reason_phrase or f"HTTP {status}"
        code = error.get("code") or "UNKNOWN"
        details = error.get("details")

        if status == 400:
            return SeennError.validation(message, details)

        if status == 401:
            logger.error(
                "Seenn API authentication failed",
                extra={"status_code": 401, "path": path},
            )
            return SeennError.authentication(message)

        if status == 404:
            resource_id = details.get("id") if isinstance(details, dict) else None
            return SeennError.not_found("Resource", str(resource_id or path))

        if status == 429:
            error_obj = SeennError.rate_limited(
                retry_after=_header_int(response.headers, "Retry-After", DEFAULT_RETRY_AFTER_SECONDS),
                limit=_header_int(response.headers, "X-RateLimit-Limit", 0),
                remaining=_header_int(response.headers, "X-RateLimit-Remaining", 0),
            )
            logger.warning(
                "Seenn API rate limited",
                extra={"path": path, "retry_after": error_obj.retry_after},
            )
            return error_obj

        logger.error(
            "Seenn API error",
            extra={"status_code": status, "path": path, "error_code": code},
        )
        return SeennError(message, ErrorKind.API, code, status, details)

"""
Client configuration.

SeennConfig is fixed at client construction and never mutated afterwards.
Explicit arguments take precedence over environment variables:

    SEENN_API_KEY          API key (sk_live_... or sk_test_...)
    SEENN_BASE_URL         API base URL
    SEENN_TIMEOUT_SECONDS  Per-request timeout
    SEENN_MAX_RETRIES      Max attempts for idempotent requests
    SEENN_DEBUG            Log retry diagnostics at INFO ("1", "true", "yes")

SECURITY: the API key is excluded from repr() and must never be logged.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

__version__ = "1.0.0"

DEFAULT_BASE_URL = "https://api.seenn.io"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_USER_AGENT = f"seenn-python/{__version__}"

API_KEY_PREFIX = "sk_"


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, cast):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return cast(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class SeennConfig:
    """Immutable client configuration."""

    api_key: str = field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    debug: bool = False
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        if not self.api_key:
            raise ValueError(
                "Seenn API key is required. Set SEENN_API_KEY environment variable "
                "or pass api_key parameter."
            )
        if not self.api_key.startswith(API_KEY_PREFIX):
            raise ValueError("api_key must start with sk_live_ or sk_test_")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(
        cls,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        debug: Optional[bool] = None,
    ) -> "SeennConfig":
        """
        Build a config from explicit values, falling back to environment variables.

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        if timeout is None:
            timeout = _env_number("SEENN_TIMEOUT_SECONDS", float)
        if max_retries is None:
            max_retries = _env_number("SEENN_MAX_RETRIES", int)
        if debug is None:
            debug = _env_bool("SEENN_DEBUG")

        return cls(
            api_key=api_key or os.getenv("SEENN_API_KEY") or "",
            base_url=base_url or os.getenv("SEENN_BASE_URL") or DEFAULT_BASE_URL,
            timeout=timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS,
            max_retries=max_retries if max_retries is not None else DEFAULT_MAX_RETRIES,
            debug=bool(debug),
        )

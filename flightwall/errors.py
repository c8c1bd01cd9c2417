"""Error types shared by provider clients and gateway services."""

from __future__ import annotations

# HTTP statuses that trigger provider failover or a brief 429 cache.
RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


class UpstreamError(RuntimeError):
    """Raised when an upstream provider call does not produce usable data.

    ``kind`` is one of ``transient`` (timeout, network, 429/5xx), ``auth``
    (401 that survived a token refresh), ``not_found`` (404/204),
    ``malformed`` (non-JSON or unexpected shape) or ``http`` (any other
    non-2xx status).
    """

    def __init__(
        self,
        kind: str,
        message: str,
        *,
        status: int | None = None,
        provider: str | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.provider = provider
        self.detail = detail

    @property
    def retryable(self) -> bool:
        return self.kind == "transient"

    def __repr__(self) -> str:
        return (
            f"UpstreamError(kind={self.kind!r}, status={self.status!r}, "
            f"provider={self.provider!r})"
        )


class ConfigurationError(RuntimeError):
    """Raised when required operator configuration is missing."""

    def __init__(self, message: str, *, code: str, hint: str) -> None:
        super().__init__(message)
        self.code = code
        self.hint = hint


def classify_status(status: int) -> str:
    """Map a non-2xx HTTP status onto an :class:`UpstreamError` kind."""

    if status in RETRYABLE_STATUSES:
        return "transient"
    if status in {204, 404}:
        return "not_found"
    if status == 401:
        return "auth"
    return "http"


__all__ = ["ConfigurationError", "RETRYABLE_STATUSES", "UpstreamError", "classify_status"]

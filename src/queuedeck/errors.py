"""Error types for queue inspection and job control.

Every predictable failure raised by the core derives from ``QueueDeckError``.
The ``status_code`` is the HTTP status a routing layer is expected to use
when rendering the error; ``code`` is a stable identifier clients can branch on.
"""

from __future__ import annotations

from typing import Any


class QueueDeckError(Exception):
    """Base exception for predictable queuedeck errors.

    Note: Avoid frozen dataclasses for exceptions; some frameworks attempt to
    mutate ``__traceback__`` and other attributes during handling, which breaks
    with frozen/slots dataclass exceptions.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


class NotFoundError(QueueDeckError):
    """Job or resource absent (404)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "NOT_FOUND",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=404, details=details)


class InvalidArgumentError(QueueDeckError):
    """Bad category name, window or payload (400)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "INVALID_ARGUMENT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=400, details=details)


class UnreachableError(QueueDeckError):
    """Connection or network failure talking to a Redis backend (503)."""

    def __init__(
        self,
        message: str = "Redis backend unreachable",
        *,
        code: str = "UNREACHABLE",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=503, details=details)


class EngineRejectedError(QueueDeckError):
    """The queue engine refused the operation, e.g. retrying a non-failed job (409)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "ENGINE_REJECTED",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=409, details=details)


class CredentialFormatError(QueueDeckError):
    """Stored credential is not a nonce:tag:ciphertext hex triple."""

    def __init__(
        self,
        message: str = "Invalid encrypted data format",
        *,
        code: str = "CREDENTIAL_FORMAT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=500, details=details)


class CredentialCryptoError(QueueDeckError):
    """Stored credential failed authentication (tampered data or wrong key)."""

    def __init__(
        self,
        message: str = "Encrypted data failed integrity check",
        *,
        code: str = "CREDENTIAL_CRYPTO",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=500, details=details)


class ConfigurationError(QueueDeckError):
    """Process configuration is missing or malformed."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "CONFIGURATION_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=500, details=details)

"""Transport-level failures surfaced to the caller of the agent loop."""

from __future__ import annotations

__all__ = [
    "TransportError",
    "AuthorizationError",
    "AgentBusyError",
    "CREDENTIAL_ERROR_PHRASES",
    "is_credential_error",
    "classify_transport_error",
]

CREDENTIAL_ERROR_PHRASES: tuple[str, ...] = (
    "no api key",
    "invalid api key",
    "api key",
    "unauthorized",
    "authentication",
    "401",
)


class TransportError(RuntimeError):
    """Network failure or malformed stream; the current turn is abandoned."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_credential_error(self) -> bool:
        return False


class AuthorizationError(TransportError):
    """Transport error caused by missing or rejected credentials."""

    @property
    def is_credential_error(self) -> bool:
        return True


class AgentBusyError(RuntimeError):
    """Raised when a turn is requested while another one is still running."""


def is_credential_error(message: str | None, status_code: int | None = None) -> bool:
    """Case-insensitive phrase check used to flag credential problems."""

    if status_code == 401:
        return True
    lowered = (message or "").lower()
    return any(phrase in lowered for phrase in CREDENTIAL_ERROR_PHRASES)


def classify_transport_error(message: str, status_code: int | None = None) -> TransportError:
    if is_credential_error(message, status_code):
        return AuthorizationError(message, status_code=status_code)
    return TransportError(message, status_code=status_code)

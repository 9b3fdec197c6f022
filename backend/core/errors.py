"""Error taxonomy shared by the audit pipeline and the HTTP layer."""

from __future__ import annotations

from typing import Iterable, Tuple

__all__ = [
    "AuditError",
    "ConfigurationError",
    "ProviderUnavailableError",
    "AnalysisParseError",
    "SchemaViolationError",
    "ProfileNotFoundError",
    "InvalidInputError",
    "AnalysisInProgressError",
    "InvalidTransitionError",
    "ExportInProgressError",
    "ExportFailedError",
    "IdentityMismatchWarning",
]


class AuditError(RuntimeError):
    """Base class for every failure surfaced to the caller.

    ``str(exc)`` carries the technical detail for logs; ``user_message`` is the
    short text the front-end shows next to the retry button.
    """

    user_message = "No se pudo procesar el análisis. Inténtalo de nuevo."


class ConfigurationError(AuditError):
    """Raised when required configuration (the API key, a prompt) is missing."""

    user_message = "El servicio de análisis no está configurado correctamente."


class ProviderUnavailableError(AuditError):
    """Raised when the Gemini API cannot be reached or rejects the request."""

    user_message = "El servicio de análisis no está disponible. Inténtalo de nuevo más tarde."


class AnalysisParseError(AuditError):
    """Raised when the model answer is not a JSON object."""


class SchemaViolationError(AuditError):
    """Raised when the model JSON does not satisfy the audit schema."""

    def __init__(self, message: str, *, missing_fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing_fields: Tuple[str, ...] = tuple(missing_fields)


class ProfileNotFoundError(AuditError):
    """Raised when the model reports that the profile could not be found."""

    user_message = (
        "No se encontró información pública del perfil. "
        "Verifica el nombre de usuario e inténtalo de nuevo."
    )

    def __init__(self, handle: str) -> None:
        super().__init__(f"No public information found for @{handle}.")
        self.handle = handle


class InvalidInputError(AuditError, ValueError):
    """Raised when the submitted handle is empty after normalisation."""

    user_message = "Introduce un nombre de usuario o una URL de Instagram."


class AnalysisInProgressError(AuditError):
    """Raised when an analysis is submitted while another one is in flight."""

    user_message = "Ya hay un análisis en curso. Espera a que termine."


class InvalidTransitionError(AuditError):
    """Raised when an event is not allowed in the current audit state."""

    user_message = "La acción no está disponible en este momento."


class ExportInProgressError(AuditError):
    """Raised when an export is requested while another one is running."""

    user_message = "El reporte ya se está exportando."


class ExportFailedError(AuditError):
    """Raised when the report renderer fails; the analysis stays valid."""

    user_message = "No se pudo generar el PDF. Por favor, inténtalo de nuevo."


class IdentityMismatchWarning(UserWarning):
    """Emitted when the returned handle differs from the requested one."""

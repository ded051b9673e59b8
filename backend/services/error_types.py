"""
Custom Error Types for the Energy Audit Pipeline

Provides categorized exceptions to distinguish between critical errors
that stop an audit step and non-critical errors that are collected and
reported alongside a partial result.
"""

import logging
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class EnergyAuditError(Exception):
    """Base exception for all energy audit errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class CriticalError(EnergyAuditError):
    """
    Critical errors that should stop the current audit step.

    Examples:
    - No electricity bill could be OCR'd
    - LLM returned an unusable payload
    - Store write rejected
    """
    pass


class NonCriticalError(EnergyAuditError):
    """
    Non-critical errors that are logged and collected but don't stop processing.

    Examples:
    - One of several bills failed OCR
    - Optional enrichment failed
    """
    pass


class ValidationError(CriticalError):
    """
    Input validation errors, reported before any I/O.

    Examples:
    - File size exceeds 10MB
    - Unsupported file type
    - Missing bill or floor plan
    """
    status_code = 400


class ConfigurationError(CriticalError):
    """
    Configuration errors that prevent proper operation.

    Examples:
    - Missing store credentials
    - Missing LLM or OCR API key
    """
    status_code = 500


class NotFoundError(CriticalError):
    """Requested building, audit or report does not exist."""
    status_code = 404


class OCRError(CriticalError):
    """OCR failed terminally for one file after all retry attempts."""
    status_code = 502

    def __init__(self, file_name: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.file_name = file_name


class LLMServiceError(CriticalError):
    """Transport or proxy failure while talking to the LLM."""
    status_code = 502


class UpstreamContractError(CriticalError):
    """The LLM answered, but not in the shape the pipeline requires."""
    status_code = 502


class InvalidAIResponseError(UpstreamContractError):
    """LLM content was empty or could not be parsed as JSON."""
    pass


class MissingSectionError(UpstreamContractError):
    """A required top-level section is absent from the LLM payload."""

    def __init__(self, section: str, received: Optional[List[str]] = None):
        super().__init__(
            f"Missing required section in AI response: {section}",
            {"section": section, "received_keys": received or []},
        )
        self.section = section


class PersistenceError(CriticalError):
    """A store write was rejected. Earlier writes of the step are not rolled back."""
    status_code = 503


class ProcessingError(CriticalError):
    """
    An audit level cannot continue with the inputs that survived processing.

    Carries the per-file errors collected before the failure.
    """
    status_code = 422

    def __init__(self, message: str, processing_errors: Optional[List[str]] = None):
        super().__init__(message, {"processing_errors": processing_errors or []})
        self.processing_errors = processing_errors or []


class TranslationNotReadyError(CriticalError):
    """Translation catalog used before it was loaded."""
    status_code = 503


def categorize_exception(e: Exception) -> EnergyAuditError:
    """
    Categorize a generic exception into appropriate error type.

    Args:
        e: Exception to categorize

    Returns:
        Categorized EnergyAuditError
    """
    if isinstance(e, EnergyAuditError):
        return e

    error_message = str(e)
    error_type = type(e).__name__

    # Database-related errors
    if error_type in ['OperationalError', 'DatabaseError', 'IntegrityError']:
        return PersistenceError(f"Database error: {error_message}", {'original_type': error_type})

    # Store-related errors
    if error_type in ['ClientError', 'NoCredentialsError', 'EndpointConnectionError']:
        return PersistenceError(f"Document store error: {error_message}", {'original_type': error_type})

    # Network errors towards OCR or LLM services
    if error_type in ['ConnectError', 'ReadTimeout', 'ConnectTimeout', 'APIConnectionError']:
        return LLMServiceError(f"Upstream service unreachable: {error_message}", {'original_type': error_type})

    # Configuration errors
    if 'api' in error_message.lower() and 'key' in error_message.lower():
        return ConfigurationError(f"API configuration error: {error_message}")

    # Default to non-critical for unknown errors
    return NonCriticalError(f"Unexpected error: {error_message}", {'original_type': error_type})


def log_error_with_context(error: EnergyAuditError, context: Dict[str, Any]):
    """
    Log error with additional context information.

    Args:
        error: Error to log
        context: Additional context (building_id, step, file name, etc.)
    """
    log_data = {
        'error_type': type(error).__name__,
        'error_message': error.message,
        'details': error.details,
        'context': context
    }

    if isinstance(error, CriticalError):
        logger.error(f"CRITICAL ERROR: {error.message}", extra=log_data)
    else:
        logger.warning(f"Non-critical error: {error.message}", extra=log_data)

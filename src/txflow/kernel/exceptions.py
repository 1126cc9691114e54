"""Unified exception hierarchy for txflow.

All framework exceptions inherit from TxFlowException, enabling unified
error handling across modules. Every class carries the ErrorKind tag the
executor reports when the exception ends a transaction.

Categories:
- BusinessException: Domain rule violations, validation errors
- SecurityException: Authorization errors
- InfrastructureException: Timeouts, network and collaborator failures
"""

from __future__ import annotations

from txflow.kernel.types import ErrorKind

# =============================================================================
# Base Exception
# =============================================================================


class TxFlowException(Exception):
    """Base exception for all txflow errors.

    Carries an optional error code and context dict for structured error data.
    Catch TxFlowException to handle all framework errors, or catch specific
    subclasses for targeted handling.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "AUTH_DENIED").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    kind: ErrorKind = ErrorKind.BUSINESS_LOGIC

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(TxFlowException):
    """Domain rule violations and business logic errors."""


class BusinessLogicException(BusinessException):
    """Domain-level failure raised by a business-logic callback."""


class ValidationException(BusinessException):
    """Invalid configuration or input values."""


class MissingRequiredContextException(ValidationException):
    """A transaction context was built without a mandatory fragment."""

    kind = ErrorKind.MISSING_REQUIRED_CONTEXT

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"Missing required context: {', '.join(missing)}",
            code="MISSING_REQUIRED_CONTEXT",
            context={"missing": list(missing)},
        )
        self.missing = list(missing)


# =============================================================================
# Security Exceptions
# =============================================================================


class SecurityException(TxFlowException):
    """Authorization errors."""

    kind = ErrorKind.PERMISSION_DENIED


class PermissionDeniedException(SecurityException):
    """The authorization service refused the required permission."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(TxFlowException):
    """Infrastructure failures: network, downstream services, collaborators."""

    kind = ErrorKind.TRANSIENT_INFRASTRUCTURE


class TransientInfrastructureException(InfrastructureException):
    """A failure that is expected to clear up on its own."""


class ServiceUnavailableException(TransientInfrastructureException):
    """Downstream service is unavailable."""


class NetworkException(TransientInfrastructureException):
    """Network communication with a downstream service failed."""


class OperationTimeoutException(InfrastructureException):
    """Operation exceeded its allowed time limit."""

    kind = ErrorKind.TIMEOUT


class NotificationDeliveryException(InfrastructureException):
    """A notification could not be delivered. Never fatal to a transaction."""

    kind = ErrorKind.NOTIFICATION_DELIVERY


class AuditLoggingException(InfrastructureException):
    """An audit record could not be written. Never fatal to a transaction."""

    kind = ErrorKind.AUDIT_LOGGING

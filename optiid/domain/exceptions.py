"""
Custom exceptions for the OptiId registry domain.

These exceptions represent domain-level errors and are independent
of infrastructure concerns (HTTP, database, etc.). Each class carries a
stable ``code`` for API consumers, a ``retryable`` flag telling the caller
whether resubmitting the same request may succeed, and the HTTP status the
API layer maps it to.
"""

from typing import Any, Dict, Optional


class OptiIdServiceException(Exception):
    """Base exception for all registry service errors."""

    code = "service_error"
    retryable = False
    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
            "details": self.details,
        }


# ==================== INPUT VALIDATION ====================


class InvalidAddressException(OptiIdServiceException):
    """Raised when an account identifier is not a well-formed address."""

    code = "invalid_address"
    http_status = 400

    def __init__(self, address: Optional[str], field: str = "owner"):
        super().__init__(
            message=f"Invalid {field} address",
            details={"field": field, "address": address},
        )


class PartitionNotConfiguredException(OptiIdServiceException):
    """Raised when a partition is unknown or no partitions are configured."""

    code = "partition_not_configured"
    http_status = 500

    def __init__(self, partition: Optional[Any] = None):
        message = "Partition not configured"
        if partition is not None:
            message = f"Partition not configured: {partition}"
        super().__init__(message=message, details={"partition": partition})


class InvalidLabelException(OptiIdServiceException):
    """Raised when a label is not composed from the configured word corpus."""

    code = "invalid_label"
    http_status = 400

    def __init__(self, label: str, reason: Optional[str] = None):
        message = f"Invalid label: {label}"
        if reason:
            message += f" ({reason})"
        super().__init__(message=message, details={"label": label, "reason": reason})


# ==================== ALLOCATION ====================


class ExhaustedAttemptsException(OptiIdServiceException):
    """Raised when no available label was found within the retry bound."""

    code = "exhausted_attempts"
    http_status = 503

    def __init__(self, attempts: int, partition: Optional[str] = None):
        super().__init__(
            message=f"Could not find an available label after {attempts} attempts",
            details={"attempts": attempts, "partition": partition},
        )


# ==================== AUTHORIZATION FAULTS ====================


class AuthorizationFaultException(OptiIdServiceException):
    """Base class for security-relevant authorization failures."""

    code = "authorization_fault"
    http_status = 403


class InvalidSignatureException(AuthorizationFaultException):
    """Raised when an authorization signature does not verify."""

    code = "invalid_signature"

    def __init__(self, reason: str = "signature does not match authorization"):
        super().__init__(message="Invalid signature", details={"reason": reason})


class AuthorizationExpiredException(AuthorizationFaultException):
    """Raised when an authorization is submitted after its deadline."""

    code = "authorization_expired"

    def __init__(self, deadline: int, now: int):
        super().__init__(
            message="Authorization expired",
            details={"deadline": deadline, "now": now},
        )


class ReplayedAuthorizationException(AuthorizationFaultException):
    """Raised when an authorization nonce has already been consumed."""

    code = "replayed_authorization"

    def __init__(self) -> None:
        super().__init__(message="Authorization already used")


# ==================== REGISTRY INVARIANT FAULTS ====================


class QuotaExceededException(OptiIdServiceException):
    """Raised when an owner already holds the maximum number of domains."""

    code = "quota_exceeded"
    http_status = 409

    def __init__(self, owner: str, limit: int):
        super().__init__(
            message="Too many domains",
            details={"owner": owner, "limit": limit},
        )


class AlreadyRegisteredException(OptiIdServiceException):
    """
    Raised when (label, partition) already has a record.

    ``try_again`` marks collisions produced by random registration, where
    resubmitting draws fresh entropy and may succeed.
    """

    code = "already_registered"
    http_status = 409

    def __init__(self, label: str, partition: str, try_again: bool = False):
        message = "Domain already registered"
        if try_again:
            message += " (try again)"
        super().__init__(
            message=message,
            details={"label": label, "partition": partition, "try_again": try_again},
        )
        self.try_again = try_again
        self.retryable = try_again


class DomainNotFoundException(OptiIdServiceException):
    """Raised when a domain record does not exist."""

    code = "domain_not_found"
    http_status = 404

    def __init__(self, label: str, partition: Optional[str] = None):
        super().__init__(
            message="Domain does not exist",
            details={"label": label, "partition": partition},
        )


class NotOwnerException(OptiIdServiceException):
    """Raised when a caller acts on a domain it does not own."""

    code = "not_owner"
    http_status = 403

    def __init__(self, caller: str):
        super().__init__(message="Not domain owner", details={"caller": caller})


class InsufficientPaymentException(OptiIdServiceException):
    """Raised when the attached payment is below the registration fee."""

    code = "insufficient_payment"
    http_status = 402

    def __init__(self, required: int, provided: int):
        super().__init__(
            message="Insufficient payment",
            details={"required": required, "provided": provided},
        )


class UnauthorizedException(OptiIdServiceException):
    """Raised when a non-admin caller invokes an admin operation."""

    code = "unauthorized"
    http_status = 401

    def __init__(self, operation: str):
        super().__init__(
            message="Caller is not the registry admin",
            details={"operation": operation},
        )


# ==================== INFRASTRUCTURE ====================


class StoreTimeoutException(OptiIdServiceException):
    """Raised when a store query or the registry write lock times out."""

    code = "store_timeout"
    retryable = True
    http_status = 504

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            message=f"Registry store timed out during {operation} after {timeout_seconds}s",
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )


class StoreUnavailableException(OptiIdServiceException):
    """Raised when the registry store fails transiently."""

    code = "store_unavailable"
    retryable = True
    http_status = 503

    def __init__(self, operation: str, reason: Optional[str] = None):
        message = f"Registry store unavailable during {operation}"
        if reason:
            message += f": {reason}"
        super().__init__(message=message, details={"operation": operation, "reason": reason})


class StoreConflictException(OptiIdServiceException):
    """Raised when a commit hits a uniqueness constraint written concurrently."""

    code = "store_conflict"
    retryable = True
    http_status = 409

    def __init__(self, operation: str):
        super().__init__(
            message=f"Concurrent write conflict during {operation}",
            details={"operation": operation},
        )

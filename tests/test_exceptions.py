"""
Tests for domain exceptions.
"""

import pytest

from optiid.domain.exceptions import (
    AlreadyRegisteredException,
    AuthorizationExpiredException,
    AuthorizationFaultException,
    DomainNotFoundException,
    ExhaustedAttemptsException,
    InsufficientPaymentException,
    InvalidAddressException,
    InvalidSignatureException,
    NotOwnerException,
    OptiIdServiceException,
    PartitionNotConfiguredException,
    QuotaExceededException,
    ReplayedAuthorizationException,
    StoreConflictException,
    StoreTimeoutException,
    StoreUnavailableException,
    UnauthorizedException,
)


class TestExceptionMapping:
    """Test codes, statuses and retryability."""

    @pytest.mark.parametrize(
        "exc, code, status",
        [
            (InvalidAddressException("x"), "invalid_address", 400),
            (PartitionNotConfiguredException(), "partition_not_configured", 500),
            (ExhaustedAttemptsException(10), "exhausted_attempts", 503),
            (InvalidSignatureException(), "invalid_signature", 403),
            (AuthorizationExpiredException(1, 2), "authorization_expired", 403),
            (ReplayedAuthorizationException(), "replayed_authorization", 403),
            (QuotaExceededException("0x", 5), "quota_exceeded", 409),
            (DomainNotFoundException("a-b-c", "OP"), "domain_not_found", 404),
            (NotOwnerException("0x"), "not_owner", 403),
            (InsufficientPaymentException(10, 1), "insufficient_payment", 402),
            (UnauthorizedException("withdraw"), "unauthorized", 401),
            (StoreConflictException("register"), "store_conflict", 409),
            (StoreTimeoutException("register", 5.0), "store_timeout", 504),
            (StoreUnavailableException("register"), "store_unavailable", 503),
        ],
    )
    def test_code_and_status(self, exc, code, status):
        assert isinstance(exc, OptiIdServiceException)
        assert exc.code == code
        assert exc.http_status == status

    def test_authorization_faults_share_base(self):
        """Test the three authorization faults are grouped."""
        for exc in (
            InvalidSignatureException(),
            AuthorizationExpiredException(1, 2),
            ReplayedAuthorizationException(),
        ):
            assert isinstance(exc, AuthorizationFaultException)
            assert exc.retryable is False

    def test_infrastructure_errors_are_retryable(self):
        assert StoreTimeoutException("ping", 1.0).retryable is True
        assert StoreUnavailableException("ping").retryable is True

    def test_already_registered_retryable_only_with_try_again(self):
        """Test only random-registration collisions are retryable."""
        plain = AlreadyRegisteredException("a-b-c", "OP")
        retry = AlreadyRegisteredException("a-b-c", "OP", try_again=True)

        assert plain.retryable is False
        assert plain.try_again is False
        assert retry.retryable is True
        assert retry.try_again is True
        assert "try again" in retry.message
        # Class default untouched by the instance flag
        assert AlreadyRegisteredException.retryable is False


class TestSerialization:
    """Test API serialization."""

    def test_to_dict(self):
        exc = QuotaExceededException("0xabc", 5)
        assert exc.to_dict() == {
            "success": False,
            "error": "Too many domains",
            "code": "quota_exceeded",
            "retryable": False,
            "details": {"owner": "0xabc", "limit": 5},
        }

    def test_messages(self):
        assert InvalidAddressException("x").message == "Invalid owner address"
        assert PartitionNotConfiguredException().message == "Partition not configured"
        assert DomainNotFoundException("a-b-c").message == "Domain does not exist"
        assert NotOwnerException("0x").message == "Not domain owner"

    def test_signature_error_does_not_echo_token(self):
        """Test signature failures carry only a reason."""
        exc = InvalidSignatureException("InvalidSignatureError")
        assert exc.details == {"reason": "InvalidSignatureError"}

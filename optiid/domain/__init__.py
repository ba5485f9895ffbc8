"""Domain layer: entities and exceptions for the name registry."""

from .entities import (
    AccountState,
    Authorization,
    DomainRecord,
    LabelParts,
    WordCorpus,
    compose_domain_name,
    compose_label,
    split_domain_name,
    split_label,
)
from .exceptions import (
    AlreadyRegisteredException,
    AuthorizationExpiredException,
    AuthorizationFaultException,
    DomainNotFoundException,
    ExhaustedAttemptsException,
    InsufficientPaymentException,
    InvalidAddressException,
    InvalidLabelException,
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

__all__ = [
    "AccountState",
    "Authorization",
    "DomainRecord",
    "LabelParts",
    "WordCorpus",
    "compose_domain_name",
    "compose_label",
    "split_domain_name",
    "split_label",
    "AlreadyRegisteredException",
    "AuthorizationExpiredException",
    "AuthorizationFaultException",
    "DomainNotFoundException",
    "ExhaustedAttemptsException",
    "InsufficientPaymentException",
    "InvalidAddressException",
    "InvalidLabelException",
    "InvalidSignatureException",
    "NotOwnerException",
    "OptiIdServiceException",
    "PartitionNotConfiguredException",
    "QuotaExceededException",
    "ReplayedAuthorizationException",
    "StoreConflictException",
    "StoreTimeoutException",
    "StoreUnavailableException",
    "UnauthorizedException",
]

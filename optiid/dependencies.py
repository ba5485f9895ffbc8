"""
Shared dependencies for the application.

Builds the registry, signer and allocation service from settings and
provides dependency injection functions used across routers.
"""

import hmac
from typing import Optional

from fastapi import Depends, Header

from .allocation_service import AllocationService
from .config import Settings, settings
from .database import DatabaseManager
from .domain.exceptions import UnauthorizedException
from .label_generator import AvailabilityProber, LabelGenerator, RetryPolicy
from .logging_config import get_logger
from .registry import RegistrationRegistry
from .signer import (
    CapabilitySigner,
    CapabilityVerifier,
    SigningDomain,
    generate_signing_key,
    load_private_key,
    load_public_key,
)

logger = get_logger(__name__)

# Global service instances (set by main app)
_registry: Optional[RegistrationRegistry] = None
_allocation_service: Optional[AllocationService] = None


def build_services(db: DatabaseManager, config: Settings = settings):
    """
    Construct the registry and allocation service.

    Returns:
        Tuple of (registry, allocation_service)
    """
    if config.SIGNER_PRIVATE_KEY:
        private_key = load_private_key(config.SIGNER_PRIVATE_KEY)
    else:
        logger.warning("SIGNER_PRIVATE_KEY not set; using an ephemeral signing key")
        private_key = generate_signing_key()

    if config.SIGNER_PUBLIC_KEY:
        public_key = load_public_key(config.SIGNER_PUBLIC_KEY)
    else:
        public_key = private_key.public_key()

    domain = SigningDomain(
        name=config.SIGNING_DOMAIN_NAME,
        version=config.SIGNING_DOMAIN_VERSION,
        chain_id=config.SIGNING_CHAIN_ID,
        verifying_address=config.REGISTRY_ADDRESS,
    )

    registry = RegistrationRegistry(
        db=db,
        verifier=CapabilityVerifier(public_key, domain, algorithm=config.SIGNING_ALGORITHM),
        admin=config.ADMIN_ADDRESS,
        max_domains_per_user=config.MAX_DOMAINS_PER_USER,
        registration_fee=config.REGISTRATION_FEE,
        signed_registration_requires_fee=config.SIGNED_REGISTRATION_REQUIRES_FEE,
        domain_suffix=config.DOMAIN_SUFFIX,
    )

    policy = RetryPolicy(
        max_attempts=config.ALLOCATION_MAX_ATTEMPTS,
        probe_retries=config.PROBE_MAX_RETRIES,
    )
    generator = LabelGenerator(AvailabilityProber(registry, policy), policy=policy)
    signer = CapabilitySigner(
        private_key,
        domain,
        ttl_seconds=config.AUTHORIZATION_TTL_SECONDS,
        algorithm=config.SIGNING_ALGORITHM,
    )
    allocation_service = AllocationService(
        registry=registry,
        generator=generator,
        signer=signer,
        registry_address=config.REGISTRY_ADDRESS,
    )
    return registry, allocation_service


def set_services(registry: Optional[RegistrationRegistry], allocation_service: Optional[AllocationService]) -> None:
    """
    Set the global service instances.

    Called by main app during startup.
    """
    global _registry, _allocation_service
    _registry = registry
    _allocation_service = allocation_service


def get_registry() -> RegistrationRegistry:
    """Get the registry instance for dependency injection."""
    if _registry is None:
        raise RuntimeError("Registry not initialized")
    return _registry


def get_allocation_service() -> AllocationService:
    """Get the allocation service instance for dependency injection."""
    if _allocation_service is None:
        raise RuntimeError("Allocation service not initialized")
    return _allocation_service


def get_caller_address(x_account_address: Optional[str] = Header(None)) -> Optional[str]:
    """
    Caller identity for owner-only operations.

    Wallet authentication happens upstream; the header is trusted here.
    """
    return x_account_address


def require_admin(
    x_admin_key: Optional[str] = Header(None),
    registry: RegistrationRegistry = Depends(get_registry),
) -> str:
    """
    Dependency that authenticates the admin API key.

    Returns:
        The admin address stored by the registry, used as the caller

    Raises:
        UnauthorizedException: If the key is missing or wrong
    """
    if not x_admin_key or not hmac.compare_digest(
        x_admin_key.encode("utf-8"), settings.ADMIN_API_KEY.encode("utf-8")
    ):
        raise UnauthorizedException("admin")
    return registry.owner()


__all__ = [
    "build_services",
    "get_allocation_service",
    "get_caller_address",
    "get_registry",
    "require_admin",
    "set_services",
]

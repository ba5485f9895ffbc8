"""
Registry API router.

Submission of signed authorizations, random registration, transfers,
admin configuration and read-only lookups against the registry.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_caller_address, get_registry, require_admin
from ..domain.entities import DomainRecord
from ..domain.exceptions import DomainNotFoundException, InvalidLabelException
from ..logging_config import get_logger
from ..registry import RegistrationRegistry
from ..schemas import (
    ComponentsResponse,
    ComponentsUpdate,
    DomainInfoResponse,
    DomainRecordResponse,
    ErrorResponse,
    FeesResponse,
    PreviewResponse,
    RegisterRandomRequest,
    RegisterRequest,
    TransferRequest,
    UserDomainsResponse,
    WithdrawResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/registry", tags=["registry"])


def _record_response(registry: RegistrationRegistry, record: DomainRecord) -> DomainRecordResponse:
    return DomainRecordResponse(
        domain=registry.get_domain_name(record.label, record.partition),
        **record.to_dict(),
    )


# ==================== REGISTRATION ====================


@router.post(
    "/register",
    response_model=DomainRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid owner, label or partition", "model": ErrorResponse},
        402: {"description": "Insufficient payment", "model": ErrorResponse},
        403: {"description": "Invalid, expired or replayed authorization", "model": ErrorResponse},
        409: {"description": "Label taken or quota reached", "model": ErrorResponse},
    },
    summary="Register with a signed authorization",
)
def register(
    request: RegisterRequest,
    registry: RegistrationRegistry = Depends(get_registry),
):
    """Commit a registration endorsed by an allocator-issued authorization."""
    record = registry.register(
        owner=request.owner,
        partition=request.partition,
        label=request.label,
        authorization=request.authorization(),
        payment=request.payment,
    )
    return _record_response(registry, record)


@router.post(
    "/register-random",
    response_model=DomainRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"description": "Insufficient payment", "model": ErrorResponse},
        409: {"description": "Collision (retryable) or quota reached", "model": ErrorResponse},
    },
    summary="Register a registry-chosen label",
)
def register_random(
    request: RegisterRandomRequest,
    caller: Optional[str] = Depends(get_caller_address),
    registry: RegistrationRegistry = Depends(get_registry),
):
    """
    Register a label derived from registry entropy for the calling account.

    A collision answers 409 with ``retryable: true``; resubmitting draws
    fresh entropy.
    """
    record = registry.register_random(caller, request.partition_index, request.payment)
    return _record_response(registry, record)


@router.get("/preview", response_model=PreviewResponse, summary="Preview a random label")
def preview_random(
    owner: str = Query(..., description="Owner address"),
    nonce: int = Query(..., ge=0, description="Entropy value"),
    partition_index: int = Query(..., ge=0),
    registry: RegistrationRegistry = Depends(get_registry),
):
    """Show the label random registration would derive from the given inputs."""
    label = registry.preview_random(owner, nonce, partition_index)
    partition = registry.get_components().partition_at(partition_index)
    return PreviewResponse(
        label=label,
        partition=partition,
        domain=registry.get_domain_name(label, partition),
    )


# ==================== TRANSFER ====================


@router.post(
    "/transfer",
    response_model=DomainRecordResponse,
    responses={
        403: {"description": "Caller is not the owner", "model": ErrorResponse},
        404: {"description": "Domain does not exist", "model": ErrorResponse},
    },
    summary="Transfer a domain",
)
def transfer(
    request: TransferRequest,
    caller: Optional[str] = Depends(get_caller_address),
    registry: RegistrationRegistry = Depends(get_registry),
):
    """Move a domain, named in full or by label and partition, to a new owner."""
    if request.domain_name:
        record = registry.transfer_domain_by_name(caller, request.domain_name, request.new_owner)
    elif request.label and request.partition:
        record = registry.transfer_domain(caller, request.label, request.partition, request.new_owner)
    else:
        raise InvalidLabelException("", "domain_name or label and partition required")
    return _record_response(registry, record)


# ==================== ADMIN ====================


@router.put(
    "/components",
    response_model=ComponentsResponse,
    responses={401: {"description": "Admin key required", "model": ErrorResponse}},
    summary="Replace the word corpus",
)
def set_components(
    update: ComponentsUpdate,
    admin: str = Depends(require_admin),
    registry: RegistrationRegistry = Depends(get_registry),
):
    corpus = registry.set_components(
        admin, update.adjectives, update.descriptors, update.nouns, update.partitions
    )
    return ComponentsResponse(**corpus.to_dict())


@router.post(
    "/withdraw",
    response_model=WithdrawResponse,
    responses={401: {"description": "Admin key required", "model": ErrorResponse}},
    summary="Withdraw collected fees",
)
def withdraw(
    admin: str = Depends(require_admin),
    registry: RegistrationRegistry = Depends(get_registry),
):
    amount = registry.withdraw(admin)
    return WithdrawResponse(recipient=registry.admin, amount=amount)


# ==================== LOOKUPS ====================


@router.get("/domains/{owner}", response_model=UserDomainsResponse, summary="Domains of an owner")
def user_domains(owner: str, registry: RegistrationRegistry = Depends(get_registry)):
    domains = registry.get_user_domains(owner)
    return UserDomainsResponse(owner=owner.lower(), domains=domains, count=len(domains))


@router.get(
    "/domains/{domain_name}/info",
    response_model=DomainInfoResponse,
    summary="Look up a domain by full name",
)
def domain_info(domain_name: str, registry: RegistrationRegistry = Depends(get_registry)):
    """Unknown names answer ``exists: false`` rather than 404."""
    record = registry.get_domain_info(domain_name)
    if record is None:
        return DomainInfoResponse()
    return DomainInfoResponse(
        owner=record.owner,
        createdAt=int(record.created_at.timestamp()),
        exists=record.exists,
    )


@router.get(
    "/domains/{domain_name}/components",
    response_model=Dict[str, str],
    responses={404: {"description": "Malformed domain name", "model": ErrorResponse}},
    summary="Split a domain name into its words",
)
def domain_components(domain_name: str, registry: RegistrationRegistry = Depends(get_registry)):
    return registry.get_domain_components(domain_name)


@router.get(
    "/records/{partition}/{label}",
    response_model=DomainRecordResponse,
    responses={404: {"description": "Domain does not exist", "model": ErrorResponse}},
    summary="Look up a record",
)
def get_record(partition: str, label: str, registry: RegistrationRegistry = Depends(get_registry)):
    record = registry.get_record(label, partition)
    if record is None:
        raise DomainNotFoundException(label, partition)
    return _record_response(registry, record)


@router.get("/components", response_model=ComponentsResponse, summary="Configured word corpus")
def components(registry: RegistrationRegistry = Depends(get_registry)):
    return ComponentsResponse(**registry.get_components().to_dict())


@router.get("/fees", response_model=FeesResponse, summary="Fee and quota settings")
def fees(registry: RegistrationRegistry = Depends(get_registry)):
    return FeesResponse(
        admin=registry.owner(),
        registrationFee=registry.registration_fee,
        maxDomainsPerUser=registry.max_domains_per_user,
        feeBalance=registry.fee_balance(),
    )

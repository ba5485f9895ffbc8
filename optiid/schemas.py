"""
Pydantic models for request/response schemas.

Addresses are accepted as plain strings and validated by the service layer
so that malformed addresses produce the service's own 400 error rather
than a generic validation error.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .domain.entities import Authorization

# Largest amount the store holds
MAX_UINT256 = 2**256 - 1

# Request Models


class AllocateRequest(BaseModel):
    """Model for an allocation request."""

    owner: Optional[str] = None
    partition: Optional[str] = None


class RegisterRequest(BaseModel):
    """Model for submitting an authorization to the registry."""

    owner: str
    partition: str
    label: str
    deadline: int
    nonce: str
    signature: str
    payment: int = Field(default=0, ge=0, le=MAX_UINT256, description="Attached payment in wei")

    def authorization(self) -> Authorization:
        return Authorization(
            owner=self.owner,
            partition=self.partition,
            label=self.label,
            deadline=self.deadline,
            nonce=self.nonce,
            signature=self.signature,
        )


class RegisterRandomRequest(BaseModel):
    """Model for a random registration."""

    partition_index: int = Field(..., ge=0)
    payment: int = Field(default=0, ge=0, le=MAX_UINT256, description="Attached payment in wei")


class TransferRequest(BaseModel):
    """Model for transferring a domain, by full name or by label and partition."""

    new_owner: str
    domain_name: Optional[str] = None
    label: Optional[str] = None
    partition: Optional[str] = None


class ComponentsUpdate(BaseModel):
    """Model for replacing the word corpus."""

    adjectives: List[str]
    descriptors: List[str]
    nouns: List[str]
    partitions: List[str]


# Response Models


class AllocationData(BaseModel):
    """Allocate result: a free label and its signed authorization."""

    partition: str
    domain: str
    label: str
    owner: str
    deadline: int
    nonce: str
    signature: str
    registryAddress: str


class AllocationResponse(BaseModel):
    success: bool = True
    data: AllocationData


class StatusData(BaseModel):
    owner: str
    registrationCount: int
    maxAllowed: int


class StatusResponse(BaseModel):
    success: bool = True
    data: StatusData


class DomainRecordResponse(BaseModel):
    """Model for a domain record."""

    domain: str
    label: str
    partition: str
    owner: str
    createdAt: int
    exists: bool = True
    nonce: Optional[int] = Field(
        default=None, description="Entropy value of a random registration, for preview"
    )


class DomainInfoResponse(BaseModel):
    """Record lookup by full name; ``exists`` is False for unknown names."""

    owner: Optional[str] = None
    createdAt: int = 0
    exists: bool = False


class UserDomainsResponse(BaseModel):
    owner: str
    domains: List[str]
    count: int


class ComponentsResponse(BaseModel):
    adjectives: List[str]
    descriptors: List[str]
    nouns: List[str]
    partitions: List[str]


class PreviewResponse(BaseModel):
    label: str
    domain: str
    partition: str


class FeesResponse(BaseModel):
    admin: str
    registrationFee: int
    maxDomainsPerUser: int
    feeBalance: int


class WithdrawResponse(BaseModel):
    recipient: str
    amount: int


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    error: str
    code: str
    retryable: bool = False
    details: Dict[str, Any] = {}

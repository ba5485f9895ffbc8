"""
Database models for the registration registry.

This module defines SQLAlchemy ORM models for domain records, per-owner
record counters, consumed authorization nonces, the registry's configuration
and fee balance, and the payout ledger.

Wei amounts and entropy values exceed a 64-bit integer, so they are stored
as decimal strings through ``Uint256``.
"""

import json
from datetime import timezone
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from .domain.entities import DomainRecord, WordCorpus

Base: Any = declarative_base()

REGISTRY_STATE_ID = 1

# Enough digits for any uint256
UINT256_DIGITS = 78


class Uint256(TypeDecorator):
    """Non-negative integer up to 2**256, stored as its decimal string."""

    impl = String(UINT256_DIGITS)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect) -> Optional[str]:
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value: Optional[str], dialect) -> Optional[int]:
        if value is None:
            return None
        return int(value)


class DomainRecordModel(Base):
    """
    A registered (label, partition) pair and its owner.

    Rows are never deleted; only ``owner`` changes, through transfers.

    Attributes:
        id: Primary key identifier, also the registration order
        label: adjective-descriptor-noun label
        partition: Partition the label is unique within
        owner: Lower-cased owner address
        created_at: Registration timestamp
        exists: Always True for committed rows
        nonce: Entropy value that derived the label, for random registrations
    """

    __tablename__ = "domain_records"
    __table_args__ = (UniqueConstraint("label", "partition", name="uq_domain_label_partition"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(128), nullable=False)
    partition = Column(String(64), nullable=False)
    owner = Column(String(42), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    exists = Column("is_registered", Boolean, default=True, nullable=False)
    nonce = Column(Uint256, nullable=True)

    def to_entity(self) -> DomainRecord:
        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return DomainRecord(
            label=self.label,
            partition=self.partition,
            owner=self.owner,
            created_at=created_at,
            exists=self.exists,
            nonce=self.nonce,
        )


class AccountModel(Base):
    """
    Per-owner count of held records.

    Every registration increments the owner's row with a single UPDATE
    before checking the quota, so concurrent writers for one owner, in this
    process or another, are serialized by the store's row lock.

    Attributes:
        owner: Lower-cased owner address
        domain_count: Records currently held, kept in step with transfers
    """

    __tablename__ = "accounts"

    owner = Column(String(42), primary_key=True)
    domain_count = Column(Integer, default=0, nullable=False)


class ConsumedNonce(Base):
    """Authorization nonces that have been redeemed."""

    __tablename__ = "consumed_nonces"

    nonce = Column(String(66), primary_key=True)
    owner = Column(String(42), nullable=False)
    consumed_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


class RegistryState(Base):
    """
    Singleton row holding admin-controlled registry state.

    Attributes:
        admin: Lower-cased admin address
        fee_balance: Fees collected since the last withdrawal, in wei
        components: JSON-encoded word corpus and partition list
    """

    __tablename__ = "registry_state"

    id = Column(Integer, primary_key=True, default=REGISTRY_STATE_ID)
    admin = Column(String(42), nullable=False)
    fee_balance = Column(Uint256, default=0, nullable=False)
    components = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    def corpus(self) -> WordCorpus:
        data = json.loads(self.components)
        return WordCorpus(
            adjectives=tuple(data["adjectives"]),
            descriptors=tuple(data["descriptors"]),
            nouns=tuple(data["nouns"]),
            partitions=tuple(data["partitions"]),
        )

    def set_corpus(self, corpus: WordCorpus) -> None:
        self.components = json.dumps(corpus.to_dict())


class Payout(Base):
    """Fee withdrawals credited to the admin account."""

    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient = Column(String(42), nullable=False, index=True)
    amount = Column(Uint256, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)

"""
Registration registry.

The authoritative store of domain records. Validates signed authorizations
and commits registrations only when uniqueness and per-account quota hold,
handles ownership transfers, and accounts for registration fees.

Record lifecycle: absent -> registered -> transferred (owner changed).
Records are never deleted.

All mutations are serialized through one write lock and run inside a single
database transaction, so a failed operation leaves no trace. When several
processes share one database the store serializes them instead: unique
constraints cover (label, partition) and consumed nonces, and the quota is
checked after incrementing the owner's account row, whose row lock orders
concurrent registrations for that owner.
"""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .corpus import default_corpus
from .database import DatabaseManager
from .domain.entities import (
    LABEL_SEPARATOR,
    AccountState,
    Authorization,
    DomainRecord,
    WordCorpus,
    compose_domain_name,
    compose_label,
    split_domain_name,
    split_label,
)
from .domain.exceptions import (
    AlreadyRegisteredException,
    AuthorizationExpiredException,
    AuthorizationFaultException,
    DomainNotFoundException,
    InsufficientPaymentException,
    InvalidLabelException,
    InvalidSignatureException,
    NotOwnerException,
    OptiIdServiceException,
    PartitionNotConfiguredException,
    QuotaExceededException,
    ReplayedAuthorizationException,
    StoreConflictException,
    StoreTimeoutException,
    UnauthorizedException,
)
from .logging_config import get_logger
from .metrics import authorization_faults_total, registrations_total, transfers_total
from .models import (
    REGISTRY_STATE_ID,
    AccountModel,
    ConsumedNonce,
    DomainRecordModel,
    Payout,
    RegistryState,
)
from .randomness import DerivedEntropySource, EntropySource, derive_label_indices
from .signer import CapabilityVerifier
from .validators import normalize_address, validate_label, validate_partition

logger = get_logger(__name__)


class RegistrationRegistry:
    """
    Registry of (label, partition) -> owner records.

    Attributes:
        admin: Lower-cased admin address allowed to configure and withdraw
        max_domains_per_user: Creation-time quota per account
        registration_fee: Fee in wei required by random registration
        signed_registration_requires_fee: Whether ``register`` also charges the fee
        domain_suffix: Suffix of full domain names
    """

    def __init__(
        self,
        db: DatabaseManager,
        verifier: CapabilityVerifier,
        admin: str,
        max_domains_per_user: int = 5,
        registration_fee: int = 0,
        signed_registration_requires_fee: bool = False,
        domain_suffix: str = "opti.id",
        entropy: Optional[EntropySource] = None,
        clock: Callable[[], float] = time.time,
        lock_timeout: Optional[float] = None,
    ):
        self._db = db
        self._verifier = verifier
        self.admin = normalize_address(admin, field="admin")
        self.max_domains_per_user = max_domains_per_user
        self.registration_fee = registration_fee
        self.signed_registration_requires_fee = signed_registration_requires_fee
        self.domain_suffix = domain_suffix
        self._entropy = entropy or DerivedEntropySource()
        self._clock = clock
        self._lock_timeout = lock_timeout if lock_timeout is not None else db.timeout_seconds
        self._write_lock = Lock()

    # ==================== SETUP ====================

    def initialize(self, corpus: Optional[WordCorpus] = None) -> None:
        """
        Create the registry state row if this is a fresh database.

        An existing row keeps its admin, balance and components.
        """
        self._db.init_db()
        with self._locked("initialize"), self._db.transaction("initialize") as session:
            state = session.get(RegistryState, REGISTRY_STATE_ID)
            if state is None:
                state = RegistryState(id=REGISTRY_STATE_ID, admin=self.admin, fee_balance=0)
                state.set_corpus(corpus or default_corpus())
                session.add(state)
                logger.info("Registry state created", admin=self.admin)
            elif state.admin != self.admin:
                logger.warning(
                    "Configured admin differs from stored admin; stored admin kept",
                    stored_admin=state.admin,
                )
                self.admin = state.admin

    @contextmanager
    def _locked(self, operation: str) -> Iterator[None]:
        if not self._write_lock.acquire(timeout=self._lock_timeout):
            raise StoreTimeoutException(operation, self._lock_timeout)
        try:
            yield
        finally:
            self._write_lock.release()

    @contextmanager
    def _mutation(self, operation: str, *accounts: str) -> Iterator[Session]:
        """Hold the write lock and open a transaction, creating account rows first."""
        with self._locked(operation):
            for owner in accounts:
                self._ensure_account(owner)
            with self._db.transaction(operation) as session:
                yield session

    @contextmanager
    def _reading(self, operation: str) -> Iterator[Session]:
        # A shared in-memory connection cannot host a read beside an open write
        if self._db.shared_connection:
            with self._locked(operation), self._db.transaction(operation) as session:
                yield session
        else:
            with self._db.transaction(operation) as session:
                yield session

    def _ensure_account(self, owner: str) -> None:
        """Create the owner's counter row, seeded from the records it holds."""
        try:
            with self._db.transaction("ensure_account") as session:
                if session.get(AccountModel, owner) is None:
                    session.add(
                        AccountModel(owner=owner, domain_count=self._count_owned(session, owner))
                    )
        except StoreConflictException:
            logger.debug("Account row created by another writer", owner=owner)

    def _now(self) -> int:
        return int(self._clock())

    def _state(self, session: Session) -> RegistryState:
        state = session.get(RegistryState, REGISTRY_STATE_ID)
        if state is None:
            raise OptiIdServiceException("Registry is not initialized")
        return state

    def _lock_state(self, session: Session) -> RegistryState:
        """Reload the state row after taking its write lock, for balance updates."""
        session.execute(
            update(RegistryState)
            .where(RegistryState.id == REGISTRY_STATE_ID)
            .values(updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return session.get(RegistryState, REGISTRY_STATE_ID, populate_existing=True)

    def _require_admin(self, caller: str, operation: str) -> str:
        caller = normalize_address(caller, field="caller")
        if caller != self.admin:
            logger.warning("Admin operation rejected", operation=operation, caller=caller)
            raise UnauthorizedException(operation)
        return caller

    # ==================== ADMIN OPERATIONS ====================

    def set_components(
        self,
        caller: str,
        adjectives: Sequence[str],
        descriptors: Sequence[str],
        nouns: Sequence[str],
        partitions: Sequence[str],
    ) -> WordCorpus:
        """
        Replace the word corpus and partition list in one step.

        Raises:
            UnauthorizedException: If the caller is not the admin
            InvalidLabelException: If a word or partition contains a separator
        """
        self._require_admin(caller, "set_components")

        for word in (*adjectives, *descriptors, *nouns):
            if LABEL_SEPARATOR in word or "." in word or not word.strip():
                raise InvalidLabelException(word, "words must be non-empty without '-' or '.'")
        for partition in partitions:
            if "." in partition or not partition.strip():
                raise InvalidLabelException(partition, "partitions must be non-empty without '.'")

        corpus = WordCorpus(
            adjectives=tuple(adjectives),
            descriptors=tuple(descriptors),
            nouns=tuple(nouns),
            partitions=tuple(partitions),
        )
        with self._mutation("set_components") as session:
            self._state(session).set_corpus(corpus)

        logger.info(
            "Components replaced",
            adjectives=len(corpus.adjectives),
            descriptors=len(corpus.descriptors),
            nouns=len(corpus.nouns),
            partitions=len(corpus.partitions),
        )
        return corpus

    def withdraw(self, caller: str) -> int:
        """
        Pay the whole fee balance out to the admin and reset it to zero.

        Returns:
            The amount paid out

        Raises:
            UnauthorizedException: If the caller is not the admin
        """
        admin = self._require_admin(caller, "withdraw")
        with self._mutation("withdraw") as session:
            state = self._lock_state(session)
            amount = state.fee_balance
            session.add(Payout(recipient=admin, amount=amount, created_at=self._timestamp()))
            state.fee_balance = 0

        logger.info("Fees withdrawn", recipient=admin, amount=amount)
        return amount

    # ==================== REGISTRATION ====================

    def register(
        self,
        owner: str,
        partition: str,
        label: str,
        authorization: Authorization,
        payment: int = 0,
    ) -> DomainRecord:
        """
        Commit a registration endorsed by a signed authorization.

        Checks run in this order: signature, deadline, nonce reuse, quota,
        uniqueness, payment. State is only touched after all of them pass.

        Args:
            owner: Registrant address
            partition: Target partition
            label: Label to register
            authorization: Capability issued by the allocator for this triple
            payment: Attached payment in wei

        Returns:
            The new domain record
        """
        owner = normalize_address(owner)
        try:
            with self._mutation("register", owner) as session:
                if (
                    authorization.owner.lower() != owner
                    or authorization.partition != partition
                    or authorization.label != label
                ):
                    raise InvalidSignatureException("authorization issued for another registration")

                self._verifier.verify(authorization)

                now = self._now()
                if now > authorization.deadline:
                    raise AuthorizationExpiredException(authorization.deadline, now)

                if session.get(ConsumedNonce, authorization.nonce) is not None:
                    raise ReplayedAuthorizationException()

                state = self._state(session)
                corpus = state.corpus()
                validate_partition(partition, corpus)
                label = validate_label(label, corpus)

                self._reserve_slot(session, owner)
                self._check_available(session, label, partition, try_again=False)

                required = self.registration_fee if self.signed_registration_requires_fee else 0
                if payment < required:
                    raise InsufficientPaymentException(required, payment)

                session.add(ConsumedNonce(nonce=authorization.nonce, owner=owner))
                self._flush_or_replayed(session)
                record = self._create_record(session, label, partition, owner, try_again=False)
                if payment:
                    self._lock_state(session).fee_balance += payment
        except AuthorizationFaultException as e:
            authorization_faults_total.labels(code=e.code).inc()
            registrations_total.labels(kind="signed", status=e.code).inc()
            logger.warning("Authorization rejected", owner=owner, code=e.code)
            raise
        except OptiIdServiceException as e:
            registrations_total.labels(kind="signed", status=e.code).inc()
            logger.info("Registration rejected", owner=owner, partition=partition, code=e.code)
            raise

        registrations_total.labels(kind="signed", status="success").inc()
        logger.info("Domain registered", owner=owner, partition=partition, label=label)
        return record

    def register_random(self, caller: str, partition_index: int, payment: int) -> DomainRecord:
        """
        Register a label derived from registry-local entropy.

        A collision is not retried here; it fails with a retryable
        ``AlreadyRegisteredException(try_again=True)`` so the caller can
        resubmit with fresh entropy.

        Args:
            caller: Registrant address
            partition_index: Index into the configured partition list
            payment: Attached payment in wei

        Returns:
            The new domain record
        """
        owner = normalize_address(caller, field="caller")
        try:
            with self._mutation("register_random", owner) as session:
                if payment < self.registration_fee:
                    raise InsufficientPaymentException(self.registration_fee, payment)

                state = self._state(session)
                corpus = state.corpus()
                partition = corpus.partition_at(partition_index)
                if partition is None:
                    raise PartitionNotConfiguredException(partition_index)

                self._reserve_slot(session, owner)

                nonce = self._entropy.next_nonce()
                label = self._derive_label(corpus, owner, nonce, partition_index)
                self._check_available(session, label, partition, try_again=True)

                record = self._create_record(
                    session, label, partition, owner, try_again=True, nonce=nonce
                )
                if payment:
                    self._lock_state(session).fee_balance += payment
        except OptiIdServiceException as e:
            registrations_total.labels(kind="random", status=e.code).inc()
            logger.info("Random registration rejected", owner=owner, code=e.code)
            raise

        registrations_total.labels(kind="random", status="success").inc()
        logger.info("Random domain registered", owner=owner, partition=partition, label=label)
        return record

    def preview_random(self, owner: str, nonce: int, partition_index: int) -> str:
        """
        Re-derive the label random registration would pick, without writing.

        Raises:
            PartitionNotConfiguredException: If the index is out of range
        """
        owner = normalize_address(owner)
        corpus = self.get_components()
        if corpus.partition_at(partition_index) is None:
            raise PartitionNotConfiguredException(partition_index)
        return self._derive_label(corpus, owner, nonce, partition_index)

    def _derive_label(self, corpus: WordCorpus, owner: str, nonce: int, partition_index: int) -> str:
        sizes = (len(corpus.adjectives), len(corpus.descriptors), len(corpus.nouns))
        if not all(sizes):
            raise InvalidLabelException("", "word corpus is empty")
        a, d, n = derive_label_indices(owner, nonce, partition_index, sizes)
        return compose_label(corpus.adjectives[a], corpus.descriptors[d], corpus.nouns[n])

    def _reserve_slot(self, session: Session, owner: str) -> None:
        # Increment first: the row lock is held before the count is read
        self._adjust_count(session, owner, 1)
        held = (
            session.query(AccountModel.domain_count)
            .filter(AccountModel.owner == owner)
            .scalar()
        )
        if held > self.max_domains_per_user:
            raise QuotaExceededException(owner, self.max_domains_per_user)

    def _adjust_count(self, session: Session, owner: str, delta: int) -> None:
        session.execute(
            update(AccountModel)
            .where(AccountModel.owner == owner)
            .values(domain_count=AccountModel.domain_count + delta)
        )

    def _check_available(self, session: Session, label: str, partition: str, try_again: bool) -> None:
        if self._find(session, label, partition) is not None:
            raise AlreadyRegisteredException(label, partition, try_again=try_again)

    def _create_record(
        self,
        session: Session,
        label: str,
        partition: str,
        owner: str,
        try_again: bool,
        nonce: Optional[int] = None,
    ) -> DomainRecord:
        row = DomainRecordModel(
            label=label,
            partition=partition,
            owner=owner,
            created_at=self._timestamp(),
            exists=True,
            nonce=nonce,
        )
        session.add(row)
        try:
            session.flush()
        except IntegrityError as e:
            raise AlreadyRegisteredException(label, partition, try_again=try_again) from e
        return row.to_entity()

    def _flush_or_replayed(self, session: Session) -> None:
        try:
            session.flush()
        except IntegrityError as e:
            raise ReplayedAuthorizationException() from e

    def _timestamp(self) -> datetime:
        return datetime.fromtimestamp(self._now(), tz=timezone.utc)

    # ==================== TRANSFER ====================

    def transfer_domain(self, caller: str, label: str, partition: str, new_owner: str) -> DomainRecord:
        """
        Move a record to a new owner.

        The new owner's quota is not consulted; quota only limits creation.

        Raises:
            DomainNotFoundException: If no record exists
            NotOwnerException: If the caller is not the current owner
        """
        caller = normalize_address(caller, field="caller")
        new_owner = normalize_address(new_owner, field="new_owner")
        label = label.lower()
        try:
            with self._mutation("transfer_domain", caller, new_owner) as session:
                row = self._find(session, label, partition)
                if row is None:
                    raise DomainNotFoundException(label, partition)
                if row.owner != caller:
                    raise NotOwnerException(caller)
                self._adjust_count(session, caller, -1)
                self._adjust_count(session, new_owner, 1)
                row.owner = new_owner
                record = row.to_entity()
        except OptiIdServiceException as e:
            transfers_total.labels(status=e.code).inc()
            logger.info("Transfer rejected", caller=caller, label=label, code=e.code)
            raise

        transfers_total.labels(status="success").inc()
        logger.info(
            "Domain transferred",
            label=label,
            partition=partition,
            previous_owner=caller,
            new_owner=new_owner,
        )
        return record

    def transfer_domain_by_name(self, caller: str, domain_name: str, new_owner: str) -> DomainRecord:
        """Transfer a domain identified by its full name."""
        label, partition = self._parse_domain_name(domain_name)
        return self.transfer_domain(caller, label, partition, new_owner)

    # ==================== READ ACCESSORS ====================

    def _find(self, session: Session, label: str, partition: str) -> Optional[DomainRecordModel]:
        return (
            session.query(DomainRecordModel)
            .filter(DomainRecordModel.label == label, DomainRecordModel.partition == partition)
            .one_or_none()
        )

    def _count_owned(self, session: Session, owner: str) -> int:
        return (
            session.query(func.count(DomainRecordModel.id))
            .filter(DomainRecordModel.owner == owner)
            .scalar()
        )

    def _parse_domain_name(self, domain_name: str) -> Tuple[str, str]:
        parsed = split_domain_name(domain_name, self.domain_suffix)
        if parsed is None:
            raise DomainNotFoundException(domain_name)
        return parsed[0].lower(), parsed[1]

    def get_record(self, label: str, partition: str) -> Optional[DomainRecord]:
        """Return the record for (label, partition), or None."""
        with self._reading("get_record") as session:
            row = self._find(session, label.lower(), partition)
            return row.to_entity() if row else None

    def has_record(self, label: str, partition: str) -> bool:
        return self.get_record(label, partition) is not None

    def get_owned_labels(self, owner: str) -> List[Tuple[str, str]]:
        """Return (label, partition) pairs owned by ``owner`` in registration order."""
        owner = normalize_address(owner)
        with self._reading("get_owned_labels") as session:
            rows = (
                session.query(DomainRecordModel.label, DomainRecordModel.partition)
                .filter(DomainRecordModel.owner == owner)
                .order_by(DomainRecordModel.id)
                .all()
            )
            return [(row.label, row.partition) for row in rows]

    def get_domain_name(self, label: str, partition: str) -> str:
        return compose_domain_name(label, partition, self.domain_suffix)

    def get_user_domains(self, owner: str) -> List[str]:
        """Return the full domain names owned by ``owner``."""
        return [
            self.get_domain_name(label, partition)
            for label, partition in self.get_owned_labels(owner)
        ]

    def get_account_state(self, owner: str) -> AccountState:
        owner = normalize_address(owner)
        return AccountState(address=owner, owned_labels=tuple(self.get_owned_labels(owner)))

    def domain_count(self, owner: str) -> int:
        """Number of records ``owner`` currently holds."""
        owner = normalize_address(owner)
        with self._reading("domain_count") as session:
            return self._count_owned(session, owner)

    def get_domain_info(self, domain_name: str) -> Optional[DomainRecord]:
        """Look up a record by full domain name; None if it does not exist."""
        parsed = split_domain_name(domain_name, self.domain_suffix)
        if parsed is None:
            return None
        return self.get_record(parsed[0], parsed[1])

    def get_domain_components(self, domain_name: str) -> Dict[str, str]:
        """
        Split a full domain name into adjective, descriptor, noun and chain.

        Raises:
            DomainNotFoundException: If the name is not a well-formed domain
        """
        label, partition = self._parse_domain_name(domain_name)
        parts = split_label(label)
        if parts is None:
            raise DomainNotFoundException(domain_name)
        return {
            "adjective": parts.adjective,
            "descriptor": parts.descriptor,
            "noun": parts.noun,
            "chain": partition,
        }

    def owner(self) -> str:
        """Address of the registry admin."""
        return self.admin

    def get_components(self) -> WordCorpus:
        """Return the configured corpus and partition list."""
        with self._reading("get_components") as session:
            return self._state(session).corpus()

    def fee_balance(self) -> int:
        with self._reading("fee_balance") as session:
            return self._state(session).fee_balance

    def total_paid_out(self, recipient: str) -> int:
        """Sum of withdrawals credited to ``recipient``."""
        recipient = normalize_address(recipient, field="recipient")
        with self._reading("total_paid_out") as session:
            # Amounts are stored as text, so the sum is taken here
            amounts = session.query(Payout.amount).filter(Payout.recipient == recipient).all()
            return sum(row.amount for row in amounts)

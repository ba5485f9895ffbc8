"""
Test configuration and fixtures
"""

import secrets

import pytest
from fastapi.testclient import TestClient

from optiid.allocation_service import AllocationService
from optiid.app import app
from optiid.database import DatabaseManager, get_db
from optiid.dependencies import set_services
from optiid.domain.entities import WordCorpus
from optiid.label_generator import AvailabilityProber, LabelGenerator, RetryPolicy
from optiid.rate_limiter import allocate_rate_limiter
from optiid.registry import RegistrationRegistry
from optiid.signer import CapabilitySigner, CapabilityVerifier, SigningDomain, generate_signing_key
from support import ADMIN, FEE, REGISTRY_ADDRESS, FixedClock, FixedEntropySource


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    manager = DatabaseManager("sqlite://", timeout_seconds=1.0)
    manager.connect()
    yield manager
    manager.disconnect()


@pytest.fixture(scope="session")
def signing_key():
    return generate_signing_key()


@pytest.fixture
def signing_domain():
    return SigningDomain(
        name="OptiPermissionedRegistry",
        version="1.0.0",
        chain_id=10,
        verifying_address=REGISTRY_ADDRESS,
    )


@pytest.fixture
def signer(signing_key, signing_domain, clock):
    return CapabilitySigner(signing_key, signing_domain, ttl_seconds=3600, clock=clock)


@pytest.fixture
def verifier(signing_key, signing_domain):
    return CapabilityVerifier(signing_key.public_key(), signing_domain)


@pytest.fixture
def entropy():
    return FixedEntropySource([secrets.randbits(256) for _ in range(20)])


@pytest.fixture
def registry(db, verifier, entropy, clock):
    """Registry on the default corpus with a fee and a quota of five."""
    registry = RegistrationRegistry(
        db=db,
        verifier=verifier,
        admin=ADMIN,
        max_domains_per_user=5,
        registration_fee=FEE,
        entropy=entropy,
        clock=clock,
        lock_timeout=1.0,
    )
    registry.initialize()
    return registry


@pytest.fixture
def tiny_corpus():
    """Corpus that can only produce swift-noble-dragon."""
    return WordCorpus(
        adjectives=("swift",),
        descriptors=("noble",),
        nouns=("dragon",),
        partitions=("op",),
    )


@pytest.fixture
def tiny_registry(db, verifier, entropy, clock, tiny_corpus):
    registry = RegistrationRegistry(
        db=db,
        verifier=verifier,
        admin=ADMIN,
        max_domains_per_user=5,
        registration_fee=FEE,
        entropy=entropy,
        clock=clock,
        lock_timeout=1.0,
    )
    registry.initialize(tiny_corpus)
    return registry


@pytest.fixture
def policy():
    return RetryPolicy(max_attempts=10, probe_retries=2, probe_wait_seconds=0)


@pytest.fixture
def allocation_service(registry, signer, policy):
    generator = LabelGenerator(AvailabilityProber(registry, policy), policy=policy)
    return AllocationService(registry, generator, signer, REGISTRY_ADDRESS)


@pytest.fixture(scope="function")
def client(db, registry, allocation_service):
    """Create a test client wired to the per-test registry."""

    def override_get_db():
        yield db

    set_services(registry, allocation_service)
    app.dependency_overrides[get_db] = override_get_db
    allocate_rate_limiter.reset()
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
    set_services(None, None)

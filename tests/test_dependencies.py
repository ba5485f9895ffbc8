"""
Tests for service wiring and request dependencies.
"""

import pytest
from cryptography.hazmat.primitives import serialization

from optiid.config import Settings
from optiid.dependencies import (
    build_services,
    get_allocation_service,
    get_registry,
    require_admin,
    set_services,
)
from optiid.domain.entities import Authorization
from optiid.domain.exceptions import UnauthorizedException
from optiid.registry import RegistrationRegistry
from optiid.signer import generate_signing_key
from support import ADMIN, ALICE


class TestBuildServices:
    """Test construction from settings."""

    def test_ephemeral_key(self, db):
        """Test services work without a configured key."""
        registry, service = build_services(db, Settings(SIGNER_PRIVATE_KEY=None))
        registry.initialize()

        data = service.allocate(ALICE, "OP")
        authorization = Authorization(
            owner=data["owner"],
            partition=data["partition"],
            label=data["label"],
            deadline=data["deadline"],
            nonce=data["nonce"],
            signature=data["signature"],
        )

        assert registry.register(ALICE, "OP", data["label"], authorization).owner == ALICE

    def test_configured_key(self, db):
        key = generate_signing_key()
        pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")

        registry, service = build_services(
            db, Settings(SIGNER_PRIVATE_KEY=pem, MAX_DOMAINS_PER_USER=2, REGISTRATION_FEE=7)
        )

        assert registry.max_domains_per_user == 2
        assert registry.registration_fee == 7
        assert registry.owner() == ADMIN


class TestServiceAccessors:
    """Test global service accessors."""

    def test_uninitialized(self):
        set_services(None, None)
        with pytest.raises(RuntimeError):
            get_registry()
        with pytest.raises(RuntimeError):
            get_allocation_service()

    def test_set_and_get(self, registry, allocation_service):
        set_services(registry, allocation_service)
        try:
            assert get_registry() is registry
            assert get_allocation_service() is allocation_service
        finally:
            set_services(None, None)


class TestRequireAdmin:
    """Test admin key authentication."""

    def test_valid_key(self, registry):
        assert require_admin("test-admin-key", registry) == ADMIN

    @pytest.mark.parametrize("key", [None, "", "wrong", "test-admin-key "])
    def test_invalid_key(self, key, registry):
        with pytest.raises(UnauthorizedException):
            require_admin(key, registry)

    def test_stored_admin_survives_config_change(self, db, verifier):
        """Test the key still reaches admin operations after ADMIN_ADDRESS changes."""
        stored_admin = "0x" + "99" * 20
        RegistrationRegistry(db=db, verifier=verifier, admin=stored_admin).initialize()
        restarted = RegistrationRegistry(db=db, verifier=verifier, admin=ADMIN)
        restarted.initialize()

        caller = require_admin("test-admin-key", restarted)

        assert caller == stored_admin
        assert restarted.withdraw(caller) == 0

"""
Capability signing and verification.

The allocator issues a signed, expiring authorization for one registration
using an EC private key that never leaves the server. The registry verifies
it with the matching public key. Signed messages are domain-separated by
protocol name, version, numeric network identifier and the verifying
registry address, so a token minted for one registry deployment is
rejected by every other.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.exceptions import InvalidTokenError

from .domain.entities import Authorization
from .domain.exceptions import InvalidSignatureException
from .logging_config import get_logger
from .randomness import RandomSource, SecureRandomSource, generate_nonce
from .validators import is_valid_nonce, normalize_address

logger = get_logger(__name__)

MESSAGE_TYPE = "Register"
TOKEN_TYPE = "optiid-capability+jwt"
SIGNED_FIELDS = ("owner", "partition", "label", "deadline", "nonce")


@dataclass(frozen=True)
class SigningDomain:
    """Domain separator parameters bound into every signed message."""

    name: str
    version: str
    chain_id: int
    verifying_address: str

    def claims(self) -> Dict[str, Any]:
        return {
            "iss": self.name,
            "ver": self.version,
            "chain_id": self.chain_id,
            "aud": self.verifying_address.lower(),
            "typ": MESSAGE_TYPE,
        }


# ==================== KEY MANAGEMENT ====================


def generate_signing_key() -> ec.EllipticCurvePrivateKey:
    """Generate a fresh P-256 signing key."""
    return ec.generate_private_key(ec.SECP256R1())


def load_private_key(pem: str) -> ec.EllipticCurvePrivateKey:
    """Load a PEM-encoded EC private key."""
    key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise ValueError("Signing key must be an EC private key")
    return key


def load_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Load a PEM-encoded EC public key."""
    key = serialization.load_pem_public_key(pem.encode("utf-8"))
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("Verifying key must be an EC public key")
    return key


def public_key_pem(private_key: ec.EllipticCurvePrivateKey) -> str:
    """Export the public half of a signing key as PEM."""
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )


# ==================== SIGNER ====================


class CapabilitySigner:
    """
    Issues signed authorizations.

    Stateless apart from the signing key: nonces come from a secure random
    source, so concurrent ``issue`` calls need no serialization.
    """

    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        domain: SigningDomain,
        ttl_seconds: int = 3600,
        algorithm: str = "ES256",
        random_source: Optional[RandomSource] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._private_key = private_key
        self.domain = domain
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm
        self._random = random_source or SecureRandomSource()
        self._clock = clock

    def issue(self, owner: str, partition: str, label: str) -> Authorization:
        """
        Sign an authorization for ``owner`` to register ``label`` in ``partition``.

        Args:
            owner: Account address of the registrant
            partition: Target partition
            label: Allocated label

        Returns:
            Authorization valid until now + TTL
        """
        owner = normalize_address(owner)
        deadline = int(self._clock()) + self.ttl_seconds
        nonce = generate_nonce(self._random)

        payload = self.domain.claims()
        payload.update(
            {
                "owner": owner,
                "partition": partition,
                "label": label,
                "deadline": deadline,
                "nonce": nonce,
            }
        )
        signature = jwt.encode(
            payload,
            self._private_key,
            algorithm=self.algorithm,
            headers={"typ": TOKEN_TYPE},
        )

        logger.debug("Issued authorization", owner=owner, partition=partition, deadline=deadline)
        return Authorization(
            owner=owner,
            partition=partition,
            label=label,
            deadline=deadline,
            nonce=nonce,
            signature=signature,
        )


# ==================== VERIFIER ====================


class CapabilityVerifier:
    """Checks that an authorization was signed by the trusted signer."""

    def __init__(
        self,
        public_key: ec.EllipticCurvePublicKey,
        domain: SigningDomain,
        algorithm: str = "ES256",
    ):
        self._public_key = public_key
        self.domain = domain
        self.algorithm = algorithm

    def verify(self, authorization: Authorization) -> Dict[str, Any]:
        """
        Verify the signature and that it covers exactly the submitted fields.

        Expiry is not checked here; the registry checks the deadline after
        the signature so an expired but authentic token is reported as such.

        Returns:
            The decoded signed claims

        Raises:
            InvalidSignatureException: If the token is forged, signed for
                another domain, or any field differs from the signed value
        """
        if not is_valid_nonce(authorization.nonce):
            raise InvalidSignatureException("malformed nonce")

        try:
            header = jwt.get_unverified_header(authorization.signature)
            if header.get("typ") != TOKEN_TYPE:
                raise InvalidSignatureException("unexpected token type")
            claims = jwt.decode(
                authorization.signature,
                self._public_key,
                algorithms=[self.algorithm],
                audience=self.domain.verifying_address.lower(),
                issuer=self.domain.name,
                options={"require": ["iss", "aud", *SIGNED_FIELDS], "verify_exp": False},
            )
        except InvalidTokenError as e:
            raise InvalidSignatureException(type(e).__name__) from e

        if claims.get("ver") != self.domain.version or claims.get("chain_id") != self.domain.chain_id:
            raise InvalidSignatureException("signed for another domain")
        if claims.get("typ") != MESSAGE_TYPE:
            raise InvalidSignatureException("unexpected message type")

        for name in SIGNED_FIELDS:
            submitted = getattr(authorization, name)
            if name == "owner":
                submitted = submitted.lower() if isinstance(submitted, str) else submitted
            if claims[name] != submitted:
                raise InvalidSignatureException(f"{name} does not match signed message")

        return claims

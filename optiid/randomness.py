"""
Randomness sources.

The allocator draws labels and nonces from a cryptographically secure
source. The registry's random registration path uses its own entropy
source whose output, together with the caller and partition, determines
the label through ``derive_label_indices`` so that a preview can
reproduce it exactly. Both are injectable so tests can fix the sequence.
"""

import hashlib
import secrets
from abc import ABC, abstractmethod
from threading import Lock
from typing import Optional, Tuple

NONCE_BYTES = 32


class RandomSource(ABC):
    """Source of uniform integers and random bytes."""

    @abstractmethod
    def randbelow(self, upper: int) -> int:
        """Return a uniform integer in [0, upper)."""

    @abstractmethod
    def token_bytes(self, length: int) -> bytes:
        """Return ``length`` random bytes."""

    def choice(self, items):
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[self.randbelow(len(items))]


class SecureRandomSource(RandomSource):
    """Operating system CSPRNG via :mod:`secrets`. Safe for concurrent use."""

    def randbelow(self, upper: int) -> int:
        return secrets.randbelow(upper)

    def token_bytes(self, length: int) -> bytes:
        return secrets.token_bytes(length)


def generate_nonce(source: Optional[RandomSource] = None) -> str:
    """Return a fresh 0x-prefixed 32-byte hex nonce."""
    source = source or SecureRandomSource()
    return "0x" + source.token_bytes(NONCE_BYTES).hex()


class EntropySource(ABC):
    """Registry-local entropy used by random registration."""

    @abstractmethod
    def next_nonce(self) -> int:
        """Return the next entropy value."""


class DerivedEntropySource(EntropySource):
    """
    Hash-chain entropy seeded once per registry instance.

    Each value is ``sha256(seed || counter)``; the counter advances under a
    lock so concurrent callers never observe the same value.
    """

    def __init__(self, seed: Optional[bytes] = None):
        self._seed = seed if seed is not None else secrets.token_bytes(NONCE_BYTES)
        self._counter = 0
        self._lock = Lock()

    def next_nonce(self) -> int:
        with self._lock:
            self._counter += 1
            counter = self._counter
        digest = hashlib.sha256(self._seed + counter.to_bytes(8, "big")).digest()
        return int.from_bytes(digest, "big")


def derive_label_indices(
    owner: str,
    nonce: int,
    partition_index: int,
    sizes: Tuple[int, int, int],
) -> Tuple[int, int, int]:
    """
    Deterministically pick (adjective, descriptor, noun) indices.

    Args:
        owner: Normalized account address of the registrant
        nonce: Entropy value
        partition_index: Index of the target partition
        sizes: Lengths of the adjective, descriptor and noun lists

    Returns:
        One index per list, each uniform over its list for uniform input
    """
    material = f"{owner.lower()}:{nonce}:{partition_index}".encode("utf-8")
    indices = []
    for tag, size in zip((b"adjective", b"descriptor", b"noun"), sizes):
        digest = hashlib.sha256(tag + b":" + material).digest()
        indices.append(int.from_bytes(digest, "big") % size)
    return indices[0], indices[1], indices[2]

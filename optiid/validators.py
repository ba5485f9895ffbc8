"""
Validation utilities for the registry service.

Provides validators for account addresses, labels and partitions.
"""

import re
from typing import Optional, Tuple

from .domain.entities import WordCorpus, split_label
from .domain.exceptions import (
    InvalidAddressException,
    InvalidLabelException,
    PartitionNotConfiguredException,
)

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
NONCE_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def validate_address_format(address: Optional[str]) -> Tuple[bool, str]:
    """
    Check that an account identifier is a 20-byte hex address.

    Args:
        address: Address string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not address:
        return False, "Address is required"

    if not isinstance(address, str):
        return False, "Address must be a string"

    if not ADDRESS_PATTERN.match(address):
        return False, "Address must be 0x followed by 40 hex characters"

    return True, ""


def normalize_address(address: Optional[str], field: str = "owner") -> str:
    """
    Validate and lower-case an address.

    Raises:
        InvalidAddressException: If the address is malformed
    """
    is_valid, _ = validate_address_format(address)
    if not is_valid:
        raise InvalidAddressException(address, field=field)
    return address.lower()


def is_valid_nonce(nonce: Optional[str]) -> bool:
    """Return True for a 0x-prefixed 32-byte hex nonce."""
    return bool(nonce) and isinstance(nonce, str) and bool(NONCE_PATTERN.match(nonce))


def validate_label(label: str, corpus: WordCorpus) -> str:
    """
    Check a label is ``adjective-descriptor-noun`` drawn from the corpus.

    Returns:
        The case-normalized label

    Raises:
        InvalidLabelException: If the label is malformed or uses unknown words
    """
    parts = split_label(label or "")
    if parts is None:
        raise InvalidLabelException(label, "expected adjective-descriptor-noun")
    if parts.adjective not in corpus.adjectives:
        raise InvalidLabelException(label, f"unknown adjective '{parts.adjective}'")
    if parts.descriptor not in corpus.descriptors:
        raise InvalidLabelException(label, f"unknown descriptor '{parts.descriptor}'")
    if parts.noun not in corpus.nouns:
        raise InvalidLabelException(label, f"unknown noun '{parts.noun}'")
    return parts.label


def validate_partition(partition: str, corpus: WordCorpus) -> str:
    """
    Check a partition is configured.

    Raises:
        PartitionNotConfiguredException: If the partition is unknown
    """
    if not partition or not corpus.has_partition(partition):
        raise PartitionNotConfiguredException(partition)
    return partition

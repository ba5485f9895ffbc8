"""
Domain entities for the name registry.

Core business objects representing labels, domain records and signed
authorizations. These entities are framework-agnostic and contain only
business logic.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

LABEL_SEPARATOR = "-"
DOMAIN_SEPARATOR = "."


def _dedupe(words) -> Tuple[str, ...]:
    seen = []
    for word in words:
        normalized = word.strip().lower()
        if normalized and normalized not in seen:
            seen.append(normalized)
    return tuple(seen)


@dataclass(frozen=True)
class WordCorpus:
    """
    Value object holding the word lists and partition list.

    Words are case-normalized and de-duplicated on construction, keeping
    the first occurrence. Partitions keep their configured spelling since
    they are displayed as-is in full domain names.
    """

    adjectives: Tuple[str, ...]
    descriptors: Tuple[str, ...]
    nouns: Tuple[str, ...]
    partitions: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "adjectives", _dedupe(self.adjectives))
        object.__setattr__(self, "descriptors", _dedupe(self.descriptors))
        object.__setattr__(self, "nouns", _dedupe(self.nouns))
        partitions = []
        for partition in self.partitions:
            partition = partition.strip()
            if partition and partition not in partitions:
                partitions.append(partition)
        object.__setattr__(self, "partitions", tuple(partitions))

    @property
    def combinations(self) -> int:
        """Number of distinct labels the corpus can produce."""
        return len(self.adjectives) * len(self.descriptors) * len(self.nouns)

    def has_partition(self, partition: str) -> bool:
        return partition in self.partitions

    def partition_at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.partitions):
            return self.partitions[index]
        return None

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "adjectives": list(self.adjectives),
            "descriptors": list(self.descriptors),
            "nouns": list(self.nouns),
            "partitions": list(self.partitions),
        }


@dataclass(frozen=True)
class LabelParts:
    """The three corpus words a label is composed of."""

    adjective: str
    descriptor: str
    noun: str

    @property
    def label(self) -> str:
        return LABEL_SEPARATOR.join((self.adjective, self.descriptor, self.noun))


def compose_label(adjective: str, descriptor: str, noun: str) -> str:
    """Join three corpus words into a case-normalized label."""
    return LabelParts(adjective.lower(), descriptor.lower(), noun.lower()).label


def split_label(label: str) -> Optional[LabelParts]:
    """Split ``adjective-descriptor-noun`` into its parts, or None if malformed."""
    parts = label.lower().split(LABEL_SEPARATOR)
    if len(parts) != 3 or not all(parts):
        return None
    return LabelParts(*parts)


def compose_domain_name(label: str, partition: str, suffix: str) -> str:
    """Build the full domain name ``label.partition.suffix``."""
    return DOMAIN_SEPARATOR.join((label, partition, suffix))


def split_domain_name(domain_name: str, suffix: str) -> Optional[Tuple[str, str]]:
    """
    Split a full domain name into (label, partition).

    Returns None when the name does not end with the suffix or does not
    have exactly one label and one partition in front of it.
    """
    tail = DOMAIN_SEPARATOR + suffix
    if not domain_name.endswith(tail):
        return None
    head = domain_name[: -len(tail)]
    parts = head.split(DOMAIN_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


@dataclass(frozen=True)
class DomainRecord:
    """A committed registration. Only ``owner`` changes after creation."""

    label: str
    partition: str
    owner: str
    created_at: datetime
    exists: bool = True
    # Entropy value behind a random registration; None for signed ones
    nonce: Optional[int] = None

    def domain_name(self, suffix: str) -> str:
        return compose_domain_name(self.label, self.partition, suffix)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "partition": self.partition,
            "owner": self.owner,
            "createdAt": int(self.created_at.timestamp()),
            "exists": self.exists,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class AccountState:
    """Derived view of the records an account owns."""

    address: str
    owned_labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def domain_count(self) -> int:
        return len(self.owned_labels)


@dataclass(frozen=True)
class Authorization:
    """
    Signed, time-limited, single-use capability for one registration.

    ``nonce`` is a 0x-prefixed 32-byte hex string. ``signature`` is the
    compact signed token produced by the capability signer over every
    other field of this object.
    """

    owner: str
    partition: str
    label: str
    deadline: int
    nonce: str
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "partition": self.partition,
            "label": self.label,
            "deadline": self.deadline,
            "nonce": self.nonce,
            "signature": self.signature,
        }

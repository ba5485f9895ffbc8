"""
Label generation and availability probing.

Proposes ``adjective-descriptor-noun`` labels from the word corpus and checks
them against the registry until a free one is found or the retry policy's
attempt bound is exhausted.
"""

from dataclasses import dataclass
from typing import Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .domain.entities import WordCorpus, compose_label
from .domain.exceptions import (
    ExhaustedAttemptsException,
    PartitionNotConfiguredException,
    StoreTimeoutException,
    StoreUnavailableException,
)
from .logging_config import get_logger
from .metrics import probe_attempts_total
from .randomness import RandomSource, SecureRandomSource
from .registry import RegistrationRegistry
from .validators import validate_partition

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounds for the label search.

    Attributes:
        max_attempts: Propose-and-probe cycles before giving up
        probe_retries: Extra tries of one probe on a transient store fault
        probe_wait_seconds: Initial backoff between probe retries
    """

    max_attempts: int = 10
    probe_retries: int = 2
    probe_wait_seconds: float = 0.05

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.probe_retries < 0:
            raise ValueError("probe_retries must not be negative")


class AvailabilityProber:
    """Asks the registry whether a (label, partition) pair is still free."""

    def __init__(self, registry: RegistrationRegistry, policy: Optional[RetryPolicy] = None):
        self._registry = registry
        self.policy = policy or RetryPolicy()

    def is_available(self, partition: str, label: str) -> bool:
        """
        Return True only if the registry positively reports no record.

        A probe that still fails after its bounded retries, or times out,
        counts as unavailable.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.policy.probe_retries + 1),
            wait=wait_exponential(multiplier=self.policy.probe_wait_seconds, max=1),
            retry=retry_if_exception_type(StoreUnavailableException),
            reraise=True,
        )
        try:
            exists = retrying(self._registry.has_record, label, partition)
        except (StoreUnavailableException, StoreTimeoutException) as e:
            logger.warning("Availability probe inconclusive", partition=partition, code=e.code)
            return False
        return not exists


class LabelGenerator:
    """Draws candidate labels and partitions uniformly from the corpus."""

    def __init__(
        self,
        prober: AvailabilityProber,
        random_source: Optional[RandomSource] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self._prober = prober
        self._random = random_source or SecureRandomSource()
        self.policy = policy or prober.policy

    def propose_label(self, corpus: WordCorpus) -> str:
        """Pick one adjective, descriptor and noun independently."""
        return compose_label(
            self._random.choice(corpus.adjectives),
            self._random.choice(corpus.descriptors),
            self._random.choice(corpus.nouns),
        )

    def choose_partition(self, corpus: WordCorpus) -> str:
        """
        Pick a partition uniformly at random.

        Raises:
            PartitionNotConfiguredException: If no partitions are configured
        """
        if not corpus.partitions:
            raise PartitionNotConfiguredException()
        return self._random.choice(corpus.partitions)

    def allocate(self, partition: str, corpus: WordCorpus) -> str:
        """
        Find a label with no record in ``partition``.

        Returns:
            The first available label

        Raises:
            PartitionNotConfiguredException: If the partition is unknown
            ExhaustedAttemptsException: After ``max_attempts`` unavailable probes
        """
        validate_partition(partition, corpus)
        if not corpus.combinations:
            raise ExhaustedAttemptsException(0, partition)

        for attempt in range(1, self.policy.max_attempts + 1):
            label = self.propose_label(corpus)
            probe_attempts_total.inc()
            if self._prober.is_available(partition, label):
                logger.debug("Label allocated", partition=partition, attempt=attempt)
                return label

        logger.warning(
            "Label search exhausted", partition=partition, attempts=self.policy.max_attempts
        )
        raise ExhaustedAttemptsException(self.policy.max_attempts, partition)

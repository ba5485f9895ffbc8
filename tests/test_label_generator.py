"""
Tests for label generation and availability probing.
"""

from unittest.mock import MagicMock, patch

import pytest

from optiid.domain.entities import WordCorpus
from optiid.domain.exceptions import (
    ExhaustedAttemptsException,
    PartitionNotConfiguredException,
    StoreTimeoutException,
    StoreUnavailableException,
)
from optiid.label_generator import AvailabilityProber, LabelGenerator, RetryPolicy
from support import ALICE, ScriptedRandomSource, register_signed


class TestRetryPolicy:
    """Test RetryPolicy bounds."""

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 10
        assert policy.probe_retries == 2

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_retries(self):
        with pytest.raises(ValueError):
            RetryPolicy(probe_retries=-1)


class TestAvailabilityProber:
    """Test probing with transient fault handling."""

    def test_free_label(self, registry, policy):
        prober = AvailabilityProber(registry, policy)
        assert prober.is_available("OP", "swift-noble-dragon") is True

    def test_taken_label(self, registry, signer, policy):
        register_signed(registry, signer, ALICE, "OP", "swift-noble-dragon")
        prober = AvailabilityProber(registry, policy)
        assert prober.is_available("OP", "swift-noble-dragon") is False

    def test_transient_fault_retried_then_answers(self, policy):
        """Test a transient store fault is retried within the bound."""
        store = MagicMock()
        store.has_record.side_effect = [StoreUnavailableException("get_record"), False]

        prober = AvailabilityProber(store, policy)

        assert prober.is_available("OP", "swift-noble-dragon") is True
        assert store.has_record.call_count == 2

    def test_persistent_fault_counts_as_unavailable(self, policy):
        """Test an inconclusive probe is never reported as available."""
        store = MagicMock()
        store.has_record.side_effect = StoreUnavailableException("get_record")

        prober = AvailabilityProber(store, policy)

        assert prober.is_available("OP", "swift-noble-dragon") is False
        assert store.has_record.call_count == policy.probe_retries + 1

    def test_timeout_not_retried(self, policy):
        store = MagicMock()
        store.has_record.side_effect = StoreTimeoutException("get_record", 1.0)

        prober = AvailabilityProber(store, policy)

        assert prober.is_available("OP", "swift-noble-dragon") is False
        assert store.has_record.call_count == 1


class TestLabelGenerator:
    """Test proposal and bounded search."""

    def test_propose_label_uses_random_source(self, registry, policy):
        corpus = registry.get_components()
        generator = LabelGenerator(
            AvailabilityProber(registry, policy),
            random_source=ScriptedRandomSource(["calm", "lunar", "fox"]),
        )
        assert generator.propose_label(corpus) == "calm-lunar-fox"

    def test_choose_partition(self, registry, policy):
        generator = LabelGenerator(
            AvailabilityProber(registry, policy), random_source=ScriptedRandomSource(["Zora"])
        )
        assert generator.choose_partition(registry.get_components()) == "Zora"

    def test_choose_partition_none_configured(self, registry, policy):
        generator = LabelGenerator(AvailabilityProber(registry, policy))
        corpus = WordCorpus(("a",), ("b",), ("c",), ())
        with pytest.raises(PartitionNotConfiguredException) as exc_info:
            generator.choose_partition(corpus)
        assert exc_info.value.message == "Partition not configured"

    def test_allocate_skips_taken_labels(self, registry, signer, policy):
        """Test the first available candidate is returned."""
        register_signed(registry, signer, ALICE, "OP", "swift-noble-dragon")
        generator = LabelGenerator(
            AvailabilityProber(registry, policy),
            random_source=ScriptedRandomSource(
                ["swift", "noble", "dragon", "swift", "noble", "phoenix"]
            ),
        )

        assert generator.allocate("OP", registry.get_components()) == "swift-noble-phoenix"

    def test_allocate_unknown_partition(self, registry, policy):
        generator = LabelGenerator(AvailabilityProber(registry, policy))
        with pytest.raises(PartitionNotConfiguredException):
            generator.allocate("Nowhere", registry.get_components())

    def test_single_combination_corpus(self, tiny_registry, policy):
        """Test the only producible label is found while free."""
        generator = LabelGenerator(AvailabilityProber(tiny_registry, policy))
        assert generator.allocate("op", tiny_registry.get_components()) == "swift-noble-dragon"

    def test_exhausted_after_exactly_ten_probes(self, tiny_registry, signer, policy):
        """Test a fully registered partition fails after the attempt bound."""
        register_signed(tiny_registry, signer, ALICE, "op", "swift-noble-dragon")
        generator = LabelGenerator(AvailabilityProber(tiny_registry, policy))

        with patch.object(tiny_registry, "has_record", wraps=tiny_registry.has_record) as probe:
            with pytest.raises(ExhaustedAttemptsException) as exc_info:
                generator.allocate("op", tiny_registry.get_components())

        assert probe.call_count == 10
        assert exc_info.value.details == {"attempts": 10, "partition": "op"}

    def test_exhausted_when_store_unavailable(self, policy, tiny_corpus):
        """Test transient faults consume attempts instead of succeeding."""
        store = MagicMock()
        store.has_record.side_effect = StoreUnavailableException("get_record")
        generator = LabelGenerator(AvailabilityProber(store, policy))

        with pytest.raises(ExhaustedAttemptsException):
            generator.allocate("op", tiny_corpus)

        assert store.has_record.call_count == 10 * (policy.probe_retries + 1)

    def test_custom_attempt_bound(self, tiny_registry, signer):
        register_signed(tiny_registry, signer, ALICE, "op", "swift-noble-dragon")
        policy = RetryPolicy(max_attempts=3, probe_retries=0, probe_wait_seconds=0)
        generator = LabelGenerator(AvailabilityProber(tiny_registry, policy))

        with pytest.raises(ExhaustedAttemptsException) as exc_info:
            generator.allocate("op", tiny_registry.get_components())
        assert exc_info.value.details["attempts"] == 3

    def test_empty_word_list(self, registry, policy):
        generator = LabelGenerator(AvailabilityProber(registry, policy))
        corpus = WordCorpus(("a",), (), ("c",), ("OP",))
        with pytest.raises(ExhaustedAttemptsException):
            generator.allocate("OP", corpus)

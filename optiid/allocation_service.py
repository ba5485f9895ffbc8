"""
Allocation service.

Implements the request/response surface used by UI collaborators:
Allocate probes for a free label and signs an authorization for it without
writing to the registry; Status reports how many domains an owner holds.
"""

from typing import Any, Dict, Optional

from .domain.exceptions import OptiIdServiceException
from .label_generator import LabelGenerator
from .logging_config import get_logger
from .metrics import allocations_total
from .registry import RegistrationRegistry
from .signer import CapabilitySigner
from .validators import normalize_address, validate_partition

logger = get_logger(__name__)


class AllocationService:
    """
    Service class for allocation operations.

    Wires the label generator, the capability signer and read access to the
    registry.
    """

    def __init__(
        self,
        registry: RegistrationRegistry,
        generator: LabelGenerator,
        signer: CapabilitySigner,
        registry_address: str,
    ):
        self._registry = registry
        self._generator = generator
        self._signer = signer
        self.registry_address = registry_address

    def allocate(self, owner: Optional[str], partition: Optional[str] = None) -> Dict[str, Any]:
        """
        Allocate a free label and sign an authorization for it.

        Args:
            owner: Registrant address
            partition: Target partition; random when omitted

        Returns:
            Dictionary with partition, domain, label, owner, deadline, nonce,
            signature and registryAddress

        Raises:
            InvalidAddressException: If the owner address is malformed
            PartitionNotConfiguredException: If no usable partition exists
            ExhaustedAttemptsException: If no free label was found
        """
        try:
            owner = normalize_address(owner)
            corpus = self._registry.get_components()
            if partition is None:
                partition = self._generator.choose_partition(corpus)
            else:
                validate_partition(partition, corpus)

            label = self._generator.allocate(partition, corpus)
            authorization = self._signer.issue(owner, partition, label)
        except OptiIdServiceException as e:
            allocations_total.labels(status=e.code).inc()
            logger.info("Allocation failed", owner=owner, code=e.code)
            raise

        allocations_total.labels(status="success").inc()
        logger.info("Allocation issued", owner=owner, partition=partition, label=label)

        return {
            "partition": partition,
            "domain": self._registry.get_domain_name(label, partition),
            "label": label,
            "owner": authorization.owner,
            "deadline": authorization.deadline,
            "nonce": authorization.nonce,
            "signature": authorization.signature,
            "registryAddress": self.registry_address,
        }

    def status(self, owner: Optional[str]) -> Dict[str, Any]:
        """
        Report an owner's registration count and quota.

        Raises:
            InvalidAddressException: If the owner address is malformed
        """
        owner = normalize_address(owner)
        return {
            "owner": owner,
            "registrationCount": self._registry.domain_count(owner),
            "maxAllowed": self._registry.max_domains_per_user,
        }

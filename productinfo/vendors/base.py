"""
Vendor adapter interface.
Decouples vendor API specific code from the caching and renewal logic.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Set

from productinfo.core.exceptions import UnsupportedOperation
from productinfo.domain.models import AttrValue, Price, VmShape


class NetworkPerfMapper(ABC):
    """Maps virtual machines to network performance categories."""

    @abstractmethod
    def map_network_perf(self, vm: VmShape) -> str:
        """
        Get the network performance category of a vm.

        Returns:
            One of 'low', 'medium', 'high', 'extra'

        Raises:
            ValueError: If the vm can't be categorized
        """


class VendorAdapter(ABC):
    """
    Retrieves product info from a single cloud vendor.

    Every method is a blocking call that may hit the network; failures are
    raised as VendorFetchFailure.
    """

    # Vendor name, used as the cache key segment
    name: str = ""

    @abstractmethod
    def initialize(self) -> Dict[str, Dict[str, Price]]:
        """
        Download and parse the vendor's price descriptor.

        Called once per renewal, may be a long running bulk operation.

        Returns:
            Nested mapping region -> instance type -> Price
        """

    @abstractmethod
    def get_attribute_values(self, attribute: str) -> Set[AttrValue]:
        """Distinct values of a vendor attribute (see get_cpu_attr_name / get_memory_attr_name)."""

    @abstractmethod
    def get_products(self, region: str) -> List[VmShape]:
        """Vm shapes available in a region."""

    @abstractmethod
    def get_zones(self, region: str) -> List[str]:
        """Availability zones of a region."""

    @abstractmethod
    def get_regions(self) -> Dict[str, str]:
        """Available regions as region id -> display name."""

    def has_short_lived_price_info(self) -> bool:
        """Signals that prices change too often to be served from the renewal cache only."""
        return False

    def get_current_prices(self, region: str) -> Dict[str, Price]:
        """
        Query current prices of all instance types in a region.

        Raises:
            UnsupportedOperation: If the vendor has no short lived price info
        """
        raise UnsupportedOperation(f"{self.name} prices cannot be queried on the fly")

    @abstractmethod
    def get_memory_attr_name(self) -> str:
        """Vendor representation of the memory attribute."""

    @abstractmethod
    def get_cpu_attr_name(self) -> str:
        """Vendor representation of the cpu attribute."""

    @abstractmethod
    def get_network_performance_mapper(self) -> NetworkPerfMapper:
        """Vendor specific network performance mapper."""

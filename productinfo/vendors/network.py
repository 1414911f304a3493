"""
Network performance mappers of the supported vendors.
"""
from typing import Dict, List, Mapping

from productinfo.domain.models import NTW_EXTRA, NTW_HIGH, NTW_LOW, NTW_MEDIUM, VmShape
from productinfo.vendors.base import NetworkPerfMapper


# EC2 price list 'networkPerformance' labels per category
EC2_NETWORK_LABELS: Dict[str, List[str]] = {
    NTW_LOW: ["Very Low", "Low", "Low to Moderate"],
    NTW_MEDIUM: ["Moderate", "High", "Up to 5 Gigabit"],
    NTW_HIGH: ["Up to 10 Gigabit", "10 Gigabit", "Up to 12 Gigabit", "Up to 25 Gigabit", "12 Gigabit", "20 Gigabit"],
    NTW_EXTRA: ["25 Gigabit", "50 Gigabit", "75 Gigabit", "100 Gigabit", "200 Gigabit"],
}

# Azure exposes no network label, bandwidth grows with the core count
AZURE_CORE_THRESHOLDS = (
    (2, NTW_LOW),
    (8, NTW_MEDIUM),
    (32, NTW_HIGH),
)


class LabelNetworkMapper(NetworkPerfMapper):
    """Maps a vendor's network performance labels to categories."""

    def __init__(self, labels: Mapping[str, List[str]]):
        self._categories = {
            label.lower(): category
            for category, category_labels in labels.items()
            for label in category_labels
        }

    def map_network_perf(self, vm: VmShape) -> str:
        category = self._categories.get(vm.network_perf.strip().lower())
        if category is None:
            raise ValueError(f"could not determine network performance for: {vm.type} ({vm.network_perf!r})")
        return category


class AzureNetworkMapper(NetworkPerfMapper):
    """Derives the network category of Azure vm sizes from their core count."""

    def map_network_perf(self, vm: VmShape) -> str:
        for max_cpus, category in AZURE_CORE_THRESHOLDS:
            if vm.cpus <= max_cpus:
                return category
        return NTW_EXTRA


def new_ec2_network_mapper() -> LabelNetworkMapper:
    return LabelNetworkMapper(EC2_NETWORK_LABELS)

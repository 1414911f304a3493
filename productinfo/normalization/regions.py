"""
Region resolution for vendor billing records.
Billing records carry free-text region labels ("US East 2", "EU West"), the
vendor APIs use short region ids ("eastus2", "westeurope").
"""
from types import MappingProxyType
from typing import Container, List, Mapping

from productinfo.core.exceptions import RegionNotFound


# Billing label prefix -> geography part of the region id
DEFAULT_REGION_CODES: Mapping[str, str] = MappingProxyType({
    "ap": "asia",
    "au": "australia",
    "br": "brazil",
    "ca": "canada",
    "eu": "europe",
    "fr": "france",
    "in": "india",
    "ja": "japan",
    "kr": "korea",
    "uk": "uk",
    "us": "us",
})


class RegionResolver:
    """Maps billing region labels to region ids of a vendor."""

    def __init__(self, region_codes: Mapping[str, str] = DEFAULT_REGION_CODES):
        """
        Initialize the resolver.

        Args:
            region_codes: Label prefix to geography table, copied into an immutable mapping
        """
        self._region_codes = MappingProxyType(dict(region_codes))

    @property
    def region_codes(self) -> Mapping[str, str]:
        return self._region_codes

    def candidates(self, label: str) -> List[str]:
        """
        Build the region ids a label may denote, in lookup order.

        Args:
            label: Billing region label (e.g., 'US East 2')

        Returns:
            Candidate region ids (e.g., ['useast2', 'eastus2']), empty for unknown prefixes
        """
        parts = label.lower().split()
        if not parts:
            return []
        region_code = self._region_codes.get(parts[0])
        if region_code is None:
            return []

        last_part = parts[-1]
        if len(parts) > 1 and last_part.isdigit():
            middle = "".join(parts[1:-1])
            return [
                f"{region_code}{middle}{last_part}",
                f"{middle}{region_code}{last_part}",
            ]
        rest = "".join(parts[1:])
        return [
            f"{region_code}{rest}",
            f"{rest}{region_code}",
        ]

    def resolve(self, label: str, known_regions: Container[str]) -> str:
        """
        Resolve a billing region label against the vendor's known regions.

        Args:
            label: Billing region label
            known_regions: Region ids of the vendor (a mapping of id -> display name works too)

        Returns:
            The first candidate region id present in known_regions

        Raises:
            RegionNotFound: If no candidate is a known region
        """
        for region_id in self.candidates(label):
            if region_id in known_regions:
                return region_id
        raise RegionNotFound(label)

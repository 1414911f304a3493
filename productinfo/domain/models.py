"""
Domain models for product info.
Defines prices, vm shapes, attribute values and vendor billing records.
"""
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field

from productinfo.core.exceptions import MalformedRecord


# Attribute names used by the recommender
MEMORY = "memory"
CPU = "cpu"

# Network performance categories of vm-s
NTW_LOW = "low"
NTW_MEDIUM = "medium"
NTW_HIGH = "high"
NTW_EXTRA = "extra"

NETWORK_CATEGORIES = (NTW_LOW, NTW_MEDIUM, NTW_HIGH, NTW_EXTRA)


@dataclass
class Price:
    """On demand price and per-zone spot prices of an instance type."""
    on_demand_price: float = 0.0
    spot_price: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.on_demand_price < 0:
            raise ValueError(f"on demand price must not be negative: {self.on_demand_price}")
        for zone, price in self.spot_price.items():
            if price < 0:
                raise ValueError(f"spot price must not be negative: zone={zone}, price={price}")

    def copy(self) -> "Price":
        """Return an independent copy so stored prices never share a spot map."""
        return Price(on_demand_price=self.on_demand_price, spot_price=dict(self.spot_price))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "onDemandPrice": self.on_demand_price,
            "spotPrice": dict(self.spot_price),
        }


@dataclass
class VmShape:
    """CPU, memory and network characteristics of an instance type."""
    type: str
    cpus: float
    memory_gib: float
    network_perf: str = ""  # vendor label, e.g. "Moderate" or "10 Gigabit"
    network_perf_category: str = ""

    def is_burst(self) -> bool:
        """Burstable families: AWS t-series and Azure B-series."""
        return self.type.lower().startswith("t") or self.type.startswith("Standard_B")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type,
            "cpusPerVm": self.cpus,
            "memPerVm": self.memory_gib,
            "ntwPerf": self.network_perf,
            "ntwPerfCategory": self.network_perf_category,
        }


@dataclass(frozen=True)
class AttrValue:
    """A possible value of the cpu or memory attribute."""
    str_value: str
    value: float


@dataclass
class ZonePrice:
    """Spot price in a single zone."""
    zone: str
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"zone": self.zone, "price": self.price}


@dataclass
class ProductDetails:
    """Extended view of a vm: its shape joined with price information."""
    vm: VmShape
    burst: bool
    on_demand_price: float
    spot_price: List[ZonePrice]

    @classmethod
    def from_vm(cls, vm: VmShape, price: Optional[Price]) -> "ProductDetails":
        price = price or Price()
        return cls(
            vm=vm,
            burst=vm.is_burst(),
            on_demand_price=price.on_demand_price,
            spot_price=[ZonePrice(zone, p) for zone, p in sorted(price.spot_price.items())],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = self.vm.to_dict()
        result.update({
            "burst": self.burst,
            "onDemandPrice": self.on_demand_price,
            "spotPrice": [zp.to_dict() for zp in self.spot_price],
        })
        return result


@dataclass
class MeterRecord:
    """A single row of a vendor's billing rate card."""
    meter_id: str
    meter_name: str
    meter_category: str
    meter_sub_category: str
    meter_region: str
    meter_tags: List[str]
    meter_rates: Dict[str, float]  # price breakpoint -> rate
    unit: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeterRecord":
        """
        Build a record from an Azure RateCard meter.

        Args:
            data: Meter JSON object as returned by the RateCard API

        Returns:
            MeterRecord instance

        Raises:
            MalformedRecord: If the rates are not a mapping of numbers
        """
        try:
            rates = {str(k): float(v) for k, v in (data.get("MeterRates") or {}).items()}
        except (AttributeError, TypeError, ValueError) as error:
            raise MalformedRecord(
                f"unparseable rates of meter {data.get('MeterId')} ({data.get('MeterSubCategory')}): {error}"
            ) from error
        return cls(
            meter_id=data.get("MeterId") or "",
            meter_name=data.get("MeterName") or "",
            meter_category=data.get("MeterCategory") or "",
            meter_sub_category=data.get("MeterSubCategory") or "",
            meter_region=data.get("MeterRegion") or "",
            meter_tags=list(data.get("MeterTags") or []),
            meter_rates=rates,
            unit=data.get("Unit") or "",
        )

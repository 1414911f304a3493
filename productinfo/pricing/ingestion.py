"""
Price ingestion pipeline.
Turns a vendor's raw billing meters into a region -> instance type -> Price table.
"""
from collections import Counter
from dataclasses import dataclass
from typing import Container, Dict, Iterable, Optional
import logging

from productinfo.core.exceptions import MalformedRecord, RegionNotFound
from productinfo.domain.models import MeterRecord, Price
from productinfo.normalization.machine_types import MachineTypeNormalizer
from productinfo.normalization.regions import RegionResolver


logger = logging.getLogger(__name__)

PriceTable = Dict[str, Dict[str, Price]]

VM_CATEGORY = "Virtual Machines"
SPOT_MARKERS = ("low priority", "spot")


@dataclass
class ParsedMeter:
    """A billing meter reduced to the fields the price table needs."""
    region: str
    instance_type: str
    price: float
    spot: bool


class PriceIngestionPipeline:
    """
    Builds price tables from billing meters.

    Records are handled one by one; a record that cannot be placed is skipped and
    counted, it never aborts the run.
    """

    def __init__(
        self,
        region_resolver: Optional[RegionResolver] = None,
        normalizer: Optional[MachineTypeNormalizer] = None,
    ):
        self.region_resolver = region_resolver or RegionResolver()
        self.normalizer = normalizer or MachineTypeNormalizer()

    @staticmethod
    def is_candidate(record: MeterRecord) -> bool:
        """Compute meters without extra tag dimensions and with a region."""
        return (
            record.meter_category == VM_CATEGORY
            and not record.meter_tags
            and bool(record.meter_region)
        )

    @staticmethod
    def is_spot(record: MeterRecord) -> bool:
        text = f"{record.meter_sub_category} {record.meter_name}".lower()
        return any(marker in text for marker in SPOT_MARKERS)

    def parse_instance_type(self, sub_category: str) -> str:
        """
        Extract the canonical instance type from a meter sub category.

        Args:
            sub_category: Sub category label (e.g., 'BASIC.A2 VM' or 'D2 VM_Promo')

        Returns:
            Canonical instance type

        Raises:
            MalformedRecord: If the label has no VM tier token
        """
        category = sub_category.split(" ")
        if len(category) < 2:
            raise MalformedRecord(f"couldn't parse meter sub category: {sub_category}")
        if category[1] == "VM":
            instance_type = category[0]
        elif category[1] == "VM_Promo":
            instance_type = category[0] + "_Promo"
        else:
            raise MalformedRecord(f"instance type is empty: {sub_category}")
        return self.normalizer.classify(instance_type)

    def parse(self, record: MeterRecord, known_regions: Container[str]) -> Optional[ParsedMeter]:
        """
        Parse a single meter.

        Returns:
            ParsedMeter, or None if the meter is not a priceable Linux compute meter

        Raises:
            RegionNotFound: If the meter region is unknown
            MalformedRecord: If the sub category or rates can't be used
        """
        if not self.is_candidate(record):
            return None
        if "(Windows)" in record.meter_sub_category:
            return None

        region = self.region_resolver.resolve(record.meter_region, known_regions)
        instance_type = self.parse_instance_type(record.meter_sub_category)

        if not record.meter_rates:
            raise MalformedRecord(
                f"{record.meter_sub_category} doesn't have rate info in region {record.meter_region}"
            )
        # Rate tiers are summed, this matches the prices observed on the vendor side
        price = sum(record.meter_rates.values())
        if price < 0:
            raise MalformedRecord(f"negative rate for {record.meter_sub_category}: {price}")

        return ParsedMeter(
            region=region,
            instance_type=instance_type,
            price=price,
            spot=self.is_spot(record),
        )

    def _store(self, prices: PriceTable, meter: ParsedMeter) -> None:
        region_prices = prices.setdefault(meter.region, {})
        price = region_prices.get(meter.instance_type, Price()).copy()
        if meter.spot:
            price.spot_price[meter.region] = meter.price
        else:
            price.on_demand_price = meter.price

        region_prices[meter.instance_type] = price
        logger.debug(
            f"price info added: [region={meter.region}, machinetype={meter.instance_type}, price={price}]"
        )
        for variant in self.normalizer.variants(meter.instance_type):
            region_prices[variant] = price.copy()
            logger.debug(f"price info added: [region={meter.region}, machinetype={variant}, price={price}]")

    def ingest(self, records: Iterable[MeterRecord], known_regions: Container[str]) -> PriceTable:
        """
        Build a price table from billing meters.

        Args:
            records: Raw billing meters of a vendor
            known_regions: Region ids of the vendor

        Returns:
            Nested mapping region -> instance type -> Price
        """
        prices: PriceTable = {}
        stats: Counter = Counter()

        for record in records:
            try:
                meter = self.parse(record, known_regions)
            except RegionNotFound as error:
                stats["region_not_found"] += 1
                logger.debug(str(error))
                continue
            except MalformedRecord as error:
                stats["malformed"] += 1
                logger.debug(f"{error}, region={record.meter_region}")
                continue

            if meter is None:
                stats["filtered"] += 1
                continue

            self._store(prices, meter)
            stats["accepted"] += 1

        logger.info(
            f"ingested billing meters: accepted={stats['accepted']}, filtered={stats['filtered']}, "
            f"region_not_found={stats['region_not_found']}, malformed={stats['malformed']}, "
            f"regions={len(prices)}"
        )
        return prices

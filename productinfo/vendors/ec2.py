"""
Amazon EC2 product info adapter.
Uses boto3 to query the AWS Price List API and the EC2 spot price history.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple
import json
import logging

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from productinfo.core.config import config
from productinfo.core.exceptions import VendorFetchFailure
from productinfo.domain.models import AttrValue, Price, VmShape
from productinfo.vendors.base import NetworkPerfMapper, VendorAdapter
from productinfo.vendors.network import new_ec2_network_mapper


logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], Any]

CPU_ATTR = "vcpu"
MEMORY_ATTR = "memory"
SPOT_PRODUCT_DESCRIPTION = "Linux/UNIX"

# Region code -> display name, the EC2 API only returns codes
REGION_NAMES: Dict[str, str] = {
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "ap-south-1": "Asia Pacific (Mumbai)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
    "ap-southeast-2": "Asia Pacific (Sydney)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
    "ap-northeast-2": "Asia Pacific (Seoul)",
    "ap-northeast-3": "Asia Pacific (Osaka)",
    "eu-west-1": "EU (Ireland)",
    "eu-west-2": "EU (London)",
    "eu-west-3": "EU (Paris)",
    "eu-central-1": "EU (Frankfurt)",
    "eu-north-1": "EU (Stockholm)",
    "sa-east-1": "South America (Sao Paulo)",
    "ca-central-1": "Canada (Central)",
}


def _default_client_factory(service: str, region: str) -> Any:
    boto_config = BotoConfig(
        connect_timeout=10,
        read_timeout=config.VENDOR_TIMEOUT_SECONDS,
        retries={"max_attempts": 3},
    )
    return boto3.client(service, region_name=region, config=boto_config)


def _parse_quantity(value: str) -> Optional[float]:
    """Parse price list quantities like '2', '0.5 GiB' or '1,952 GiB'."""
    try:
        return float(value.split()[0].replace(",", ""))
    except (IndexError, ValueError):
        return None


def _on_demand_price(product: Dict[str, Any]) -> Optional[float]:
    """Hourly USD on demand price of a price list product, None if it has none."""
    terms = product.get("terms", {}).get("OnDemand", {})
    for term in terms.values():
        for dimension in term.get("priceDimensions", {}).values():
            usd = dimension.get("pricePerUnit", {}).get("USD")
            if usd is not None:
                return float(usd)
    return None


class Ec2Infoer(VendorAdapter):
    """Retrieves instance types, on demand and spot prices from AWS."""

    name = "ec2"

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        pricing_region: str = config.AWS_PRICING_REGION,
    ):
        """
        Initialize the EC2 adapter.

        Args:
            client_factory: Builds a boto3 client from (service name, region)
            pricing_region: Region hosting the Price List API endpoint
        """
        self._client_factory = client_factory or _default_client_factory
        self.pricing_region = pricing_region

    def _pricing(self) -> Any:
        return self._client_factory("pricing", self.pricing_region)

    def _ec2(self, region: str) -> Any:
        return self._client_factory("ec2", region)

    def _paginate(self, client: Any, operation: str, result_key: str, **kwargs) -> List[Any]:
        """
        Collect a result list over all pages of an operation.

        Raises:
            VendorFetchFailure: If an AWS call fails
        """
        try:
            items: List[Any] = []
            for page in client.get_paginator(operation).paginate(**kwargs):
                items.extend(page.get(result_key, []))
            return items
        except ClientError as error:
            logger.error(f"AWS API error in {operation}: {error}")
            raise VendorFetchFailure(self.name, f"{operation} failed: {error}") from error
        except BotoCoreError as error:
            logger.error(f"AWS client error in {operation}: {error}")
            raise VendorFetchFailure(self.name, f"{operation} failed: {error}") from error

    def _price_list(self, region: str) -> Iterable[Dict[str, Any]]:
        """Shared tenancy Linux price list products of a region."""
        filters = [
            {"Type": "TERM_MATCH", "Field": "regionCode", "Value": region},
            {"Type": "TERM_MATCH", "Field": "operatingSystem", "Value": "Linux"},
            {"Type": "TERM_MATCH", "Field": "tenancy", "Value": "Shared"},
            {"Type": "TERM_MATCH", "Field": "preInstalledSw", "Value": "NA"},
            {"Type": "TERM_MATCH", "Field": "capacitystatus", "Value": "Used"},
        ]
        raw = self._paginate(self._pricing(), "get_products", "PriceList", ServiceCode="AmazonEC2", Filters=filters)
        for item in raw:
            try:
                yield json.loads(item) if isinstance(item, str) else item
            except ValueError as error:
                raise VendorFetchFailure(self.name, f"couldn't parse price list entry: {error}") from error

    def initialize(self) -> Dict[str, Dict[str, Price]]:
        # Prices are queried per region on the fly, there is no bulk descriptor
        return {}

    def get_attribute_values(self, attribute: str) -> Set[AttrValue]:
        logger.debug(f"getting {attribute} values")
        raw = self._paginate(
            self._pricing(), "get_attribute_values", "AttributeValues",
            ServiceCode="AmazonEC2", AttributeName=attribute,
        )
        values = set()
        for item in raw:
            str_value = item.get("Value", "")
            value = _parse_quantity(str_value)
            if value is None:
                logger.debug(f"skipping {attribute} value {str_value!r}")
                continue
            values.add(AttrValue(str_value=str_value, value=value))
        logger.debug(f"found {attribute} values: {sorted(v.value for v in values)}")
        return values

    def get_products(self, region: str) -> List[VmShape]:
        logger.debug(f"getting product info [region={region}]")
        mapper = self.get_network_performance_mapper()
        vms: Dict[str, VmShape] = {}
        for product in self._price_list(region):
            attributes = product.get("product", {}).get("attributes", {})
            instance_type = attributes.get("instanceType")
            cpus = _parse_quantity(attributes.get("vcpu", ""))
            memory = _parse_quantity(attributes.get("memory", ""))
            if not instance_type or cpus is None or memory is None:
                continue
            vm = VmShape(
                type=instance_type,
                cpus=cpus,
                memory_gib=memory,
                network_perf=attributes.get("networkPerformance", ""),
            )
            try:
                vm.network_perf_category = mapper.map_network_perf(vm)
            except ValueError as error:
                logger.debug(str(error))
            vms[instance_type] = vm
        logger.debug(f"found {len(vms)} vms in region {region}")
        return list(vms.values())

    def get_zones(self, region: str) -> List[str]:
        try:
            response = self._ec2(region).describe_availability_zones(
                Filters=[{"Name": "state", "Values": ["available"]}]
            )
        except (ClientError, BotoCoreError) as error:
            raise VendorFetchFailure(self.name, f"couldn't list zones of {region}: {error}") from error
        return [zone["ZoneName"] for zone in response.get("AvailabilityZones", [])]

    def get_regions(self) -> Dict[str, str]:
        try:
            response = self._ec2(self.pricing_region).describe_regions()
        except (ClientError, BotoCoreError) as error:
            raise VendorFetchFailure(self.name, f"couldn't list regions: {error}") from error
        return {
            region["RegionName"]: REGION_NAMES.get(region["RegionName"], region["RegionName"])
            for region in response.get("Regions", [])
        }

    def has_short_lived_price_info(self) -> bool:
        """Spot prices change continuously on EC2."""
        return True

    def get_current_prices(self, region: str) -> Dict[str, Price]:
        """
        On demand prices from the price list joined with the current spot prices.

        Args:
            region: AWS region code (e.g., 'eu-west-1')

        Returns:
            Mapping instance type -> Price with spot prices keyed by availability zone
        """
        logger.debug(f"getting current prices [region={region}]")
        prices: Dict[str, Price] = {}
        for product in self._price_list(region):
            instance_type = product.get("product", {}).get("attributes", {}).get("instanceType")
            on_demand = _on_demand_price(product)
            if instance_type and on_demand is not None:
                prices[instance_type] = Price(on_demand_price=on_demand)

        history = self._paginate(
            self._ec2(region), "describe_spot_price_history", "SpotPriceHistory",
            StartTime=datetime.now(timezone.utc),
            ProductDescriptions=[SPOT_PRODUCT_DESCRIPTION],
        )
        latest: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for entry in history:
            key = (entry["InstanceType"], entry["AvailabilityZone"])
            current = latest.get(key)
            if current is None or entry["Timestamp"] > current["Timestamp"]:
                latest[key] = entry
        for (instance_type, zone), entry in latest.items():
            price = prices.setdefault(instance_type, Price())
            price.spot_price[zone] = float(entry["SpotPrice"])

        logger.debug(f"found current prices of {len(prices)} instance types in region {region}")
        return prices

    def get_memory_attr_name(self) -> str:
        return MEMORY_ATTR

    def get_cpu_attr_name(self) -> str:
        return CPU_ATTR

    def get_network_performance_mapper(self) -> NetworkPerfMapper:
        return new_ec2_network_mapper()

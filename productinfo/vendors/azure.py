"""
Azure product info adapter.
Uses the Azure SDK for locations and vm sizes, and the commerce RateCard API for prices.
"""
from typing import Any, Dict, List, Optional, Set
import logging

import httpx
from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.resource import SubscriptionClient

from productinfo.core.config import config
from productinfo.core.exceptions import MalformedRecord, VendorFetchFailure
from productinfo.domain.models import CPU, MEMORY, AttrValue, MeterRecord, VmShape
from productinfo.pricing.ingestion import PriceIngestionPipeline, PriceTable
from productinfo.vendors.base import NetworkPerfMapper, VendorAdapter
from productinfo.vendors.network import AzureNetworkMapper


logger = logging.getLogger(__name__)

MANAGEMENT_URL = "https://management.azure.com"
MANAGEMENT_SCOPE = MANAGEMENT_URL + "/.default"

COMMERCE_API_VERSION = "2015-06-01-preview"


class AzureInfoer(VendorAdapter):
    """Retrieves regions, vm sizes and rate card prices from Azure."""

    name = "azure"

    def __init__(
        self,
        subscription_id: str = config.AZURE_SUBSCRIPTION_ID,
        tenant_id: str = config.AZURE_TENANT_ID,
        client_id: str = config.AZURE_CLIENT_ID,
        client_secret: str = config.AZURE_CLIENT_SECRET,
        credential: Optional[Any] = None,
        subscription_client: Optional[SubscriptionClient] = None,
        compute_client: Optional[ComputeManagementClient] = None,
        http_client: Optional[httpx.Client] = None,
        pipeline: Optional[PriceIngestionPipeline] = None,
    ):
        """
        Initialize the Azure adapter.

        Args:
            subscription_id: Subscription whose locations, sizes and rate card are queried
            tenant_id: AAD tenant of the service principal
            client_id: Service principal application id
            client_secret: Service principal secret
            credential: Token credential, a ClientSecretCredential is built when omitted
            subscription_client: Optional preconfigured subscriptions client
            compute_client: Optional preconfigured compute client
            http_client: Optional preconfigured client for the RateCard API
            pipeline: Price ingestion pipeline applied to the rate card
        """
        self.subscription_id = subscription_id
        self.credential = credential or ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
        )
        self.subscription_client = subscription_client or SubscriptionClient(self.credential)
        self.compute_client = compute_client or ComputeManagementClient(self.credential, subscription_id)
        self.client = http_client or httpx.Client(
            timeout=httpx.Timeout(config.VENDOR_TIMEOUT_SECONDS, connect=10.0),
            follow_redirects=True,
        )
        self.pipeline = pipeline or PriceIngestionPipeline()

    def _rate_card(self) -> Dict[str, Any]:
        """
        Download the rate card of the configured offer.

        Raises:
            VendorFetchFailure: If the token or the rate card request fails
        """
        rate_card_filter = (
            f"OfferDurableId eq '{config.AZURE_RATE_CARD_OFFER}' and Currency eq 'USD' "
            "and Locale eq 'en-US' and RegionInfo eq 'US'"
        )
        path = f"/subscriptions/{self.subscription_id}/providers/Microsoft.Commerce/RateCard"
        try:
            token = self.credential.get_token(MANAGEMENT_SCOPE).token
            response = self.client.get(
                MANAGEMENT_URL + path,
                params={"api-version": COMMERCE_API_VERSION, "$filter": rate_card_filter},
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            return response.json()
        except AzureError as error:
            logger.error(f"Azure authentication error: {error}")
            raise VendorFetchFailure(self.name, f"couldn't get access token: {error}") from error
        except httpx.HTTPStatusError as error:
            logger.error(f"Azure API HTTP error: {error}")
            raise VendorFetchFailure(self.name, f"RateCard failed with status {error.response.status_code}") from error
        except httpx.RequestError as error:
            logger.error(f"Azure API request error: {error}")
            raise VendorFetchFailure(self.name, f"failed to connect to Azure API: {error}") from error
        except ValueError as error:
            raise VendorFetchFailure(self.name, f"unexpected response from RateCard: {error}") from error

    def _vm_sizes(self, region: str) -> List[Any]:
        try:
            return list(self.compute_client.virtual_machine_sizes.list(location=region))
        except AzureError as error:
            raise VendorFetchFailure(self.name, f"couldn't list vm sizes in {region}: {error}") from error

    def _parse_meters(self, raw_meters: List[Dict[str, Any]]) -> List[MeterRecord]:
        """Parse rate card meters one by one, skipping the unparseable ones."""
        meters = []
        skipped = 0
        for raw in raw_meters:
            try:
                meters.append(MeterRecord.from_dict(raw))
            except MalformedRecord as error:
                skipped += 1
                logger.debug(str(error))
        if skipped:
            logger.warning(f"skipped {skipped} unparseable rate card meters")
        return meters

    def initialize(self) -> PriceTable:
        """Download the rate card and ingest its virtual machine meters."""
        logger.debug("initializing Azure price info")
        regions = self.get_regions()
        logger.debug(f"queried regions: {regions}")

        data = self._rate_card()
        meters = self._parse_meters(data.get("Meters") or [])

        prices = self.pipeline.ingest(meters, regions)
        logger.debug("finished initializing Azure price info")
        return prices

    def get_attribute_values(self, attribute: str) -> Set[AttrValue]:
        """
        Collect the distinct cpu or memory values of all vm sizes in all regions.

        Regions whose sizes can't be listed are skipped.
        """
        logger.debug(f"getting {attribute} values")
        values: Set[AttrValue] = set()

        for region in self.get_regions():
            try:
                sizes = self._vm_sizes(region)
            except VendorFetchFailure as error:
                logger.warning(f"[Azure] couldn't get VM sizes in region {region}: {error}")
                continue
            for size in sizes:
                if attribute == CPU:
                    values.add(AttrValue(str_value=str(size.number_of_cores), value=float(size.number_of_cores)))
                elif attribute == MEMORY:
                    values.add(AttrValue(str_value=str(size.memory_in_mb), value=size.memory_in_mb / 1024))

        logger.debug(f"found {attribute} values: {sorted(v.value for v in values)}")
        return values

    def get_products(self, region: str) -> List[VmShape]:
        """Vm sizes available in a region."""
        logger.debug(f"getting product info [region={region}]")
        mapper = self.get_network_performance_mapper()
        vms = []
        for size in self._vm_sizes(region):
            vm = VmShape(
                type=size.name,
                cpus=float(size.number_of_cores),
                memory_gib=size.memory_in_mb / 1024,
            )
            vm.network_perf_category = mapper.map_network_perf(vm)
            vms.append(vm)
        logger.debug(f"found {len(vms)} vms in region {region}")
        return vms

    def get_zones(self, region: str) -> List[str]:
        """Azure prices are per region, the region is its own single zone."""
        return [region]

    def get_regions(self) -> Dict[str, str]:
        """Subscription locations as name -> display name."""
        try:
            locations = list(self.subscription_client.subscriptions.list_locations(self.subscription_id))
        except AzureError as error:
            logger.error(f"Azure API error: {error}")
            raise VendorFetchFailure(self.name, f"couldn't list locations: {error}") from error
        return {location.name: location.display_name for location in locations}

    def get_memory_attr_name(self) -> str:
        return MEMORY

    def get_cpu_attr_name(self) -> str:
        return CPU

    def get_network_performance_mapper(self) -> NetworkPerfMapper:
        return AzureNetworkMapper()

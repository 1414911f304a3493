"""
Product info query service.
Answers price, region, zone, attribute and product queries from the cache store.
"""
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
import logging
import threading
import time

from productinfo.cache.keys import CacheKeys
from productinfo.cache.store import CacheStore
from productinfo.core.config import config
from productinfo.core.exceptions import NotFound, VendorFetchFailure
from productinfo.domain.models import CPU, MEMORY, Price, ProductDetails, VmShape
from productinfo.vendors.base import NetworkPerfMapper, VendorAdapter


logger = logging.getLogger(__name__)

ATTRIBUTES = [MEMORY, CPU]


class ProductInfoService:
    """
    Read side of the product info cache.

    Nothing here writes the cache; a missing key means the renewal manager
    hasn't populated it (yet).
    """

    def __init__(
        self,
        adapters: Mapping[str, VendorAdapter],
        store: CacheStore,
        keys: Optional[CacheKeys] = None,
        current_prices_ttl: float = config.CURRENT_PRICES_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the service.

        Args:
            adapters: Vendor name -> adapter
            store: Shared cache store
            keys: Cache key builder
            current_prices_ttl: Seconds on-the-fly prices of a region are reused on cache misses
            clock: Monotonic time source in seconds
        """
        self.adapters = dict(adapters)
        self.store = store
        self.keys = keys or CacheKeys()
        self.current_prices_ttl = current_prices_ttl
        self._clock = clock
        # (provider, region) -> (expires_at, prices)
        self._recent_prices: Dict[Tuple[str, str], Tuple[float, Dict[str, Price]]] = {}
        self._recent_lock = threading.Lock()

    def _adapter(self, provider: str) -> VendorAdapter:
        adapter = self.adapters.get(provider)
        if adapter is None:
            raise NotFound(f"unknown provider: {provider}")
        return adapter

    def _cached(self, key: str, what: str) -> Any:
        value, found = self.store.get(key)
        if not found:
            raise NotFound(f"{what} not found")
        return value

    def get_providers(self) -> List[str]:
        return list(self.adapters)

    def get_attributes(self) -> List[str]:
        return list(ATTRIBUTES)

    def get_attr_values(self, provider: str, attribute: str) -> List[float]:
        """
        Possible values of an attribute on a provider.

        Args:
            provider: Provider name
            attribute: 'cpu' or 'memory'

        Returns:
            Sorted attribute values
        """
        self._adapter(provider)
        if attribute not in ATTRIBUTES:
            raise NotFound(f"unsupported attribute: {attribute}")
        values = self._cached(self.keys.attr_values(provider, attribute), f"{attribute} values of {provider}")
        return sorted(v.value for v in values)

    def get_regions(self, provider: str) -> Dict[str, str]:
        self._adapter(provider)
        return dict(self._cached(self.keys.regions(provider), f"regions of {provider}"))

    def get_zones(self, provider: str, region: str) -> List[str]:
        self._adapter(provider)
        return list(self._cached(self.keys.zones(provider, region), f"zones of {provider}/{region}"))

    def get_vms(self, provider: str, region: str) -> List[VmShape]:
        self._adapter(provider)
        return list(self._cached(self.keys.vms(provider, region), f"products of {provider}/{region}"))

    def has_short_lived_price_info(self, provider: str) -> bool:
        return self._adapter(provider).has_short_lived_price_info()

    def get_current_prices(self, provider: str, region: str) -> Dict[str, Price]:
        """
        Query current prices directly from the vendor, bypassing the cache.

        Raises:
            UnsupportedOperation: If the provider has no short lived price info
        """
        return self._adapter(provider).get_current_prices(region)

    def _recent_current_prices(self, provider: str, region: str) -> Dict[str, Price]:
        """
        Current prices of a region, reused for current_prices_ttl seconds.

        A missing instance type stays missing until the entry expires, so repeated
        misses don't download the region's prices again. Failures are not kept.
        """
        key = (provider, region)
        now = self._clock()
        with self._recent_lock:
            entry = self._recent_prices.get(key)
            if entry is not None and now < entry[0]:
                return entry[1]

        logger.debug(f"querying current prices of {provider} [region={region}]")
        prices = self._adapter(provider).get_current_prices(region)
        with self._recent_lock:
            self._recent_prices[key] = (now + self.current_prices_ttl, prices)
        return prices

    def _lookup_price(self, provider: str, region: str, instance_type: str) -> Price:
        adapter = self._adapter(provider)
        price, found = self.store.get(self.keys.price(provider, region, instance_type))
        if found:
            return price
        if adapter.has_short_lived_price_info():
            logger.debug(f"price of {instance_type} not cached [provider={provider}, region={region}]")
            try:
                current = self._recent_current_prices(provider, region).get(instance_type)
            except VendorFetchFailure as error:
                logger.warning(f"couldn't query current prices of {provider}: {error}")
                current = None
            if current is not None:
                return current
        raise NotFound(f"price of {instance_type} not found in {provider}/{region}")

    def get_price(
        self,
        provider: str,
        region: str,
        instance_type: str,
        zones: Optional[Sequence[str]] = None,
    ) -> Tuple[float, float]:
        """
        On demand price and zone averaged spot price of an instance type.

        Zones without spot price are left out of the average; without any spot
        data the average is 0.

        Args:
            provider: Provider name
            region: Region id
            instance_type: Instance type
            zones: Zones to average the spot price over, by default the cached zones
                of the region or, if those aren't cached, every zone of the price

        Returns:
            Tuple of (on demand price, average spot price)

        Raises:
            NotFound: If no price is known for the instance type
        """
        price = self._lookup_price(provider, region, instance_type)
        if zones is None:
            cached_zones, found = self.store.get(self.keys.zones(provider, region))
            zones = cached_zones if found else list(price.spot_price)
        spot_prices = [price.spot_price[zone] for zone in zones if zone in price.spot_price]
        avg_spot = sum(spot_prices) / len(spot_prices) if spot_prices else 0.0
        return price.on_demand_price, avg_spot

    def get_product_details(self, provider: str, region: str) -> List[ProductDetails]:
        """Vms of a region joined with their cached prices."""
        details = []
        for vm in self.get_vms(provider, region):
            price, _ = self.store.get(self.keys.price(provider, region, vm.type))
            details.append(ProductDetails.from_vm(vm, price))
        return details

    def get_network_perf_mapper(self, provider: str) -> NetworkPerfMapper:
        return self._adapter(provider).get_network_performance_mapper()

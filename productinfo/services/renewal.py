"""
Renewal manager.

Periodically refreshes the cached product info of every registered vendor.
Each vendor is refreshed by its own task; the cache store is the only state
the tasks share and every vendor writes only below its own key namespace.
"""
import asyncio
import functools
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from productinfo.cache.keys import CacheKeys
from productinfo.cache.store import CacheStore
from productinfo.core.config import config
from productinfo.core.exceptions import NotFound, VendorFetchFailure
from productinfo.domain.models import CPU, MEMORY
from productinfo.resilience.renewal_guard import RenewalGuard
from productinfo.vendors.base import VendorAdapter


logger = logging.getLogger(__name__)

StagedWrites = List[Tuple[str, Any]]


class RenewalManager:
    """Owns the refresh schedule and is the only writer of the cache store."""

    def __init__(
        self,
        adapters: Mapping[str, VendorAdapter],
        store: CacheStore,
        keys: Optional[CacheKeys] = None,
        renewal_interval: float = config.RENEWAL_INTERVAL_SECONDS,
        cache_ttl: float = config.CACHE_TTL_SECONDS,
    ):
        """
        Initialize the renewal manager.

        Args:
            adapters: Vendor name -> adapter
            store: Shared cache store
            keys: Cache key builder
            renewal_interval: Seconds between renewal cycles
            cache_ttl: Time-to-live of every written entry in seconds
        """
        self.adapters = dict(adapters)
        self.store = store
        self.keys = keys or CacheKeys()
        self.renewal_interval = renewal_interval
        self.cache_ttl = cache_ttl
        self.guards: Dict[str, RenewalGuard] = {name: RenewalGuard(name) for name in self.adapters}
        self._tasks: Set[asyncio.Task] = set()

    def _guard(self, vendor: str) -> RenewalGuard:
        try:
            return self.guards[vendor]
        except KeyError:
            raise NotFound(f"unknown provider: {vendor}") from None

    def collect(self, vendor: str) -> StagedWrites:
        """
        Fetch everything cached for a vendor without writing anything.

        This is a blocking call, it runs the vendor's network requests.

        Args:
            vendor: Vendor name

        Returns:
            List of (cache key, value) pairs to commit
        """
        adapter = self.adapters[vendor]
        staged: StagedWrites = []

        regions = adapter.get_regions()
        staged.append((self.keys.regions(vendor), dict(regions)))

        for attribute, vendor_attribute in ((CPU, adapter.get_cpu_attr_name()), (MEMORY, adapter.get_memory_attr_name())):
            values = sorted(adapter.get_attribute_values(vendor_attribute), key=lambda v: v.value)
            staged.append((self.keys.attr_values(vendor, attribute), values))

        for region in regions:
            staged.append((self.keys.zones(vendor, region), list(adapter.get_zones(region))))
            staged.append((self.keys.vms(vendor, region), list(adapter.get_products(region))))

        if adapter.has_short_lived_price_info():
            price_table = {region: adapter.get_current_prices(region) for region in regions}
        else:
            price_table = adapter.initialize()
        for region, region_prices in price_table.items():
            for instance_type, price in region_prices.items():
                staged.append((self.keys.price(vendor, region, instance_type), price))

        return staged

    async def _refresh(self, vendor: str, release_on_cancel: bool = True) -> bool:
        """
        Run one refresh; the caller must hold the vendor's guard.

        Args:
            vendor: Vendor name
            release_on_cancel: Release the guard here when cancelled, background
                tasks release it from their done callback instead
        """
        guard = self.guards[vendor]
        started = time.monotonic()
        logger.info(f"renewing product info of {vendor}")
        try:
            staged = await asyncio.to_thread(self.collect, vendor)
            self.store.set_many(staged, self.cache_ttl)
        except asyncio.CancelledError:
            # Nothing was committed, the previous entries stay in place
            if release_on_cancel:
                guard.abandon()
            logger.warning(f"renewal of {vendor} cancelled")
            raise
        except Exception as error:
            failure = error if isinstance(error, VendorFetchFailure) else VendorFetchFailure(vendor, str(error))
            guard.fail(failure)
            logger.error(f"failed to renew product info of {vendor}, keeping cached data: {failure}")
            return False

        guard.succeed()
        logger.info(
            f"renewed product info of {vendor}: {len(staged)} cache entries "
            f"in {time.monotonic() - started:.1f}s"
        )
        return True

    async def renew(self, vendor: str) -> bool:
        """
        Refresh a single vendor and wait for it.

        Returns:
            True on success, False if the refresh failed or one was already in flight

        Raises:
            NotFound: If the vendor is not registered
        """
        if not self._guard(vendor).begin():
            logger.info(f"renewal of {vendor} already in flight, skipping")
            return False
        return await self._refresh(vendor)

    async def renew_all(self) -> Dict[str, bool]:
        """Refresh every vendor in parallel and wait for all of them."""
        vendors = list(self.adapters)
        results = await asyncio.gather(*(self.renew(vendor) for vendor in vendors))
        return dict(zip(vendors, results))

    def trigger_all(self) -> List[str]:
        """
        Start a background refresh for every idle vendor.

        Must be called from a running event loop.

        Returns:
            Vendors whose refresh was started
        """
        started = []
        for vendor in self.adapters:
            if not self.guards[vendor].begin():
                logger.warning(f"renewal of {vendor} still in flight, skipping this cycle")
                continue
            task = asyncio.create_task(self._refresh(vendor, release_on_cancel=False), name=f"renew-{vendor}")
            self._tasks.add(task)
            task.add_done_callback(functools.partial(self._task_done, vendor))
            started.append(vendor)
        return started

    def _task_done(self, vendor: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        # A task cancelled before its first step never reaches _refresh's handler
        if task.cancelled():
            self.guards[vendor].abandon()

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Renewal loop: trigger a cycle, then wait one interval or until stopped.

        Args:
            stop_event: Set to stop the loop; in-flight refreshes are allowed to finish
        """
        logger.info(f"starting product info renewal every {self.renewal_interval}s for {', '.join(self.adapters)}")
        while not stop_event.is_set():
            self.trigger_all()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.renewal_interval)
            except asyncio.TimeoutError:
                pass
        await self.shutdown()
        logger.info("product info renewal stopped")

    async def shutdown(self, cancel: bool = False) -> None:
        """
        Wait for in-flight refreshes.

        Args:
            cancel: Cancel in-flight refreshes instead of letting them finish
        """
        tasks = list(self._tasks)
        if cancel:
            for task in tasks:
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def status(self) -> Dict[str, Dict[str, Any]]:
        """Renewal status of every vendor."""
        return {vendor: guard.status() for vendor, guard in self.guards.items()}

    def vendor_status(self, vendor: str) -> Dict[str, Any]:
        return self._guard(vendor).status()

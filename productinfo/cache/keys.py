"""
Cache key templates.
Clients reading the cache directly depend on this exact key layout.
"""
from productinfo.core.config import config


VM_KEY_TEMPLATE = "/{ns}/{vendor}/{region}/vms"
ATTR_KEY_TEMPLATE = "/{ns}/{vendor}/attrValues/{attribute}"
PRICE_KEY_TEMPLATE = "/{ns}/{vendor}/{region}/prices/{instance_type}"
ZONE_KEY_TEMPLATE = "/{ns}/{vendor}/{region}/zones/"
REGION_KEY_TEMPLATE = "/{ns}/{vendor}/regions/"


class CacheKeys:
    """Builds cache keys inside a namespace."""

    def __init__(self, namespace: str = config.CACHE_NAMESPACE):
        self.namespace = namespace.strip("/")

    def vms(self, vendor: str, region: str) -> str:
        return VM_KEY_TEMPLATE.format(ns=self.namespace, vendor=vendor, region=region)

    def attr_values(self, vendor: str, attribute: str) -> str:
        return ATTR_KEY_TEMPLATE.format(ns=self.namespace, vendor=vendor, attribute=attribute)

    def price(self, vendor: str, region: str, instance_type: str) -> str:
        return PRICE_KEY_TEMPLATE.format(
            ns=self.namespace, vendor=vendor, region=region, instance_type=instance_type
        )

    def zones(self, vendor: str, region: str) -> str:
        return ZONE_KEY_TEMPLATE.format(ns=self.namespace, vendor=vendor, region=region)

    def regions(self, vendor: str) -> str:
        return REGION_KEY_TEMPLATE.format(ns=self.namespace, vendor=vendor)

"""
Main FastAPI application bootstrap.
Wires vendor adapters, the cache store and the renewal loop, and includes the router.

Run with: uvicorn productinfo.main:create_app --factory
"""
import asyncio
from contextlib import asynccontextmanager
import logging
from typing import Dict, Optional

from fastapi import FastAPI

from productinfo.api.product_info import router as product_info_router
from productinfo.cache.keys import CacheKeys
from productinfo.cache.store import CacheStore, get_cache_store
from productinfo.core.config import config
from productinfo.services.product_info import ProductInfoService
from productinfo.services.renewal import RenewalManager
from productinfo.vendors.base import VendorAdapter


logger = logging.getLogger(__name__)


def build_adapters(providers=None) -> Dict[str, VendorAdapter]:
    """
    Instantiate the adapters of the configured providers.

    Args:
        providers: Provider names, defaults to config.PROVIDERS

    Returns:
        Provider name -> adapter
    """
    adapters: Dict[str, VendorAdapter] = {}
    for provider in providers or config.PROVIDERS:
        if provider == "azure":
            from productinfo.vendors.azure import AzureInfoer
            adapters[provider] = AzureInfoer()
        elif provider == "ec2":
            from productinfo.vendors.ec2 import Ec2Infoer
            adapters[provider] = Ec2Infoer()
        else:
            raise ValueError(f"Unknown provider: {provider}")
    return adapters


def create_app(
    adapters: Optional[Dict[str, VendorAdapter]] = None,
    store: Optional[CacheStore] = None,
    start_renewal: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        adapters: Vendor adapters, built from configuration when omitted
        store: Cache store, the global in-memory store when omitted
        start_renewal: Run the renewal loop for the lifetime of the app

    Returns:
        FastAPI application
    """
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if adapters is None:
        # Validate configuration only when adapters come from it
        try:
            config.validate()
        except ValueError as error:
            raise RuntimeError(f"Configuration error: {error}") from error
        adapters = build_adapters()

    store = store if store is not None else get_cache_store()
    keys = CacheKeys(config.CACHE_NAMESPACE)
    renewal_manager = RenewalManager(adapters, store, keys)
    product_info = ProductInfoService(adapters, store, keys)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop_event = asyncio.Event()
        renewal_task = None
        if start_renewal:
            renewal_task = asyncio.create_task(renewal_manager.run(stop_event), name="renewal-loop")
        try:
            yield
        finally:
            stop_event.set()
            if renewal_task is not None:
                await renewal_task

    app = FastAPI(
        title="Product Info",
        description="Cached compute instance shapes and prices of cloud providers",
        lifespan=lifespan,
    )
    app.state.product_info = product_info
    app.state.renewal_manager = renewal_manager
    app.include_router(product_info_router)

    logger.info(
        "product info configured for providers=%s, renewal_interval=%ss, cache_ttl=%ss",
        ",".join(adapters),
        renewal_manager.renewal_interval,
        renewal_manager.cache_ttl,
    )
    return app

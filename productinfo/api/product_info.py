"""
Read-only API endpoints over the product info cache.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from productinfo.core.exceptions import NotFound, UnsupportedOperation, VendorFetchFailure
from productinfo.services.product_info import ProductInfoService
from productinfo.services.renewal import RenewalManager


router = APIRouter(prefix="/api/v1", tags=["productinfo"])


class ProvidersResponse(BaseModel):
    """Response model for the provider list."""
    providers: List[str]


class Region(BaseModel):
    id: str
    name: str


class RegionsResponse(BaseModel):
    """Response model for the regions of a provider."""
    provider: str
    regions: List[Region]


class ZonesResponse(BaseModel):
    """Response model for the zones of a region."""
    provider: str
    region: str
    zones: List[str]


class AttributeValuesResponse(BaseModel):
    """Response model for the values of an attribute."""
    provider: str
    attribute: str
    values: List[float]


class PriceResponse(BaseModel):
    """Response model for a price query."""
    provider: str
    region: str
    instance_type: str
    on_demand_price: float
    avg_spot_price: float


class ProductsResponse(BaseModel):
    """Response model for the product details of a region."""
    provider: str
    region: str
    products: List[Dict[str, Any]]


def get_product_info(request: Request) -> ProductInfoService:
    return request.app.state.product_info


def get_renewal_manager(request: Request) -> Optional[RenewalManager]:
    return getattr(request.app.state, "renewal_manager", None)


def _not_found(error: NotFound) -> HTTPException:
    return HTTPException(status_code=404, detail=str(error))


@router.get("/providers", response_model=ProvidersResponse)
async def get_providers(service: ProductInfoService = Depends(get_product_info)):
    """List the providers whose product info is cached."""
    return ProvidersResponse(providers=service.get_providers())


@router.get("/providers/{provider}/regions", response_model=RegionsResponse)
async def get_regions(provider: str, service: ProductInfoService = Depends(get_product_info)):
    try:
        regions = service.get_regions(provider)
    except NotFound as error:
        raise _not_found(error)
    return RegionsResponse(
        provider=provider,
        regions=[Region(id=region_id, name=name) for region_id, name in sorted(regions.items())],
    )


@router.get("/providers/{provider}/regions/{region}/zones", response_model=ZonesResponse)
async def get_zones(provider: str, region: str, service: ProductInfoService = Depends(get_product_info)):
    try:
        zones = service.get_zones(provider, region)
    except NotFound as error:
        raise _not_found(error)
    return ZonesResponse(provider=provider, region=region, zones=zones)


@router.get("/providers/{provider}/regions/{region}/products", response_model=ProductsResponse)
async def get_products(provider: str, region: str, service: ProductInfoService = Depends(get_product_info)):
    """
    Vm shapes of a region joined with their prices.

    Returns 404 if the region has not been renewed yet.
    """
    try:
        details = service.get_product_details(provider, region)
    except NotFound as error:
        raise _not_found(error)
    return ProductsResponse(provider=provider, region=region, products=[d.to_dict() for d in details])


@router.get("/providers/{provider}/regions/{region}/prices/{instance_type}", response_model=PriceResponse)
def get_price(
    provider: str,
    region: str,
    instance_type: str,
    zones: List[str] = Query(default=[]),
    service: ProductInfoService = Depends(get_product_info),
):
    """
    On demand and zone averaged spot price of an instance type.

    Without a zones parameter the spot price is averaged over all zones of the region.
    """
    try:
        on_demand, avg_spot = service.get_price(provider, region, instance_type, zones or None)
    except NotFound as error:
        raise _not_found(error)
    return PriceResponse(
        provider=provider,
        region=region,
        instance_type=instance_type,
        on_demand_price=on_demand,
        avg_spot_price=avg_spot,
    )


@router.get("/providers/{provider}/regions/{region}/current-prices")
def get_current_prices(
    provider: str,
    region: str,
    service: ProductInfoService = Depends(get_product_info),
) -> Dict[str, Any]:
    """
    Current prices queried from the provider, bypassing the cache.

    Returns 400 for providers without short lived price info.
    """
    try:
        prices = service.get_current_prices(provider, region)
    except NotFound as error:
        raise _not_found(error)
    except UnsupportedOperation as error:
        raise HTTPException(status_code=400, detail=str(error))
    except VendorFetchFailure as error:
        raise HTTPException(status_code=502, detail=str(error))
    return {
        "provider": provider,
        "region": region,
        "prices": {instance_type: price.to_dict() for instance_type, price in sorted(prices.items())},
    }


@router.get("/providers/{provider}/attributes/{attribute}", response_model=AttributeValuesResponse)
async def get_attribute_values(provider: str, attribute: str, service: ProductInfoService = Depends(get_product_info)):
    try:
        values = service.get_attr_values(provider, attribute)
    except NotFound as error:
        raise _not_found(error)
    return AttributeValuesResponse(provider=provider, attribute=attribute, values=values)


@router.get("/providers/{provider}/status")
async def get_renewal_status(
    provider: str,
    manager: Optional[RenewalManager] = Depends(get_renewal_manager),
) -> Dict[str, Any]:
    """Renewal state of a provider."""
    if manager is None:
        raise HTTPException(status_code=503, detail="Renewal is not running")
    try:
        return manager.vendor_status(provider)
    except NotFound as error:
        raise _not_found(error)

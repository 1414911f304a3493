"""
Tests for the product info query service.
"""

import pytest

from productinfo.core.exceptions import NotFound, UnsupportedOperation, VendorFetchFailure
from productinfo.domain.models import AttrValue, Price, VmShape
from productinfo.services.product_info import ProductInfoService
from productinfo.tests.fakes import FakeAdapter
from productinfo.vendors.network import AzureNetworkMapper


TTL = 3600


@pytest.fixture
def service(store, keys):
    """Service over an azure-like and an ec2-like fake vendor."""
    adapters = {
        'azure': FakeAdapter('azure'),
        'ec2': FakeAdapter('ec2', short_lived=True),
    }
    return ProductInfoService(adapters, store, keys)


def put_price(store, keys, vendor, region, instance_type, price):
    store.set(keys.price(vendor, region, instance_type), price, TTL)


def test_spot_average_single_zone(service, store, keys):
    """A region-level spot price averages to itself."""
    put_price(store, keys, 'azure', 'westeurope', 'Standard_D2',
              Price(on_demand_price=0.146, spot_price={'westeurope': 0.029}))

    assert service.get_price('azure', 'westeurope', 'Standard_D2', ['westeurope']) == (0.146, 0.029)


def test_spot_average_skips_zones_without_data(service, store, keys):
    """Zones without spot data are left out of the average."""
    put_price(store, keys, 'ec2', 'eu-west-1', 'm5.large',
              Price(on_demand_price=0.107, spot_price={'eu-west-1a': 0.02, 'eu-west-1b': 0.04}))

    on_demand, avg_spot = service.get_price(
        'ec2', 'eu-west-1', 'm5.large', ['eu-west-1a', 'eu-west-1b', 'eu-west-1c']
    )

    assert on_demand == 0.107
    assert avg_spot == pytest.approx(0.03)


def test_spot_average_without_spot_data_is_zero(service, store, keys):
    put_price(store, keys, 'azure', 'westeurope', 'Standard_D2', Price(on_demand_price=0.146))

    assert service.get_price('azure', 'westeurope', 'Standard_D2', ['westeurope']) == (0.146, 0.0)
    assert service.get_price('azure', 'westeurope', 'Standard_D2', []) == (0.146, 0.0)


def test_price_not_found(service):
    with pytest.raises(NotFound):
        service.get_price('azure', 'westeurope', 'Standard_Z9', ['westeurope'])


def test_unknown_provider(service):
    with pytest.raises(NotFound):
        service.get_price('gce', 'europe-west1', 'n1-standard-1', [])
    with pytest.raises(NotFound):
        service.get_regions('gce')


def test_short_lived_vendor_falls_back_to_current_prices(service):
    """Uncached prices of short lived vendors are queried on the fly."""
    service.adapters['ec2'].prices = {'eu-west-1': {'m5.large': Price(on_demand_price=0.107)}}

    assert service.get_price('ec2', 'eu-west-1', 'm5.large', ['eu-west-1a']) == (0.107, 0.0)


def test_short_lived_fallback_failure_is_not_found(service):
    service.adapters['ec2'].fail = True
    with pytest.raises(NotFound):
        service.get_price('ec2', 'eu-west-1', 'm5.large', ['eu-west-1a'])


def test_current_prices_unsupported(service):
    with pytest.raises(UnsupportedOperation):
        service.get_current_prices('azure', 'westeurope')


def test_current_prices_propagate_vendor_failure(service):
    service.adapters['ec2'].fail = True
    with pytest.raises(VendorFetchFailure):
        service.get_current_prices('ec2', 'westeurope')


def test_has_short_lived_price_info(service):
    assert service.has_short_lived_price_info('ec2') is True
    assert service.has_short_lived_price_info('azure') is False


def test_attributes_and_values(service, store, keys):
    store.set(keys.attr_values('azure', 'memory'), [AttrValue('16384', 16.0), AttrValue('3584', 3.5)], TTL)

    assert service.get_attributes() == ['memory', 'cpu']
    assert service.get_attr_values('azure', 'memory') == [3.5, 16.0]
    with pytest.raises(NotFound):
        service.get_attr_values('azure', 'cpu')
    with pytest.raises(NotFound):
        service.get_attr_values('azure', 'gpu')


def test_regions_zones_and_vms(service, store, keys):
    store.set(keys.regions('azure'), {'westeurope': 'West Europe'}, TTL)
    store.set(keys.zones('azure', 'westeurope'), ['westeurope'], TTL)
    store.set(keys.vms('azure', 'westeurope'), [VmShape('Standard_D2', 2, 7)], TTL)

    assert service.get_providers() == ['azure', 'ec2']
    assert service.get_regions('azure') == {'westeurope': 'West Europe'}
    assert service.get_zones('azure', 'westeurope') == ['westeurope']
    assert service.get_vms('azure', 'westeurope')[0].type == 'Standard_D2'
    with pytest.raises(NotFound):
        service.get_zones('azure', 'eastus2')


def test_product_details_join_prices(service, store, keys):
    store.set(keys.vms('azure', 'westeurope'), [
        VmShape('Standard_B2s', 2, 4, network_perf_category='low'),
        VmShape('Standard_D2', 2, 7, network_perf_category='low'),
    ], TTL)
    put_price(store, keys, 'azure', 'westeurope', 'Standard_D2',
              Price(on_demand_price=0.146, spot_price={'westeurope': 0.029}))

    burst, regular = service.get_product_details('azure', 'westeurope')

    assert burst.burst is True
    assert burst.on_demand_price == 0.0
    assert regular.burst is False
    assert regular.to_dict()['spotPrice'] == [{'zone': 'westeurope', 'price': 0.029}]


def test_network_perf_mapper(service):
    assert isinstance(service.get_network_perf_mapper('azure'), AzureNetworkMapper)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_repeated_misses_reuse_recent_current_prices(store, keys):
    """Unknown instance types don't download a region's prices on every query."""
    clock = FakeClock()
    adapter = FakeAdapter('ec2', short_lived=True)
    adapter.prices = {'eu-west-1': {'m5.large': Price(on_demand_price=0.107)}}
    service = ProductInfoService({'ec2': adapter}, store, keys, current_prices_ttl=60, clock=clock)

    for _ in range(3):
        with pytest.raises(NotFound):
            service.get_price('ec2', 'eu-west-1', 'x9.huge', ['eu-west-1a'])
    assert service.get_price('ec2', 'eu-west-1', 'm5.large', ['eu-west-1a']) == (0.107, 0.0)
    assert adapter.current_price_fetches == 1

    clock.now += 60
    with pytest.raises(NotFound):
        service.get_price('ec2', 'eu-west-1', 'x9.huge', ['eu-west-1a'])
    assert adapter.current_price_fetches == 2


def test_failed_current_prices_are_not_reused(store, keys):
    adapter = FakeAdapter('ec2', short_lived=True)
    adapter.prices = {'eu-west-1': {'m5.large': Price(on_demand_price=0.107)}}
    service = ProductInfoService({'ec2': adapter}, store, keys, current_prices_ttl=60)

    adapter.fail = True
    with pytest.raises(NotFound):
        service.get_price('ec2', 'eu-west-1', 'm5.large', ['eu-west-1a'])

    adapter.fail = False
    assert service.get_price('ec2', 'eu-west-1', 'm5.large', ['eu-west-1a']) == (0.107, 0.0)


def test_default_zones_come_from_the_cache(service, store, keys):
    store.set(keys.zones('ec2', 'eu-west-1'), ['eu-west-1a'], TTL)
    put_price(store, keys, 'ec2', 'eu-west-1', 'm5.large',
              Price(on_demand_price=0.107, spot_price={'eu-west-1a': 0.02, 'eu-west-1b': 0.04}))

    assert service.get_price('ec2', 'eu-west-1', 'm5.large') == (0.107, 0.02)


def test_default_zones_fall_back_to_price_zones(service, store, keys):
    """Without cached zones the spot price is averaged over the price's own zones."""
    put_price(store, keys, 'ec2', 'eu-west-1', 'm5.large',
              Price(on_demand_price=0.107, spot_price={'eu-west-1a': 0.02, 'eu-west-1b': 0.04}))

    on_demand, avg_spot = service.get_price('ec2', 'eu-west-1', 'm5.large')

    assert on_demand == 0.107
    assert avg_spot == pytest.approx(0.03)

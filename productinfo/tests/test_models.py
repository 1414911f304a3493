"""
Tests for domain models and network performance mappers.
"""

import pytest

from productinfo.domain.models import Price, ProductDetails, VmShape
from productinfo.vendors.network import AzureNetworkMapper, new_ec2_network_mapper


def test_negative_prices_rejected():
    with pytest.raises(ValueError):
        Price(on_demand_price=-0.1)
    with pytest.raises(ValueError):
        Price(spot_price={'eu-west-1a': -1.0})


def test_price_copy_is_independent():
    price = Price(on_demand_price=0.1, spot_price={'westeurope': 0.02})
    copy = price.copy()
    copy.spot_price['westeurope'] = 0.5

    assert price.spot_price['westeurope'] == 0.02


def test_burst_families():
    assert VmShape('t3.micro', 2, 1).is_burst()
    assert VmShape('Standard_B2s', 2, 4).is_burst()
    assert not VmShape('m5.large', 2, 8).is_burst()
    assert not VmShape('Standard_D2', 2, 7).is_burst()


def test_product_details_without_price():
    details = ProductDetails.from_vm(VmShape('Standard_D2', 2, 7), None)
    assert details.on_demand_price == 0.0
    assert details.spot_price == []


def test_product_details_sorts_zones():
    price = Price(on_demand_price=0.1, spot_price={'eu-west-1b': 0.04, 'eu-west-1a': 0.03})
    details = ProductDetails.from_vm(VmShape('m5.large', 2, 8), price)
    assert [zp.zone for zp in details.spot_price] == ['eu-west-1a', 'eu-west-1b']


def test_ec2_network_mapper():
    mapper = new_ec2_network_mapper()
    assert mapper.map_network_perf(VmShape('t3.nano', 2, 0.5, network_perf='Very Low')) == 'low'
    assert mapper.map_network_perf(VmShape('m4.large', 2, 8, network_perf='Moderate')) == 'medium'
    assert mapper.map_network_perf(VmShape('c5.4xlarge', 16, 32, network_perf='Up to 10 Gigabit')) == 'high'
    assert mapper.map_network_perf(VmShape('c5n.18xlarge', 72, 192, network_perf='100 Gigabit')) == 'extra'


def test_ec2_network_mapper_unknown_label():
    with pytest.raises(ValueError):
        new_ec2_network_mapper().map_network_perf(VmShape('x9.huge', 1, 1, network_perf='Warp Speed'))


@pytest.mark.parametrize('cpus,category', [(1, 'low'), (2, 'low'), (4, 'medium'), (32, 'high'), (64, 'extra')])
def test_azure_network_mapper(cpus, category):
    assert AzureNetworkMapper().map_network_perf(VmShape('Standard_X', cpus, 1)) == category

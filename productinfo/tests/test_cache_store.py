"""
Tests for the in-memory cache store and cache keys.
"""

import pytest

from productinfo.cache.keys import CacheKeys
from productinfo.cache.store import InMemoryCacheStore, get_cache_store


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clocked_store(clock):
    """Store driven by the fake clock."""
    return InMemoryCacheStore(cleanup_interval=10, clock=clock)


def test_get_missing_key(clocked_store):
    assert clocked_store.get('/missing') == (None, False)


def test_value_readable_before_ttl(clocked_store, clock):
    clocked_store.set('/key', 'value', ttl=60)
    clock.now += 59
    assert clocked_store.get('/key') == ('value', True)


def test_value_expires_after_ttl(clocked_store, clock):
    clocked_store.set('/key', 'value', ttl=60)
    clock.now += 60
    assert clocked_store.get('/key') == (None, False)


def test_set_replaces_value_and_ttl(clocked_store, clock):
    clocked_store.set('/key', 'old', ttl=10)
    clock.now += 5
    clocked_store.set('/key', 'new', ttl=10)
    clock.now += 8
    assert clocked_store.get('/key') == ('new', True)


def test_set_many_commits_all_entries(clocked_store, clock):
    clocked_store.set_many([('/a', 1), ('/b', 2)], ttl=30)
    assert clocked_store.get('/a') == (1, True)
    assert clocked_store.get('/b') == (2, True)

    clock.now += 30
    assert clocked_store.get('/a') == (None, False)
    assert clocked_store.get('/b') == (None, False)


def test_set_many_failing_iterator_commits_nothing(clocked_store):
    def items():
        yield '/a', 1
        raise RuntimeError('vendor went away')

    with pytest.raises(RuntimeError):
        clocked_store.set_many(items(), ttl=30)
    assert clocked_store.get('/a') == (None, False)


def test_expired_entries_are_swept(clocked_store, clock):
    clocked_store.set('/a', 1, ttl=5)
    clocked_store.set('/b', 2, ttl=100)
    clock.now += 20

    clocked_store.get('/b')

    assert clocked_store.get_stats() == {'total_entries': 1}


def test_global_store_is_singleton():
    assert get_cache_store() is get_cache_store()


def test_cache_key_layout():
    """Keys follow the layout readers depend on."""
    keys = CacheKeys('banzaicloud.com/recommender')
    assert keys.vms('azure', 'westeurope') == '/banzaicloud.com/recommender/azure/westeurope/vms'
    assert keys.attr_values('azure', 'cpu') == '/banzaicloud.com/recommender/azure/attrValues/cpu'
    assert keys.price('ec2', 'eu-west-1', 'm5.large') == '/banzaicloud.com/recommender/ec2/eu-west-1/prices/m5.large'
    assert keys.zones('azure', 'westeurope') == '/banzaicloud.com/recommender/azure/westeurope/zones/'
    assert keys.regions('azure') == '/banzaicloud.com/recommender/azure/regions/'


def test_cache_keys_strip_namespace_slashes():
    assert CacheKeys('/ns/').regions('azure') == '/ns/azure/regions/'

"""
Shared pytest fixtures for product info tests.
"""

import sys
import os
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# Set minimal environment variables for testing
os.environ.setdefault('PRODUCTINFO_PROVIDERS', 'azure')
os.environ.setdefault('AZURE_SUBSCRIPTION_ID', 'test-subscription')
os.environ.setdefault('AZURE_TENANT_ID', 'test-tenant')
os.environ.setdefault('AZURE_CLIENT_ID', 'test-client')
os.environ.setdefault('AZURE_CLIENT_SECRET', 'test-secret')

import pytest

from productinfo.cache.keys import CacheKeys
from productinfo.cache.store import InMemoryCacheStore
from productinfo.tests.fakes import FakeAdapter


@pytest.fixture
def store():
    """Fresh cache store."""
    return InMemoryCacheStore()


@pytest.fixture
def keys():
    """Cache keys in a test namespace."""
    return CacheKeys('test.ns/recommender')


@pytest.fixture
def fake_adapter():
    """Fake vendor adapter without short lived prices."""
    return FakeAdapter()


@pytest.fixture
def known_regions():
    """Azure style region ids with display names."""
    return {
        'eastus': 'East US',
        'eastus2': 'East US 2',
        'westeurope': 'West Europe',
        'northeurope': 'North Europe',
        'southeastasia': 'Southeast Asia',
        'japaneast': 'Japan East',
        'uksouth': 'UK South',
    }

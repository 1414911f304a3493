"""
Tests for billing region label resolution.
"""

import pytest

from productinfo.core.exceptions import RegionNotFound
from productinfo.normalization.regions import DEFAULT_REGION_CODES, RegionResolver


@pytest.fixture
def resolver():
    """Resolver with the default region code table."""
    return RegionResolver()


def test_candidates_with_numeric_suffix(resolver):
    """Numeric last token stays at the end of both candidates."""
    assert resolver.candidates('US East 2') == ['useast2', 'eastus2']


def test_candidates_without_numeric_suffix(resolver):
    """Geography is tried as prefix first, then as suffix."""
    assert resolver.candidates('EU West') == ['europewest', 'westeurope']


def test_candidates_single_token(resolver):
    """A lone prefix yields the geography itself."""
    assert resolver.candidates('UK') == ['uk', 'uk']


def test_candidates_unknown_prefix_is_empty(resolver):
    """Unknown prefixes and empty labels have no candidates."""
    assert resolver.candidates('Mars North') == []
    assert resolver.candidates('') == []


def test_resolve_prefers_known_candidate(resolver, known_regions):
    """The first candidate present in the known regions wins."""
    assert resolver.resolve('US East 2', known_regions) == 'eastus2'
    assert resolver.resolve('EU West', known_regions) == 'westeurope'
    assert resolver.resolve('EU North', known_regions) == 'northeurope'
    assert resolver.resolve('JA East', known_regions) == 'japaneast'
    assert resolver.resolve('AP Southeast', known_regions) == 'southeastasia'
    assert resolver.resolve('UK South', known_regions) == 'uksouth'


def test_resolve_is_case_insensitive(resolver, known_regions):
    """Labels are lower-cased before lookup."""
    assert resolver.resolve('us EAST', known_regions) == 'eastus'


def test_resolve_unknown_region_raises(resolver, known_regions):
    """Labels without a known candidate raise RegionNotFound."""
    with pytest.raises(RegionNotFound) as excinfo:
        resolver.resolve('BR South', known_regions)
    assert excinfo.value.label == 'BR South'

    with pytest.raises(RegionNotFound):
        resolver.resolve('Mars North', known_regions)


def test_region_codes_are_immutable():
    """The code table cannot be modified after construction."""
    codes = {'xx': 'example'}
    resolver = RegionResolver(codes)
    codes['yy'] = 'other'

    assert 'yy' not in resolver.region_codes
    with pytest.raises(TypeError):
        resolver.region_codes['zz'] = 'nope'
    with pytest.raises(TypeError):
        DEFAULT_REGION_CODES['zz'] = 'nope'


def test_custom_region_codes():
    """A custom table drives the geography part."""
    resolver = RegionResolver({'de': 'germany'})
    assert resolver.resolve('DE West Central', {'germanywestcentral': 'Germany West Central'}) == 'germanywestcentral'

"""
Unit tests for the provider registry and version catalog.
"""
import pytest
from fleet.errors import UnsupportedKindError
from fleet.MODELS.service_spec import ResourceKind
from fleet.PROVIDERS.catalog import DEFAULT_CATALOG, VersionTable
from fleet.PROVIDERS.cache_provider import CacheProvider
from fleet.PROVIDERS.registry import ProviderRegistry, default_registry


def test_default_registry_covers_every_kind():
    assert set(default_registry().kinds()) == set(ResourceKind)


def test_missing_provider():
    registry = ProviderRegistry()
    with pytest.raises(UnsupportedKindError) as exc:
        registry.provider_for(ResourceKind.CACHE, service="api")
    assert exc.value.kind == "cache"


def test_register_replaces():
    registry = default_registry()
    custom = CacheProvider([VersionTable(subtype="redis", default="6.2", images={"6.2": "redis:6.2"})])
    registry.register(custom)
    assert registry.provider_for(ResourceKind.CACHE) is custom
    assert registry.describe()["cache"] == {"redis": ("6.2",)}


def test_catalog_is_immutable():
    with pytest.raises(TypeError):
        DEFAULT_CATALOG[ResourceKind.CACHE] = ()
    table = DEFAULT_CATALOG[ResourceKind.CACHE][0]
    with pytest.raises(TypeError):
        table.images["8.0"] = "redis:8.0"


def test_table_default_must_be_supported():
    with pytest.raises(ValueError):
        VersionTable(subtype="redis", default="9.9", images={"7.2": "redis:7.2"})

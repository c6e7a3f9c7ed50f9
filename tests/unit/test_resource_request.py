"""
Unit tests for resource request parsing.
"""
import pytest
from fleet.errors import UnsupportedKindError, ValidationError
from fleet.MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec


class TestResourceKind:
    """Tests for ResourceKind.parse."""

    def test_case_insensitive(self):
        assert ResourceKind.parse("Cache") == ResourceKind.CACHE

    def test_aliases(self):
        assert ResourceKind.parse("compat") == ResourceKind.STORAGE
        assert ResourceKind.parse("email") == ResourceKind.MAIL

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedKindError) as exc:
            ResourceKind.parse("queue", service="api")
        assert exc.value.kind == "queue"
        assert "service 'api'" in str(exc.value)


class TestResourceRequest:
    """Tests for ResourceRequest.parse."""

    def test_subtype_and_version(self):
        request = ResourceRequest.parse("cache", "redis:7.2")
        assert request.kind == ResourceKind.CACHE
        assert request.subtype == "redis"
        assert request.version == "7.2"
        assert request.raw == "redis:7.2"

    def test_missing_version_means_default(self):
        request = ResourceRequest.parse(ResourceKind.CACHE, "redis")
        assert request.version is None

    def test_subtype_is_lowercased(self):
        assert ResourceRequest.parse("database", "Postgres:15").subtype == "postgres"

    def test_overrides_are_strings(self):
        request = ResourceRequest.parse("cache", "memcached", {"max_memory": 128, "password": None})
        assert request.overrides == {"max_memory": "128"}
        assert request.override("max_memory") == "128"
        assert request.override("password", "none") == "none"

    @pytest.mark.parametrize("value", ["", "   ", ":7.2", "redis:", "redis:7:2"])
    def test_malformed(self, value):
        with pytest.raises(ValidationError) as exc:
            ResourceRequest.parse("cache", value, service="api")
        assert "service 'api'" in str(exc.value)

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedKindError):
            ResourceRequest.parse("queue", "rabbitmq:3")

    def test_requests_are_immutable(self):
        request = ResourceRequest.parse("cache", "redis:7.2")
        with pytest.raises(Exception):
            request.version = "7.0"


def test_service_resource_lookup():
    spec = ServiceSpec(
        name="api",
        image="api:latest",
        resources=[ResourceRequest.parse("cache", "redis"), ResourceRequest.parse("database", "mysql")],
    )
    assert spec.resource(ResourceKind.DATABASE).subtype == "mysql"
    assert spec.resource(ResourceKind.SEARCH) is None

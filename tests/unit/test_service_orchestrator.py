"""
Unit tests for document generation, including the concrete scenarios and
the properties every generated document must satisfy.
"""
import pytest
from fleet.errors import FleetError, GenerationError, GraphError, UnsupportedKindError, ValidationError
from fleet.MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec
from fleet.MODELS.orchestration_config import GlobalSettings
from fleet.MODELS.orchestration_document import EntryRole
from fleet.MANAGERS.service_orchestrator import ComposeOrchestrator, generate, generate_or_raise
from fleet.CONVERTERS.to_compose import ComposeConverter
from fleet.PROVIDERS.catalog import DEFAULT_CATALOG
from fleet.PROVIDERS.registry import default_registry


def service(name, **kwargs):
    resources = []
    for kind in ("database", "cache", "search", "storage", "mail", "runtime"):
        if kind in kwargs:
            resources.append(ResourceRequest.parse(kind, kwargs.pop(kind)))
    kwargs.setdefault("image", f"{name}:latest")
    return ServiceSpec(name=name, resources=resources, **kwargs)


class TestScenarios:
    """The documented concrete scenarios."""

    def test_shared_redis(self):
        document = generate_or_raise([service("api", cache="redis:7.2"), service("worker", cache="redis:7.2")])
        assert list(document.services) == ["api", "worker", "redis-72"]
        assert document.services["api"].depends_on == ["redis-72"]
        assert document.services["worker"].depends_on == ["redis-72"]
        assert list(document.volumes) == ["redis-72-data"]

    def test_version_isolation(self):
        document = generate_or_raise([service("api", cache="redis:7.2"), service("worker", cache="redis:7.0")])
        assert document.entries_with_role(EntryRole.SHARED) == ["redis-72", "redis-70"]
        assert list(document.volumes) == ["redis-72-data", "redis-70-data"]
        assert document.services["redis-70"].volumes[0].to_compose() == "redis-70-data:/data"

    def test_unknown_version(self):
        document, errors = generate([service("api", cache="cache:unknownversion")])
        assert document is None
        assert len(errors) == 1
        assert isinstance(errors[0], ValidationError)
        assert "unknownversion" in str(errors[0])


class TestProperties:
    """Properties that hold for every input."""

    def test_idempotence(self):
        specs = [
            service("api", database="postgres:15", cache="redis", domain="api.test", ssl=True),
            service("worker", database="postgres:15", mail="mailpit", depends_on=["api"]),
            service("shop", runtime="php:8.2", folder="shop", port=8080),
        ]
        first = ComposeConverter(generate_or_raise(specs)).to_yaml()
        second = ComposeConverter(generate_or_raise(specs)).to_yaml()
        assert first == second

    @pytest.mark.parametrize("count", [1, 2, 5])
    def test_sharing(self, count):
        specs = [service(f"svc{i}", database="mysql:8.0") for i in range(count)]
        document = generate_or_raise(specs)
        assert document.entries_with_role(EntryRole.SHARED) == ["mysql-80"]
        assert len([e for e in document.edges if e.target == "mysql-80"]) == count

    def test_statefulness(self):
        document = generate_or_raise([service("api", cache="memcached:1.6.23", database="mariadb")])
        assert document.services["memcached-1623"].volumes == []
        assert [v.source for v in document.services["mariadb-1011"].volumes] == ["mariadb-1011-data"]
        assert list(document.volumes) == ["mariadb-1011-data"]

    def test_no_dependencies(self):
        document = generate_or_raise([service("web", image="nginx:alpine", port=8080)])
        assert list(document.services) == ["web"]
        web = document.services["web"]
        assert web.depends_on == []
        assert web.ports == ["8080:8080"]
        assert document.edges == []
        assert document.volumes == {}

    def test_default_version(self):
        document = generate_or_raise([service("api", cache="redis")])
        assert "redis-72" in document.services

    def test_single_network(self):
        document = generate_or_raise([service("api", cache="redis", storage="minio")])
        assert list(document.networks) == ["fleet-network"]
        for entry in document.services.values():
            assert entry.networks == ["fleet-network"]

    def test_inputs_not_mutated(self):
        specs = [service("api", cache="redis", port=3000)]
        before = [s.model_dump() for s in specs]
        generate_or_raise(specs, GlobalSettings(auto_domain_suffix="test"))
        assert [s.model_dump() for s in specs] == before

    def test_long_dependency_chain(self):
        specs = [service("s0")] + [service(f"s{i}", depends_on=[f"s{i - 1}"]) for i in range(1, 1200)]
        document = generate_or_raise(specs)
        assert len(document.services) == 1200
        assert document.services["s1199"].depends_on == ["s1198"]


class TestSidecars:
    """Reverse proxy and runtime sidecars."""

    def test_proxy_only_when_needed(self):
        document = generate_or_raise([service("api", port=3000)])
        assert "nginx-proxy" not in document.services

    def test_domain_service(self):
        document = generate_or_raise([service("api", port=3000, domain="api.test", cache="redis")])
        api = document.services["api"]
        assert api.ports == []
        assert api.depends_on == ["redis-72", "nginx-proxy"]
        assert list(document.services) == ["api", "redis-72", "nginx-proxy"]

        proxy = document.services["nginx-proxy"]
        assert proxy.image == "nginx:alpine"
        assert proxy.ports == ["80:80"]
        assert proxy.volumes[0].to_compose() == "./.fleet/nginx.conf:/etc/nginx/nginx.conf:ro"
        assert proxy.depends_on == []

        route = document.proxy_routes[0]
        assert (route.domain, route.service, route.port, route.ssl) == ("api.test", "api", 3000, False)

    def test_ssl_adds_https_port(self):
        document = generate_or_raise([service("api", ports=["8443:443"], domain="api.test", ssl=True)])
        assert document.services["nginx-proxy"].ports == ["80:80", "443:443"]
        assert document.proxy_routes[0].port == 443

    def test_runtime_sidecars_follow_shared_entries(self):
        document = generate_or_raise([
            service("shop", runtime="php", folder="shop", database="mysql", domain="shop.test"),
        ])
        assert list(document.services) == ["shop", "mysql-80", "shop-php", "nginx-proxy"]
        assert document.services["shop"].environment["PHP_FPM_HOST"] == "shop-php"

    def test_auto_domain(self):
        document = generate_or_raise([service("api", port=3000), service("worker")],
                                     GlobalSettings(auto_domain_suffix="test"))
        assert [r.domain for r in document.proxy_routes] == ["api.test"]


class TestValidation:
    """Errors are collected before anything is materialized."""

    def test_errors_accumulate(self):
        specs = [
            service("api", cache="redis:9.9"),
            service("api", database="oracle"),
            ServiceSpec(name="bad name!"),
        ]
        document, errors = generate(specs)
        assert document is None
        messages = "\n".join(str(e) for e in errors)
        assert "redis version '9.9'" in messages
        assert "duplicate service name 'api'" in messages
        assert "oracle" in messages
        assert "invalid service name" in messages
        assert "either image or build" in messages

    def test_one_request_per_kind(self):
        spec = ServiceSpec(name="api", image="api", resources=[
            ResourceRequest.parse("cache", "redis"), ResourceRequest.parse("cache", "memcached")])
        _, errors = generate([spec])
        assert "more than one cache request" in str(errors[0])

    def test_unknown_dependency(self):
        _, errors = generate([service("api", depends_on=["ghost"])])
        assert isinstance(errors[0], GraphError)
        assert errors[0].target == "ghost"

    def test_cycle(self):
        _, errors = generate([service("a", depends_on=["b"]), service("b", depends_on=["a"])])
        assert isinstance(errors[0], GraphError)
        assert errors[0].cycle == ["a", "b", "a"]

    def test_reserved_subnet(self):
        _, errors = generate([service("api")], GlobalSettings(subnet="172.29.1.0/24"))
        assert "overlaps reserved block" in str(errors[0])

    def test_invalid_subnet(self):
        _, errors = generate([service("api")], GlobalSettings(subnet="not-a-subnet"))
        assert "invalid subnet" in str(errors[0])

    def test_name_collides_with_entry(self):
        _, errors = generate([service("redis-72", image="redis"), service("api", cache="redis")])
        assert "collides" in str(errors[0])

    def test_proxy_name_reserved(self):
        _, errors = generate([service("nginx-proxy")])
        assert "reserved" in str(errors[0])

    def test_missing_provider(self):
        catalog = {kind: tables for kind, tables in DEFAULT_CATALOG.items() if kind != ResourceKind.SEARCH}
        orchestrator = ComposeOrchestrator(registry=default_registry(catalog))
        _, errors = orchestrator.generate([service("api", search="meilisearch")])
        assert isinstance(errors[0], UnsupportedKindError)

    def test_generate_or_raise(self):
        with pytest.raises(GenerationError) as exc:
            generate_or_raise([service("api", cache="redis:0.1"), service("web", database="db2")])
        assert len(exc.value.errors) == 2
        assert all(isinstance(e, FleetError) for e in exc.value.errors)

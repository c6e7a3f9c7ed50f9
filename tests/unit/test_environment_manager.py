"""
Unit tests for environment injection.
"""
from fleet.MODELS.service_spec import ResourceRequest, ServiceSpec
from fleet.MODELS.orchestration_config import ConflictPolicy
from fleet.MANAGERS.environment_manager import EnvironmentManager
from fleet.MANAGERS.shared_resource_manager import SharedResourceManager
from fleet.PROVIDERS.registry import default_registry


def inject(specs, policy=ConflictPolicy.LEGACY):
    registry = default_registry()
    resources = SharedResourceManager(registry, policy)
    resources.deduplicate(specs)
    entries = {e.name: e for e in resources.entries}
    by_name = {s.name: s for s in specs}
    manager = EnvironmentManager(registry, policy)
    return {s.name: manager.get_merged_environment(s, resources.bindings[s.name], entries, by_name)
            for s in specs}


def test_explicit_environment_wins():
    spec = ServiceSpec(name="api", image="api", environment={"REDIS_HOST": "external", "APP": "1"},
                       resources=[ResourceRequest.parse("cache", "redis")])
    env = inject([spec])["api"]
    assert env["REDIS_HOST"] == "external"
    assert env["REDIS_PORT"] == "6379"
    assert env["APP"] == "1"


def test_later_provider_wins():
    spec = ServiceSpec(name="api", image="api", resources=[
        ResourceRequest.parse("cache", "redis"),
        ResourceRequest.parse("cache", "memcached"),
    ])
    env = inject([spec])["api"]
    assert env["CACHE_DRIVER"] == "memcached"


def test_keys_are_sorted():
    spec = ServiceSpec(name="api", image="api", environment={"ZZZ": "1"},
                       resources=[ResourceRequest.parse("database", "postgres")])
    env = inject([spec])["api"]
    assert list(env) == sorted(env)


def test_no_dependencies():
    assert inject([ServiceSpec(name="web", image="nginx")]) == {"web": {}}


def test_first_writer_policy_uses_origin_request():
    specs = [
        ServiceSpec(name="api", image="api", resources=[
            ResourceRequest.parse("database", "postgres", {"password": "first"})]),
        ServiceSpec(name="worker", image="worker", resources=[
            ResourceRequest.parse("database", "postgres", {"password": "second"})]),
    ]
    env = inject(specs, ConflictPolicy.FIRST_WRITER)
    assert env["worker"]["DB_PASSWORD"] == "first"
    assert env["worker"]["DB_DATABASE"] == "api"

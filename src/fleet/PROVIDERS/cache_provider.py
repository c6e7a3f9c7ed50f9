"""
Cache provider: shared Redis and Memcached servers.
"""
from typing import Dict

from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec
from ..MODELS.orchestration_document import SharedResourceEntry
from .base import ResourceProvider

REDIS_PORT = 6379
MEMCACHED_PORT = 11211


class CacheProvider(ResourceProvider):
    """
    Redis entries persist to a data volume; Memcached entries are memory only.
    """
    kind = ResourceKind.CACHE
    override_fields = ("password", "max_memory")
    subtype_aliases = {"memcache": "memcached"}

    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        settings = {"max_memory": request.override("max_memory")}
        if self.resolve_subtype(request.subtype) == "redis":
            settings["password"] = request.override("password")
        return settings

    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        if subtype == "redis":
            return self._configure_redis(name, settings)
        return self._configure_memcached(settings)

    def _configure_redis(self, name: str, settings: Dict[str, str]) -> dict:
        password = settings["password"]
        command = "redis-server --appendonly yes"
        if password:
            command = f"redis-server --requirepass {password} --appendonly yes"
        if settings["max_memory"]:
            command += f" --maxmemory {settings['max_memory']} --maxmemory-policy allkeys-lru"

        if password:
            check = self.health_check("CMD", "redis-cli", "-a", password, "ping")
        else:
            check = self.health_check("CMD", "redis-cli", "ping")

        return {
            "command": command,
            "volumes": [self.data_volume(name, "/data")],
            "health_check": check,
        }

    def _configure_memcached(self, settings: Dict[str, str]) -> dict:
        # memcached takes megabytes as a bare integer
        memory = settings["max_memory"].rstrip("mM") or "64"
        return {
            "command": f"memcached -m {memory} -c 1024",
            "health_check": self.health_check(
                "CMD-SHELL", f"echo 'stats' | nc localhost {MEMCACHED_PORT} | grep -q 'STAT'"),
        }

    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        host = entry.name
        if entry.key.subtype == "memcached":
            return {
                "MEMCACHED_HOST": host,
                "MEMCACHED_PORT": str(MEMCACHED_PORT),
                "MEMCACHED_URL": f"{host}:{MEMCACHED_PORT}",
                "CACHE_DRIVER": "memcached",
                "SESSION_DRIVER": "memcached",
            }

        password = self.entry_settings(request, consumer)["password"]
        env = {
            "REDIS_HOST": host,
            "REDIS_PORT": str(REDIS_PORT),
        }
        if password:
            env["REDIS_PASSWORD"] = password
            env["REDIS_URL"] = f"redis://:{password}@{host}:{REDIS_PORT}/0"
        else:
            env["REDIS_URL"] = f"redis://{host}:{REDIS_PORT}/0"
        env["CACHE_DRIVER"] = "redis"
        env["SESSION_DRIVER"] = "redis"
        env["QUEUE_CONNECTION"] = "redis"
        return env

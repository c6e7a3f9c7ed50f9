"""
Runtime provider: per-service PHP-FPM and Node.js sidecar containers.
"""
from typing import Dict

from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec, VolumeMount, VolumeType
from ..MODELS.orchestration_document import EntryRole, SharedResourceEntry
from .base import ResourceProvider

PHP_FPM_PORT = 9000
NODE_PORT = 3000

DOCUMENT_ROOTS = {
    "php": "/var/www/html",
    "node": "/app",
}


class RuntimeProvider(ResourceProvider):
    """
    Runtimes are never shared: each consumer gets its own ``{service}-{runtime}``
    sidecar mounting the consumer's folder.
    """
    kind = ResourceKind.RUNTIME
    role = EntryRole.SIDECAR
    override_fields = ("command",)
    subtype_aliases = {"nodejs": "node", "php-fpm": "php"}

    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        if self.resolve_subtype(request.subtype) == "node":
            return {"command": request.override("command", "npm start")}
        return {}

    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        root = DOCUMENT_ROOTS[subtype]
        volumes = []
        if consumer.folder:
            volumes.append(VolumeMount(source=f"../{consumer.folder}", target=root, type=VolumeType.BIND))

        if subtype == "php":
            environment = {
                "PHP_FPM_USER": "www-data",
                "PHP_FPM_GROUP": "www-data",
            }
            # The sidecar runs the consumer's code, so it sees the consumer's variables
            environment.update(consumer.environment)
            return {
                "environment": environment,
                "volumes": volumes,
                "health_check": self.health_check("CMD-SHELL", "php-fpm-healthcheck || exit 1", timeout="5s"),
            }

        environment = {
            "NODE_ENV": "development",
            "PORT": str(NODE_PORT),
        }
        environment.update(consumer.environment)
        return {
            "command": settings["command"],
            "working_dir": root,
            "environment": environment,
            "volumes": volumes,
            "health_check": self.health_check(
                "CMD-SHELL", f"wget --no-verbose --tries=1 --spider http://localhost:{NODE_PORT} || exit 1",
                timeout="5s"),
        }

    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        if entry.key.subtype == "node":
            return {
                "NODE_HOST": entry.name,
                "NODE_PORT": str(NODE_PORT),
            }
        return {
            "PHP_FPM_HOST": entry.name,
            "PHP_FPM_PORT": str(PHP_FPM_PORT),
        }

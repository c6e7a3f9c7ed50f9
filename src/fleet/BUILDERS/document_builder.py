"""
Assembly of the final orchestration document.
"""
import logging
from typing import Dict, List

from ..errors import ValidationError
from ..MODELS.service_spec import ServiceSpec, VolumeMount, VolumeType
from ..MODELS.orchestration_config import GlobalSettings
from ..MODELS.orchestration_document import (
    ContainerEntry,
    EntryRole,
    OrchestrationDocument,
    ProxyRoute,
    SharedResourceEntry,
)
from ..PROVIDERS.base import ResourceProvider
from ..RUNNERS.dependency_resolver import DependencyGraph
from ..MANAGERS.network_manager import NetworkManager
from ..MANAGERS.volume_manager import VolumeManager

logger = logging.getLogger(__name__)


class DocumentBuilder:
    """
    Merges services, shared entries and sidecars into one document.
    Inputs are never mutated; every output entry is a new object.
    """
    def __init__(self, settings: GlobalSettings):
        """
        :param settings: Network, restart and reverse-proxy settings.
        """
        self.settings = settings
        self.network_manager = NetworkManager(settings)
        self.volume_manager = VolumeManager()

    def build(self,
              specs: List[ServiceSpec],
              entries: List[SharedResourceEntry],
              graph: DependencyGraph,
              environments: Dict[str, Dict[str, str]],
              routes: List[ProxyRoute]) -> OrchestrationDocument:
        """
        Builds the document in fixed order: services, shared entries, sidecars.

        :param specs: Declared services, in input order.
        :param entries: Deduplicated entries, in first-seen order.
        :param graph: The checked dependency graph.
        :param environments: Merged environment per service name.
        :param routes: Proxy routes; the proxy is added only when non-empty.
        :return: The assembled document.
        """
        services: Dict[str, ContainerEntry] = {}

        def add(name: str, entry: ContainerEntry):
            if name in services:
                raise ValidationError(f"duplicate entry name '{name}'", value=name)
            services[name] = entry

        # 1. Application services
        for spec in specs:
            add(spec.name, self.service_entry(spec, graph, environments.get(spec.name, {})))

        # 2. Shared infrastructure
        for entry in entries:
            if entry.role == EntryRole.SHARED:
                add(entry.name, self.resource_entry(entry))

        # 3. Sidecars
        for entry in entries:
            if entry.role == EntryRole.SIDECAR:
                add(entry.name, self.resource_entry(entry))
        if routes:
            add(self.settings.proxy_name, self.proxy_entry(routes))

        document = OrchestrationDocument(
            services=services,
            volumes=self.volume_manager.collect(services),
            networks=self.network_manager.networks(),
            proxy_routes=routes,
            edges=graph.edges,
        )
        logger.info("Assembled %d entries, %d volumes", len(document.services), len(document.volumes))
        return document

    def service_entry(self, spec: ServiceSpec, graph: DependencyGraph, environment: Dict[str, str]) -> ContainerEntry:
        ports: List[str] = []
        if not spec.domain:
            if spec.port:
                ports.append(f"{spec.port}:{spec.port}")
            ports.extend(p for p in spec.ports if p not in ports)

        return ContainerEntry(
            role=EntryRole.SERVICE,
            image=spec.image,
            build=spec.build,
            command=spec.command,
            ports=ports,
            volumes=list(spec.volumes),
            environment=dict(environment),
            networks=[self.settings.network_name],
            restart=self.settings.restart_policy,
            depends_on=graph.targets_of(spec.name),
            health_check=spec.health_check,
            labels=dict(spec.labels),
        )

    def resource_entry(self, entry: SharedResourceEntry) -> ContainerEntry:
        return ContainerEntry(
            role=entry.role,
            image=entry.image,
            command=entry.command,
            working_dir=entry.working_dir,
            volumes=list(entry.volumes),
            environment={key: entry.environment[key] for key in sorted(entry.environment)},
            networks=[self.settings.network_name],
            restart=self.settings.restart_policy,
            health_check=entry.health_check,
        )

    def proxy_entry(self, routes: List[ProxyRoute]) -> ContainerEntry:
        ssl = any(route.ssl for route in routes)
        ports = ["80:80"]
        volumes = [VolumeMount(source=self.settings.proxy_config_path, target="/etc/nginx/nginx.conf",
                               read_only=True, type=VolumeType.BIND)]
        if ssl:
            ports.append("443:443")
            volumes.append(VolumeMount(source=self.settings.ssl_dir, target="/etc/nginx/ssl",
                                       read_only=True, type=VolumeType.BIND))

        return ContainerEntry(
            role=EntryRole.SIDECAR,
            image=self.settings.proxy_image,
            ports=ports,
            volumes=volumes,
            networks=[self.settings.network_name],
            restart=self.settings.restart_policy,
            health_check=ResourceProvider.health_check(
                "CMD", "wget", "--quiet", "--tries=1", "--spider", "http://localhost/health"),
        )

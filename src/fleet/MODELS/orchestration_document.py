"""
Models for the resolved orchestration document and the intermediate records
the engine produces on the way to it.
"""
from typing import List, Dict, Optional, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, model_validator

from .service_spec import ResourceKind, ResourceRequest, VolumeMount, HealthCheck


class EntryRole(str, Enum):
    """
    What a container entry is in the document.
    """
    SERVICE = "service"
    SHARED = "shared"
    SIDECAR = "sidecar"


class CanonicalKey(BaseModel):
    """
    Identity used to deduplicate infrastructure entries.
    ``scope`` is None for entries shared across services and the consumer
    name for per-service sidecars.
    """
    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    subtype: str
    version: str
    scope: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.kind.value}/{self.subtype}:{self.version}"
        if self.scope:
            text += f"@{self.scope}"
        return text


class SharedResourceEntry(BaseModel):
    """
    One concrete infrastructure container, materialized from the first request
    seen for its canonical key.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    key: CanonicalKey
    role: EntryRole = EntryRole.SHARED
    image: str
    command: Optional[str] = None
    working_dir: Optional[str] = None
    environment: Dict[str, str] = {}
    volumes: List[VolumeMount] = []
    health_check: Optional[HealthCheck] = None

    # First writer
    origin_consumer: str
    origin_request: ResourceRequest
    origin_settings: Dict[str, str] = {}

    @property
    def named_volumes(self) -> List[str]:
        return [v.source for v in self.volumes if v.type == "volume"]


class ResourceBinding(BaseModel):
    """
    Links one consumer's request to the entry that serves it.
    """
    model_config = ConfigDict(frozen=True)

    consumer: str
    request: ResourceRequest
    entry_name: str


class DependencyEdge(BaseModel):
    """
    A directed "depends on" relation from ``source`` to ``target``.
    """
    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class ProxyRoute(BaseModel):
    """
    A public domain served by the reverse proxy.
    """
    model_config = ConfigDict(frozen=True)

    domain: str
    service: str
    port: int
    ssl: bool = False


class ContainerEntry(BaseModel):
    """
    One container of the output document.
    """
    model_config = ConfigDict(frozen=True)

    role: EntryRole = EntryRole.SERVICE
    image: Optional[str] = None
    build: Optional[str] = None
    command: Optional[str] = None
    working_dir: Optional[str] = None
    ports: List[str] = []
    volumes: List[VolumeMount] = []
    environment: Dict[str, str] = {}
    networks: List[str] = []
    restart: Optional[str] = None
    depends_on: List[str] = []
    health_check: Optional[HealthCheck] = None
    labels: Dict[str, str] = {}

    def to_compose(self) -> Dict[str, Any]:
        """
        Converts the entry to its docker-compose mapping. Empty optional
        sections are omitted; ``networks`` is always present.
        """
        data: Dict[str, Any] = {}
        if self.image:
            data["image"] = self.image
        if self.build:
            data["build"] = self.build
        if self.command:
            data["command"] = self.command
        if self.working_dir:
            data["working_dir"] = self.working_dir
        if self.ports:
            data["ports"] = list(self.ports)
        if self.volumes:
            data["volumes"] = [v.to_compose() for v in self.volumes]
        if self.environment:
            data["environment"] = dict(self.environment)
        data["networks"] = list(self.networks)
        if self.restart:
            data["restart"] = self.restart
        if self.depends_on:
            data["depends_on"] = list(self.depends_on)
        if self.health_check:
            data["healthcheck"] = self.health_check.to_compose()
        if self.labels:
            data["labels"] = dict(self.labels)
        return data


class VolumeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    driver: str = "local"


class NetworkDefinition(BaseModel):
    """
    The single network every entry joins.
    """
    model_config = ConfigDict(frozen=True)

    driver: str = "bridge"
    subnet: str

    def to_compose(self) -> Dict[str, Any]:
        return {
            "driver": self.driver,
            "ipam": {"config": [{"subnet": self.subnet}]},
        }


class OrchestrationDocument(BaseModel):
    """
    The complete, serializable output: containers, named volumes and one network.
    """
    model_config = ConfigDict(frozen=True)

    services: Dict[str, ContainerEntry]
    volumes: Dict[str, VolumeDefinition] = {}
    networks: Dict[str, NetworkDefinition]
    proxy_routes: List[ProxyRoute] = []
    edges: List[DependencyEdge] = []

    @model_validator(mode="after")
    def _check_invariants(self) -> "OrchestrationDocument":
        if len(self.networks) != 1:
            raise ValueError(f"document must define exactly one network, got {len(self.networks)}")
        referenced = set()
        for entry in self.services.values():
            referenced.update(v.source for v in entry.volumes if v.type == "volume")
        if referenced != set(self.volumes):
            raise ValueError(
                f"volumes section {sorted(self.volumes)} does not match referenced volumes {sorted(referenced)}")
        return self

    @property
    def network_name(self) -> str:
        return next(iter(self.networks))

    def entries_with_role(self, role: EntryRole) -> List[str]:
        return [name for name, entry in self.services.items() if entry.role == role]

    def to_compose(self) -> Dict[str, Any]:
        """
        Converts the document to a docker-compose mapping with the sections
        ``services``, ``volumes`` and ``networks``.
        """
        return {
            "services": {name: entry.to_compose() for name, entry in self.services.items()},
            "volumes": {name: {"driver": vol.driver} for name, vol in self.volumes.items()},
            "networks": {name: net.to_compose() for name, net in self.networks.items()},
        }

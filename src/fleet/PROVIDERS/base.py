"""
The provider contract every resource kind implements, and the one naming
rule all providers share.
"""
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ValidationError
from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec, VolumeMount, HealthCheck
from ..MODELS.orchestration_document import CanonicalKey, EntryRole, SharedResourceEntry
from .catalog import VersionTable


def normalize_version(version: str) -> str:
    """
    Lower-cases a version and drops a leading ``v`` (``V1.6`` -> ``1.6``).
    """
    version = version.strip().lower()
    if version.startswith("v") and version[1:2].isdigit():
        version = version[1:]
    return version


def canonical_name(subtype: str, version: str) -> str:
    """
    Deterministic entry name for a subtype and normalized version.
    Separators are stripped: ``redis``, ``7.2`` -> ``redis-72``;
    ``memcached``, ``1.6.23`` -> ``memcached-1623``.
    """
    clean = version.replace(".", "").replace("-", "")
    return f"{subtype.lower()}-{clean}"


class ResourceProvider(ABC):
    """
    Knows how to validate, name, materialize and wire one resource kind.

    Subclasses set ``kind``, ``override_fields`` (settings a consumer may pass)
    and implement ``entry_settings``, ``configure`` and ``environment_for``.
    """
    kind: ResourceKind
    role: EntryRole = EntryRole.SHARED
    singleton: bool = False
    override_fields: Tuple[str, ...] = ()
    subtype_aliases: Dict[str, str] = {}

    def __init__(self, tables: Iterable[VersionTable]):
        """
        :param tables: Version tables for the subtypes this provider serves.
        """
        self.tables = MappingProxyType({t.subtype: t for t in tables})

    # Naming

    def resolve_subtype(self, subtype: str) -> str:
        subtype = subtype.lower()
        return self.subtype_aliases.get(subtype, subtype)

    def table(self, subtype: str) -> Optional[VersionTable]:
        return self.tables.get(self.resolve_subtype(subtype))

    def normalize_version(self, table: VersionTable, version: str) -> str:
        version = normalize_version(version)
        return table.aliases.get(version, version)

    def resolve_version(self, request: ResourceRequest) -> str:
        """
        The request's normalized version, or the documented default when omitted.
        """
        table = self.table(request.subtype)
        if table is None:
            raise ValidationError(f"unsupported {self.kind.value} type '{request.subtype}'", value=request.raw)
        if request.version is None:
            return table.default
        return self.normalize_version(table, request.version)

    def canonical_key(self, request: ResourceRequest, consumer: ServiceSpec) -> CanonicalKey:
        scope = consumer.name if self.role == EntryRole.SIDECAR else None
        version = "*" if self.singleton else self.resolve_version(request)
        return CanonicalKey(kind=self.kind, subtype=self.resolve_subtype(request.subtype),
                            version=version, scope=scope)

    def canonical_name(self, key: CanonicalKey) -> str:
        if self.role == EntryRole.SIDECAR:
            return f"{key.scope}-{key.subtype}"
        if self.singleton:
            return key.subtype
        return canonical_name(key.subtype, key.version)

    # Validation

    def validate(self, request: ResourceRequest, service: Optional[str] = None) -> List[ValidationError]:
        """
        Checks subtype, version and override names.

        :return: Every problem found; empty when the request is valid.
        """
        errors = []
        table = self.table(request.subtype)
        if table is None:
            known = ", ".join(sorted(self.tables))
            errors.append(ValidationError(
                f"unsupported {self.kind.value} type '{request.subtype}' in '{request.raw}' (known: {known})",
                value=request.raw, service=service))
        elif request.version is not None:
            version = self.normalize_version(table, request.version)
            if not table.supports(version):
                supported = ", ".join(table.supported_versions)
                errors.append(ValidationError(
                    f"unsupported {table.subtype} version '{request.version}' (supported: {supported})",
                    value=request.version, service=service))

        for field in request.overrides:
            if field not in self.override_fields:
                errors.append(ValidationError(
                    f"unknown {self.kind.value} setting '{field}'", value=field, service=service))
        return errors

    # Materialization

    def is_stateful(self, subtype: str) -> bool:
        table = self.table(subtype)
        return bool(table and table.stateful)

    def materialize(self, request: ResourceRequest, consumer: ServiceSpec) -> SharedResourceEntry:
        """
        Builds the concrete entry for the first request seen for its key.

        :param request: The (first) request.
        :param consumer: The service that made it.
        """
        key = self.canonical_key(request, consumer)
        table = self.table(request.subtype)
        version = self.resolve_version(request)
        name = self.canonical_name(key)
        settings = self.entry_settings(request, consumer)
        fields = self.configure(name, key.subtype, settings, consumer)
        volumes = list(fields.pop("volumes", []))
        if self.is_stateful(key.subtype) and not volumes:
            raise ValueError(f"stateful entry {name} configured without a data volume")
        return SharedResourceEntry(
            name=name,
            key=key,
            role=self.role,
            image=table.image_for(version),
            volumes=volumes,
            origin_consumer=consumer.name,
            origin_settings=settings,
            origin_request=request,
            **fields,
        )

    def data_volume(self, name: str, target: str) -> VolumeMount:
        return VolumeMount(source=f"{name}-data", target=target)

    @staticmethod
    def health_check(*test: str, timeout: str = "3s") -> HealthCheck:
        return HealthCheck(test=list(test), interval="30s", timeout=timeout, retries=3)

    @abstractmethod
    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        """
        Effective values of the settings that shape the materialized entry
        (credentials, limits), with defaults applied.
        """

    @abstractmethod
    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        """
        Returns the entry fields (command, environment, volumes, health_check...)
        for a new entry.
        """

    @abstractmethod
    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        """
        Variables ``consumer`` needs to reach ``entry``, computed from the
        given request's overrides.
        """

    def diverging_settings(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> List[str]:
        """
        Names of entry-shaping settings that either consumer set explicitly and
        whose value for this consumer differs from the value the entry was
        materialized with. Values derived from defaults never conflict.
        """
        explicit = set(entry.origin_request.overrides) | set(request.overrides)
        first = entry.origin_settings
        mine = self.entry_settings(request, consumer)
        return [field for field in first if field in explicit and first[field] != mine.get(field)]

    def describe(self) -> Dict[str, Tuple[str, ...]]:
        """
        Supported versions per subtype, default first.
        """
        result = {}
        for subtype, table in self.tables.items():
            others = tuple(v for v in table.supported_versions if v != table.default)
            result[subtype] = (table.default,) + others
        return result

"""
Immutable version catalog: default and supported versions, and the image
each version resolves to, for every subtype of every resource kind.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from ..MODELS.service_spec import ResourceKind


@dataclass(frozen=True)
class VersionTable:
    """
    Versions known for one subtype (e.g. ``redis``).

    Attributes:
        subtype: Subtype name as written in requests.
        default: Version used when a request omits one.
        images: Supported version -> image reference.
        aliases: Alternative spellings -> supported version.
        stateful: Whether entries of this subtype keep a data volume.
    """

    subtype: str
    default: str
    images: Mapping[str, str]
    aliases: Mapping[str, str] = field(default_factory=dict)
    stateful: bool = True

    def __post_init__(self):
        object.__setattr__(self, "images", MappingProxyType(dict(self.images)))
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))
        if self.default not in self.images:
            raise ValueError(f"default version {self.default} of {self.subtype} has no image")

    @property
    def supported_versions(self) -> Tuple[str, ...]:
        return tuple(self.images)

    def supports(self, version: str) -> bool:
        return version in self.images

    def image_for(self, version: str) -> str:
        return self.images[version]


def _table(subtype: str, default: str, images: Dict[str, str], **kwargs) -> VersionTable:
    return VersionTable(subtype=subtype, default=default, images=images, **kwargs)


DATABASE_TABLES = (
    _table("mysql", "8.0", {
        "5.7": "mysql:5.7",
        "8.0": "mysql:8.0",
        "8.1": "mysql:8.1",
        "8.2": "mysql:8.2",
        "8.3": "mysql:8.3",
        "latest": "mysql:latest",
    }),
    _table("postgres", "15", {
        "12": "postgres:12-alpine",
        "13": "postgres:13-alpine",
        "14": "postgres:14-alpine",
        "15": "postgres:15-alpine",
        "16": "postgres:16-alpine",
        "latest": "postgres:alpine",
    }),
    _table("mariadb", "10.11", {
        "10.6": "mariadb:10.6",
        "10.11": "mariadb:10.11",
        "11.0": "mariadb:11.0",
        "11.1": "mariadb:11.1",
        "11.2": "mariadb:11.2",
        "latest": "mariadb:latest",
    }),
    _table("mongodb", "6.0", {
        "4.4": "mongo:4.4",
        "5.0": "mongo:5.0",
        "6.0": "mongo:6.0",
        "7.0": "mongo:7.0",
        "latest": "mongo:latest",
    }),
)

CACHE_TABLES = (
    _table("redis", "7.2", {
        "6.0": "redis:6.0-alpine",
        "6.2": "redis:6.2-alpine",
        "7.0": "redis:7.0-alpine",
        "7.2": "redis:7.2-alpine",
        "7.4": "redis:7.4-alpine",
        "latest": "redis:alpine",
    }),
    _table("memcached", "1.6", {
        "1.6": "memcached:1.6-alpine",
        "1.6.21": "memcached:1.6.21-alpine",
        "1.6.22": "memcached:1.6.22-alpine",
        "1.6.23": "memcached:1.6.23-alpine",
        "latest": "memcached:alpine",
    }, stateful=False),
)

SEARCH_TABLES = (
    _table("meilisearch", "1.6", {
        "1.0": "getmeili/meilisearch:v1.0",
        "1.1": "getmeili/meilisearch:v1.1",
        "1.2": "getmeili/meilisearch:v1.2",
        "1.3": "getmeili/meilisearch:v1.3",
        "1.4": "getmeili/meilisearch:v1.4",
        "1.5": "getmeili/meilisearch:v1.5",
        "1.6": "getmeili/meilisearch:v1.6",
        "latest": "getmeili/meilisearch:latest",
    }),
    _table("typesense", "27.1", {
        "0.24": "typesense/typesense:0.24.0",
        "0.25": "typesense/typesense:0.25.2",
        "26.0": "typesense/typesense:26.0",
        "27.0": "typesense/typesense:27.0",
        "27.1": "typesense/typesense:27.1",
        "latest": "typesense/typesense:latest",
    }),
)

STORAGE_TABLES = (
    _table("minio", "2024", {
        "2023": "minio/minio:RELEASE.2023-12-20T01-00-02Z",
        "2024": "minio/minio:RELEASE.2024-01-16T16-07-38Z",
        "latest": "minio/minio:latest",
    }),
)

MAIL_TABLES = (
    _table("mailpit", "1.20", {
        "1.13": "axllent/mailpit:v1.13",
        "1.14": "axllent/mailpit:v1.14",
        "1.15": "axllent/mailpit:v1.15",
        "1.16": "axllent/mailpit:v1.16",
        "1.17": "axllent/mailpit:v1.17",
        "1.18": "axllent/mailpit:v1.18",
        "1.19": "axllent/mailpit:v1.19",
        "1.20": "axllent/mailpit:v1.20",
        "latest": "axllent/mailpit:latest",
    }),
)

RUNTIME_TABLES = (
    _table("php", "8.4", {
        "7.4": "php:7.4-fpm-alpine",
        "8.0": "php:8.0-fpm-alpine",
        "8.1": "php:8.1-fpm-alpine",
        "8.2": "php:8.2-fpm-alpine",
        "8.3": "php:8.3-fpm-alpine",
        "8.4": "php:8.4-fpm-alpine",
        "latest": "php:8.4-fpm-alpine",
    }, stateful=False),
    _table("node", "20", {
        "16": "node:16-alpine",
        "18": "node:18-alpine",
        "20": "node:20-alpine",
        "22": "node:22-alpine",
        "latest": "node:20-alpine",
    }, aliases={"lts": "20"}, stateful=False),
)

DEFAULT_CATALOG: Mapping[ResourceKind, Tuple[VersionTable, ...]] = MappingProxyType({
    ResourceKind.DATABASE: DATABASE_TABLES,
    ResourceKind.CACHE: CACHE_TABLES,
    ResourceKind.SEARCH: SEARCH_TABLES,
    ResourceKind.STORAGE: STORAGE_TABLES,
    ResourceKind.MAIL: MAIL_TABLES,
    ResourceKind.RUNTIME: RUNTIME_TABLES,
})

"""
Database provider: MySQL, PostgreSQL, MariaDB and MongoDB shared servers.
"""
from dataclasses import dataclass
from typing import Dict

from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec
from ..MODELS.orchestration_document import SharedResourceEntry
from .base import ResourceProvider


@dataclass(frozen=True)
class DatabaseProfile:
    """
    Per-engine constants.
    """
    port: int
    data_path: str
    connection: str
    url_scheme: str
    credential_prefix: str
    default_user: str = ""


PROFILES = {
    "mysql": DatabaseProfile(3306, "/var/lib/mysql", "mysql", "mysql", "MYSQL"),
    "mariadb": DatabaseProfile(3306, "/var/lib/mysql", "mariadb", "mariadb", "MARIADB"),
    "postgres": DatabaseProfile(5432, "/var/lib/postgresql/data", "pgsql", "postgresql", "POSTGRES"),
    "mongodb": DatabaseProfile(27017, "/data/db", "mongodb", "mongodb", "MONGO", default_user="admin"),
}


class DatabaseProvider(ResourceProvider):
    """
    Shared database servers. One server per engine and version; the first
    consumer's database name and credentials initialize it.
    """
    kind = ResourceKind.DATABASE
    override_fields = ("name", "user", "password", "root_password")
    subtype_aliases = {"postgresql": "postgres", "pgsql": "postgres", "mongo": "mongodb"}

    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        profile = PROFILES[self.resolve_subtype(request.subtype)]
        return {
            "name": request.override("name", consumer.name),
            "user": request.override("user", profile.default_user or consumer.name),
            "password": request.override("password", "password"),
            "root_password": request.override("root_password", "rootpassword"),
        }

    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        profile = PROFILES[subtype]
        if subtype == "postgres":
            environment = {
                "POSTGRES_DB": settings["name"],
                "POSTGRES_USER": settings["user"],
                "POSTGRES_PASSWORD": settings["password"],
            }
            check = self.health_check("CMD-SHELL", f"pg_isready -U {settings['user']}", timeout="5s")
        elif subtype == "mongodb":
            environment = {
                "MONGO_INITDB_DATABASE": settings["name"],
                "MONGO_INITDB_ROOT_USERNAME": settings["user"],
                "MONGO_INITDB_ROOT_PASSWORD": settings["password"],
            }
            check = self.health_check("CMD", "mongosh", "--eval", "db.adminCommand('ping')", timeout="5s")
        else:
            prefix = profile.credential_prefix
            environment = {
                f"{prefix}_ROOT_PASSWORD": settings["root_password"],
                f"{prefix}_DATABASE": settings["name"],
                f"{prefix}_USER": settings["user"],
                f"{prefix}_PASSWORD": settings["password"],
            }
            if subtype == "mariadb":
                check = self.health_check("CMD", "healthcheck.sh", "--connect", "--innodb_initialized", timeout="5s")
            else:
                check = self.health_check("CMD", "mysqladmin", "ping", "-h", "localhost", timeout="5s")

        return {
            "environment": environment,
            "volumes": [self.data_volume(name, profile.data_path)],
            "health_check": check,
        }

    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        subtype = entry.key.subtype
        profile = PROFILES[subtype]
        settings = self.entry_settings(request, consumer)
        host, port = entry.name, str(profile.port)
        user, password, database = settings["user"], settings["password"], settings["name"]
        url = f"{profile.url_scheme}://{user}:{password}@{host}:{port}/{database}"

        env = {
            "DB_CONNECTION": profile.connection,
            "DB_HOST": host,
            "DB_PORT": port,
            "DB_DATABASE": database,
            "DB_USERNAME": user,
            "DB_PASSWORD": password,
            "DATABASE_URL": url,
            f"{profile.credential_prefix}_USER": user,
            f"{profile.credential_prefix}_PASSWORD": password,
        }
        if subtype == "mongodb":
            env.update({
                "MONGO_HOST": host,
                "MONGO_PORT": port,
                "MONGO_DB": database,
                "MONGODB_URI": url,
            })
        return env

"""
Object storage provider: a shared S3-compatible MinIO server.
"""
from typing import Dict

from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec
from ..MODELS.orchestration_document import SharedResourceEntry
from .base import ResourceProvider
from .catalog import VersionTable

API_PORT = 9000
CONSOLE_PORT = 9001


class StorageProvider(ResourceProvider):
    """
    MinIO versions are release years; full ``RELEASE.2024-01-16T...`` tags
    normalize to the year.
    """
    kind = ResourceKind.STORAGE
    override_fields = ("access_key", "secret_key", "region")

    def normalize_version(self, table: VersionTable, version: str) -> str:
        version = super().normalize_version(table, version)
        if version.startswith("release."):
            version = version[len("release."):].split("t")[0][:4]
        return version

    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        return {
            "access_key": request.override("access_key", "minioadmin"),
            "secret_key": request.override("secret_key", "minioadmin"),
            "region": request.override("region"),
        }

    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        environment = {
            "MINIO_ROOT_USER": settings["access_key"],
            "MINIO_ROOT_PASSWORD": settings["secret_key"],
        }
        if settings["region"]:
            environment["MINIO_REGION"] = settings["region"]
        environment["MINIO_BROWSER"] = "on"
        return {
            "command": f"server /data --console-address :{CONSOLE_PORT}",
            "environment": environment,
            "volumes": [self.data_volume(name, "/data")],
            "health_check": self.health_check(
                "CMD", "curl", "-f", f"http://localhost:{API_PORT}/minio/health/live"),
        }

    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        settings = self.entry_settings(request, consumer)
        endpoint = f"http://{entry.name}:{API_PORT}"
        region = settings["region"] or "us-east-1"
        return {
            "S3_ENDPOINT": endpoint,
            "S3_ENDPOINT_URL": endpoint,
            "AWS_ENDPOINT_URL_S3": endpoint,
            "MINIO_ENDPOINT": endpoint,
            "MINIO_CONSOLE_URL": f"http://{entry.name}:{CONSOLE_PORT}",
            "AWS_ACCESS_KEY_ID": settings["access_key"],
            "AWS_SECRET_ACCESS_KEY": settings["secret_key"],
            "MINIO_ACCESS_KEY": settings["access_key"],
            "MINIO_SECRET_KEY": settings["secret_key"],
            "AWS_DEFAULT_REGION": region,
            "AWS_REGION": region,
            "S3_USE_PATH_STYLE": "true",
            "AWS_S3_FORCE_PATH_STYLE": "true",
        }

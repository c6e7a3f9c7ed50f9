"""
Search provider: shared Meilisearch and Typesense servers.
"""
from typing import Dict

from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec
from ..MODELS.orchestration_document import SharedResourceEntry
from .base import ResourceProvider

MEILISEARCH_PORT = 7700
TYPESENSE_PORT = 8108
TYPESENSE_DEV_KEY = "xyz123development"


class SearchProvider(ResourceProvider):
    kind = ResourceKind.SEARCH
    override_fields = ("api_key",)
    subtype_aliases = {"meili": "meilisearch"}

    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        if self.resolve_subtype(request.subtype) == "typesense":
            return {"api_key": request.override("api_key", TYPESENSE_DEV_KEY)}
        return {"api_key": request.override("api_key")}

    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        key = settings["api_key"]
        if subtype == "typesense":
            args = [
                "--data-dir=/data",
                f"--api-key={key}",
                "--enable-cors",
                "--listen-address=0.0.0.0",
                f"--listen-port={TYPESENSE_PORT}",
            ]
            return {
                "command": " ".join(args),
                "volumes": [self.data_volume(name, "/data")],
                "health_check": self.health_check(
                    "CMD", "wget", "--no-verbose", "--tries=1", "--spider",
                    f"http://localhost:{TYPESENSE_PORT}/health"),
            }

        environment = {}
        if key:
            environment["MEILI_MASTER_KEY"] = key
            environment["MEILI_ENV"] = "production"
        else:
            environment["MEILI_ENV"] = "development"
        environment["MEILI_HTTP_ADDR"] = f"0.0.0.0:{MEILISEARCH_PORT}"
        environment["MEILI_NO_ANALYTICS"] = "true"
        return {
            "environment": environment,
            "volumes": [self.data_volume(name, "/meili_data")],
            "health_check": self.health_check(
                "CMD", "wget", "--no-verbose", "--tries=1", "--spider",
                f"http://localhost:{MEILISEARCH_PORT}/health"),
        }

    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        host = entry.name
        key = self.entry_settings(request, consumer)["api_key"]

        if entry.key.subtype == "typesense":
            return {
                "TYPESENSE_HOST": host,
                "TYPESENSE_PORT": str(TYPESENSE_PORT),
                "TYPESENSE_PROTOCOL": "http",
                "TYPESENSE_URL": f"http://{host}:{TYPESENSE_PORT}",
                "TYPESENSE_API_KEY": key,
                "SEARCH_ENGINE": "typesense",
                "SEARCH_HOST": host,
                "SEARCH_PORT": str(TYPESENSE_PORT),
            }

        url = f"http://{host}:{MEILISEARCH_PORT}"
        env = {
            "MEILISEARCH_HOST": url,
            "MEILISEARCH_URL": url,
        }
        if key:
            env["MEILISEARCH_KEY"] = key
            env["MEILISEARCH_MASTER_KEY"] = key
        env["SEARCH_ENGINE"] = "meilisearch"
        env["SEARCH_HOST"] = host
        env["SEARCH_PORT"] = str(MEILISEARCH_PORT)
        return env

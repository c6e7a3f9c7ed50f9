"""
Models for the global settings of a generation run and the overall project.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field
from .service_spec import ServiceSpec


class ConflictPolicy(str, Enum):
    """
    How divergent overrides for one shared entry are handled.

    LEGACY: the first request fixes the entry; every consumer's connection
        variables still embed that consumer's own overrides.
    FIRST_WRITER: the first request fixes the entry and every consumer's
        connection variables.
    ERROR: divergent overrides are reported as ConflictError.
    """
    LEGACY = "legacy"
    FIRST_WRITER = "first-writer"
    ERROR = "error"


class GlobalSettings(BaseModel):
    """
    Settings shared by every entry of the generated document.
    """
    project: str = "fleet-project"

    # Network
    network_name: str = "fleet-network"
    network_driver: str = "bridge"
    subnet: str = "172.28.0.0/16"
    # Blocks owned by sibling infrastructure (the DNS sidecar), never reused here
    reserved_subnets: List[str] = ["172.29.0.0/16"]

    restart_policy: str = "unless-stopped"

    # Reverse proxy
    proxy_name: str = "nginx-proxy"
    proxy_image: str = "nginx:alpine"
    proxy_config_path: str = "./.fleet/nginx.conf"
    ssl_dir: str = "./.fleet/ssl"
    auto_domain_suffix: Optional[str] = None

    conflict_policy: ConflictPolicy = ConflictPolicy.LEGACY


class ProjectConfig(BaseModel):
    """
    Complete configuration for a project, as read from a fleet file.
    """
    project: str = "fleet-project"
    services: List[ServiceSpec]
    settings: GlobalSettings = Field(default_factory=GlobalSettings)

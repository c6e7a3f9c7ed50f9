# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parsers for fleet project files (YAML, JSON or TOML).
"""
import json
import logging
import os
import tomllib
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigError, FleetError, ValidationError
from ..MODELS.service_spec import HealthCheck, ResourceKind, ResourceRequest, ServiceSpec, VolumeMount, VolumeType
from ..MODELS.orchestration_config import GlobalSettings, ProjectConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator, InterpolationError
from .env_parser import EnvParser

logger = logging.getLogger(__name__)

FORMATS = {
    ".yml": "yaml",
    ".yaml": "yaml",
    ".json": "json",
    ".toml": "toml",
}

# Keys naming a resource kind; values are "subtype[:version]" strings
RESOURCE_KEYS = {
    "database": ResourceKind.DATABASE,
    "cache": ResourceKind.CACHE,
    "search": ResourceKind.SEARCH,
    "storage": ResourceKind.STORAGE,
    "compat": ResourceKind.STORAGE,
    "mail": ResourceKind.MAIL,
    "email": ResourceKind.MAIL,
    "runtime": ResourceKind.RUNTIME,
}

SERVICE_KEYS = {
    "name", "image", "build", "port", "ports", "domain", "ssl", "folder",
    "env", "environment", "env_file", "volumes", "needs", "depends_on",
    "command", "health", "labels", "password",
}


class ConfigParser:
    """
    Parser for fleet.yml / fleet.json / fleet.toml project files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None, base_dir: str = "."):
        """
        :param context: Variables for ``${VAR}`` interpolation; the process
            environment when omitted.
        :param base_dir: Directory ``env_file`` paths are relative to.
        """
        self.context = context if context is not None else dict(os.environ)
        self.base_dir = base_dir

    def parse(self, config_path: str) -> ProjectConfig:
        """
        Parses a project file from a path. The format follows the extension.

        :param config_path: Path to the project file.
        :return: Parsed configuration.
        :raises ConfigError: If the file cannot be read or holds invalid services.
        """
        ext = os.path.splitext(config_path)[1].lower()
        fmt = FORMATS.get(ext)
        if fmt is None:
            raise ConfigError([FleetError(
                f"unsupported config format '{ext}' (use .yml, .yaml, .json or .toml)")])
        try:
            with open(config_path, "r") as f:
                content = f.read()
        except OSError as e:
            raise ConfigError([FleetError(f"cannot read {config_path}: {e}")]) from e

        self.base_dir = os.path.dirname(os.path.abspath(config_path))
        return self.parse_from_string(content, fmt)

    def parse_from_string(self, content: str, fmt: str = "yaml") -> ProjectConfig:
        """
        Parses a project file from a string.

        :param content: File content.
        :param fmt: One of ``yaml``, ``json`` or ``toml``.
        :return: Parsed configuration.
        :raises ConfigError: Carrying every problem found.
        """
        # Interpolate variables before decoding
        try:
            content = EnvironmentInterpolator.interpolate(content, self.context)
        except InterpolationError as e:
            raise ConfigError([FleetError(str(e))]) from e

        data = self._decode(content, fmt)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError([FleetError("project file must contain a mapping")])

        errors: List[FleetError] = []
        settings = self._parse_settings(data, errors)

        raw_services = data.get("services") or []
        if isinstance(raw_services, dict):
            # Compose-style mapping of name -> definition
            raw_services = [dict(spec or {}, name=name) if isinstance(spec or {}, dict) else spec
                            for name, spec in raw_services.items()]
        elif not isinstance(raw_services, list):
            errors.append(ValidationError("services must be a list or a mapping", value=str(raw_services)))
            raw_services = []
        elif not raw_services:
            errors.append(FleetError("no services defined"))

        services = []
        for index, raw in enumerate(raw_services):
            if not isinstance(raw, dict):
                errors.append(ValidationError(f"service #{index + 1} must be a mapping", value=str(raw)))
                continue
            spec = self._parse_service(raw, errors)
            if spec is not None:
                services.append(spec)

        if errors:
            raise ConfigError(errors)

        logger.debug("Parsed %d service(s) for project %s", len(services), settings.project)
        return ProjectConfig(project=settings.project, services=services, settings=settings)

    def _decode(self, content: str, fmt: str) -> Any:
        try:
            if fmt == "yaml":
                return yaml.safe_load(content)
            if fmt == "json":
                return json.loads(content) if content.strip() else {}
            if fmt == "toml":
                return tomllib.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigError([FleetError(f"invalid {fmt}: {e}")]) from e
        raise ConfigError([FleetError(f"unsupported config format '{fmt}'")])

    def _parse_settings(self, data: Dict[str, Any], errors: List[FleetError]) -> GlobalSettings:
        values: Dict[str, Any] = {}
        settings = data.get("settings") or {}
        if isinstance(settings, dict):
            values.update((str(k), v) for k, v in settings.items())
        else:
            errors.append(ValidationError("settings must be a mapping", value=str(settings)))
        if data.get("project"):
            values["project"] = data["project"]

        network = data.get("network") or {}
        if not isinstance(network, dict):
            errors.append(ValidationError("network must be a mapping", value=str(network)))
            network = {}
        if "name" in network:
            values["network_name"] = network["name"]
        if "driver" in network:
            values["network_driver"] = network["driver"]
        if "subnet" in network:
            values["subnet"] = network["subnet"]
        if "reserved" in network:
            values["reserved_subnets"] = _to_list(network["reserved"])

        try:
            return GlobalSettings(**values)
        except PydanticValidationError as e:
            for problem in e.errors():
                field = ".".join(str(p) for p in problem["loc"])
                errors.append(ValidationError(f"settings.{field}: {problem['msg']}", value=field))
            return GlobalSettings()

    def _parse_service(self, raw: Dict[str, Any], errors: List[FleetError]) -> Optional[ServiceSpec]:
        """
        Parses a single service definition. Problems are appended to ``errors``.

        :return: The spec, or None if it could not be built.
        """
        name = str(raw.get("name") or "")
        if not name:
            errors.append(ValidationError("service without a name", value=""))
            return None
        count = len(errors)

        resources = self._parse_resources(name, raw, errors)

        environment: Dict[str, str] = {}
        try:
            env_files = [str(f) for f in _to_list(raw.get("env_file"))]
            environment.update(EnvParser(self.base_dir).parse_all(env_files))
        except FileNotFoundError as e:
            errors.append(ValidationError(str(e), service=name))
        # Explicit variables override env files
        try:
            environment.update(_parse_environment(raw.get("env", raw.get("environment"))))
        except ValueError as e:
            errors.append(ValidationError(str(e), service=name))

        labels = raw.get("labels") or {}
        if not isinstance(labels, dict):
            errors.append(ValidationError("labels must be a mapping", value=str(labels), service=name))

        volumes = []
        for volume in _to_list(raw.get("volumes")):
            try:
                volumes.append(parse_volume(volume))
            except ValueError as e:
                errors.append(ValidationError(str(e), value=str(volume), service=name))

        health_check = None
        if raw.get("health"):
            try:
                health_check = _parse_health(raw["health"])
            except (ValueError, PydanticValidationError) as e:
                errors.append(ValidationError(f"invalid health check: {e}", service=name))

        if len(errors) > count:
            return None

        build = raw.get("build")
        if isinstance(build, dict):
            build = build.get("context")

        try:
            return ServiceSpec(
                name=name,
                image=raw.get("image") or None,
                build=build or None,
                port=raw.get("port") or None,
                ports=[str(p) for p in _to_list(raw.get("ports"))],
                domain=raw.get("domain") or None,
                ssl=raw.get("ssl") or False,
                resources=resources,
                folder=raw.get("folder") or None,
                environment=environment,
                volumes=volumes,
                depends_on=_to_list(raw.get("needs", raw.get("depends_on"))),
                command=_command(raw.get("command")),
                health_check=health_check,
                labels={str(k): _scalar(v) for k, v in labels.items()},
            )
        except PydanticValidationError as e:
            for problem in e.errors():
                field = ".".join(str(p) for p in problem["loc"])
                errors.append(ValidationError(f"{field}: {problem['msg']}", value=field, service=name))
            return None

    def _parse_resources(self, name: str, raw: Dict[str, Any], errors: List[FleetError]) -> List[ResourceRequest]:
        overrides: Dict[ResourceKind, Dict[str, Any]] = {}
        for key, value in raw.items():
            prefix, _, field = str(key).partition("_")
            if field and prefix in RESOURCE_KEYS:
                overrides.setdefault(RESOURCE_KEYS[prefix], {})[field] = value
            elif key not in SERVICE_KEYS and key not in RESOURCE_KEYS:
                logger.warning("Service %s: ignoring unknown key '%s'", name, key)

        # A bare password secures a redis cache unless cache_password is set
        password = raw.get("password")
        if password is not None and str(raw.get("cache") or "").strip().lower().startswith("redis"):
            overrides.setdefault(ResourceKind.CACHE, {}).setdefault("password", password)

        requests = []
        for key, kind in RESOURCE_KEYS.items():
            value = raw.get(key)
            if value is None or value == "":
                continue
            try:
                requests.append(ResourceRequest.parse(kind, str(value), overrides.get(kind), service=name))
            except FleetError as e:
                errors.append(e)
        return requests


def parse_volume(volume: Any) -> VolumeMount:
    """
    Parses ``source:target[:ro]`` (or a mapping). A source with neither ``/``
    nor ``.`` is a named volume; anything else is a host path.

    :raises ValueError: If the mount has no target.
    """
    if isinstance(volume, dict):
        source, target = str(volume.get("source", "")), str(volume.get("target", ""))
        read_only = bool(volume.get("read_only", False))
    else:
        parts = str(volume).split(":")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"invalid volume '{volume}', expected 'source:target[:ro]'")
        source, target = parts[0], parts[1]
        read_only = len(parts) > 2 and parts[2] == "ro"

    if not source or not target:
        raise ValueError(f"invalid volume '{volume}', expected 'source:target[:ro]'")
    kind = VolumeType.VOLUME if "/" not in source and "." not in source else VolumeType.BIND
    return VolumeMount(source=source, target=target, read_only=read_only, type=kind)


def _parse_health(health: Any) -> HealthCheck:
    if not isinstance(health, dict):
        raise ValueError("expected a mapping with 'test'")
    test = health.get("test")
    if not test:
        raise ValueError("missing 'test'")
    if isinstance(test, str):
        test = ["CMD-SHELL", test]
    values = {"test": [str(t) for t in test]}
    for key in ("interval", "timeout", "start_period"):
        if health.get(key):
            values[key] = str(health[key])
    if health.get("retries"):
        values["retries"] = int(health["retries"])
    return HealthCheck(**values)


def _parse_environment(env: Any) -> Dict[str, str]:
    """
    Accepts a mapping or a list of ``KEY=value`` strings.

    :raises ValueError: For any other shape.
    """
    if not env:
        return {}
    if isinstance(env, list):
        result = {}
        for item in env:
            key, _, value = str(item).partition("=")
            result[key] = value
        return result
    if not isinstance(env, dict):
        raise ValueError(f"env must be a mapping or a list of KEY=value, got '{env}'")
    return {str(k): _scalar(v) for k, v in env.items()}


def _scalar(value: Any) -> str:
    # YAML booleans follow compose spelling
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _command(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def _to_list(val: Any) -> List[str]:
    """
    Helper to ensure a value is a list of strings.
    """
    if val is None:
        return []
    if isinstance(val, str):
        return [val]
    if not isinstance(val, (list, tuple, dict)):
        return [str(val)]
    return [str(v) if not isinstance(v, dict) else v for v in val]

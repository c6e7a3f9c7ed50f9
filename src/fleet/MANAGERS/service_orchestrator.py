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
Generation of an orchestration document from declared services.
"""
import logging
import re
from typing import Dict, List, Optional, Tuple

from ..errors import FleetError, GenerationError, GraphError, ValidationError
from ..MODELS.service_spec import ServiceSpec
from ..MODELS.orchestration_config import GlobalSettings
from ..MODELS.orchestration_document import OrchestrationDocument, ProxyRoute
from ..PROVIDERS.registry import ProviderRegistry, default_registry
from ..RUNNERS.dependency_resolver import DependencyGraphBuilder
from ..BUILDERS.document_builder import DocumentBuilder
from .shared_resource_manager import SharedResourceManager
from .environment_manager import EnvironmentManager
from .network_manager import NetworkManager
from .volume_manager import VolumeManager

logger = logging.getLogger(__name__)

SERVICE_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")


class ComposeOrchestrator:
    """
    Runs every stage of a generation: validation, deduplication, graph
    construction, environment injection and assembly.

    Each call to ``generate`` is independent; no state survives between runs.
    """
    def __init__(self, settings: Optional[GlobalSettings] = None, registry: Optional[ProviderRegistry] = None):
        """
        :param settings: Global settings; defaults apply when omitted.
        :param registry: Providers to use; the built-in set when omitted.
        """
        self.settings = settings or GlobalSettings()
        self.registry = registry or default_registry()

    def generate(self, specs: List[ServiceSpec]) -> Tuple[Optional[OrchestrationDocument], List[FleetError]]:
        """
        Generates the document for ``specs``.

        :param specs: Declared services, in the order they should appear.
        :return: The document and an empty list, or None and every error found.
        """
        logger.info("Generating document for %d service(s)", len(specs))

        errors = self.validate(specs)
        if errors:
            return self._failed(errors)

        specs = self.apply_auto_domains(specs)
        policy = self.settings.conflict_policy

        resources = SharedResourceManager(self.registry, policy)
        errors = resources.deduplicate(specs)
        if errors:
            return self._failed(errors)

        routes = self.proxy_routes(specs)
        errors = self._check_names(specs, resources)
        if errors:
            return self._failed(errors)

        entry_names = [spec.name for spec in specs] + [entry.name for entry in resources.entries]
        if routes:
            entry_names.append(self.settings.proxy_name)

        try:
            graph = DependencyGraphBuilder(self.settings.proxy_name).build(specs, resources.bindings, entry_names)
        except GraphError as e:
            return self._failed([e])

        environment_manager = EnvironmentManager(self.registry, policy)
        entries = {entry.name: entry for entry in resources.entries}
        by_name = {spec.name: spec for spec in specs}
        environments: Dict[str, Dict[str, str]] = {}
        for spec in specs:
            environments[spec.name] = environment_manager.get_merged_environment(
                spec, resources.bindings.get(spec.name, []), entries, by_name)

        try:
            document = DocumentBuilder(self.settings).build(specs, resources.entries, graph, environments, routes)
        except (FleetError, ValueError) as e:
            error = e if isinstance(e, FleetError) else FleetError(str(e))
            return self._failed([error])

        return document, []

    def _failed(self, errors: List[FleetError]) -> Tuple[None, List[FleetError]]:
        for error in errors:
            logger.error("%s", error)
        return None, errors

    # Validation

    def validate(self, specs: List[ServiceSpec]) -> List[FleetError]:
        """
        Checks settings and every service without materializing anything.

        :return: Every error found, in input order.
        """
        errors: List[FleetError] = list(NetworkManager(self.settings).validate())
        volume_manager = VolumeManager()
        names = [spec.name for spec in specs]
        seen = set()

        for spec in specs:
            if not SERVICE_NAME.match(spec.name or ""):
                errors.append(ValidationError(f"invalid service name '{spec.name}'", value=spec.name))
            if spec.name in seen:
                errors.append(ValidationError(f"duplicate service name '{spec.name}'", value=spec.name))
            seen.add(spec.name)
            if spec.name == self.settings.proxy_name:
                errors.append(ValidationError(
                    f"service name '{spec.name}' is reserved for the reverse proxy", value=spec.name))

            if not spec.image and not spec.build:
                errors.append(ValidationError("either image or build is required", service=spec.name))
            if spec.port is not None and not 0 < spec.port < 65536:
                errors.append(ValidationError(f"invalid port {spec.port}", value=str(spec.port), service=spec.name))
            if spec.ssl and not spec.domain and not self.settings.auto_domain_suffix:
                errors.append(ValidationError("ssl requires a domain", service=spec.name))

            for target in spec.depends_on:
                if target == spec.name:
                    errors.append(ValidationError("service depends on itself", value=target, service=spec.name))
                elif target not in names:
                    errors.append(GraphError(
                        f"service '{spec.name}' depends on unknown service '{target}'", target=target))

            errors.extend(volume_manager.validate(spec.volumes, spec.name))
            errors.extend(self._validate_resources(spec))

        return errors

    def _validate_resources(self, spec: ServiceSpec) -> List[FleetError]:
        errors: List[FleetError] = []
        kinds = set()
        for request in spec.resources:
            if request.kind in kinds:
                errors.append(ValidationError(
                    f"more than one {request.kind.value} request", value=request.raw, service=spec.name))
                continue
            kinds.add(request.kind)
            try:
                provider = self.registry.provider_for(request.kind, service=spec.name)
            except FleetError as e:
                errors.append(e)
                continue
            errors.extend(provider.validate(request, service=spec.name))
        return errors

    def _check_names(self, specs: List[ServiceSpec], resources: SharedResourceManager) -> List[FleetError]:
        errors: List[FleetError] = []
        names = {spec.name for spec in specs}
        for entry in resources.entries:
            if entry.name in names:
                errors.append(ValidationError(
                    f"service name '{entry.name}' collides with {entry.key} entry", value=entry.name))
        return errors

    # Domains and routes

    def apply_auto_domains(self, specs: List[ServiceSpec]) -> List[ServiceSpec]:
        """
        Gives every service with a port but no domain the domain
        ``{name}.{auto_domain_suffix}`` when a suffix is configured.
        Returns new specs; the inputs are left untouched.
        """
        suffix = self.settings.auto_domain_suffix
        if not suffix:
            return list(specs)

        result = []
        for spec in specs:
            if not spec.domain and (spec.port or spec.ports):
                domain = f"{spec.name}.{suffix.lstrip('.')}"
                logger.debug("Assigning domain %s to %s", domain, spec.name)
                spec = spec.model_copy(update={"domain": domain})
            result.append(spec)
        return result

    def proxy_routes(self, specs: List[ServiceSpec]) -> List[ProxyRoute]:
        routes = []
        for spec in specs:
            if spec.domain:
                routes.append(ProxyRoute(domain=spec.domain, service=spec.name,
                                         port=self.container_port(spec), ssl=spec.ssl))
        return routes

    @staticmethod
    def container_port(spec: ServiceSpec) -> int:
        """
        The port the proxy forwards to: ``port``, else the container side of
        the first ``ports`` mapping, else 80.
        """
        if spec.port:
            return spec.port
        for mapping in spec.ports:
            container = mapping.split(":")[-1].split("/")[0]
            if container.isdigit():
                return int(container)
        return 80


def generate(specs: List[ServiceSpec],
             settings: Optional[GlobalSettings] = None,
             registry: Optional[ProviderRegistry] = None) -> Tuple[Optional[OrchestrationDocument], List[FleetError]]:
    """
    Generates an orchestration document.

    :return: ``(document, [])`` on success, ``(None, errors)`` otherwise.
    """
    return ComposeOrchestrator(settings, registry).generate(specs)


def generate_or_raise(specs: List[ServiceSpec],
                      settings: Optional[GlobalSettings] = None,
                      registry: Optional[ProviderRegistry] = None) -> OrchestrationDocument:
    """
    Like ``generate`` but raises instead of returning errors.

    :raises GenerationError: Carrying every error found.
    """
    document, errors = generate(specs, settings, registry)
    if errors:
        raise GenerationError(errors)
    return document

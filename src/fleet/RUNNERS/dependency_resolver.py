"""
Dependency graph construction for the entries of an orchestration document.
"""
import logging
from typing import Dict, Iterable, List

from ..errors import GraphError
from ..MODELS.service_spec import ServiceSpec
from ..MODELS.orchestration_document import DependencyEdge, ResourceBinding

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Directed "depends on" edges between document entries.
    """
    def __init__(self, nodes: Iterable[str], edges: List[DependencyEdge]):
        self.nodes = list(nodes)
        self.edges = list(edges)

    def targets_of(self, source: str) -> List[str]:
        """
        Entries ``source`` depends on, in edge order, without duplicates.
        """
        targets = []
        for edge in self.edges:
            if edge.source == source and edge.target not in targets:
                targets.append(edge.target)
        return targets

    def sources_of(self, target: str) -> List[str]:
        return [edge.source for edge in self.edges if edge.target == target]

    def start_order(self) -> List[str]:
        """
        Determines the order to start entries using topological sort:
        every entry comes after the entries it depends on.

        :raises GraphError: If a cycle is detected.
        """
        ordered = []
        visited = set()

        # Iterative depth-first visit; path holds the chain being explored
        for root in self.nodes:
            if root in visited:
                continue
            path = [root]
            on_path = {root}
            pending = [iter(self.targets_of(root))]
            while pending:
                dep = next(pending[-1], None)
                if dep is None:
                    pending.pop()
                    name = path.pop()
                    on_path.discard(name)
                    visited.add(name)
                    ordered.append(name)
                elif dep in on_path:
                    cycle = path[path.index(dep):] + [dep]
                    raise GraphError(f"dependency cycle: {' -> '.join(cycle)}", cycle=cycle)
                elif dep not in visited:
                    path.append(dep)
                    on_path.add(dep)
                    pending.append(iter(self.targets_of(dep)))

        return ordered


class DependencyGraphBuilder:
    """
    Wires every service to the entries it needs.
    """
    def __init__(self, proxy_name: str = "nginx-proxy"):
        """
        :param proxy_name: Name of the reverse-proxy sidecar that services
            with a domain depend on.
        """
        self.proxy_name = proxy_name

    def edges_for(self, spec: ServiceSpec, bindings: List[ResourceBinding]) -> List[DependencyEdge]:
        """
        Edges of one service, in order: resource bindings, the proxy when
        the service has a domain, then explicit ``depends_on`` targets.
        """
        targets = [b.entry_name for b in bindings]
        if spec.domain:
            targets.append(self.proxy_name)
        targets.extend(spec.depends_on)

        edges = []
        for target in targets:
            edge = DependencyEdge(source=spec.name, target=target)
            if edge not in edges:
                edges.append(edge)
        return edges

    def build(self,
              specs: List[ServiceSpec],
              bindings: Dict[str, List[ResourceBinding]],
              entry_names: Iterable[str]) -> DependencyGraph:
        """
        Builds and checks the graph.

        :param specs: Declared services, in input order.
        :param bindings: Resource bindings per service name.
        :param entry_names: Every entry the document will contain.
        :return: The checked graph.
        :raises GraphError: If an edge targets a missing entry or a cycle exists.
        """
        nodes = list(entry_names)
        known = set(nodes)
        edges: List[DependencyEdge] = []

        for spec in specs:
            for edge in self.edges_for(spec, bindings.get(spec.name, [])):
                if edge.target not in known:
                    raise GraphError(
                        f"service '{edge.source}' depends on unknown entry '{edge.target}'",
                        target=edge.target)
                edges.append(edge)

        graph = DependencyGraph(nodes, edges)
        order = graph.start_order()
        logger.debug("Start order: %s", ", ".join(order))
        return graph

"""
Connection Mapper

Rebuilds workflow topology on the target platform.

n8n keeps explicit edges keyed by node name:
    connections["A"]["main"][output] = [{"node": "B", "type": "main", "index": 0}]

Make.com has no edges: module i feeds module i+1 in `flow`, and a router
holds one nested `flow` per branch in `routes[k]`.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple

import networkx as nx

from flowbridge.services.mapper.node_mapper import MAKE_ROUTER_TYPE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    """Directed edge between two source nodes, keyed by n8n name or Make.com id string."""
    source: str
    target: str
    output: int = 0


@dataclass
class ConnectionReport:
    """Counters and warnings of one topology conversion."""
    mapped: int = 0
    dropped: int = 0
    unrepresented: int = 0
    warnings: List[str] = field(default_factory=list)
    dangling: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def drop(self, message: str) -> None:
        """Record an edge whose endpoint does not resolve."""
        self.dropped += 1
        self.dangling.append(message)
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connectionsMapped": self.mapped,
            "connectionsDropped": self.dropped,
            "connectionsUnrepresented": self.unrepresented,
        }


class ConnectionMapper:
    """Reads source topology and writes it in the target platform's form."""

    # ==================== n8n source ====================

    def n8n_edges(self, connections: Any) -> List[Edge]:
        """Edges of an n8n `connections` mapping, in document order. Malformed parts are skipped."""
        edges: List[Edge] = []
        if not isinstance(connections, dict):
            return edges
        for source_name, by_type in connections.items():
            if not isinstance(by_type, dict):
                continue
            for connection_type, outputs in by_type.items():
                if connection_type != "main":
                    logger.debug(f"Ignoring '{connection_type}' connections of {source_name}")
                    continue
                for output, targets in enumerate(outputs or []):
                    for target in targets or []:
                        if isinstance(target, dict) and target.get("node") is not None:
                            edges.append(Edge(str(source_name), str(target["node"]), output))
        return edges

    def build_n8n_graph(
        self,
        node_names: List[str],
        connections: Any,
        report: Optional[ConnectionReport] = None,
    ) -> nx.DiGraph:
        """
        Directed graph over n8n node names.

        Edges with an endpoint that is not a node are dropped and counted in
        `report`.
        """
        graph = nx.DiGraph()
        for index, name in enumerate(node_names):
            graph.add_node(name, index=index)

        for edge in self.n8n_edges(connections):
            if not graph.has_node(edge.source) or not graph.has_node(edge.target):
                if report is not None:
                    missing = edge.target if graph.has_node(edge.source) else edge.source
                    report.drop(
                        f"Connection from '{edge.source}' to '{edge.target}' dropped: "
                        f"node '{missing}' not found"
                    )
                continue
            if graph.has_edge(edge.source, edge.target):
                graph.edges[edge.source, edge.target]["outputs"].append(edge.output)
            else:
                graph.add_edge(edge.source, edge.target, outputs=[edge.output])

        logger.debug(f"Built n8n graph: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges")
        return graph

    @staticmethod
    def first_predecessor(graph: nx.DiGraph, name: str) -> Optional[str]:
        """Predecessor that comes first in the source document."""
        if not graph.has_node(name):
            return None
        predecessors = sorted(graph.predecessors(name), key=lambda n: graph.nodes[n]["index"])
        return predecessors[0] if predecessors else None

    @staticmethod
    def _outputs(graph: nx.DiGraph, name: str) -> List[Tuple[int, str]]:
        """(output index, target) pairs ordered by output, then by target document position."""
        pairs = [
            (output, target)
            for target in graph.successors(name)
            for output in graph.edges[name, target]["outputs"]
        ]
        return sorted(pairs, key=lambda pair: (pair[0], graph.nodes[pair[1]]["index"]))

    def layout_make_flow(
        self,
        graph: nx.DiGraph,
        modules: Dict[str, Dict[str, Any]],
        report: ConnectionReport,
    ) -> List[Dict[str, Any]]:
        """
        Lay converted modules out as a Make.com flow.

        `modules` maps n8n node names to their converted modules, in source
        order. Routers get one route per output; other nodes keep their first
        branch inline and the remaining branches are appended at top level.
        """
        placed: Set[str] = set()
        pending: Deque[str] = deque()

        def chain(start: str) -> List[Dict[str, Any]]:
            result = []
            current: Optional[str] = start
            while current is not None and current not in placed:
                placed.add(current)
                module = modules[current]
                result.append(module)
                outputs = self._outputs(graph, current)

                if module.get("module") == MAKE_ROUTER_TYPE:
                    self._fill_routes(current, module, outputs, chain, placed, report)
                    break

                current = None
                for _, target in outputs:
                    if target == current:
                        continue
                    if target in placed:
                        self._unrepresented(module, target, report)
                    elif current is None:
                        current = target
                        report.mapped += 1
                    else:
                        pending.append(target)
                        report.unrepresented += 1
                        report.warn(
                            f"Branch from '{self._label(module)}' to '{target}' cannot stay connected "
                            f"in a Make.com flow; it was appended at top level"
                        )
            return result

        flow: List[Dict[str, Any]] = []
        roots = [name for name in modules if graph.has_node(name) and graph.in_degree(name) == 0]
        for name in roots + list(modules):
            if name in placed:
                continue
            flow.extend(chain(name))
            while pending:
                target = pending.popleft()
                if target not in placed:
                    flow.extend(chain(target))
        return flow

    def _fill_routes(
        self,
        name: str,
        router: Dict[str, Any],
        outputs: List[Tuple[int, str]],
        chain: Callable[[str], List[Dict[str, Any]]],
        placed: Set[str],
        report: ConnectionReport,
    ) -> None:
        routes = router.setdefault("routes", [])
        used: Set[int] = set()
        for output, target in outputs:
            if target in placed:
                self._unrepresented(router, target, report)
                continue
            if output in used:
                routes.append({"flow": chain(target)})
            else:
                while len(routes) <= output:
                    routes.append({"flow": []})
                routes[output]["flow"] = chain(target)
                used.add(output)
            report.mapped += 1
        logger.debug(f"Router {name} laid out with {len(routes)} routes")

    def _unrepresented(self, source: Dict[str, Any], target: str, report: ConnectionReport) -> None:
        report.unrepresented += 1
        report.warn(
            f"Connection from '{self._label(source)}' to '{target}' cannot be represented "
            f"in a Make.com flow; '{target}' is already placed"
        )

    @staticmethod
    def _label(module: Dict[str, Any]) -> str:
        designer = (module.get("metadata") or {}).get("designer") or {}
        return str(designer.get("name") or module.get("id"))

    # ==================== Make.com source ====================

    def flatten_make_flow(self, flow: Any) -> List[Dict[str, Any]]:
        """Every module of a flow, depth first: a router is followed by its route modules."""
        modules: List[Dict[str, Any]] = []
        for module in flow if isinstance(flow, list) else []:
            if not isinstance(module, dict):
                continue
            modules.append(module)
            for route in module.get("routes") or []:
                if isinstance(route, dict):
                    modules.extend(self.flatten_make_flow(route.get("flow")))
        return modules

    def make_edges(self, flow: Any) -> List[Edge]:
        """Edges implied by flow order and router routes (branch k on output k)."""
        edges: List[Edge] = []
        self._collect_make_edges(flow, edges)
        return edges

    def _collect_make_edges(self, flow: Any, edges: List[Edge]) -> None:
        previous: Optional[Tuple[str, int]] = None
        for module in flow if isinstance(flow, list) else []:
            if not isinstance(module, dict):
                continue
            module_id = str(module.get("id"))
            if previous is not None:
                edges.append(Edge(previous[0], module_id, previous[1]))

            routes = module.get("routes")
            if isinstance(routes, list) and routes:
                for k, route in enumerate(routes):
                    route_flow = route.get("flow") if isinstance(route, dict) else None
                    first = next((m for m in route_flow or [] if isinstance(m, dict)), None)
                    if first is None:
                        continue
                    edges.append(Edge(module_id, str(first.get("id")), k))
                    self._collect_make_edges(route_flow, edges)
                # A module placed after a router in the same flow hangs off an extra output
                previous = (module_id, len(routes))
            else:
                previous = (module_id, 0)

    def build_n8n_connections(
        self,
        edges: List[Edge],
        names: Dict[str, str],
        report: ConnectionReport,
    ) -> Dict[str, Dict[str, List[List[Dict[str, Any]]]]]:
        """
        n8n `connections` from Make.com edges.

        `names` maps source module id strings to converted n8n node names;
        edges with an endpoint missing from it are dropped.
        """
        connections: Dict[str, Dict[str, List[List[Dict[str, Any]]]]] = {}
        for edge in edges:
            source = names.get(edge.source)
            target = names.get(edge.target)
            if source is None or target is None:
                report.drop(
                    f"Connection from module {edge.source} to module {edge.target} dropped: "
                    f"endpoint was not converted"
                )
                continue
            outputs = connections.setdefault(source, {"main": []})["main"]
            while len(outputs) <= edge.output:
                outputs.append([])
            outputs[edge.output].append({"node": target, "type": "main", "index": 0})
            report.mapped += 1
        return connections

"""
Debug Tracker

Per-conversion record of what happened to every node, summarized into the
`debug` section of a conversion result.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flowbridge.models.workflow_models import Direction, MappingStatus

logger = logging.getLogger(__name__)


@dataclass
class NodeMappingDetail:
    """How one source node was converted."""
    source_id: Any
    source_name: str
    source_type: str
    status: MappingStatus
    target_id: Any = None
    target_type: Optional[str] = None
    origin: Optional[str] = None
    unmapped_parameters: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "sourceId": self.source_id,
            "sourceName": self.source_name,
            "sourceType": self.source_type,
            "targetId": self.target_id,
            "targetType": self.target_type,
            "mappingStatus": self.status.value,
            "unmappedParameters": list(self.unmapped_parameters),
            "warnings": list(self.warnings),
        }
        if self.origin:
            result["mappingSource"] = self.origin
        return result


class DebugTracker:
    """Collects node details and timing for one conversion call."""

    def __init__(self, direction: Direction):
        self.direction = Direction(direction)
        self.details: List[NodeMappingDetail] = []
        self._by_source: Dict[str, NodeMappingDetail] = {}
        self._start: Optional[float] = None
        self._duration_ms: Optional[int] = None

    def start_timing(self) -> "DebugTracker":
        self._start = time.perf_counter()
        return self

    def finish_timing(self) -> int:
        """Stop the clock and return the elapsed milliseconds."""
        if self._start is None:
            return 0
        self._duration_ms = int(round((time.perf_counter() - self._start) * 1000))
        return self._duration_ms

    def track_node(
        self,
        key: str,
        source_node: Dict[str, Any],
        status: MappingStatus,
        target_node: Optional[Dict[str, Any]] = None,
        origin: Optional[str] = None,
        unmapped_parameters: Optional[List[str]] = None,
    ) -> NodeMappingDetail:
        source_type = source_node.get("type") or source_node.get("module") or "unknown"
        detail = NodeMappingDetail(
            source_id=source_node.get("id"),
            source_name=self._source_name(source_node),
            source_type=str(source_type),
            status=status,
            target_id=(target_node or {}).get("id"),
            target_type=(target_node or {}).get("type") or (target_node or {}).get("module"),
            origin=origin,
            unmapped_parameters=list(unmapped_parameters or []),
        )
        self.details.append(detail)
        self._by_source[key] = detail
        return detail

    def add_warning(self, key: str, message: str) -> None:
        detail = self._by_source.get(key)
        if detail is not None:
            detail.warnings.append(message)

    def count(self, status: MappingStatus) -> int:
        return sum(1 for detail in self.details if detail.status == status)

    def plugin_usage(self) -> Dict[str, int]:
        usage: Dict[str, int] = {}
        for detail in self.details:
            if detail.origin and detail.origin.startswith("plugin:"):
                plugin_id = detail.origin.split(":", 1)[1]
                usage[plugin_id] = usage.get(plugin_id, 0) + 1
        return usage

    def report(self, target_node_count: int, connections: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """The `debug` section of a conversion result."""
        full = self.count(MappingStatus.FULL)
        partial = self.count(MappingStatus.PARTIAL)
        total = len(self.details)
        report = {
            "direction": self.direction.value,
            "sourcePlatform": self.direction.source.value,
            "targetPlatform": self.direction.target.value,
            "sourceNodeCount": total,
            "targetNodeCount": target_node_count,
            "mappedNodes": full + partial,
            "fullyMappedNodes": full,
            "partiallyMappedNodes": partial,
            "stubNodes": self.count(MappingStatus.STUB),
            "failedNodes": self.count(MappingStatus.FAILED),
            "successRate": round((full + partial) / total * 100) if total else 0,
            "pluginUsage": self.plugin_usage(),
            "nodes": [detail.to_dict() for detail in self.details],
        }
        report.update(connections or {})
        if self._duration_ms is not None:
            report["durationMs"] = self._duration_ms
        return report

    @staticmethod
    def _source_name(source_node: Dict[str, Any]) -> str:
        if source_node.get("name"):
            return str(source_node["name"])
        designer = (source_node.get("metadata") or {}).get("designer") or {}
        return str(designer.get("name") or f"Node {source_node.get('id')}")

"""
Node Mapping Resolver.

Exact, case-sensitive lookup of a node type in the combined mapping tables.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from flowbridge.core.errors import UnmappedTypeError
from flowbridge.models.workflow_models import Direction, NodeMappingEntry
from flowbridge.services.mappings.mapping_database import MappingTables

logger = logging.getLogger(__name__)

TablesLike = Union[MappingTables, Mapping[Any, Mapping[str, NodeMappingEntry]]]


def _as_tables(tables: TablesLike) -> MappingTables:
    if isinstance(tables, MappingTables):
        return tables
    return MappingTables.from_tables(dict(tables))


class NodeMappingResolver:
    """
    Resolves source node types to mapping entries.

    Entries whose accuracy is below `min_accuracy` are treated as not found.
    """

    def __init__(self, tables: TablesLike, min_accuracy: int = 0):
        self.tables = _as_tables(tables)
        self.min_accuracy = max(0, min(100, int(min_accuracy)))

    def resolve(self, source_type: Any, direction: Direction) -> Optional[NodeMappingEntry]:
        if not isinstance(source_type, str) or not source_type:
            return None
        entry = self.tables.for_direction(direction).get(source_type)
        if entry is None:
            return None
        if entry.accuracy < self.min_accuracy:
            logger.debug(
                f"Mapping {source_type} -> {entry.target_type} skipped: "
                f"accuracy {entry.accuracy} below {self.min_accuracy}"
            )
            return None
        return entry

    def require(self, source_type: str, direction: Direction) -> NodeMappingEntry:
        """Like `resolve`, but raises UnmappedTypeError when nothing is found."""
        entry = self.resolve(source_type, direction)
        if entry is None:
            raise UnmappedTypeError(
                f"No {Direction(direction).value} mapping for node type '{source_type}'",
                node_type=str(source_type),
            )
        return entry

    def supported_types(self, direction: Direction) -> List[str]:
        return [
            source_type
            for source_type, entry in self.tables.for_direction(direction).items()
            if entry.accuracy >= self.min_accuracy
        ]


def check_round_trip_consistency(tables: TablesLike) -> List[str]:
    """
    Violations of the round-trip rule: when T1 maps to T2 and T2 is itself a
    source in the reverse table, T2 must map back to T1.

    Returns a human readable message per violation; an empty list means the
    tables are consistent.
    """
    tables = _as_tables(tables)
    violations = []
    for direction in Direction:
        forward = tables.for_direction(direction)
        backward = tables.for_direction(direction.reverse())
        for source_type, entry in forward.items():
            reverse = backward.get(entry.target_type)
            if reverse is not None and reverse.target_type != source_type:
                violations.append(
                    f"{direction.value}: {source_type} -> {entry.target_type} "
                    f"maps back to {reverse.target_type}"
                )
    return violations


def describe_entry(entry: Optional[NodeMappingEntry]) -> Dict[str, Any]:
    """Wire form of an entry plus its origin, for reports."""
    if entry is None:
        return {}
    result = entry.to_dict()
    result["origin"] = entry.origin
    return result

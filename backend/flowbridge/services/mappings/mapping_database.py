"""
Mapping Database.

Combines base, plugin and user mappings into one read-only snapshot per
direction. Precedence on the same source type: user > plugin > base.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from flowbridge.models.workflow_models import Direction, NodeMappingEntry
from flowbridge.services.mappings.base_mappings import BaseMappingRegistry, get_base_registry
from flowbridge.services.mappings.plugins.registry import PluginRegistry, get_plugin_registry
from flowbridge.services.mappings.user_mappings import UserMappingStore, get_user_mapping_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingTables:
    """Immutable combined mapping tables."""
    n8n_to_make: Mapping[str, NodeMappingEntry]
    make_to_n8n: Mapping[str, NodeMappingEntry]

    def for_direction(self, direction: Direction) -> Mapping[str, NodeMappingEntry]:
        if Direction(direction) == Direction.N8N_TO_MAKE:
            return self.n8n_to_make
        return self.make_to_n8n

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Wire form: {"n8nToMake": {source: {type, parameterMap, ...}}, "makeToN8n": {...}}"""
        return {
            Direction.N8N_TO_MAKE.value: {k: v.to_dict() for k, v in self.n8n_to_make.items()},
            Direction.MAKE_TO_N8N.value: {k: v.to_dict() for k, v in self.make_to_n8n.items()},
        }

    def counts(self) -> Dict[str, int]:
        return {
            Direction.N8N_TO_MAKE.value: len(self.n8n_to_make),
            Direction.MAKE_TO_N8N.value: len(self.make_to_n8n),
        }

    @classmethod
    def from_tables(cls, tables: Dict[Any, Dict[str, NodeMappingEntry]]) -> "MappingTables":
        """Freeze plain dict tables keyed by Direction or direction name."""
        def table(direction: Direction) -> Mapping[str, NodeMappingEntry]:
            data = tables.get(direction, tables.get(direction.value, {}))
            return MappingProxyType(dict(data))
        return cls(table(Direction.N8N_TO_MAKE), table(Direction.MAKE_TO_N8N))


class MappingDatabase:
    """Builds and caches the combined mapping snapshot."""

    def __init__(
        self,
        base: Optional[BaseMappingRegistry] = None,
        plugins: Optional[PluginRegistry] = None,
        user_store: Optional[UserMappingStore] = None,
    ):
        self.base = base or get_base_registry()
        self.plugins = plugins
        self.user_store = user_store
        self._snapshot: Optional[MappingTables] = None
        self._snapshot_key: Optional[Tuple[int, int]] = None

    def _version_key(self) -> Tuple[int, int]:
        return (
            self.plugins.version if self.plugins is not None else -1,
            self.user_store.version if self.user_store is not None else -1,
        )

    def build(self) -> MappingTables:
        """Merge base < plugin < user into a new snapshot."""
        tables: Dict[Direction, Dict[str, NodeMappingEntry]] = {}
        plugin_tables = self.plugins.get_node_mappings() if self.plugins is not None else {}
        for direction in Direction:
            combined: Dict[str, NodeMappingEntry] = {
                entry.source_type: entry for entry in self.base.entries(direction)
            }
            combined.update(plugin_tables.get(direction, {}))
            if self.user_store is not None:
                combined.update(self.user_store.get_mappings_for_direction(direction))
            tables[direction] = combined
        snapshot = MappingTables.from_tables(tables)
        logger.debug(f"Built mapping snapshot: {snapshot.counts()}")
        return snapshot

    def snapshot(self) -> MappingTables:
        """Cached snapshot, rebuilt when plugins or user mappings change."""
        key = self._version_key()
        if self._snapshot is None or key != self._snapshot_key:
            self._snapshot = self.build()
            self._snapshot_key = key
        return self._snapshot


# Global database instance
_database: Optional[MappingDatabase] = None


def get_mapping_database() -> MappingDatabase:
    """Get the global mapping database over the global registries and user store."""
    global _database
    if _database is None:
        _database = MappingDatabase(
            base=get_base_registry(),
            plugins=get_plugin_registry(),
            user_store=get_user_mapping_store(),
        )
    return _database

"""
User Mapping Store.

User-defined node mappings persisted to a YAML or JSON file (chosen by the
file extension). User mappings override plugin and base mappings for the
same source type.
"""
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from flowbridge.core.config import settings
from flowbridge.core.errors import ErrorCode, ErrorContext, FileError, MappingConfigError
from flowbridge.models.workflow_models import Direction, NodeMappingEntry

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("sourceType", "targetType", "direction", "parameterMap")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class UserMapping:
    """A node mapping defined by the user."""
    id: str
    name: str
    source_type: str
    target_type: str
    direction: Direction
    parameter_map: Union[Dict[str, str], str] = field(default_factory=dict)
    description: Optional[str] = None
    transforms: Dict[str, str] = field(default_factory=dict)
    created_at: int = field(default_factory=_now_ms)
    updated_at: int = field(default_factory=_now_ms)

    def resolved_parameter_map(self) -> Dict[str, str]:
        """Parameter map as a dict; a JSON string that fails to parse gives {}."""
        if isinstance(self.parameter_map, dict):
            return dict(self.parameter_map)
        try:
            parsed = json.loads(self.parameter_map)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to parse parameter map for {self.name}: {e}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def to_entry(self) -> NodeMappingEntry:
        return NodeMappingEntry(
            source_type=self.source_type,
            target_type=self.target_type,
            parameter_map=self.resolved_parameter_map(),
            transforms=dict(self.transforms),
            display_name=self.name,
            description=self.description,
            user_defined=True,
            origin="user",
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "name": self.name,
            "sourceType": self.source_type,
            "targetType": self.target_type,
            "direction": self.direction.value,
            "parameterMap": self.parameter_map,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.description:
            result["description"] = self.description
        if self.transforms:
            result["transforms"] = dict(self.transforms)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserMapping":
        validate_mapping_data(data)
        return cls(
            id=data.get("id") or _new_id(),
            name=data.get("name") or data["sourceType"],
            source_type=data["sourceType"],
            target_type=data["targetType"],
            direction=Direction(data["direction"]),
            parameter_map=data["parameterMap"],
            description=data.get("description"),
            transforms=dict(data.get("transforms") or {}),
            created_at=int(data.get("createdAt") or _now_ms()),
            updated_at=int(data.get("updatedAt") or _now_ms()),
        )


def _new_id() -> str:
    return f"user-mapping-{_now_ms()}-{uuid.uuid4().hex[:9]}"


def validate_mapping_data(data: Any) -> None:
    """Raise MappingConfigError when a user mapping record is incomplete."""
    if not isinstance(data, dict):
        raise MappingConfigError("Invalid mapping: expected an object")
    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise MappingConfigError(
            f"Invalid mapping: missing required fields {', '.join(missing)}",
            context=ErrorContext(node_type=data.get("sourceType"), additional={"missing": missing}),
        )
    if data["direction"] not in [d.value for d in Direction]:
        raise MappingConfigError(
            f"Invalid mapping direction '{data['direction']}'",
            context=ErrorContext(node_type=data.get("sourceType")),
        )
    if not isinstance(data["parameterMap"], (dict, str)):
        raise MappingConfigError(
            "Invalid mapping: parameterMap must be an object or a JSON string",
            context=ErrorContext(node_type=data.get("sourceType")),
        )


class UserMappingStore:
    """
    CRUD store for user mappings.

    Without a path the store only lives in memory.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._mappings: List[UserMapping] = []
        # Bumped on every change so cached mapping snapshots can be invalidated
        self.version = 0
        if self.path is not None and self.path.exists():
            try:
                self._mappings = self._load()
            except FileError as e:
                logger.error(f"Ignoring user mappings file: {e}")

    # ==================== Persistence ====================

    @property
    def _is_yaml(self) -> bool:
        return self.path is not None and self.path.suffix.lower() in (".yaml", ".yml")

    def _load(self) -> List[UserMapping]:
        try:
            text = self.path.read_text(encoding="utf-8")
            data = yaml.safe_load(text) if self._is_yaml else json.loads(text or "[]")
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise FileError(
                f"Cannot read user mappings: {e}",
                file_path=str(self.path),
                code=ErrorCode.FILE_INVALID_FORMAT,
                cause=e,
            )
        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("mappings") or []
        if not isinstance(data, list):
            raise FileError(
                "User mappings file must contain a list of mappings",
                file_path=str(self.path),
                code=ErrorCode.FILE_INVALID_FORMAT,
            )
        try:
            return [UserMapping.from_dict(item) for item in data]
        except MappingConfigError as e:
            raise FileError(
                f"Invalid user mapping in file: {e.message}",
                file_path=str(self.path),
                code=ErrorCode.FILE_INVALID_FORMAT,
                cause=e,
            )

    def _save(self) -> None:
        self.version += 1
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self._dump(self._is_yaml), encoding="utf-8")
        logger.debug(f"Saved {len(self._mappings)} user mappings to {self.path}")

    def _dump(self, as_yaml: bool) -> str:
        records = [mapping.to_dict() for mapping in self._mappings]
        if as_yaml:
            return yaml.safe_dump({"mappings": records}, sort_keys=False, allow_unicode=True)
        return json.dumps(records, indent=2, ensure_ascii=False)

    # ==================== CRUD ====================

    def get_mappings(self) -> List[UserMapping]:
        return list(self._mappings)

    def get_mapping(self, mapping_id: str) -> Optional[UserMapping]:
        return next((m for m in self._mappings if m.id == mapping_id), None)

    def get_mappings_for_direction(self, direction: Direction) -> Dict[str, NodeMappingEntry]:
        """Entries keyed by source type; later records win on the same source type."""
        direction = Direction(direction)
        return {
            mapping.source_type: mapping.to_entry()
            for mapping in self._mappings
            if mapping.direction == direction
        }

    def save_mapping(self, data: Dict[str, Any]) -> UserMapping:
        """Create a mapping with a new id and timestamps."""
        record = {k: v for k, v in data.items() if k not in ("id", "createdAt", "updatedAt")}
        mapping = UserMapping.from_dict(record)
        self._mappings.append(mapping)
        self._save()
        logger.info(f"Saved user mapping {mapping.id}: {mapping.source_type} -> {mapping.target_type}")
        return mapping

    def update_mapping(self, mapping_id: str, updates: Dict[str, Any]) -> Optional[UserMapping]:
        current = self.get_mapping(mapping_id)
        if current is None:
            return None
        merged = {**current.to_dict(), **updates}
        merged["id"] = current.id
        merged["createdAt"] = current.created_at
        merged["updatedAt"] = _now_ms()
        updated = UserMapping.from_dict(merged)
        self._mappings[self._mappings.index(current)] = updated
        self._save()
        return updated

    def delete_mapping(self, mapping_id: str) -> bool:
        remaining = [m for m in self._mappings if m.id != mapping_id]
        if len(remaining) == len(self._mappings):
            return False
        self._mappings = remaining
        self._save()
        return True

    def clear(self) -> None:
        self._mappings = []
        self._save()

    # ==================== Import / Export ====================

    def export_mappings(self, as_yaml: bool = False) -> str:
        return self._dump(as_yaml)

    def import_mappings(self, text: str) -> int:
        """
        Replace all mappings with the ones in `text` (JSON list or YAML).

        Nothing is changed when any record is invalid.
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MappingConfigError(f"Invalid mappings document: {e}", cause=e)
        if isinstance(data, dict):
            data = data.get("mappings")
        if not isinstance(data, list):
            raise MappingConfigError("Invalid mappings format: expected an array")
        mappings = [UserMapping.from_dict(item) for item in data]
        self._mappings = mappings
        self._save()
        return len(mappings)


# Global store instance
_store: Optional[UserMappingStore] = None


def get_user_mapping_store() -> UserMappingStore:
    """Get the global user mapping store backed by the configured file."""
    global _store
    if _store is None:
        _store = UserMappingStore(settings.user_mappings_path)
    return _store

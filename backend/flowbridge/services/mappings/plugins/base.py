"""
Converter plugin interface.

A plugin contributes node mappings for both directions and may hook into a
conversion run. Hooks receive the freshly built target objects and return
them; source workflows and source nodes are read only.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from flowbridge.models.workflow_models import Direction


class ConverterPlugin(ABC):
    """Base class for converter plugins."""

    id: str = ""
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str = "flowbridge"

    @abstractmethod
    def get_node_mappings(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """
        Mappings in wire form:
            {"n8nToMake": {source_type: {"type": ..., "parameterMap": {...}}},
             "makeToN8n": {...}}
        """

    def before_conversion(self, workflow: Dict[str, Any], direction: Direction) -> Dict[str, Any]:
        return workflow

    def after_node_mapping(
        self,
        source_node: Dict[str, Any],
        target_node: Dict[str, Any],
        direction: Direction,
    ) -> Dict[str, Any]:
        return target_node

    def after_conversion(self, workflow: Dict[str, Any], direction: Direction) -> Dict[str, Any]:
        return workflow

    def to_dict(self) -> Dict[str, Any]:
        mappings = self.get_node_mappings()
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "mappingCount": {key: len(value) for key, value in mappings.items()},
        }

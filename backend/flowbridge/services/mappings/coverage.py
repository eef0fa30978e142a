"""
Mapping coverage report.

Measures how many commonly used node and module types the combined mapping
tables can convert.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from flowbridge.models.workflow_models import Direction
from flowbridge.services.mappings.base_mappings import CONDITION_NODE_OUTPUTS, N8N_ROUTER_TYPE
from flowbridge.services.mappings.mapping_database import MappingTables

COMMON_N8N_TYPES = [
    "n8n-nodes-base.httpRequest",
    "n8n-nodes-base.set",
    "n8n-nodes-base.function",
    "n8n-nodes-base.code",
    "n8n-nodes-base.if",
    "n8n-nodes-base.switch",
    "n8n-nodes-base.gmail",
    "n8n-nodes-base.googleSheets",
    "n8n-nodes-base.slack",
    "n8n-nodes-base.webhook",
    "n8n-nodes-base.emailSend",
    "n8n-nodes-base.merge",
    "n8n-nodes-base.splitInBatches",
    "n8n-nodes-base.openWeatherMap",
    "n8n-nodes-base.notion",
    "n8n-nodes-base.airtable",
    "n8n-nodes-base.trello",
    "n8n-nodes-base.github",
    "n8n-nodes-base.jira",
    "n8n-nodes-base.salesforce",
]

COMMON_MAKE_TYPES = [
    "http:ActionSendData",
    "google-email:ActionSendEmail",
    "google-sheets:addRow",
    "builtin:BasicRouter",
    "webhooks:CustomWebhook",
    "helper:TriggerApp",
    "weather:ActionGetCurrentWeather",
    "slack:CreateMessage",
    "notion:ActionCreateDatabaseItem",
    "airtable:ActionCreateRecord",
    "trello:ActionCreateCard",
    "github:CreateIssue",
    "jira:CreateIssue",
    "salesforce:ActionCreateRecord",
    "util:SetVariables",
]


@dataclass
class CoverageResult:
    """Coverage of one direction."""
    direction: Direction
    mapped: List[str] = field(default_factory=list)
    unmapped: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.mapped) + len(self.unmapped)

    @property
    def percentage(self) -> int:
        if not self.total:
            return 0
        return round(len(self.mapped) / self.total * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "totalNodeTypes": self.total,
            "mappedNodeTypes": len(self.mapped),
            "unmappedNodeTypes": len(self.unmapped),
            "coveragePercentage": self.percentage,
            "unmappedNodes": list(self.unmapped),
        }


class CoverageValidator:
    """Checks the combined tables against lists of common types."""

    def __init__(self, tables: MappingTables):
        self.tables = tables

    def validate(self, direction: Direction, node_types: Optional[Sequence[str]] = None) -> CoverageResult:
        direction = Direction(direction)
        if node_types is None:
            node_types = COMMON_N8N_TYPES if direction == Direction.N8N_TO_MAKE else COMMON_MAKE_TYPES
        table = self.tables.for_direction(direction)
        result = CoverageResult(direction)
        for node_type in node_types:
            mapped = node_type in table
            if not mapped and direction == Direction.N8N_TO_MAKE and node_type in CONDITION_NODE_OUTPUTS:
                # converted through the switch mapping
                mapped = N8N_ROUTER_TYPE in table
            (result.mapped if mapped else result.unmapped).append(node_type)
        return result

    def validate_n8n_coverage(self) -> CoverageResult:
        return self.validate(Direction.N8N_TO_MAKE)

    def validate_make_coverage(self) -> CoverageResult:
        return self.validate(Direction.MAKE_TO_N8N)

    def report(self) -> Dict[str, Any]:
        return {
            Direction.N8N_TO_MAKE.value: self.validate_n8n_coverage().to_dict(),
            Direction.MAKE_TO_N8N.value: self.validate_make_coverage().to_dict(),
        }

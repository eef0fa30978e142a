"""
Converter Package.

Whole-workflow conversion between n8n and Make.com.
"""
from flowbridge.services.converter.connection_mapper import ConnectionMapper, ConnectionReport, Edge
from flowbridge.services.converter.debug_tracker import DebugTracker
from flowbridge.services.converter.node_analyzer import NodeAnalyzer
from flowbridge.services.converter.orchestrator import (
    WorkflowConverter,
    convert,
    empty_workflow,
    get_workflow_converter,
)
from flowbridge.services.converter.platform_detector import detect_platform, normalize_make_document

__all__ = [
    "ConnectionMapper",
    "ConnectionReport",
    "DebugTracker",
    "Edge",
    "NodeAnalyzer",
    "WorkflowConverter",
    "convert",
    "detect_platform",
    "empty_workflow",
    "get_workflow_converter",
    "normalize_make_document",
]

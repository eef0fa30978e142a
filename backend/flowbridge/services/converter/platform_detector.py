"""
Platform detection for workflow documents.

Shape rules:
    Make.com  {"flow": [...]}  (or the legacy {"blueprint": {...}, "modules": [...]})
    n8n       {"nodes": [...], "connections": {...}}
"""
import logging
from typing import Any, Dict, Optional

from flowbridge.models.workflow_models import Platform

logger = logging.getLogger(__name__)


def is_legacy_make_document(document: Any) -> bool:
    return (
        isinstance(document, dict)
        and isinstance(document.get("blueprint"), dict)
        and isinstance(document.get("modules"), list)
    )


def detect_platform(document: Any) -> Optional[Platform]:
    """Platform a document belongs to, or None when the shape matches neither."""
    if not isinstance(document, dict):
        return None
    if isinstance(document.get("flow"), list) or is_legacy_make_document(document):
        return Platform.MAKE
    if isinstance(document.get("nodes"), list) and isinstance(document.get("connections"), dict):
        return Platform.N8N
    return None


def normalize_make_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rewrite the legacy blueprint export into the current `{name, flow}` form.

    Current documents are returned as they are. The input is never modified.
    """
    if not is_legacy_make_document(document):
        return document
    logger.info("Normalizing legacy Make.com blueprint document")
    normalized = {key: value for key, value in document.items() if key not in ("blueprint", "modules")}
    normalized["name"] = document["blueprint"].get("name") or "Legacy Workflow"
    normalized["flow"] = document["modules"]
    if "metadata" not in normalized and isinstance(document["blueprint"].get("metadata"), dict):
        normalized["metadata"] = document["blueprint"]["metadata"]
    return normalized

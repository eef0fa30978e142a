"""
Validation Module.

Provides:
- workflow_validator: structural validation of n8n and Make.com documents
"""
from .workflow_validator import (
    validate_workflow,
    WorkflowValidator,
    ValidationResult,
    ValidationIssue,
    ValidationLevel
)

__all__ = [
    "validate_workflow",
    "WorkflowValidator",
    "ValidationResult",
    "ValidationIssue",
    "ValidationLevel",
]

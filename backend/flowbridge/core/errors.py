"""
Structured Error Handling for the workflow converter.

Provides:
- Error codes for every conversion error kind
- Custom exception hierarchy
- Error context capture
- A handler that records errors raised at the edges (API, CLI, stores)

Inside a conversion none of these kinds is fatal: the orchestrator recovers
locally and reports them through the conversion log.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Standardized error codes."""
    # Input errors (1xxx)
    INVALID_INPUT = "E1001"
    INVALID_SHAPE = "E1002"
    UNSUPPORTED_PLATFORM = "E1003"
    UNSUPPORTED_DIRECTION = "E1004"
    DOCUMENT_TOO_LARGE = "E1005"

    # Mapping errors (2xxx)
    UNMAPPED_TYPE = "E2001"
    MAPPING_CONFIG = "E2002"
    MAPPING_NOT_FOUND = "E2003"

    # Expression errors (3xxx)
    AMBIGUOUS_EXPRESSION = "E3001"

    # Topology errors (4xxx)
    DANGLING_CONNECTION = "E4001"

    # Node conversion errors (5xxx)
    NODE_CONVERSION_FAILED = "E5001"

    # File errors (6xxx)
    FILE_NOT_FOUND = "E6001"
    FILE_INVALID_FORMAT = "E6002"

    # Unknown
    UNKNOWN = "E9999"


@dataclass
class ErrorContext:
    """Captured context when error occurred."""
    node_id: Optional[str] = None
    node_name: Optional[str] = None
    node_type: Optional[str] = None
    parameter_path: Optional[str] = None
    file_path: Optional[str] = None
    additional: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        if self.node_id:
            result["node_id"] = self.node_id
        if self.node_name:
            result["node_name"] = self.node_name
        if self.node_type:
            result["node_type"] = self.node_type
        if self.parameter_path:
            result["parameter_path"] = self.parameter_path
        if self.file_path:
            result["file_path"] = self.file_path
        if self.additional:
            result.update(self.additional)
        return result


class ConverterError(Exception):
    """Base exception for all converter errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestion: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = recoverable
        self.suggestion = suggestion
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "suggestion": self.suggestion,
            "context": self.context.to_dict(),
            "timestamp": self.timestamp.isoformat()
        }

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InvalidInputError(ConverterError):
    """Source document is missing, empty or of the wrong shape."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INVALID_INPUT, **kwargs):
        super().__init__(
            message=message,
            code=code,
            suggestion="Provide an exported n8n workflow or Make.com scenario blueprint",
            **kwargs
        )


class UnsupportedDirectionError(ConverterError):
    """Source and target platforms are the same or unknown."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            code=ErrorCode.UNSUPPORTED_DIRECTION,
            recoverable=True,
            suggestion="Choose different source and target platforms",
            **kwargs
        )


class UnmappedTypeError(ConverterError):
    """No mapping entry exists for a node or module type."""

    def __init__(self, message: str, node_type: str, context: Optional[ErrorContext] = None, **kwargs):
        ctx = context or ErrorContext()
        ctx.node_type = node_type
        super().__init__(
            message=message,
            code=ErrorCode.UNMAPPED_TYPE,
            context=ctx,
            recoverable=True,
            suggestion="A placeholder will be created; add a custom mapping for this type",
            **kwargs
        )


class AmbiguousExpressionError(ConverterError):
    """Expression body falls outside the supported grammar."""

    def __init__(self, message: str, expression: str, **kwargs):
        ctx = ErrorContext(additional={"expression": expression})
        super().__init__(
            message=message,
            code=ErrorCode.AMBIGUOUS_EXPRESSION,
            context=ctx,
            recoverable=True,
            suggestion="Review the expression manually after conversion",
            **kwargs
        )


class MappingConfigError(ConverterError):
    """User-defined or plugin mapping data is malformed."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        super().__init__(
            message=message,
            code=ErrorCode.MAPPING_CONFIG,
            context=context,
            suggestion="Check sourceType, targetType, direction and parameterMap fields",
            **kwargs
        )


class FileError(ConverterError):
    """Error with file operations."""

    def __init__(self, message: str, file_path: str, code: ErrorCode = ErrorCode.FILE_NOT_FOUND, **kwargs):
        ctx = ErrorContext(file_path=file_path)
        super().__init__(
            message=message,
            code=code,
            context=ctx,
            **kwargs
        )


# ==================== Error Handler ====================

class ErrorHandler:
    """
    Collects converter errors raised at the service edges.
    """

    def __init__(self):
        self._errors: List[ConverterError] = []
        self._warnings: List[str] = []

    def handle(self, error: Exception, context: Optional[ErrorContext] = None) -> ConverterError:
        """
        Record an exception and return it as a ConverterError.

        Unknown exceptions are wrapped so callers can always serialize the result.
        """
        if isinstance(error, ConverterError):
            self._errors.append(error)
            if error.recoverable:
                logger.warning(str(error))
            else:
                logger.error(str(error))
            return error

        wrapped = ConverterError(
            message=str(error),
            code=ErrorCode.UNKNOWN,
            context=context,
            cause=error
        )
        self._errors.append(wrapped)
        logger.error(f"Unexpected error: {error}", exc_info=True)
        return wrapped

    def add_warning(self, message: str):
        """Add a warning message."""
        self._warnings.append(message)
        logger.warning(message)

    def get_errors(self) -> List[Dict[str, Any]]:
        """Get all errors as dicts."""
        return [e.to_dict() for e in self._errors]

    def get_warnings(self) -> List[str]:
        """Get all warnings."""
        return self._warnings.copy()

    def has_errors(self) -> bool:
        return len(self._errors) > 0

    def clear(self):
        """Clear all errors and warnings."""
        self._errors.clear()
        self._warnings.clear()

    def summary(self) -> Dict[str, Any]:
        """Get error summary."""
        return {
            "error_count": len(self._errors),
            "warning_count": len(self._warnings),
            "recoverable_count": sum(1 for e in self._errors if e.recoverable),
            "error_codes": sorted(set(e.code.value for e in self._errors))
        }


# Global error handler
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get or create global error handler."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler

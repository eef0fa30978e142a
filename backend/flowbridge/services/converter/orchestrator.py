"""
Conversion Orchestrator

Runs one workflow conversion through its states:

    VALIDATING -> CONVERTING_NODES -> CONVERTING_CONNECTIONS -> ASSEMBLING -> DONE
                                                              (ERRORED on invalid input)

Nothing inside a run is fatal: unmapped types become stubs, failing nodes
become stubs with an error log, dangling connections are dropped with a
warning. Every call gets its own mapping snapshot, logs and debug tracker.
"""
import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from flowbridge.core.config import settings
from flowbridge.core.errors import (
    AmbiguousExpressionError,
    ConverterError,
    ErrorCode,
    ErrorContext,
    ErrorHandler,
    InvalidInputError,
    UnmappedTypeError,
    UnsupportedDirectionError,
)
from flowbridge.models.workflow_models import (
    ConversionLog,
    ConversionOptions,
    ConversionResult,
    ConversionState,
    Direction,
    LogLevel,
    MappingStatus,
    ParameterReview,
    Platform,
)
from flowbridge.services.converter.connection_mapper import ConnectionMapper, ConnectionReport
from flowbridge.services.converter.debug_tracker import DebugTracker
from flowbridge.services.converter.platform_detector import detect_platform, normalize_make_document
from flowbridge.services.expression.context_builder import ExpressionContextBuilder
from flowbridge.services.mapper.node_mapper import NodeConversion, NodeMapper
from flowbridge.services.mapper.stub_factory import StubFactory
from flowbridge.services.mappings.mapping_database import MappingDatabase, get_mapping_database
from flowbridge.services.mappings.plugins.registry import PluginRegistry
from flowbridge.services.mappings.resolver import NodeMappingResolver

logger = logging.getLogger(__name__)

# Namespace of the deterministic n8n node ids generated for Make.com modules
NODE_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://flowbridge.dev/n8n-node")

MAKE_SCENARIO_METADATA = {
    "roundtrips": 1,
    "maxErrors": 3,
    "autoCommit": True,
    "autoCommitTriggerLast": True,
    "sequential": False,
    "confidential": False,
    "dataloss": False,
    "dlq": False,
    "source": "n8n-converter",
}


def make_metadata() -> Dict[str, Any]:
    return {
        "instant": False,
        "version": 1,
        "scenario": dict(MAKE_SCENARIO_METADATA),
        "designer": {"orphans": []},
    }


def empty_workflow(platform: Optional[Platform]) -> Dict[str, Any]:
    """Canonical empty document of a platform."""
    if platform == Platform.MAKE:
        return {"name": "Empty Workflow", "flow": [], "metadata": make_metadata()}
    if platform == Platform.N8N:
        return {
            "name": "Empty Workflow",
            "nodes": [],
            "connections": {},
            "active": True,
            "settings": {"executionOrder": "v1"},
        }
    return {}


def unique_name(name: str, used: Set[str]) -> str:
    """n8n style unique name: "HTTP Request", "HTTP Request1", "HTTP Request2"."""
    if name not in used:
        return name
    suffix = 1
    while f"{name}{suffix}" in used:
        suffix += 1
    return f"{name}{suffix}"


def resolve_options(options: Any) -> ConversionOptions:
    """
    Conversion options with configured defaults for the keys a caller left out
    or set to a value of the wrong type.
    """
    if isinstance(options, ConversionOptions):
        return options
    defaults = ConversionOptions(
        mapping_accuracy=settings.default_mapping_accuracy,
        module_ref=settings.default_module_ref,
    )
    return ConversionOptions.from_dict(options, defaults)


@dataclass
class _ConversionRun:
    """Mutable state of a single conversion call."""
    direction: Direction
    options: ConversionOptions
    tracker: DebugTracker
    errors: ErrorHandler = field(default_factory=ErrorHandler)
    state: ConversionState = ConversionState.VALIDATING
    logs: List[ConversionLog] = field(default_factory=list)
    unmapped_nodes: List[str] = field(default_factory=list)
    reviews: List[ParameterReview] = field(default_factory=list)
    connections: ConnectionReport = field(default_factory=ConnectionReport)

    def log(self, level: LogLevel, message: str) -> None:
        self.logs.append(ConversionLog(level, message))
        logger.log(
            {LogLevel.INFO: logging.INFO, LogLevel.WARNING: logging.WARNING}.get(level, logging.ERROR),
            message,
        )

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARNING, message)

    def enter(self, state: ConversionState) -> None:
        logger.debug(f"Conversion state {self.state.value} -> {state.value}")
        self.state = state

    def add_unmapped(self, node_type: str) -> None:
        if node_type not in self.unmapped_nodes:
            self.unmapped_nodes.append(node_type)


class WorkflowConverter:
    """
    Converts whole workflows between n8n and Make.com.

    Example:
        converter = WorkflowConverter()
        result = converter.convert_sync(n8n_workflow, "n8n", "make")
        result.converted_workflow["flow"]
    """

    def __init__(
        self,
        database: Optional[MappingDatabase] = None,
        plugins: Optional[PluginRegistry] = None,
    ):
        self.database = database or get_mapping_database()
        self.plugins = plugins if plugins is not None else self.database.plugins
        self.connection_mapper = ConnectionMapper()
        self.stub_factory = StubFactory()

    # ==================== Public API ====================

    async def convert(
        self,
        document: Any,
        source_platform: Any = None,
        target_platform: Any = None,
        options: Any = None,
    ) -> Dict[str, Any]:
        """Awaitable entry point; returns the wire form of the result."""
        return self.convert_sync(document, source_platform, target_platform, options).to_dict()

    def convert_sync(
        self,
        document: Any,
        source_platform: Any = None,
        target_platform: Any = None,
        options: Any = None,
    ) -> ConversionResult:
        """
        Convert a workflow document.

        Args:
            document: n8n workflow or Make.com scenario blueprint
            source_platform: "n8n" or "make"; detected from the document when omitted
            target_platform: "n8n" or "make"; the other platform when omitted
            options: ConversionOptions or a dict of camelCase / snake_case options
        """
        options = resolve_options(options)
        option_logs = [ConversionLog(LogLevel.WARNING, message) for message in options.warnings]
        source = Platform.parse(source_platform)
        target = Platform.parse(target_platform)

        try:
            document, direction = self._validate(document, source_platform, target_platform)
        except UnsupportedDirectionError as e:
            logger.warning(e.message)
            return ConversionResult(
                converted_workflow=document,
                logs=option_logs + [ConversionLog(LogLevel.WARNING, e.message)],
            )
        except InvalidInputError as e:
            logger.error(e.message)
            fallback = target or self._other(source or detect_platform(document))
            return ConversionResult(
                converted_workflow=empty_workflow(fallback),
                logs=option_logs + [ConversionLog(LogLevel.ERROR, e.message)],
                debug={"state": ConversionState.ERRORED.value, "error": e.to_dict()},
            )

        run = _ConversionRun(direction, options, DebugTracker(direction).start_timing())
        for message in options.warnings:
            run.warn(message)
        logger.info(f"Starting {direction.value} conversion of '{document.get('name', '')}'")

        tables = self.database.snapshot()
        resolver = NodeMappingResolver(tables, min_accuracy=options.mapping_accuracy)

        if self.plugins is not None:
            document = self.plugins.execute_hook(
                "before_conversion", copy.deepcopy(document), direction, on_error=run.warn
            )

        if direction == Direction.N8N_TO_MAKE:
            workflow, target_count = self._n8n_to_make(document, resolver, run)
        else:
            workflow, target_count = self._make_to_n8n(document, resolver, run)

        if self.plugins is not None:
            workflow = self.plugins.execute_hook("after_conversion", workflow, direction, on_error=run.warn)

        if run.reviews and not options.strict_mode:
            count = sum(len(review.parameters) for review in run.reviews)
            run.log(LogLevel.WARNING, f"Found {count} parameters that need review")

        run.log(LogLevel.INFO, "Conversion complete")
        run.enter(ConversionState.DONE)
        run.tracker.finish_timing()

        debug = run.tracker.report(target_count, run.connections.to_dict())
        debug["state"] = run.state.value
        if run.errors.has_errors():
            debug["errors"] = run.errors.get_errors()
            debug["errorSummary"] = run.errors.summary()

        logger.info(
            f"Conversion completed with {target_count} nodes created "
            f"and {len(run.unmapped_nodes)} unmapped node types"
        )
        return ConversionResult(
            converted_workflow=workflow,
            logs=run.logs,
            unmapped_nodes=run.unmapped_nodes,
            parameters_needing_review=run.reviews,
            debug=debug,
        )

    # ==================== Validation ====================

    def _validate(
        self,
        document: Any,
        source_platform: Any,
        target_platform: Any,
    ) -> Tuple[Dict[str, Any], Direction]:
        """Check the request; returns the normalized document and the direction."""
        if not isinstance(document, dict) or not document:
            raise InvalidInputError("Source workflow is empty")

        source = Platform.parse(source_platform)
        target = Platform.parse(target_platform)
        detected = detect_platform(document)

        if source is not None and source == target:
            raise UnsupportedDirectionError("Source and target platforms are the same")
        if source_platform is None and target is not None and detected == target:
            raise UnsupportedDirectionError("Source and target platforms are the same")

        if source_platform is not None and source is None:
            raise InvalidInputError(
                f"Unsupported source platform: {source_platform}",
                code=ErrorCode.UNSUPPORTED_PLATFORM,
            )
        if target_platform is not None and target is None:
            raise InvalidInputError(
                f"Unsupported target platform: {target_platform}",
                code=ErrorCode.UNSUPPORTED_PLATFORM,
            )

        source = source or detected
        if source is None:
            raise InvalidInputError(
                "Could not detect the platform of the source workflow",
                code=ErrorCode.INVALID_SHAPE,
            )
        if detected != source:
            raise InvalidInputError(
                f"Source workflow is not a valid {source.value} workflow",
                code=ErrorCode.INVALID_SHAPE,
            )

        direction = Direction.between(source, target or self._other(source))
        if source == Platform.MAKE:
            document = normalize_make_document(document)
        return document, direction

    @staticmethod
    def _other(platform: Optional[Platform]) -> Optional[Platform]:
        if platform is None:
            return None
        return Platform.MAKE if platform == Platform.N8N else Platform.N8N

    # ==================== n8n -> Make.com ====================

    def _n8n_to_make(
        self,
        document: Dict[str, Any],
        resolver: NodeMappingResolver,
        run: _ConversionRun,
    ) -> Tuple[Dict[str, Any], int]:
        run.enter(ConversionState.CONVERTING_NODES)
        nodes = self._valid_items(document.get("nodes"), "node", run)

        # Pre-pass: node keys, target ids and the source graph
        keys = self._n8n_keys(nodes)
        id_map = self._assign_module_ids(nodes, keys, run.options.preserve_ids)
        graph = self.connection_mapper.build_n8n_graph(keys, document.get("connections"), run.connections)
        node_refs = {key: str(module_id) for key, module_id in id_map.items()}

        mapper = NodeMapper(
            resolver,
            options=run.options,
            plugins=self.plugins,
            stub_factory=self.stub_factory,
            node_refs=node_refs,
            context=self._context(document, run.options, Platform.N8N),
        )

        modules: Dict[str, Dict[str, Any]] = {}
        for index, (key, node) in enumerate(zip(keys, nodes)):
            predecessor = self.connection_mapper.first_predecessor(graph, key)
            module_ref = id_map[predecessor] if predecessor is not None else run.options.module_ref
            modules[key] = self._convert_node(
                mapper, run, key, node, index,
                target_id=id_map[key],
                module_ref=module_ref,
            )

        run.enter(ConversionState.CONVERTING_CONNECTIONS)
        flow = self.connection_mapper.layout_make_flow(graph, modules, run.connections)
        self._log_connections(run)

        run.enter(ConversionState.ASSEMBLING)
        workflow = {
            "name": document.get("name") or "Converted from n8n",
            "flow": flow,
            "metadata": make_metadata(),
        }
        return workflow, len(modules)

    @staticmethod
    def _n8n_keys(nodes: List[Dict[str, Any]]) -> List[str]:
        keys: List[str] = []
        used: Set[str] = set()
        for index, node in enumerate(nodes):
            name = node.get("name") or str(node.get("id") or f"Node {index + 1}")
            key = unique_name(str(name), used)
            used.add(key)
            keys.append(key)
        return keys

    @staticmethod
    def _assign_module_ids(nodes: List[Dict[str, Any]], keys: List[str], preserve_ids: bool) -> Dict[str, int]:
        """Sequential integer ids; numeric source ids are kept when asked to and not taken."""
        id_map: Dict[str, int] = {}
        taken: Set[int] = set()
        if preserve_ids:
            for key, node in zip(keys, nodes):
                original = str(node.get("id", ""))
                if original.isdigit() and int(original) > 0 and int(original) not in taken:
                    id_map[key] = int(original)
                    taken.add(int(original))
        next_id = 1
        for key in keys:
            if key in id_map:
                continue
            while next_id in taken:
                next_id += 1
            id_map[key] = next_id
            taken.add(next_id)
        return id_map

    # ==================== Make.com -> n8n ====================

    def _make_to_n8n(
        self,
        document: Dict[str, Any],
        resolver: NodeMappingResolver,
        run: _ConversionRun,
    ) -> Tuple[Dict[str, Any], int]:
        run.enter(ConversionState.CONVERTING_NODES)
        flow = document.get("flow")
        modules = self.connection_mapper.flatten_make_flow(flow)
        logger.debug(f"Flattened {len(modules)} modules including nested routes")

        mapper = NodeMapper(
            resolver,
            options=run.options,
            plugins=self.plugins,
            stub_factory=self.stub_factory,
            context=self._context(document, run.options, Platform.MAKE),
        )

        # Pre-pass: module keys, node names and ids, upstream modules
        keys: List[str] = []
        names: Dict[str, str] = {}
        node_ids: Dict[str, str] = {}
        used_names: Set[str] = set()
        for index, module in enumerate(modules):
            key = str(module.get("id"))
            if key in names:
                run.log(LogLevel.WARNING, f"Duplicate module id {key}; later module shadows earlier one")
            if not module.get("module"):
                run.log(LogLevel.WARNING, f"Module {key} is missing a type")
            name = unique_name(mapper.target_name(module), used_names)
            used_names.add(name)
            keys.append(key)
            names[key] = name
            node_ids[key] = self._n8n_node_id(document, module, key, index, run.options.preserve_ids)
        mapper.module_names = dict(names)

        edges = self.connection_mapper.make_edges(flow)
        upstream: Dict[str, str] = {}
        for edge in edges:
            upstream.setdefault(edge.target, edge.source)

        nodes = []
        for index, (key, module) in enumerate(zip(keys, modules)):
            nodes.append(self._convert_node(
                mapper, run, key, module, index,
                target_id=node_ids[key],
                name=names[key],
                upstream_ref=upstream.get(key),
            ))

        run.enter(ConversionState.CONVERTING_CONNECTIONS)
        connections = self.connection_mapper.build_n8n_connections(edges, names, run.connections)
        self._log_connections(run)

        run.enter(ConversionState.ASSEMBLING)
        workflow = {
            "name": document.get("name") or "Converted from Make.com",
            "nodes": nodes,
            "connections": connections,
            "active": True,
            "settings": {"executionOrder": "v1"},
        }
        return workflow, len(nodes)

    @staticmethod
    def _n8n_node_id(document: Dict[str, Any], module: Dict[str, Any], key: str, index: int, preserve_ids: bool) -> str:
        if preserve_ids and module.get("id") is not None:
            return str(module["id"])
        seed = f"{document.get('name', '')}/{key}/{index}"
        return str(uuid.uuid5(NODE_ID_NAMESPACE, seed))

    # ==================== Shared steps ====================

    def _convert_node(
        self,
        mapper: NodeMapper,
        run: _ConversionRun,
        key: str,
        source_node: Dict[str, Any],
        index: int,
        target_id: Any,
        name: Optional[str] = None,
        module_ref: Optional[int] = None,
        upstream_ref: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Convert one node; failures are contained to a stub and an error log."""
        direction = run.direction
        source_type = str(NodeMapper.source_type(source_node, direction) or "unknown")
        label = self._label(source_node, key)
        context = ErrorContext(node_id=str(source_node.get("id")), node_name=label, node_type=source_type)

        try:
            conversion = mapper.convert(
                source_node, direction,
                target_id=target_id,
                name=name,
                index=index,
                module_ref=module_ref,
                upstream_ref=upstream_ref,
            )
        except Exception as e:
            run.errors.handle(ConverterError(
                message=f"Node conversion failed: {e}",
                code=ErrorCode.NODE_CONVERSION_FAILED,
                context=context,
                cause=e,
                recoverable=True,
            ))
            run.log(LogLevel.ERROR, f"Error converting {self._kind(direction)} '{label}' ({source_type}): {e}")
            node = mapper.build_stub(
                source_node, direction, target_id, name, index,
                note=f"Conversion failed: {e}",
            )
            run.tracker.track_node(key, source_node, MappingStatus.FAILED, node)
            return node

        if conversion.stub:
            run.add_unmapped(source_type)
            run.errors.handle(UnmappedTypeError(
                f"No mapping found for {self._kind(direction)} type: {source_type}",
                node_type=source_type,
                context=context,
            ))
            run.log(LogLevel.WARNING, f"No mapping found for {self._kind(direction)} type: {source_type}")
        for message in conversion.plugin_errors:
            run.warn(message)

        self._record_reviews(run, conversion, label)
        run.tracker.track_node(
            key,
            source_node,
            conversion.status,
            conversion.node,
            origin=conversion.mapping.origin if conversion.mapping else None,
            unmapped_parameters=conversion.dropped_parameters,
        )
        if conversion.stub:
            run.tracker.add_warning(key, "Converted to a placeholder; replace it by hand")
        for parameter in conversion.dropped_parameters:
            run.tracker.add_warning(key, f"Parameter '{parameter}' has no mapping and was dropped")
        return conversion.node

    def _record_reviews(self, run: _ConversionRun, conversion: NodeConversion, label: str) -> None:
        if not conversion.review_paths:
            return
        node = conversion.node
        reasons: List[str] = []
        for path in conversion.review_paths:
            for reason in conversion.review_reasons.get(path, []):
                if reason not in reasons:
                    reasons.append(reason)
        target_name = node.get("name") or ((node.get("metadata") or {}).get("designer") or {}).get("name") or label
        run.reviews.append(ParameterReview(
            node_id=str(node.get("id")),
            node_name=str(target_name),
            parameters=list(conversion.review_paths),
            reason="; ".join(reasons) or "Expression needs manual review",
        ))

        if run.options.strict_mode:
            for path in conversion.review_paths:
                error = AmbiguousExpressionError(
                    f"Ambiguous expression in '{label}' at parameter '{path}'",
                    expression=path,
                )
                run.errors.handle(error)
                run.log(LogLevel.ERROR, error.message)

    def _log_connections(self, run: _ConversionRun) -> None:
        for message in run.connections.dangling:
            run.errors.handle(ConverterError(message, code=ErrorCode.DANGLING_CONNECTION, recoverable=True))
        for message in run.connections.warnings:
            run.log(LogLevel.WARNING, message)

    @staticmethod
    def _valid_items(items: Any, kind: str, run: _ConversionRun) -> List[Dict[str, Any]]:
        valid = []
        for index, item in enumerate(items or []):
            if isinstance(item, dict):
                valid.append(item)
            else:
                run.log(LogLevel.WARNING, f"Skipping malformed {kind} at index {index}")
        return valid

    @staticmethod
    def _context(document: Dict[str, Any], options: ConversionOptions, platform: Platform) -> Dict[str, Any]:
        if not options.evaluate_expressions:
            return {}
        if platform == Platform.N8N:
            context = ExpressionContextBuilder.from_n8n_workflow(document)
        else:
            context = ExpressionContextBuilder.from_make_workflow(document)
        if isinstance(options.expression_context, dict):
            context.update(options.expression_context)
        return context

    @staticmethod
    def _kind(direction: Direction) -> str:
        return "n8n node" if direction == Direction.N8N_TO_MAKE else "Make.com module"

    @staticmethod
    def _label(source_node: Dict[str, Any], key: str) -> str:
        if source_node.get("name"):
            return str(source_node["name"])
        designer = (source_node.get("metadata") or {}).get("designer") or {}
        return str(designer.get("name") or key)


# Global converter instance
_converter: Optional[WorkflowConverter] = None


def get_workflow_converter() -> WorkflowConverter:
    """Get the global converter over the global mapping database."""
    global _converter
    if _converter is None:
        _converter = WorkflowConverter()
    return _converter


async def convert(
    document: Any,
    source_platform: Any = None,
    target_platform: Any = None,
    options: Any = None,
) -> Dict[str, Any]:
    """Convert with the global converter; returns the wire form of the result."""
    return await get_workflow_converter().convert(document, source_platform, target_platform, options)

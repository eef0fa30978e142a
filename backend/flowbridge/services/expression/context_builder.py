"""
Expression context construction.

A context is a plain dict of namespaces read by the evaluator:
`$json`, `$env`, `$workflow`, `$node`, `$binary`, `$parameter`, `$modules`
plus any custom variables. A new builder is used for every conversion so
contexts are never shared between calls.
"""
import copy
import os
from typing import Any, Dict, Optional


class ExpressionContextBuilder:
    """
    Fluent builder for expression contexts.

    Example:
        >>> context = (ExpressionContextBuilder()
        ...     .with_json_data({"id": "12345"})
        ...     .with_workflow_metadata({"name": "Orders"})
        ...     .build())
        >>> context["$json"]["id"]
        '12345'
    """

    def __init__(self, include_environment: bool = False):
        self._context: Dict[str, Any] = {
            '$json': {},
            '$env': dict(os.environ) if include_environment else {},
            '$workflow': {},
        }

    def with_json_data(self, data: Optional[Dict[str, Any]]) -> 'ExpressionContextBuilder':
        """Merge item data into `$json`."""
        self._context['$json'] = {**self._context['$json'], **(data or {})}
        return self

    def with_workflow_metadata(self, metadata: Optional[Dict[str, Any]]) -> 'ExpressionContextBuilder':
        self._context['$workflow'] = {**self._context['$workflow'], **(metadata or {})}
        return self

    def with_env(self, variables: Optional[Dict[str, Any]]) -> 'ExpressionContextBuilder':
        self._context['$env'] = {**self._context['$env'], **(variables or {})}
        return self

    def with_node_output(self, node_name: str, data: Dict[str, Any]) -> 'ExpressionContextBuilder':
        """Output of a named node, read by `$node["Name"].json` and `Name.field`."""
        nodes = dict(self._context.get('$node') or {})
        nodes[node_name] = {'json': data}
        self._context['$node'] = nodes
        return self

    def with_module_output(self, module_id: Any, data: Dict[str, Any]) -> 'ExpressionContextBuilder':
        """Output of a numbered Make.com module, read by `1.field`."""
        modules = dict(self._context.get('$modules') or {})
        modules[str(module_id)] = data
        self._context['$modules'] = modules
        return self

    def with_custom_variable(self, key: str, value: Any) -> 'ExpressionContextBuilder':
        self._context[key] = value
        return self

    def with_custom_variables(self, variables: Optional[Dict[str, Any]]) -> 'ExpressionContextBuilder':
        self._context.update(variables or {})
        return self

    def build(self) -> Dict[str, Any]:
        """Return an independent copy of the context."""
        return copy.deepcopy(self._context)

    def build_n8n_context(self) -> Dict[str, Any]:
        context = self.build()
        context.setdefault('$node', {})
        context.setdefault('$parameter', {})
        return context

    def build_make_context(self) -> Dict[str, Any]:
        context = self.build()
        context.setdefault('$modules', {})
        return context

    # ==================== Factories ====================

    @classmethod
    def from_n8n_workflow(cls, workflow: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Context preloaded with n8n workflow metadata."""
        builder = cls()
        if isinstance(workflow, dict):
            builder.with_workflow_metadata({
                'id': workflow.get('id', ''),
                'name': workflow.get('name', ''),
                'active': bool(workflow.get('active', False)),
            })
        return builder.build_n8n_context()

    @classmethod
    def from_make_workflow(cls, workflow: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Context preloaded with Make.com scenario metadata."""
        builder = cls()
        if isinstance(workflow, dict):
            builder.with_workflow_metadata({
                'id': workflow.get('id', ''),
                'name': workflow.get('name', ''),
            })
        return builder.build_make_context()

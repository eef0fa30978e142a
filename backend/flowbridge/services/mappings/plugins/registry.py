"""
Plugin Registry.

Keeps the registered converter plugins, merges their node mappings and runs
their hooks in registration order.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from flowbridge.core.config import settings
from flowbridge.core.errors import ErrorContext, MappingConfigError
from flowbridge.models.workflow_models import Direction, NodeMappingEntry
from flowbridge.services.mappings.plugins.base import ConverterPlugin
from flowbridge.services.mappings.plugins.google_sheets import GoogleSheetsPlugin
from flowbridge.services.mappings.plugins.notion import NotionPlugin
from flowbridge.services.mappings.plugins.weather import WeatherPlugin

logger = logging.getLogger(__name__)

HOOKS = ("before_conversion", "after_node_mapping", "after_conversion")


def _validate_mappings(plugin: ConverterPlugin) -> None:
    mappings = plugin.get_node_mappings()
    for direction in Direction:
        for source_type, data in (mappings.get(direction.value) or {}).items():
            if not isinstance(data, dict) or not data.get("type"):
                raise MappingConfigError(
                    f"Plugin '{plugin.id}' mapping for {source_type} has no target type",
                    context=ErrorContext(node_type=source_type),
                )
            if not isinstance(data.get("parameterMap", {}), dict):
                raise MappingConfigError(
                    f"Plugin '{plugin.id}' mapping for {source_type} has an invalid parameterMap",
                    context=ErrorContext(node_type=source_type),
                )


class PluginRegistry:
    """Registered converter plugins."""

    def __init__(self):
        self._plugins: Dict[str, ConverterPlugin] = {}
        # Bumped on every change so cached mapping snapshots can be invalidated
        self.version = 0

    def register(self, plugin: ConverterPlugin) -> None:
        _validate_mappings(plugin)
        if plugin.id in self._plugins:
            logger.warning(f"Plugin with ID {plugin.id} is already registered. Overwriting.")
        self._plugins[plugin.id] = plugin
        self.version += 1
        logger.info(f"Registered plugin {plugin.id} ({plugin.name} {plugin.version})")

    def unregister(self, plugin_id: str) -> bool:
        if self._plugins.pop(plugin_id, None) is None:
            return False
        self.version += 1
        return True

    def get(self, plugin_id: str) -> Optional[ConverterPlugin]:
        return self._plugins.get(plugin_id)

    def all(self) -> List[ConverterPlugin]:
        return list(self._plugins.values())

    def get_node_mappings(self) -> Dict[Direction, Dict[str, NodeMappingEntry]]:
        """Mappings of all plugins; later registrations win on the same source type."""
        result: Dict[Direction, Dict[str, NodeMappingEntry]] = {d: {} for d in Direction}
        for plugin in self._plugins.values():
            mappings = plugin.get_node_mappings()
            for direction in Direction:
                for source_type, data in (mappings.get(direction.value) or {}).items():
                    result[direction][source_type] = NodeMappingEntry.from_dict(
                        source_type, data, origin=f"plugin:{plugin.id}"
                    )
        return result

    def execute_hook(
        self,
        hook_name: str,
        *args: Any,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> Any:
        """
        Run a hook on every plugin, threading the hook's subject through.

        The subject is the workflow for the conversion hooks and the target
        node for `after_node_mapping`. A plugin that fails is logged and
        skipped so one faulty plugin does not break the conversion; the
        failure message is also passed to `on_error` when given.
        """
        if hook_name not in HOOKS:
            raise ValueError(f"Unknown plugin hook: {hook_name}")
        args = list(args)
        subject = 1 if hook_name == "after_node_mapping" else 0
        for plugin in self._plugins.values():
            hook = getattr(plugin, hook_name)
            try:
                returned = hook(*args)
            except Exception as e:
                message = f"Plugin {plugin.id} failed in {hook_name}: {e}"
                logger.error(message)
                if on_error is not None:
                    on_error(message)
                continue
            if returned is not None:
                args[subject] = returned
        return args[subject]


def available_plugins() -> Dict[str, ConverterPlugin]:
    """Bundled plugins by id."""
    plugins = [NotionPlugin(), WeatherPlugin(), GoogleSheetsPlugin()]
    return {plugin.id: plugin for plugin in plugins}


def build_registry(enabled: Iterable[str]) -> PluginRegistry:
    registry = PluginRegistry()
    bundled = available_plugins()
    for plugin_id in enabled:
        plugin = bundled.get(plugin_id)
        if plugin is None:
            logger.warning(f"Unknown plugin '{plugin_id}' in configuration, skipped")
            continue
        registry.register(plugin)
    return registry


# Global registry instance
_registry: Optional[PluginRegistry] = None


def get_plugin_registry() -> PluginRegistry:
    """Get the global plugin registry, registering the configured plugins on first use."""
    global _registry
    if _registry is None:
        _registry = build_registry(settings.enabled_plugins)
    return _registry

"""Converter plugin exports."""
from flowbridge.services.mappings.plugins.base import ConverterPlugin
from flowbridge.services.mappings.plugins.google_sheets import GoogleSheetsPlugin
from flowbridge.services.mappings.plugins.notion import NotionPlugin
from flowbridge.services.mappings.plugins.registry import (
    PluginRegistry,
    available_plugins,
    build_registry,
    get_plugin_registry,
)
from flowbridge.services.mappings.plugins.weather import WeatherPlugin

__all__ = [
    "ConverterPlugin",
    "GoogleSheetsPlugin",
    "NotionPlugin",
    "PluginRegistry",
    "WeatherPlugin",
    "available_plugins",
    "build_registry",
    "get_plugin_registry",
]

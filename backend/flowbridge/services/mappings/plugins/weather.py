"""OpenWeatherMap current weather."""
from typing import Any, Dict

from flowbridge.models.workflow_models import Direction
from flowbridge.services.mappings.plugins.base import ConverterPlugin

N8N_TYPE = "n8n-nodes-base.openWeatherMap"
MAKE_TYPE = "weather:ActionGetCurrentWeather"


class WeatherPlugin(ConverterPlugin):
    id = "weather-integration"
    name = "Weather Integration"
    description = "Provides mappings for weather nodes and modules"

    def get_node_mappings(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            "n8nToMake": {
                N8N_TYPE: {
                    "type": MAKE_TYPE,
                    "parameterMap": {"cityName": "city", "units": "units", "apiKey": "apiKey"},
                    "description": "OpenWeatherMap node for weather data",
                },
            },
            "makeToN8n": {
                MAKE_TYPE: {
                    "type": N8N_TYPE,
                    "parameterMap": {"city": "cityName", "units": "units", "apiKey": "apiKey"},
                    "description": "Weather module for current weather data",
                },
            },
        }

    def after_node_mapping(self, source_node, target_node, direction):
        # Defaults only; mapped values are never overwritten
        if direction == Direction.N8N_TO_MAKE and source_node.get("type") == N8N_TYPE:
            target_node.setdefault("mapper", {}).setdefault("type", "name")
        elif direction == Direction.MAKE_TO_N8N and source_node.get("module") == MAKE_TYPE:
            parameters = target_node.setdefault("parameters", {})
            parameters.setdefault("resource", "currentWeather")
            parameters.setdefault("authentication", "apiKey")
            parameters.setdefault("units", "metric")
        return target_node

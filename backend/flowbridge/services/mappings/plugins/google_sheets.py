"""Google Sheets row insertion."""
import copy
import string
from typing import Any, Dict

from flowbridge.models.workflow_models import Direction
from flowbridge.services.mappings.plugins.base import ConverterPlugin

N8N_TYPE = "n8n-nodes-base.googleSheets"
MAKE_TYPE = "google-sheets:addRow"


def column_to_index(column: str) -> str:
    """Spreadsheet column letters to Make.com's zero-based key: A -> "0", AA -> "26"."""
    if not column or not column.isalpha():
        return column
    number = 0
    for char in column.upper():
        number = number * 26 + (ord(char) - ord("A") + 1)
    return str(number - 1)


def index_to_column(key: str) -> str:
    """Make.com's zero-based key to spreadsheet column letters: "0" -> A."""
    if not str(key).isdigit():
        return key
    number = int(key) + 1
    letters = ""
    while number:
        number, remainder = divmod(number - 1, 26)
        letters = string.ascii_uppercase[remainder] + letters
    return letters


class GoogleSheetsPlugin(ConverterPlugin):
    id = "google-sheets-integration"
    name = "Google Sheets Integration"
    description = "Provides mappings for Google Sheets nodes and modules"

    def get_node_mappings(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            "n8nToMake": {
                N8N_TYPE: {
                    "type": MAKE_TYPE,
                    "parameterMap": {
                        "sheetName": "sheetId",
                        "documentId": "spreadsheetId",
                        "operation": "operation",
                    },
                    "description": "Google Sheets node for spreadsheet operations",
                },
            },
            "makeToN8n": {
                MAKE_TYPE: {
                    "type": N8N_TYPE,
                    "parameterMap": {
                        "sheetId": "sheetName",
                        "spreadsheetId": "documentId",
                    },
                    "description": "Google Sheets module for adding rows",
                },
            },
        }

    def after_node_mapping(self, source_node, target_node, direction):
        if direction == Direction.N8N_TO_MAKE and source_node.get("type") == N8N_TYPE:
            return self._to_make(source_node, target_node)
        if direction == Direction.MAKE_TO_N8N and source_node.get("module") == MAKE_TYPE:
            return self._to_n8n(source_node, target_node)
        return target_node

    @staticmethod
    def _to_make(source_node: Dict[str, Any], module: Dict[str, Any]) -> Dict[str, Any]:
        source = source_node.get("parameters") or {}
        parameters = module.setdefault("parameters", {})
        mapper = module.setdefault("mapper", {})

        mapper["from"] = "drive"
        mapper["mode"] = "select"
        mapper["includesHeaders"] = True
        mapper["insertDataOption"] = "INSERT_ROWS"
        mapper["valueInputOption"] = (source.get("options") or {}).get("valueInputMode", "USER_ENTERED")
        mapper["insertUnformatted"] = False

        # Sheet and document live in the mapper on Make.com
        if "sheetId" in parameters:
            mapper["sheetId"] = parameters.pop("sheetId")
        if "spreadsheetId" in parameters:
            document = parameters.pop("spreadsheetId")
            if isinstance(document, str) and not document.startswith("/") and "{{" not in document:
                document = f"/{document}"
            mapper["spreadsheetId"] = document

        values = source.get("values")
        if isinstance(values, dict):
            mapper["values"] = {
                column_to_index(str(key)): copy.deepcopy(value) for key, value in values.items()
            }
        return module

    @staticmethod
    def _to_n8n(source_node: Dict[str, Any], node: Dict[str, Any]) -> Dict[str, Any]:
        source_mapper = source_node.get("mapper") or {}
        parameters = node.setdefault("parameters", {})
        parameters["operation"] = "append"

        document = parameters.get("documentId")
        if isinstance(document, str) and document.startswith("/"):
            parameters["documentId"] = document[1:]

        values = source_mapper.get("values")
        if isinstance(values, dict):
            parameters["values"] = {
                index_to_column(str(key)): copy.deepcopy(value) for key, value in values.items()
            }

        value_input = source_mapper.get("valueInputOption")
        if value_input:
            options = parameters.setdefault("options", {})
            options["valueInputMode"] = "USER_ENTERED" if value_input == "USER_ENTERED" else "RAW"
        return node

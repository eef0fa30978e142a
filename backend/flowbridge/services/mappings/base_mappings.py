"""
Base Mapping Registry - built-in n8n <-> Make.com node mappings.

Provides:
- Node type mappings for core, communication, productivity, CRM,
  developer, data and AI nodes
- Parameter rename tables and value transforms per mapping
- Both directions registered from a single pair definition
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from flowbridge.models.workflow_models import Direction, NodeMappingEntry
from flowbridge.services.mappings.transforms import inverse_of

logger = logging.getLogger(__name__)

N8N_ROUTER_TYPE = "n8n-nodes-base.switch"
MAKE_ROUTER_TYPE = "builtin:BasicRouter"

# n8n condition nodes converted through the switch/router pair, with their
# output count. A router converts back to a switch, so they stay out of the
# invertible pair table.
CONDITION_NODE_OUTPUTS: Dict[str, int] = {
    "n8n-nodes-base.if": 2,
    "n8n-nodes-base.filter": 1,
}


class BaseMappingRegistry:
    """
    Registry of the built-in node mappings.

    Each mapping is declared once as an n8n -> Make.com pair; the reverse
    entry is derived by inverting the parameter map and the transforms, so
    every base mapping converts back to its original type.
    """

    def __init__(self):
        self._tables: Dict[Direction, Dict[str, NodeMappingEntry]] = {
            Direction.N8N_TO_MAKE: {},
            Direction.MAKE_TO_N8N: {},
        }
        self._initialize_registry()

    def _initialize_registry(self) -> None:
        """Initialize the registry with all mapping pairs."""

        # ==================== CORE / FLOW NODES ====================
        self._register_core_nodes()

        # ==================== COMMUNICATION NODES ====================
        self._register_communication_nodes()

        # ==================== PRODUCTIVITY NODES ====================
        self._register_productivity_nodes()

        # ==================== CRM / MARKETING NODES ====================
        self._register_crm_nodes()

        # ==================== DEVELOPER NODES ====================
        self._register_developer_nodes()

        # ==================== DATA / STORAGE NODES ====================
        self._register_data_nodes()

        # ==================== AI NODES ====================
        self._register_ai_nodes()

        logger.info(
            f"Base mapping registry initialized with "
            f"{len(self._tables[Direction.N8N_TO_MAKE])} mapping pairs"
        )

    def _register_pair(
        self,
        n8n_type: str,
        make_type: str,
        parameter_map: Optional[Dict[str, str]] = None,
        transforms: Optional[Dict[str, str]] = None,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        accuracy: int = 100,
    ) -> None:
        """
        Register a mapping in both directions.

        `parameter_map` renames n8n parameters to Make.com parameters and
        `transforms` is keyed by the Make.com parameter name.
        """
        parameter_map = parameter_map or {}
        transforms = transforms or {}

        if len(set(parameter_map.values())) != len(parameter_map):
            raise ValueError(f"Parameter map of {n8n_type} is not invertible")
        if n8n_type in self._tables[Direction.N8N_TO_MAKE]:
            raise ValueError(f"Duplicate base mapping for {n8n_type}")
        if make_type in self._tables[Direction.MAKE_TO_N8N]:
            raise ValueError(f"Duplicate base mapping for {make_type}")

        reverse_map = {target: source for source, target in parameter_map.items()}
        reverse_transforms = {}
        for make_param, name in transforms.items():
            inverse = inverse_of(name)
            if inverse and make_param in reverse_map:
                reverse_transforms[reverse_map[make_param]] = inverse

        self._tables[Direction.N8N_TO_MAKE][n8n_type] = NodeMappingEntry(
            source_type=n8n_type,
            target_type=make_type,
            parameter_map=dict(parameter_map),
            transforms=dict(transforms),
            display_name=display_name,
            description=description,
            accuracy=accuracy,
        )
        self._tables[Direction.MAKE_TO_N8N][make_type] = NodeMappingEntry(
            source_type=make_type,
            target_type=n8n_type,
            parameter_map=reverse_map,
            transforms=reverse_transforms,
            display_name=display_name,
            description=description,
            accuracy=accuracy,
        )

    def _register_core_nodes(self) -> None:
        """Register HTTP, webhook, code and flow control nodes."""

        # HTTP Request
        self._register_pair(
            "n8n-nodes-base.httpRequest", "http:ActionSendData",
            {
                "url": "url",
                "method": "method",
                "authentication": "authentication",
                "headers": "headers",
                "queryParameters": "qs",
                "body": "data",
                "options": "options",
            },
            display_name="HTTP Request",
            description="Make HTTP requests to any API",
        )

        # Webhook trigger
        self._register_pair(
            "n8n-nodes-base.webhook", "webhooks:CustomWebhook",
            {
                "path": "url",
                "httpMethod": "method",
                "responseMode": "responseType",
                "responseData": "responseData",
            },
            display_name="Webhook",
            description="Receive data via webhooks",
        )

        # Manual trigger; Make.com starts scenarios by schedule or on demand
        self._register_pair(
            "n8n-nodes-base.manualTrigger", "builtin:BasicScheduler",
            {},
            display_name="Manual Trigger",
            description="Start the scenario on demand or on a schedule",
            accuracy=50,
        )

        # Webhook response
        self._register_pair(
            "n8n-nodes-base.respondToWebhook", "webhooks:WebhookRespond",
            {
                "responseCode": "status",
                "responseBody": "body",
                "responseHeaders": "headers",
            },
            transforms={"status": "numberToString"},
            display_name="Respond to Webhook",
            description="Return a response to the webhook caller",
        )

        # Function / Code
        self._register_pair(
            "n8n-nodes-base.function", "tools:ActionRunJavascript",
            {"functionCode": "code"},
            display_name="Function",
            description="Run custom JavaScript code",
        )
        self._register_pair(
            "n8n-nodes-base.code", "code:ExecuteCode",
            {"jsCode": "code", "language": "language", "mode": "mode"},
            display_name="Code",
            description="Run custom code",
            accuracy=80,
        )

        # Flow control
        self._register_pair(
            "n8n-nodes-base.switch", "builtin:BasicRouter",
            {},
            display_name="Router",
            description="Send items down different routes",
        )
        self._register_pair(
            "n8n-nodes-base.set", "util:SetVariables",
            {"values": "variables", "keepOnlySet": "keepOnlySet", "options": "options"},
            transforms={"keepOnlySet": "booleanToString"},
            display_name="Set Variables",
            description="Set item values",
        )
        self._register_pair(
            "n8n-nodes-base.merge", "builtin:BasicAggregator",
            {"mode": "mode", "propertyName1": "groupBy"},
            display_name="Aggregator",
            description="Merge items into one bundle",
            accuracy=70,
        )
        self._register_pair(
            "n8n-nodes-base.itemLists", "builtin:BasicFeeder",
            {"fieldToSplitOut": "array"},
            display_name="Iterator",
            description="Split an array into separate items",
            accuracy=80,
        )
        self._register_pair(
            "n8n-nodes-base.wait", "util:FunctionSleep",
            {"amount": "duration"},
            transforms={"duration": "numberToString"},
            display_name="Sleep",
            description="Pause the workflow",
        )
        self._register_pair(
            "n8n-nodes-base.dateTime", "util:FunctionFormatDate",
            {"value": "date", "toFormat": "format", "timezone": "timezone"},
            display_name="Date & Time",
            description="Format a date",
            accuracy=80,
        )
        self._register_pair(
            "n8n-nodes-base.xml", "xml:ParseXML",
            {"dataPropertyName": "xml", "mode": "mode"},
            display_name="XML",
            description="Parse XML documents",
            accuracy=80,
        )
        self._register_pair(
            "n8n-nodes-base.rssFeedRead", "rss:ActionReadArticles",
            {"url": "url"},
            display_name="RSS Read",
            description="Read articles from an RSS feed",
        )

        # Custom node used by the weather integration examples
        self._register_pair(
            "custom-nodes-base.customNode", "custom:WeatherModule",
            {"location": "city", "units": "units", "includeAlerts": "includeAlerts"},
            transforms={"includeAlerts": "booleanToString"},
            display_name="Custom Weather Node",
            description="Weather lookup provided by a custom node",
            accuracy=90,
        )

    def _register_communication_nodes(self) -> None:
        """Register email, chat and messaging nodes."""

        self._register_pair(
            "n8n-nodes-base.emailSend", "email:ActionSendEmail",
            {
                "fromEmail": "from",
                "toEmail": "to",
                "subject": "subject",
                "text": "text",
                "html": "html",
                "attachments": "attachments",
            },
            display_name="Send Email",
            description="Send emails over SMTP",
        )
        self._register_pair(
            "n8n-nodes-base.gmail", "google-email:ActionSendEmail",
            {"sendTo": "to", "subject": "subject", "message": "content"},
            display_name="Gmail",
            description="Send emails with Gmail",
        )
        self._register_pair(
            "n8n-nodes-base.slack", "slack:CreateMessage",
            {"channel": "channelId", "text": "text", "attachments": "attachments"},
            display_name="Slack",
            description="Post messages to Slack",
        )
        self._register_pair(
            "n8n-nodes-base.telegram", "telegram:SendMessage",
            {"chatId": "chatId", "text": "text", "parseMode": "parseMode"},
            display_name="Telegram",
            description="Send Telegram messages",
        )
        self._register_pair(
            "n8n-nodes-base.discord", "discord:CreateMessage",
            {"channelId": "channelId", "content": "content"},
            display_name="Discord",
            description="Post messages to Discord",
        )
        self._register_pair(
            "n8n-nodes-base.microsoftTeams", "microsoft-teams:CreateMessage",
            {"teamId": "teamId", "channelId": "channelId", "message": "content"},
            display_name="Microsoft Teams",
            description="Post messages to Microsoft Teams",
        )
        self._register_pair(
            "n8n-nodes-base.twilio", "twilio:CreateMessage",
            {"from": "from", "to": "to", "message": "body"},
            display_name="Twilio",
            description="Send SMS with Twilio",
        )
        self._register_pair(
            "n8n-nodes-base.mattermost", "mattermost:CreatePost",
            {"channelId": "channelId", "message": "message"},
            display_name="Mattermost",
            description="Post messages to Mattermost",
        )

    def _register_productivity_nodes(self) -> None:
        """Register spreadsheet, calendar, storage and task nodes."""

        self._register_pair(
            "n8n-nodes-base.googleSheets", "google-sheets:addRow",
            {"sheetName": "sheetId", "documentId": "spreadsheetId"},
            display_name="Google Sheets",
            description="Add rows to a spreadsheet",
        )
        self._register_pair(
            "n8n-nodes-base.googleDrive", "google-drive:uploadAFile",
            {"name": "fileName", "parents": "folderId"},
            display_name="Google Drive",
            description="Upload files to Google Drive",
        )
        self._register_pair(
            "n8n-nodes-base.googleCalendar", "google-calendar:createAnEvent",
            {"calendar": "calendarId", "start": "start", "end": "end", "summary": "summary"},
            display_name="Google Calendar",
            description="Create calendar events",
        )
        self._register_pair(
            "n8n-nodes-base.airtable", "airtable:ActionCreateRecord",
            {"application": "base", "table": "table", "fields": "record"},
            display_name="Airtable",
            description="Create Airtable records",
        )
        self._register_pair(
            "n8n-nodes-base.trello", "trello:ActionCreateCard",
            {"listId": "list", "name": "name", "description": "description"},
            display_name="Trello",
            description="Create Trello cards",
        )
        self._register_pair(
            "n8n-nodes-base.asana", "asana:CreateTask",
            {"workspace": "workspace", "name": "name", "projects": "projects"},
            display_name="Asana",
            description="Create Asana tasks",
        )
        self._register_pair(
            "n8n-nodes-base.openWeatherMap", "weather:ActionGetCurrentWeather",
            {"cityName": "city", "units": "units"},
            display_name="OpenWeatherMap",
            description="Get current weather data",
        )

    def _register_crm_nodes(self) -> None:
        """Register CRM, e-commerce and marketing nodes."""

        self._register_pair(
            "n8n-nodes-base.hubspot", "hubspotcrm:createContact",
            {"email": "email", "additionalFields": "properties"},
            display_name="HubSpot",
            description="Create HubSpot contacts",
        )
        self._register_pair(
            "n8n-nodes-base.salesforce", "salesforce:ActionCreateRecord",
            {"resource": "type", "additionalFields": "fields"},
            display_name="Salesforce",
            description="Create Salesforce records",
            accuracy=80,
        )
        self._register_pair(
            "n8n-nodes-base.pipedrive", "pipedrive:CreateDeal",
            {"title": "title", "additionalFields": "fields"},
            display_name="Pipedrive",
            description="Create Pipedrive deals",
        )
        self._register_pair(
            "n8n-nodes-base.mailchimp", "mailchimp:AddSubscriber",
            {"list": "listId", "email": "email", "status": "status"},
            display_name="Mailchimp",
            description="Add list subscribers",
        )
        self._register_pair(
            "n8n-nodes-base.stripe", "stripe:CreateCustomer",
            {"name": "name", "email": "email", "additionalFields": "fields"},
            display_name="Stripe",
            description="Create Stripe customers",
            accuracy=80,
        )
        self._register_pair(
            "n8n-nodes-base.shopify", "shopify:CreateOrder",
            {"lineItems": "lineItems", "additionalFields": "fields"},
            display_name="Shopify",
            description="Create Shopify orders",
            accuracy=80,
        )

    def _register_developer_nodes(self) -> None:
        """Register source control and issue tracker nodes."""

        self._register_pair(
            "n8n-nodes-base.github", "github:CreateIssue",
            {"owner": "owner", "repository": "repo", "title": "title", "body": "body"},
            display_name="GitHub",
            description="Create GitHub issues",
        )
        self._register_pair(
            "n8n-nodes-base.gitlab", "gitlab:CreateIssue",
            {"owner": "namespace", "repository": "project", "title": "title", "body": "description"},
            display_name="GitLab",
            description="Create GitLab issues",
        )
        self._register_pair(
            "n8n-nodes-base.jira", "jira:CreateIssue",
            {"project": "projectKey", "issueType": "issueType", "summary": "summary"},
            display_name="Jira",
            description="Create Jira issues",
        )

    def _register_data_nodes(self) -> None:
        """Register database and file storage nodes."""

        self._register_pair(
            "n8n-nodes-base.postgres", "postgres:ExecuteQuery",
            {"query": "query", "operation": "operation"},
            display_name="Postgres",
            description="Run PostgreSQL queries",
        )
        self._register_pair(
            "n8n-nodes-base.mySql", "mysql:ExecuteQuery",
            {"query": "query", "operation": "operation"},
            display_name="MySQL",
            description="Run MySQL queries",
        )
        self._register_pair(
            "n8n-nodes-base.mongoDb", "mongodb:SearchDocuments",
            {"collection": "collection", "query": "filter", "operation": "operation"},
            display_name="MongoDB",
            description="Work with MongoDB collections",
            accuracy=80,
        )
        self._register_pair(
            "n8n-nodes-base.awsS3", "aws-s3:UploadFile",
            {"bucketName": "bucket", "fileName": "key"},
            display_name="AWS S3",
            description="Upload files to S3",
        )
        self._register_pair(
            "n8n-nodes-base.dropbox", "dropbox:UploadFile",
            {"path": "folder", "fileContent": "data"},
            display_name="Dropbox",
            description="Upload files to Dropbox",
            accuracy=80,
        )

    def _register_ai_nodes(self) -> None:
        """Register AI nodes."""

        self._register_pair(
            "n8n-nodes-base.openAi", "openai-gpt-3:CreateCompletion",
            {"model": "model", "prompt": "prompt", "maxTokens": "max_tokens", "temperature": "temperature"},
            display_name="OpenAI",
            description="Create completions with OpenAI",
        )

    # ==================== Lookup ====================

    def get(self, source_type: str, direction: Direction) -> Optional[NodeMappingEntry]:
        """Exact, case-sensitive lookup."""
        return self._tables[Direction(direction)].get(source_type)

    def entries(self, direction: Direction) -> List[NodeMappingEntry]:
        return list(self._tables[Direction(direction)].values())

    def tables(self) -> Dict[str, Dict[str, NodeMappingEntry]]:
        """Copies of both direction tables keyed by direction name."""
        return {direction.value: dict(table) for direction, table in self._tables.items()}

    def get_supported_count(self) -> int:
        return len(self._tables[Direction.N8N_TO_MAKE])


# Global registry instance
_registry: Optional[BaseMappingRegistry] = None


def get_base_registry() -> BaseMappingRegistry:
    """Get the global base mapping registry."""
    global _registry
    if _registry is None:
        _registry = BaseMappingRegistry()
    return _registry

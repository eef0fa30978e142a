"""
FlowBridge Workflow Converter - FastAPI Main Application

This is the main entry point for the backend API.
Provides endpoints for:
- POST /api/convert - Convert an n8n workflow or Make.com scenario
- POST /api/validate - Validate the structure of a workflow document
- POST /api/analyze - Flag nodes that need manual work after conversion
- GET /api/node-mappings - Combined mapping tables
- GET /api/coverage - Mapping coverage of commonly used node types
- GET|POST /api/user-mappings, DELETE /api/user-mappings/{id} - User mappings
"""
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()

from flowbridge.core.config import settings
from flowbridge.core.errors import ErrorCode, MappingConfigError
from flowbridge.models.workflow_models import Direction
from flowbridge.services.converter.node_analyzer import NodeAnalyzer
from flowbridge.services.converter.orchestrator import get_workflow_converter
from flowbridge.services.mappings.coverage import CoverageValidator
from flowbridge.services.mappings.mapping_database import get_mapping_database
from flowbridge.services.mappings.resolver import describe_entry
from flowbridge.services.mappings.user_mappings import get_user_mapping_store
from flowbridge.validation.workflow_validator import validate_workflow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level_name, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class ConvertRequest(BaseModel):
    workflow: Any = None
    sourcePlatform: Optional[str] = None
    targetPlatform: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class ValidateRequest(BaseModel):
    workflow: Any = None
    platform: Optional[str] = None


class AnalyzeRequest(BaseModel):
    workflow: Any = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    # Build the mapping snapshot once so the first request does not pay for it
    tables = get_mapping_database().snapshot()
    logger.info(f"Mapping tables: {tables.counts()}")
    logger.info(f"Enabled plugins: {', '.join(settings.enabled_plugins) or 'none'}")
    logger.info(f"User mappings file: {settings.user_mappings_path or 'in memory'}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")


# Create FastAPI application
app = FastAPI(
    title="FlowBridge Workflow Converter API",
    description="Convert automation workflows between n8n and Make.com",
    version=settings.app_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _check_document_size(document: Any) -> None:
    size_mb = len(json.dumps(document, default=str)) / (1024 * 1024)
    if size_mb > settings.max_document_size_mb:
        raise HTTPException(
            status_code=413,
            detail={
                "error": ErrorCode.DOCUMENT_TOO_LARGE.value,
                "message": f"Workflow too large: {size_mb:.1f}MB (maximum: {settings.max_document_size_mb}MB)",
                "suggestion": "Split the workflow into smaller workflows"
            }
        )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    database = get_mapping_database()
    return {
        "status": "healthy",
        "mappings": database.snapshot().counts(),
        "plugins": [plugin.id for plugin in database.plugins.all()] if database.plugins else [],
        "user_mappings": len(get_user_mapping_store().get_mappings())
    }


@app.post("/api/convert")
async def convert_workflow(request: ConvertRequest):
    """
    Convert a workflow.

    Conversion problems never fail the request; they are reported in `logs`.
    """
    _check_document_size(request.workflow)
    converter = get_workflow_converter()
    return await converter.convert(
        request.workflow,
        request.sourcePlatform,
        request.targetPlatform,
        request.options,
    )


@app.post("/api/validate")
async def validate(request: ValidateRequest):
    """Structural validation of a workflow document."""
    _check_document_size(request.workflow)
    return validate_workflow(request.workflow, request.platform).to_dict()


@app.post("/api/analyze")
async def analyze(request: AnalyzeRequest):
    """Per-node analysis issues."""
    _check_document_size(request.workflow)
    results = NodeAnalyzer().analyze_workflow(request.workflow)
    return {"nodes": [result.to_dict() for result in results]}


@app.get("/api/node-mappings")
async def get_node_mappings():
    """Combined mapping tables (base < plugin < user) in wire form."""
    database = get_mapping_database()
    tables = database.snapshot()
    return {
        "mappings": {
            direction.value: {
                source_type: describe_entry(entry)
                for source_type, entry in tables.for_direction(direction).items()
            }
            for direction in Direction
        },
        "counts": tables.counts(),
        "plugins": [plugin.to_dict() for plugin in database.plugins.all()] if database.plugins else []
    }


@app.get("/api/coverage")
async def get_coverage():
    """Coverage of commonly used node and module types."""
    return CoverageValidator(get_mapping_database().snapshot()).report()


@app.get("/api/user-mappings")
async def list_user_mappings():
    return {"mappings": [mapping.to_dict() for mapping in get_user_mapping_store().get_mappings()]}


@app.post("/api/user-mappings", status_code=201)
async def create_user_mapping(mapping: Dict[str, Any]):
    """Create a user mapping; it takes precedence over base and plugin mappings."""
    try:
        saved = get_user_mapping_store().save_mapping(mapping)
    except MappingConfigError as e:
        logger.warning(f"Rejected user mapping: {e}")
        raise HTTPException(status_code=400, detail=e.to_dict())
    return saved.to_dict()


@app.delete("/api/user-mappings/{mapping_id}")
async def delete_user_mapping(mapping_id: str):
    if not get_user_mapping_store().delete_mapping(mapping_id):
        raise HTTPException(
            status_code=404,
            detail={
                "error": ErrorCode.MAPPING_NOT_FOUND.value,
                "message": f"User mapping {mapping_id} not found"
            }
        )
    return {"deleted": mapping_id}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "flowbridge.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )

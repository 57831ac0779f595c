#!/usr/bin/env python3
"""
Resume endpoints - streams, uploads, processing status and enrichment.
"""

import logging
import uuid
from typing import Optional, List

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from core.app_context import AppContext
from core.exceptions import EntityNotFoundError, UploadRejectedError
from core.utils import parse_uuid, generate_file_fingerprint
from database.repository import KnowledgeRepository
from ..dependencies import get_app_context, get_repo, get_owner_id
from ..services.processing_service import get_processing_runner, ProcessingRunner
from ..models.requests import StreamCreate, StreamUpdate
from ..models.responses import (
    StreamResponse,
    VersionResponse,
    UploadResponse,
    ProcessingStatusResponse,
    EntityResponse,
    EnrichEntityResponse,
    EnrichmentResponse,
    SummaryResponse,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/api/resumes", tags=["resumes"])


def add_rate_limit_handlers(app):
    """Add rate limit exception handlers to the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"success": False, "error": str(exc), "type": "RateLimitExceeded"}
    )


def _split_tags(tags: Optional[str]) -> List[str]:
    return [t.strip() for t in (tags or "").split(",") if t.strip()]


# --- Streams ---

@router.get("/streams", response_model=List[StreamResponse])
def list_streams(
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """List the caller's resume streams, most recently updated first."""
    return ctx.document_store.list_streams(repo, owner_id)


@router.post("/streams", response_model=StreamResponse, status_code=201)
def create_stream(
    body: StreamCreate,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    return ctx.document_store.create_stream(repo, owner_id, body.name, body.description, body.tags)


@router.patch("/streams/{stream_id}", response_model=StreamResponse)
def update_stream(
    stream_id: str,
    body: StreamUpdate,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    return ctx.document_store.update_stream(repo, owner_id, stream_id, body.model_dump(exclude_none=True))


@router.get("/streams/{stream_id}/versions", response_model=List[VersionResponse])
def list_versions(
    stream_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Versions of a stream, newest first."""
    return ctx.document_store.list_versions(repo, owner_id, stream_id)


# --- Uploads ---

@router.post("/upload", response_model=UploadResponse)
@limiter.limit("5/minute")
def upload_resume(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    stream_id: Optional[str] = Form(None),
    stream_name: Optional[str] = Form(None),
    tags: Optional[str] = Form(None, description="Comma-separated tags for a new stream"),
    process: bool = Query(True, description="Queue extraction, enrichment and analysis"),
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context),
    runner: ProcessingRunner = Depends(get_processing_runner)
):
    """
    Upload a resume file as a new version.

    Re-uploading bytes the caller already uploaded returns the existing
    version with is_duplicate=true and queues nothing. The file is kept
    in memory only; processing runs after the response is sent.
    """
    content = file.file.read()
    result = ctx.document_store.upload_version(
        repo,
        owner_id,
        content,
        mime_type=file.content_type or "application/octet-stream",
        file_name=file.filename,
        stream_id=stream_id or None,
        stream_name=stream_name or None,
        tags=_split_tags(tags),
        metadata={"original_name": file.filename}
    )

    queued = process and not result.is_duplicate
    response = UploadResponse(
        is_duplicate=result.is_duplicate,
        processing_queued=queued,
        version=VersionResponse.model_validate(result.version)
    )
    if queued:
        # The version row must be committed before the task opens its own session
        repo.commit()
        background_tasks.add_task(runner, result.version.id, content)
    return response


@router.post("/versions/{version_id}/process", response_model=VersionResponse)
def reprocess_version(
    version_id: str,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="The same document that was originally uploaded"),
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context),
    runner: ProcessingRunner = Depends(get_processing_runner)
):
    """
    Retry processing of a version.

    Raw bytes are not stored, so the caller re-sends the document; it must
    hash to the version's content hash.
    """
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    content = file.file.read()
    if generate_file_fingerprint(content) != version.content_hash:
        raise UploadRejectedError("File content does not match the version being reprocessed")

    background_tasks.add_task(runner, version.id, content)
    return version


@router.get("/versions/{version_id}/status", response_model=ProcessingStatusResponse)
def get_processing_status(
    version_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Derived processing status of a version.

    Poll while should_continue_polling is true.
    """
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    status = ctx.tracker.get_processing_status(repo, version.id)
    return ProcessingStatusResponse(**status.to_dict())


@router.get("/versions/{version_id}/entities", response_model=List[EntityResponse])
def list_entities(
    version_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    return repo.entities.list_entities(version.id)


# --- Enrichment ---

@router.post("/versions/{version_id}/enrich", response_model=SummaryResponse)
def enrich_version(
    version_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Enrich every entity of the version that has no enrichment yet."""
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    summary = ctx.enrichment.enrich_all_for_version(repo, version.id)
    return SummaryResponse(summary=summary.to_dict())


@router.post("/entities/{entity_id}/enrich", response_model=EnrichEntityResponse)
def enrich_entity(
    entity_id: str,
    force_refresh: bool = Query(False, description="Call the AI even if an enrichment exists"),
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    eid = parse_uuid(entity_id, "entity id")
    entity = repo.entities.get_entity(eid)
    if entity is None:
        raise EntityNotFoundError(f"Parsed entity not found: {eid}")
    ctx.document_store.get_version(repo, entity.version_id, owner_id)

    outcome = ctx.enrichment.enrich_entity(repo, eid, force_refresh=force_refresh)
    return EnrichEntityResponse(
        was_cached=outcome.was_cached,
        enrichment=EnrichmentResponse.model_validate(outcome.enrichment)
    )

#!/usr/bin/env python3
"""
Review endpoints - diff analysis, merge decisions and applying them.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Query

from core.app_context import AppContext
from database.repository import KnowledgeRepository
from ..dependencies import get_app_context, get_repo, get_owner_id
from ..models.requests import DecisionCreate
from ..models.responses import DiffResponse, DiffsResponse, DecisionResponse, SummaryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review", tags=["review"])


@router.post("/versions/{version_id}/analyze", response_model=SummaryResponse)
def analyze_version(
    version_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Compare the version's entities with the confirmed profile."""
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    summary = ctx.diff_engine.analyze_version(repo, version.id)
    return SummaryResponse(summary=summary.to_dict())


@router.get("/versions/{version_id}/diffs", response_model=DiffsResponse)
def list_diffs(
    version_id: str,
    pending_only: bool = Query(False, description="Only unresolved diffs that need review"),
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    if pending_only:
        diffs = ctx.diff_engine.list_pending_review(repo, version.id)
    else:
        diffs = ctx.diff_engine.list_diffs(repo, version.id)

    return DiffsResponse(
        count=len(diffs),
        diffs=[DiffResponse.model_validate(d) for d in diffs]
    )


@router.post("/versions/{version_id}/decisions", response_model=DecisionResponse, status_code=201)
def record_decision(
    version_id: str,
    body: DecisionCreate,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Record a decision on a diff. It takes effect when decisions are applied."""
    return ctx.merge_resolver.record_decision(
        repo,
        owner_id,
        version_id,
        body.entity_id,
        body.decision_type,
        override_value=body.override_value,
        justification=body.justification,
        profile_entity_id=body.profile_entity_id,
        profile_entity_type=body.profile_entity_type
    )


@router.get("/versions/{version_id}/decisions", response_model=List[DecisionResponse])
def list_decisions(
    version_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Recorded decisions, newest first."""
    return ctx.merge_resolver.list_decisions(repo, owner_id, version_id)


@router.post("/versions/{version_id}/apply", response_model=SummaryResponse)
def apply_decisions(
    version_id: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Apply the version's decisions to the confirmed profile.

    Always answers 200 with a per-decision summary; check its errors count.
    """
    version = ctx.document_store.get_version(repo, version_id, owner_id)
    summary = ctx.merge_resolver.apply_decisions(repo, owner_id, version.id)
    return SummaryResponse(summary=summary.to_dict())

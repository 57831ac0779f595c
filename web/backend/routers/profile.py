#!/usr/bin/env python3
"""
Profile endpoints - confirmed profile facts and owner data deletion.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from database.repository import KnowledgeRepository
from ..dependencies import get_app_context, get_repo, get_owner_id
from ..models.requests import ProfileEntryUpsert
from ..models.responses import ProfileEntryResponse, DeletionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=List[ProfileEntryResponse])
def get_confirmed_profile(
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    return ctx.merge_resolver.list_confirmed_profile(repo, owner_id)


@router.put("/entries", response_model=ProfileEntryResponse)
def upsert_profile_entry(
    body: ProfileEntryUpsert,
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Create or replace a confirmed fact entered by the user."""
    return ctx.merge_resolver.upsert_manual_entry(
        repo,
        owner_id,
        body.entity_type,
        body.entity_id,
        body.field_name,
        body.confirmed_value
    )


@router.get("/deletion-preview", response_model=DeletionResponse)
def preview_deletion(
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Row counts per table that deleting all data would remove."""
    counts = ctx.document_store.preview_owner_deletion(repo, owner_id)
    return DeletionResponse(tables=counts, total=sum(counts.values()))


@router.delete("", response_model=DeletionResponse)
def delete_all_data(
    owner_id: uuid.UUID = Depends(get_owner_id),
    repo: KnowledgeRepository = Depends(get_repo),
    ctx: AppContext = Depends(get_app_context)
):
    """Delete every stream, version, entity, diff, decision and profile fact of the caller."""
    deleted = ctx.document_store.delete_all_for_owner(repo, owner_id)
    return DeletionResponse(tables=deleted, total=sum(deleted.values()))

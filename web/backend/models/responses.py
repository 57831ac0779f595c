#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any


class StreamResponse(BaseModel):
    """A resume stream."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    auto_tagged: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VersionResponse(BaseModel):
    """One uploaded resume version."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    stream_id: uuid.UUID
    version_number: int
    content_hash: str
    file_name: Optional[str] = None
    size_bytes: int
    mime_type: str
    processing_status: str
    processing_stage: str
    processing_progress: int = Field(ge=0, le=100)
    processing_error: Optional[str] = None
    created_at: Optional[datetime] = None


class UploadResponse(BaseModel):
    """Result of an upload."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "is_duplicate": False,
                "processing_queued": True,
                "version": {
                    "id": "6ba7b810-9dad-11d1-80b4-00c04fd430c8",
                    "stream_id": "550e8400-e29b-41d4-a716-446655440000",
                    "version_number": 2,
                    "content_hash": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                    "file_name": "resume.txt",
                    "size_bytes": 5120,
                    "mime_type": "text/plain",
                    "processing_status": "pending",
                    "processing_stage": "upload",
                    "processing_progress": 0
                }
            }
        }
    )

    success: bool = True
    is_duplicate: bool
    processing_queued: bool
    version: VersionResponse


class ProcessingStatusResponse(BaseModel):
    """Derived processing status of a version."""
    version_id: uuid.UUID
    current_stage: str
    processing_progress: int = Field(ge=0, le=100)
    processing_status: str
    processing_stage: str
    has_entities: bool
    has_enrichment: bool
    has_narratives: bool
    is_complete: bool
    should_continue_polling: bool
    last_updated: Optional[datetime] = None
    processing_error: Optional[str] = None


class EntityResponse(BaseModel):
    """One parsed entity."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version_id: uuid.UUID
    field_name: str
    raw_value: str
    value_kind: str
    confidence_score: float
    model_version: Optional[str] = None


class EnrichmentResponse(BaseModel):
    """AI analysis of one entity."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    entity_id: uuid.UUID
    insights: List[str]
    skills_identified: List[str]
    experience_level: Optional[str] = None
    career_progression: Optional[str] = None
    market_relevance: Optional[str] = None
    recommendations: List[str]
    confidence_score: float
    model_version: Optional[str] = None
    enrichment_metadata: Dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None


class EnrichEntityResponse(BaseModel):
    success: bool = True
    was_cached: bool
    enrichment: EnrichmentResponse


class DiffResponse(BaseModel):
    """Classified comparison of one entity against the confirmed profile."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version_id: uuid.UUID
    entity_id: uuid.UUID
    profile_entity_id: Optional[str] = None
    profile_entity_type: Optional[str] = None
    diff_type: str
    similarity_score: float
    confidence_score: float
    justification: Optional[str] = None
    requires_review: bool
    diff_metadata: Dict[str, Any] = Field(default_factory=dict, serialization_alias="metadata")
    resolved_at: Optional[datetime] = None
    resolution_type: Optional[str] = None
    merge_decision_id: Optional[uuid.UUID] = None


class DiffsResponse(BaseModel):
    success: bool = True
    count: int
    diffs: List[DiffResponse]


class DecisionResponse(BaseModel):
    """A recorded merge decision."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version_id: uuid.UUID
    entity_id: uuid.UUID
    field_name: str
    decision_type: str
    parsed_value: str
    override_value: Optional[str] = None
    confidence_score: float
    profile_entity_id: Optional[str] = None
    profile_entity_type: Optional[str] = None
    justification: Optional[str] = None
    created_at: Optional[datetime] = None


class ProfileEntryResponse(BaseModel):
    """A confirmed profile fact."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    entity_type: str
    entity_id: str
    field_name: str
    confirmed_value: str
    confidence_score: float
    source: str
    last_confirmed_at: Optional[datetime] = None


class SummaryResponse(BaseModel):
    """Batch summary (enrichment, diff analysis, merge) passed through as-is."""
    success: bool = True
    summary: Dict[str, Any]


class DeletionResponse(BaseModel):
    success: bool = True
    tables: Dict[str, int]
    total: int

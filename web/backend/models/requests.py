#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class StreamCreate(BaseModel):
    """Request to create a resume stream."""
    name: str = Field(..., min_length=1, description="Display name of the stream")
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list, description="Free-text tags")


class StreamUpdate(BaseModel):
    """Partial update of a resume stream."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    tags: Optional[List[str]] = None


class DecisionCreate(BaseModel):
    """A ruling on one diff."""
    entity_id: str = Field(..., description="Parsed entity the diff belongs to")
    decision_type: str = Field(..., description="accept, reject or override")
    override_value: Optional[str] = Field(None, description="Required for override decisions")
    justification: Optional[str] = None
    profile_entity_id: Optional[str] = Field(None, description="Target profile entity id (defaults to the matched one)")
    profile_entity_type: Optional[str] = Field(None, description="Target profile entity type (defaults to the matched one)")


class ProfileEntryUpsert(BaseModel):
    """A fact entered directly by the user."""
    entity_type: str
    entity_id: str
    field_name: str
    confirmed_value: str

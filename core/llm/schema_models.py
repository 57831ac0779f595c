"""
Pydantic models for the structured AI responses.

This module provides:
1. Type-safe Python models for every completion the pipeline requests
2. Runtime JSON schema generation for OpenAI structured output
3. Flattening of the resume extraction into dotted-field entities

All schemas follow OpenAI's structured output requirements with strict validation.
"""
from typing import List, Optional, Literal, Any, Dict
from pydantic import BaseModel, Field, ConfigDict, field_validator


# ============================================================================
# RESUME EXTRACTION SCHEMA MODELS
# ============================================================================

class PersonalInfo(BaseModel):
    """Contact details at the top of the resume."""
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(description="Full name of the candidate")
    email: Optional[str] = Field(description="Email address")
    phone: Optional[str] = Field(description="Phone number as written")
    location: Optional[str] = Field(description="City, region or country")
    linkedin_url: Optional[str] = Field(description="LinkedIn profile URL")
    website: Optional[str] = Field(description="Personal website or portfolio URL")


class WorkExperienceItem(BaseModel):
    """A single work experience entry."""
    model_config = ConfigDict(extra='forbid')

    company: Optional[str] = Field(description="Company or organization name")
    title: Optional[str] = Field(description="Job title or role")
    location: Optional[str] = Field(description="Work location")
    start_date: Optional[str] = Field(description="Start date as written")
    end_date: Optional[str] = Field(description="End date as written (null if current)")
    is_current: Optional[bool] = Field(description="Whether this is the current position")
    description: Optional[str] = Field(description="Role description or responsibilities")
    highlights: List[str] = Field(description="Key achievements, verbatim")


class EducationItem(BaseModel):
    """A single education entry."""
    model_config = ConfigDict(extra='forbid')

    institution: Optional[str] = Field(description="School or university name")
    degree: Optional[str] = Field(description="Degree earned (e.g., 'Bachelor of Science')")
    field_of_study: Optional[str] = Field(description="Field or major")
    graduation_year: Optional[int] = Field(description="Graduation year (end year of a range)")
    description: Optional[str] = Field(description="GPA, honors or other details")


class ProjectItem(BaseModel):
    """A notable project."""
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(description="Project title")
    description: Optional[str] = Field(description="Project context and goals")
    technologies: List[str] = Field(description="Technologies explicitly mentioned for this project")
    url: Optional[str] = Field(description="Canonical project URL")


class CertificationItem(BaseModel):
    """A professional certification."""
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(description="Certification name")
    issuer: Optional[str] = Field(description="Organization that issued the certification")
    issued_year: Optional[int] = Field(description="Year certification was earned")


class ResumeExtraction(BaseModel):
    """Complete resume extraction schema."""
    model_config = ConfigDict(extra='forbid')

    personal_info: PersonalInfo = Field(description="Contact details")
    summary: Optional[str] = Field(description="Professional summary or objective, verbatim")
    work_experience: List[WorkExperienceItem] = Field(description="Work experience history, most recent first")
    education: List[EducationItem] = Field(description="Educational background")
    skills: List[str] = Field(description="Skills as a flat de-duplicated list")
    projects: List[ProjectItem] = Field(description="Notable projects")
    certifications: List[CertificationItem] = Field(description="Professional certifications")

    def to_entities(self, model_version: Optional[str] = None) -> List["ExtractedEntity"]:
        """Flatten the extraction into dotted-field entities.

        Sections are walked one level into objects and one level into lists
        (``personal_info.email``, ``work_experience.0.title``, ``skills.3``).
        Anything deeper stays a structured value (``work_experience.0.highlights``).
        Empty leaves are dropped.
        """
        entities = []
        document = self.model_dump()

        for section in ResumeExtraction.model_fields:
            value = document.get(section)
            if isinstance(value, dict):
                for key, leaf in value.items():
                    entities.extend(_leaf(f"{section}.{key}", leaf, model_version))
            elif isinstance(value, list):
                for index, item in enumerate(value):
                    if isinstance(item, dict):
                        for key, leaf in item.items():
                            entities.extend(_leaf(f"{section}.{index}.{key}", leaf, model_version))
                    else:
                        entities.extend(_leaf(f"{section}.{index}", item, model_version))
            else:
                entities.extend(_leaf(section, value, model_version))

        return entities


# Extraction confidence per section; contact fields are the most reliable
SECTION_CONFIDENCE = {
    'personal_info': 0.9,
    'summary': 0.8,
    'work_experience': 0.85,
    'education': 0.85,
    'skills': 0.8,
    'projects': 0.8,
    'certifications': 0.85,
}

FIELD_CONFIDENCE = {
    'personal_info.email': 0.95,
    'personal_info.location': 0.85,
}


def _leaf(field_name: str, value: Any, model_version: Optional[str]) -> List["ExtractedEntity"]:
    if value is None or value == "" or value == []:
        return []
    section = field_name.split('.', 1)[0]
    confidence = FIELD_CONFIDENCE.get(field_name, SECTION_CONFIDENCE.get(section, 0.8))
    return [ExtractedEntity(
        field_name=field_name,
        raw_value=value,
        confidence=confidence,
        model_version=model_version
    )]


class ExtractedEntity(BaseModel):
    """One flattened (field, value, confidence) triple handed to the pipeline."""
    field_name: str = Field(min_length=1)
    raw_value: Any
    confidence: float = Field(ge=0.0, le=1.0)
    model_version: Optional[str] = None


RESUME_EXTRACTION_SCHEMA = {
    "name": "resume_extraction_v1",
    "strict": True,
    "schema": ResumeExtraction.model_json_schema()
}


# ============================================================================
# ENRICHMENT SCHEMA MODELS
# ============================================================================

class EnrichmentResponse(BaseModel):
    """AI analysis of a single resume entry."""
    model_config = ConfigDict(extra='forbid')

    insights: List[str] = Field(description="Key observations about this entry, most important first")
    skills_identified: List[str] = Field(description="Skills demonstrated by this entry")
    experience_level: Literal["entry", "mid", "senior", "executive"] = Field(
        description="Seniority this entry reflects"
    )
    career_progression: str = Field(description="What this entry says about career growth")
    market_relevance: str = Field(description="How relevant this entry is to the current job market")
    recommendations: List[str] = Field(description="Suggestions for presenting this entry better, in priority order")
    parsed_structure: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Structured reading of the entry, if it has one"
    )
    confidence_score: Optional[float] = Field(
        default=None,
        description="Confidence in this analysis (0.0-1.0)",
        ge=0.0,
        le=1.0
    )

    @field_validator('skills_identified')
    @classmethod
    def _unique_sorted_skills(cls, skills: List[str]) -> List[str]:
        return sorted({s.strip() for s in skills if s and s.strip()})


class _EnrichmentSchema(BaseModel):
    # Strict mode needs every property required and no free-form objects
    model_config = ConfigDict(extra='forbid')

    insights: List[str]
    skills_identified: List[str]
    experience_level: Literal["entry", "mid", "senior", "executive"]
    career_progression: str
    market_relevance: str
    recommendations: List[str]
    confidence_score: Optional[float]


ENRICHMENT_SCHEMA = {
    "name": "entry_enrichment_v1",
    "strict": True,
    "schema": _EnrichmentSchema.model_json_schema()
}


# ============================================================================
# SEMANTIC COMPARISON SCHEMA MODELS
# ============================================================================

class ComparisonResponse(BaseModel):
    """Classification of a parsed value against a confirmed profile value."""
    model_config = ConfigDict(extra='forbid')

    diff_type: Literal["identical", "equivalent", "conflicting", "new"] = Field(
        description="How the parsed value relates to the confirmed value"
    )
    similarity_score: float = Field(description="Semantic similarity (0.0-1.0)", ge=0.0, le=1.0)
    justification: str = Field(description="One or two sentences explaining the classification")
    requires_review: bool = Field(description="Whether a human should review before merging")


COMPARISON_SCHEMA = {
    "name": "semantic_comparison_v1",
    "strict": True,
    "schema": ComparisonResponse.model_json_schema()
}


# ============================================================================
# CAREER NARRATIVE SCHEMA MODELS
# ============================================================================

class NarrativeResponse(BaseModel):
    """Whole-resume career narratives."""
    model_config = ConfigDict(extra='forbid')

    career_summary: str = Field(description="Two or three sentence overview of the career")
    key_strengths: str = Field(description="The candidate's strongest differentiators")
    growth_trajectory: str = Field(description="How the career has developed and where it is heading")

    def as_records(self, model_version: Optional[str], confidence_score: float) -> List[Dict[str, Any]]:
        return [
            {
                'narrative_type': narrative_type,
                'narrative_text': getattr(self, narrative_type),
                'model_version': model_version,
                'confidence_score': confidence_score,
            }
            for narrative_type in NarrativeResponse.model_fields
        ]


NARRATIVE_SCHEMA = {
    "name": "career_narratives_v1",
    "strict": True,
    "schema": NarrativeResponse.model_json_schema()
}

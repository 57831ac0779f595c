"""
Unit tests for the structured response models.

Tests verify:
- Resume extraction flattens into dotted-field entities
- Enrichment skills are de-duplicated and sorted
- Comparison scores and types are validated
- Wrapped schemas are valid strict JSON Schema objects
"""
import pytest
from pydantic import ValidationError

from core.llm.schema_models import (
    ResumeExtraction,
    EnrichmentResponse,
    ComparisonResponse,
    NarrativeResponse,
    RESUME_EXTRACTION_SCHEMA,
    ENRICHMENT_SCHEMA,
    COMPARISON_SCHEMA,
    NARRATIVE_SCHEMA,
)


def _extraction(**overrides):
    data = {
        'personal_info': {
            'name': "Jane Doe",
            'email': "jane@example.com",
            'phone': None,
            'location': "Berlin",
            'linkedin_url': None,
            'website': "",
        },
        'summary': "Backend engineer",
        'work_experience': [{
            'company': "Acme Corp",
            'title': "Senior Engineer",
            'location': None,
            'start_date': "2019",
            'end_date': None,
            'is_current': True,
            'description': None,
            'highlights': ["Cut latency by 40%", "Led migration"],
        }],
        'education': [],
        'skills': ["Python", "SQL"],
        'projects': [],
        'certifications': [],
    }
    data.update(overrides)
    return ResumeExtraction.model_validate(data)


class TestResumeExtractionFlattening:

    def test_dotted_field_names(self):
        fields = {e.field_name for e in _extraction().to_entities("gpt-test")}

        assert "personal_info.name" in fields
        assert "summary" in fields
        assert "work_experience.0.title" in fields
        assert "work_experience.0.company" in fields
        assert "skills.0" in fields
        assert "skills.1" in fields

    def test_empty_leaves_are_dropped(self):
        fields = {e.field_name for e in _extraction().to_entities()}

        assert "personal_info.phone" not in fields
        assert "personal_info.website" not in fields
        assert "work_experience.0.end_date" not in fields
        assert not any(f.startswith("education") for f in fields)

    def test_nested_lists_stay_structured(self):
        entities = {e.field_name: e for e in _extraction().to_entities()}

        highlights = entities["work_experience.0.highlights"]
        assert highlights.raw_value == ["Cut latency by 40%", "Led migration"]

    def test_confidence_and_model_version(self):
        entities = {e.field_name: e for e in _extraction().to_entities("gpt-test")}

        assert entities["personal_info.email"].confidence == 0.95
        assert entities["personal_info.name"].confidence == 0.9
        assert entities["work_experience.0.title"].confidence == 0.85
        assert all(e.model_version == "gpt-test" for e in entities.values())

    def test_boolean_leaf_is_kept(self):
        entities = {e.field_name: e for e in _extraction().to_entities()}
        assert entities["work_experience.0.is_current"].raw_value is True

    def test_extra_keys_are_rejected(self):
        with pytest.raises(ValidationError):
            _extraction(hobbies=["chess"])


class TestEnrichmentResponse:

    def _data(self, **overrides):
        data = {
            'insights': ["b", "a"],
            'skills_identified': ["SQL", "Python", "SQL", " "],
            'experience_level': "senior",
            'career_progression': "Growing",
            'market_relevance': "High",
            'recommendations': ["second", "first"],
        }
        data.update(overrides)
        return data

    def test_skills_are_unique_and_sorted(self):
        response = EnrichmentResponse.model_validate(self._data())
        assert response.skills_identified == ["Python", "SQL"]

    def test_ordered_lists_keep_order(self):
        response = EnrichmentResponse.model_validate(self._data())
        assert response.insights == ["b", "a"]
        assert response.recommendations == ["second", "first"]

    def test_unknown_experience_level_rejected(self):
        with pytest.raises(ValidationError):
            EnrichmentResponse.model_validate(self._data(experience_level="wizard"))

    def test_confidence_is_optional(self):
        assert EnrichmentResponse.model_validate(self._data()).confidence_score is None


class TestComparisonResponse:

    def test_similarity_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            ComparisonResponse(diff_type="identical", similarity_score=1.5, justification="x", requires_review=False)

    def test_unknown_diff_type_rejected(self):
        with pytest.raises(ValidationError):
            ComparisonResponse(diff_type="similar", similarity_score=0.5, justification="x", requires_review=False)


class TestNarrativeResponse:

    def test_as_records_yields_one_per_type(self):
        response = NarrativeResponse(career_summary="s", key_strengths="k", growth_trajectory="g")
        records = response.as_records("gpt-test", 0.9)

        assert [r['narrative_type'] for r in records] == ["career_summary", "key_strengths", "growth_trajectory"]
        assert records[0]['narrative_text'] == "s"
        assert all(r['confidence_score'] == 0.9 and r['model_version'] == "gpt-test" for r in records)


@pytest.mark.parametrize("wrapped", [RESUME_EXTRACTION_SCHEMA, ENRICHMENT_SCHEMA, COMPARISON_SCHEMA, NARRATIVE_SCHEMA])
def test_wrapped_schemas_are_strict_objects(wrapped):
    assert wrapped["strict"] is True
    assert wrapped["name"]
    assert wrapped["schema"]["type"] == "object"
    assert "properties" in wrapped["schema"]

"""
Unit tests for the semantic diff engine.

Tests verify:
- Candidate matching by entity type prefix and field name
- The deterministic fallback comparison
- new / matched / multi-candidate classification
- Collaborator failures fall back instead of failing the run
"""
import uuid
from types import SimpleNamespace

import pytest

from core.exceptions import CollaboratorError, MalformedResponseError
from database.models import DiffType
from knowledge.diff_engine import SemanticDiffEngine, fallback_compare, find_candidates
from knowledge.extractor import EntityExtractionService
from tests.mocks.ai_mocks import MockLLMProvider, make_comparison


def _profile(entity_type, field_name, value="x", entity_id="p1"):
    return SimpleNamespace(entity_type=entity_type, field_name=field_name, confirmed_value=value, entity_id=entity_id)


class TestFallbackCompare:

    def test_case_insensitive_match_is_identical(self):
        result = fallback_compare("Senior Engineer", "senior engineer")
        assert result.diff_type == "identical"
        assert result.similarity_score == 1.0
        assert result.requires_review is False

    def test_substring_is_equivalent(self):
        result = fallback_compare("Engineer", "Senior Engineer")
        assert result.diff_type == "equivalent"
        assert result.similarity_score == 0.8
        assert result.requires_review is False

    def test_unrelated_values_conflict(self):
        result = fallback_compare("Engineer", "Product Manager")
        assert result.diff_type == "conflicting"
        assert result.similarity_score == 0.3
        assert result.requires_review is True

    def test_none_is_treated_as_empty(self):
        assert fallback_compare(None, "").diff_type == "identical"


class TestFindCandidates:

    def test_matches_entity_type_prefix(self):
        entries = [_profile("work_experience", "title"), _profile("skills", "skills.0")]
        assert find_candidates("work_experience.0.title", entries) == [entries[0]]

    def test_matches_field_name_containment(self):
        entries = [_profile("contact", "Personal_Info.Email")]
        assert find_candidates("personal_info.email", entries) == entries

    def test_no_candidates(self):
        assert find_candidates("education.0.degree", [_profile("skills", "skills.0")]) == []


@pytest.fixture
def setup_version(repo, version):
    def _setup(ai):
        EntityExtractionService(ai).extract_version(repo, version.id, b"resume")
        return version
    return _setup


def _diff_for(repo, version, field_name):
    entity = next(e for e in repo.entities.list_entities(version.id) if e.field_name == field_name)
    return repo.review.get_diff(version.id, entity.id)


class TestAnalyzeVersion:

    def test_no_profile_means_everything_is_new(self, repo, setup_version):
        ai = MockLLMProvider()
        version = setup_version(ai)

        summary = SemanticDiffEngine(ai).analyze_version(repo, version.id)

        assert summary.total == 5
        assert summary.new == 5
        assert ai.calls['compare'] == 0
        diff = _diff_for(repo, version, "work_experience.0.title")
        assert diff.diff_type == DiffType.NEW.value
        assert diff.similarity_score == 0.0
        assert diff.confidence_score == 0.9
        assert diff.requires_review is False
        assert diff.profile_entity_id is None
        assert diff.diff_metadata['candidate_count'] == 0

    def test_single_candidate_uses_ai_classification(self, repo, resolver, owner_id, setup_version):
        ai = MockLLMProvider(
            entities=[("work_experience.0.title", "Sr. Engineer", 0.9)],
            comparison=make_comparison("equivalent", 0.88)
        )
        version = setup_version(ai)
        resolver.upsert_manual_entry(repo, owner_id, "work_experience", "job-1", "title", "Senior Engineer")

        summary = SemanticDiffEngine(ai).analyze_version(repo, version.id)

        diff = _diff_for(repo, version, "work_experience.0.title")
        assert summary.equivalent == 1
        assert summary.fallbacks == 0
        assert diff.diff_type == "equivalent"
        assert diff.similarity_score == 0.88
        assert diff.profile_entity_id == "job-1"
        assert diff.profile_entity_type == "work_experience"
        assert diff.requires_review is False
        assert diff.diff_metadata['comparison_method'] == "ai"
        assert diff.diff_metadata['profile_field_name'] == "title"

    def test_multiple_candidates_force_review(self, repo, resolver, owner_id, setup_version):
        ai = MockLLMProvider(entities=[("work_experience.0.title", "Senior Engineer", 0.9)])
        version = setup_version(ai)
        resolver.upsert_manual_entry(repo, owner_id, "work_experience", "job-1", "title", "Senior Engineer")
        resolver.upsert_manual_entry(repo, owner_id, "work_experience", "job-2", "title", "Intern")

        SemanticDiffEngine(ai).analyze_version(repo, version.id)

        diff = _diff_for(repo, version, "work_experience.0.title")
        assert diff.diff_type == "identical"
        assert diff.requires_review is True
        assert diff.diff_metadata['candidate_count'] == 2
        assert "2 profile entries matched" in diff.justification

    @pytest.mark.parametrize("error", [CollaboratorError("down"), MalformedResponseError("garbage")])
    def test_collaborator_failure_uses_fallback(self, repo, resolver, owner_id, setup_version, error):
        ai = MockLLMProvider(entities=[("work_experience.0.title", "Engineer", 0.9)])
        ai.comparison_error = error
        version = setup_version(ai)
        resolver.upsert_manual_entry(repo, owner_id, "work_experience", "job-1", "title", "Product Manager")

        summary = SemanticDiffEngine(ai).analyze_version(repo, version.id)

        diff = _diff_for(repo, version, "work_experience.0.title")
        assert summary.fallbacks == 1
        assert summary.conflicting == 1
        assert summary.requires_review == 1
        assert diff.diff_type == "conflicting"
        assert diff.similarity_score == 0.3
        assert diff.requires_review is True
        assert diff.diff_metadata['comparison_method'] == "fallback"

    def test_rerun_updates_single_live_diff(self, repo, setup_version):
        ai = MockLLMProvider()
        version = setup_version(ai)
        engine = SemanticDiffEngine(ai)

        engine.analyze_version(repo, version.id)
        engine.analyze_version(repo, version.id)

        assert len(engine.list_diffs(repo, version.id)) == 5

    def test_pending_review_lists_only_flagged(self, repo, resolver, owner_id, setup_version):
        ai = MockLLMProvider(
            entities=[("work_experience.0.title", "Engineer", 0.9), ("summary", "Builder", 0.8)],
            comparison=make_comparison("conflicting", 0.2, requires_review=True)
        )
        version = setup_version(ai)
        resolver.upsert_manual_entry(repo, owner_id, "work_experience", "job-1", "title", "Manager")
        engine = SemanticDiffEngine(ai)

        engine.analyze_version(repo, version.id)

        pending = engine.list_pending_review(repo, version.id)
        assert len(pending) == 1
        assert pending[0].diff_metadata['entity_field'] == "work_experience.0.title"

    def test_other_owners_profile_is_ignored(self, repo, resolver, setup_version):
        ai = MockLLMProvider(entities=[("work_experience.0.title", "Engineer", 0.9)])
        version = setup_version(ai)
        resolver.upsert_manual_entry(repo, uuid.uuid4(), "work_experience", "job-1", "title", "Engineer")

        summary = SemanticDiffEngine(ai).analyze_version(repo, version.id)

        assert summary.new == 1

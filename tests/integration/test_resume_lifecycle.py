"""
End-to-end lifecycle of a resume version through the wired application context:
upload, processing, diff review, merge into the confirmed profile and re-upload.
"""
from core.app_context import AppContext
from core.config_loader import AppConfig
from database.models import ProcessingStage, ProfileSource
from tests.mocks.ai_mocks import MockLLMProvider, make_comparison


def _entity(repo, version_id, field_name):
    return next(e for e in repo.entities.list_entities(version_id) if e.field_name == field_name)


def test_new_fact_is_accepted_into_profile(repo, uow, owner_id):
    ai = MockLLMProvider(entities=[("work_experience.0.title", "Senior Engineer", 0.9)])
    ctx = AppContext.build(AppConfig(), ai_service=ai)
    data = b"Senior Engineer at Acme Corp"

    upload = ctx.document_store.upload_version(repo, owner_id, data, "text/plain", file_name="v1.txt")
    assert upload.is_duplicate is False

    report = ctx.processor.process_version(uow, upload.version.id, data)
    assert report.status.processing_stage == ProcessingStage.COMPLETE

    entity = _entity(repo, upload.version.id, "work_experience.0.title")
    assert entity.raw_value == "Senior Engineer"
    assert entity.confidence_score == 0.9

    diff = repo.review.get_diff(upload.version.id, entity.id)
    assert diff.diff_type == "new"

    ctx.merge_resolver.record_decision(repo, owner_id, upload.version.id, entity.id, "accept")
    summary = ctx.merge_resolver.apply_decisions(repo, owner_id, upload.version.id)
    assert summary.accepted == 1

    profile = ctx.merge_resolver.list_confirmed_profile(repo, owner_id)
    assert len(profile) == 1
    assert profile[0].confirmed_value == "Senior Engineer"
    assert profile[0].source == ProfileSource.MERGE_ACCEPTED.value

    diff = repo.review.get_diff(upload.version.id, entity.id)
    assert diff.is_resolved
    assert diff.requires_review is False

    # Same bytes again: nothing new is created
    again = ctx.document_store.upload_version(repo, owner_id, data, "text/plain")
    assert again.is_duplicate is True
    assert again.version.id == upload.version.id


def test_second_version_is_compared_with_confirmed_profile(repo, uow, owner_id):
    ai = MockLLMProvider(entities=[("work_experience.0.title", "Senior Engineer", 0.9)])
    ctx = AppContext.build(AppConfig(), ai_service=ai)

    v1 = ctx.document_store.upload_version(repo, owner_id, b"resume v1", "text/plain").version
    ctx.processor.process_version(uow, v1.id, b"resume v1")
    entity = _entity(repo, v1.id, "work_experience.0.title")
    ctx.merge_resolver.record_decision(repo, owner_id, v1.id, entity.id, "accept")
    ctx.merge_resolver.apply_decisions(repo, owner_id, v1.id)

    ai.entities = [("work_experience.0.title", "Engineering Manager", 0.9)]
    ai.comparison = make_comparison("conflicting", 0.2, requires_review=True)
    v2 = ctx.document_store.upload_version(repo, owner_id, b"resume v2", "text/plain").version
    assert v2.version_number == 2

    ctx.processor.process_version(uow, v2.id, b"resume v2")

    pending = ctx.diff_engine.list_pending_review(repo, v2.id)
    assert len(pending) == 1
    assert pending[0].diff_type == "conflicting"
    assert pending[0].profile_entity_id == str(entity.id)

    new_entity = _entity(repo, v2.id, "work_experience.0.title")
    ctx.merge_resolver.record_decision(
        repo, owner_id, v2.id, new_entity.id, "override", override_value="Engineering Manager (Platform)"
    )
    ctx.merge_resolver.apply_decisions(repo, owner_id, v2.id)

    profile = ctx.merge_resolver.list_confirmed_profile(repo, owner_id)
    assert len(profile) == 1
    assert profile[0].confirmed_value == "Engineering Manager (Platform)"
    assert profile[0].source == ProfileSource.MERGE_OVERRIDDEN.value
    assert ctx.diff_engine.list_pending_review(repo, v2.id) == []

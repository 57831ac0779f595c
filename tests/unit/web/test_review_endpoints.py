#!/usr/bin/env python3
"""
Unit tests for the review and profile endpoints.
"""
import uuid

import pytest

RESUME = b"Jane Doe\nSenior Engineer at Acme Corp\n"


@pytest.fixture
def version_id(client, headers):
    files = {'file': ('resume.txt', RESUME, 'text/plain')}
    return client.post("/api/resumes/upload", files=files, headers=headers).json()['version']['id']


def _entity_id(client, headers, version_id, field_name):
    entities = client.get(f"/api/resumes/versions/{version_id}/entities", headers=headers).json()
    return next(e['id'] for e in entities if e['field_name'] == field_name)


class TestDiffs:

    def test_list_diffs_after_processing(self, client, headers, version_id):
        response = client.get(f"/api/review/versions/{version_id}/diffs", headers=headers)

        body = response.json()
        assert response.status_code == 200
        assert body['count'] == 5
        assert all(d['diff_type'] == "new" for d in body['diffs'])
        assert 'metadata' in body['diffs'][0]
        assert body['diffs'][0]['metadata']['candidate_count'] == 0

    def test_analyze_against_profile(self, client, headers, version_id):
        client.put("/api/profile/entries", json={
            'entity_type': "work_experience",
            'entity_id': "job-1",
            'field_name': "title",
            'confirmed_value': "Senior Engineer",
        }, headers=headers)

        summary = client.post(f"/api/review/versions/{version_id}/analyze", headers=headers).json()['summary']

        assert summary['total'] == 5
        assert summary['identical'] == 2
        assert summary['new'] == 3

    def test_pending_only(self, client, headers, version_id):
        response = client.get(
            f"/api/review/versions/{version_id}/diffs", params={'pending_only': True}, headers=headers
        )
        assert response.json()['count'] == 0

    def test_other_owner_cannot_read_diffs(self, client, version_id):
        response = client.get(
            f"/api/review/versions/{version_id}/diffs", headers={"X-User-Id": str(uuid.uuid4())}
        )
        assert response.status_code == 404


class TestDecisions:

    def test_record_and_list(self, client, headers, version_id):
        entity_id = _entity_id(client, headers, version_id, "work_experience.0.title")

        created = client.post(f"/api/review/versions/{version_id}/decisions", json={
            'entity_id': entity_id,
            'decision_type': "accept",
        }, headers=headers)

        assert created.status_code == 201
        assert created.json()['parsed_value'] == "Senior Engineer"

        listed = client.get(f"/api/review/versions/{version_id}/decisions", headers=headers).json()
        assert [d['id'] for d in listed] == [created.json()['id']]

    def test_override_without_value_is_rejected(self, client, headers, version_id):
        entity_id = _entity_id(client, headers, version_id, "skills.0")

        response = client.post(f"/api/review/versions/{version_id}/decisions", json={
            'entity_id': entity_id,
            'decision_type': "override",
        }, headers=headers)

        assert response.status_code == 400
        assert response.json()['type'] == "DecisionValidationError"

    def test_malformed_entity_id(self, client, headers, version_id):
        response = client.post(f"/api/review/versions/{version_id}/decisions", json={
            'entity_id': "null",
            'decision_type': "accept",
        }, headers=headers)
        assert response.status_code == 400

    def test_apply_reports_per_decision_errors(self, client, headers, version_id):
        good = _entity_id(client, headers, version_id, "work_experience.0.title")
        bad = _entity_id(client, headers, version_id, "skills.0")
        client.post(f"/api/review/versions/{version_id}/decisions", json={
            'entity_id': good, 'decision_type': "override", 'override_value': "Staff Engineer",
        }, headers=headers)
        client.post(f"/api/review/versions/{version_id}/decisions", json={
            'entity_id': bad, 'decision_type': "accept", 'profile_entity_type': "hobbies",
        }, headers=headers)

        response = client.post(f"/api/review/versions/{version_id}/apply", headers=headers)

        summary = response.json()['summary']
        assert response.status_code == 200
        assert summary['overridden'] == 1
        assert summary['errors'] == 1

        profile = client.get("/api/profile", headers=headers).json()
        assert [(p['field_name'], p['confirmed_value'], p['source']) for p in profile] == [
            ("work_experience.0.title", "Staff Engineer", "merge_overridden")
        ]


class TestProfile:

    def test_manual_entry_upsert(self, client, headers):
        entry = {'entity_type': "skills", 'entity_id': "s1", 'field_name': "skills.0", 'confirmed_value': "Python"}
        first = client.put("/api/profile/entries", json=entry, headers=headers).json()
        entry['confirmed_value'] = "Python 3"
        second = client.put("/api/profile/entries", json=entry, headers=headers).json()

        assert first['id'] == second['id']
        assert second['source'] == "manual"
        assert len(client.get("/api/profile", headers=headers).json()) == 1

    def test_unknown_entity_type(self, client, headers):
        response = client.put("/api/profile/entries", json={
            'entity_type': "hobbies", 'entity_id': "h1", 'field_name': "hobbies.0", 'confirmed_value': "Chess",
        }, headers=headers)

        assert response.status_code == 400
        assert response.json()['type'] == "UnknownProfileEntityTypeError"

    def test_deletion_preview_and_delete(self, client, headers, version_id):
        preview = client.get("/api/profile/deletion-preview", headers=headers).json()
        assert preview['tables']['resume_versions'] == 1
        assert preview['total'] > 0

        deleted = client.delete("/api/profile", headers=headers).json()
        assert deleted['total'] == preview['total']

        assert client.get("/api/profile/deletion-preview", headers=headers).json()['total'] == 0
        assert client.get(f"/api/resumes/versions/{version_id}/status", headers=headers).status_code == 404

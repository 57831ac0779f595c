#!/usr/bin/env python3
"""
Unit tests for the resume endpoints: streams, uploads, status and enrichment.
"""
import uuid

RESUME = b"Jane Doe\nSenior Engineer at Acme Corp\n"


def _upload(client, headers, content=RESUME, **params):
    files = {'file': ('resume.txt', content, 'text/plain')}
    return client.post("/api/resumes/upload", files=files, headers=headers, params=params)


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()['status'] == "healthy"


class TestOwnerHeader:

    def test_missing_header_is_rejected(self, client):
        assert client.get("/api/resumes/streams").status_code == 422

    def test_malformed_owner_is_a_validation_error(self, client):
        response = client.get("/api/resumes/streams", headers={"X-User-Id": "undefined"})

        assert response.status_code == 400
        assert response.json()['type'] == "InvalidIdentifierError"
        assert response.json()['success'] is False


class TestStreams:

    def test_create_and_list(self, client, headers):
        created = client.post("/api/resumes/streams", json={'name': "Main", 'tags': ["tech"]}, headers=headers)

        assert created.status_code == 201
        assert created.json()['auto_tagged'] is False

        listed = client.get("/api/resumes/streams", headers=headers)
        assert [s['name'] for s in listed.json()] == ["Main"]

    def test_update(self, client, headers):
        stream_id = client.post("/api/resumes/streams", json={'name': "Main"}, headers=headers).json()['id']

        response = client.patch(f"/api/resumes/streams/{stream_id}", json={'name': "Renamed"}, headers=headers)

        assert response.status_code == 200
        assert response.json()['name'] == "Renamed"

    def test_other_owners_stream_is_not_found(self, client, headers):
        stream_id = client.post("/api/resumes/streams", json={'name': "Main"}, headers=headers).json()['id']

        response = client.get(
            f"/api/resumes/streams/{stream_id}/versions",
            headers={"X-User-Id": str(uuid.uuid4())}
        )
        assert response.status_code == 404


class TestUpload:

    def test_upload_queues_processing(self, client, headers, processed):
        response = _upload(client, headers)

        assert response.status_code == 200
        body = response.json()
        assert body['is_duplicate'] is False
        assert body['processing_queued'] is True
        assert body['version']['version_number'] == 1
        assert len(processed.calls) == 1
        assert processed.calls[0][1] == RESUME

    def test_duplicate_upload_is_not_queued(self, client, headers, processed):
        first = _upload(client, headers).json()
        second = _upload(client, headers).json()

        assert second['is_duplicate'] is True
        assert second['processing_queued'] is False
        assert second['version']['id'] == first['version']['id']
        assert len(processed.calls) == 1

    def test_upload_without_processing(self, client, headers, processed):
        body = _upload(client, headers, process=False).json()

        assert body['processing_queued'] is False
        assert processed.calls == []

    def test_unsupported_type_is_rejected(self, client, headers):
        files = {'file': ('photo.gif', b"GIF89a", 'image/gif')}
        response = client.post("/api/resumes/upload", files=files, headers=headers)

        assert response.status_code == 422
        assert response.json()['type'] == "UploadRejectedError"

    def test_versions_listed_newest_first(self, client, headers):
        stream_id = _upload(client, headers, process=False).json()['version']['stream_id']
        _upload(client, headers, content=b"second version", process=False)

        versions = client.get(f"/api/resumes/streams/{stream_id}/versions", headers=headers).json()
        assert [v['version_number'] for v in versions] == [2, 1]


class TestProcessingStatus:

    def test_status_after_background_processing(self, client, headers):
        version_id = _upload(client, headers).json()['version']['id']

        status = client.get(f"/api/resumes/versions/{version_id}/status", headers=headers).json()

        assert status['processing_stage'] == "complete"
        assert status['is_complete'] is True
        assert status['should_continue_polling'] is False
        assert status['processing_progress'] == 100

    def test_pending_version_keeps_polling(self, client, headers):
        version_id = _upload(client, headers, process=False).json()['version']['id']

        status = client.get(f"/api/resumes/versions/{version_id}/status", headers=headers).json()

        assert status['processing_stage'] == "pending"
        assert status['should_continue_polling'] is True

    def test_placeholder_id_is_a_validation_error(self, client, headers):
        response = client.get("/api/resumes/versions/:versionId/status", headers=headers)
        assert response.status_code == 400

    def test_unknown_version(self, client, headers):
        response = client.get(f"/api/resumes/versions/{uuid.uuid4()}/status", headers=headers)
        assert response.status_code == 404


class TestReprocess:

    def test_matching_file_is_queued(self, client, headers, processed):
        version_id = _upload(client, headers, process=False).json()['version']['id']

        files = {'file': ('resume.txt', RESUME, 'text/plain')}
        response = client.post(f"/api/resumes/versions/{version_id}/process", files=files, headers=headers)

        assert response.status_code == 200
        assert len(processed.calls) == 1

    def test_different_file_is_rejected(self, client, headers, processed):
        version_id = _upload(client, headers, process=False).json()['version']['id']

        files = {'file': ('resume.txt', b"something else", 'text/plain')}
        response = client.post(f"/api/resumes/versions/{version_id}/process", files=files, headers=headers)

        assert response.status_code == 422
        assert processed.calls == []


class TestEntitiesAndEnrichment:

    def test_list_entities(self, client, headers):
        version_id = _upload(client, headers).json()['version']['id']

        entities = client.get(f"/api/resumes/versions/{version_id}/entities", headers=headers).json()

        assert {e['field_name'] for e in entities} >= {"work_experience.0.title", "skills.0"}

    def test_enrich_entity_is_cached(self, client, headers, ai):
        version_id = _upload(client, headers, process=False).json()['version']['id']
        client.post(
            f"/api/resumes/versions/{version_id}/process",
            files={'file': ('resume.txt', RESUME, 'text/plain')},
            headers=headers
        )
        entity_id = client.get(f"/api/resumes/versions/{version_id}/entities", headers=headers).json()[0]['id']
        calls_before = ai.calls['enrich']

        cached = client.post(f"/api/resumes/entities/{entity_id}/enrich", headers=headers).json()
        refreshed = client.post(
            f"/api/resumes/entities/{entity_id}/enrich", params={'force_refresh': True}, headers=headers
        ).json()

        assert cached['was_cached'] is True
        assert refreshed['was_cached'] is False
        assert refreshed['enrichment']['id'] == cached['enrichment']['id']
        assert ai.calls['enrich'] == calls_before + 1

    def test_enrich_version_summary(self, client, headers):
        version_id = _upload(client, headers).json()['version']['id']

        response = client.post(f"/api/resumes/versions/{version_id}/enrich", headers=headers)

        assert response.status_code == 200
        assert response.json()['summary']['already_enriched'] == 5

    def test_enrich_other_owners_entity_is_not_found(self, client, headers):
        version_id = _upload(client, headers).json()['version']['id']
        entity_id = client.get(f"/api/resumes/versions/{version_id}/entities", headers=headers).json()[0]['id']

        response = client.post(
            f"/api/resumes/entities/{entity_id}/enrich",
            headers={"X-User-Id": str(uuid.uuid4())}
        )
        assert response.status_code == 404

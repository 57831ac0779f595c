"""
Fixtures for the HTTP layer: the real application wired to the test
database and the mock AI collaborator.
"""
import pytest
from fastapi.testclient import TestClient

from core.app_context import AppContext
from core.config_loader import AppConfig, DatabaseConfig


@pytest.fixture
def app_context(ai):
    return AppContext.build(AppConfig(), ai_service=ai)


@pytest.fixture
def processed(uow, app_context):
    """Versions the background runner was asked to process, in order."""
    calls = []

    def runner(version_id, data):
        calls.append((version_id, data))
        app_context.processor.process_version(uow, version_id, data)

    runner.calls = calls
    return runner


@pytest.fixture
def client(repo, app_context, processed):
    from web.backend.app import create_app
    from web.backend.dependencies import get_app_context, get_repo
    from web.backend.routers.resumes import limiter
    from web.backend.services.processing_service import get_processing_runner

    # Disable rate limiting for tests
    limiter.enabled = False

    def _repo():
        yield repo

    app = create_app(AppConfig(database=DatabaseConfig(url="sqlite://")))
    app.dependency_overrides[get_repo] = _repo
    app.dependency_overrides[get_app_context] = lambda: app_context
    app.dependency_overrides[get_processing_runner] = lambda: processed

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    limiter.enabled = True


@pytest.fixture
def headers(owner_id):
    return {"X-User-Id": str(owner_id)}

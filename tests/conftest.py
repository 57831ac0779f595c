"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database with the full schema and
a KnowledgeRepository bound to one session on it.
"""
import contextlib
import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.config_loader import PipelineConfig, ProfileConfig
from database.models import Base
from database.repository import KnowledgeRepository
from knowledge.diff_engine import SemanticDiffEngine
from knowledge.document_store import DocumentStore
from knowledge.enrichment import EnrichmentService
from knowledge.extractor import EntityExtractionService
from knowledge.merge_resolver import MergeResolver
from tests.mocks.ai_mocks import MockLLMProvider

RESUME_TEXT = b"Jane Doe\njane@example.com\nSenior Engineer at Acme Corp (2019 - present)\nSkills: Python, SQL\n"


def sqlite_engine(url: str = "sqlite://"):
    """SQLite engine with the schema created and working SAVEPOINTs.

    The default in-memory database is one connection shared across threads;
    a file URL gets a normal pool so sessions really are separate.
    """
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url == "sqlite://":
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def engine():
    engine = sqlite_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def repo(session_factory):
    session = session_factory()
    try:
        yield KnowledgeRepository(session)
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def uow(repo):
    """Unit-of-work factory over the test session.

    Each unit is a SAVEPOINT, so a failing unit rolls back on its own the
    way a real knowledge_uow() transaction would.
    """
    @contextlib.contextmanager
    def _unit():
        with repo.savepoint():
            yield repo

    return _unit


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def ai():
    return MockLLMProvider()


@pytest.fixture
def store():
    return DocumentStore(PipelineConfig())


@pytest.fixture
def extractor(ai):
    return EntityExtractionService(ai)


@pytest.fixture
def enrichment(ai):
    return EnrichmentService(ai, PipelineConfig(max_workers=2))


@pytest.fixture
def diff_engine(ai):
    return SemanticDiffEngine(ai, PipelineConfig(max_workers=2))


@pytest.fixture
def resolver():
    return MergeResolver(ProfileConfig())


@pytest.fixture
def version(repo, store, owner_id):
    """A freshly uploaded plain-text resume version."""
    return store.upload_version(
        repo, owner_id, RESUME_TEXT, "text/plain", file_name="resume.txt"
    ).version

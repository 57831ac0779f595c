import contextlib
import logging

from database.database import SessionLocal
from database.repository import KnowledgeRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def knowledge_uow(session_factory=None):
    """One transaction around a KnowledgeRepository.

    The whole block commits together or not at all, which is what keeps
    entity replacement and owner deletion all-or-nothing for readers.
    ``session_factory`` defaults to the application's SessionLocal.

        with knowledge_uow() as repo:
            status = tracker.get_processing_status(repo, version_id)
    """
    session = (session_factory or SessionLocal)()
    try:
        yield KnowledgeRepository(session)
        session.commit()
    except Exception as e:
        logger.debug(f"Rolling back unit of work: {e}")
        session.rollback()
        raise
    finally:
        session.close()

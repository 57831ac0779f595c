import logging

from sqlalchemy.orm import Session

from database.repositories import (
    StreamRepository,
    EntityRepository,
    EnrichmentRepository,
    ProfileRepository,
    ReviewRepository,
    OwnerDataRepository,
)

logger = logging.getLogger(__name__)


class KnowledgeRepository:
    """Facade over the per-table repositories, all bound to one Session.

    Usage:
        with knowledge_uow() as repo:
            version = repo.streams.get_version(version_id)
            entities = repo.entities.list_entities(version.id)
    """

    def __init__(self, db: Session):
        self.db = db
        self.streams = StreamRepository(db)
        self.entities = EntityRepository(db)
        self.enrichments = EnrichmentRepository(db)
        self.profile = ProfileRepository(db)
        self.review = ReviewRepository(db)
        self.owner_data = OwnerDataRepository(db)

    def savepoint(self):
        """Nested transaction for isolating one item of a batch."""
        return self.db.begin_nested()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

from database.repositories.base import BaseRepository
from database.repositories.stream import StreamRepository
from database.repositories.entity import EntityRepository
from database.repositories.enrichment import EnrichmentRepository
from database.repositories.profile import ProfileRepository
from database.repositories.review import ReviewRepository
from database.repositories.owner import OwnerDataRepository

__all__ = [
    'BaseRepository',
    'StreamRepository',
    'EntityRepository',
    'EnrichmentRepository',
    'ProfileRepository',
    'ReviewRepository',
    'OwnerDataRepository',
]

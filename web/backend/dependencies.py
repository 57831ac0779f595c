#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

import uuid
from functools import lru_cache
from typing import Generator

from fastapi import Header

from core.app_context import AppContext
from core.utils import parse_uuid
from database.repository import KnowledgeRepository
from database.uow import knowledge_uow
from .config import get_config


@lru_cache()
def get_app_context() -> AppContext:
    """Wired services, built once per process."""
    return AppContext.build(get_config())


def get_repo() -> Generator[KnowledgeRepository, None, None]:
    """
    FastAPI dependency that yields a repository inside one unit of work.

    Usage:
        @router.get("/endpoint")
        def my_endpoint(repo: KnowledgeRepository = Depends(get_repo)):
            ...

    The transaction commits after the endpoint returns and rolls back if it raises.
    """
    with knowledge_uow() as repo:
        yield repo


def get_owner_id(x_user_id: str = Header(..., description="Authenticated user id")) -> uuid.UUID:
    """
    Owner of the request.

    Authentication happens upstream; the gateway forwards the user id in
    the X-User-Id header.
    """
    return parse_uuid(x_user_id, "user id")

#!/usr/bin/env python3
"""
Background processing of uploaded resume versions.
"""

import logging
import uuid
from typing import Callable

from database.uow import knowledge_uow

logger = logging.getLogger(__name__)

ProcessingRunner = Callable[[uuid.UUID, bytes], None]


def run_version_processing(version_id: uuid.UUID, data: bytes, uow=knowledge_uow) -> None:
    """
    Run the whole pipeline for one version, one unit of work per stage.

    Stage failures are recorded on the version by the processor; only
    errors outside a stage (the version vanished, the database is gone)
    reach this function and they are logged, not raised, because nobody
    is waiting on a background task.
    """
    from ..dependencies import get_app_context

    ctx = get_app_context()
    try:
        report = ctx.processor.process_version(uow, version_id, data)
    except Exception:
        logger.exception(f"Background processing crashed for version {version_id}")
        return

    if report.ok:
        logger.info(f"Background processing finished for version {version_id}")
    else:
        logger.warning(f"Background processing for version {version_id} failed at {report.failed_stage}: {report.error}")


def get_processing_runner() -> ProcessingRunner:
    """FastAPI dependency returning the callable that processes a version."""
    return run_version_processing

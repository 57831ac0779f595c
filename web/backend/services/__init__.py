"""Service layer for the web API."""

from .processing_service import run_version_processing, get_processing_runner

__all__ = ['run_version_processing', 'get_processing_runner']

#!/usr/bin/env python3
"""
Test suite for the resume knowledge pipeline.

All tests can be run with standard Python tools:

    # Run all tests
    python -m pytest tests/ -v

    # Run only the service-level tests
    python -m pytest tests/unit -v

Database:
    Tests run against an in-memory SQLite database created per test (see
    tests/conftest.py), so no external services are needed. The production
    schema targets PostgreSQL; the models use portable column types.
"""

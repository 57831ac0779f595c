"""
Tests for the command line entry point, run against the test database.
"""
import json
from unittest.mock import patch

import pytest

import main
from core.app_context import AppContext
from core.config_loader import AppConfig


@pytest.fixture
def cli(uow, ai):
    ctx = AppContext.build(AppConfig(), ai_service=ai)

    with patch('main.knowledge_uow', uow), \
            patch('main.configure_database'), \
            patch('main.AppContext.build', return_value=ctx):
        yield ctx


@pytest.fixture
def resume_file(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_bytes(b"Jane Doe\nSenior Engineer at Acme Corp\n")
    return path


def _output(capsys):
    return json.loads(capsys.readouterr().out)


def test_process_runs_pipeline(cli, resume_file, owner_id, capsys):
    assert main.main(['process', str(resume_file), '--owner', str(owner_id)]) == 0

    out = _output(capsys)
    assert out['is_duplicate'] is False
    assert out['entities'] == 5
    assert out['status']['processing_stage'] == "complete"


def test_duplicate_is_skipped_without_force(cli, resume_file, owner_id, capsys, ai):
    main.main(['process', str(resume_file), '--owner', str(owner_id)])
    capsys.readouterr()

    assert main.main(['process', str(resume_file), '--owner', str(owner_id)]) == 0

    assert _output(capsys)['is_duplicate'] is True
    assert ai.calls['extract'] == 1


def test_missing_file(cli, tmp_path, owner_id):
    assert main.main(['process', str(tmp_path / "nope.txt"), '--owner', str(owner_id)]) == 1


def test_invalid_version_id_fails_cleanly(cli):
    assert main.main(['status', 'undefined']) == 1


def test_status(cli, resume_file, owner_id, capsys):
    main.main(['process', str(resume_file), '--owner', str(owner_id)])
    version_id = _output(capsys)['version_id']

    assert main.main(['status', version_id]) == 0
    assert _output(capsys)['is_complete'] is True


def test_delete_owner_is_a_dry_run_by_default(cli, resume_file, owner_id, capsys, repo):
    main.main(['process', str(resume_file), '--owner', str(owner_id)])
    capsys.readouterr()

    assert main.main(['delete-owner', '--owner', str(owner_id)]) == 0
    assert _output(capsys)['would_delete']['resume_versions'] == 1

    assert main.main(['delete-owner', '--owner', str(owner_id), '--yes']) == 0
    assert _output(capsys)['deleted']['resume_versions'] == 1

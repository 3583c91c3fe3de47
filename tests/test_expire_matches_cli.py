import json

import pytest

from backend.expire_matches import main


def test_cli_reports_expired_and_seeded_counts(capsys):
    assert main(['--env', 'testing', '--seed-achievements']) == 0
    output = json.loads(capsys.readouterr().out)
    assert output == {'expired': 0, 'achievements_seeded': 11}


def test_cli_accepts_as_of_timestamp(capsys):
    assert main(['--env', 'testing', '--as-of', '2030-01-01T00:00:00Z']) == 0
    assert json.loads(capsys.readouterr().out) == {'expired': 0}


def test_cli_rejects_bad_timestamp():
    with pytest.raises(SystemExit, match='Invalid --as-of'):
        main(['--env', 'testing', '--as-of', 'soon'])

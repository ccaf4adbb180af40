"""Tests for the pgshelf command line interface."""

import json
import os

import pytest

from pgshelf.cli import main
from pgshelf.retention.loader import save_retention_policy
from tests.fixtures import utc


@pytest.fixture
def policy_path(tmp_path, three_tier_policy):
    return save_retention_policy(three_tier_policy, tmp_path / "retention.json")


@pytest.fixture
def backup_tree(tmp_path):
    """Local tree with one stale and one kept backup."""
    root = tmp_path / "backups"
    for day, stamp in (("10", utc(2024, 1, 10, 2)), ("17", utc(2024, 1, 17, 2))):
        node = root / "2024" / "01 January" / day
        node.mkdir(parents=True)
        dump = node / f"orders_202401{day}.sql"
        dump.write_text("-- dump")
        os.utime(dump, (stamp.timestamp(), stamp.timestamp()))
    return root


def test_cli_main_is_callable():
    """CLI main should be callable."""
    assert callable(main)


def test_no_action_prints_help(capsys):
    assert main([]) == 0
    assert "pgshelf" in capsys.readouterr().out


class TestValidate:
    """Tests for --validate."""

    def test_valid_policy(self, policy_path, capsys):
        assert main(["--validate", str(policy_path)]) == 0

        out = capsys.readouterr().out
        assert "Policy is valid" in out
        assert "1. Keep every 1 day for 14 days" in out
        assert "3. Keep every 4 days indefinitely" in out

    def test_invalid_policy(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text('[{"sampleInterval": "P3D", "validityWindow": "P7D"}, {"sampleInterval": "P2D"}]')

        assert main(["--validate", str(path)]) == 1

        err = capsys.readouterr().err
        assert "Retention policy validation failed" in err
        assert "Rule 2:" in err

    def test_missing_policy(self, tmp_path, capsys):
        assert main(["--validate", str(tmp_path / "missing.json")]) == 1
        assert "not found" in capsys.readouterr().err


class TestExplain:
    """Tests for --explain."""

    def test_delete_verdict(self, policy_path, capsys):
        code = main(
            ["--explain", "2024-01-10", "--now", "2024-01-25", "--policy", str(policy_path)]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "DELETE" in out
        assert "Rule 2: Keep every 2 days for 28 days" in out

    def test_keep_verdict_as_json(self, policy_path, capsys):
        code = main(
            [
                "--explain",
                "2024-01-17T06:00:00",
                "--now",
                "2024-03-01",
                "--policy",
                str(policy_path),
                "--json",
            ]
        )

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["keep"] is True
        assert data["rule_number"] == 3
        assert data["days_since_epoch"] == 16

    def test_uses_configured_policy(self, policy_path, monkeypatch, capsys):
        monkeypatch.setenv("PGSHELF_POLICY_PATH", str(policy_path))

        main(["--explain", "2024-01-10", "--now", "2024-06-01", "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["rule_number"] == 3

    def test_invalid_date(self):
        with pytest.raises(SystemExit):
            main(["--explain", "last tuesday"])


class TestSweep:
    """Tests for --sweep."""

    def test_sweep_directory(self, backup_tree, policy_path, capsys):
        code = main(
            ["--sweep", str(backup_tree), "--now", "2024-03-01", "--policy", str(policy_path)]
        )

        assert code == 0
        assert "Deleted 1 backups and 1 empty nodes" in capsys.readouterr().out
        assert not (backup_tree / "2024" / "01 January" / "10").exists()
        assert (backup_tree / "2024" / "01 January" / "17").exists()

    def test_dry_run(self, backup_tree, policy_path, capsys):
        code = main(
            [
                "--sweep",
                str(backup_tree),
                "--now",
                "2024-03-01",
                "--policy",
                str(policy_path),
                "--dry-run",
                "--json",
            ]
        )

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["dry_run"] is True
        assert data["artifacts_evicted"] == 1
        assert (backup_tree / "2024" / "01 January" / "10").exists()

    def test_dry_run_from_environment(self, backup_tree, policy_path, monkeypatch, capsys):
        monkeypatch.setenv("PGSHELF_DRY_RUN", "true")

        main(["--sweep", str(backup_tree), "--now", "2024-03-01", "--policy", str(policy_path)])

        assert "Would delete 1 backups" in capsys.readouterr().out
        assert (backup_tree / "2024" / "01 January" / "10").exists()

    def test_store_root_from_environment(self, backup_tree, policy_path, monkeypatch):
        monkeypatch.setenv("PGSHELF_STORE_ROOT", str(backup_tree))

        assert main(["--sweep", "--now", "2024-03-01", "--policy", str(policy_path)]) == 0
        assert not (backup_tree / "2024" / "01 January" / "10").exists()

    def test_no_store_root(self, capsys):
        assert main(["--sweep"]) == 1
        assert "PGSHELF_STORE_ROOT" in capsys.readouterr().err

    def test_missing_directory(self, tmp_path, capsys):
        assert main(["--sweep", str(tmp_path / "missing"), "--quiet"]) == 1
        assert "does not exist" in capsys.readouterr().err


def test_invalid_configuration(monkeypatch, capsys):
    monkeypatch.setenv("PGSHELF_LOG_LEVEL", "CHATTY")

    assert main(["--validate", "x.json"]) == 1
    assert "Configuration validation failed" in capsys.readouterr().err

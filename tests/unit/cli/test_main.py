"""Unit tests for CLI command handling."""

from __future__ import annotations

import pytest

from cli.main import main
from ingest.checkpoint_store import CheckpointManager
from tests.archive_fixtures import build_config, court_line, judge_line, seed_cached_archive


def _global_args(tmp_path) -> list[str]:
    config = build_config(tmp_path)
    return ["--cache-dir", str(config.cache_dir), "--database-url", str(config.database_url)]


def test_cli_import_prints_per_dataset_summary(tmp_path, capsys) -> None:
    """CLI import should print one summary line per dataset."""
    config = build_config(tmp_path)
    seed_cached_archive(config, "courts", [court_line("calsuper_alameda", "Alameda")])
    seed_cached_archive(config, "judges", [judge_line(5, "Jane Doe", ["calsuper_alameda"])])
    assert main([*_global_args(tmp_path), "init-store"]) == 0

    exit_code = main([*_global_args(tmp_path), "import", "--skip-download"])
    output_lines = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert output_lines[0].startswith("courts\tcompleted\tprocessed=1\tcreated=1")
    assert output_lines[1].startswith("judges\tcompleted\tprocessed=1\tcreated=1")


def test_cli_import_returns_two_without_database_url(tmp_path, monkeypatch) -> None:
    """Missing store credentials should exit with the configuration code."""
    monkeypatch.delenv("COURTBULK_DATABASE_URL", raising=False)
    config = build_config(tmp_path)

    exit_code = main(["--cache-dir", str(config.cache_dir), "import", "--skip-download"])

    assert exit_code == 2


def test_cli_import_rejects_conflicting_modes(tmp_path) -> None:
    """Courts-only and judges-only cannot be combined."""
    with pytest.raises(SystemExit) as exc_info:
        main([*_global_args(tmp_path), "import", "--courts-only", "--judges-only"])

    assert exc_info.value.code == 2


def test_cli_import_returns_two_for_invalid_concurrency(tmp_path) -> None:
    """A concurrency below one should be a configuration error."""
    assert main([*_global_args(tmp_path), "init-store"]) == 0

    exit_code = main([*_global_args(tmp_path), "import", "--concurrency", "0"])

    assert exit_code == 2


def test_cli_checkpoints_lists_saved_progress(tmp_path, capsys) -> None:
    """Checkpoints command should print dataset and last processed line."""
    config = build_config(tmp_path)
    CheckpointManager(config.cache_dir).finalize("courts", 1500)

    exit_code = main([*_global_args(tmp_path), "checkpoints"])
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output.startswith("courts\t1500\t")

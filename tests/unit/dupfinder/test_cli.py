"""
Unit tests for the dupfinder command line.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from dupfinder import cli
from dupfinder.config.exceptions import ConfigError, IOFailure


@pytest.fixture(autouse=True)
def no_global_logging_setup():
    """Keep logging setup from replacing pytest's log handlers."""
    with patch("dupfinder.cli.configure_logging_from_env") as mock_configure:
        yield mock_configure


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DUPFINDER_FOLLOW_LINKS", "DUPFINDER_MAX_WORKERS", "DUPFINDER_CHUNK_SIZE", "DUPFINDER_STRICT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def dup_tree(make_tree):
    return make_tree({"a": b"abc", "b": b"abc", "c": b"xyz", "d": b"abcd"})


def test_prints_groups(dup_tree, capsys):
    exit_code = cli.main([str(dup_tree)])

    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert "[1] 3 bytes x 2" in out
    assert str(dup_tree / "a") in out
    assert str(dup_tree / "b") in out
    assert str(dup_tree / "c") not in out
    assert "4 files scanned, 1 duplicate groups, 1 duplicates, 3 bytes reclaimable" in out


def test_no_roots(capsys):
    assert cli.main([]) == cli.EXIT_OK
    assert "0 files scanned" in capsys.readouterr().out


def test_writes_report(dup_tree, tmp_path):
    report = tmp_path / "out" / "report.csv"

    assert cli.main([str(dup_tree), "--report", str(report)]) == cli.EXIT_OK
    assert "# Duplicate Groups: 1" in report.read_text(encoding="utf-8")


def test_keep_root_without_delete_is_dry_run(make_tree, tmp_path, capsys):
    make_tree({"drive/a.txt": b"same", "old/a.txt": b"same"})

    with patch("send2trash.send2trash") as mock_trash:
        exit_code = cli.main([str(tmp_path), "--keep-root", str(tmp_path / "drive")])

    assert exit_code == cli.EXIT_OK
    mock_trash.assert_not_called()
    assert "would delete 1 files" in capsys.readouterr().out


def test_delete(make_tree, tmp_path, capsys):
    make_tree({"drive/a.txt": b"same", "old/a.txt": b"same"})

    with patch("send2trash.send2trash") as mock_trash:
        exit_code = cli.main([str(tmp_path), "--keep-root", str(tmp_path / "drive"), "--delete"])

    assert exit_code == cli.EXIT_OK
    mock_trash.assert_called_once_with(str(tmp_path / "old" / "a.txt"))
    assert "deleted 1 files" in capsys.readouterr().out


def _failing_equals(a: Path, b: Path, chunk_size: int = 65536) -> bool:
    raise IOFailure(a, "Permission denied")


def test_partial_result_exit_code(dup_tree, capsys):
    with patch("dupfinder.grouper.content_equals", _failing_equals):
        exit_code = cli.main([str(dup_tree)])

    assert exit_code == cli.EXIT_PARTIAL
    assert "FAILED bucket 3 bytes" in capsys.readouterr().err


def test_strict_incomplete_scan_is_fatal(dup_tree):
    with patch("dupfinder.grouper.content_equals", _failing_equals):
        assert cli.main([str(dup_tree), "--strict"]) == cli.EXIT_FATAL


def test_invalid_config_is_fatal(dup_tree):
    assert cli.main([str(dup_tree), "--workers", "0"]) == cli.EXIT_FATAL


def test_missing_config_file_is_fatal(dup_tree, tmp_path):
    assert cli.main([str(dup_tree), "--config", str(tmp_path / "nope.yaml")]) == cli.EXIT_FATAL


def test_no_follow_links_flag():
    args = cli.build_parser().parse_args(["/x", "--no-follow-links"])

    assert args.follow_symbolic_links is False
    assert cli.build_parser().parse_args(["/x"]).follow_symbolic_links is None


def test_log_flags_passed_to_logging_setup(no_global_logging_setup):
    cli.main(["--log-level", "debug", "--log-format", "json"])

    no_global_logging_setup.assert_called_once_with(level="DEBUG", log_format="json")


def test_log_flags_default_to_environment(no_global_logging_setup):
    cli.main([])

    no_global_logging_setup.assert_called_once_with(level=None, log_format=None)


def test_unknown_log_level_rejected_by_parser(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser().parse_args(["--log-level", "bogus"])

    assert excinfo.value.code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_bad_logging_environment_is_fatal(no_global_logging_setup):
    no_global_logging_setup.side_effect = ConfigError("Unknown log level 'bogus'")

    assert cli.main([]) == cli.EXIT_FATAL

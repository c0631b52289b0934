"""
Unit tests for load_config (YAML file + DUPFINDER_* env + overrides).
"""

from pathlib import Path

import pytest
from dupfinder.config.exceptions import ConfigError
from dupfinder.config.settings import load_config
from dupfinder.models import ScanConfig


def test_defaults_without_file_or_env():
    config = load_config(environ={})

    assert config == ScanConfig()
    assert config.follow_symbolic_links is True
    assert config.max_workers is None
    assert config.chunk_size == 65536
    assert config.strict is False


def test_yaml_file(tmp_path):
    config_file = tmp_path / "dupfinder.yaml"
    config_file.write_text(
        "roots:\n"
        "  - /data/photos\n"
        "  - /backup/photos\n"
        "follow_symbolic_links: false\n"
        "max_workers: 4\n"
        "keep_roots: /data/photos\n",
        encoding="utf-8",
    )

    config = load_config(config_file, environ={})

    assert config.roots == [Path("/data/photos"), Path("/backup/photos")]
    assert config.follow_symbolic_links is False
    assert config.max_workers == 4
    assert config.keep_roots == [Path("/data/photos")]


def test_empty_yaml_file(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("", encoding="utf-8")

    assert load_config(config_file, environ={}) == ScanConfig()


def test_env_overrides_yaml(tmp_path):
    config_file = tmp_path / "dupfinder.yaml"
    config_file.write_text("max_workers: 4\nstrict: false\n", encoding="utf-8")

    config = load_config(
        config_file,
        environ={
            "DUPFINDER_MAX_WORKERS": "8",
            "DUPFINDER_STRICT": "true",
            "DUPFINDER_FOLLOW_LINKS": "0",
        },
    )

    assert config.max_workers == 8
    assert config.strict is True
    assert config.follow_symbolic_links is False


def test_overrides_beat_env():
    config = load_config(
        environ={"DUPFINDER_MAX_WORKERS": "8"},
        max_workers=2,
        roots=[Path("/a")],
    )

    assert config.max_workers == 2
    assert config.roots == [Path("/a")]


def test_none_overrides_are_ignored():
    config = load_config(environ={"DUPFINDER_STRICT": "yes"}, strict=None)

    assert config.strict is True


def test_blank_env_values_are_ignored():
    assert load_config(environ={"DUPFINDER_MAX_WORKERS": "  "}).max_workers is None


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml", environ={})


def test_invalid_yaml_raises(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("roots: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(config_file, environ={})


def test_non_mapping_yaml_raises(tmp_path):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(config_file, environ={})


@pytest.mark.parametrize(
    "environ",
    [
        {"DUPFINDER_MAX_WORKERS": "0"},
        {"DUPFINDER_MAX_WORKERS": "many"},
        {"DUPFINDER_CHUNK_SIZE": "-1"},
        {"DUPFINDER_STRICT": "perhaps"},
    ],
)
def test_invalid_values_raise(environ):
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(environ=environ)

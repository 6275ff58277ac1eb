"""Tests for repository configuration."""

import tempfile
from pathlib import Path

import pytest

from scene_vc.config import RepositoryConfig
from scene_vc.errors import SerializationError


@pytest.fixture
def config_path():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir) / "config.json"


def test_defaults_when_missing(config_path, monkeypatch):
    monkeypatch.delenv("SCENE_VC_AUTHOR_NAME", raising=False)
    monkeypatch.delenv("SCENE_VC_LOG_LEVEL", raising=False)
    config = RepositoryConfig.load(config_path)

    assert config.author.name == "Designer"
    assert config.store == "git"
    assert config.thumbnail.width == 200
    assert config.log_level == "INFO"


def test_round_trip(config_path, monkeypatch):
    monkeypatch.delenv("SCENE_VC_AUTHOR_NAME", raising=False)
    RepositoryConfig(store="json", scene_file="art.json").save(config_path)

    loaded = RepositoryConfig.load(config_path)
    assert loaded.store == "json"
    assert loaded.scene_file == "art.json"


def test_environment_overrides(config_path, monkeypatch):
    monkeypatch.setenv("SCENE_VC_AUTHOR_NAME", "Ada")
    monkeypatch.setenv("SCENE_VC_AUTHOR_INITIALS", "AL")
    monkeypatch.setenv("SCENE_VC_LOG_LEVEL", "debug")

    config = RepositoryConfig.load(config_path)

    assert (config.author.name, config.author.initials) == ("Ada", "AL")
    assert config.log_level == "DEBUG"


def test_malformed_config(config_path):
    config_path.write_text("{broken")
    with pytest.raises(SerializationError):
        RepositoryConfig.load(config_path)

    config_path.write_text('{"store": "ftp"}')
    with pytest.raises(SerializationError):
        RepositoryConfig.load(config_path)

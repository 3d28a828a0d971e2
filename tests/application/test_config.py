import os

import pytest
from pydantic import ValidationError

from shiori.application import config as config_module
from shiori.application.config import AppConfig, resolve_config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """No user config file and no SHIORI_* variables leak into tests."""
    config_file = tmp_path / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILES", [config_file])
    for key in list(os.environ):
        if key.startswith("SHIORI_"):
            monkeypatch.delenv(key)
    return config_file


def test_defaults():
    config = resolve_config()
    assert config.levels == ["A1", "A2", "B1", "B2", "C1", "C2"]
    assert config.target_retention == 0.9
    assert config.maximum_interval == 36500
    assert config.max_queue_size == 200
    assert config.daily_new_item_limit == 10
    assert config.recompute_every == 10
    assert config.corpus_path is None
    assert config.scale.weakest == "A1"


@pytest.mark.parametrize("raw", ["N5,N4,N3", " N5 , N4,N3 ", '["N5", "N4", "N3"]'])
def test_levels_from_env(monkeypatch, raw):
    monkeypatch.setenv("SHIORI_LEVELS", raw)
    config = resolve_config()
    assert config.levels == ["N5", "N4", "N3"]
    assert config.scale.next_level("N4") == "N3"


def test_toml_file(isolated_config):
    isolated_config.write_text('daily_new_item_limit = 4\nlevels = ["N5", "N4"]\n')
    config = resolve_config()
    assert config.daily_new_item_limit == 4
    assert config.levels == ["N5", "N4"]


def test_precedence(isolated_config, monkeypatch):
    isolated_config.write_text("daily_new_item_limit = 4\nmax_queue_size = 50\n")
    monkeypatch.setenv("SHIORI_DAILY_NEW_ITEM_LIMIT", "6")
    monkeypatch.setenv("SHIORI_MAX_QUEUE_SIZE", "70")

    config = resolve_config({"max_queue_size": 20, "daily_new_item_limit": None})

    # CLI > env > file; None overrides are ignored
    assert config.max_queue_size == 20
    assert config.daily_new_item_limit == 6


def test_corpus_path_is_resolved(tmp_path):
    config = resolve_config({"corpus_path": str(tmp_path / "sub" / ".." / "corpus.yaml")})
    assert config.corpus_path == (tmp_path / "corpus.yaml").resolve()


@pytest.mark.parametrize(
    "overrides",
    [
        {"target_retention": 1.5},
        {"maximum_interval": 0},
        {"recompute_every": 0},
        {"levels": []},
        {"levels": ["A1", "A1"]},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ValidationError):
        AppConfig(**overrides)


def test_scheduler_follows_configured_retention(monkeypatch):
    monkeypatch.setenv("SHIORI_TARGET_RETENTION", "0.5")
    monkeypatch.setenv("SHIORI_MAXIMUM_INTERVAL", "30")
    config = resolve_config()

    scheduler = config.memory_scheduler()

    assert scheduler.params.request_retention == 0.5
    assert scheduler.params.maximum_interval == 30


def test_default_scheduler_parameters():
    params = resolve_config().memory_scheduler().params
    assert params.request_retention == 0.9
    assert params.maximum_interval == 36500

from __future__ import annotations

import json

import pytest

from metroproximity.config.loader import load_config


def _rewrite(path, **sections) -> None:
    raw = json.loads(path.read_text(encoding="utf-8"))
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    path.write_text(json.dumps(raw), encoding="utf-8")


def test_placeholder_token_resolves_to_none(config_path, tmp_path) -> None:
    cfg = load_config(config_path, base_dir=tmp_path)
    assert cfg.mapbox.access_token is None
    assert cfg.mapbox.base_url == "https://mapbox.test"
    assert cfg.generation.durations == (5, 10, 15, 20, 30)


def test_env_overrides_token(monkeypatch, config_path, tmp_path) -> None:
    monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.from-env")

    cfg = load_config(config_path, base_dir=tmp_path)
    assert cfg.mapbox.access_token == "pk.from-env"


def test_env_overrides_storage_dir(monkeypatch, config_path, tmp_path) -> None:
    monkeypatch.setenv("METROPROXIMITY_STORAGE_DIR", "elsewhere")

    cfg = load_config(config_path, base_dir=tmp_path)
    assert cfg.storage.blob_dir == tmp_path.resolve() / "elsewhere"
    assert cfg.storage.table_path == tmp_path.resolve() / "elsewhere" / "tables.db"


def test_env_overrides_log_level(monkeypatch, config_path, tmp_path) -> None:
    monkeypatch.setenv("METROPROXIMITY_LOG_LEVEL", "DEBUG")

    cfg = load_config(config_path, base_dir=tmp_path)
    assert cfg.logging.level == "DEBUG"


def test_relative_paths_resolve_against_base_dir(config_path, tmp_path) -> None:
    _rewrite(config_path, storage={"blob_dir": "data/blobs", "table_path": "data/tables.db"})

    cfg = load_config(config_path, base_dir=tmp_path)
    assert cfg.storage.blob_dir == tmp_path.resolve() / "data" / "blobs"
    assert cfg.storage.table_path == tmp_path.resolve() / "data" / "tables.db"


def test_request_interval_below_floor_is_rejected(config_path, tmp_path) -> None:
    _rewrite(config_path, mapbox={"min_request_interval_s": 0.05})

    with pytest.raises(ValueError, match="min_request_interval_s"):
        load_config(config_path, base_dir=tmp_path)


def test_unknown_duration_is_rejected(config_path, tmp_path) -> None:
    _rewrite(config_path, generation={"durations": [5, 12]})

    with pytest.raises(ValueError, match="durations"):
        load_config(config_path, base_dir=tmp_path)


def test_unknown_station_type_is_rejected(config_path, tmp_path) -> None:
    _rewrite(config_path, generation={"station_types": ["station", "monorail"]})

    with pytest.raises(ValueError, match="station_types"):
        load_config(config_path, base_dir=tmp_path)

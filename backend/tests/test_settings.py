from __future__ import annotations

import pytest
from pydantic import ValidationError

from windshaft.config import instantiation_limit, tracker_max_fingerprints
from windshaft.settings import clear_maps_config_cache, load_maps_config


def test_load_maps_config_from_yaml(tmp_path):
    p = tmp_path / "maps.yaml"
    p.write_text(
        "userName: acme\n"
        "urlTemplate: 'http://{user}.example.com'\n"
        "authToken: tok\n"
        "statTag: t\n"
        "instantiationLimit: 5\n",
        encoding="utf-8",
    )
    clear_maps_config_cache()
    cfg = load_maps_config(p)
    assert cfg.userName == "acme"
    assert cfg.urlTemplate == "http://{user}.example.com"
    assert cfg.apiKey is None
    assert cfg.authToken == "tok"
    assert cfg.instantiationLimit == 5


def test_config_path_from_env(tmp_path, monkeypatch):
    p = tmp_path / "other.yaml"
    p.write_text("userName: env-user\n", encoding="utf-8")
    monkeypatch.setenv("WINDSHAFT_CONFIG_PATH", str(p))
    clear_maps_config_cache()
    cfg = load_maps_config()
    assert cfg.userName == "env-user"
    assert cfg.urlTemplate == "https://{user}.carto.com"


def test_template_without_user_placeholder_is_rejected(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("userName: acme\nurlTemplate: 'https://example.com'\n", encoding="utf-8")
    clear_maps_config_cache()
    with pytest.raises(ValidationError):
        load_maps_config(p)


def test_non_mapping_yaml_is_rejected(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    clear_maps_config_cache()
    with pytest.raises(ValueError):
        load_maps_config(p)


def test_env_limits(monkeypatch):
    monkeypatch.delenv("WINDSHAFT_INSTANTIATION_LIMIT", raising=False)
    assert instantiation_limit() == 3
    monkeypatch.setenv("WINDSHAFT_INSTANTIATION_LIMIT", "7")
    assert instantiation_limit() == 7
    monkeypatch.setenv("WINDSHAFT_TRACKER_MAX_FINGERPRINTS", "not-a-number")
    with pytest.raises(ValueError):
        tracker_max_fingerprints()

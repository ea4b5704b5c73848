"""Configuration loading and validation."""
import json

import pytest

from policylab import ConfigError, SystemConfig, load_config


def test_defaults():
    config = SystemConfig()
    assert (config.key_bits, config.threshold, config.committee_size) == (64, 3, 5)
    assert (config.base, config.scale) == (10000, 100)
    assert config.reveal_ttl is None
    assert config.backend == "paillier"


def test_load_config(tmp_path):
    path = tmp_path / "policylab.json"
    path.write_text(json.dumps({"backend": "plain", "reveal_ttl": 60, "scale": 10}), encoding="utf-8")

    config = load_config(path)

    assert config.backend == "plain"
    assert config.reveal_ttl == 60
    assert config.scale == 10
    assert config.to_dict()["key_bits"] == 64


@pytest.mark.parametrize("data", [
    {"backend": "rsa"},
    {"threshold": 6, "committee_size": 5},
    {"threshold": 0},
    {"scale": 0},
    {"reveal_ttl": -1},
    {"key_bits": 8},
    {"unknown": 1},
    {"key_bits": "64"},
    {"threshold": True},
    {"scale": 2.5},
    {"reveal_ttl": "60"},
    {"reveal_ttl": False},
    {"backend": ["plain"]},
])
def test_invalid_config(tmp_path, data):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_malformed_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)

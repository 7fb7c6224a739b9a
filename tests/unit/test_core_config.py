"""Unit tests for config load/save."""

import json

import pytest

from encsync.core.config import CONFIG_FILE_NAME, Config, default_config_path, get_config, write_config
from encsync.core.exceptions import ConfigError


def test_get_config_missing(tmp_path):
    assert get_config(tmp_path / "config.json") is None


def test_get_config_success(tmp_path):
    path = tmp_path / "encsync.json"
    path.write_text(json.dumps({"sources": ["test"], "version": "0.1.0", "destination": "test"}))

    config = get_config(path)

    assert config is not None
    assert config.version == "0.1.0"
    assert config.destination == "test"
    assert config.sources == ["test"]


def test_write_config_and_read(tmp_path):
    path = tmp_path / "nested" / "encsync.json"
    config = Config(sources=["a", "b"], version="0.1.0", destination="out")

    write_config(path, config)

    assert json.loads(path.read_text()) == {"sources": ["a", "b"], "version": "0.1.0", "destination": "out"}
    assert get_config(path) == config


def test_get_config_invalid_json(tmp_path):
    path = tmp_path / "encsync.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="invalid config file"):
        get_config(path)


@pytest.mark.parametrize(
    "data",
    [
        {"version": "0.1.0", "destination": "x"},
        {"sources": "abc", "version": "0.1.0", "destination": "x"},
        ["not", "a", "dict"],
    ],
)
def test_get_config_bad_fields(tmp_path, data):
    path = tmp_path / "encsync.json"
    path.write_text(json.dumps(data))
    with pytest.raises(ConfigError):
        get_config(path)


def test_default_config_path(tmp_path):
    assert default_config_path(tmp_path) == tmp_path / CONFIG_FILE_NAME


def test_kdf_parameters_roundtrip(tmp_path):
    path = tmp_path / "encsync.json"
    kdf = {"algo": "argon2id", "time": 3, "memory": 65536, "parallelism": 1}
    write_config(path, Config(sources=[], version="0.1.0", destination=".", kdf=kdf))

    assert json.loads(path.read_text())["kdf"] == kdf
    assert get_config(path).kdf == kdf


def test_config_without_kdf_omits_field(tmp_path):
    path = tmp_path / "encsync.json"
    write_config(path, Config(sources=[], version="0.1.0", destination="."))

    assert "kdf" not in json.loads(path.read_text())
    assert get_config(path).kdf is None


def test_kdf_field_must_be_object(tmp_path):
    path = tmp_path / "encsync.json"
    path.write_text(json.dumps({"sources": [], "version": "0.1.0", "destination": ".", "kdf": "argon2id"}))
    with pytest.raises(ConfigError, match="'kdf'"):
        get_config(path)

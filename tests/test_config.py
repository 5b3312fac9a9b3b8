"""Tests for configuration loading and validation."""

from pathlib import Path

import jsonschema
import orjson
import pytest

from cot_codec.config import AppConfig, load_config

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config" / "config.json"


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_bytes(orjson.dumps(data))
    return path


def test_no_path_gives_defaults() -> None:
    cfg = load_config(None)
    assert cfg == AppConfig()
    assert cfg.codec.ack_value == "ack"
    assert cfg.codec.max_raw_payload_bytes == 4096
    assert cfg.output.mode == "stdout"


def test_partial_file_keeps_defaults(tmp_path: Path) -> None:
    cfg = load_config(_write(tmp_path, {"codec": {"max_raw_payload_bytes": 16}}))
    assert cfg.codec.max_raw_payload_bytes == 16
    assert cfg.codec.ack_value == "ack"
    assert cfg.logging.level == "warning"
    assert cfg.logging.file.enabled is False


def test_env_interpolation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OUT_PATH", "/tmp/records.ndjson")
    monkeypatch.delenv("OUT_MODE", raising=False)
    path = _write(tmp_path, {
        "output": {"mode": "${OUT_MODE:-file}", "path": "${OUT_PATH}"},
    })
    cfg = load_config(path)
    assert cfg.output.mode == "file"
    assert cfg.output.path == "/tmp/records.ndjson"


def test_overrides_beat_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ACK", "from-env")
    path = _write(tmp_path, {"codec": {"ack_value": "${ACK}"}})
    cfg = load_config(path, overrides={"ACK": "from-cli"})
    assert cfg.codec.ack_value == "from-cli"


def test_unresolved_variable_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
    path = _write(tmp_path, {"output": {"path": "${NOT_SET_ANYWHERE}"}})
    with pytest.raises(ValueError, match="NOT_SET_ANYWHERE"):
        load_config(path)


@pytest.mark.parametrize(
    "data",
    [
        {"output": {"mode": "ftp"}},
        {"codec": {"max_raw_payload_bytes": -1}},
        {"logging": {"level": "loud"}},
        {"unexpected": True},
    ],
)
def test_schema_violations(tmp_path: Path, data: dict) -> None:
    with pytest.raises(jsonschema.ValidationError):
        load_config(_write(tmp_path, data))


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


def test_repo_sample_config_is_valid(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("COT_CODEC_OUTPUT_MODE", "COT_CODEC_OUTPUT_PATH", "COT_CODEC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_config(REPO_CONFIG)
    assert cfg.output.mode == "stdout"
    assert cfg.logging.format == "json"

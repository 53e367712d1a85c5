#!/usr/bin/env python3
"""Tests for configuration loading and the CLI entry point."""
import json
import logging
from pathlib import Path

import pytest

from flatmetrics.config import Config, load_config
from flatmetrics.json_encoder import NonFinitePolicy
from flatmetrics.main import main, setup_logging

EXAMPLE_CONFIG = Path(__file__).parent.parent / "configs" / "example.yaml"


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in ("LOG_LEVEL", "FLATMETRICS_PORT", "FLATMETRICS_NON_FINITE"):
        monkeypatch.delenv(name, raising=False)


def test_example_config_loads():
    config = load_config(str(EXAMPLE_CONFIG))

    assert isinstance(config, Config)
    assert config.encoder.non_finite == NonFinitePolicy.NULL
    assert config.server.path == "/metrics"
    assert config.global_.log_level == "INFO"


def test_defaults_without_file():
    config = load_config()

    assert config.server.port == 8000
    assert config.server.include_process_metrics is True
    assert config.global_.log_format == "text"


def test_empty_sections_use_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("global:\nencoder:\nserver:\n  port: 9100\n")

    config = load_config(str(path))

    assert config.server.port == 9100
    assert config.encoder.non_finite == NonFinitePolicy.NULL


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  port: 9100\n")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("FLATMETRICS_PORT", "9200")
    monkeypatch.setenv("FLATMETRICS_NON_FINITE", "omit")

    config = load_config(str(path))

    assert config.global_.log_level == "DEBUG"
    assert config.server.port == 9200
    assert config.encoder.non_finite == NonFinitePolicy.OMIT


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/flatmetrics.yaml")


def test_env_override_on_non_mapping_section(tmp_path, monkeypatch):
    """A scalar section with an env override is a config error, not a crash."""
    path = tmp_path / "config.yaml"
    path.write_text("server: 5\n")
    monkeypatch.setenv("FLATMETRICS_PORT", "9200")

    with pytest.raises(ValueError, match="server"):
        load_config(str(path))


@pytest.mark.parametrize("content", [
    "encoder:\n  non_finite: drop\n",
    "server:\n  path: metrics\n",
    "server:\n  port: 70000\n",
    "global:\n  log_level: LOUD\n",
    "- not\n- a mapping\n",
])
def test_invalid_config_rejected(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_config(str(path))


def test_main_once_writes_document(tmp_path, capsysbinary):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  include_process_metrics: false\n")

    main(["--config", str(path), "--once"])

    out = json.loads(capsysbinary.readouterr().out)
    assert out == {
        "flatmetrics_encode_duration_seconds_count": 0.0,
        "flatmetrics_encode_duration_seconds_sum": 0.0,
        "flatmetrics_exported_keys": 0.0,
    }


def test_main_bad_config_exits(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("encoder:\n  non_finite: drop\n")

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(path), "--once"])
    assert exc_info.value.code == 1


def test_json_log_format_emits_json(capsys):
    setup_logging("INFO", "json")
    try:
        logging.getLogger("flatmetrics.test").info("scrape served")
        line = capsys.readouterr().err.strip().splitlines()[-1]
    finally:
        setup_logging("WARNING", "text")

    record = json.loads(line)
    assert record["message"] == "scrape served"
    assert record["levelname"] == "INFO"
    assert record["name"] == "flatmetrics.test"

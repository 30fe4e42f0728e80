from __future__ import annotations

import json
from pathlib import Path

import pytest

from namereg import config as cfgmod
from namereg.config import RegistryConfig
from namereg.errors import ConfigError, NameTooLong
from namereg.registry import Registry


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for k in (
        "NAMEREG_CONFIG_FILE",
        "NAMEREG_MAX_NAME_BYTES",
        "NAMEREG_DB_PATH",
        "NAMEREG_ADMIN",
        "NAMEREG_LOG_LEVEL",
        "NAMEREG_LOG_FORMAT",
        "NAMEREG_EVENT_LOG_SIZE",
    ):
        monkeypatch.delenv(k, raising=False)


def test_defaults():
    cfg = cfgmod.load()
    assert cfg == RegistryConfig()
    assert cfg.max_name_bytes == 64
    assert cfg.db_path is None
    assert cfg.admin is None
    assert json.loads(cfgmod.pretty(cfg))["log_format"] == "text"


def test_env_overrides(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("NAMEREG_MAX_NAME_BYTES", "32")
    monkeypatch.setenv("NAMEREG_DB_PATH", str(tmp_path / "r.sqlite3"))
    monkeypatch.setenv("NAMEREG_ADMIN", "0x" + "ab" * 32)
    monkeypatch.setenv("NAMEREG_LOG_LEVEL", "debug")
    monkeypatch.setenv("NAMEREG_LOG_FORMAT", "JSON")

    cfg = cfgmod.load()
    assert cfg.max_name_bytes == 32
    assert cfg.db_path == tmp_path / "r.sqlite3"
    assert cfg.admin == b"\xab" * 32
    assert cfg.log_level == "DEBUG"
    assert cfg.log_format == "json"
    assert cfg.to_dict()["admin"] == "0x" + "ab" * 32


def test_yaml_file_then_env(monkeypatch, tmp_path: Path):
    p = tmp_path / "namereg.yaml"
    p.write_text("max_name_bytes: 16\nlog_level: warning\nadmin: '0x0102'\n", encoding="utf-8")
    monkeypatch.setenv("NAMEREG_CONFIG_FILE", str(p))
    monkeypatch.setenv("NAMEREG_MAX_NAME_BYTES", "20")

    cfg = cfgmod.load()
    assert cfg.max_name_bytes == 20  # env wins over file
    assert cfg.log_level == "WARNING"
    assert cfg.admin == b"\x01\x02"


def test_json_file(tmp_path: Path):
    p = tmp_path / "namereg.json"
    p.write_text(json.dumps({"db_path": str(tmp_path / "x.sqlite3"), "log_format": "json"}), encoding="utf-8")
    cfg = cfgmod.from_file(p)
    assert cfg.db_path == tmp_path / "x.sqlite3"
    assert cfg.log_format == "json"
    assert cfg.max_name_bytes == 64


@pytest.mark.parametrize(
    "env,value",
    [
        ("NAMEREG_MAX_NAME_BYTES", "0"),
        ("NAMEREG_MAX_NAME_BYTES", "lots"),
        ("NAMEREG_LOG_LEVEL", "chatty"),
        ("NAMEREG_LOG_FORMAT", "xml"),
        ("NAMEREG_ADMIN", "0xabc"),
        ("NAMEREG_EVENT_LOG_SIZE", "-1"),
    ],
)
def test_invalid_env_raises(monkeypatch, env, value):
    monkeypatch.setenv(env, value)
    with pytest.raises(ConfigError):
        cfgmod.load()


def test_bad_file_contents(tmp_path: Path):
    p = tmp_path / "bad.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        cfgmod.from_file(p)
    with pytest.raises(FileNotFoundError):
        cfgmod.from_file(tmp_path / "missing.json")


def test_registry_honours_name_limit(clock, alice, bob):
    reg = Registry.from_config(RegistryConfig(max_name_bytes=4), clock=clock)
    reg.register("abcd", "h", bob, alice)
    with pytest.raises(NameTooLong):
        reg.register("abcde", "h", bob, alice)


def test_event_log_size_from_env_reaches_registry(monkeypatch, clock, alice, bob):
    monkeypatch.setenv("NAMEREG_EVENT_LOG_SIZE", "2")
    cfg = cfgmod.load()
    assert cfg.event_log_size == 2

    reg = Registry.from_config(cfg, clock=clock)
    for n in ("a", "b", "c"):
        reg.register(n, "h", bob, alice)
    assert [e.name for e in reg.events.snapshot()] == ["b", "c"]

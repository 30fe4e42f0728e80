from __future__ import annotations

import io
import json
import logging

import pytest

from namereg import logging as nlog
from namereg.config import RegistryConfig
from namereg.errors import NameAlreadyRegistered
from namereg.registry import Registry


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    nlog.clear_context()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    nlog.clear_context()


def test_json_formatter_includes_context_and_extras():
    buf = io.StringIO()
    nlog.configure(json=True, level="DEBUG", stream=buf)
    log = nlog.get_logger("namereg.test")

    with nlog.trace_scope("t-123"):
        nlog.bind(caller=b"\xaa\xbb")
        log.info("registered %s", "alice", extra={"owner": b"\x01"})

    line = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert line["msg"] == "registered alice"
    assert line["level"] == "INFO"
    assert line["logger"] == "namereg.test"
    assert line["trace_id"] == "t-123"
    assert line["caller"] == "0xaabb"
    assert line["owner"] == "0x01"
    assert nlog.context() == {}


def test_text_formatter_one_liner():
    buf = io.StringIO()
    nlog.configure(json=False, level="INFO", stream=buf)
    nlog.bind(component="bootstrap")
    nlog.get_logger("namereg.test").warning("careful")
    out = buf.getvalue()
    assert "| WARNING | namereg.test | component=bootstrap | careful" in out


def test_configure_from_config_respects_level():
    buf = io.StringIO()
    nlog.configure_from_config(RegistryConfig(log_level="WARNING", log_format="json"), stream=buf)
    log = nlog.get_logger("namereg.test")
    log.info("hidden")
    log.error("shown")
    lines = [json.loads(x) for x in buf.getvalue().strip().splitlines()]
    assert [x["msg"] for x in lines] == ["shown"]


def test_registry_logs_mutations(registry, alice, bob, caplog):
    with caplog.at_level(logging.DEBUG, logger="namereg.registry"):
        registry.register("alice", "h", bob, alice)
        with pytest.raises(NameAlreadyRegistered):
            registry.register("alice", "h", bob, alice)

    msgs = [r.getMessage() for r in caplog.records if r.name == "namereg.registry"]
    assert any("registered name='alice'" in m for m in msgs)
    assert any("rejected" in m and "NAMEREG/NAME_TAKEN" in m for m in msgs)


def test_from_config_can_configure_logging(clock, alice, bob):
    buf = io.StringIO()
    cfg = RegistryConfig(log_level="INFO", log_format="json")
    reg = Registry.from_config(cfg, clock=clock, configure_logging=True, log_stream=buf)

    with nlog.trace_scope("req-1"):
        reg.register("alice", "h", bob, alice)

    lines = [json.loads(x) for x in buf.getvalue().strip().splitlines()]
    (line,) = [x for x in lines if x["logger"] == "namereg.registry"]
    assert line["level"] == "INFO"
    assert line["trace_id"] == "req-1"
    assert "registered name='alice'" in line["msg"]


def test_get_logger_stays_under_package_root():
    assert nlog.get_logger().name == "namereg"
    assert nlog.get_logger("namereg.registry").name == "namereg.registry"
    assert nlog.get_logger("plugin").name == "namereg.plugin"

import json
import logging

from zapp_core.logger import get_logger


def test_level_from_env(monkeypatch):
    monkeypatch.setenv("ZAPP_LOG_LEVEL", "debug")
    log = get_logger("Zapp.Test.EnvLevel")
    assert log.level == logging.DEBUG


def test_file_handler_writes_json_lines(monkeypatch, tmp_path):
    monkeypatch.delenv("ZAPP_LOG_LEVEL", raising=False)
    path = tmp_path / "logs" / "zapp.log"
    log = get_logger("Zapp.Test.File", to_file=str(path))
    log.info("[TEST] hello")
    for h in log.handlers:
        h.flush()

    line = path.read_text().strip().splitlines()[-1]
    record = json.loads(line)
    assert record["level"] == "INFO"
    assert record["name"] == "Zapp.Test.File"
    assert record["msg"] == "[TEST] hello"


def test_handlers_attached_once(monkeypatch):
    monkeypatch.delenv("ZAPP_LOG_FILE", raising=False)
    a = get_logger("Zapp.Test.Once")
    b = get_logger("Zapp.Test.Once")
    assert a is b
    assert len(b.handlers) == 1

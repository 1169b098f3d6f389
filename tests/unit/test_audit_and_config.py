import json
import os
from pathlib import Path

import pytest

from utils.audit import JsonlAuditSink, NullAuditSink, resolve_log_dir
from utils.config import ConfigurationError, load_settings
from utils.env_loader import load_environments


def test_jsonl_sink_appends_one_line_per_record(tmp_path):
    sink = JsonlAuditSink(tmp_path / "logs")
    sink.record("read_query", duration_ms=12, success=True, query="SELECT ?", params=[b"\x01"], result_summary='{"rows": 1}')
    sink.record("describe_table", duration_ms=3, success=False, error="Table ghost not found")

    log_file = sink.log_file()
    assert log_file.name.startswith("mcp-audit-") and log_file.suffix == ".jsonl"
    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [entry["tool"] for entry in lines] == ["read_query", "describe_table"]
    assert lines[0]["params"] == ["01"]
    assert lines[0]["success"] is True
    assert "timestamp" in lines[0]
    assert lines[1]["error"] == "Table ghost not found"
    assert "result_summary" not in lines[1]


def test_jsonl_sink_write_failure_is_not_fatal(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    sink = JsonlAuditSink(blocker / "logs")
    sink.record("system", duration_ms=0, success=True)


def test_null_sink_accepts_records():
    NullAuditSink().record("system", duration_ms=0, success=True)


def test_resolve_log_dir(tmp_path):
    assert resolve_log_dir(None) == Path("logs")
    assert resolve_log_dir(str(tmp_path / "audit" / "db.jsonl")) == (tmp_path / "audit").resolve()
    assert resolve_log_dir(str(tmp_path / "audit")) == (tmp_path / "audit").resolve()


def test_load_settings_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/shop.db")
    monkeypatch.setenv("MCP_DB_READ_ONLY", "TRUE")
    monkeypatch.setenv("MCP_LOG_PATH", "/var/log/mcp")
    monkeypatch.delenv("MCP_PORT", raising=False)
    settings = load_settings(str(tmp_path / ".env"))
    assert settings.database_url == "sqlite:///tmp/shop.db"
    assert settings.read_only is True
    assert settings.log_path == "/var/log/mcp"
    assert settings.port == 8765


def test_load_settings_uses_env_file_without_overriding(tmp_path, monkeypatch):
    # set-then-delete so monkeypatch restores whatever the .env loader writes
    for name in ("DATABASE_URL", "MCP_DB_READ_ONLY"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("MCP_PORT", "9000")
    env_file = tmp_path / ".env"
    env_file.write_text("# local\nDATABASE_URL='mysql://u:p@db/shop'\nMCP_PORT=1\n", encoding="utf-8")
    settings = load_settings(str(env_file))
    assert settings.database_url == "mysql://u:p@db/shop"
    assert settings.read_only is False
    assert settings.port == 9000


def test_load_settings_requires_database_url(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        load_settings(str(tmp_path / ".env"))


def test_env_loader_parses_quotes_comments_and_export(tmp_path, monkeypatch):
    for name in ("GW_QUOTED", "GW_PLAIN", "GW_EXPORTED"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text(
        'GW_QUOTED="a # not a comment"\nGW_PLAIN=value # trailing\nexport GW_EXPORTED=1\n',
        encoding="utf-8",
    )
    assert load_environments(str(env_file)) == ["GW_QUOTED", "GW_PLAIN", "GW_EXPORTED"]
    assert os.environ["GW_QUOTED"] == "a # not a comment"
    assert os.environ["GW_PLAIN"] == "value"
    assert load_environments(str(tmp_path / "missing.env")) == []

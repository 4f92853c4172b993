"""Tests for the execrelay CLI (status / targets / test)."""

import json

from typer.testing import CliRunner

from execrelay.cli.commands import app

runner = CliRunner()


def _write_config(tmp_path, exec_cfg=None, **extra):
    data = {"session": {"store": str(tmp_path / "{agentId}.json")}, **extra}
    if exec_cfg is not None:
        data["approvals"] = {"exec": exec_cfg}
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "execrelay v" in result.stdout


def test_status_disabled(tmp_path):
    path = _write_config(tmp_path)
    result = runner.invoke(app, ["--config", str(path), "status"])
    assert result.exit_code == 0
    assert "disabled" in result.stdout


def test_status_enabled(tmp_path):
    path = _write_config(
        tmp_path,
        {"enabled": True, "mode": "both", "targets": [{"channel": "slack", "to": "C1"}]},
        channels={"slack": {"botToken": "xoxb-1"}},
    )
    result = runner.invoke(app, ["--config", str(path), "status"])
    assert result.exit_code == 0
    assert "enabled" in result.stdout
    assert "Mode: both" in result.stdout
    assert "Explicit targets: 1" in result.stdout


def test_status_reports_broken_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")
    result = runner.invoke(app, ["--config", str(path), "status"])
    assert result.exit_code == 1


def test_targets_table(tmp_path):
    path = _write_config(
        tmp_path,
        {"enabled": True, "mode": "both", "targets": [{"channel": "slack", "to": "C1"}]},
    )
    (tmp_path / "main.json").write_text(
        json.dumps({"agent:main:main": {"lastChannel": "telegram", "lastTo": "777"}}), encoding="utf-8"
    )
    result = runner.invoke(app, ["--config", str(path), "targets", "--session-key", "agent:main:main"])
    assert result.exit_code == 0
    assert "session" in result.stdout
    assert "777" in result.stdout
    assert "C1" in result.stdout


def test_targets_filtered_out(tmp_path):
    path = _write_config(tmp_path, {"enabled": True, "agentFilter": ["ops"]})
    result = runner.invoke(app, ["--config", str(path), "targets", "--agent", "main"])
    assert result.exit_code == 1
    assert "Not forwarded" in result.stdout


def test_test_rejects_unknown_decision(tmp_path):
    path = _write_config(tmp_path)
    result = runner.invoke(app, ["--config", str(path), "test", "--decision", "maybe"])
    assert result.exit_code == 1
    assert "Unknown decision" in result.stdout


def _quiet_test_logs(monkeypatch, tmp_path):
    from execrelay.utils import logging_utils

    monkeypatch.setattr(logging_utils, "get_log_dir", lambda: tmp_path / "logs")
    monkeypatch.setattr(logging_utils, "_SINK_IDS", {})


def test_test_reports_nothing_sent_when_disabled(tmp_path, monkeypatch):
    _quiet_test_logs(monkeypatch, tmp_path)
    path = _write_config(tmp_path, {"enabled": False})
    result = runner.invoke(app, ["--config", str(path), "test"])
    assert result.exit_code == 1
    assert "Nothing sent" in result.stdout


def test_test_waits_for_expiry_that_fires_during_send(tmp_path, monkeypatch):
    import asyncio

    from execrelay.outbound import deliver as deliver_module

    _quiet_test_logs(monkeypatch, tmp_path)
    texts = []

    async def slow_deliver(*, config, channel, to, account_id, thread_id, payloads):
        await asyncio.sleep(0.1)
        texts.append(payloads[0].text)
        return [{"messageId": str(len(texts))}]

    monkeypatch.setattr(deliver_module, "deliver_outbound_payloads", slow_deliver)
    path = _write_config(
        tmp_path,
        {"enabled": True, "mode": "targets", "targets": [{"channel": "telegram", "to": "42"}]},
    )
    result = runner.invoke(app, ["--config", str(path), "test", "--timeout", "0.01"])
    assert result.exit_code == 0, result.stdout
    assert "Sent approval" in result.stdout
    assert "Done" in result.stdout
    assert len(texts) == 2
    assert texts[0].startswith("Exec approval required")
    assert texts[1].startswith("Expired: exec approval request timed out.")

"""Tests for config loading, camelCase conversion and migration."""

import json

import pytest

from execrelay.config.loader import (
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    load_config,
    save_config,
    snake_to_camel,
)
from execrelay.config.schema import ApprovalsConfig, ApprovalsExecConfig, ApprovalsExecTargetConfig, Config
from execrelay.utils.exceptions import ConfigError


def _write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "nope.json")
    assert config.exec_approvals is None
    assert config.channels.discord.api_base == "https://discord.com/api/v10"


def test_load_camel_case_approvals(tmp_path):
    path = _write(tmp_path, {
        "approvals": {
            "exec": {
                "enabled": True,
                "mode": "both",
                "agentFilter": ["main"],
                "sessionFilter": ["discord:"],
                "targets": [{"channel": "discord", "to": "channel:1", "accountId": "ops", "threadId": 5}],
            }
        },
        "channels": {"discord": {"accounts": {"opsBot": "tok"}}},
    })
    config = load_config(path)
    exec_cfg = config.exec_approvals
    assert exec_cfg.enabled is True
    assert exec_cfg.mode == "both"
    assert exec_cfg.agent_filter == ["main"]
    assert exec_cfg.targets == [
        ApprovalsExecTargetConfig(channel="discord", to="channel:1", account_id="ops", thread_id=5)
    ]
    # account ids are data, not field names
    assert config.channels.discord.accounts == {"opsBot": "tok"}


def test_load_migrates_loose_values(tmp_path):
    path = _write(tmp_path, {
        "approvals": {
            "exec": {
                "enabled": True,
                "mode": "Everything",
                "sessionFilter": "agent:main",
                "targets": ["telegram:1", {"channel": "telegram", "to": "1"}],
            }
        }
    })
    exec_cfg = load_config(path).exec_approvals
    assert exec_cfg.mode == "session"
    assert exec_cfg.session_filter == ["agent:main"]
    assert len(exec_cfg.targets) == 1


def test_invalid_json_raises_config_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(ConfigError) as exc_info:
        load_config(path)
    assert exc_info.value.details["path"] == str(path)


def test_invalid_values_raise_config_error(tmp_path):
    path = _write(tmp_path, {"approvals": {"exec": {"enabled": "sometimes"}}})
    with pytest.raises(ConfigError):
        load_config(path)


def test_save_then_load(tmp_path):
    config = Config(
        approvals=ApprovalsConfig(
            exec=ApprovalsExecConfig(
                enabled=True,
                mode="targets",
                targets=[ApprovalsExecTargetConfig(channel="slack", to="C1", thread_id="1.2")],
            )
        )
    )
    path = save_config(config, tmp_path / "sub" / "config.json")
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["approvals"]["exec"]["targets"][0]["threadId"] == "1.2"
    assert "timeoutSeconds" in raw["channels"]
    loaded = load_config(path)
    assert loaded.exec_approvals.targets[0].thread_id == "1.2"


def test_key_conversion_helpers():
    assert camel_to_snake("accountId") == "account_id"
    assert snake_to_camel("session_filter") == "sessionFilter"
    assert convert_keys({"fooBar": [{"bazQux": 1}]}) == {"foo_bar": [{"baz_qux": 1}]}
    assert convert_to_camel({"accounts": {"my_bot": "t"}}) == {"accounts": {"my_bot": "t"}}

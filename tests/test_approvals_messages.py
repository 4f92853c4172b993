"""Tests for approval message text and command formatting."""

import pytest

from execrelay.approvals.messages import (
    build_expired_message,
    build_request_message,
    build_resolved_message,
    expires_in_seconds,
    format_command,
    longest_backtick_run,
)
from execrelay.approvals.types import ExecApprovalRequest, ExecApprovalResolved


def _request(**fields) -> ExecApprovalRequest:
    return ExecApprovalRequest.from_payload({
        "id": "cr_abc123",
        "request": {"command": "ls -la", **fields},
        "createdAtMs": 90_000,
        "expiresAtMs": 100_000,
    })


@pytest.mark.parametrize(
    "command, expected",
    [
        ("", "(none)"),
        ("   ", "(none)"),
        ("ls -la", "`ls -la`"),
        ("echo `date`", "`` echo `date` ``"),
        ("`pwd`", "`` `pwd` ``"),
    ],
)
def test_format_command_inline(command, expected):
    assert format_command(command) == expected


def test_format_command_multiline_uses_fence():
    assert format_command("cd /tmp\nls") == "```\ncd /tmp\nls\n```"


def test_format_command_fence_longer_than_inner_backticks():
    assert format_command("echo ```x```") == "````\necho ```x```\n````"
    assert format_command("a\n`````b") == "``````\na\n`````b\n``````"


def test_longest_backtick_run():
    assert longest_backtick_run("no ticks") == 0
    assert longest_backtick_run("a `b` ``c``") == 2


@pytest.mark.parametrize(
    "expires, now, expected",
    [(100_000, 95_000, 5), (100_000, 95_400, 5), (100_000, 95_500, 5), (100_000, 95_501, 4), (100_000, 101_000, 0)],
)
def test_expires_in_seconds_rounds_and_clamps(expires, now, expected):
    assert expires_in_seconds(expires, now) == expected


def test_build_request_message():
    text = build_request_message(_request(cwd="/tmp", host="local", agentId="main", security="allowlist", ask="on-miss"), 95_000)
    assert text.splitlines() == [
        "Exec approval required",
        "ID: cr_abc123",
        "Command: `ls -la`",
        "CWD: /tmp",
        "Host: local",
        "Agent: main",
        "Security: allowlist",
        "Ask: on-miss",
        "Expires in: 5s",
        "Reply with: /approve <id> allow-once|allow-always|deny",
    ]


def test_build_request_message_multiline_command_on_own_lines():
    text = build_request_message(_request(command="a\nb"), 100_000)
    assert "Command:\n```\na\nb\n```" in text
    assert "CWD:" not in text
    assert "Expires in: 0s" in text


def test_build_resolved_message():
    assert (
        build_resolved_message(ExecApprovalResolved(id="x", decision="allow-once", resolved_by="alice"))
        == "Exec approval allowed once. Resolved by alice. ID: x"
    )
    assert build_resolved_message(ExecApprovalResolved(id="x", decision="allow-always")) == (
        "Exec approval allowed always. ID: x"
    )
    assert build_resolved_message(ExecApprovalResolved(id="x", decision="deny")) == "Exec approval denied. ID: x"


def test_build_expired_message():
    assert build_expired_message(_request()) == "Expired: exec approval request timed out. ID: cr_abc123"

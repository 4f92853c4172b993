"""Tests for session key parsing."""

import pytest

from execrelay.routing.session_key import (
    normalize_agent_id,
    parse_agent_session_key,
    parse_channel_session_key,
)


def test_parse_agent_session_key():
    parsed = parse_agent_session_key("agent:Ops:telegram:123")
    assert (parsed.agent_id, parsed.rest) == ("ops", "telegram:123")
    assert parse_agent_session_key("telegram:123") is None
    assert parse_agent_session_key("agent::main") is None
    assert parse_agent_session_key("agent:main") is None
    assert parse_agent_session_key(None) is None


def test_parse_channel_session_key():
    assert parse_channel_session_key("tg:chat:1") == ("tg", "chat:1")
    assert parse_channel_session_key("no-colon") is None
    assert parse_channel_session_key(":x") is None


@pytest.mark.parametrize("raw, expected", [(None, "main"), ("  ", "main"), ("Ops Team", "ops-team"), ("a/b", "a-b")])
def test_normalize_agent_id(raw, expected):
    assert normalize_agent_id(raw) == expected

"""Configuration schema using Pydantic.

Single data model and defaults for execrelay, persisted to ~/.execrelay/config.json.
"""

from typing import Literal

from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings


class DiscordConfig(BaseModel):
    """Discord bot used to post and edit approval embeds."""
    token: str = ""  # Bot token from Discord Developer Portal
    accounts: dict[str, str] = Field(default_factory=dict)  # account id -> bot token
    api_base: str = "https://discord.com/api/v10"


class TelegramConfig(BaseModel):
    """Telegram bot used for approval notices."""
    token: str = ""  # Bot token from @BotFather
    accounts: dict[str, str] = Field(default_factory=dict)
    api_base: str = "https://api.telegram.org"
    proxy: str | None = None  # HTTP/SOCKS5 proxy URL, e.g. "http://127.0.0.1:7890"


class SlackConfig(BaseModel):
    """Slack bot used for approval notices."""
    bot_token: str = ""  # xoxb-...
    accounts: dict[str, str] = Field(default_factory=dict)
    api_base: str = "https://slack.com/api"


class ChannelsConfig(BaseModel):
    """Credentials for the channels execrelay can deliver to directly."""
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    timeout_seconds: float = 15.0  # per HTTP call


class SessionConfig(BaseModel):
    """Where per-agent session stores live."""
    # Path template; "{agentId}" is substituted. None = ~/.execrelay/agents/<agentId>/sessions/sessions.json
    store: str | None = None


class ApprovalsExecTargetConfig(BaseModel):
    """Single delivery target for exec approval forwarding."""
    channel: str = ""  # e.g. telegram, discord, slack
    to: str = ""  # destination id (chat_id, channel:<id>, user id, ...)
    account_id: str | None = None
    thread_id: str | int | None = None


class ApprovalsExecConfig(BaseModel):
    """Exec approval forwarding."""
    enabled: bool = False
    mode: Literal["session", "targets", "both"] = "session"
    agent_filter: list[str] | None = None  # only forward for these agent IDs
    session_filter: list[str] | None = None  # sessionKey substring or regex patterns
    targets: list[ApprovalsExecTargetConfig] | None = None  # explicit channel/to targets


class ApprovalsConfig(BaseModel):
    """Approvals behaviour."""
    exec: ApprovalsExecConfig | None = None


class Config(BaseSettings):
    """Root configuration for execrelay."""
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    approvals: ApprovalsConfig | None = None

    @property
    def exec_approvals(self) -> ApprovalsExecConfig | None:
        """Shortcut for approvals.exec (None when forwarding is not configured)."""
        return self.approvals.exec if self.approvals else None

    model_config = ConfigDict(
        env_prefix="EXECRELAY_",
        env_nested_delimiter="__"
    )

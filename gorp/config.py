"""Configuration and shared state."""

__version__ = "1.0.0"

import os
import sys
from dataclasses import dataclass, field
from typing import List, Tuple

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)

# Per-channel pending queue bound (not configurable)
MAX_PENDING_MESSAGES = 50


def _env_flag(name: str, default: bool = True) -> bool:
    """Read an on-by-default flag: only an explicit "false" disables it."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


CONFIG = {
    # Discord
    "discord_token": os.getenv("DISCORD_TOKEN", ""),
    "bot_prefix": os.getenv("BOT_PREFIX", "!"),
    # Letta agent
    "letta_api_key": os.getenv("LETTA_API_KEY", ""),
    "letta_project": os.getenv("LETTA_PROJECT", "default"),
    "letta_server_url": os.getenv("LETTA_SERVER_URL", "").rstrip("/"),
    "letta_agent_id": os.getenv("LETTA_MODEL_ID", ""),
    "auto_forward": _env_flag("LETTA_AUTO_FORWARD"),
    "smart_forward": _env_flag("LETTA_SMART_FORWARD"),
    # Smart forwarding timing (minutes)
    "interaction_timeout_minutes": _env_int("LETTA_GORP_TIMEOUT", 5),
    "batch_interval_minutes": _env_int("LETTA_BATCH_INTERVAL", 30),
    # Outbound budget
    "rate_limit_per_hour": _env_int("LETTA_RATE_LIMIT_PER_HOUR", 100),
    "message_history_limit": _env_int("LETTA_MESSAGE_HISTORY_LIMIT", 10),
    # Tool server
    "tools_port": _env_int("MCP_PORT", 3001),
    "tools_enabled": _env_flag("MCP_ENABLED"),
    # Bot
    "bot_name": "Gorp",
    "admin_user_id": os.getenv("BOT_ADMIN_USER_ID", ""),
    "environment": os.getenv("GORP_ENV", os.getenv("NODE_ENV", "development")),
}


# ── Typed config ────────────────────────────────────────────


@dataclass
class LettaConfig:
    server_url: str = ""
    agent_id: str = ""
    api_key: str = ""
    project: str = "default"
    interaction_timeout_minutes: int = 5
    batch_interval_minutes: int = 30
    rate_limit_per_hour: int = 100
    message_history_limit: int = 10


@dataclass
class DiscordConfig:
    token: str = ""
    prefix: str = "!"


@dataclass
class ToolServerConfig:
    port: int = 3001
    enabled: bool = True


@dataclass
class BotConfig:
    name: str = "Gorp"
    version: str = __version__
    environment: str = "development"
    admin_user_id: str = ""
    aliases: List[str] = field(default_factory=lambda: ["gorp"])


@dataclass
class ForwardingFlags:
    """Runtime toggles flipped by admin commands; read on every message."""

    auto_forward: bool = True
    smart_forward: bool = True


@dataclass
class AppConfig:
    """Typed view over CONFIG, read once at startup."""

    discord: DiscordConfig = field(default_factory=DiscordConfig)
    letta: LettaConfig = field(default_factory=LettaConfig)
    tools: ToolServerConfig = field(default_factory=ToolServerConfig)
    bot: BotConfig = field(default_factory=BotConfig)
    forwarding: ForwardingFlags = field(default_factory=ForwardingFlags)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        return cls(
            discord=DiscordConfig(
                token=CONFIG["discord_token"],
                prefix=CONFIG["bot_prefix"],
            ),
            letta=LettaConfig(
                server_url=CONFIG["letta_server_url"],
                agent_id=CONFIG["letta_agent_id"],
                api_key=CONFIG["letta_api_key"],
                project=CONFIG["letta_project"],
                interaction_timeout_minutes=CONFIG["interaction_timeout_minutes"],
                batch_interval_minutes=CONFIG["batch_interval_minutes"],
                rate_limit_per_hour=CONFIG["rate_limit_per_hour"],
                message_history_limit=CONFIG["message_history_limit"],
            ),
            tools=ToolServerConfig(
                port=CONFIG["tools_port"],
                enabled=CONFIG["tools_enabled"],
            ),
            bot=BotConfig(
                name=CONFIG["bot_name"],
                environment=CONFIG["environment"],
                admin_user_id=CONFIG["admin_user_id"],
            ),
            forwarding=ForwardingFlags(
                auto_forward=CONFIG["auto_forward"],
                smart_forward=CONFIG["smart_forward"],
            ),
        )


def validate_config(config: AppConfig) -> Tuple[bool, List[str]]:
    """Return (valid, errors) for settings the bot cannot run without."""
    errors: List[str] = []
    if not config.discord.token:
        errors.append("DISCORD_TOKEN is required")
    if not config.letta.server_url:
        errors.append("LETTA_SERVER_URL is required")
    if not config.letta.agent_id:
        errors.append("LETTA_MODEL_ID is required")
    if not config.bot.admin_user_id:
        errors.append("BOT_ADMIN_USER_ID is required")
    if config.letta.interaction_timeout_minutes <= 0:
        errors.append("LETTA_GORP_TIMEOUT must be positive")
    if config.letta.batch_interval_minutes <= 0:
        errors.append("LETTA_BATCH_INTERVAL must be positive")
    if config.letta.rate_limit_per_hour < 0:
        errors.append("LETTA_RATE_LIMIT_PER_HOUR must not be negative")
    return (not errors, errors)

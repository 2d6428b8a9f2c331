"""Status embeds for the bot's commands."""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

import discord

from gorp.adapters.discord.tools import TOOL_NAMES
from gorp.config import ForwardingFlags
from gorp.domain.models import ChannelActivity, RateLimitStatus

GREEN = 0x00FF00
BLUE = 0x0099FF
AMBER = 0xFFAA00
RED = 0xFF0000

COMMANDS: Tuple[Tuple[str, str], ...] = (
    ("ping", "Check if the bot is responsive"),
    ("help", "Show this help message"),
    ("toggle-forward", "Toggle auto-forwarding messages to Letta (Admin only)"),
    ("toggle-smart-forward", "Toggle smart forwarding (Admin only)"),
    ("activity-status", "Show activity status and timing configuration"),
    ("rate-limit-status", "Show current rate limiting status"),
    ("test-letta", "Test connection to Letta server"),
    ("letta-status", "Show Letta integration status"),
    ("tools-status", "Show tool server status and available tools"),
)


def _embed(title: str, color: int, footer: str, description: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.now(timezone.utc),
    )
    embed.set_footer(text=f"Gorp Bot - {footer}")
    return embed


def _on_off(flag: bool) -> str:
    return "✅ Enabled" if flag else "❌ Disabled"


def help_embed(history_limit: int) -> discord.Embed:
    embed = _embed(
        "🤖 Gorp Bot Commands",
        BLUE,
        "Powered by Letta",
        description="Here are the available commands (mention me to use them):",
    )
    for name, summary in COMMANDS:
        embed.add_field(name=f"@gorp {name}", value=summary, inline=True)
    embed.add_field(
        name="Configuration",
        value=f"Message history limit: {history_limit} messages (set via LETTA_MESSAGE_HISTORY_LIMIT)",
        inline=False,
    )
    return embed


def _timing_value(timing: Dict[str, float]) -> str:
    return (
        f"Gorp Interaction Timeout: {timing['interaction_timeout_minutes']:g} minutes\n"
        f"Batch Interval: {timing['batch_interval_minutes']:g} minutes"
    )


def activity_embed(
    activities: Iterable[ChannelActivity],
    timing: Dict[str, float],
    now: Optional[float] = None,
) -> discord.Embed:
    now = time.time() if now is None else now
    activities = list(activities)
    if not activities:
        embed = _embed(
            "📊 Smart Forwarding Configuration",
            GREEN,
            "Activity Tracker",
            description="No channel activity tracked yet.",
        )
    else:
        embed = _embed(
            "📊 Channel Activity Status",
            GREEN,
            "Activity Tracker",
            description="Smart forwarding status for all tracked channels",
        )
        # Discord caps embeds at 25 fields; keep one for timing
        for activity in activities[:24]:
            minutes_ago = int((now - activity.last_activity_at) // 60)
            status = "🟢 Active" if activity.is_active else "🔴 Inactive"
            images = activity.pending_attachment_count
            image_info = f" | Images: {images}" if images else ""
            embed.add_field(
                name=f"{activity.channel_label} {status}",
                value=f"Pending: {activity.pending_count}{image_info} | Last activity: {minutes_ago}m ago",
                inline=True,
            )
    embed.add_field(name="⏱️ Timing Configuration", value=_timing_value(timing), inline=False)
    return embed


def rate_limit_embed(status: RateLimitStatus, minutes_until_reset: int) -> discord.Embed:
    remaining = status.remaining_messages
    if remaining > 10:
        color, health = GREEN, "🟢 Healthy"
    elif remaining > 0:
        color, health = AMBER, "🟡 Warning"
    else:
        color, health = RED, "🔴 Rate Limited"

    embed = _embed(
        "🚦 Rate Limit Status",
        color,
        "Rate Limiter",
        description="Current rate limiting status for Gorp message forwarding",
    )
    embed.add_field(
        name="Messages This Hour",
        value=f"{status.messages_in_window}/{status.max_messages_per_hour}",
        inline=True,
    )
    embed.add_field(name="Remaining Messages", value=str(remaining), inline=True)
    embed.add_field(
        name="Reset Time",
        value=f"{minutes_until_reset} minutes" if minutes_until_reset > 0 else "Available now",
        inline=True,
    )
    embed.add_field(name="Status", value=health, inline=False)
    return embed


def letta_status_embed(status: Dict[str, Any], flags: ForwardingFlags) -> discord.Embed:
    embed = _embed("🤖 Letta Integration Status", BLUE, "Letta Integration")
    embed.add_field(name="Server URL", value=status["server_url"] or "—", inline=True)
    embed.add_field(name="Agent ID", value=status["agent_id"] or "—", inline=True)
    embed.add_field(name="Auto-Forward", value=_on_off(flags.auto_forward), inline=True)
    embed.add_field(name="Smart Forward", value=_on_off(flags.smart_forward), inline=True)
    embed.add_field(
        name="Service Status",
        value="✅ Configured" if status["configured"] else "❌ Not Configured",
        inline=True,
    )
    return embed


def tools_status_embed(port: int, enabled: bool) -> discord.Embed:
    embed = _embed("🔧 Tool Server Status", GREEN if enabled else RED, "Tool Integration")
    embed.add_field(name="Server URL", value=f"http://localhost:{port}", inline=True)
    embed.add_field(name="Status", value="✅ Running" if enabled else "❌ Disabled", inline=True)
    embed.add_field(name="Available Tools", value=f"{len(TOOL_NAMES)} tools available", inline=True)
    embed.add_field(name="Tool List", value="\n".join(f"• {n}" for n in TOOL_NAMES), inline=False)
    embed.add_field(
        name="Endpoints",
        value="• GET /health\n• GET /tools\n• POST /tools/{name}\n• POST /call-tool\n• POST / (JSON-RPC)",
        inline=False,
    )
    return embed

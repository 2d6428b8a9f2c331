"""Discord adapters — bot, attachment ingestion, and agent-callable tools."""

from gorp.adapters.discord.attachments import AttachmentProcessor
from gorp.adapters.discord.bot import GorpBot
from gorp.adapters.discord.tools import TOOL_DEFINITIONS, DiscordTools, ToolError

__all__ = [
    "AttachmentProcessor",
    "GorpBot",
    "TOOL_DEFINITIONS",
    "DiscordTools",
    "ToolError",
]

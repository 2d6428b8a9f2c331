"""Gorp Discord bot — event intake, commands, and forwarding to the Letta agent.

Discord adapter layer: converts discord.Message to IncomingMessage and
delegates the relay-or-batch decision to ActivityTracker.
"""

import re
import sys
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import discord

from gorp.adapters.discord import embeds
from gorp.adapters.discord.attachments import AttachmentProcessor
from gorp.adapters.letta.client import LettaClient
from gorp.config import AppConfig
from gorp.domain.activity import ActivityTracker
from gorp.domain.formatting import format_message
from gorp.domain.rate_limiter import RateLimiter
from gorp.ports.inbound import AttachmentRef, IncomingMessage

IS_THIS_TRUE_RE = re.compile(r"(?:@?gorp\s+)?is\s+this\s+true", re.IGNORECASE)


def _log(msg: str):
    print(msg, file=sys.stderr)


def channel_label(channel) -> str:
    name = getattr(channel, "name", None)
    return f"#{name}" if isinstance(name, str) and name else "DM"


class GorpBot(discord.Client):
    """Relays Discord traffic to a Letta agent, batching dormant channels.

    Handles:
    - own messages: observed by the tracker to keep the conversation hot
    - "@gorp <command>": status and admin commands
    - everything else: forwarded now or queued for the next digest
    """

    def __init__(
        self,
        config: AppConfig,
        agent: LettaClient,
        rate_limiter: RateLimiter,
        tracker: ActivityTracker,
        attachments: Optional[AttachmentProcessor] = None,
        **discord_kwargs,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        super().__init__(intents=intents, **discord_kwargs)

        self.config = config
        self.flags = config.forwarding
        self.agent = agent
        self.rate_limiter = rate_limiter
        self.tracker = tracker
        self.attachments = attachments
        self._commands: Dict[str, Callable[[discord.Message, List[str]], Awaitable[None]]] = {
            "ping": self._handle_ping,
            "help": self._handle_help,
            "toggle-forward": self._handle_toggle_forward,
            "toggle-smart-forward": self._handle_toggle_smart_forward,
            "activity-status": self._handle_activity_status,
            "rate-limit-status": self._handle_rate_limit_status,
            "test-letta": self._handle_test_letta,
            "letta-status": self._handle_letta_status,
            "tools-status": self._handle_tools_status,
        }

    # -- Conversion --

    def to_incoming(self, message: discord.Message) -> IncomingMessage:
        """Convert a Discord message to platform-agnostic IncomingMessage."""
        return IncomingMessage(
            message_id=str(message.id),
            channel_id=message.channel.id,
            channel_label=channel_label(message.channel),
            author_id=message.author.id,
            author_name=message.author.name,
            content=message.content or "",
            attachments=[
                AttachmentRef(
                    name=a.filename,
                    content_type=a.content_type or "",
                    url=a.url,
                    size=a.size,
                )
                for a in message.attachments
            ],
            is_bot=message.author.bot,
        )

    def parse_command(self, content: str) -> Tuple[Optional[str], List[str]]:
        """Split "@gorp cmd args" into (cmd, args). cmd is None when not addressed."""
        text = content.strip()
        prefixes = ["@gorp"]
        if self.user:
            prefixes = [f"<@{self.user.id}>", f"<@!{self.user.id}>"] + prefixes
        for prefix in prefixes:
            if text.lower().startswith(prefix.lower()):
                rest = text[len(prefix):].split()
                if not rest:
                    return "", []
                return rest[0].lower(), rest[1:]
        return None, []

    # -- Events --

    async def on_ready(self):
        _log(f"[Gorp] logged in as {self.user} ({len(self.guilds)} guild(s))")
        if self.user:
            self.tracker.bind_identity(self.user.id)
        self.tracker.start()
        if self.agent.is_configured:
            ok = await self.agent.test_connection()
            _log(f"[Gorp] Letta connection test {'passed' if ok else 'failed'}")

    async def close(self):
        await self.tracker.close()
        await super().close()

    async def on_message(self, message: discord.Message):
        # Guard: self.user can be None before on_ready fires
        if not self.user:
            return

        if message.author.id == self.user.id:
            # Our own output keeps the channel hot; it is never forwarded back
            if self.flags.auto_forward and self.flags.smart_forward:
                await self.tracker.should_forward_immediately(self.to_incoming(message))
            return

        incoming = self.to_incoming(message)
        if incoming.is_bot:
            return

        if IS_THIS_TRUE_RE.search(message.content):
            await message.reply("yeh")
            return

        command, args = self.parse_command(message.content)
        handler = self._commands.get(command) if command else None
        if handler:
            try:
                await handler(message, args)
            except Exception as e:
                _log(f"[Gorp] command {command!r} failed: {e}")
                await message.reply("❌ An error occurred while processing your command.")
            return

        await self.handle_forwarding(message, incoming)

    # -- Forwarding --

    async def handle_forwarding(self, message: discord.Message, incoming: Optional[IncomingMessage] = None):
        if not self.flags.auto_forward:
            return
        if incoming is None:
            incoming = self.to_incoming(message)
        if self.flags.smart_forward:
            if not await self.tracker.should_forward_immediately(incoming):
                return
        await self.send_to_agent(message, incoming)

    async def send_to_agent(self, message: discord.Message, incoming: IncomingMessage):
        """Forward one message with recent channel history for context."""
        if incoming.is_empty:
            return

        if not self.rate_limiter.can_send_message():
            status = self.rate_limiter.get_status()
            _log(
                f"[Gorp] rate limit exceeded! {status.messages_in_window}/{status.max_messages_per_hour} "
                f"sent in the last hour, reset in {self.rate_limiter.get_time_until_reset()} min"
            )
            return

        history = await self._fetch_history(message)
        text = f"[Discord] {format_message(incoming)}{history}"
        images = []
        if incoming.attachments and self.attachments:
            images = await self.attachments.process(incoming.attachments)

        try:
            await self.agent.send(text, images)
        except Exception as e:
            # Never reply to the author; just log
            _log(f"[Gorp] error sending message to Letta: {e}")
            return

        self.rate_limiter.record_message_sent()
        status = self.rate_limiter.get_status()
        _log(
            f"[Gorp] sent to Letta: {text[:100]}{'...' if len(text) > 100 else ''} "
            f"({status.messages_in_window}/{status.max_messages_per_hour} this hour)"
        )

    async def _fetch_history(self, message: discord.Message) -> str:
        limit = self.config.letta.message_history_limit
        if limit <= 0:
            return ""
        try:
            recent = [m async for m in message.channel.history(limit=limit, before=message)]
        except Exception as e:
            _log(f"[Gorp] failed to fetch message history: {e}")
            return ""
        if not recent:
            return ""
        # history() is newest-first
        lines = [format_message(self.to_incoming(m)) for m in reversed(recent)]
        return "\n\n[Recent message history:\n" + "\n".join(lines) + "]"

    # -- Commands --

    def _is_admin(self, message: discord.Message) -> bool:
        admin = self.config.bot.admin_user_id
        return bool(admin) and str(message.author.id) == admin

    async def _handle_ping(self, message: discord.Message, args: List[str]):
        await message.reply("🏓 Pong!")

    async def _handle_help(self, message: discord.Message, args: List[str]):
        await message.reply(embed=embeds.help_embed(self.config.letta.message_history_limit))

    async def _handle_toggle_forward(self, message: discord.Message, args: List[str]):
        if not self._is_admin(message):
            await message.reply("❌ Only the bot administrator can toggle auto-forward settings.")
            return
        self.flags.auto_forward = not self.flags.auto_forward
        state = "enabled" if self.flags.auto_forward else "disabled"
        await message.reply(f"📤 Auto-forward messages to Letta: **{state}**")
        _log(f"[Gorp] auto-forward {state} by {message.author.name} ({message.author.id})")

    async def _handle_toggle_smart_forward(self, message: discord.Message, args: List[str]):
        if not self._is_admin(message):
            await message.reply("❌ Only the bot administrator can toggle smart forwarding settings.")
            return
        if not self.flags.auto_forward:
            await message.reply("❌ Auto-forward must be enabled to use smart forwarding.")
            return
        self.flags.smart_forward = not self.flags.smart_forward
        state = "enabled" if self.flags.smart_forward else "disabled"
        description = (
            "Messages will be batched unless Gorp is mentioned or recently active"
            if self.flags.smart_forward
            else "All messages will be forwarded immediately"
        )
        await message.reply(f"🧠 Smart forwarding: **{state}**\n{description}")
        _log(f"[Gorp] smart forwarding {state} by {message.author.name} ({message.author.id})")

    async def _handle_activity_status(self, message: discord.Message, args: List[str]):
        if not self.flags.smart_forward:
            await message.reply("❌ Smart forwarding is not enabled.")
            return
        activities = self.tracker.get_all_activities().values()
        await message.reply(embed=embeds.activity_embed(activities, self.tracker.get_timing_config()))

    async def _handle_rate_limit_status(self, message: discord.Message, args: List[str]):
        await message.reply(
            embed=embeds.rate_limit_embed(
                self.rate_limiter.get_status(),
                self.rate_limiter.get_time_until_reset(),
            )
        )

    async def _handle_test_letta(self, message: discord.Message, args: List[str]):
        if not self.agent.is_configured:
            await message.reply("❌ Letta integration is not configured.")
            return
        await message.reply("🔍 Testing Letta connection...")
        if await self.agent.test_connection():
            await message.reply("✅ Letta connection test passed!")
        else:
            await message.reply("❌ Letta connection test failed! Check your server URL and agent ID.")

    async def _handle_letta_status(self, message: discord.Message, args: List[str]):
        if not self.agent.is_configured:
            await message.reply("❌ Letta integration is not configured.")
            return
        await message.reply(embed=embeds.letta_status_embed(self.agent.get_status(), self.flags))

    async def _handle_tools_status(self, message: discord.Message, args: List[str]):
        await message.reply(
            embed=embeds.tools_status_embed(self.config.tools.port, self.config.tools.enabled)
        )

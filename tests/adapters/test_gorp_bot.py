"""Tests for GorpBot routing, forwarding, and command handlers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gorp.adapters.discord.bot import GorpBot, channel_label
from gorp.config import AppConfig, BotConfig, ForwardingFlags, LettaConfig
from gorp.domain.rate_limiter import RateLimiter

BOT_USER_ID = 999
ADMIN_ID = 1234
CHANNEL = 100


class _AsyncIter:
    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        return self._items.pop(0)


def _make_bot(flags=None, limit=100, history_limit=10):
    config = AppConfig(
        letta=LettaConfig(server_url="https://letta", agent_id="a1", message_history_limit=history_limit),
        bot=BotConfig(admin_user_id=str(ADMIN_ID)),
        forwarding=flags or ForwardingFlags(),
    )
    agent = MagicMock()
    agent.is_configured = True
    agent.send = AsyncMock(return_value="ok")
    agent.test_connection = AsyncMock(return_value=True)
    agent.get_status = MagicMock(return_value={
        "configured": True, "ready": True, "server_url": "https://letta", "agent_id": "a1",
    })
    tracker = MagicMock()
    tracker.should_forward_immediately = AsyncMock(return_value=True)
    tracker.get_all_activities = MagicMock(return_value={})
    tracker.get_timing_config = MagicMock(return_value={
        "interaction_timeout_minutes": 5, "batch_interval_minutes": 30,
    })
    bot = GorpBot(
        config=config,
        agent=agent,
        rate_limiter=RateLimiter(max_messages_per_hour=limit),
        tracker=tracker,
    )
    # Fake self.user — discord.Client exposes user via _connection.user
    fake_user = MagicMock()
    fake_user.id = BOT_USER_ID
    fake_user.name = "Gorp"
    bot._connection = MagicMock()
    bot._connection.user = fake_user
    return bot


def _make_message(content: str, *, author_id: int = 1, is_bot: bool = False, history=()):
    msg = MagicMock()
    msg.id = 555
    msg.content = content
    msg.attachments = []
    msg.reply = AsyncMock()
    msg.channel = MagicMock()
    msg.channel.id = CHANNEL
    msg.channel.name = "general"
    msg.channel.history = MagicMock(return_value=_AsyncIter(history))
    msg.author = MagicMock()
    msg.author.id = author_id
    msg.author.name = "alice"
    msg.author.bot = is_bot
    return msg


def _reply_text(msg) -> str:
    return msg.reply.call_args[0][0]


class TestRouting:
    @pytest.mark.asyncio
    async def test_own_message_observed_not_forwarded(self):
        bot = _make_bot()
        msg = _make_message("I said a thing", author_id=BOT_USER_ID, is_bot=True)
        await bot.on_message(msg)
        bot.tracker.should_forward_immediately.assert_awaited_once()
        incoming = bot.tracker.should_forward_immediately.call_args[0][0]
        assert incoming.author_id == BOT_USER_ID
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_bots_ignored(self):
        bot = _make_bot()
        await bot.on_message(_make_message("beep", author_id=42, is_bot=True))
        bot.tracker.should_forward_immediately.assert_not_awaited()
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignored_before_ready(self):
        bot = _make_bot()
        bot._connection.user = None
        await bot.on_message(_make_message("hello"))
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_is_this_true(self):
        bot = _make_bot()
        msg = _make_message("Gorp is this true?")
        await bot.on_message(msg)
        msg.reply.assert_awaited_once_with("yeh")
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping_by_alias(self):
        bot = _make_bot()
        msg = _make_message("@gorp ping")
        await bot.on_message(msg)
        assert _reply_text(msg) == "🏓 Pong!"
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping_by_token(self):
        bot = _make_bot()
        msg = _make_message(f"<@!{BOT_USER_ID}> PING")
        await bot.on_message(msg)
        assert _reply_text(msg) == "🏓 Pong!"

    @pytest.mark.asyncio
    async def test_unknown_command_is_forwarded(self):
        bot = _make_bot()
        await bot.on_message(_make_message("@gorp what's the weather"))
        bot.agent.send.assert_awaited_once()

    def test_parse_command(self):
        bot = _make_bot()
        assert bot.parse_command(f"<@{BOT_USER_ID}> help me") == ("help", ["me"])
        assert bot.parse_command("@Gorp") == ("", [])
        assert bot.parse_command("hello gorp") == (None, [])

    def test_channel_label(self):
        named = MagicMock()
        named.name = "general"
        assert channel_label(named) == "#general"
        assert channel_label(object()) == "DM"

    def test_to_incoming_maps_author_fields(self):
        bot = _make_bot()
        incoming = bot.to_incoming(_make_message("beep", author_id=42, is_bot=True))
        assert incoming.is_bot is True
        assert incoming.author_id == 42
        assert incoming.channel_label == "#general"
        assert bot.to_incoming(_make_message("hi")).is_bot is False


class TestForwarding:
    @pytest.mark.asyncio
    async def test_smart_forward_defers_to_tracker(self):
        bot = _make_bot()
        bot.tracker.should_forward_immediately = AsyncMock(return_value=False)
        await bot.on_message(_make_message("just chatting"))
        bot.tracker.should_forward_immediately.assert_awaited_once()
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_smart_off_forwards_immediately(self):
        bot = _make_bot(flags=ForwardingFlags(auto_forward=True, smart_forward=False))
        await bot.on_message(_make_message("just chatting"))
        bot.tracker.should_forward_immediately.assert_not_awaited()
        bot.agent.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_auto_off_does_nothing(self):
        bot = _make_bot(flags=ForwardingFlags(auto_forward=False))
        await bot.on_message(_make_message("just chatting"))
        bot.tracker.should_forward_immediately.assert_not_awaited()
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_forward_text_and_history(self):
        bot = _make_bot()
        newer = _make_message("second")
        newer.id = 2
        older = _make_message("first")
        older.id = 1
        msg = _make_message("hey gorp", history=[newer, older])

        await bot.on_message(msg)

        msg.channel.history.assert_called_once_with(limit=10, before=msg)
        text = bot.agent.send.call_args[0][0]
        assert text.startswith("[Discord] [messageId: 555] alice in #general: hey gorp")
        assert "[Recent message history:" in text
        assert text.index("first") < text.index("second")
        assert bot.rate_limiter.get_status().messages_in_window == 1

    @pytest.mark.asyncio
    async def test_no_history_when_limit_zero(self):
        bot = _make_bot(history_limit=0)
        msg = _make_message("hey gorp")
        await bot.on_message(msg)
        msg.channel.history.assert_not_called()
        assert "Recent message history" not in bot.agent.send.call_args[0][0]

    @pytest.mark.asyncio
    async def test_rate_limited_not_sent(self):
        bot = _make_bot(limit=0)
        await bot.on_message(_make_message("hey gorp"))
        bot.agent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_is_silent(self):
        bot = _make_bot()
        bot.agent.send = AsyncMock(side_effect=RuntimeError("letta down"))
        msg = _make_message("hey gorp")
        await bot.on_message(msg)
        msg.reply.assert_not_awaited()
        assert bot.rate_limiter.get_status().messages_in_window == 0

    @pytest.mark.asyncio
    async def test_empty_message_skipped(self):
        bot = _make_bot(flags=ForwardingFlags(smart_forward=False))
        await bot.on_message(_make_message("   "))
        bot.agent.send.assert_not_awaited()


class TestCommands:
    @pytest.mark.asyncio
    async def test_toggle_forward_requires_admin(self):
        bot = _make_bot()
        msg = _make_message("@gorp toggle-forward", author_id=1)
        await bot.on_message(msg)
        assert "Only the bot administrator" in _reply_text(msg)
        assert bot.flags.auto_forward is True

    @pytest.mark.asyncio
    async def test_toggle_forward_by_admin(self):
        bot = _make_bot()
        msg = _make_message("@gorp toggle-forward", author_id=ADMIN_ID)
        await bot.on_message(msg)
        assert bot.flags.auto_forward is False
        assert "disabled" in _reply_text(msg)

    @pytest.mark.asyncio
    async def test_toggle_smart_requires_auto(self):
        bot = _make_bot(flags=ForwardingFlags(auto_forward=False, smart_forward=True))
        msg = _make_message("@gorp toggle-smart-forward", author_id=ADMIN_ID)
        await bot.on_message(msg)
        assert "Auto-forward must be enabled" in _reply_text(msg)
        assert bot.flags.smart_forward is True

    @pytest.mark.asyncio
    async def test_toggle_smart_by_admin(self):
        bot = _make_bot()
        msg = _make_message("@gorp toggle-smart-forward", author_id=ADMIN_ID)
        await bot.on_message(msg)
        assert bot.flags.smart_forward is False
        assert "forwarded immediately" in _reply_text(msg)

    @pytest.mark.asyncio
    async def test_rate_limit_status_embed(self):
        bot = _make_bot()
        msg = _make_message("@gorp rate-limit-status")
        await bot.on_message(msg)
        embed = msg.reply.call_args[1]["embed"]
        assert embed.title == "🚦 Rate Limit Status"

    @pytest.mark.asyncio
    async def test_activity_status_embed(self):
        bot = _make_bot()
        msg = _make_message("@gorp activity-status")
        await bot.on_message(msg)
        embed = msg.reply.call_args[1]["embed"]
        assert "No channel activity" in embed.description

    @pytest.mark.asyncio
    async def test_test_letta(self):
        bot = _make_bot()
        msg = _make_message("@gorp test-letta")
        await bot.on_message(msg)
        assert _reply_text(msg) == "✅ Letta connection test passed!"

    @pytest.mark.asyncio
    async def test_handler_error_replies_generic(self):
        bot = _make_bot()
        bot.agent.get_status = MagicMock(side_effect=RuntimeError("boom"))
        msg = _make_message("@gorp letta-status")
        await bot.on_message(msg)
        assert _reply_text(msg) == "❌ An error occurred while processing your command."


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_on_ready_binds_identity_and_starts_tracker(self):
        bot = _make_bot()
        await bot.on_ready()
        bot.tracker.bind_identity.assert_called_once_with(BOT_USER_ID)
        bot.tracker.start.assert_called_once()
        bot.agent.test_connection.assert_awaited_once()

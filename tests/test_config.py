"""Tests for the typed AppConfig and environment helpers."""

from gorp.config import (
    AppConfig,
    BotConfig,
    DiscordConfig,
    ForwardingFlags,
    LettaConfig,
    ToolServerConfig,
    _env_flag,
    _env_int,
    validate_config,
)


def _valid_config() -> AppConfig:
    return AppConfig(
        discord=DiscordConfig(token="tok"),
        letta=LettaConfig(server_url="https://letta", agent_id="agent-1"),
        bot=BotConfig(admin_user_id="1234"),
    )


class TestDefaults:
    def test_letta_defaults(self):
        c = LettaConfig()
        assert c.interaction_timeout_minutes == 5
        assert c.batch_interval_minutes == 30
        assert c.rate_limit_per_hour == 100
        assert c.message_history_limit == 10

    def test_tool_server_defaults(self):
        c = ToolServerConfig()
        assert c.port == 3001
        assert c.enabled is True

    def test_forwarding_on_by_default(self):
        flags = ForwardingFlags()
        assert flags.auto_forward is True
        assert flags.smart_forward is True

    def test_app_config_sections(self):
        c = AppConfig()
        assert isinstance(c.letta, LettaConfig)
        assert isinstance(c.tools, ToolServerConfig)
        assert c.bot.aliases == ["gorp"]

    def test_forwarding_flags_not_shared(self):
        a, b = AppConfig(), AppConfig()
        a.forwarding.auto_forward = False
        assert b.forwarding.auto_forward is True

    def test_from_env(self):
        c = AppConfig.from_env()
        assert isinstance(c.discord, DiscordConfig)
        assert c.bot.name == "Gorp"


class TestEnvHelpers:
    def test_flag_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("GORP_TEST_FLAG", raising=False)
        assert _env_flag("GORP_TEST_FLAG") is True
        assert _env_flag("GORP_TEST_FLAG", default=False) is False

    def test_flag_only_explicit_false_disables(self, monkeypatch):
        monkeypatch.setenv("GORP_TEST_FLAG", "false")
        assert _env_flag("GORP_TEST_FLAG") is False
        monkeypatch.setenv("GORP_TEST_FLAG", "yes")
        assert _env_flag("GORP_TEST_FLAG") is True

    def test_int_parses(self, monkeypatch):
        monkeypatch.setenv("GORP_TEST_INT", "42")
        assert _env_int("GORP_TEST_INT", 7) == 42

    def test_int_invalid_falls_back(self, monkeypatch):
        monkeypatch.setenv("GORP_TEST_INT", "lots")
        assert _env_int("GORP_TEST_INT", 7) == 7

    def test_int_unset(self, monkeypatch):
        monkeypatch.delenv("GORP_TEST_INT", raising=False)
        assert _env_int("GORP_TEST_INT", 7) == 7


class TestValidateConfig:
    def test_valid(self):
        assert validate_config(_valid_config()) == (True, [])

    def test_missing_everything(self):
        valid, errors = validate_config(AppConfig())
        assert valid is False
        assert "DISCORD_TOKEN is required" in errors
        assert "LETTA_SERVER_URL is required" in errors
        assert "LETTA_MODEL_ID is required" in errors
        assert "BOT_ADMIN_USER_ID is required" in errors

    def test_non_positive_timing(self):
        c = _valid_config()
        c.letta.interaction_timeout_minutes = 0
        c.letta.batch_interval_minutes = -1
        valid, errors = validate_config(c)
        assert valid is False
        assert len(errors) == 2

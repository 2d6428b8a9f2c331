"""Startup wiring: build the bot and tool server, run them on one event loop."""

import asyncio
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from gorp.adapters.discord.attachments import AttachmentProcessor
from gorp.adapters.discord.bot import GorpBot
from gorp.adapters.discord.tools import DiscordTools
from gorp.adapters.letta.client import LettaClient
from gorp.adapters.web.tool_routes import create_tool_app
from gorp.config import AppConfig, __version__, validate_config
from gorp.domain.activity import ActivityTracker
from gorp.domain.rate_limiter import RateLimiter


def _log(msg: str):
    print(msg, file=sys.stderr)


def build_bot(config: AppConfig) -> GorpBot:
    """Wire domain services and adapters into a ready-to-start bot."""
    letta = LettaClient(
        server_url=config.letta.server_url,
        agent_id=config.letta.agent_id,
        api_key=config.letta.api_key,
        project=config.letta.project,
    )
    rate_limiter = RateLimiter(max_messages_per_hour=config.letta.rate_limit_per_hour)
    attachments = AttachmentProcessor()
    tracker = ActivityTracker(
        agent=letta,
        rate_limiter=rate_limiter,
        interaction_timeout_minutes=config.letta.interaction_timeout_minutes,
        batch_interval_minutes=config.letta.batch_interval_minutes,
        attachment_processor=attachments,
        aliases=config.bot.aliases,
    )
    return GorpBot(
        config=config,
        agent=letta,
        rate_limiter=rate_limiter,
        tracker=tracker,
        attachments=attachments,
    )


def build_tool_app(config: AppConfig, bot: GorpBot) -> Optional[FastAPI]:
    if not config.tools.enabled:
        _log("Tool server disabled (MCP_ENABLED=false)")
        return None
    return create_tool_app(DiscordTools(bot))


async def run(config: AppConfig):
    """Run the bot and, when enabled, the tool server until either stops."""
    bot = build_bot(config)
    tool_app = build_tool_app(config, bot)

    async def _run_bot():
        try:
            await bot.start(config.discord.token)
        finally:
            if not bot.is_closed():
                await bot.close()

    tasks = [_run_bot()]
    server: Optional[uvicorn.Server] = None
    if tool_app is not None:
        server = uvicorn.Server(
            uvicorn.Config(tool_app, host="0.0.0.0", port=config.tools.port, log_level="warning")
        )
        _log(f"Tool server listening on http://localhost:{config.tools.port}")
        tasks.append(server.serve())

    try:
        await asyncio.gather(*tasks)
    finally:
        if server is not None:
            server.should_exit = True
        if not bot.is_closed():
            await bot.close()


def main():
    config = AppConfig.from_env()
    _log(f"Starting {config.bot.name} v{__version__} ({config.bot.environment})")

    valid, errors = validate_config(config)
    for error in errors:
        _log(f"Config: {error}")
    if not config.discord.token:
        raise SystemExit(1)
    if not valid:
        _log("Continuing with incomplete configuration; some features are disabled")
    if not config.letta.server_url or not config.letta.agent_id:
        _log("Letta not configured, messages will not be forwarded")

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        _log("Shutting down")


if __name__ == "__main__":
    main()

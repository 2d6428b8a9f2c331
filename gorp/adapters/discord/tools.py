"""Discord tools the agent can call to act back on the chat platform."""

import json
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional

import discord


def _log(msg: str):
    print(msg, file=sys.stderr)


class ToolError(Exception):
    """Raised when a tool call fails or names an unknown tool"""
    pass


def _schema(properties: Dict[str, Any], required: Optional[List[str]] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return schema


def _id_prop(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description, "examples": ["123456789012345678"]}


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "send_discord_message",
        "description": "Send a message to a Discord channel the bot has access to.",
        "inputSchema": _schema(
            {
                "channelId": _id_prop("The Discord channel ID where the message should be sent."),
                "content": {"type": "string", "description": "The message content to send."},
            },
            ["channelId", "content"],
        ),
    },
    {
        "name": "send_dm",
        "description": "Send a direct message to a Discord user that shares a server with the bot.",
        "inputSchema": _schema(
            {
                "userId": _id_prop("The Discord user ID to send a direct message to."),
                "content": {"type": "string", "description": "The message content to send."},
            },
            ["userId", "content"],
        ),
    },
    {
        "name": "react_to_message",
        "description": "Add a reaction emoji to a Discord message.",
        "inputSchema": _schema(
            {
                "channelId": _id_prop("The Discord channel ID where the message is located."),
                "messageId": _id_prop("The Discord message ID to react to."),
                "emoji": {
                    "type": "string",
                    "description": "A Unicode emoji or a custom emoji reactionId.",
                    "examples": ["👍", "a:custom_animated_emoji:123456789012345678"],
                },
            },
            ["channelId", "messageId", "emoji"],
        ),
    },
    {
        "name": "get_channel_info",
        "description": "Get information about a Discord channel: name, type, topic, guild.",
        "inputSchema": _schema(
            {"channelId": _id_prop("The Discord channel ID to get information about.")},
            ["channelId"],
        ),
    },
    {
        "name": "list_channels",
        "description": "List the text channels of a Discord guild (server).",
        "inputSchema": _schema(
            {"guildId": _id_prop("The guild ID. Defaults to the first guild the bot is in.")},
        ),
    },
    {
        "name": "get_user_info",
        "description": "Get profile information about a Discord user.",
        "inputSchema": _schema(
            {"userId": _id_prop("The Discord user ID to get information about.")},
            ["userId"],
        ),
    },
    {
        "name": "show_typing",
        "description": "Show a typing indicator in a Discord channel.",
        "inputSchema": _schema(
            {"channelId": _id_prop("The Discord channel ID to show the typing indicator in.")},
            ["channelId"],
        ),
    },
    {
        "name": "get_server_emojis",
        "description": "Get all custom emojis in a Discord server.",
        "inputSchema": _schema(
            {"serverId": _id_prop("The Discord server ID to get emojis from.")},
            ["serverId"],
        ),
    },
    {
        "name": "fetch_recent_messages",
        "description": "Fetch the last N messages (1-100) from a Discord channel.",
        "inputSchema": _schema(
            {
                "channelId": _id_prop("The Discord channel ID to fetch messages from."),
                "limit": {"type": "number", "minimum": 1, "maximum": 100, "examples": [5, 10, 20]},
            },
            ["channelId", "limit"],
        ),
    },
]

TOOL_NAMES = [t["name"] for t in TOOL_DEFINITIONS]


def _text_result(text: str) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": text}]}


def _json_block(title: str, payload: Any) -> Dict[str, Any]:
    body = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    return _text_result(f"{title}:\n```json\n{body}\n```")


def _as_id(args: Dict[str, Any], key: str) -> int:
    raw = args.get(key)
    if raw in (None, ""):
        raise ToolError(f"Missing required argument: {key}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ToolError(f"Invalid {key}: {raw!r}")


def _channel_name(channel: Any) -> str:
    return getattr(channel, "name", None) or "DM"


class DiscordTools:
    """Tool implementations over a logged-in discord.Client."""

    def __init__(self, client: discord.Client):
        self._client = client

    async def _text_channel(self, channel_id: int):
        channel = self._client.get_channel(channel_id) or await self._client.fetch_channel(channel_id)
        if channel is None or not isinstance(channel, discord.abc.Messageable):
            raise ToolError(f"Channel {channel_id} not found or not a text channel")
        return channel

    async def _guild(self, guild_id: Optional[int]):
        if guild_id is None:
            if not self._client.guilds:
                raise ToolError("No guild found")
            return self._client.guilds[0]
        return self._client.get_guild(guild_id) or await self._client.fetch_guild(guild_id)

    async def send_message(self, args: Dict[str, Any]) -> Dict[str, Any]:
        channel_id = _as_id(args, "channelId")
        content = args.get("content", "")
        embed_args = args.get("embed")
        try:
            channel = await self._text_channel(channel_id)
            embed = None
            if embed_args:
                embed = discord.Embed(
                    title=embed_args.get("title"),
                    description=embed_args.get("description"),
                    color=embed_args.get("color"),
                )
                for f in embed_args.get("fields") or []:
                    embed.add_field(name=f["name"], value=f["value"], inline=f.get("inline", False))
            sent = await channel.send(content=content or None, embed=embed)
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(f"Failed to send message: {e}") from e
        return _text_result(
            f"Message sent successfully to channel {_channel_name(channel)}. Message ID: {sent.id}"
        )

    async def send_dm(self, args: Dict[str, Any]) -> Dict[str, Any]:
        user_id = _as_id(args, "userId")
        try:
            user = await self._client.fetch_user(user_id)
            dm = await user.create_dm()
            sent = await dm.send(args.get("content", ""))
        except Exception as e:
            raise ToolError(f"Failed to send DM: {e}") from e
        return _text_result(f"DM sent successfully to {user.name}. Message ID: {sent.id}")

    async def react_to_message(self, args: Dict[str, Any]) -> Dict[str, Any]:
        channel_id = _as_id(args, "channelId")
        message_id = _as_id(args, "messageId")
        emoji = args.get("emoji", "")
        try:
            channel = await self._text_channel(channel_id)
            message = await channel.fetch_message(message_id)
            await message.add_reaction(emoji)
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(f"Failed to add reaction: {e}") from e
        return _text_result(
            f"Reaction {emoji} added to message {message_id} in channel {_channel_name(channel)}"
        )

    async def get_channel_info(self, args: Dict[str, Any]) -> Dict[str, Any]:
        channel_id = _as_id(args, "channelId")
        try:
            channel = self._client.get_channel(channel_id) or await self._client.fetch_channel(channel_id)
        except Exception as e:
            raise ToolError(f"Failed to get channel info: {e}") from e
        if channel is None:
            raise ToolError(f"Channel {channel_id} not found")
        guild = getattr(channel, "guild", None)
        info = {
            "id": str(channel.id),
            "name": _channel_name(channel),
            "type": str(getattr(channel, "type", "")),
            "guild": {"id": str(guild.id), "name": guild.name} if guild else None,
            "topic": getattr(channel, "topic", None),
            "nsfw": getattr(channel, "nsfw", None),
            "created_at": getattr(channel, "created_at", None),
        }
        return _json_block("Channel Information", info)

    async def list_channels(self, args: Dict[str, Any]) -> Dict[str, Any]:
        guild_id = _as_id(args, "guildId") if args.get("guildId") else None
        try:
            guild = await self._guild(guild_id)
            channels = guild.text_channels or await guild.fetch_channels()
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(f"Failed to list channels: {e}") from e
        listing = [
            {
                "id": str(c.id),
                "name": c.name,
                "type": str(c.type),
                "topic": getattr(c, "topic", None),
            }
            for c in channels
            if isinstance(c, discord.abc.Messageable)
        ]
        return _json_block(f"Channels in {guild.name}", listing)

    async def get_user_info(self, args: Dict[str, Any]) -> Dict[str, Any]:
        user_id = _as_id(args, "userId")
        try:
            user = await self._client.fetch_user(user_id)
        except Exception as e:
            raise ToolError(f"Failed to get user info: {e}") from e
        info = {
            "id": str(user.id),
            "username": user.name,
            "display_name": user.display_name,
            "discriminator": user.discriminator,
            "bot": user.bot,
            "avatar": user.avatar.url if user.avatar else None,
            "created_at": user.created_at,
        }
        return _json_block("User Information", info)

    async def show_typing(self, args: Dict[str, Any]) -> Dict[str, Any]:
        channel_id = _as_id(args, "channelId")
        try:
            channel = await self._text_channel(channel_id)
            await channel.typing()
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(f"Failed to show typing: {e}") from e
        return _text_result(f"Typing indicator sent to channel {_channel_name(channel)}")

    async def get_server_emojis(self, args: Dict[str, Any]) -> Dict[str, Any]:
        guild_id = _as_id(args, "serverId")
        try:
            guild = await self._guild(guild_id)
        except Exception as e:
            raise ToolError(f"Failed to get server emojis: {e}") from e
        emojis = [
            {
                "id": str(e.id),
                "name": e.name,
                "url": str(e.url),
                "reactionId": f"{'a' if e.animated else ''}:{e.name}:{e.id}",
            }
            for e in guild.emojis
        ]
        return _json_block(f"Emojis in {guild.name}", emojis)

    async def fetch_recent_messages(self, args: Dict[str, Any]) -> Dict[str, Any]:
        channel_id = _as_id(args, "channelId")
        try:
            limit = min(max(1, int(args.get("limit", 10))), 100)
        except (TypeError, ValueError):
            raise ToolError(f"Invalid limit: {args.get('limit')!r}")
        try:
            channel = await self._text_channel(channel_id)
            history = [m async for m in channel.history(limit=limit)]
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(f"Failed to fetch recent messages: {e}") from e

        # history() is newest-first; present chronologically
        messages = [
            {
                "id": str(m.id),
                "author": {
                    "id": str(m.author.id),
                    "username": m.author.name,
                    "display_name": m.author.display_name,
                    "bot": m.author.bot,
                },
                "content": m.content,
                "timestamp": m.created_at,
                "attachments": [
                    {
                        "id": str(a.id),
                        "name": a.filename,
                        "url": a.url,
                        "content_type": a.content_type,
                        "size": a.size,
                    }
                    for a in m.attachments
                ],
                "embeds": [
                    {"title": e.title, "description": e.description}
                    for e in m.embeds
                ],
            }
            for m in reversed(history)
        ]
        result = {
            "channel": {"id": str(channel_id), "name": _channel_name(channel)},
            "message_count": len(messages),
            "messages": messages,
        }
        return _json_block(f"Recent messages from {_channel_name(channel)}", result)

    def _dispatch(self) -> Dict[str, Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]]:
        return {
            "send_discord_message": self.send_message,
            "send_dm": self.send_dm,
            "react_to_message": self.react_to_message,
            "get_channel_info": self.get_channel_info,
            "list_channels": self.list_channels,
            "get_user_info": self.get_user_info,
            "show_typing": self.show_typing,
            "get_server_emojis": self.get_server_emojis,
            "fetch_recent_messages": self.fetch_recent_messages,
        }

    async def execute(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a tool by name. Raises ToolError on unknown names and failures."""
        handler = self._dispatch().get(name)
        if handler is None:
            raise ToolError(f"Unknown tool: {name}")
        _log(f"[tools] {name} {json.dumps(args or {}, ensure_ascii=False)[:200]}")
        return await handler(args or {})

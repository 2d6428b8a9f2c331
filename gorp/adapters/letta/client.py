"""Letta agent client — implements AgentPort over the Letta REST API."""

import sys
from typing import Any, Dict, Sequence

import aiohttp

from gorp.domain.models import AttachmentData

DEFAULT_REPLY = "Response received from Letta"


def _log(msg: str):
    print(msg, file=sys.stderr)


class LettaError(Exception):
    """Raised when the Letta server rejects or fails a request"""
    pass


class LettaClient:
    """Sends digests and forwarded messages to a single Letta agent."""

    def __init__(
        self,
        server_url: str,
        agent_id: str,
        api_key: str = "",
        project: str = "",
        timeout: float = 120.0,
    ):
        self.server_url = server_url.rstrip("/")
        self.agent_id = agent_id
        self._api_key = api_key
        self._project = project
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self.server_url and self.agent_id)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if self._project:
            headers["X-Project"] = self._project
        return headers

    @staticmethod
    def build_payload(text: str, attachments: Sequence[AttachmentData] = ()) -> Dict[str, Any]:
        """Request body: one system message, images only when some were encoded."""
        message: Dict[str, Any] = {"role": "system", "content": text}
        images = [
            {"name": a.name, "contentType": a.content_type, "data": a.data}
            for a in attachments
            if a.ok
        ]
        if images:
            message["images"] = images
        return {"messages": [message]}

    @staticmethod
    def extract_reply(data: Dict[str, Any]) -> str:
        """Return the first assistant message's text."""
        for m in data.get("messages") or []:
            msg_type = m.get("message_type") or m.get("messageType")
            if msg_type != "assistant_message":
                continue
            content = m.get("content")
            if isinstance(content, str):
                return content
            if isinstance(content, list):
                return "".join(
                    part.get("text", "") if isinstance(part, dict) else str(part)
                    for part in content
                )
        return DEFAULT_REPLY

    async def send(self, text: str, attachments: Sequence[AttachmentData] = ()) -> str:
        """Send text (and encoded images) to the agent and return its reply."""
        if not self.is_configured:
            raise LettaError("Letta server URL or agent id not configured")

        url = f"{self.server_url}/v1/agents/{self.agent_id}/messages"
        payload = self.build_payload(text, attachments)
        image_count = len(payload["messages"][0].get("images", []))
        _log(
            f"[letta] sending {len(text)} chars to agent {self.agent_id}"
            + (f" + {image_count} image(s)" if image_count else "")
        )

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(url, json=payload, headers=self._headers()) as resp:
                    if resp.status >= 400:
                        body = await resp.text()
                        raise LettaError(f"HTTP {resp.status}: {body[:300]}")
                    data = await resp.json()
        except LettaError:
            raise
        except Exception as e:
            raise LettaError(f"Failed to process query with Letta AI: {e}") from e

        return self.extract_reply(data)

    async def test_connection(self) -> bool:
        """GET /health with a short timeout. Never raises."""
        if not self.server_url:
            return False
        _log(f"[letta] testing connection to {self.server_url}")
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5)) as session:
                async with session.get(f"{self.server_url}/health", headers=self._headers()) as resp:
                    if resp.status < 400:
                        _log(f"[letta] connection OK ({resp.status})")
                        return True
                    _log(f"[letta] server returned {resp.status}")
                    return False
        except Exception as e:
            _log(f"[letta] connection test failed: {e}")
            return False

    def get_status(self) -> Dict[str, Any]:
        return {
            "configured": self.is_configured,
            "ready": self.is_configured,
            "server_url": self.server_url,
            "agent_id": self.agent_id,
        }

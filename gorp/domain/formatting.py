"""Message summaries, digest construction, and mention detection.

Pure Python, no framework dependencies.
"""

import re
from typing import Iterable, List, Optional, Sequence

from gorp.domain.models import AttachmentData, PendingMessage
from gorp.ports.inbound import IncomingMessage

BATCH_HEADER = "[Discord Batch Update]"
MENTION_SEPARATOR = "--- MENTION ---"


def mention_tokens(user_id: Optional[int]) -> List[str]:
    """Wrapped mention tokens Discord uses for a user (plain and nickname form)."""
    if not user_id:
        return []
    return [f"<@{user_id}>", f"<@!{user_id}>"]


def is_mentioned(content: str, user_id: Optional[int], aliases: Iterable[str] = ("gorp",)) -> bool:
    """True if content carries a mention token or a whole-word alias (case-insensitive)."""
    if any(token in content for token in mention_tokens(user_id)):
        return True
    for alias in aliases:
        if alias and re.search(rf"\b{re.escape(alias)}\b", content, re.IGNORECASE):
            return True
    return False


def format_message(message: IncomingMessage) -> str:
    """One-line summary plus an image manifest, as the agent sees it."""
    text = f"[messageId: {message.message_id}] {message.author_name} in {message.channel_label}:"
    if message.content.strip():
        text += f" {message.content}"

    images = [a for a in message.attachments if a.is_image]
    if images:
        text += "\n[Images attached:"
        for i, att in enumerate(images, 1):
            size_mb = att.size / (1024 * 1024)
            text += f"\n  {i}. {att.name} ({att.content_type}, {size_mb:.1f}MB) - {att.url}"
        text += "]"
    return text


def format_time_range(seconds: float) -> str:
    minutes = int(max(0.0, seconds) // 60)
    if minutes < 1:
        return "few seconds"
    if minutes == 1:
        return "1 minute"
    return f"{minutes} minutes"


def build_batch_summary(
    channel_label: str,
    pending: Sequence[PendingMessage],
    elapsed_seconds: float,
    mention_text: Optional[str] = None,
) -> str:
    """Digest of queued entries in insertion order, optionally followed by the mention."""
    header = (
        f"{BATCH_HEADER} {len(pending)} messages in {channel_label} "
        f"over the past {format_time_range(elapsed_seconds)}:"
    )
    summary = header + "\n\n" + "\n".join(p.text for p in pending)
    if mention_text is not None:
        summary += f"\n\n{MENTION_SEPARATOR}\n{mention_text}"
    return summary


def collect_attachments(
    pending: Sequence[PendingMessage],
    extra: Sequence[AttachmentData] = (),
) -> List[AttachmentData]:
    collected: List[AttachmentData] = []
    for p in pending:
        collected.extend(p.attachments)
    collected.extend(extra)
    return collected

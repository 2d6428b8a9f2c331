"""Domain data models — pure Python dataclasses."""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Optional, Tuple

from gorp.config import MAX_PENDING_MESSAGES


@dataclass(frozen=True)
class AttachmentData:
    """Processed attachment: base64 payload on success, error marker on failure."""

    name: str
    content_type: str
    url: str = ""
    size: int = 0
    data: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.data) and not self.error


@dataclass(frozen=True)
class PendingMessage:
    """Formatted summary of a batched message. Never mutated after creation."""

    text: str
    attachments: Tuple[AttachmentData, ...] = ()
    created_at: float = 0.0


def _pending_queue() -> Deque[PendingMessage]:
    return deque(maxlen=MAX_PENDING_MESSAGES)


@dataclass
class ChannelActivity:
    channel_id: int
    channel_label: str = "Unknown Channel"
    last_mention_at: float = 0.0  # 0 = never
    last_own_message_at: float = 0.0
    last_activity_at: float = 0.0
    # Bounded ring: appending past maxlen evicts the oldest entry
    pending: Deque[PendingMessage] = field(default_factory=_pending_queue)
    # Status cache for reporting; recomputed before it is trusted
    is_active: bool = False
    flush_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def pending_count(self) -> int:
        return len(self.pending)

    @property
    def pending_attachment_count(self) -> int:
        return sum(len(p.attachments) for p in self.pending)


@dataclass
class RateLimitStatus:
    messages_in_window: int
    max_messages_per_hour: int
    remaining_messages: int
    reset_time: datetime

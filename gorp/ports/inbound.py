"""Inbound port — platform-agnostic message representation."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class AttachmentRef:
    """Raw attachment handle as delivered by the chat platform."""

    name: str
    content_type: str
    url: str
    size: int = 0

    @property
    def is_image(self) -> bool:
        return (self.content_type or "").lower().startswith("image/")


@dataclass
class IncomingMessage:
    """Discord-agnostic message representation."""

    message_id: str
    channel_id: int
    channel_label: str  # "#general" or "DM"
    author_id: int
    author_name: str
    content: str
    attachments: List[AttachmentRef] = field(default_factory=list)
    is_bot: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.content.strip() and not self.attachments

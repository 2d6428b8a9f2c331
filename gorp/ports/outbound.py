"""Outbound ports — interfaces for external system adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Protocol, Sequence, runtime_checkable

from gorp.ports.inbound import AttachmentRef

if TYPE_CHECKING:
    from gorp.domain.models import AttachmentData


@runtime_checkable
class AgentPort(Protocol):
    """Interface for the downstream AI agent."""

    async def send(self, text: str, attachments: Sequence[AttachmentData] = ()) -> str: ...


@runtime_checkable
class AttachmentPort(Protocol):
    """Interface for attachment download/validation/encoding."""

    async def process(self, refs: Sequence[AttachmentRef]) -> List[AttachmentData]: ...

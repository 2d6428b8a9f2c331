"""Port interfaces (Hexagonal Architecture)."""

from gorp.ports.inbound import AttachmentRef, IncomingMessage
from gorp.ports.outbound import AgentPort, AttachmentPort

__all__ = [
    "AttachmentRef",
    "IncomingMessage",
    "AgentPort",
    "AttachmentPort",
]

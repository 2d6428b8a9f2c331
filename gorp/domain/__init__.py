"""Domain layer — pure Python, no framework dependencies."""

from gorp.domain.models import AttachmentData, ChannelActivity, PendingMessage, RateLimitStatus
from gorp.domain.rate_limiter import RateLimiter
from gorp.domain.scheduler import BatchScheduler
from gorp.domain.activity import ActivityTracker
from gorp.domain.formatting import (
    build_batch_summary,
    format_message,
    format_time_range,
    is_mentioned,
)

__all__ = [
    "ActivityTracker",
    "AttachmentData",
    "BatchScheduler",
    "ChannelActivity",
    "PendingMessage",
    "RateLimitStatus",
    "RateLimiter",
    "build_batch_summary",
    "format_message",
    "format_time_range",
    "is_mentioned",
]

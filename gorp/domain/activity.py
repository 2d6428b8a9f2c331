"""Per-channel activity tracking and digest batching.

Decides, for every inbound message, whether it is relayed to the agent right
away or parked in the channel's pending queue until the next digest. Dormant
channels are flushed by a BatchScheduler; a mention flushes immediately.

Pure domain logic, no framework dependencies.
"""

import sys
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from gorp.domain.formatting import (
    build_batch_summary,
    collect_attachments,
    format_message,
    is_mentioned,
)
from gorp.domain.models import AttachmentData, ChannelActivity, PendingMessage
from gorp.domain.rate_limiter import RateLimiter
from gorp.domain.scheduler import BatchScheduler
from gorp.ports.inbound import IncomingMessage
from gorp.ports.outbound import AgentPort, AttachmentPort


def _log(msg: str):
    print(msg, file=sys.stderr)


class ActivityTracker:
    """Owns the channel table, classifies messages, and flushes pending queues."""

    def __init__(
        self,
        agent: AgentPort,
        rate_limiter: RateLimiter,
        interaction_timeout_minutes: float = 5,
        batch_interval_minutes: float = 30,
        attachment_processor: Optional[AttachmentPort] = None,
        bot_user_id: Optional[int] = None,
        aliases: Iterable[str] = ("gorp",),
        clock: Callable[[], float] = time.time,
    ):
        self._agent = agent
        self._rate_limiter = rate_limiter
        self._attachments = attachment_processor
        self._bot_user_id = bot_user_id
        self._aliases = list(aliases)
        self._clock = clock
        self.interaction_timeout_minutes = interaction_timeout_minutes
        self.batch_interval_minutes = batch_interval_minutes
        self.interaction_timeout = interaction_timeout_minutes * 60
        self.batch_interval = batch_interval_minutes * 60
        self._channels: Dict[int, ChannelActivity] = {}
        self._scheduler = BatchScheduler(self.process_batch_updates, self.batch_interval)

    # -- Lifecycle --

    def bind_identity(self, user_id: int):
        """Set the bot account id once the platform client has logged in."""
        self._bot_user_id = user_id

    def start(self) -> bool:
        return self._scheduler.start()

    async def close(self):
        await self._scheduler.stop()

    @property
    def scheduler_running(self) -> bool:
        return self._scheduler.running

    # -- Classification --

    async def should_forward_immediately(self, message: IncomingMessage) -> bool:
        """True if the message should be relayed now, False if it was queued."""
        now = self._clock()
        activity = self._get_or_create(message.channel_id)
        activity.last_activity_at = now
        activity.channel_label = message.channel_label

        if is_mentioned(message.content, self._bot_user_id, self._aliases):
            # A flush in flight may restore its snapshot on failure; wait it out
            if activity.pending or activity.flush_lock.locked():
                await self.send_batch_update(activity, message)
            activity.last_mention_at = now
            activity.is_active = True
            return True

        if self._bot_user_id is not None and message.author_id == self._bot_user_id:
            activity.last_own_message_at = now
            activity.is_active = True
            _log(f"[tracker] own message seen, interaction window reset for {activity.channel_label}")
            return True

        if self.is_channel_active(activity, now):
            activity.is_active = True
            return True

        if activity.is_active:
            _log(f"[tracker] interaction timeout expired for {activity.channel_label}, batching")
        activity.is_active = False
        await self.add_pending_message(activity, message)
        return False

    def is_channel_active(self, activity: ChannelActivity, now: Optional[float] = None) -> bool:
        """Recent mention or own message within the interaction timeout."""
        if now is None:
            now = self._clock()
        since_mention = now - activity.last_mention_at if activity.last_mention_at else float("inf")
        since_own = now - activity.last_own_message_at if activity.last_own_message_at else float("inf")
        return since_mention < self.interaction_timeout or since_own < self.interaction_timeout

    # -- Pending queue --

    async def add_pending_message(self, activity: ChannelActivity, message: IncomingMessage):
        """Queue a formatted summary; the deque bound drops the oldest entries."""
        if message.is_empty:
            return
        attachments = await self._process_attachments(message)
        activity.pending.append(
            PendingMessage(
                text=format_message(message),
                attachments=tuple(attachments),
                created_at=self._clock(),
            )
        )

    async def send_batch_update(self, activity: ChannelActivity, mention: IncomingMessage) -> bool:
        """Flush the queue now with the triggering mention appended."""
        mention_attachments = await self._process_attachments(mention)
        return await self._flush(
            activity,
            kind="immediate",
            mention_text=format_message(mention),
            extra_attachments=mention_attachments,
        )

    async def process_batch_updates(self) -> int:
        """Flush every eligible dormant channel. Returns the number flushed."""
        now = self._clock()
        flushed = 0
        for channel_id, activity in list(self._channels.items()):
            if not activity.pending:
                continue
            activity.is_active = self.is_channel_active(activity, now)
            if activity.is_active:
                continue
            if now - activity.last_activity_at > self.batch_interval:
                continue
            try:
                if await self._flush(activity, kind="scheduled"):
                    flushed += 1
            except Exception as e:
                _log(f"[tracker] scheduled flush failed for channel {channel_id}: {e}")
        return flushed

    async def _flush(
        self,
        activity: ChannelActivity,
        kind: str,
        mention_text: Optional[str] = None,
        extra_attachments: Sequence[AttachmentData] = (),
    ) -> bool:
        async with activity.flush_lock:
            if not activity.pending:
                return False
            snapshot = list(activity.pending)
            now = self._clock()
            summary = build_batch_summary(
                activity.channel_label,
                snapshot,
                now - snapshot[0].created_at,
                mention_text=mention_text,
            )
            attachments = collect_attachments(snapshot, extra_attachments)

            if not self._rate_limiter.can_send_message():
                _log(
                    f"[tracker] rate limit exceeded, {kind} batch for {activity.channel_label} "
                    f"deferred (reset in {self._rate_limiter.get_time_until_reset()} min)"
                )
                return False

            # Detach while the send is in flight; new arrivals land behind it
            activity.pending.clear()
            try:
                await self._agent.send(summary, attachments)
            except Exception as e:
                self._restore(activity, snapshot)
                _log(f"[tracker] {kind} batch for {activity.channel_label} failed, kept for retry: {e}")
                return False

            self._rate_limiter.record_message_sent()
            image_info = f" + {len(attachments)} attachment(s)" if attachments else ""
            mention_info = " + mention" if mention_text is not None else ""
            _log(
                f"[tracker] sent {kind} batch for {activity.channel_label} "
                f"({len(snapshot)} messages{mention_info}{image_info})"
            )
            return True

    @staticmethod
    def _restore(activity: ChannelActivity, snapshot: List[PendingMessage]):
        arrived = list(activity.pending)
        activity.pending.clear()
        activity.pending.extend(snapshot + arrived)

    async def _process_attachments(self, message: IncomingMessage) -> List[AttachmentData]:
        if not message.attachments or not self._attachments:
            return []
        _log(f"[tracker] processing {len(message.attachments)} attachment(s)")
        return await self._attachments.process(message.attachments)

    # -- Introspection --

    def _get_or_create(self, channel_id: int) -> ChannelActivity:
        activity = self._channels.get(channel_id)
        if activity is None:
            activity = ChannelActivity(channel_id=channel_id)
            self._channels[channel_id] = activity
        return activity

    def get_channel_activity(self, channel_id: int) -> Optional[ChannelActivity]:
        return self._channels.get(channel_id)

    def get_all_activities(self) -> Dict[int, ChannelActivity]:
        return dict(self._channels)

    def get_timing_config(self) -> Dict[str, float]:
        return {
            "interaction_timeout_minutes": self.interaction_timeout_minutes,
            "batch_interval_minutes": self.batch_interval_minutes,
        }

"""Tests for message summaries, digests, and mention detection."""

from gorp.domain.formatting import (
    BATCH_HEADER,
    MENTION_SEPARATOR,
    build_batch_summary,
    collect_attachments,
    format_message,
    format_time_range,
    is_mentioned,
)
from gorp.domain.models import AttachmentData, PendingMessage
from gorp.ports.inbound import AttachmentRef, IncomingMessage

BOT_ID = 999


def _msg(content="hello", attachments=None) -> IncomingMessage:
    return IncomingMessage(
        message_id="42",
        channel_id=100,
        channel_label="#general",
        author_id=1,
        author_name="alice",
        content=content,
        attachments=attachments or [],
    )


class TestIsMentioned:
    def test_plain_token(self):
        assert is_mentioned(f"hey <@{BOT_ID}> look", BOT_ID)

    def test_nickname_token(self):
        assert is_mentioned(f"<@!{BOT_ID}> hi", BOT_ID)

    def test_alias_case_insensitive(self):
        assert is_mentioned("what do you think, GORP?", BOT_ID)

    def test_alias_needs_word_boundary(self):
        assert not is_mentioned("gorpington is a town", BOT_ID)

    def test_other_user_token(self):
        assert not is_mentioned("<@123> hi", BOT_ID)

    def test_unbound_identity_uses_aliases_only(self):
        assert not is_mentioned(f"<@{BOT_ID}>", None)
        assert is_mentioned("gorp hi", None)


class TestFormatMessage:
    def test_basic(self):
        assert format_message(_msg("hi there")) == "[messageId: 42] alice in #general: hi there"

    def test_image_manifest(self):
        ref = AttachmentRef(
            name="cat.png",
            content_type="image/png",
            url="https://cdn/cat.png",
            size=2 * 1024 * 1024,
        )
        text = format_message(_msg("look", [ref]))
        assert text.startswith("[messageId: 42] alice in #general: look\n[Images attached:")
        assert "1. cat.png (image/png, 2.0MB) - https://cdn/cat.png" in text
        assert text.endswith("]")

    def test_non_image_not_listed(self):
        ref = AttachmentRef(name="doc.pdf", content_type="application/pdf", url="u")
        assert "Images attached" not in format_message(_msg("doc", [ref]))

    def test_empty_content_with_image(self):
        ref = AttachmentRef(name="a.png", content_type="image/png", url="u")
        text = format_message(_msg("", [ref]))
        assert text.startswith("[messageId: 42] alice in #general:\n")


class TestFormatTimeRange:
    def test_seconds(self):
        assert format_time_range(30) == "few seconds"

    def test_one_minute(self):
        assert format_time_range(90) == "1 minute"

    def test_minutes(self):
        assert format_time_range(25 * 60) == "25 minutes"

    def test_negative_clamped(self):
        assert format_time_range(-5) == "few seconds"


class TestBatchSummary:
    def test_entries_in_insertion_order(self):
        pending = [PendingMessage(text="first"), PendingMessage(text="second")]
        summary = build_batch_summary("#general", pending, 600)
        assert summary.startswith(f"{BATCH_HEADER} 2 messages in #general over the past 10 minutes:")
        assert summary.index("first") < summary.index("second")
        assert MENTION_SEPARATOR not in summary

    def test_mention_appended_last(self):
        pending = [PendingMessage(text="queued")]
        summary = build_batch_summary("#general", pending, 0, mention_text="hey gorp")
        assert summary.endswith(f"\n\n{MENTION_SEPARATOR}\nhey gorp")
        assert summary.index("queued") < summary.index(MENTION_SEPARATOR)

    def test_collect_attachments_keeps_order(self):
        a = AttachmentData(name="a.png", content_type="image/png", data="x")
        b = AttachmentData(name="b.png", content_type="image/png", data="y")
        c = AttachmentData(name="c.png", content_type="image/png", error="boom")
        pending = [PendingMessage(text="1", attachments=(a,)), PendingMessage(text="2", attachments=(b,))]
        assert collect_attachments(pending, [c]) == [a, b, c]

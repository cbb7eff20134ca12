# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import date, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.config import FREE_MODEL, PREMIUM_MODEL
from app.models.chat_message import ChatMessage
from app.models.journal import JournalEntry
from app.models.user import AIStyle, SubscriptionTier
from app.models.user_usage_stat import UserUsageStat
from app.services.errors import (
    AuthFailure,
    ChatReplyUnavailable,
    DuplicateJournalForDay,
    EmptyContent,
    EmptyMessage,
    EntryNotFound,
    GenerationError,
    GenerationTimeout,
    InsightUnavailable,
    InvalidMoodRating,
    QuotaExceeded,
    RateLimited,
    SummaryUnavailable,
)
from app.services import journal_orchestrator
from app.services.journal_orchestrator import ConversationState
from app.utils import usage_tracker
from app.utils.usage_tracker import get_usage_counts, track_usage_event


def _exhaust(limiter, user_id, times=10):
    for _ in range(times):
        limiter.check_and_increment(user_id, False)


# ---------------------------
# Saving entries
# ---------------------------

def test_save_entry_infers_journal_tag_from_mood(orchestrator, clock):
    entry = orchestrator.save_entry("u1", "  Had a rough day at work  ", mood_rating=2)

    assert entry.id is not None
    assert entry.content == "Had a rough day at work"
    assert entry.tags == ["journal"]
    assert entry.entry_date == clock().date()
    assert orchestrator.conversation_state(entry.id) == ConversationState.created


def test_save_entry_without_mood_is_a_note(orchestrator):
    entry = orchestrator.save_entry("u1", "Buy groceries")

    assert entry.tags == ["note"]


def test_empty_content_is_rejected(orchestrator, db):
    with pytest.raises(EmptyContent):
        orchestrator.save_entry("u1", "   ", mood_rating=3)

    assert db.query(JournalEntry).count() == 0


@pytest.mark.parametrize("mood", [0, 6, True])
def test_mood_outside_scale_is_rejected(orchestrator, mood):
    with pytest.raises(InvalidMoodRating):
        orchestrator.save_entry("u1", "content", mood_rating=mood)


def test_one_journal_per_day_but_notes_unrestricted(orchestrator, clock, db):
    orchestrator.save_entry("u1", "Morning pages", mood_rating=4)

    with pytest.raises(DuplicateJournalForDay):
        orchestrator.save_entry("u1", "Evening pages", tags=["journal"])

    orchestrator.save_entry("u1", "Idea for a talk", tags=["note"])
    orchestrator.save_entry("u1", "Another idea", tags=["note"])
    # Another user and another day are unaffected
    orchestrator.save_entry("u2", "Their own journal", mood_rating=3)
    clock.advance(days=1)
    orchestrator.save_entry("u1", "Next morning", mood_rating=3)

    assert db.query(JournalEntry).count() == 5


def test_explicit_entry_date_controls_the_day(orchestrator):
    orchestrator.save_entry("u1", "Backfilled", mood_rating=3, entry_date=date(2025, 1, 1))

    # Today is still free
    orchestrator.save_entry("u1", "Today", mood_rating=3)
    with pytest.raises(DuplicateJournalForDay):
        orchestrator.save_entry("u1", "Again", mood_rating=3, entry_date=date(2025, 1, 1))


def test_update_entry_changes_content_and_mood(orchestrator, clock):
    entry = orchestrator.save_entry("u1", "Draft", mood_rating=2)
    clock.advance(minutes=5)

    updated = orchestrator.update_entry("u1", entry.id, content="Final", mood_rating=4)

    assert updated.content == "Final"
    assert updated.mood_rating == 4
    assert updated.updated_at == clock()


def test_update_entry_of_another_user_is_not_found(orchestrator):
    entry = orchestrator.save_entry("u1", "Mine", mood_rating=2)

    with pytest.raises(EntryNotFound):
        orchestrator.update_entry("u2", entry.id, content="Theirs")


# ---------------------------
# Initial insight
# ---------------------------

def test_initial_insight_dual_writes_insight_and_first_message(orchestrator, store, limiter, generator):
    entry = orchestrator.save_entry("u1", "Had a rough day at work", mood_rating=2)

    outcome = orchestrator.generate_initial_insight(entry)

    assert outcome.retries == 0
    assert outcome.insight.insight_text == "Hard days at work often point to what you care about."
    assert outcome.insight.follow_up_question == "What part of the day weighed on you most?"
    assert outcome.insight.confidence == 0.9
    assert outcome.insight.is_premium_generated is False
    assert limiter.status("u1", False).remaining == 9

    messages = store.get_messages_for_entry(entry.id)
    assert len(messages) == 1
    assert messages[0].role == "assistant"
    assert messages[0].content == store.get_insights_for_entry(entry.id)[0].insight_text

    call = generator.calls[0]
    assert call["model"] == FREE_MODEL
    assert call["max_tokens"] == 300
    assert "Mood rating: 2/5" in call["prompt"].user
    assert orchestrator.conversation_state(entry.id) == ConversationState.insight_ready


def test_insight_prompt_includes_recent_entries(orchestrator, generator, clock):
    orchestrator.save_entry("u1", "Older note about sleep")
    clock.advance(minutes=1)
    entry = orchestrator.save_entry("u1", "Today", mood_rating=3)

    orchestrator.generate_initial_insight(entry)

    system = generator.calls[0]["prompt"].system
    assert "Older note about sleep" in system
    assert "- Today..." not in system


def test_timeout_is_retried_once(orchestrator, generator, sleeps):
    entry = orchestrator.save_entry("u1", "Had a rough day at work", mood_rating=2)
    generator.queue(GenerationTimeout("slow"))

    outcome = orchestrator.generate_initial_insight(entry)

    assert outcome.retries == 1
    assert len(generator.calls) == 2
    assert sleeps == [1.5]
    assert outcome.insight.insight_text


def test_second_transient_failure_surfaces_insight_unavailable(orchestrator, generator, store, db):
    entry = orchestrator.save_entry("u1", "Had a rough day at work", mood_rating=2)
    generator.queue(RateLimited("429"), RateLimited("429"))

    with pytest.raises(InsightUnavailable) as info:
        orchestrator.generate_initial_insight(entry)

    assert isinstance(info.value.cause, RateLimited)
    assert len(generator.calls) == 2
    assert store.get_entry(entry.id) is not None
    assert store.get_messages_for_entry(entry.id) == []
    assert orchestrator.conversation_state(entry.id) == ConversationState.created


def test_empty_reply_is_retried_then_surfaced(orchestrator, generator):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    generator.queue("", "")

    with pytest.raises(InsightUnavailable):
        orchestrator.generate_initial_insight(entry)

    assert len(generator.calls) == 2


@pytest.mark.parametrize("error", [AuthFailure("bad key"), GenerationError("400")])
def test_fatal_errors_are_not_retried(orchestrator, generator, sleeps, error):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    generator.queue(error)

    with pytest.raises(InsightUnavailable):
        orchestrator.generate_initial_insight(entry)

    assert len(generator.calls) == 1
    assert sleeps == []


def test_quota_exceeded_blocks_insight_before_generation(orchestrator, limiter, generator, clock):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    _exhaust(limiter, "u1")

    with pytest.raises(QuotaExceeded) as info:
        orchestrator.generate_initial_insight(entry)

    assert generator.calls == []
    assert info.value.limit == 10
    assert info.value.reset_at >= clock() + timedelta(hours=24) - timedelta(seconds=1)


def test_premium_uses_larger_model_and_never_touches_counter(orchestrator, store, limiter, generator):
    store.set_subscription_status("vip", SubscriptionTier.premium)

    for day in range(12):
        entry = orchestrator.save_entry("vip", f"note {day}")
        outcome = orchestrator.generate_initial_insight(entry)
        assert outcome.insight.is_premium_generated is True

    assert limiter.tracked_users() == 0
    assert {c["model"] for c in generator.calls} == {PREMIUM_MODEL}
    assert {c["max_tokens"] for c in generator.calls} == {500}
    assert "3-4 sentences" in generator.calls[0]["prompt"].system


def test_switching_style_changes_prompt_but_not_contract(orchestrator, store, generator):
    entry = orchestrator.save_entry("u1", "Had a rough day at work", mood_rating=2)

    first = orchestrator.generate_initial_insight(entry)
    store.update_ai_style("u1", AIStyle.coach)
    second = orchestrator.generate_initial_insight(entry)

    assert store.get_user_preferences("u1").ai_style == AIStyle.coach
    assert generator.calls[0]["prompt"].system != generator.calls[1]["prompt"].system
    assert "You are a coach" in generator.calls[1]["prompt"].system
    for outcome in (first, second):
        assert outcome.insight.insight_text
        assert outcome.insight.follow_up_question
        assert 0.0 <= outcome.insight.confidence <= 1.0


# ---------------------------
# Chat
# ---------------------------

def test_chat_persists_both_turns_in_order(orchestrator, store, generator):
    entry = orchestrator.save_entry("u1", "Had a rough day at work", mood_rating=2)
    orchestrator.generate_initial_insight(entry)
    generator.default = "What would make tomorrow lighter?"

    exchange = orchestrator.send_chat_message("u1", entry.id, "My manager moved the deadline", client_temp_id="tmp-1")

    assert exchange.ok
    assert exchange.client_temp_id == "tmp-1"
    assert exchange.user_message.role == "user"
    assert exchange.assistant_message.content == "What would make tomorrow lighter?"

    messages = store.get_messages_for_entry(entry.id)
    assert [m.role for m in messages] == ["assistant", "user", "assistant"]
    timestamps = [m.timestamp for m in messages]
    assert timestamps == sorted(timestamps)
    assert len(set(timestamps)) == 3

    prompt = generator.calls[-1]["prompt"]
    assert prompt.user == "My manager moved the deadline"
    assert 'Current journal entry: "Had a rough day at work"' in prompt.system
    assert "AI: Hard days at work" in prompt.system
    assert generator.calls[-1]["max_tokens"] == 250
    assert orchestrator.conversation_state(entry.id) == ConversationState.conversing


def test_chat_quota_exceeded_keeps_user_message(orchestrator, store, limiter, generator):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    _exhaust(limiter, "u1")

    exchange = orchestrator.send_chat_message("u1", entry.id, "Are you there?")

    assert not exchange.ok
    assert isinstance(exchange.error, QuotaExceeded)
    assert exchange.assistant_message is None
    assert generator.calls == []
    messages = store.get_messages_for_entry(entry.id)
    assert [(m.role, m.content) for m in messages] == [("user", "Are you there?")]


def test_chat_generation_failure_keeps_user_message(orchestrator, store, generator):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    generator.queue(GenerationTimeout(), GenerationTimeout())

    exchange = orchestrator.send_chat_message("u1", entry.id, "Hello?")

    assert isinstance(exchange.error, ChatReplyUnavailable)
    assert [m.role for m in store.get_messages_for_entry(entry.id)] == ["user"]


def test_blank_chat_message_is_rejected(orchestrator, db):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)

    with pytest.raises(EmptyMessage):
        orchestrator.send_chat_message("u1", entry.id, "   ")

    assert db.query(ChatMessage).count() == 0


def test_chat_on_unknown_entry(orchestrator):
    with pytest.raises(EntryNotFound):
        orchestrator.send_chat_message("u1", 999, "hello")


def test_messages_stay_ordered_with_a_frozen_clock(orchestrator, store, generator):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    generator.default = "ok"

    for i in range(5):
        orchestrator.send_chat_message("u1", entry.id, f"turn {i}")

    messages = store.get_messages_for_entry(entry.id)
    assert [m.content for m in messages if m.role == "user"] == [f"turn {i}" for i in range(5)]
    timestamps = [m.timestamp for m in messages]
    assert all(a < b for a, b in zip(timestamps, timestamps[1:]))


# ---------------------------
# Summary, state & usage
# ---------------------------

def test_summary_is_stored_and_replaced(orchestrator, store, generator, limiter):
    entry = orchestrator.save_entry("u1", "Had a rough day at work", mood_rating=2)
    generator.default = "• Felt overloaded"
    orchestrator.send_chat_message("u1", entry.id, "So much to do")

    generator.default = "• First summary"
    first = orchestrator.generate_summary(entry.id, user_id="u1")
    generator.default = "• Second summary"
    second = orchestrator.generate_summary(entry.id, user_id="u1")

    assert first.summary.id == second.summary.id
    assert store.get_summary(entry.id).summary_content == "• Second summary"
    assert generator.calls[-1]["max_tokens"] == 100
    assert "So much to do" in generator.calls[-1]["prompt"].system
    assert limiter.status("u1", False).remaining == 7
    assert orchestrator.conversation_state(entry.id) == ConversationState.summarized


def test_summary_shares_the_quota(orchestrator, limiter, generator):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    _exhaust(limiter, "u1")

    with pytest.raises(QuotaExceeded):
        orchestrator.generate_summary(entry.id, user_id="u1")
    assert generator.calls == []


def test_summary_failure(orchestrator, generator):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    generator.queue(AuthFailure("bad key"))

    with pytest.raises(SummaryUnavailable):
        orchestrator.generate_summary(entry.id, user_id="u1")


def test_successful_generations_are_counted(orchestrator, generator, db):
    entry = orchestrator.save_entry("u1", "content", mood_rating=2)
    orchestrator.generate_initial_insight(entry)
    generator.default = "reply"
    orchestrator.send_chat_message("u1", entry.id, "one")
    orchestrator.send_chat_message("u1", entry.id, "two")
    generator.queue(AuthFailure("bad key"))
    with pytest.raises(SummaryUnavailable):
        orchestrator.generate_summary(entry.id, user_id="u1")

    assert get_usage_counts(db, "u1") == {"insight": 1, "chat": 2}


def test_usage_status_reports_without_consuming(orchestrator, store):
    orchestrator.save_entry("u1", "content", mood_rating=2)

    assert orchestrator.usage_status("u1").remaining == 10
    assert orchestrator.usage_status("u1").remaining == 10

    store.set_subscription_status("u1", SubscriptionTier.premium)
    assert orchestrator.usage_status("u1").limit is None


def test_usage_stats_record_model_and_premium_calls(orchestrator, store, db):
    store.set_subscription_status("vip", SubscriptionTier.premium)
    entry = orchestrator.save_entry("vip", "content", mood_rating=4)
    orchestrator.generate_initial_insight(entry)

    stat = db.query(UserUsageStat).filter_by(user_id="vip", usage_type="insight").one()
    assert stat.count == 1
    assert stat.premium_count == 1
    assert stat.last_model == PREMIUM_MODEL


def test_usage_row_created_concurrently_is_counted_as_update(db, monkeypatch):
    track_usage_event(db, "u1", "chat", FREE_MODEL)
    real_find = usage_tracker._find_stat
    lookups = []

    def _stale_first_lookup(*args):
        lookups.append(args)
        # The first lookup misses the row another request has just inserted
        return None if len(lookups) == 1 else real_find(*args)

    monkeypatch.setattr(usage_tracker, "_find_stat", _stale_first_lookup)

    stat = track_usage_event(db, "u1", "chat", FREE_MODEL)

    assert stat.count == 2
    assert db.query(UserUsageStat).filter_by(user_id="u1", usage_type="chat").count() == 1


def test_usage_tracking_failure_does_not_fail_the_reply(orchestrator, monkeypatch, caplog):
    entry = orchestrator.save_entry("u1", "content", mood_rating=3)

    def _db_down(*args, **kwargs):
        raise SQLAlchemyError("db down")

    monkeypatch.setattr(journal_orchestrator, "track_usage_event", _db_down)

    exchange = orchestrator.send_chat_message("u1", entry.id, "Are you there?")

    assert exchange.ok
    assert exchange.assistant_message.id is not None
    assert [m.role for m in orchestrator.get_chat_history("u1", entry.id)] == ["user", "assistant"]
    assert "Usage tracking failed" in caplog.text

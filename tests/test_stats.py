"""Tests for completion rates and streaks."""

from datetime import date, timedelta

import stats
from models import Habit, Mood, MoodNote


def keys(*days):
    return [d.isoformat() for d in days]


def test_window_percentage_counts_only_window_days():
    """Completions outside the 7-day window should not count."""
    created = date(2024, 3, 1)
    completions = keys(created, created + timedelta(days=2))
    assert stats.completion_percentage(completions, created.isoformat()) == 29

    outside = completions + keys(created + timedelta(days=7), created - timedelta(days=1))
    assert stats.completion_percentage(outside, created.isoformat()) == 29


def test_window_percentage_full_and_empty():
    created = date(2024, 3, 1)
    full = keys(*(created + timedelta(days=i) for i in range(7)))
    assert stats.completion_percentage(full, created) == 100
    assert stats.completion_percentage([], created) == 0


def test_current_streak_from_today(today):
    completions = keys(today, today - timedelta(days=1), today - timedelta(days=2))
    assert stats.current_streak(completions, today) == 3


def test_current_streak_not_live(today):
    """A run that ended before yesterday is not a current streak."""
    completions = keys(today - timedelta(days=2), today - timedelta(days=3))
    assert stats.current_streak(completions, today) == 0


def test_current_streak_skips_unmarked_today(today):
    completions = keys(today - timedelta(days=1), today - timedelta(days=2), today - timedelta(days=4))
    assert stats.current_streak(completions, today) == 2


def test_current_streak_only_skips_today(today):
    """The gap after yesterday still ends the walk."""
    completions = keys(today, today - timedelta(days=2), today - timedelta(days=3))
    assert stats.current_streak(completions, today) == 1


def test_single_completion_streaks(today):
    assert stats.current_streak(keys(today - timedelta(days=1)), today) == 1
    assert stats.longest_streak(keys(today - timedelta(days=1))) == 1
    assert stats.current_streak(keys(today - timedelta(days=5)), today) == 0
    assert stats.longest_streak(keys(today - timedelta(days=5))) == 1


def test_longest_streak():
    d = date(2024, 1, 30)
    completions = keys(d + timedelta(days=6), d, d + timedelta(days=1), d + timedelta(days=5), d + timedelta(days=2))
    assert stats.longest_streak(completions) == 3


def test_longest_streak_ignores_duplicates():
    assert stats.longest_streak(["2024-01-01", "2024-01-01", "2024-01-02"]) == 2


def test_empty_completions():
    assert stats.current_streak([], date(2024, 3, 15)) == 0
    assert stats.longest_streak([]) == 0


def test_monthly_stats_excludes_future_days(today):
    """Only days up to today count towards the current month's denominator."""
    completions = keys(date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3), date(2024, 2, 28))
    result = stats.monthly_stats(completions, 2024, 3, today)
    assert result["completed_days"] == 3
    assert result["total_days"] == 15
    assert result["percentage"] == 20
    assert result["completed_dates"] == ["2024-03-01", "2024-03-02", "2024-03-03"]


def test_monthly_percentage_past_and_future_months(today):
    assert stats.monthly_percentage(keys(date(2024, 2, 1)), 2024, 2, today) == 3
    assert stats.monthly_percentage([], 2024, 4, today) == 0


def test_percent_rounds_half_up():
    assert stats.percent(1, 8) == 13
    assert stats.percent(0, 0) == 0


def test_week_window_marks_today_and_future(today):
    habit = Habit(id="h", text="Walk", section_id="s", created_at=(today - timedelta(days=2)).isoformat(),
                  completions=keys(today - timedelta(days=1)))
    cells = stats.week_window(habit, today)
    assert len(cells) == 7
    assert cells[1]["completed"]
    assert cells[2]["is_today"] and not cells[2]["is_future"]
    assert all(c["is_future"] for c in cells[3:])


def test_mood_summary(today):
    notes = [
        MoodNote(id="1", date="2024-03-15", mood=Mood.HAPPY),
        MoodNote(id="2", date="2024-03-14", mood=Mood.HAPPY),
        MoodNote(id="3", date="2024-03-10", mood=Mood.SAD),
        MoodNote(id="4", date="2024-02-20", mood=Mood.NEUTRAL),
    ]
    summary = stats.mood_summary(notes, 2024, 3, today)
    assert summary["counts"]["happy"] == 2
    assert summary["counts"]["sad"] == 1
    assert summary["counts"]["neutral"] == 0
    assert summary["entries"] == 3
    assert summary["current_streak"] == 2

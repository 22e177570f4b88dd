# src/stats.py
import math
from datetime import date

import dates
from models import Mood

WINDOW_DAYS = 7


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, rounding halves up."""
    if whole <= 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


# -------------------------------
# WEEKLY WINDOW
# -------------------------------
def window_keys(created_at) -> list:
    start = dates.parse_key(created_at) if isinstance(created_at, str) else created_at
    return [dates.date_key(dates.add_days(start, i)) for i in range(WINDOW_DAYS)]


def completion_percentage(completions, created_at) -> int:
    """Share of the 7-day window starting at `created_at` that is completed."""
    done = set(completions)
    matches = sum(1 for key in window_keys(created_at) if key in done)
    return percent(matches, WINDOW_DAYS)


def week_window(habit, today: date = None) -> list:
    """Day cells of a habit's weekly window, as shown on the habits board."""
    today = today or date.today()
    start = dates.parse_key(habit.created_at)
    done = set(habit.completions)
    cells = []
    for i in range(WINDOW_DAYS):
        day = dates.add_days(start, i)
        key = dates.date_key(day)
        cells.append({
            "day_index": i,
            "date": key,
            "label": day.strftime("%a"),
            "completed": key in done,
            "is_today": dates.is_same_day(day, today),
            "is_future": dates.is_future(day, today),
        })
    return cells


# -------------------------------
# STREAKS
# -------------------------------
def current_streak(completions, today: date = None) -> int:
    """Consecutive completed days ending today, or yesterday if today is not marked yet."""
    today = today or date.today()
    done = set(completions)
    day = today
    if dates.date_key(day) not in done:
        day = dates.add_days(today, -1)
        if dates.date_key(day) not in done:
            return 0

    streak = 0
    while dates.date_key(day) in done:
        streak += 1
        day = dates.add_days(day, -1)
    return streak


def longest_streak(completions) -> int:
    longest = 0
    run = 0
    previous = None
    for key in sorted(set(completions)):
        current = dates.parse_key(key)
        if previous is not None and (current - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = current
    return longest


# -------------------------------
# MONTHLY ANALYTICS
# -------------------------------
def elapsed_days(year: int, month: int, today: date = None) -> list:
    today = today or date.today()
    return [d for d in dates.month_days(year, month) if not dates.is_future(d, today)]


def month_completions(completions, year: int, month: int) -> list:
    return sorted(key for key in set(completions) if dates.in_month(key, year, month))


def monthly_percentage(completions, year: int, month: int, today: date = None) -> int:
    completed = len(month_completions(completions, year, month))
    return percent(completed, len(elapsed_days(year, month, today)))


def monthly_stats(completions, year: int, month: int, today: date = None) -> dict:
    today = today or date.today()
    completed = month_completions(completions, year, month)
    total = len(elapsed_days(year, month, today))
    return {
        "year": year,
        "month": month,
        "completed_days": len(completed),
        "total_days": total,
        "percentage": percent(len(completed), total),
        "current_streak": current_streak(completions, today),
        "longest_streak": longest_streak(completions),
        "completed_dates": completed,
    }


def mood_summary(notes, year: int, month: int, today: date = None) -> dict:
    """Mood counts for the month plus the journaling streak over all note dates."""
    today = today or date.today()
    counts = {mood.value: 0 for mood in Mood}
    for note in notes:
        if dates.in_month(note.date, year, month):
            counts[note.mood.value] += 1
    keys = [note.date for note in notes]
    return {
        "year": year,
        "month": month,
        "counts": counts,
        "entries": sum(counts.values()),
        "current_streak": current_streak(keys, today),
        "longest_streak": longest_streak(keys),
    }

"""
Prompt construction for coaching text.

Pure formatting: turns aggregates into prompts for the text-generation
service. When there is nothing to talk about, an InsufficientData sentinel
is returned instead of a prompt so the service is never called.
"""

from typing import Sequence, Union

from tip_tracker.storage.models import SeriesPoint, TodayMetrics, round_money

from .errors import InsufficientData

PEP_TALK_NEEDS_DATA = InsufficientData("Log at least one tip to get a pep talk.")
WEEKLY_NEEDS_DATA = InsufficientData("Not enough data for weekly insight.")


def _format_series(points: Sequence[SeriesPoint]) -> str:
    if not points:
        return "none"
    return ", ".join(f"{point.label} ${point.total:.2f}" for point in points)


def build_pep_talk_prompt(today: TodayMetrics) -> Union[str, InsufficientData]:
    """Build the daily pep talk prompt from today's metrics."""
    if today.count == 0:
        return PEP_TALK_NEEDS_DATA
    return (
        f"I'm a ride-share driver. So far today, I've made {today.count} tips "
        f"totaling ${round_money(today.total):.2f}. Write a very short, encouraging, "
        "and motivational pep talk for me (2-3 sentences). Be friendly and positive."
    )


def build_weekly_insight_prompt(
    weekly: Sequence[SeriesPoint],
    by_day: Sequence[SeriesPoint],
    by_hour: Sequence[SeriesPoint]
) -> Union[str, InsufficientData]:
    """Build the weekly coaching prompt.

    The chronologically latest week is the subject; the full day-of-week
    series and the hours with at least one tip are supporting context.

    Args:
        weekly: Week series sorted ascending by week start
        by_day: Seven day-of-week points
        by_hour: Twenty-four hour-of-day points

    Returns:
        Prompt string, or WEEKLY_NEEDS_DATA when there are no weeks
    """
    if not weekly:
        return WEEKLY_NEEDS_DATA

    latest = weekly[-1]
    active_hours = [point for point in by_hour if point.count > 0]
    return (
        "Act as a friendly performance coach for a ride-share driver. "
        "Analyze their tips from last week and provide a short (3-4 sentences) analysis. "
        "Highlight one positive trend and offer one actionable suggestion. "
        f"Data: - Week starting: {latest.label} "
        f"- Total weekly tips: ${latest.total:.2f} "
        f"- Tips by day: {_format_series(by_day)} "
        f"- Tips by hour: {_format_series(active_hours)}"
    )

"""
FriendSocial Session Sync — Day View.

Builds the timeline shown for one calendar day: the user's free-time windows
plus the scheduled activities they have accepted.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Mapping

from src.core.invites import find_participant
from src.data.models import (
    Activity,
    ActivityParticipant,
    DayEntry,
    InviteStatus,
    ScheduledActivity,
    UserAvailability,
)

_WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_TITLE_MAX_CHARS = 25
_TITLE_KEEP_CHARS = 22

_DEFAULT_ACTIVITY_LENGTH = timedelta(hours=1)

FREE_TIME_TITLE = "⏳ Free time"


def unicode_to_emoji(code: str) -> str | None:
    """Convert a ``U+1F3C3``-style code point into the emoji it names.

    Returns None for anything that is not a valid hex code point.
    """
    hex_digits = (code or "").strip().upper().replace("U+", "")
    if not hex_digits:
        return None
    try:
        return chr(int(hex_digits, 16))
    except (ValueError, OverflowError):
        return None


def truncate_title(title: str) -> str:
    if len(title) > _TITLE_MAX_CHARS:
        return title[:_TITLE_KEEP_CHARS] + "..."
    return title


def weekday_name(day: date) -> str:
    return _WEEKDAY_NAMES[day.weekday()]


def activity_title(activity: Activity | None) -> str:
    if activity is None:
        return "Unknown Activity"
    emoji = unicode_to_emoji(activity.emoji) or ""
    return f"{emoji} {activity.name}".strip()


def _availability_matches(availability: UserAvailability, day: date) -> bool:
    if availability.specific_date is not None:
        return availability.specific_date == day
    return availability.day_of_week.strip().lower() == weekday_name(day).lower()


def _at(day: date, moment: time, tz: tzinfo) -> datetime:
    """Place a time of day on day in tz.

    An offset-aware time is first shifted into tz; the resulting clock time
    stays on day even when the shift crosses midnight.
    """
    if moment.tzinfo is not None:
        moment = datetime.combine(day, moment).astimezone(tz).time()
    return datetime.combine(day, moment).replace(tzinfo=tz)


def build_day_schedule(
    day: date,
    tz: tzinfo,
    current_user_id: int,
    availability: Iterable[UserAvailability],
    scheduled_activities: Iterable[ScheduledActivity],
    activities: Iterable[Activity],
    activity_participants: Mapping[int, list[ActivityParticipant]],
) -> list[DayEntry]:
    """Return the free-time and accepted-activity entries for day, by start."""
    entries: list[DayEntry] = []

    for window in availability:
        if not window.is_available or not _availability_matches(window, day):
            continue
        entries.append(
            DayEntry(
                start=_at(day, window.start_time, tz),
                end=_at(day, window.end_time, tz),
                title=FREE_TIME_TITLE,
                kind="free_time",
            )
        )

    activities_by_id = {a.id: a for a in activities}
    for scheduled in scheduled_activities:
        start = scheduled.scheduled_at.astimezone(tz)
        if start.date() != day:
            continue
        mine = find_participant(
            activity_participants.get(scheduled.id, []), current_user_id
        )
        if mine is None or mine.invite_status is not InviteStatus.ACCEPTED:
            continue

        activity = activities_by_id.get(scheduled.activity_id)
        length = activity.estimated_duration if activity is not None else None
        entries.append(
            DayEntry(
                start=start,
                end=start + (length or _DEFAULT_ACTIVITY_LENGTH),
                title=truncate_title(activity_title(activity)),
                kind="activity",
                scheduled_activity_id=scheduled.id,
            )
        )

    entries.sort(key=lambda entry: entry.start)
    return entries

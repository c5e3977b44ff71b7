"""Tests for src.core.day_view — per-day timeline and title helpers."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from src.core.day_view import (
    FREE_TIME_TITLE,
    activity_title,
    build_day_schedule,
    truncate_title,
    unicode_to_emoji,
    weekday_name,
)
from src.data.models import (
    Activity,
    ActivityParticipant,
    InviteStatus,
    ScheduledActivity,
    UserAvailability,
)

ME = 1
MONDAY = date(2026, 3, 2)


def _window(wid, start, end, day_of_week="Monday", specific_date=None, available=True):
    return UserAvailability(
        id=wid,
        user_id=ME,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        is_available=available,
        specific_date=specific_date,
    )


def _accepted(sa_id, user_id=ME, status=InviteStatus.ACCEPTED):
    return ActivityParticipant(
        id=sa_id * 10 + user_id, user_id=user_id, scheduled_activity_id=sa_id, invite_status=status
    )


class TestHelpers:
    def test_unicode_to_emoji(self):
        """U+ codes and bare hex both convert."""
        assert unicode_to_emoji("U+1F3C3") == "\U0001F3C3"
        assert unicode_to_emoji("1f600") == "\U0001F600"

    def test_unicode_to_emoji_invalid(self):
        """Empty, non-hex or out-of-range codes give None."""
        assert unicode_to_emoji("") is None
        assert unicode_to_emoji("U+ZZZZ") is None
        assert unicode_to_emoji("U+FFFFFFFF") is None

    def test_truncate_title(self):
        """Titles over 25 characters are cut to 22 plus an ellipsis."""
        assert truncate_title("Short") == "Short"
        assert truncate_title("x" * 25) == "x" * 25
        assert truncate_title("x" * 26) == "x" * 22 + "..."

    def test_weekday_name(self):
        """Dates map to English weekday names."""
        assert weekday_name(MONDAY) == "Monday"
        assert weekday_name(MONDAY + timedelta(days=6)) == "Sunday"

    def test_activity_title(self):
        """Emoji prefixes the name; a missing activity gets a placeholder."""
        assert activity_title(Activity(id=1, name="Run", emoji="U+1F3C3")) == "\U0001F3C3 Run"
        assert activity_title(Activity(id=1, name="Run", emoji="")) == "Run"
        assert activity_title(None) == "Unknown Activity"


class TestBuildDaySchedule:
    def test_free_time_matches_weekday_or_specific_date(self):
        """Free time comes from matching available rows only."""
        availability = [
            _window(1, time(9), time(11)),
            _window(2, time(18), time(20), day_of_week="Tuesday"),
            _window(3, time(13), time(14), day_of_week="", specific_date=MONDAY),
            _window(4, time(7), time(8), available=False),
        ]

        entries = build_day_schedule(MONDAY, timezone.utc, ME, availability, [], [], {})

        assert [(e.start.hour, e.end.hour) for e in entries] == [(9, 11), (13, 14)]
        assert all(e.kind == "free_time" and e.title == FREE_TIME_TITLE for e in entries)

    def test_only_accepted_activities_on_that_day(self):
        """Only accepted activities on the requested day are listed."""
        scheduled = [
            ScheduledActivity(id=1, activity_id=10, scheduled_at=datetime(2026, 3, 2, 12, tzinfo=timezone.utc)),
            ScheduledActivity(id=2, activity_id=10, scheduled_at=datetime(2026, 3, 2, 15, tzinfo=timezone.utc)),
            ScheduledActivity(id=3, activity_id=10, scheduled_at=datetime(2026, 3, 3, 12, tzinfo=timezone.utc)),
        ]
        participants = {
            1: [_accepted(1)],
            2: [_accepted(2, status=InviteStatus.PENDING)],
            3: [_accepted(3)],
        }
        activities = [Activity(id=10, name="Lunch", estimated_time="1:30:00")]

        entries = build_day_schedule(
            MONDAY, timezone.utc, ME, [], scheduled, activities, participants
        )

        assert [e.scheduled_activity_id for e in entries] == [1]
        assert entries[0].end - entries[0].start == timedelta(hours=1, minutes=30)
        assert entries[0].kind == "activity"

    def test_unknown_duration_defaults_to_one_hour(self):
        """An unparseable duration falls back to one hour."""
        scheduled = [
            ScheduledActivity(id=1, activity_id=10, scheduled_at=datetime(2026, 3, 2, 12, tzinfo=timezone.utc)),
        ]
        activities = [Activity(id=10, name="Lunch", estimated_time="whenever")]

        entries = build_day_schedule(
            MONDAY, timezone.utc, ME, [], scheduled, activities, {1: [_accepted(1)]}
        )

        assert entries[0].end - entries[0].start == timedelta(hours=1)

    def test_entries_sorted_and_titles_truncated(self):
        """Entries are ordered by start and long titles truncated."""
        availability = [_window(1, time(8), time(9))]
        scheduled = [
            ScheduledActivity(id=1, activity_id=10, scheduled_at=datetime(2026, 3, 2, 7, tzinfo=timezone.utc)),
        ]
        activities = [Activity(id=10, name="A very long activity name indeed", estimated_time="0:30:00")]

        entries = build_day_schedule(
            MONDAY, timezone.utc, ME, availability, scheduled, activities, {1: [_accepted(1)]}
        )

        assert [e.kind for e in entries] == ["activity", "free_time"]
        assert entries[0].title.endswith("...")
        assert len(entries[0].title) == 25

    def test_day_is_taken_in_local_zone(self):
        """The day boundary follows the requested time zone."""
        # 23:30 UTC on Sunday is Monday morning at UTC+2
        scheduled = [
            ScheduledActivity(id=1, activity_id=10, scheduled_at=datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)),
        ]
        plus_two = timezone(timedelta(hours=2))

        entries = build_day_schedule(
            MONDAY, plus_two, ME, [], scheduled, [], {1: [_accepted(1)]}
        )

        assert [e.scheduled_activity_id for e in entries] == [1]
        assert entries[0].title == "Unknown Activity"

    def test_free_time_stays_on_requested_day(self):
        """A UTC window that lands on the next local date keeps its clock time on day."""
        availability = [_window(1, time(20, tzinfo=timezone.utc), time(22, tzinfo=timezone.utc))]
        auckland = ZoneInfo("Pacific/Auckland")

        entries = build_day_schedule(MONDAY, auckland, ME, availability, [], [], {})

        assert entries[0].start == datetime(2026, 3, 2, 9, tzinfo=auckland)
        assert entries[0].end == datetime(2026, 3, 2, 11, tzinfo=auckland)

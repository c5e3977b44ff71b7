"""
FriendSocial Session Sync — Data Models.

Wire records mirror the JSON the data service returns and are immutable;
a changed record is produced with ``model_copy(update=...)``.
Derived views (Invite, DayEntry) are plain dataclasses and never sent back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from src.data.codec import (
    format_api_datetime,
    parse_api_date,
    parse_api_datetime,
    parse_duration,
    parse_time_of_day,
)


class InviteStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"

    @classmethod
    def _missing_(cls, value: object) -> InviteStatus | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "rejected":
                return cls.DECLINED
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


class WireModel(BaseModel):
    """Base for records exchanged with the data service."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class User(WireModel):
    id: int
    name: str
    email: str = ""
    location_id: int | None = None
    profile_image: str | None = None


class Friendship(WireModel):
    """One friendship row; the current user may be on either side."""

    user_id: int
    friend_id: int
    created_at: datetime | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: object) -> datetime | None:
        if v is None or v == "":
            return None
        return parse_api_datetime(v)

    def other_user_id(self, user_id: int) -> int:
        return self.friend_id if self.user_id == user_id else self.user_id


class Location(WireModel):
    id: int = 0
    name: str
    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    latitude: float = 90.0
    longitude: float = 0.0

    @field_validator("city", "state", "zip_code", "country", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("latitude", mode="before")
    @classmethod
    def default_latitude(cls, v: object) -> object:
        return 90.0 if v is None else v

    @field_validator("longitude", mode="before")
    @classmethod
    def default_longitude(cls, v: object) -> object:
        return 0.0 if v is None else v


class Activity(WireModel):
    id: int = 0
    name: str
    description: str = ""
    estimated_time: str = "00:00:00"   # H:MM:SS
    location_id: int | None = None
    user_created: bool = False
    emoji: str = ""                    # e.g. "U+1F3C3"

    @property
    def estimated_duration(self) -> timedelta | None:
        return parse_duration(self.estimated_time)


class ScheduledActivity(WireModel):
    id: int
    activity_id: int
    scheduled_at: datetime
    is_active: bool = True

    @field_validator("scheduled_at", mode="before")
    @classmethod
    def parse_scheduled_at(cls, v: object) -> datetime:
        return parse_api_datetime(v)

    @field_serializer("scheduled_at")
    def serialize_scheduled_at(self, v: datetime) -> str:
        return format_api_datetime(v)


class ActivityParticipant(WireModel):
    id: int = 0
    user_id: int
    scheduled_activity_id: int
    invite_status: InviteStatus = InviteStatus.PENDING

    @field_validator("invite_status", mode="before")
    @classmethod
    def parse_invite_status(cls, v: object) -> InviteStatus:
        if v is None:
            return InviteStatus.PENDING
        return InviteStatus(v)


class UserAvailability(WireModel):
    id: int
    user_id: int
    day_of_week: str = ""
    start_time: time
    end_time: time
    is_available: bool = True
    specific_date: date | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v: object) -> time:
        return parse_time_of_day(v)

    @field_validator("specific_date", mode="before")
    @classmethod
    def parse_specific_date(cls, v: object) -> date | None:
        if v is None or v == "":
            return None
        return parse_api_date(v)


class UserActivityPreference(WireModel):
    """Recurrence rule the server expands into scheduled activities."""

    id: int = 0
    user_id: int
    activity_id: int
    frequency: int
    frequency_period: str      # "day" | "week" | "month", lowercased
    days_of_week: str | None = None   # e.g. "1,3,5"


class UserActivityPreferenceParticipant(WireModel):
    id: int = 0
    user_activity_preference_id: int
    user_id: int


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@dataclass
class Invite:
    """A pending participation joined with everything needed to show it."""

    scheduled_activity: ScheduledActivity
    activity: Activity
    location: Location
    participant: ActivityParticipant          # the current user's record
    participants: list[ActivityParticipant] = field(default_factory=list)
    participant_users: dict[int, User] = field(default_factory=dict)

    @property
    def id(self) -> int:
        return self.scheduled_activity.id

    @property
    def scheduled_at(self) -> datetime:
        return self.scheduled_activity.scheduled_at

    @property
    def title(self) -> str:
        return self.activity.name

    @property
    def location_name(self) -> str:
        return self.location.name

    @property
    def end_at(self) -> datetime:
        return self.scheduled_at + (self.activity.estimated_duration or timedelta())


@dataclass
class DayEntry:
    """One row of a day's timeline: free time or an accepted activity."""

    start: datetime
    end: datetime
    title: str
    kind: str                               # "free_time" | "activity"
    scheduled_activity_id: int | None = None

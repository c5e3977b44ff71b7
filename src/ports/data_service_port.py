"""Data service port — abstract interface for the remote scheduling backend.

Core modules depend on this protocol, never on a specific transport.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from src.data.models import (
        Activity,
        ActivityParticipant,
        Friendship,
        Location,
        ScheduledActivity,
        User,
        UserActivityPreference,
        UserActivityPreferenceParticipant,
        UserAvailability,
    )


class DataServiceError(Exception):
    """Raised when a data service request fails (transport or HTTP status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DataServiceDecodeError(DataServiceError):
    """Raised when a response body does not match the expected shape."""


class DataServicePort(Protocol):
    """Abstract data service interface used by the session aggregator."""

    # --- reads -----------------------------------------------------------

    async def fetch_user(self, user_id: int) -> User: ...

    async def fetch_users(self, ids: Iterable[int]) -> list[User]: ...

    async def fetch_friendships(self, user_id: int) -> list[Friendship]: ...

    async def fetch_scheduled_activities(
        self, ids: Iterable[int]
    ) -> list[ScheduledActivity]: ...

    async def fetch_activities(self, ids: Iterable[int]) -> list[Activity]: ...

    async def fetch_all_activities(self) -> list[Activity]: ...

    async def fetch_locations(self, ids: Iterable[int]) -> list[Location]: ...

    async def fetch_participants_by_user(
        self, user_id: int
    ) -> list[ActivityParticipant]: ...

    async def fetch_participants_by_scheduled_activities(
        self, ids: Iterable[int]
    ) -> list[ActivityParticipant]: ...

    async def fetch_user_availability(
        self, user_id: int
    ) -> list[UserAvailability]: ...

    # --- writes ----------------------------------------------------------

    async def create_location(self, location: Location) -> Location: ...

    async def create_activity(self, activity: Activity) -> Activity: ...

    async def create_scheduled_activities(
        self,
        activity_id: int,
        selected_dates: list[date],
        start_time: datetime,
        end_time: datetime,
        time_zone: str,
    ) -> list[ScheduledActivity]: ...

    async def create_activity_participant(
        self, participant: ActivityParticipant
    ) -> ActivityParticipant: ...

    async def create_user_activity_preference(
        self, preference: UserActivityPreference
    ) -> UserActivityPreference: ...

    async def create_user_activity_preference_participant(
        self, participant: UserActivityPreferenceParticipant
    ) -> UserActivityPreferenceParticipant: ...

    async def create_repeat_scheduled_activities(
        self, preference_id: int, start_time: datetime, time_zone: str
    ) -> list[ScheduledActivity]: ...

    async def update_scheduled_activity(
        self, scheduled_activity: ScheduledActivity
    ) -> ScheduledActivity: ...

    async def update_activity_participant(
        self, participant: ActivityParticipant
    ) -> ActivityParticipant: ...

    async def delete_scheduled_activity(self, scheduled_activity_id: int) -> None: ...

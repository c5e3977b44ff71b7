"""
FriendSocial Session Sync — Session Data Aggregator.

Owns the in-memory snapshot of the current user's social and schedule state:
friends, scheduled activities with their activities, locations and
participants, availability, and the pending invites derived from them.

The snapshot starts empty, is filled by load_initial_data(), and is patched
in place by the mutation operations after each server round-trip. All state
changes happen on the event loop that awaits these coroutines.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, TypeVar
from zoneinfo import ZoneInfo

from src.config import settings
from src.core.day_view import build_day_schedule
from src.core.invites import build_invites, filter_invites_for_date, find_participant
from src.core.user_cache import UserCache
from src.data.codec import parse_api_datetime
from src.data.models import (
    Activity,
    ActivityParticipant,
    DayEntry,
    Friendship,
    Invite,
    InviteStatus,
    Location,
    ScheduledActivity,
    User,
    UserActivityPreference,
    UserActivityPreferenceParticipant,
    UserAvailability,
)
from src.ports.data_service_port import DataServiceError

if TYPE_CHECKING:
    from src.ports.data_service_port import DataServicePort

logger = logging.getLogger(__name__)

_T = TypeVar("_T", Activity, Location)


class SessionStateError(Exception):
    """Raised when an operation needs a loaded current user and there is none."""


def resolve_friend_ids(rows: Iterable[Friendship], user_id: int) -> list[int]:
    """Return each counterparty of user_id once, in first-seen order."""
    friend_ids: dict[int, None] = {}
    for row in rows:
        if user_id not in (row.user_id, row.friend_id):
            continue
        other = row.other_user_id(user_id)
        if other != user_id:
            friend_ids.setdefault(other, None)
    return list(friend_ids)


def group_participants(
    participants: Iterable[ActivityParticipant],
) -> dict[int, list[ActivityParticipant]]:
    """Group participant records by scheduled activity id."""
    grouped: dict[int, list[ActivityParticipant]] = {}
    for participant in participants:
        grouped.setdefault(participant.scheduled_activity_id, []).append(participant)
    return grouped


def _by_scheduled_at(scheduled: ScheduledActivity) -> datetime:
    return scheduled.scheduled_at


def _merge_by_id(existing: list[_T], incoming: Iterable[_T]) -> list[_T]:
    """Replace records with matching ids and append the rest."""
    merged = {record.id: record for record in existing}
    for record in incoming:
        merged[record.id] = record
    return list(merged.values())


class SessionDataAggregator:
    """Cache-then-refresh view of one user's session, backed by the data service."""

    def __init__(
        self,
        service: DataServicePort,
        user_cache: UserCache | None = None,
        time_zone: str | None = None,
    ) -> None:
        self._service = service
        self._user_cache = (
            user_cache
            if user_cache is not None
            else UserCache(ttl_seconds=settings.USER_CACHE_TTL_SECONDS)
        )
        self._time_zone = time_zone or settings.TIMEZONE

        self.current_user: User | None = None
        self.friends: list[User] = []
        self.scheduled_activities: list[ScheduledActivity] = []
        self.activities: list[Activity] = []
        self.locations: list[Location] = []
        self.activity_participants: dict[int, list[ActivityParticipant]] = {}
        self.participant_users: dict[int, User] = {}
        self.user_availability: list[UserAvailability] = []
        self.user_activity_preferences: list[UserActivityPreference] = []
        self.invites: list[Invite] = []
        self.is_loading: bool = False

    @property
    def time_zone(self) -> ZoneInfo:
        return ZoneInfo(self._time_zone)

    # ------------------------------------------------------------------
    # Initial load
    # ------------------------------------------------------------------

    async def load_initial_data(self, user_id: int) -> None:
        """Load the user, then friends, schedule and availability concurrently.

        A failing branch is logged and leaves its part of the snapshot as it
        was; the other branches still complete. The invite list is derived
        once all three branches have finished.
        """
        self.is_loading = True
        try:
            try:
                user = await self.fetch_user(user_id)
            except DataServiceError as exc:
                logger.error("Error loading initial data for user %d: %s", user_id, exc)
                return
            self.current_user = user

            await asyncio.gather(
                self._load_friends(user_id),
                self._load_scheduled_activities(user_id),
                self._load_user_availability(user_id),
            )
            self.refresh_invites()
            logger.info(
                "Initial data loaded for user %d: %d friend(s), %d scheduled activit(ies), "
                "%d pending invite(s)",
                user_id,
                len(self.friends),
                len(self.scheduled_activities),
                len(self.invites),
            )
        finally:
            self.is_loading = False

    async def _load_friends(self, user_id: int) -> None:
        try:
            rows = await self._service.fetch_friendships(user_id)
            friend_ids = resolve_friend_ids(rows, user_id)
            friends = await asyncio.gather(*(self.fetch_user(fid) for fid in friend_ids))
        except DataServiceError as exc:
            logger.error("Error loading friends for user %d: %s", user_id, exc)
            return
        self.friends = list(friends)

    async def _load_scheduled_activities(self, user_id: int) -> None:
        try:
            participations = await self._service.fetch_participants_by_user(user_id)
            scheduled_ids = list(
                dict.fromkeys(p.scheduled_activity_id for p in participations)
            )
            if not scheduled_ids:
                logger.info("No activity participants found for user %d", user_id)
                self.scheduled_activities = []
                self.activity_participants = {}
                self.participant_users = {}
                return

            scheduled = await self._service.fetch_scheduled_activities(scheduled_ids)
            self.scheduled_activities = sorted(scheduled, key=_by_scheduled_at)

            activity_ids = list(
                dict.fromkeys(sa.activity_id for sa in self.scheduled_activities)
            )
            activities = await self._service.fetch_activities(activity_ids)
            self.activities = _merge_by_id(self.activities, activities)

            location_ids = list(
                dict.fromkeys(
                    a.location_id for a in activities if a.location_id is not None
                )
            )
            locations = await self._service.fetch_locations(location_ids)
            self.locations = _merge_by_id(self.locations, locations)

            participants = await self._service.fetch_participants_by_scheduled_activities(
                scheduled_ids
            )
            self.activity_participants = group_participants(participants)

            participant_user_ids = list(dict.fromkeys(p.user_id for p in participants))
            users = await self._service.fetch_users(participant_user_ids)
        except DataServiceError as exc:
            logger.error("Error loading scheduled activities for user %d: %s", user_id, exc)
            return

        for user in users:
            self._user_cache.put(user)
        self.participant_users = {user.id: user for user in users}

    async def _load_user_availability(self, user_id: int) -> None:
        try:
            availability = await self._service.fetch_user_availability(user_id)
        except DataServiceError as exc:
            logger.error("Error fetching availability for user %d: %s", user_id, exc)
            return
        self.user_availability = availability

    async def load_activity_catalog(self) -> None:
        """Merge the full activity catalog and its locations into the snapshot."""
        try:
            catalog = await self._service.fetch_all_activities()
            location_ids = list(
                dict.fromkeys(a.location_id for a in catalog if a.location_id is not None)
            )
            locations = await self._service.fetch_locations(location_ids)
        except DataServiceError as exc:
            logger.error("Error fetching activity catalog: %s", exc)
            return
        self.activities = _merge_by_id(self.activities, catalog)
        self.locations = _merge_by_id(self.locations, locations)
        logger.info(
            "Activity catalog loaded: %d activit(ies), %d location(s)",
            len(catalog),
            len(locations),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_user(self, user_id: int) -> User:
        """Return the user from cache, fetching it when absent or expired."""
        return await self._user_cache.get_or_fetch(user_id, self._service.fetch_user)

    def get_activity_participants(
        self, scheduled_activity_id: int
    ) -> list[ActivityParticipant]:
        return self.activity_participants.get(scheduled_activity_id, [])

    def get_activity(self, activity_id: int) -> Activity | None:
        return next((a for a in self.activities if a.id == activity_id), None)

    def get_location(self, location_id: int) -> Location | None:
        return next((loc for loc in self.locations if loc.id == location_id), None)

    def refresh_invites(self) -> list[Invite]:
        """Re-derive the pending invites from the current snapshot."""
        if self.current_user is None:
            self.invites = []
            return self.invites
        self.invites = build_invites(
            self.current_user.id,
            self.scheduled_activities,
            self.activities,
            self.locations,
            self.activity_participants,
            self.participant_users,
        )
        return self.invites

    def invites_for_date(self, day: date) -> list[Invite]:
        return filter_invites_for_date(self.invites, day, self.time_zone)

    def day_schedule(self, day: date) -> list[DayEntry]:
        """Free time and accepted activities for day, ordered by start."""
        if self.current_user is None:
            return []
        return build_day_schedule(
            day,
            self.time_zone,
            self.current_user.id,
            self.user_availability,
            self.scheduled_activities,
            self.activities,
            self.activity_participants,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save_new_scheduled_activity(
        self,
        location: Location,
        activity: Activity,
        selected_dates: list[date],
        start_time: datetime,
        end_time: datetime,
        participants: list[User],
        is_repeating: bool = False,
        repeat_frequency: int = 1,
        repeat_unit: str = "week",
        selected_days: list[int] | None = None,
        time_zone: str | None = None,
    ) -> list[ScheduledActivity]:
        """Create an activity on each selected date and invite participants.

        Existing locations (same name and address) and activities (same name
        and description) are reused. The caller's participation is Accepted,
        everyone else's Pending. With is_repeating, a recurrence preference is
        stored and the server generates the repeat occurrences.

        Local state is only updated after every remote step succeeded; a
        DataServiceError from any step propagates and leaves the snapshot as
        it was.

        Returns the scheduled activities added to the snapshot.
        """
        caller = self.current_user
        if caller is None:
            raise SessionStateError("Cannot schedule an activity before a user is loaded")
        tz_name = time_zone or self._time_zone

        new_locations: list[Location] = []
        new_activities: list[Activity] = []

        saved_location = next(
            (
                loc for loc in self.locations
                if loc.name == location.name and loc.address == location.address
            ),
            None,
        )
        if saved_location is None:
            saved_location = await self._service.create_location(location)
            new_locations.append(saved_location)

        saved_activity = next(
            (
                a for a in self.activities
                if a.name == activity.name and a.description == activity.description
            ),
            None,
        )
        if saved_activity is None:
            saved_activity = await self._service.create_activity(
                activity.model_copy(update={"location_id": saved_location.id})
            )
            new_activities.append(saved_activity)

        created = await self._service.create_scheduled_activities(
            saved_activity.id, selected_dates, start_time, end_time, tz_name
        )

        new_participants: list[ActivityParticipant] = []
        for scheduled in created:
            for user in participants:
                status = (
                    InviteStatus.ACCEPTED if user.id == caller.id else InviteStatus.PENDING
                )
                new_participants.append(
                    await self._service.create_activity_participant(
                        ActivityParticipant(
                            user_id=user.id,
                            scheduled_activity_id=scheduled.id,
                            invite_status=status,
                        )
                    )
                )

        preference: UserActivityPreference | None = None
        repeated: list[ScheduledActivity] = []
        if is_repeating:
            preference = await self._service.create_user_activity_preference(
                UserActivityPreference(
                    user_id=caller.id,
                    activity_id=saved_activity.id,
                    frequency=repeat_frequency,
                    frequency_period=repeat_unit.lower(),
                    days_of_week=",".join(str(d) for d in selected_days or []) or None,
                )
            )
            for user in participants:
                await self._service.create_user_activity_preference_participant(
                    UserActivityPreferenceParticipant(
                        user_activity_preference_id=preference.id,
                        user_id=user.id,
                    )
                )
            repeated = await self._service.create_repeat_scheduled_activities(
                preference.id, start_time, tz_name
            )

        # Every remote step succeeded: commit to the snapshot.
        self.locations = _merge_by_id(self.locations, new_locations)
        self.activities = _merge_by_id(self.activities, new_activities)
        added = self._add_scheduled_activities([*created, *repeated])
        for participant in new_participants:
            self._add_activity_participant(participant)
        if preference is not None:
            self.user_activity_preferences.append(preference)
        self.refresh_invites()

        logger.info(
            "Scheduled '%s' on %d date(s) (%d repeat occurrence(s)) with %d participant(s)",
            saved_activity.name,
            len(created),
            len(repeated),
            len(participants),
        )
        return added

    async def cancel_scheduled_activity(self, scheduled_activity: ScheduledActivity) -> None:
        """Delete on the server, then drop the activity and its participants locally."""
        await self._service.delete_scheduled_activity(scheduled_activity.id)

        self.scheduled_activities = [
            sa for sa in self.scheduled_activities if sa.id != scheduled_activity.id
        ]
        self.activity_participants.pop(scheduled_activity.id, None)
        self.invites = [i for i in self.invites if i.id != scheduled_activity.id]
        logger.info("Cancelled scheduled activity %d", scheduled_activity.id)

    async def reschedule_scheduled_activity(
        self, scheduled_activity: ScheduledActivity, new_date: datetime
    ) -> ScheduledActivity:
        """Move an activity to new_date; nothing else about it changes."""
        updated = scheduled_activity.model_copy(
            update={"scheduled_at": parse_api_datetime(new_date)}
        )
        saved = await self._service.update_scheduled_activity(updated)

        for index, existing in enumerate(self.scheduled_activities):
            if existing.id == saved.id:
                self.scheduled_activities[index] = saved
                self.scheduled_activities.sort(key=_by_scheduled_at)
                break
        logger.info("Rescheduled activity %d to %s", saved.id, saved.scheduled_at.isoformat())
        return saved

    async def respond_to_invite(
        self, invite: Invite, status: InviteStatus | str
    ) -> ActivityParticipant | None:
        """Accept or decline an invite on behalf of the current user.

        Returns the updated participant record, or None when the user's
        record is not part of the invite.
        """
        status = InviteStatus(status)
        if self.current_user is None:
            logger.warning("Cannot respond to invite %d: no current user", invite.id)
            return None

        user_id = self.current_user.id
        mine = find_participant(invite.participants, user_id)
        if mine is None and invite.participant.user_id == user_id:
            mine = invite.participant
        if mine is None:
            logger.warning(
                "No participant record for user %d on invite %d", user_id, invite.id
            )
            return None

        saved = await self._service.update_activity_participant(
            mine.model_copy(update={"invite_status": status})
        )

        self._replace_activity_participant(saved)
        self.invites = [i for i in self.invites if i.id != invite.id]
        if status is InviteStatus.ACCEPTED:
            self._add_scheduled_activities([invite.scheduled_activity])
        logger.info(
            "User %d responded %s to invite %d", user_id, status.value, invite.id
        )
        return saved

    # ------------------------------------------------------------------
    # Local snapshot helpers
    # ------------------------------------------------------------------

    def _add_scheduled_activities(
        self, incoming: Iterable[ScheduledActivity]
    ) -> list[ScheduledActivity]:
        known = {sa.id for sa in self.scheduled_activities}
        added: list[ScheduledActivity] = []
        for scheduled in incoming:
            if scheduled.id in known:
                continue
            known.add(scheduled.id)
            added.append(scheduled)
        if added:
            self.scheduled_activities.extend(added)
            self.scheduled_activities.sort(key=_by_scheduled_at)
        return added

    def _add_activity_participant(self, participant: ActivityParticipant) -> None:
        records = self.activity_participants.setdefault(
            participant.scheduled_activity_id, []
        )
        if not any(p.id == participant.id for p in records):
            records.append(participant)

    def _replace_activity_participant(self, participant: ActivityParticipant) -> None:
        records = self.activity_participants.setdefault(
            participant.scheduled_activity_id, []
        )
        for index, existing in enumerate(records):
            if existing.id == participant.id:
                records[index] = participant
                return
        records.append(participant)

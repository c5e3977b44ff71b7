"""
FriendSocial Session Sync — Invite Projection.

Turns the loaded participation state into actionable invites. Everything here
is a pure function over records already held in memory: no I/O, no mutation.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Iterable, Mapping

from src.data.models import (
    Activity,
    ActivityParticipant,
    Invite,
    InviteStatus,
    Location,
    ScheduledActivity,
    User,
)

logger = logging.getLogger(__name__)


def find_participant(
    participants: Iterable[ActivityParticipant], user_id: int
) -> ActivityParticipant | None:
    """Return the participant record belonging to user_id, if any."""
    return next((p for p in participants if p.user_id == user_id), None)


def build_invites(
    current_user_id: int,
    scheduled_activities: Iterable[ScheduledActivity],
    activities: Iterable[Activity],
    locations: Iterable[Location],
    activity_participants: Mapping[int, list[ActivityParticipant]],
    participant_users: Mapping[int, User],
) -> list[Invite]:
    """Build one Invite per scheduled activity the user has a Pending record on.

    A candidate is dropped when its scheduled activity, activity, or location
    is not loaded locally. Results are ordered by scheduled time.
    """
    scheduled_by_id = {sa.id: sa for sa in scheduled_activities}
    activities_by_id = {a.id: a for a in activities}
    locations_by_id = {loc.id: loc for loc in locations}

    invites: list[Invite] = []
    for scheduled_activity_id, participants in activity_participants.items():
        mine = find_participant(participants, current_user_id)
        if mine is None or mine.invite_status is not InviteStatus.PENDING:
            continue

        scheduled = scheduled_by_id.get(scheduled_activity_id)
        if scheduled is None:
            continue
        activity = activities_by_id.get(scheduled.activity_id)
        if activity is None or activity.location_id is None:
            continue
        location = locations_by_id.get(activity.location_id)
        if location is None:
            continue

        user_ids = {p.user_id for p in participants}
        invites.append(
            Invite(
                scheduled_activity=scheduled,
                activity=activity,
                location=location,
                participant=mine,
                participants=list(participants),
                participant_users={
                    uid: user for uid, user in participant_users.items() if uid in user_ids
                },
            )
        )

    invites.sort(key=lambda invite: invite.scheduled_at)
    logger.debug("Projected %d pending invite(s)", len(invites))
    return invites


def filter_invites_for_date(
    invites: Iterable[Invite], day: date, tz: tzinfo
) -> list[Invite]:
    """Keep the invites whose scheduled time falls on day in the given zone."""
    return [i for i in invites if i.scheduled_at.astimezone(tz).date() == day]

"""HTTP data service adapter — implements DataServicePort over REST/JSON.

All transport-specific logic lives here. The session aggregator never imports
this directly; it depends on the DataServicePort protocol.

Bulk reads take a set of ids joined into the path (``/users/1,2,3``). Ids the
server cannot resolve are simply absent from the response.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from src.config import settings
from src.data.codec import format_api_datetime
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
from src.ports.data_service_port import DataServiceDecodeError, DataServiceError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_PAYLOAD_EXCERPT_CHARS = 200


def _join_ids(ids: Iterable[int]) -> str:
    """Deduplicate ids (keeping first-seen order) and join them for a path."""
    return ",".join(str(i) for i in dict.fromkeys(ids))


def _excerpt(payload: Any) -> str:
    text = str(payload)
    if len(text) > _PAYLOAD_EXCERPT_CHARS:
        return text[:_PAYLOAD_EXCERPT_CHARS] + "..."
    return text


def _dump(record: BaseModel) -> dict:
    return record.model_dump(mode="json")


class HttpDataService:
    """REST/JSON implementation of DataServicePort."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self, method: str, path: str, body: dict | None = None
    ) -> Any:
        """Send one request and return the decoded JSON body (None if empty)."""
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.request(method, url, json=body)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("%s %s failed with status code %d", method, url, status)
            raise DataServiceError(
                f"{method} {url} failed with status code {status}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise DataServiceError(f"{method} {url} failed: {exc}") from exc

        if method == "DELETE" or not resp.content:
            return None

        try:
            return resp.json()
        except ValueError as exc:
            logger.error(
                "Decoding error for %s %s: body is not JSON: %s",
                method, url, _excerpt(resp.text),
            )
            raise DataServiceDecodeError(
                f"Response from {url} is not valid JSON"
            ) from exc

    @staticmethod
    def _decode(model: type[ModelT], payload: Any, url_hint: str) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.error(
                "Decoding error for %s: %s, payload: %s",
                url_hint, exc, _excerpt(payload),
            )
            raise DataServiceDecodeError(
                f"Unexpected {model.__name__} payload from {url_hint}"
            ) from exc

    @staticmethod
    def _decode_list(model: type[ModelT], payload: Any, url_hint: str) -> list[ModelT]:
        if payload is None:
            return []
        try:
            return TypeAdapter(list[model]).validate_python(payload)
        except ValidationError as exc:
            logger.error(
                "Decoding error for %s: %s, payload: %s",
                url_hint, exc, _excerpt(payload),
            )
            raise DataServiceDecodeError(
                f"Unexpected {model.__name__} list payload from {url_hint}"
            ) from exc

    async def _get_list(self, model: type[ModelT], path: str) -> list[ModelT]:
        payload = await self._request("GET", path)
        return self._decode_list(model, payload, path)

    async def _post(self, model: type[ModelT], path: str, body: dict) -> ModelT:
        payload = await self._request("POST", path, body)
        return self._decode(model, payload, path)

    async def _put(self, model: type[ModelT], path: str, body: dict) -> ModelT:
        payload = await self._request("PUT", path, body)
        return self._decode(model, payload, path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_user(self, user_id: int) -> User:
        path = f"/users/{user_id}"
        payload = await self._request("GET", path)
        if isinstance(payload, dict):
            return self._decode(User, payload, path)
        users = self._decode_list(User, payload, path)
        if not users:
            raise DataServiceError(f"User {user_id} not found", status_code=404)
        return users[0]

    async def fetch_users(self, ids: Iterable[int]) -> list[User]:
        joined = _join_ids(ids)
        if not joined:
            return []
        return await self._get_list(User, f"/users/{joined}")

    async def fetch_friendships(self, user_id: int) -> list[Friendship]:
        return await self._get_list(Friendship, f"/friend/user/{user_id}")

    async def fetch_scheduled_activities(
        self, ids: Iterable[int]
    ) -> list[ScheduledActivity]:
        joined = _join_ids(ids)
        if not joined:
            return []
        return await self._get_list(ScheduledActivity, f"/scheduled_activities/{joined}")

    async def fetch_activities(self, ids: Iterable[int]) -> list[Activity]:
        joined = _join_ids(ids)
        if not joined:
            return []
        return await self._get_list(Activity, f"/activities/{joined}")

    async def fetch_all_activities(self) -> list[Activity]:
        return await self._get_list(Activity, "/activities")

    async def fetch_locations(self, ids: Iterable[int]) -> list[Location]:
        joined = _join_ids(ids)
        if not joined:
            return []
        return await self._get_list(Location, f"/locations/{joined}")

    async def fetch_participants_by_user(
        self, user_id: int
    ) -> list[ActivityParticipant]:
        return await self._get_list(
            ActivityParticipant, f"/activity_participants/user/{user_id}"
        )

    async def fetch_participants_by_scheduled_activities(
        self, ids: Iterable[int]
    ) -> list[ActivityParticipant]:
        joined = _join_ids(ids)
        if not joined:
            return []
        return await self._get_list(
            ActivityParticipant, f"/activity_participants/scheduled_activities/{joined}"
        )

    async def fetch_user_availability(
        self, user_id: int
    ) -> list[UserAvailability]:
        return await self._get_list(UserAvailability, f"/user_availability/user/{user_id}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_location(self, location: Location) -> Location:
        created = await self._post(Location, "/location", _dump(location))
        logger.info("Location created: '%s' (id=%d)", created.name, created.id)
        return created

    async def create_activity(self, activity: Activity) -> Activity:
        created = await self._post(Activity, "/activity", _dump(activity))
        logger.info("Activity created: '%s' (id=%d)", created.name, created.id)
        return created

    async def create_scheduled_activities(
        self,
        activity_id: int,
        selected_dates: list[date],
        start_time: datetime,
        end_time: datetime,
        time_zone: str,
    ) -> list[ScheduledActivity]:
        path = "/scheduled_activities"
        body = {
            "activity_id": activity_id,
            "selected_dates": [d.isoformat() for d in selected_dates],
            "start_time": format_api_datetime(start_time),
            "end_time": format_api_datetime(end_time),
            "time_zone": time_zone,
        }
        payload = await self._request("POST", path, body)
        created = self._decode_list(ScheduledActivity, payload, path)
        logger.info(
            "Scheduled %d occurrence(s) of activity %d", len(created), activity_id
        )
        return created

    async def create_activity_participant(
        self, participant: ActivityParticipant
    ) -> ActivityParticipant:
        return await self._post(ActivityParticipant, "/activity_participant", _dump(participant))

    async def create_user_activity_preference(
        self, preference: UserActivityPreference
    ) -> UserActivityPreference:
        return await self._post(
            UserActivityPreference, "/user_activity_preference", _dump(preference)
        )

    async def create_user_activity_preference_participant(
        self, participant: UserActivityPreferenceParticipant
    ) -> UserActivityPreferenceParticipant:
        return await self._post(
            UserActivityPreferenceParticipant,
            "/user_activity_preference_participant",
            _dump(participant),
        )

    async def create_repeat_scheduled_activities(
        self, preference_id: int, start_time: datetime, time_zone: str
    ) -> list[ScheduledActivity]:
        path = "/scheduled_activity/repeat"
        body = {
            "preference_id": str(preference_id),
            "start_time": format_api_datetime(start_time),
            "time_zone": time_zone,
        }
        payload = await self._request("POST", path, body)
        return self._decode_list(ScheduledActivity, payload, path)

    async def update_scheduled_activity(
        self, scheduled_activity: ScheduledActivity
    ) -> ScheduledActivity:
        return await self._put(
            ScheduledActivity,
            f"/scheduled_activity/{scheduled_activity.id}",
            _dump(scheduled_activity),
        )

    async def update_activity_participant(
        self, participant: ActivityParticipant
    ) -> ActivityParticipant:
        return await self._put(
            ActivityParticipant,
            f"/activity_participant/{participant.id}",
            _dump(participant),
        )

    async def delete_scheduled_activity(self, scheduled_activity_id: int) -> None:
        await self._request("DELETE", f"/scheduled_activity/{scheduled_activity_id}")
        logger.info("Scheduled activity %d deleted", scheduled_activity_id)

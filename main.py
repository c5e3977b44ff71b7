"""
FriendSocial Session Sync — Entry Point.

`python main.py [user_id]` loads one user's session from the data service
and prints a short summary of friends, schedule and pending invites.
"""

import asyncio
import logging
import sys

from src.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.adapters.http_data_service import HttpDataService
from src.core.aggregator import SessionDataAggregator

logger = logging.getLogger(__name__)


async def run(user_id: int) -> SessionDataAggregator:
    aggregator = SessionDataAggregator(HttpDataService())
    await aggregator.load_initial_data(user_id)

    if aggregator.current_user is None:
        logger.error("Could not load user %d", user_id)
        return aggregator

    print(f"User: {aggregator.current_user.name} <{aggregator.current_user.email}>")
    print(f"Friends: {', '.join(f.name for f in aggregator.friends) or '(none)'}")
    print("Schedule:")
    for scheduled in aggregator.scheduled_activities:
        activity = aggregator.get_activity(scheduled.activity_id)
        name = activity.name if activity else f"activity {scheduled.activity_id}"
        local = scheduled.scheduled_at.astimezone(aggregator.time_zone)
        print(f"  {local:%Y-%m-%d %H:%M}  {name}")
    print("Pending invites:")
    for invite in aggregator.invites:
        print(f"  {invite.title} @ {invite.location_name} ({invite.scheduled_at:%Y-%m-%d %H:%M})")
    return aggregator


def main() -> None:
    user_id = int(sys.argv[1]) if len(sys.argv) > 1 else settings.SESSION_USER_ID
    if user_id <= 0:
        print("ERROR: pass a user id or set SESSION_USER_ID in .env", file=sys.stderr)
        sys.exit(1)
    asyncio.run(run(user_id))


if __name__ == "__main__":
    main()

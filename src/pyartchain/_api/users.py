"""User profile and achievement endpoints."""

from __future__ import annotations

from urllib.parse import quote

from pyartchain._api._common import parse_model, unwrap_data
from pyartchain._transport import Transport
from pyartchain.models.achievement import UserAchievements
from pyartchain.models.auth import WhoAmI


async def get_user(transport: Transport, user_id: str) -> WhoAmI:
    endpoint = f"/users/{quote(user_id, safe='')}"
    response = await transport.request(endpoint)
    return parse_model(WhoAmI, unwrap_data(response.data, endpoint=endpoint), endpoint=endpoint)


async def get_user_achievements(transport: Transport, user_id: str) -> UserAchievements:
    endpoint = f"/users/{quote(user_id, safe='')}/achievements"
    response = await transport.request(endpoint)
    return parse_model(UserAchievements, unwrap_data(response.data, endpoint=endpoint), endpoint=endpoint)

"""Contest endpoints."""

from __future__ import annotations

from pyartchain._api._common import parse_list, parse_model, unwrap_data
from pyartchain._transport import Transport
from pyartchain.models.contest import Contest, ContestStatus

CONTESTS_ENDPOINT = "/contests"


async def get_contests(transport: Transport, status: ContestStatus | None = None) -> list[Contest]:
    params = {"status": status.value} if status is not None else None
    response = await transport.request(CONTESTS_ENDPOINT, params=params)
    return parse_list(Contest, unwrap_data(response.data, endpoint=CONTESTS_ENDPOINT), endpoint=CONTESTS_ENDPOINT)


async def get_contest(transport: Transport, contest_id: int) -> Contest:
    endpoint = f"{CONTESTS_ENDPOINT}/{int(contest_id)}"
    response = await transport.request(endpoint)
    return parse_model(Contest, unwrap_data(response.data, endpoint=endpoint), endpoint=endpoint)

"""Authentication endpoints."""

from __future__ import annotations

from pyartchain._api._common import parse_model, raise_for_auth, unwrap_data
from pyartchain._transport import Transport
from pyartchain.exceptions import ArtchainTransportError
from pyartchain.models.auth import AuthResponse, LoginRequest, RegisterRequest, WhoAmI

LOGIN_ENDPOINT = "/auth/login"
LOGOUT_ENDPOINT = "/auth/logout"
REGISTER_ENDPOINT = "/auth/register"
ME_ENDPOINT = "/users/me"


async def login(transport: Transport, request: LoginRequest) -> AuthResponse:
    try:
        response = await transport.request(LOGIN_ENDPOINT, method="POST", body=request.model_dump())
    except ArtchainTransportError as exc:
        raise_for_auth(exc)
        raise
    data = unwrap_data(response.data, endpoint=LOGIN_ENDPOINT)
    return parse_model(AuthResponse, data, endpoint=LOGIN_ENDPOINT)


async def logout(transport: Transport) -> None:
    await transport.request(LOGOUT_ENDPOINT, method="POST")


async def register(transport: Transport, request: RegisterRequest) -> None:
    response = await transport.request(REGISTER_ENDPOINT, method="POST", body=request.to_body())
    unwrap_data(response.data, endpoint=REGISTER_ENDPOINT)


async def get_me(transport: Transport) -> WhoAmI:
    try:
        response = await transport.request(ME_ENDPOINT)
    except ArtchainTransportError as exc:
        raise_for_auth(exc)
        raise
    data = unwrap_data(response.data, endpoint=ME_ENDPOINT)
    return parse_model(WhoAmI, data, endpoint=ME_ENDPOINT)

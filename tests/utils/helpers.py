from typing import Any

import httpx

from app.auth.models.user import Profile
from app.core.security import create_access_token


def access_token_for(profile: Profile) -> str:
    return create_access_token({"sub": str(profile.id), "email": profile.email})


def set_access_token_cookie(client: httpx.AsyncClient, access_token: str) -> None:
    """Set only the access token cookie on the test client."""
    client.cookies.set("access_token", access_token)


def login_as(client: httpx.AsyncClient, profile: Profile) -> None:
    set_access_token_cookie(client, access_token_for(profile))


def assert_error_response(
    response: httpx.Response, status_code: int, code: str
) -> dict[str, Any]:
    """Assert the uniform error body and return its ``error`` object."""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    return body["error"]

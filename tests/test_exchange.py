"""Tests for token endpoint requests and response parsing."""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from oauthapp.provider import AuthStyle, TokenRetrieveError
from oauthapp.provider.exchange import retrieve_token

TOKEN_URL = "https://provider.example/token"


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.mark.asyncio
async def test_in_params_sends_credentials_in_body(respx_mock):
    route = respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"access_token": "tok", "token_type": "bearer"})
    )
    token = await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"}, AuthStyle.IN_PARAMS)

    body = _form(route.calls.last.request)
    assert body["client_id"] == "id"
    assert body["client_secret"] == "secret"
    assert "authorization" not in route.calls.last.request.headers
    assert token.access_token == "tok"


@pytest.mark.asyncio
async def test_in_header_uses_basic_auth(respx_mock):
    route = respx_mock.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "tok"}))
    await retrieve_token(TOKEN_URL, "my id", "s&cret", {"grant_type": "client_credentials"}, AuthStyle.IN_HEADER)

    request = route.calls.last.request
    expected = base64.b64encode(b"my+id:s%26cret").decode()
    assert request.headers["authorization"] == f"Basic {expected}"
    assert "client_secret" not in _form(request)


@pytest.mark.asyncio
async def test_auto_falls_back_to_params_and_remembers(respx_mock):
    def handler(request: httpx.Request) -> httpx.Response:
        if "authorization" in request.headers:
            return httpx.Response(401, json={"error": "invalid_client"})
        return httpx.Response(200, json={"access_token": "tok"})

    route = respx_mock.post(TOKEN_URL).mock(side_effect=handler)

    await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"})
    assert route.call_count == 2

    await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"})
    assert route.call_count == 3
    assert "authorization" not in route.calls.last.request.headers


@pytest.mark.asyncio
async def test_error_response_is_retrieve_error(respx_mock):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(400, json={"error": "invalid_grant", "error_description": "bad code"})
    )
    with pytest.raises(TokenRetrieveError) as exc:
        await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "authorization_code"}, AuthStyle.IN_PARAMS)
    assert exc.value.status_code == 400
    assert exc.value.error == "invalid_grant"
    assert exc.value.error_description == "bad code"


@pytest.mark.asyncio
async def test_success_without_access_token_is_retrieve_error(respx_mock):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"error": "bad_verification_code"})
    )
    with pytest.raises(TokenRetrieveError) as exc:
        await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "authorization_code"}, AuthStyle.IN_PARAMS)
    assert exc.value.error == "bad_verification_code"


@pytest.mark.asyncio
async def test_form_encoded_response(respx_mock):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(
            200,
            content=b"access_token=tok&token_type=bearer&refresh_token=ref&expires_in=3600",
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
    )
    token = await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "authorization_code"}, AuthStyle.IN_PARAMS)
    assert token.access_token == "tok"
    assert token.refresh_token == "ref"
    assert token.expiry is not None
    assert token.expiry > datetime.now(timezone.utc)


@pytest.mark.asyncio
async def test_transport_error_propagates(respx_mock):
    respx_mock.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("boom"))
    with pytest.raises(httpx.ConnectError):
        await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"}, AuthStyle.IN_PARAMS)


# ── response edge cases ───────────────────────────────

@pytest.mark.asyncio
async def test_null_optional_fields_are_empty(respx_mock):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(
            200,
            json={"access_token": "at", "token_type": None, "refresh_token": None, "expires_in": None},
        )
    )
    token = await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "authorization_code"}, AuthStyle.IN_PARAMS)
    assert token.access_token == "at"
    assert token.token_type == ""
    assert token.refresh_token == ""
    assert token.expiry is None
    assert token.type() == "Bearer"


@pytest.mark.asyncio
@pytest.mark.parametrize("expires_in", ["3600", "3600.0", 3599.5])
async def test_expires_in_accepts_numeric_forms(respx_mock, expires_in):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"access_token": "at", "expires_in": expires_in})
    )
    before = datetime.now(timezone.utc)
    token = await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"}, AuthStyle.IN_PARAMS)
    assert token.expiry is not None
    assert 3500 < (token.expiry - before).total_seconds() <= 3601


@pytest.mark.asyncio
async def test_unparsable_expires_in_is_retrieve_error(respx_mock):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"access_token": "at", "expires_in": "soon"})
    )
    with pytest.raises(TokenRetrieveError) as exc:
        await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"}, AuthStyle.IN_PARAMS)
    assert "expires_in" in exc.value.body


@pytest.mark.asyncio
async def test_non_object_json_is_retrieve_error(respx_mock):
    respx_mock.post(TOKEN_URL).mock(return_value=httpx.Response(200, json=["at"]))
    with pytest.raises(TokenRetrieveError) as exc:
        await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"}, AuthStyle.IN_PARAMS)
    assert exc.value.status_code == 200


@pytest.mark.asyncio
async def test_non_json_server_error_keeps_body(respx_mock):
    respx_mock.post(TOKEN_URL).mock(
        return_value=httpx.Response(502, content=b"<html>Bad Gateway</html>", headers={"content-type": "text/html"})
    )
    with pytest.raises(TokenRetrieveError) as exc:
        await retrieve_token(TOKEN_URL, "id", "secret", {"grant_type": "client_credentials"}, AuthStyle.IN_PARAMS)
    assert exc.value.status_code == 502
    assert exc.value.body == "<html>Bad Gateway</html>"

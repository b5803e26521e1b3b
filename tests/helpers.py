"""Config and stored-token helpers shared by the tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from oauthapp.config_store import ConfigRecord
from oauthapp.creds import cred_key
from oauthapp.provider import Token
from oauthapp.storage import Storage

TOKEN_URL = "https://provider.example/token"
AUTH_URL = "https://provider.example/authorize"


def custom_config(**options) -> ConfigRecord:
    opts = {"auth_code_url": AUTH_URL, "token_url": TOKEN_URL, "auth_style": "in_params"}
    opts.update(options)
    return ConfigRecord(provider="custom", client_id="abc", client_secret="def", provider_options=opts)


def client_credentials_config(**options) -> ConfigRecord:
    opts = {"token_url": TOKEN_URL, "auth_style": "in_params"}
    opts.update(options)
    return ConfigRecord(
        provider="custom_client_credentials",
        client_id="abc",
        client_secret="def",
        provider_options=opts,
    )


def store_token(storage: Storage, name: str, expires_in: float | None, **fields) -> Token:
    expiry = None
    if expires_in is not None:
        expiry = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    token = Token(access_token=fields.pop("access_token", "old"), expiry=expiry, **fields)
    storage.put(cred_key(name), token.to_record())
    return token

"""Shared fixtures: in-memory storage and the two stores built on it."""

from __future__ import annotations

import pytest

from oauthapp.config_store import ConfigStore
from oauthapp.creds import CredentialStore
from oauthapp.provider import GLOBAL_REGISTRY
from oauthapp.provider.exchange import reset_auth_style_cache
from oauthapp.storage import Storage


@pytest.fixture(autouse=True)
def _clear_auth_style_cache():
    reset_auth_style_cache()
    yield
    reset_auth_style_cache()


@pytest.fixture
def storage():
    s = Storage(in_memory=True)
    yield s
    s.close()


@pytest.fixture
def config_store(storage):
    return ConfigStore(storage, GLOBAL_REGISTRY)


@pytest.fixture
def cred_store(storage, config_store):
    return CredentialStore(storage, config_store)

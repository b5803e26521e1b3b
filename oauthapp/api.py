"""
FastAPI 路由：配置管理与凭据读写。
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException, Path, Query

from oauthapp.config_store import ConfigRecord, ConfigStore
from oauthapp.creds import CREDENTIAL_NAME_PATTERN, CredentialStore
from oauthapp.errors import CredentialError, NotConfiguredError
from oauthapp.models import AuthCodeURLRequest, ConfigRequest, CredentialRequest
from oauthapp.provider import (
    GLOBAL_REGISTRY,
    NoOptionsError,
    NoProviderWithVersionError,
    NoSuchProviderError,
    OptionError,
    Registry,
    TokenRetrieveError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

NAME_PATTERN = f"^{CREDENTIAL_NAME_PATTERN}$"

# 这些全局引用会在 main.py 中注入
_config_store: ConfigStore | None = None
_cred_store: CredentialStore | None = None
_registry: Registry = GLOBAL_REGISTRY


def init_api(config_store: ConfigStore, cred_store: CredentialStore, registry: Registry = GLOBAL_REGISTRY):
    """注入全局依赖（由 main.py 调用）。"""
    global _config_store, _cred_store, _registry
    _config_store = config_store
    _cred_store = cred_store
    _registry = registry


# ── 配置 ──────────────────────────────────────────────

@router.get("/config")
async def read_config() -> dict[str, Any]:
    """获取当前配置（不返回 client_secret）。"""
    record = _config_store.get()
    if record is None:
        raise HTTPException(404, "not configured")
    return {
        "client_id": record.client_id,
        "auth_url_params": record.auth_url_params,
        "provider": record.provider,
        "provider_version": record.provider_version,
        "provider_options": record.provider_options,
    }


@router.put("/config")
async def write_config(body: ConfigRequest) -> dict:
    """整体替换配置，校验失败时不落盘。"""
    if not body.client_id:
        raise HTTPException(400, "missing client ID")
    if not body.provider:
        raise HTTPException(400, "missing provider")

    record = ConfigRecord(
        provider=body.provider,
        provider_version=body.provider_version,
        client_id=body.client_id,
        client_secret=body.client_secret,
        provider_options=body.provider_options,
        auth_url_params=body.auth_url_params,
    )
    try:
        stored = await _config_store.put(record)
    except NoSuchProviderError:
        raise HTTPException(400, f'provider "{body.provider}" does not exist')
    except NoProviderWithVersionError:
        raise HTTPException(400, f"invalid provider version {body.provider_version}")
    except NoOptionsError:
        raise HTTPException(400, f'provider "{body.provider}" does not accept any options')
    except OptionError as e:
        logger.warning(f"[{body.provider}] {e}")
        raise HTTPException(400, {"error": str(e), "option": e.option, "message": e.message})

    return {"message": "Configuration saved", "provider_version": stored.provider_version}


@router.delete("/config")
async def delete_config() -> dict:
    _config_store.delete()
    return {"message": "Configuration deleted"}


@router.put("/config/auth_code_url")
async def auth_code_url(body: AuthCodeURLRequest) -> dict:
    """
    生成授权跳转 URL。

    同名参数以配置中的 auth_url_params 为准。
    """
    try:
        record, provider = await _config_store.provider()
    except NotConfiguredError:
        raise HTTPException(400, "not configured")

    if not provider.is_authorization_required():
        raise HTTPException(400, f'the provider "{record.provider}" does not support authorization')
    if not body.state:
        raise HTTPException(400, "missing state")

    builder = provider.new_auth_code_url_config_builder(record.client_id)
    if body.redirect_url:
        builder = builder.with_redirect_url(body.redirect_url)
    if body.scopes:
        builder = builder.with_scopes(*body.scopes)

    params = dict(body.auth_url_params)
    params.update(record.auth_url_params)

    return {"url": builder.build().auth_code_url(body.state, params)}


@router.get("/providers")
async def list_providers() -> list[str]:
    """列出所有已注册的 provider。"""
    return _registry.names()


# ── 凭据 ──────────────────────────────────────────────

def _split_scopes(scopes: Optional[List[str]]) -> Optional[List[str]]:
    """支持 ?scopes=a&scopes=b 和 ?scopes=a,b 两种写法。"""
    if not scopes:
        return None
    result = [s.strip() for item in scopes for s in item.split(",") if s.strip()]
    return result or None


@router.get("/creds/{name}")
async def read_credential(
    name: str = Path(pattern=NAME_PATTERN),
    scopes: Optional[List[str]] = Query(default=None, description="Scopes for client credentials providers."),
) -> dict[str, Any]:
    """获取当前的 access_token，必要时刷新。"""
    try:
        result = await _cred_store.get_token(name, _split_scopes(scopes))
    except CredentialError as e:
        raise HTTPException(400, str(e))
    except TokenRetrieveError as e:
        raise HTTPException(400, f"token refresh rejected by provider: {e}")

    if result is None:
        raise HTTPException(404, f"credential {name!r} not found")

    token = result.token
    data: dict[str, Any] = {
        "access_token": token.access_token,
        "type": token.type(),
    }
    if token.expiry is not None:
        data["expire_time"] = token.expiry.isoformat()
    if result.expired:
        data["expired"] = True
    return data


@router.put("/creds/{name}")
async def write_credential(body: CredentialRequest, name: str = Path(pattern=NAME_PATTERN)) -> dict:
    """用授权码或 refresh_token 写入新凭据 (或覆盖已有凭据)。"""
    try:
        await _cred_store.exchange(
            name,
            code=body.code,
            refresh_token=body.refresh_token,
            redirect_url=body.redirect_url,
        )
    except CredentialError as e:
        raise HTTPException(400, str(e))

    return {"message": f"Credential {name} saved"}


@router.delete("/creds/{name}")
async def delete_credential(name: str = Path(pattern=NAME_PATTERN)) -> dict:
    await _cred_store.delete(name)
    return {"message": f"Credential {name} deleted"}

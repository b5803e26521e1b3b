"""
basic provider：静态端点对 (或通过 discovery 解析出的端点对)。

所有知名服务、Azure AD 以及完全自定义的 provider 都基于它构造。
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import urlencode

import httpx

from .base import (
    AuthCodeURLConfig,
    AuthCodeURLConfigBuilder,
    ExchangeConfig,
    ExchangeConfigBuilder,
    Provider,
    TokenConfig,
    TokenConfigBuilder,
)
from .discovery import discover
from .errors import (
    AuthorizationRequiredError,
    DiscoveryError,
    NoOptionsError,
    NoProviderWithVersionError,
    OptionError,
)
from .exchange import retrieve_token
from .token import Token
from .types import AuthStyle, Endpoint, GrantType, OAuthParams, ResponseType, azure_ad_endpoint

logger = logging.getLogger(__name__)

LATEST_VERSION = -1


# ── 授权 URL ──────────────────────────────────────────

class BasicAuthCodeURLConfig(AuthCodeURLConfig):
    def __init__(self, endpoint: Endpoint, client_id: str, redirect_url: str, scopes: List[str]):
        self.endpoint = endpoint
        self.client_id = client_id
        self.redirect_url = redirect_url
        self.scopes = scopes

    def auth_code_url(self, state: str, params: Optional[Dict[str, str]] = None) -> str:
        query = {
            OAuthParams.RESPONSE_TYPE: ResponseType.CODE.value,
            OAuthParams.CLIENT_ID: self.client_id,
        }
        if self.redirect_url:
            query[OAuthParams.REDIRECT_URI] = self.redirect_url
        if self.scopes:
            query[OAuthParams.SCOPE] = " ".join(self.scopes)
        if state:
            query[OAuthParams.STATE] = state
        # 额外参数单值覆盖
        query.update(params or {})

        sep = "&" if "?" in self.endpoint.auth_url else "?"
        return f"{self.endpoint.auth_url}{sep}{urlencode(sorted(query.items()))}"


class BasicAuthCodeURLConfigBuilder(AuthCodeURLConfigBuilder):
    def __init__(self, endpoint: Endpoint, client_id: str):
        self._endpoint = endpoint
        self._client_id = client_id
        self._redirect_url = ""
        self._scopes: List[str] = []

    def with_redirect_url(self, redirect_url: str) -> "BasicAuthCodeURLConfigBuilder":
        self._redirect_url = redirect_url
        return self

    def with_scopes(self, *scopes: str) -> "BasicAuthCodeURLConfigBuilder":
        self._scopes = list(scopes)
        return self

    def build(self) -> BasicAuthCodeURLConfig:
        return BasicAuthCodeURLConfig(self._endpoint, self._client_id, self._redirect_url, self._scopes)


# ── 授权码 / refresh_token 交换 ────────────────────────

class BasicExchangeConfig(ExchangeConfig):
    def __init__(
        self,
        endpoint: Endpoint,
        client_id: str,
        client_secret: str,
        redirect_url: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.client = client

    async def exchange(self, code: str) -> Token:
        """用授权码交换 Token。"""
        params = {
            OAuthParams.GRANT_TYPE: GrantType.AUTHORIZATION_CODE.value,
            OAuthParams.CODE: code,
        }
        if self.redirect_url:
            params[OAuthParams.REDIRECT_URI] = self.redirect_url
        return await retrieve_token(
            self.endpoint.token_url,
            self.client_id,
            self.client_secret,
            params,
            self.endpoint.auth_style,
            self.client,
        )

    async def refresh(self, token: Token) -> Token:
        """
        用 refresh_token 换取新的 access_token。

        provider 未轮换 refresh_token 时沿用旧值。
        """
        if not token.refresh_token:
            raise ValueError("oauth2: token expired and refresh token is not set")

        params = {
            OAuthParams.GRANT_TYPE: GrantType.REFRESH_TOKEN.value,
            OAuthParams.REFRESH_TOKEN: token.refresh_token,
        }
        new_token = await retrieve_token(
            self.endpoint.token_url,
            self.client_id,
            self.client_secret,
            params,
            self.endpoint.auth_style,
            self.client,
        )
        if not new_token.refresh_token:
            new_token.refresh_token = token.refresh_token
        return new_token


class BasicExchangeConfigBuilder(ExchangeConfigBuilder):
    def __init__(self, endpoint: Endpoint, client_id: str, client_secret: str):
        self._endpoint = endpoint
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_url = ""
        self._client: Optional[httpx.AsyncClient] = None

    def with_redirect_url(self, redirect_url: str) -> "BasicExchangeConfigBuilder":
        self._redirect_url = redirect_url
        return self

    def with_http_client(self, client: httpx.AsyncClient) -> "BasicExchangeConfigBuilder":
        self._client = client
        return self

    def build(self) -> BasicExchangeConfig:
        return BasicExchangeConfig(
            self._endpoint,
            self._client_id,
            self._client_secret,
            self._redirect_url,
            self._client,
        )


# ── client credentials ────────────────────────────────

class BasicTokenConfig(TokenConfig):
    def __init__(
        self,
        endpoint: Endpoint,
        client_id: str,
        client_secret: str,
        scopes: List[str],
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = scopes
        self.client = client

    async def token(self) -> Token:
        params = {OAuthParams.GRANT_TYPE: GrantType.CLIENT_CREDENTIALS.value}
        if self.scopes:
            params[OAuthParams.SCOPE] = " ".join(self.scopes)
        return await retrieve_token(
            self.endpoint.token_url,
            self.client_id,
            self.client_secret,
            params,
            self.endpoint.auth_style,
            self.client,
        )


class BasicTokenConfigBuilder(TokenConfigBuilder):
    def __init__(self, endpoint: Endpoint, client_id: str, client_secret: str):
        self._endpoint = endpoint
        self._client_id = client_id
        self._client_secret = client_secret
        self._scopes: List[str] = []
        self._client: Optional[httpx.AsyncClient] = None

    def with_scopes(self, *scopes: str) -> "BasicTokenConfigBuilder":
        self._scopes = list(scopes)
        return self

    def with_http_client(self, client: httpx.AsyncClient) -> "BasicTokenConfigBuilder":
        self._client = client
        return self

    def build(self) -> BasicTokenConfig:
        return BasicTokenConfig(
            self._endpoint,
            self._client_id,
            self._client_secret,
            self._scopes,
            self._client,
        )


# ── Provider ──────────────────────────────────────────

class BasicProvider(Provider):
    def __init__(self, vsn: int, endpoint: Endpoint, authorization_required: bool = True):
        self._vsn = vsn
        self.endpoint = endpoint
        self._authorization_required = authorization_required

    @property
    def version(self) -> int:
        return self._vsn

    def is_authorization_required(self) -> bool:
        return self._authorization_required

    def new_auth_code_url_config_builder(self, client_id: str) -> BasicAuthCodeURLConfigBuilder:
        return BasicAuthCodeURLConfigBuilder(self.endpoint, client_id)

    def new_exchange_config_builder(self, client_id: str, client_secret: str) -> BasicExchangeConfigBuilder:
        return BasicExchangeConfigBuilder(self.endpoint, client_id, client_secret)

    def new_token_config_builder(self, client_id: str, client_secret: str) -> BasicTokenConfigBuilder:
        if self.is_authorization_required():
            raise AuthorizationRequiredError()
        return BasicTokenConfigBuilder(self.endpoint, client_id, client_secret)


# ── Factories ─────────────────────────────────────────

def _check_version(name: str, vsn: int):
    if vsn not in (LATEST_VERSION, 1):
        raise NoProviderWithVersionError(name, vsn)


def basic_factory(endpoint: Endpoint):
    """知名服务：固定端点，不接受任何 option。"""

    async def factory(name: str, vsn: int, opts: Dict[str, str], client: Optional[httpx.AsyncClient] = None) -> Provider:
        _check_version(name, vsn)
        if opts:
            raise NoOptionsError(name)
        return BasicProvider(1, endpoint)

    return factory


async def azure_ad_factory(name: str, vsn: int, opts: Dict[str, str], client: Optional[httpx.AsyncClient] = None) -> Provider:
    _check_version(name, vsn)
    for key in opts:
        if key != "tenant":
            raise OptionError(key, "unknown option")

    tenant = opts.get("tenant", "")
    if not tenant:
        raise OptionError("tenant", "tenant is required")
    return BasicProvider(1, azure_ad_endpoint(tenant))


_CUSTOM_OPTIONS = ("discovery_url", "auth_code_url", "token_url", "auth_style")


def custom_factory(authorization_required: bool):
    """
    完全自定义的 provider。

    端点来源二选一：
    - discovery_url：构造时执行一次 OIDC discovery
    - auth_code_url + token_url：手动指定
    """

    async def factory(name: str, vsn: int, opts: Dict[str, str], client: Optional[httpx.AsyncClient] = None) -> Provider:
        _check_version(name, vsn)
        for key in opts:
            if key not in _CUSTOM_OPTIONS:
                raise OptionError(key, "unknown option")

        discovery_url = opts.get("discovery_url", "")
        if discovery_url:
            try:
                metadata = await discover(discovery_url, client)
            except DiscoveryError as e:
                raise OptionError("discovery_url", f"error making new provider: {e}") from e
            auth_url = metadata.authorization_endpoint
            token_url = metadata.token_endpoint
            logger.info(f"[{name}] 已通过 discovery 解析端点: {token_url}")
        else:
            auth_url = opts.get("auth_code_url", "")
            token_url = opts.get("token_url", "")

        if authorization_required and not auth_url:
            raise OptionError("auth_code_url", "authorization code URL is required")
        if not token_url:
            raise OptionError("token_url", "token URL is required")

        raw_style = opts.get("auth_style", "")
        if raw_style == "":
            auth_style = AuthStyle.AUTO
        elif raw_style in (AuthStyle.IN_HEADER.value, AuthStyle.IN_PARAMS.value):
            auth_style = AuthStyle(raw_style)
        else:
            raise OptionError("auth_style", 'unknown authentication style; expected one of "in_header" or "in_params"')

        endpoint = Endpoint(auth_url=auth_url, token_url=token_url, auth_style=auth_style)
        return BasicProvider(1, endpoint, authorization_required=authorization_required)

    return factory

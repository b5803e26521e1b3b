"""
Token 端点交互：向 token URL 发送表单请求并解析标准 OAuth 2.0 响应。

支持两种 client 认证方式 (Header / Body)，以及自动探测。
"""

import base64
import logging
import time
from datetime import timedelta
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, quote_plus

import httpx

from .errors import TokenRetrieveError
from .token import Token, utcnow
from .types import AuthStyle, OAuthParams

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

# token_url -> 自动探测后确认可用的 AuthStyle
_auth_style_cache: Dict[str, AuthStyle] = {}


def reset_auth_style_cache():
    _auth_style_cache.clear()


def _basic_auth_header(client_id: str, client_secret: str) -> str:
    # RFC 6749 2.3.1: 先 form-urlencode 再做 Basic
    raw = f"{quote_plus(client_id)}:{quote_plus(client_secret)}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


def _parse_expires_in(value: Any, status_code: int) -> Optional[int]:
    """expires_in 可能是整数、浮点或数字字符串；无法解析时视为 provider 错误。"""
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise TokenRetrieveError(status_code, body=f"server response has invalid expires_in: {value!r}")


def _str_field(data: Dict[str, Any], name: str) -> str:
    # null 等同于缺省
    value = data.get(name)
    return "" if value is None else str(value)


def _parse_response(resp: httpx.Response) -> Token:
    content_type = resp.headers.get("content-type", "").split(";")[0].strip().lower()
    body = resp.text

    if content_type in ("application/x-www-form-urlencoded", "text/plain"):
        data: Dict[str, Any] = dict(parse_qsl(body))
    else:
        try:
            data = resp.json()
        except ValueError:
            raise TokenRetrieveError(resp.status_code, body=body)
        if not isinstance(data, dict):
            raise TokenRetrieveError(resp.status_code, body=body)

    if not 200 <= resp.status_code < 300:
        raise TokenRetrieveError(
            resp.status_code,
            body=body,
            error=str(data.get("error", "")),
            error_description=str(data.get("error_description", "")),
            error_uri=str(data.get("error_uri", "")),
        )

    # 某些 provider (如 GitHub) 用 200 返回错误
    if not data.get(OAuthParams.ACCESS_TOKEN):
        raise TokenRetrieveError(
            resp.status_code,
            body="server response missing access_token",
            error=str(data.get("error", "")),
            error_description=str(data.get("error_description", "")),
        )

    token = Token(
        access_token=_str_field(data, OAuthParams.ACCESS_TOKEN),
        token_type=_str_field(data, OAuthParams.TOKEN_TYPE),
        refresh_token=_str_field(data, OAuthParams.REFRESH_TOKEN),
    )
    expires_in = _parse_expires_in(data.get(OAuthParams.EXPIRES_IN), resp.status_code)
    if expires_in:
        token.expiry = utcnow() + timedelta(seconds=expires_in)
    return token


async def _post(
    client: httpx.AsyncClient,
    token_url: str,
    client_id: str,
    client_secret: str,
    params: Dict[str, str],
    auth_style: AuthStyle,
) -> Token:
    data = dict(params)
    headers = {"Accept": "application/json"}
    if auth_style == AuthStyle.IN_PARAMS:
        data[OAuthParams.CLIENT_ID] = client_id
        if client_secret:
            data[OAuthParams.CLIENT_SECRET] = client_secret
    else:
        headers["Authorization"] = _basic_auth_header(client_id, client_secret)

    resp = await client.post(token_url, data=data, headers=headers)
    return _parse_response(resp)


async def retrieve_token(
    token_url: str,
    client_id: str,
    client_secret: str,
    params: Dict[str, str],
    auth_style: AuthStyle = AuthStyle.AUTO,
    client: Optional[httpx.AsyncClient] = None,
) -> Token:
    """
    向 token_url 发送 POST 请求换取 Token。

    Args:
        params: grant_type 及对应参数 (code / refresh_token / scope ...)
        auth_style: client 凭据的传递方式，AUTO 时先 Header 后 Body
        client: 可选的自定义 httpx 客户端 (测试/拦截用)

    Raises:
        TokenRetrieveError: provider 拒绝了请求
        httpx.HTTPError: 传输层错误
    """
    if client is None:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as owned:
            return await retrieve_token(token_url, client_id, client_secret, params, auth_style, owned)

    needs_detect = auth_style == AuthStyle.AUTO
    if needs_detect:
        auth_style = _auth_style_cache.get(token_url, AuthStyle.AUTO)
        needs_detect = auth_style == AuthStyle.AUTO
        if needs_detect:
            auth_style = AuthStyle.IN_HEADER

    started = time.monotonic()
    try:
        token = await _post(client, token_url, client_id, client_secret, params, auth_style)
    except TokenRetrieveError:
        if not needs_detect:
            raise
        logger.debug(f"[{token_url}] Header 认证被拒绝，改用 Body 参数重试")
        auth_style = AuthStyle.IN_PARAMS
        token = await _post(client, token_url, client_id, client_secret, params, auth_style)

    if needs_detect:
        _auth_style_cache[token_url] = auth_style
    logger.debug(f"[{token_url}] Token 请求完成 ({time.monotonic() - started:.2f}s)")
    return token

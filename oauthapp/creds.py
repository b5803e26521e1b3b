"""
Credential Store & Refresh Engine。

凭据名经 SHA-1 哈希后分桶存储，读取时按需刷新过期的 access_token。
所有写操作 (创建 / 刷新 / 删除) 共用一把 store 级别的锁，避免两个并发
刷新互相覆盖被轮换的 refresh_token；仍然有效的 token 读取不加锁也不联网。
"""

import asyncio
import hashlib
import logging
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel

from oauthapp.config_store import ConfigRecord, ConfigStore
from oauthapp.errors import (
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UserInputError,
)
from oauthapp.provider import Provider, Token, TokenRetrieveError
from oauthapp.provider.types import DEFAULT_EXPIRY_DELTA_SECONDS
from oauthapp.storage import Storage

logger = logging.getLogger(__name__)

CREDS_PATH = "creds"
CREDS_PATH_PREFIX = CREDS_PATH + "/"

# 只允许对 URL 和 shell 都不特殊的字符，首尾必须是单词字符
CREDENTIAL_NAME_PATTERN = r"\w(([\w.@~!_,:^-]+)?\w)?"


def cred_key(name: str) -> str:
    """哈希凭据名，并把前几个字节拆成独立的目录层级 (限制单层条目数)。"""
    digest = hashlib.sha1(name.encode("utf-8")).digest()
    first, second, rest = digest[:2], digest[2:4], digest[4:]
    return f"{CREDS_PATH_PREFIX}{first.hex()}/{second.hex()}/{rest.hex()}"


class TokenResult(BaseModel):
    token: Token
    # 已过期且无法刷新：仍返回旧 token，由调用方决定是否重新授权
    expired: bool = False


class CredentialStore:
    def __init__(
        self,
        storage: Storage,
        config_store: ConfigStore,
        http_client: Optional[httpx.AsyncClient] = None,
        expiry_delta: float = DEFAULT_EXPIRY_DELTA_SECONDS,
        max_refresh_failures: int = 0,
    ):
        self.storage = storage
        self.config_store = config_store
        self.http_client = http_client
        self.expiry_delta = expiry_delta
        self.max_refresh_failures = max_refresh_failures
        self._lock = asyncio.Lock()
        # key -> 连续被 provider 拒绝的 refresh 次数 (仅内存)
        self._refresh_failures: Dict[str, int] = {}

    # ── 持久化 ────────────────────────────────────────

    def _load(self, key: str) -> Optional[Token]:
        raw = self.storage.get(key)
        if raw is None:
            return None
        return Token.from_record(raw)

    def _save(self, key: str, token: Token):
        self.storage.put(key, token.to_record())
        self._refresh_failures.pop(key, None)

    # ── 创建 ──────────────────────────────────────────

    async def exchange(
        self,
        name: str,
        code: Optional[str] = None,
        refresh_token: Optional[str] = None,
        redirect_url: Optional[str] = None,
    ) -> Token:
        """
        用授权码或外部获得的 refresh_token 换取 Token 并保存。

        Raises:
            UserInputError: code 与 refresh_token 同时提供或都未提供，或 provider 不需要授权
            NotConfiguredError: 尚未配置
            InvalidCodeError / InvalidRefreshTokenError: provider 拒绝了 code / refresh_token
        """
        if code and refresh_token:
            raise UserInputError("cannot use both code and refresh_token")

        record, provider = await self.config_store.provider()
        if not provider.is_authorization_required():
            raise UserInputError(
                'this provider does not support creating credentials. Use "read" command to retrieve token'
            )

        key = cred_key(name)
        builder = provider.new_exchange_config_builder(record.client_id, record.client_secret)
        if self.http_client is not None:
            builder = builder.with_http_client(self.http_client)

        if code:
            if redirect_url:
                builder = builder.with_redirect_url(redirect_url)
            try:
                token = await builder.build().exchange(code)
            except TokenRetrieveError as e:
                logger.error(f"[{key}] invalid code: {e}")
                raise InvalidCodeError() from e
            except httpx.HTTPError as e:
                logger.error(f"[{key}] 授权码交换请求失败: {e}")
                raise
        elif refresh_token:
            try:
                token = await builder.build().refresh(Token(refresh_token=refresh_token))
            except TokenRetrieveError as e:
                logger.error(f"[{key}] invalid refresh_token: {e}")
                raise InvalidRefreshTokenError() from e
            except httpx.HTTPError as e:
                logger.error(f"[{key}] refresh_token 交换请求失败: {e}")
                raise
        else:
            raise UserInputError("missing code or refresh_token")

        async with self._lock:
            self._save(key, token)
        logger.info(f"[{key}] 凭据已保存")
        return token

    # ── 读取 / 刷新 ───────────────────────────────────

    async def get_token(self, name: str, scopes: Optional[List[str]] = None) -> Optional[TokenResult]:
        """
        获取当前有效的 access_token，必要时刷新。

        Returns:
            None 表示 3-legged provider 下没有该凭据。

        Raises:
            NotConfiguredError: 尚未配置
            InvalidCredentialsError: provider 拒绝了 client 凭据
            TokenRetrieveError: refresh 被 provider 拒绝 (记录保持不变)
        """
        record, provider = await self.config_store.provider()
        key = cred_key(name)

        token = self._load(key)
        if token is None and provider.is_authorization_required():
            return None
        if token is not None and token.valid(self.expiry_delta):
            return TokenResult(token=token)

        if not provider.is_authorization_required():
            return await self._fetch_client_credentials(key, record, provider, scopes)
        if not token.refresh_token:
            return TokenResult(token=token, expired=True)
        return await self._refresh(key, record, provider)

    async def _fetch_client_credentials(
        self,
        key: str,
        record: ConfigRecord,
        provider: Provider,
        scopes: Optional[List[str]],
    ) -> TokenResult:
        async with self._lock:
            # 等锁期间可能已有其他请求拿到了新 token
            current = self._load(key)
            if current is not None and current.valid(self.expiry_delta):
                return TokenResult(token=current)

            builder = provider.new_token_config_builder(record.client_id, record.client_secret)
            if scopes:
                builder = builder.with_scopes(*scopes)
            if self.http_client is not None:
                builder = builder.with_http_client(self.http_client)

            try:
                token = await builder.build().token()
            except TokenRetrieveError as e:
                logger.error(f"[{key}] client credentials 被拒绝: {e}")
                raise InvalidCredentialsError() from e
            except httpx.HTTPError as e:
                logger.error(f"[{key}] client credentials 请求失败: {e}")
                raise

            self._save(key, token)
        logger.info(f"[{key}] 已通过 client credentials 获取 Token")
        return TokenResult(token=token)

    async def _refresh(self, key: str, record: ConfigRecord, provider: Provider) -> Optional[TokenResult]:
        async with self._lock:
            current = self._load(key)
            if current is None:
                return None
            if current.valid(self.expiry_delta):
                return TokenResult(token=current)
            if not current.refresh_token:
                return TokenResult(token=current, expired=True)

            builder = provider.new_exchange_config_builder(record.client_id, record.client_secret)
            if self.http_client is not None:
                builder = builder.with_http_client(self.http_client)

            try:
                token = await builder.build().refresh(current)
            except TokenRetrieveError as e:
                logger.error(f"[{key}] 刷新 token 失败: {e}")
                if e.error == "invalid_client":
                    raise InvalidCredentialsError() from e
                self._record_refresh_failure(key)
                raise
            except httpx.HTTPError as e:
                logger.error(f"[{key}] 刷新请求失败: {e}")
                raise

            self._save(key, token)
        logger.info(f"[{key}] Token 已刷新")
        return TokenResult(token=token)

    def _record_refresh_failure(self, key: str):
        """累计连续失败次数，达到上限时视为授权已被永久撤销并删除记录。调用方持有锁。"""
        failures = self._refresh_failures.get(key, 0) + 1
        if self.max_refresh_failures and failures >= self.max_refresh_failures:
            logger.warning(f"[{key}] 连续 {failures} 次刷新失败，删除凭据")
            self.storage.delete(key)
            self._refresh_failures.pop(key, None)
        else:
            self._refresh_failures[key] = failures

    # ── 删除 ──────────────────────────────────────────

    async def delete(self, name: str):
        """删除凭据；不存在时同样成功。"""
        key = cred_key(name)
        async with self._lock:
            self.storage.delete(key)
            self._refresh_failures.pop(key, None)
        logger.info(f"[{key}] 凭据已删除")

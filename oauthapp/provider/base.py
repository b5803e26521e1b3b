"""
Provider 能力接口。

按授权类型划分出三种 builder，使非法组合 (如对 2-legged provider 发起
授权码交换) 在接口层面就无法调用。
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from .token import Token


class AuthCodeURLConfig(ABC):
    @abstractmethod
    def auth_code_url(self, state: str, params: Optional[Dict[str, str]] = None) -> str:
        ...


class AuthCodeURLConfigBuilder(ABC):
    @abstractmethod
    def with_redirect_url(self, redirect_url: str) -> "AuthCodeURLConfigBuilder":
        ...

    @abstractmethod
    def with_scopes(self, *scopes: str) -> "AuthCodeURLConfigBuilder":
        ...

    @abstractmethod
    def build(self) -> AuthCodeURLConfig:
        ...


class ExchangeConfig(ABC):
    @abstractmethod
    async def exchange(self, code: str) -> Token:
        ...

    @abstractmethod
    async def refresh(self, token: Token) -> Token:
        ...


class ExchangeConfigBuilder(ABC):
    @abstractmethod
    def with_redirect_url(self, redirect_url: str) -> "ExchangeConfigBuilder":
        ...

    @abstractmethod
    def with_http_client(self, client: httpx.AsyncClient) -> "ExchangeConfigBuilder":
        ...

    @abstractmethod
    def build(self) -> ExchangeConfig:
        ...


class TokenConfig(ABC):
    @abstractmethod
    async def token(self) -> Token:
        ...


class TokenConfigBuilder(ABC):
    @abstractmethod
    def with_scopes(self, *scopes: str) -> "TokenConfigBuilder":
        ...

    @abstractmethod
    def with_http_client(self, client: httpx.AsyncClient) -> "TokenConfigBuilder":
        ...

    @abstractmethod
    def build(self) -> TokenConfig:
        ...


class Provider(ABC):
    @property
    @abstractmethod
    def version(self) -> int:
        """构造该实例时使用的 schema 版本，随配置一起保存。"""

    @abstractmethod
    def is_authorization_required(self) -> bool:
        """3-legged (授权码) 为 True，2-legged (client credentials) 为 False。"""

    @abstractmethod
    def new_auth_code_url_config_builder(self, client_id: str) -> AuthCodeURLConfigBuilder:
        ...

    @abstractmethod
    def new_exchange_config_builder(self, client_id: str, client_secret: str) -> ExchangeConfigBuilder:
        ...

    @abstractmethod
    def new_token_config_builder(self, client_id: str, client_secret: str) -> TokenConfigBuilder:
        """
        Raises:
            AuthorizationRequiredError: provider 需要用户授权时
        """

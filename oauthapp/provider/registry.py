"""
Provider 注册表：provider 名称 -> 带版本的工厂函数。

只在进程启动 (模块导入) 时注册，之后只读，无需加锁。
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from .base import Provider
from .errors import NoSuchProviderError

logger = logging.getLogger(__name__)

# (name, version, options, http_client) -> Provider
FactoryFunc = Callable[[str, int, Dict[str, str], Optional[httpx.AsyncClient]], Awaitable[Provider]]


class Registry:
    def __init__(self):
        self._factories: Dict[str, FactoryFunc] = {}

    def register(self, name: str, factory: FactoryFunc):
        if name in self._factories:
            raise RuntimeError(f"provider {name!r} is already registered")
        self._factories[name] = factory

    # 与 register 相同，语义上表明重复注册是编程错误
    must_register = register

    def names(self) -> List[str]:
        return sorted(self._factories)

    async def resolve(
        self,
        name: str,
        version: int = -1,
        options: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> Provider:
        """
        构造 provider 实例。

        version 为 -1 时使用最新版本；否则按指定版本构造，保证旧配置总能
        还原出相同的行为。

        Raises:
            NoSuchProviderError / NoProviderWithVersionError / NoOptionsError / OptionError
        """
        factory = self._factories.get(name)
        if factory is None:
            raise NoSuchProviderError(name)
        provider = await factory(name, version, dict(options or {}), client)
        logger.debug(f"[{name}] provider 已构造 (version={provider.version})")
        return provider


GLOBAL_REGISTRY = Registry()

"""
Config Store：保存唯一的 provider 配置，并据此构造 live Provider。
"""

import asyncio
import logging
from typing import Dict, Optional, Tuple

import httpx
from pydantic import BaseModel, Field

from oauthapp.errors import NotConfiguredError
from oauthapp.provider import GLOBAL_REGISTRY, Provider, ProviderError, Registry
from oauthapp.storage import Storage

logger = logging.getLogger(__name__)

CONFIG_KEY = "config"


class ConfigRecord(BaseModel):
    """单例配置记录。client_secret 只写，读接口不返回。"""
    provider: str
    provider_version: int = -1
    client_id: str
    client_secret: str = ""
    provider_options: Dict[str, str] = Field(default_factory=dict)
    auth_url_params: Dict[str, str] = Field(default_factory=dict)


class ConfigStore:
    def __init__(
        self,
        storage: Storage,
        registry: Registry = GLOBAL_REGISTRY,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.storage = storage
        self.registry = registry
        self.http_client = http_client
        # (record, provider)：与当前存储的配置对应的 live Provider
        self._cached: Optional[Tuple[ConfigRecord, Provider]] = None
        self._resolve_lock = asyncio.Lock()

    def get(self) -> Optional[ConfigRecord]:
        raw = self.storage.get(CONFIG_KEY)
        if raw is None:
            return None
        return ConfigRecord.model_validate(raw)

    async def put(self, record: ConfigRecord) -> ConfigRecord:
        """
        整体替换配置。

        先经注册表校验并构造 Provider，成功后才持久化，无效配置不会落盘。
        保存的 provider_version 为实际构造时的版本。
        """
        provider = await self.registry.resolve(
            record.provider,
            record.provider_version,
            record.provider_options,
            self.http_client,
        )
        stored = record.model_copy(update={"provider_version": provider.version})
        self.storage.put(CONFIG_KEY, stored.model_dump())
        self._cached = (stored, provider)
        logger.info(f"[{stored.provider}] 配置已保存 (version={stored.provider_version})")
        return stored

    def delete(self):
        """删除配置；已签发的凭据不受影响，但之后无法再交换或刷新。"""
        self.storage.delete(CONFIG_KEY)
        self._cached = None
        logger.info("配置已删除")

    async def provider(self) -> Tuple[ConfigRecord, Provider]:
        """
        返回当前配置及对应的 live Provider。

        Raises:
            NotConfiguredError: 尚未配置
        """
        record = self.get()
        if record is None:
            raise NotConfiguredError()

        cached = self._cached
        if cached is not None and cached[0] == record:
            return cached

        async with self._resolve_lock:
            # 等锁期间可能已被其他请求构造好
            cached = self._cached
            if cached is not None and cached[0] == record:
                return cached

            # 进程重启后或配置被其他实例改写：按保存的版本重新构造
            provider = await self.registry.resolve(
                record.provider,
                record.provider_version,
                record.provider_options,
                self.http_client,
            )
            self._cached = (record, provider)
        return record, provider

    async def warm_up(self):
        """启动时预先构造 Provider，使首批读取无需 discovery。失败只记录，不阻止启动。"""
        if self.get() is None:
            return
        try:
            record, _ = await self.provider()
        except (ProviderError, httpx.HTTPError) as e:
            logger.warning(f"预构造 provider 失败，将在首次使用时重试: {e}")
            return
        logger.info(f"[{record.provider}] provider 已就绪")

"""
OAuth App 主入口：启动 FastAPI 后端服务。
"""

import logging
import sys
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from oauthapp import api
from oauthapp.config_store import ConfigStore
from oauthapp.creds import CredentialStore
from oauthapp.provider import GLOBAL_REGISTRY
from oauthapp.settings import AppSettings, load_settings
from oauthapp.storage import Storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan 事件处理：启动时预构造 provider，关闭时释放 HTTP 客户端和数据库。"""
    logger.info(f"已注册 {len(GLOBAL_REGISTRY.names())} 个 provider")
    await app.state.config_store.warm_up()

    yield  # 应用运行中

    logger.info("正在关闭...")
    await app.state.http_client.aclose()
    app.state.storage.close()


def create_app(settings: AppSettings | None = None, storage: Storage | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="OAuth App API",
        description="Issues, stores and refreshes OAuth 2.0 credentials",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ── 初始化核心组件 ────────────────────────────────────────

    # 持久化存储
    if storage is None:
        storage = Storage(settings.data_dir)

    # 所有 provider 请求共用的 HTTP 客户端
    http_client = httpx.AsyncClient(timeout=settings.http_timeout)

    config_store = ConfigStore(storage, GLOBAL_REGISTRY, http_client=http_client)
    cred_store = CredentialStore(
        storage,
        config_store,
        http_client=http_client,
        expiry_delta=settings.expiry_delta_seconds,
        max_refresh_failures=settings.max_refresh_failures,
    )

    # 注入依赖到 API 模块
    api.init_api(config_store=config_store, cred_store=cred_store, registry=GLOBAL_REGISTRY)

    # 注册 API 路由
    app.include_router(api.router)

    # 将组件存到 app.state，供 lifespan 访问
    app.state.settings = settings
    app.state.storage = storage
    app.state.http_client = http_client
    app.state.config_store = config_store
    app.state.cred_store = cred_store

    return app


def main():
    """主入口。"""
    settings = load_settings()
    if len(sys.argv) > 1:
        settings.port = int(sys.argv[1])

    # 日志配置
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logger.info(f"🚀 启动 OAuth App 后端 (port={settings.port})...")

    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

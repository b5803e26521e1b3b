"""
进程级设置：从 YAML 文件加载，环境变量可覆盖。
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_SETTINGS_SEARCH_PATHS = [
    "config/config.yaml",
    "config.yaml",
]

_ENV_OVERRIDES = {
    "OAUTHAPP_HOST": "host",
    "OAUTHAPP_PORT": "port",
    "OAUTHAPP_DATA_DIR": "data_dir",
    "OAUTHAPP_LOG_LEVEL": "log_level",
}


class AppSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8400
    data_dir: str = "data"
    log_level: str = "INFO"

    # 请求 provider token 端点 / discovery 的超时
    http_timeout: float = Field(default=30.0, gt=0)
    # access_token 在到期前多少秒即视为过期
    expiry_delta_seconds: float = Field(default=10, ge=0)
    # 连续多少次 refresh 被 provider 拒绝后删除该凭据，0 表示从不删除
    max_refresh_failures: int = Field(default=0, ge=0)


def find_settings_file() -> Optional[Path]:
    base = Path(os.getenv("OAUTHAPP_ROOT", "."))
    for p in _SETTINGS_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path
    return None


def load_settings(path: Optional[str | Path] = None) -> AppSettings:
    """
    加载设置。

    优先级：环境变量 > YAML 文件 > 默认值。
    """
    if path is None:
        path = find_settings_file()

    raw: dict = {}
    if path is not None:
        with open(path, "r", encoding="utf-8") as fp:
            raw = yaml.safe_load(fp) or {}
        logger.info(f"已加载设置文件: {path}")

    for env, field in _ENV_OVERRIDES.items():
        value = os.getenv(env)
        if value:
            raw[field] = value

    settings = AppSettings.model_validate(raw)
    # data_dir 相对于 OAUTHAPP_ROOT
    data_dir = Path(settings.data_dir)
    if not data_dir.is_absolute():
        settings.data_dir = str(Path(os.getenv("OAUTHAPP_ROOT", ".")) / data_dir)
    return settings

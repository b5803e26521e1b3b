"""
OIDC 元数据发现：从 well-known 地址获取授权端点和 Token 端点。
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from .errors import DiscoveryError

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


class ProviderMetadata(BaseModel):
    issuer: str
    authorization_endpoint: str = ""
    token_endpoint: str = ""


async def discover(url: str, client: Optional[httpx.AsyncClient] = None) -> ProviderMetadata:
    """
    获取 discovery_url 对应的 OIDC 元数据。

    issuer 必须与 discovery_url 一致 (忽略末尾斜杠)。
    """
    if client is None:
        async with httpx.AsyncClient(timeout=30.0) as owned:
            return await discover(url, owned)

    well_known = url.rstrip("/") + WELL_KNOWN_PATH
    logger.info(f"[{url}] 正在获取 OIDC 元数据: {well_known}")
    try:
        resp = await client.get(well_known, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        raise DiscoveryError(f"failed to fetch {well_known}: {e}") from e

    if resp.status_code != 200:
        raise DiscoveryError(f"{resp.status_code} {resp.reason_phrase}: {resp.text}")

    try:
        metadata = ProviderMetadata.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise DiscoveryError(f"failed to decode provider discovery object: {e}") from e

    if metadata.issuer.rstrip("/") != url.rstrip("/"):
        raise DiscoveryError(
            f"issuer did not match the issuer returned by provider, expected {url!r} got {metadata.issuer!r}"
        )
    return metadata

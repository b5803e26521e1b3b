"""
Token 模型：持久化的凭据记录，字段与标准 OAuth 2.0 Token 响应一致。
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .types import DEFAULT_EXPIRY_DELTA_SECONDS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Token(BaseModel):
    access_token: str = ""
    token_type: str = ""
    refresh_token: str = ""
    expiry: Optional[datetime] = None  # None 表示永不过期

    def type(self) -> str:
        """返回规范化的 token 类型 (默认 Bearer)。"""
        t = self.token_type
        if not t or t.lower() == "bearer":
            return "Bearer"
        if t.lower() == "mac":
            return "MAC"
        if t.lower() == "basic":
            return "Basic"
        return t

    def expired(self, expiry_delta: float = DEFAULT_EXPIRY_DELTA_SECONDS) -> bool:
        if self.expiry is None:
            return False
        expiry = self.expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry - timedelta(seconds=expiry_delta) < utcnow()

    def valid(self, expiry_delta: float = DEFAULT_EXPIRY_DELTA_SECONDS) -> bool:
        return bool(self.access_token) and not self.expired(expiry_delta)

    def to_record(self) -> Dict[str, Any]:
        """序列化为存储记录 (JSON 兼容)。"""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Token":
        return cls.model_validate(record)

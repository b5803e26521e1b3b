"""
OAuth 2.0 标准参数、常量与 Endpoint 描述。
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class GrantType(str, Enum):
    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"
    CLIENT_CREDENTIALS = "client_credentials"


class ResponseType(str, Enum):
    CODE = "code"


class AuthStyle(str, Enum):
    """换取 Token 时 client 凭据的传递方式。"""
    AUTO = "auto"  # 先尝试 Header，失败后回退到 Body，并记住结果
    IN_HEADER = "in_header"
    IN_PARAMS = "in_params"


# 标准 OAuth 参数名常量
class OAuthParams:
    CLIENT_ID = "client_id"
    CLIENT_SECRET = "client_secret"
    REDIRECT_URI = "redirect_uri"
    RESPONSE_TYPE = "response_type"
    SCOPE = "scope"
    STATE = "state"
    CODE = "code"
    GRANT_TYPE = "grant_type"
    REFRESH_TOKEN = "refresh_token"
    ACCESS_TOKEN = "access_token"
    TOKEN_TYPE = "token_type"
    EXPIRES_IN = "expires_in"


class Endpoint(BaseModel):
    """一对 OAuth 2.0 端点 (授权 URL + Token URL)，创建后不可变。"""
    model_config = ConfigDict(frozen=True)

    auth_url: str = ""
    token_url: str
    auth_style: AuthStyle = AuthStyle.AUTO


# ── 知名服务端点 (纯数据) ──────────────────────────────

BITBUCKET = Endpoint(
    auth_url="https://bitbucket.org/site/oauth2/authorize",
    token_url="https://bitbucket.org/site/oauth2/access_token",
)
GITHUB = Endpoint(
    auth_url="https://github.com/login/oauth/authorize",
    token_url="https://github.com/login/oauth/access_token",
)
GITLAB = Endpoint(
    auth_url="https://gitlab.com/oauth/authorize",
    token_url="https://gitlab.com/oauth/token",
)
GOOGLE = Endpoint(
    auth_url="https://accounts.google.com/o/oauth2/auth",
    token_url="https://oauth2.googleapis.com/token",
    auth_style=AuthStyle.IN_PARAMS,
)
SLACK = Endpoint(
    auth_url="https://slack.com/oauth/authorize",
    token_url="https://slack.com/api/oauth.access",
)


def azure_ad_endpoint(tenant: str) -> Endpoint:
    """Azure AD v2 端点，按 tenant 参数化。"""
    base = f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0"
    return Endpoint(auth_url=f"{base}/authorize", token_url=f"{base}/token")


# 默认配置
DEFAULT_EXPIRY_DELTA_SECONDS = 10  # 提前 10 秒视为过期

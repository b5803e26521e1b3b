"""
HTTP 请求体模型。
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ConfigRequest(BaseModel):
    """整体替换配置 (不支持部分更新)。"""
    client_id: Optional[str] = Field(default=None, description="Specifies the OAuth 2 client ID.")
    client_secret: str = Field(default="", description="Specifies the OAuth 2 client secret.")
    provider: Optional[str] = Field(default=None, description="Specifies the OAuth 2 provider.")
    provider_version: int = Field(default=-1, description="Provider schema version, -1 for latest.")
    provider_options: Dict[str, str] = Field(default_factory=dict, description="Specifies any provider-specific options.")
    auth_url_params: Dict[str, str] = Field(
        default_factory=dict,
        description="Specifies the additional query parameters to add to the authorization code URL.",
    )


class AuthCodeURLRequest(BaseModel):
    state: Optional[str] = Field(default=None, description="Specifies the state to set in the authorization code URL.")
    redirect_url: Optional[str] = Field(default=None, description="The URL to redirect to once the user has authorized this application.")
    scopes: List[str] = Field(default_factory=list, description="The scopes to request for authorization.")
    auth_url_params: Dict[str, str] = Field(
        default_factory=dict,
        description="Specifies the additional query parameters to add to the authorization code URL.",
    )


class CredentialRequest(BaseModel):
    code: Optional[str] = Field(default=None, description="Specifies the response code to exchange for a full token.")
    redirect_url: Optional[str] = Field(
        default=None,
        description="Specifies the redirect URL to provide when exchanging (must match the authorization code URL).",
    )
    refresh_token: Optional[str] = Field(
        default=None,
        description="Specifies a refresh token retrieved from the provider by some means external to this service.",
    )

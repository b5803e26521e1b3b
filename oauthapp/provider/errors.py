"""
Provider 层异常定义。
"""


class ProviderError(Exception):
    """Provider 相关错误的基类。"""


class NoSuchProviderError(ProviderError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"provider {name!r} does not exist")


class NoProviderWithVersionError(ProviderError):
    def __init__(self, name: str, version: int):
        self.name = name
        self.version = version
        super().__init__(f"provider {name!r} has no version {version}")


class NoOptionsError(ProviderError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"provider {name!r} does not accept any options")


class OptionError(ProviderError):
    """某个 provider option 无效，携带具体的 option 名称和原因。"""

    def __init__(self, option: str, message: str):
        self.option = option
        self.message = message
        super().__init__(f"invalid provider option {option}: {message}")


class AuthorizationRequiredError(ProviderError):
    def __init__(self):
        super().__init__("provider requires authorization")


class DiscoveryError(ProviderError):
    """OIDC 元数据发现失败。"""


class TokenRetrieveError(ProviderError):
    """
    Token 端点返回了 OAuth 错误 (非 2xx 或缺少 access_token)。

    与传输层错误 (httpx.HTTPError) 区分：这里表示 provider 明确拒绝了请求。
    """

    def __init__(
        self,
        status_code: int,
        body: str = "",
        error: str = "",
        error_description: str = "",
        error_uri: str = "",
    ):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri
        super().__init__(self._format())

    def _format(self) -> str:
        if self.error:
            msg = f"oauth2: {self.error!r}"
            if self.error_description:
                msg += f" {self.error_description!r}"
            if self.error_uri:
                msg += f" {self.error_uri!r}"
            return msg
        return f"oauth2: cannot fetch token: {self.status_code}\nResponse: {self.body}"

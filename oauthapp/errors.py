"""
凭据引擎层异常：面向调用方的诊断，而非系统故障。
"""


class CredentialError(Exception):
    """可直接返回给调用方的错误。"""


class NotConfiguredError(CredentialError):
    def __init__(self):
        super().__init__("not configured")


class UserInputError(CredentialError):
    """请求参数错误 (缺失、互斥字段同时出现等)，不应重试。"""


class InvalidCodeError(CredentialError):
    def __init__(self):
        super().__init__("invalid code")


class InvalidRefreshTokenError(CredentialError):
    def __init__(self):
        super().__init__("invalid refresh_token")


class InvalidCredentialsError(CredentialError):
    def __init__(self):
        super().__init__("invalid client credentials")

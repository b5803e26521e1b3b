"""
Provider 抽象层：注册表、能力接口、Token 交换与 OIDC discovery。
"""

from . import types
from .base import (
    AuthCodeURLConfig,
    AuthCodeURLConfigBuilder,
    ExchangeConfig,
    ExchangeConfigBuilder,
    Provider,
    TokenConfig,
    TokenConfigBuilder,
)
from .basic import BasicProvider, azure_ad_factory, basic_factory, custom_factory
from .errors import (
    AuthorizationRequiredError,
    DiscoveryError,
    NoOptionsError,
    NoProviderWithVersionError,
    NoSuchProviderError,
    OptionError,
    ProviderError,
    TokenRetrieveError,
)
from .registry import GLOBAL_REGISTRY, FactoryFunc, Registry
from .token import Token
from .types import AuthStyle, Endpoint


def register_builtin(registry: Registry):
    """注册内置 provider。"""
    registry.must_register("bitbucket", basic_factory(types.BITBUCKET))
    registry.must_register("github", basic_factory(types.GITHUB))
    registry.must_register("gitlab", basic_factory(types.GITLAB))
    registry.must_register("google", basic_factory(types.GOOGLE))
    registry.must_register("microsoft_azure_ad", azure_ad_factory)
    registry.must_register("slack", basic_factory(types.SLACK))

    registry.must_register("custom", custom_factory(True))
    registry.must_register("custom_client_credentials", custom_factory(False))


register_builtin(GLOBAL_REGISTRY)

__all__ = [
    "AuthCodeURLConfig",
    "AuthCodeURLConfigBuilder",
    "AuthStyle",
    "AuthorizationRequiredError",
    "BasicProvider",
    "DiscoveryError",
    "Endpoint",
    "ExchangeConfig",
    "ExchangeConfigBuilder",
    "FactoryFunc",
    "GLOBAL_REGISTRY",
    "NoOptionsError",
    "NoProviderWithVersionError",
    "NoSuchProviderError",
    "OptionError",
    "Provider",
    "ProviderError",
    "Registry",
    "Token",
    "TokenConfig",
    "TokenConfigBuilder",
    "TokenRetrieveError",
    "register_builtin",
]

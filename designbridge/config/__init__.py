from .provider import APIConfig, BrokerConfig, ConfigProvider, EnvConfigProvider

__all__ = ["APIConfig", "BrokerConfig", "ConfigProvider", "EnvConfigProvider"]

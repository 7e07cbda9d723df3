from config.settings import (
    CONFIG_BY_NAME,
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
)

__all__ = ['CONFIG_BY_NAME', 'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig']

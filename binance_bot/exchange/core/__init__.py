from .exchange_config import ExchangeConfig

__all__ = ['ExchangeConfig']

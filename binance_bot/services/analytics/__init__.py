from .pnl_calculator import OrderPnLCalculator
from .analytics_models import OrderWithPnL, PnLResult, PnLSummary, AnalyticsConfig

__all__ = [
    'OrderPnLCalculator',
    'OrderWithPnL',
    'PnLResult',
    'PnLSummary',
    'AnalyticsConfig'
]

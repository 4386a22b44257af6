"""Chart rendering for cached price series."""

from .charts import ChartConfig, PriceChartRenderer

__all__ = [
    'ChartConfig',
    'PriceChartRenderer',
]

"""Price chart rendering using Plotly."""

from dataclasses import dataclass
from typing import Optional, Sequence
import logging

import plotly.graph_objects as go
import plotly.io as pio

from ..data.exceptions import EmptySeries
from ..data.models import PriceSeries

logger = logging.getLogger(__name__)


@dataclass
class ChartConfig:
    """Chart configuration settings."""
    width: int = 400
    height: int = 200
    scale: int = 1
    theme: str = "plotly_white"
    line_color: str = "rgb(31, 174, 233)"
    line_width: int = 2
    x_title: str = "Time"
    y_title: str = "Price (USD)"
    legend_label: str = "Price"


class PriceChartRenderer:
    """Render a price series as a PNG line chart.

    Output depends only on the symbol, the samples and the config, so the
    same input yields the same image bytes.
    """

    def __init__(self, config: Optional[ChartConfig] = None):
        """Initialize renderer.

        Args:
            config: Chart configuration
        """
        self.config = config or ChartConfig()

    def build_figure(self, symbol: str, series: Sequence[float],
                     window: str = "Last 24h") -> go.Figure:
        """Build the line chart figure.

        Args:
            symbol: Coin symbol used in the title
            series: Price samples; x is the sample index
            window: Lookback description shown in the title

        Returns:
            Plotly figure object
        """
        prices = list(series)
        if not prices:
            raise EmptySeries(f"Cannot render an empty price series for {symbol}", symbol)

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=list(range(len(prices))),
            y=prices,
            mode='lines',
            name=self.config.legend_label,
            line=dict(color=self.config.line_color, width=self.config.line_width)
        ))

        fig.update_layout(
            title=f"{symbol.upper()} Price ({window})",
            xaxis_title=self.config.x_title,
            yaxis_title=self.config.y_title,
            template=self.config.theme,
            width=self.config.width,
            height=self.config.height,
            showlegend=True,
            margin=dict(l=50, r=20, t=40, b=40)
        )

        return fig

    def render(self, symbol: str, series: Sequence[float]) -> bytes:
        """Render a series to PNG bytes.

        Args:
            symbol: Coin symbol used in the title
            series: PriceSeries or plain sequence of prices

        Returns:
            PNG encoded image

        Raises:
            EmptySeries: ``series`` has no samples
        """
        window = series.timeframe.label if isinstance(series, PriceSeries) else "Last 24h"
        fig = self.build_figure(symbol, series, window)

        img_bytes = pio.to_image(
            fig,
            format='png',
            width=self.config.width,
            height=self.config.height,
            scale=self.config.scale
        )
        logger.debug(f"Rendered {len(img_bytes)} byte chart for {symbol}")
        return img_bytes

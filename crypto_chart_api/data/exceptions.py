"""Market data error taxonomy.

The cache never raises; the client raises the errors below and the service
passes them through unchanged. ``retryable`` tells a caller whether trying
again later can help without a provider-side fix.
"""

from typing import Optional


class MarketDataError(Exception):
    """Base class for market data failures."""

    kind = "market_data_error"
    retryable = False

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.symbol = symbol

    def to_dict(self):
        return {'error': self.kind, 'message': self.message}


class UpstreamUnavailable(MarketDataError):
    """Transport failure or timeout talking to the provider."""

    kind = "upstream_unavailable"
    retryable = True


class UpstreamBadStatus(MarketDataError):
    """Provider answered with a non-2xx status."""

    kind = "upstream_bad_status"
    retryable = True

    def __init__(self, status: int, reason: str = "", symbol: Optional[str] = None):
        self.status = status
        self.reason = reason
        status_text = f"{status} {reason}".strip()
        super().__init__(f"API error: {status_text}", symbol)


class MalformedResponse(MarketDataError):
    """Provider payload could not be parsed into the expected shape."""

    kind = "malformed_response"


class MissingSection(MarketDataError):
    """Provider payload lacks a required top-level section."""

    kind = "missing_section"


class NoData(MarketDataError):
    """Provider returned a valid but empty price series."""

    kind = "no_data"


class EmptySeries(MarketDataError):
    """Renderer was handed a series with no samples."""

    kind = "empty_series"

"""Base API client with session management and error classification."""

import asyncio
import json
import aiohttp
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
import logging

from .exceptions import UpstreamUnavailable, UpstreamBadStatus, MalformedResponse
from .models import APIResponse, DataSource

logger = logging.getLogger(__name__)


@dataclass
class APIClientConfig:
    """Configuration for API clients."""
    
    base_url: str
    api_key: Optional[str] = None
    timeout: float = 10
    headers: Dict[str, str] = field(default_factory=dict)


class BaseAPIClient(ABC):
    """Base class for market data API clients.

    Requests are issued once; retry policy belongs to the caller.
    """
    
    def __init__(self, config: APIClientConfig, data_source: DataSource):
        """Initialize API client.
        
        Args:
            config: API client configuration
            data_source: Data source identifier
        """
        self.config = config
        self.data_source = data_source
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_count = 0
        self._error_count = 0
    
    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()
    
    async def start(self):
        """Start the API client session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers=self.config.headers
            )
            logger.info(f"Started {self.data_source.value} API client")
    
    async def stop(self):
        """Stop the API client session."""
        if self._session:
            await self._session.close()
            self._session = None
            logger.info(f"Stopped {self.data_source.value} API client")
    
    async def _make_request(self, method: str, endpoint: str,
                            params: Optional[Dict[str, Any]] = None,
                            symbol: Optional[str] = None) -> APIResponse:
        """Make an HTTP request and decode its JSON body.
        
        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint relative to the base URL
            params: Query parameters
            symbol: Symbol the request is for, attached to raised errors
            
        Returns:
            APIResponse with decoded JSON data and metadata
            
        Raises:
            UpstreamUnavailable: Transport failure or timeout
            UpstreamBadStatus: Non-2xx response status
            MalformedResponse: Body is not UTF-8 encoded JSON
        """
        if not self._session:
            await self.start()
        
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        request_headers = {**self.config.headers}
        
        if self.config.api_key:
            request_headers.update(self._get_auth_headers())
        
        start_time = time.time()
        
        try:
            async with self._session.request(
                method=method,
                url=url,
                params=params,
                headers=request_headers
            ) as response:
                response_time = time.time() - start_time
                self._request_count += 1
                
                logger.debug(f"{method} {url} -> {response.status} ({response_time:.3f}s)")
                
                if not 200 <= response.status < 300:
                    self._error_count += 1
                    raise UpstreamBadStatus(response.status, response.reason or "", symbol)
                
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._error_count += 1
            logger.warning(f"{method} {url} failed: {e!r}")
            raise UpstreamUnavailable(f"Request to {self.data_source.value} failed: {e}", symbol) from e
        
        try:
            data = json.loads(body.decode("utf-8"))
        except ValueError as e:  # includes UnicodeDecodeError
            self._error_count += 1
            raise MalformedResponse(f"Invalid JSON from {self.data_source.value}: {e}", symbol) from e
        
        return APIResponse(
            data=data,
            status_code=response.status,
            reason=response.reason or "",
            headers=dict(response.headers),
            response_time=response_time,
            data_source=self.data_source,
            timestamp=datetime.now(timezone.utc)
        )
    
    @abstractmethod
    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authentication headers for API requests.
        
        Returns:
            Dictionary of authentication headers
        """
        pass
    
    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics.
        
        Returns:
            Dictionary with client statistics
        """
        return {
            'data_source': self.data_source.value,
            'request_count': self._request_count,
            'error_count': self._error_count,
            'base_url': self.config.base_url,
            'has_api_key': bool(self.config.api_key),
            'timeout': self.config.timeout
        }

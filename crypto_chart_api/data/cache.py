"""Expiring in-memory cache for market data responses."""

import asyncio
import threading
from datetime import datetime, timezone, timedelta
from typing import Any, Optional, Dict, Tuple, Callable
from dataclasses import dataclass
import logging

from .models import CacheEntry

logger = logging.getLogger(__name__)


@dataclass
class CacheConfig:
    """Configuration for cache behavior."""
    
    default_ttl: int = 300  # 5 minutes default TTL
    cleanup_interval: int = 600  # Sweep every 10 minutes
    enable_sweep: bool = True  # Run the background sweep task


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExpiringCache:
    """Key-value store with a per-entry absolute expiration time.

    Safe to share between threads and asyncio tasks. Every operation holds
    the lock for a single dictionary mutation or lookup; the lock is never
    held while awaiting anything.

    Expired entries are removed lazily on ``get``. The optional background
    sweep bounds memory for keys that are requested once and never again.
    """
    
    def __init__(self, config: Optional[CacheConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """Initialize cache.
        
        Args:
            config: Cache configuration
            clock: Callable returning the current aware datetime
        """
        self.config = config or CacheConfig()
        self._clock = clock or _utcnow
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        
        self._stats = {
            'hits': 0,
            'misses': 0,
            'expirations': 0,
        }
        
        self._cleanup_task: Optional[asyncio.Task] = None
        self._running = False
    
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry.
        
        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (uses default if None)
        """
        if ttl is None:
            ttl = self.config.default_ttl
        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=value,
            expires_at=now + timedelta(seconds=ttl),
            created_at=now
        )
        with self._lock:
            self._entries[key] = entry
    
    def get(self, key: str) -> Tuple[Any, bool]:
        """Look up a live entry.
        
        Args:
            key: Cache key
            
        Returns:
            ``(value, True)`` for a live entry, otherwise ``(None, False)``
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats['misses'] += 1
                return None, False
            
            if entry.is_expired(now):
                del self._entries[key]
                self._stats['expirations'] += 1
                self._stats['misses'] += 1
                return None, False
            
            self._stats['hits'] += 1
            return entry.value, True
    
    def delete(self, key: str) -> bool:
        """Delete an entry.
        
        Returns:
            True if key existed and was deleted
        """
        with self._lock:
            return self._entries.pop(key, None) is not None
    
    def clear(self) -> int:
        """Clear all cache entries.
        
        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count
    
    def sweep_expired(self) -> int:
        """Remove every expired entry.
        
        Returns:
            Number of expired entries removed
        """
        now = self._clock()
        with self._lock:
            expired_keys = [key for key, entry in self._entries.items()
                            if entry.is_expired(now)]
            for key in expired_keys:
                del self._entries[key]
            self._stats['expirations'] += len(expired_keys)
        return len(expired_keys)
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
    
    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.
        
        Returns:
            Dictionary with cache statistics
        """
        with self._lock:
            total_requests = self._stats['hits'] + self._stats['misses']
            hit_rate = (self._stats['hits'] / total_requests * 100) if total_requests > 0 else 0
            
            return {
                'hits': self._stats['hits'],
                'misses': self._stats['misses'],
                'hit_rate': round(hit_rate, 2),
                'expirations': self._stats['expirations'],
                'size': len(self._entries),
                'default_ttl': self.config.default_ttl
            }
    
    async def start(self):
        """Start the background sweep task."""
        if self._running:
            return
        
        self._running = True
        if self.config.enable_sweep:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        
        logger.info("Cache started")
    
    async def stop(self):
        """Stop the background sweep task."""
        if not self._running:
            return
        
        self._running = False
        
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        
        logger.info("Cache stopped")
    
    async def _cleanup_loop(self):
        """Background task to clean up expired entries."""
        while self._running:
            try:
                await asyncio.sleep(self.config.cleanup_interval)
                
                if self._running:
                    expired_count = self.sweep_expired()
                    if expired_count > 0:
                        logger.debug(f"Swept {expired_count} expired cache entries")
                        
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cache sweep loop: {e}")


def cache_key_for_prices(symbol: str, timeframe: str) -> str:
    """Generate cache key for a price series."""
    return f"prices:{symbol}:{timeframe}"


def cache_key_for_stats(symbol: str) -> str:
    """Generate cache key for a statistics snapshot."""
    return f"stats:{symbol}"

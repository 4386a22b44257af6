"""
Logging setup with optional structured JSON output.

Configures the root logger from the ``logging`` section of the loaded
configuration: a console handler (plain or JSON) and an optional rotating
file handler that always writes JSON lines.
"""

import json
import logging
import logging.handlers
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName'
}


class StructuredFormatter(logging.Formatter):
    """
    Formatter for structured JSON logging.
    
    Each record becomes one JSON object with timestamp, level, logger,
    source location, exception details and any ``extra`` fields.
    """
    
    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra
    
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread_name": record.threadName,
        }
        
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }
        
        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _RESERVED_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)
            
            if extra_fields:
                log_data["extra"] = extra_fields
        
        return json.dumps(log_data, default=str)


class LoggingManager:
    """Sets up console and file handlers from configuration."""
    
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.handlers: List[logging.Handler] = []
    
    def setup_logging(self) -> None:
        """Set up the logging system."""
        log_config = self.config.get('logging', {})
        
        level = getattr(logging, str(log_config.get('level', 'INFO')).upper())
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        
        for handler in self.handlers:
            root_logger.removeHandler(handler)
        self.handlers = []
        
        self._setup_console_handler(log_config)
        self._setup_file_handler(log_config)
        
        for handler in self.handlers:
            root_logger.addHandler(handler)
        
        logging.getLogger('crypto_chart_api').setLevel(level)
        logging.getLogger('aiohttp').setLevel(logging.WARNING)
        logging.getLogger('kaleido').setLevel(logging.WARNING)
    
    def _setup_console_handler(self, log_config: Dict[str, Any]) -> None:
        """Set up console logging handler."""
        console_config = log_config.get('handlers', {}).get('console', {})
        
        if not console_config.get('enabled', True):
            return
        
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, str(console_config.get('level', 'INFO')).upper()))
        
        if log_config.get('structured', False):
            formatter = StructuredFormatter()
        else:
            format_str = log_config.get('format',
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            formatter = logging.Formatter(format_str)
        
        handler.setFormatter(formatter)
        self.handlers.append(handler)
    
    def _setup_file_handler(self, log_config: Dict[str, Any]) -> None:
        """Set up file logging handler with rotation."""
        file_config = log_config.get('handlers', {}).get('file', {})
        
        if not file_config.get('enabled', False):
            return
        
        log_file = Path(file_config.get('filename', 'logs/crypto_chart_api.log'))
        log_file.parent.mkdir(parents=True, exist_ok=True)
        
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=file_config.get('max_bytes', 10 * 1024 * 1024),  # 10MB
            backupCount=file_config.get('backup_count', 5)
        )
        handler.setLevel(getattr(logging, str(file_config.get('level', 'DEBUG')).upper()))
        handler.setFormatter(StructuredFormatter())
        
        self.handlers.append(handler)


_logging_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """Get the process-wide logging manager."""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager()
    return _logging_manager


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """Set up logging from a configuration dictionary."""
    manager = get_logging_manager()
    if config:
        manager.config = config
    manager.setup_logging()

"""
Centralized Logging Configuration

Separate handlers per log category so stream noise does not bury account
and notification activity.

Log Categories:
- WebSocket: File-based, user data stream lifecycle and fills
- Errors: File-based, errors from every component
- General: File-based, application-wide logs
- Console: Everything at the configured level
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Union

WEBSOCKET_LOGGER = 'binance_bot.websocket'

# Entry point logs as __main__ when run as a script, main when installed
GENERAL_LOGGERS = [
    'binance_bot.exchange',
    'binance_bot.services',
    'binance_bot.bot',
    'config',
    'main',
    '__main__'
]


class ProductionLoggingConfig:
    """Production-ready logging configuration with separated log streams."""

    def __init__(self, log_dir: str = "logs", level: Union[int, str] = logging.INFO):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
        if not isinstance(self.level, int):
            self.level = logging.INFO

        # One file per day per category
        timestamp = datetime.now().strftime("%Y%m%d")
        self.log_files = {
            'websocket': self.log_dir / f"websocket_{timestamp}.log",
            'errors': self.log_dir / f"errors_{timestamp}.log",
            'general': self.log_dir / f"binance_bot_{timestamp}.log"
        }

        self._setup_loggers()

    def _setup_loggers(self):
        """Set up all logger configurations."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(self.level)

        self._create_formatters()
        self._setup_handlers()
        self._configure_specific_loggers()

    def _create_formatters(self):
        """Create formatters for different log types."""
        # Detailed formatter for files
        self.file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        self.console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

    def _setup_handlers(self):
        """Set up file and console handlers."""
        general_handler = logging.FileHandler(self.log_files['general'], encoding='utf-8')
        general_handler.setLevel(self.level)
        general_handler.setFormatter(self.file_formatter)

        websocket_handler = logging.FileHandler(self.log_files['websocket'], encoding='utf-8')
        websocket_handler.setLevel(self.level)
        websocket_handler.setFormatter(self.file_formatter)

        error_handler = logging.FileHandler(self.log_files['errors'], encoding='utf-8')
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(self.file_formatter)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.level)
        console_handler.setFormatter(self.console_formatter)

        self.handlers = {
            'general': general_handler,
            'websocket': websocket_handler,
            'errors': error_handler,
            'console': console_handler
        }

    def _configure_specific_loggers(self):
        """Configure specific loggers with appropriate handlers."""
        root_logger = logging.getLogger()
        root_logger.addHandler(self.handlers['console'])
        root_logger.addHandler(self.handlers['errors'])

        # Stream lifecycle goes to its own file, still reaching console via root
        websocket_logger = logging.getLogger(WEBSOCKET_LOGGER)
        websocket_logger.setLevel(self.level)
        websocket_logger.addHandler(self.handlers['websocket'])

        for logger_name in GENERAL_LOGGERS:
            logger = logging.getLogger(logger_name)
            logger.setLevel(self.level)
            logger.addHandler(self.handlers['general'])

    def close(self) -> None:
        """Detach and close every handler created by this config."""
        for handler in self.handlers.values():
            for logger_name in (None, WEBSOCKET_LOGGER, *GENERAL_LOGGERS):
                logging.getLogger(logger_name).removeHandler(handler)
            handler.close()


def setup_production_logging(log_dir: str = "logs", level: Union[int, str] = logging.INFO) -> ProductionLoggingConfig:
    """Set up production logging configuration."""
    return ProductionLoggingConfig(log_dir, level)


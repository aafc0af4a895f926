"""
Logging and Error Handling System

This module provides centralized logging configuration and error tracking
for the OriginPull rewriter and its integrations.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional, Dict, Any
import traceback
from pathlib import Path


class OriginPullLogger:
    """
    Centralized logging system for OriginPull.

    Provides console output, a rotating application log and a rotating
    errors-only log.
    """

    def __init__(self, log_dir: str = "logs", app_name: str = "originpull"):
        """
        Initialize the logging system.

        Args:
            log_dir: Directory to store log files
            app_name: Name of the application for log formatting
        """
        self.log_dir = Path(log_dir)
        self.app_name = app_name
        self.loggers: Dict[str, logging.Logger] = {}

        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.setup_logger()

    def setup_logger(self, level: int = logging.INFO) -> logging.Logger:
        """
        Set up the main application logger with file and console handlers.

        Args:
            level: Logging level (default: INFO)

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(self.app_name)
        logger.setLevel(level)

        # Prevent duplicate handlers
        if logger.handlers:
            self.loggers['main'] = logger
            return logger

        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        )

        log_file = self.log_dir / f"{self.app_name}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)

        # Console goes to stderr so rewritten output on stdout stays clean
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(console_formatter)

        error_file = self.log_dir / f"{self.app_name}_errors.log"
        error_handler = logging.handlers.RotatingFileHandler(
            error_file,
            maxBytes=5*1024*1024,  # 5MB
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)
        logger.addHandler(error_handler)

        self.loggers['main'] = logger
        return logger

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            name: Name of the component

        Returns:
            Logger instance for the component
        """
        full_name = f"{self.app_name}.{name}"

        if full_name not in self.loggers:
            logger = logging.getLogger(full_name)
            logger.setLevel(logging.DEBUG)
            self.loggers[full_name] = logger

        return self.loggers[full_name]

    def attach(self, *module_names: str):
        """
        Route module loggers (e.g. 'core', 'utils') through the app handlers.

        Library modules log with logging.getLogger(__name__); attaching them
        to the application handlers keeps a single log destination.
        """
        main = self.loggers['main']
        for module_name in module_names:
            module_logger = logging.getLogger(module_name)
            module_logger.setLevel(main.level)
            for handler in main.handlers:
                if handler not in module_logger.handlers:
                    module_logger.addHandler(handler)
            module_logger.propagate = False

    def log_system_info(self):
        """Log system information for debugging."""
        logger = self.get_logger('system')

        logger.info("=== OriginPull Started ===")
        logger.info(f"Python version: {sys.version}")
        logger.info(f"Platform: {sys.platform}")
        logger.info(f"Working directory: {os.getcwd()}")
        logger.info(f"Log directory: {self.log_dir.absolute()}")


class ErrorTracker:
    """
    Tracks and categorizes errors that occur while rewriting responses.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.errors: list = []
        self.warnings: list = []

    def log_error(self,
                  error: Exception,
                  context: str = None,
                  path: str = None,
                  additional_info: Dict[str, Any] = None) -> str:
        """
        Log an error with context information.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            path: Request path being served when the error occurred
            additional_info: Additional information about the error

        Returns:
            Error ID for tracking
        """
        error_id = f"ERR_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.errors):03d}"

        error_data = {
            'id': error_id,
            'timestamp': datetime.now(),
            'type': type(error).__name__,
            'message': str(error),
            'context': context,
            'path': path,
            'traceback': traceback.format_exc(),
            'additional_info': additional_info or {}
        }

        self.errors.append(error_data)

        log_message = f"[{error_id}] {error_data['type']}: {error_data['message']}"
        if context:
            log_message += f" (Context: {context})"
        if path:
            log_message += f" (Path: {path})"

        self.logger.error(log_message)
        self.logger.debug(f"[{error_id}] Full traceback:\n{error_data['traceback']}")

        return error_id

    def log_warning(self,
                    message: str,
                    context: str = None,
                    path: str = None) -> str:
        """
        Log a warning with context information.

        Returns:
            Warning ID for tracking
        """
        warning_id = f"WARN_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.warnings):03d}"

        self.warnings.append({
            'id': warning_id,
            'timestamp': datetime.now(),
            'message': message,
            'context': context,
            'path': path
        })

        log_message = f"[{warning_id}] {message}"
        if context:
            log_message += f" (Context: {context})"
        if path:
            log_message += f" (Path: {path})"

        self.logger.warning(log_message)

        return warning_id


# Global logger instance
_logger_instance: Optional[OriginPullLogger] = None


def initialize_logging(log_dir: str = "logs", level: int = logging.INFO) -> OriginPullLogger:
    """
    Initialize the global logging system.

    Args:
        log_dir: Directory for log files
        level: Logging level
    """
    global _logger_instance
    _logger_instance = OriginPullLogger(log_dir)
    _logger_instance.setup_logger(level)
    _logger_instance.attach('core', 'utils')
    _logger_instance.log_system_info()
    return _logger_instance

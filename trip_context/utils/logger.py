# trip_context/utils/logger.py
"""
Centralized logging configuration for the trip context aggregation job
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime, timezone
import json


_RESERVED_RECORD_KEYS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName',
    'getMessage', 'exc_info', 'exc_text', 'stack_info', 'message', 'asctime'
}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging

    Emits one JSON object per record so stage counts and timings can be
    picked up by a log aggregator
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'process_id': record.process,
            'thread_id': record.thread
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class PipelineLogger:
    """
    Pipeline-specific logger configuration

    Provides:
    - Consistent logging format across all pipeline components
    - Console logging, plus rotating file logs when a directory is given
    - A separate error log
    """

    def __init__(self, log_level: str = "INFO", log_dir: Optional[Path] = None):
        """
        Initialize pipeline logger

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (optional)
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self._configure_logging()

    def _configure_logging(self) -> None:
        """Configure logging handlers and formatters"""
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level))

        # Clear existing handlers to avoid duplication
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, self.log_level))

        # Human-readable output while debugging, JSON otherwise
        if self.log_level == "DEBUG":
            console_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
        else:
            console_formatter = JSONFormatter()

        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

        if self.log_dir:
            self.log_dir = Path(self.log_dir)
            self.log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=self.log_dir / 'trip_context.log',
                maxBytes=50 * 1024 * 1024,  # 50MB
                backupCount=10,
                encoding='utf-8'
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(file_handler)

            error_handler = logging.handlers.RotatingFileHandler(
                filename=self.log_dir / 'errors.log',
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(error_handler)

        # Suppress noisy third-party loggers
        logging.getLogger('fiona').setLevel(logging.WARNING)
        logging.getLogger('pyogrio').setLevel(logging.WARNING)
        logging.getLogger('shapely').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('snowflake').setLevel(logging.INFO)


class PerformanceLogger:
    """
    Performance and metrics logger for pipeline monitoring

    Tracks stage timings and row-count metrics
    """

    def __init__(self, logger_name: str):
        """
        Initialize performance logger

        Args:
            logger_name: Name for the logger instance
        """
        self.logger = logging.getLogger(f"performance.{logger_name}")
        self.start_times = {}

    def start_operation(self, operation_name: str) -> None:
        """
        Start timing an operation

        Args:
            operation_name: Name of the operation to time
        """
        self.start_times[operation_name] = datetime.now(timezone.utc)
        self.logger.info(f"Started operation: {operation_name}")

    def end_operation(self, operation_name: str, **extra_metrics) -> float:
        """
        End timing an operation and log metrics

        Args:
            operation_name: Name of the operation
            **extra_metrics: Additional metrics to log

        Returns:
            Duration in seconds
        """
        if operation_name not in self.start_times:
            self.logger.warning(f"Operation {operation_name} was not started")
            return 0.0

        end_time = datetime.now(timezone.utc)
        duration = (end_time - self.start_times[operation_name]).total_seconds()

        metrics = {
            'operation': operation_name,
            'duration_seconds': duration,
            'start_time': self.start_times[operation_name].isoformat(),
            'end_time': end_time.isoformat(),
            **extra_metrics
        }

        self.logger.info(f"Completed operation: {operation_name}", extra=metrics)
        del self.start_times[operation_name]

        return duration

    def log_stage_counts(self, stage_counts: Dict[str, int], **metrics) -> None:
        """
        Log how many trips each aggregation stage kept or excluded

        Args:
            stage_counts: Summed per-stage trip counts
            **metrics: Additional metrics to log
        """
        input_trips = stage_counts.get('input_trips', 0)
        matched = stage_counts.get('matched_trips', 0)
        self.logger.info("Stage counts", extra={
            'metrics_type': 'stage_counts',
            'stage_counts': dict(stage_counts),
            'excluded_trips': input_trips - matched,
            'match_rate': matched / input_trips if input_trips else 0.0,
            **metrics
        })

    def log_error_metrics(self, error_type: str, error_message: str, **context) -> None:
        """
        Log error metrics for monitoring

        Args:
            error_type: Type/category of error
            error_message: Error message
            **context: Additional context information
        """
        self.logger.error("Error occurred", extra={
            'metrics_type': 'error',
            'error_type': error_type,
            'error_message': error_message,
            **context
        })


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module

    Args:
        name: Usually __name__ from the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def setup_pipeline_logging(log_level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Setup logging for the entire job

    Call this once at the start of your application

    Args:
        log_level: Logging level
        log_dir: Directory for log files
    """
    log_dir_path = Path(log_dir) if log_dir else None
    PipelineLogger(log_level=log_level, log_dir=log_dir_path)


class timed_operation:
    """
    Context manager for timing operations

    Usage:
        with timed_operation("resolve_geometry", logger):
            ...
        # Duration is automatically logged
    """

    def __init__(self, operation_name: str, logger: logging.Logger):
        self.operation_name = operation_name
        self.logger = logger
        self.duration = None
        self.performance_logger = PerformanceLogger(logger.name)

    def __enter__(self):
        self.performance_logger.start_operation(self.operation_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = self.performance_logger.end_operation(
            self.operation_name,
            success=exc_type is None,
            error_type=exc_type.__name__ if exc_type else None
        )
        return False

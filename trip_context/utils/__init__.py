"""Utility modules"""

from .logger import get_logger, setup_pipeline_logging, PerformanceLogger, timed_operation
from .exceptions import (
    PipelineError, ConfigurationError, DataSourceError, LoaderError,
    ValidationError, ProcessingError,
    handle_pipeline_exception, retry_on_exception, ErrorCollector
)

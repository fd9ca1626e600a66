# trip_context/utils/exceptions.py
"""
Custom exceptions for the bike trip context aggregation job
"""

from typing import Optional, Dict, Any


class PipelineError(Exception):
    """
    Base exception for all pipeline errors

    Carries a machine-readable error code and context so failures can be
    logged as structured records
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize pipeline error

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code for categorization
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context,
            'cause': str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        base_msg = f"{self.error_code}: {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        if self.cause:
            base_msg += f" (Caused by: {self.cause})"
        return base_msg


class ConfigurationError(PipelineError):
    """
    Raised when there are configuration issues

    Examples:
    - Missing input dataset paths
    - Year range with start after end
    - Non-positive duration bucket granularity
    """
    pass


class DataSourceError(PipelineError):
    """
    Raised when an input dataset cannot be read

    Examples:
    - Trip, polygon, metadata or weather file missing
    - Unsupported file format
    - Required columns absent from the source
    """
    pass


class LoaderError(PipelineError):
    """
    Raised while writing the aggregate table

    Examples:
    - Snowflake connection failures
    - SQL execution errors
    - Local output file could not be written
    """
    pass


class ValidationError(PipelineError):
    """Raised when input data fails a structural check"""
    pass


class ProcessingError(PipelineError):
    """
    Raised when the aggregation itself fails

    Examples:
    - A partition raised during aggregation
    - Memory exhaustion while grouping
    """
    pass


# Utility functions for exception handling

def handle_pipeline_exception(
    func_name: str,
    exception: Exception,
    context: Optional[Dict[str, Any]] = None
) -> PipelineError:
    """
    Convert generic exceptions to pipeline-specific exceptions

    Args:
        func_name: Name of the function where error occurred
        exception: Original exception
        context: Additional context information

    Returns:
        Appropriate PipelineError subclass
    """
    error_context = {
        'function': func_name,
        **(context or {})
    }

    if isinstance(exception, PipelineError):
        exception.context.update(error_context)
        return exception

    elif isinstance(exception, FileNotFoundError):
        return DataSourceError(
            f"File not found in {func_name}: {str(exception)}",
            error_code="FILE_NOT_FOUND",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        return LoaderError(
            f"Network error in {func_name}: {str(exception)}",
            error_code="NETWORK_ERROR",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, (KeyError, ValueError)):
        return ValidationError(
            f"Data validation error in {func_name}: {str(exception)}",
            error_code="VALIDATION_ERROR",
            context=error_context,
            cause=exception
        )

    elif isinstance(exception, MemoryError):
        return ProcessingError(
            f"Memory error in {func_name}: {str(exception)}",
            error_code="MEMORY_ERROR",
            context=error_context,
            cause=exception
        )

    else:
        return PipelineError(
            f"Unexpected error in {func_name}: {str(exception)}",
            error_code="UNKNOWN_ERROR",
            context=error_context,
            cause=exception
        )


def retry_on_exception(
    max_retries: int = 3,
    delay_seconds: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for retrying functions on specific exceptions

    Args:
        max_retries: Maximum number of retry attempts
        delay_seconds: Initial delay between retries
        backoff_factor: Multiplier for delay on each retry
        exceptions: Tuple of exception types to retry on

    Returns:
        Decorated function with retry logic
    """
    import time
    import functools

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except exceptions as e:
                    last_exception = e

                    if attempt == max_retries:
                        break

                    delay = delay_seconds * (backoff_factor ** attempt)
                    time.sleep(delay)

            raise handle_pipeline_exception(
                func.__name__,
                last_exception,
                {'max_retries': max_retries, 'final_attempt': True}
            )

        return wrapper
    return decorator


class ErrorCollector:
    """
    Collects errors and warnings across the partitions of one batch

    The batch either succeeds as a whole or is aborted with
    ``raise_if_errors`` once every partition has reported
    """

    def __init__(self):
        self.errors = []
        self.warnings = []

    def add_error(self, error: Exception, context: Optional[Dict[str, Any]] = None):
        """Add an error to the collection"""
        if isinstance(error, PipelineError):
            if context:
                error.context.update(context)
            self.errors.append(error)
        else:
            self.errors.append(handle_pipeline_exception("batch_operation", error, context))

    def add_warning(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Add a warning to the collection"""
        self.warnings.append({
            'message': message,
            'context': context or {}
        })

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of collected errors and warnings"""
        return {
            'error_count': self.error_count,
            'warning_count': self.warning_count,
            'errors': [error.to_dict() for error in self.errors],
            'warnings': self.warnings
        }

    def raise_if_errors(self):
        """Raise an exception if any errors were collected"""
        if self.has_errors:
            raise ProcessingError(
                f"Batch aborted with {self.error_count} errors",
                error_code="BATCH_ERRORS",
                context=self.get_summary()
            )

    def clear(self):
        """Clear all collected errors and warnings"""
        self.errors.clear()
        self.warnings.clear()

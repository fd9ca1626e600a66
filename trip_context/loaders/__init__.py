"""Output sinks for the aggregate table"""

from .file_writer import ResultWriter
from .snowflake_loader import SnowflakeLoader

__all__ = ['ResultWriter', 'SnowflakeLoader']

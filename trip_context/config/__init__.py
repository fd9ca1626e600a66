"""Configuration management module"""

from .settings import (
    settings, Settings, SnowflakeConfig, AggregationConfig, SourceConfig, PipelineConfig
)

__all__ = [
    'settings', 'Settings', 'SnowflakeConfig', 'AggregationConfig', 'SourceConfig', 'PipelineConfig'
]

"""Data models"""

from .records import (
    Trip, ZipPolygon, ZipMetadata, WeatherObservation, AggregateRow,
    normalize_zip_code, parse_trip_timestamps, TRIP_COLUMNS, TRIP_COLUMN_ALIASES, GROUP_KEY_COLUMNS, AGGREGATE_COLUMNS
)

__all__ = [
    'Trip', 'ZipPolygon', 'ZipMetadata', 'WeatherObservation', 'AggregateRow',
    'normalize_zip_code', 'parse_trip_timestamps', 'TRIP_COLUMNS', 'TRIP_COLUMN_ALIASES', 'GROUP_KEY_COLUMNS',
    'AGGREGATE_COLUMNS'
]

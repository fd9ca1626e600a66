"""Join-key resolvers: ZIP geometry, ZIP metadata and station weather"""

from .geometry import ZipGeometryResolver
from .metadata import ZipMetadataLookup
from .weather import WeatherLookup, WeatherColumns, compose_observation_dates

__all__ = [
    'ZipGeometryResolver', 'ZipMetadataLookup', 'WeatherLookup', 'WeatherColumns',
    'compose_observation_dates'
]

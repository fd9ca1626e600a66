# tests/unit/conftest.py
"""
Shared pytest fixtures for the trip context aggregation tests
"""

import pytest
import pandas as pd
import geopandas as gpd
from shapely.geometry import box
from unittest.mock import Mock

from trip_context.config.settings import Settings, SnowflakeConfig
from trip_context.resolvers.geometry import ZipGeometryResolver
from trip_context.resolvers.metadata import ZipMetadataLookup
from trip_context.resolvers.weather import WeatherLookup
from trip_context.aggregation.aggregator import TripAggregator


# Points strictly inside each test polygon
CHELSEA_POINT = (-74.00, 40.75)
DOWNTOWN_BROOKLYN_POINT = (-73.99, 40.69)
UNLABELLED_POINT = (-73.96, 40.71)
OUTSIDE_POINT = (-73.50, 41.50)


@pytest.fixture
def zip_polygons():
    """Three square ZIP polygons; 10002 has no metadata"""
    return gpd.GeoDataFrame(
        {'zip_code': ['10001', '11201', '10002']},
        geometry=[
            box(-74.01, 40.74, -73.99, 40.76),
            box(-74.00, 40.68, -73.98, 40.70),
            box(-73.97, 40.70, -73.95, 40.72),
        ],
        crs="EPSG:4326"
    )


@pytest.fixture
def zip_metadata():
    """ZIP metadata with numeric zip codes, as stored in the source"""
    return pd.DataFrame({
        'zip': [10001, 11201],
        'borough': ['Manhattan', 'Brooklyn'],
        'neighborhood': ['Chelsea', 'Downtown'],
    })


@pytest.fixture
def weather_observations():
    """GSOD-style daily weather; date parts are zero-padded text"""
    return pd.DataFrame({
        'stn': ['725030', '725030', '725030', '725030', '725053'],
        'year': ['2014', '2014', '2014', '2015', '2014'],
        'mo': ['06', '06', '01', '12', '06'],
        'da': ['01', '02', '01', '31', '01'],
        'temp': [70.0, 65.5, 28.4, 35.0, 80.0],
        'wdsp': [5.0, 7.1, 12.3, 9.9, 3.0],
        'prcp': [0.0, 0.12, 0.3, 0.0, 0.5],
    })


@pytest.fixture
def make_trip():
    """Factory for one trip record; defaults describe a Chelsea -> Downtown Brooklyn ride"""
    def _make_trip(**overrides):
        start_time = pd.Timestamp(overrides.pop('start_time', '2014-06-01 08:00:00'))
        duration = overrides.pop('trip_duration_seconds', 630)
        record = {
            'usertype': 'Subscriber',
            'start_time': start_time,
            'stop_time': start_time + pd.Timedelta(seconds=duration),
            'start_longitude': CHELSEA_POINT[0],
            'start_latitude': CHELSEA_POINT[1],
            'end_longitude': DOWNTOWN_BROOKLYN_POINT[0],
            'end_latitude': DOWNTOWN_BROOKLYN_POINT[1],
            'trip_duration_seconds': duration,
            'bike_id': 14529,
        }
        record.update(overrides)
        return record
    return _make_trip


@pytest.fixture
def sample_trips(make_trip):
    """A single trip that matches every join"""
    return pd.DataFrame([make_trip()])


@pytest.fixture
def geometry_resolver(zip_polygons):
    return ZipGeometryResolver(zip_polygons)


@pytest.fixture
def metadata_lookup(zip_metadata):
    return ZipMetadataLookup(zip_metadata)


@pytest.fixture
def weather_lookup(weather_observations):
    return WeatherLookup(weather_observations, "725030")


@pytest.fixture
def aggregator(geometry_resolver, metadata_lookup, weather_lookup):
    return TripAggregator(geometry_resolver, metadata_lookup, weather_lookup)


@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    """Settings built from a clean environment with output under tmp_path"""
    for name in ('TRIPS_PATH', 'ZIP_POLYGONS_PATH', 'ZIP_METADATA_PATH', 'WEATHER_PATH',
                 'WEATHER_STATION_ID', 'YEAR_START', 'YEAR_END', 'BUCKET_MINUTES',
                 'OUTPUT_FORMAT', 'MAX_WORKERS', 'WRITE_TO_SNOWFLAKE', 'OUTPUT_TABLE'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('OUTPUT_DIR', str(tmp_path / 'output'))
    return Settings()


@pytest.fixture
def snowflake_config_minimal():
    """Create minimal Snowflake configuration for testing"""
    return SnowflakeConfig(
        account="test",
        username="test",
        password="test",
        warehouse="test",
        database="test",
        schema="test"
    )


@pytest.fixture
def mock_snowflake_connection():
    """Create a mock Snowflake connection"""
    connection = Mock()
    cursor = Mock()
    connection.cursor.return_value = cursor

    cursor.execute.return_value = None
    cursor.fetchone.return_value = None
    cursor.fetchall.return_value = []
    cursor.description = []
    cursor.close.return_value = None
    connection.close.return_value = None

    return connection

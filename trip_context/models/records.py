"""
Data models for bike trips, ZIP reference data, weather and aggregate rows
"""

import math
import numbers
from dataclasses import dataclass, asdict
from datetime import datetime, date
from typing import Optional, Dict, Any

import pandas as pd


# Canonical trip columns used by every DataFrame in the pipeline
TRIP_COLUMNS = [
    'usertype',
    'start_time',
    'stop_time',
    'start_longitude',
    'start_latitude',
    'end_longitude',
    'end_latitude',
    'trip_duration_seconds',
    'bike_id',
]

# Source header (lowercased, spaces -> underscores) to canonical trip column.
# Covers the raw Citi Bike CSV headers and the snake-case warehouse export.
TRIP_COLUMN_ALIASES = {
    'tripduration': 'trip_duration_seconds',
    'trip_duration': 'trip_duration_seconds',
    'starttime': 'start_time',
    'start_time': 'start_time',
    'stoptime': 'stop_time',
    'stop_time': 'stop_time',
    'start_station_latitude': 'start_latitude',
    'start_station_longitude': 'start_longitude',
    'end_station_latitude': 'end_latitude',
    'end_station_longitude': 'end_longitude',
    'start_lat': 'start_latitude',
    'start_lng': 'start_longitude',
    'end_lat': 'end_latitude',
    'end_lng': 'end_longitude',
    'bikeid': 'bike_id',
    'bike_id': 'bike_id',
    'usertype': 'usertype',
    'user_type': 'usertype',
}

GROUP_KEY_COLUMNS = [
    'usertype',
    'zip_start',
    'borough_start',
    'neighborhood_start',
    'zip_end',
    'borough_end',
    'neighborhood_end',
    'start_day',
    'stop_day',
    'mean_temperature',
    'mean_wind_speed',
    'total_precipitation',
    'trip_minutes_bucket',
]

AGGREGATE_COLUMNS = GROUP_KEY_COLUMNS + ['trip_count']

ZIP_CODE_WIDTH = 5


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_trip_timestamps(values: pd.Series) -> pd.Series:
    """
    Parse trip timestamps to naive local wall-clock time

    Timezone-aware values keep their local time and drop the zone, so the
    calendar day is the one the rider saw. Unparseable values become NaT.
    """
    parsed = pd.to_datetime(values, errors='coerce')
    if isinstance(parsed.dtype, pd.DatetimeTZDtype):
        parsed = parsed.dt.tz_localize(None)
    return parsed


def normalize_zip_code(value: Any) -> Optional[str]:
    """
    Canonical string form of a ZIP code

    Numbers (``10001``, ``10001.0``, ``501``) and text (``" 10001 "``,
    ``"00501"``) meet in one representation: a digit string left-padded
    with zeros to five characters. Non-numeric text is only stripped.

    Args:
        value: ZIP code as found in a source dataset

    Returns:
        Canonical ZIP string, or None when the value is missing
    """
    if _is_missing(value):
        return None

    if isinstance(value, bool):
        return None

    if isinstance(value, numbers.Integral):
        return str(int(value)).zfill(ZIP_CODE_WIDTH)

    if isinstance(value, numbers.Real):
        if not math.isfinite(value) or not float(value).is_integer():
            return None
        return str(int(value)).zfill(ZIP_CODE_WIDTH)

    text = str(value).strip()
    if not text:
        return None

    # "10001.0" is what a numeric column turns into after a CSV round trip
    if text.endswith('.0') and text[:-2].isdigit():
        text = text[:-2]

    if text.isdigit():
        return text.zfill(ZIP_CODE_WIDTH)

    return text


@dataclass
class Trip:
    """
    A single bike trip as read from the trip source
    """
    usertype: Optional[str]
    start_time: datetime
    stop_time: Optional[datetime]
    start_longitude: float
    start_latitude: float
    end_longitude: float
    end_latitude: float
    trip_duration_seconds: float
    bike_id: Optional[int]

    @property
    def start_day(self) -> date:
        return self.start_time.date()

    @property
    def stop_day(self) -> Optional[date]:
        return self.stop_time.date() if self.stop_time is not None else None

    @property
    def trip_minutes(self) -> float:
        """Trip duration in minutes"""
        return self.trip_duration_seconds / 60

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Trip':
        """
        Create a Trip from a source record

        Accepts canonical field names as well as the Citi Bike headers
        (``"start station latitude"``, ``tripduration``, ``bikeid``...)
        """
        record = {}
        for key, value in data.items():
            normalized = str(key).strip().lower().replace(' ', '_')
            record[TRIP_COLUMN_ALIASES.get(normalized, normalized)] = value

        stop_time = record.get('stop_time')
        return cls(
            usertype=record.get('usertype'),
            start_time=pd.to_datetime(record['start_time']).to_pydatetime(),
            stop_time=pd.to_datetime(stop_time).to_pydatetime() if not _is_missing(stop_time) else None,
            start_longitude=float(record['start_longitude']),
            start_latitude=float(record['start_latitude']),
            end_longitude=float(record['end_longitude']),
            end_latitude=float(record['end_latitude']),
            trip_duration_seconds=float(record['trip_duration_seconds']),
            bike_id=record.get('bike_id')
        )


@dataclass
class ZipPolygon:
    """ZIP code boundary; geometry is a shapely (multi)polygon in EPSG:4326"""
    zip_code: str
    geometry: Any


@dataclass
class ZipMetadata:
    """Borough and neighborhood labels for a ZIP code"""
    zip_code: str
    borough: Optional[str]
    neighborhood: Optional[str]


@dataclass
class WeatherObservation:
    """One day of aggregate weather at one station"""
    station_id: str
    date: date
    mean_temperature_f: Optional[float]
    mean_wind_speed_knots: Optional[float]
    total_precipitation_inches: Optional[float]


@dataclass
class AggregateRow:
    """
    One output row: a group of trips sharing every contextual field
    """
    usertype: Optional[str]
    zip_start: str
    borough_start: Optional[str]
    neighborhood_start: Optional[str]
    zip_end: str
    borough_end: Optional[str]
    neighborhood_end: Optional[str]
    start_day: date
    stop_day: Optional[date]
    mean_temperature: Optional[float]
    mean_wind_speed: Optional[float]
    total_precipitation: Optional[float]
    trip_minutes_bucket: Optional[int]
    trip_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AggregateRow':
        """Create an AggregateRow from a row of the aggregate DataFrame"""
        values = {}
        for column in AGGREGATE_COLUMNS:
            value = data.get(column)
            values[column] = None if _is_missing(value) else value

        for day_column in ('start_day', 'stop_day'):
            if isinstance(values[day_column], (pd.Timestamp, datetime)):
                values[day_column] = values[day_column].date()

        if values['trip_minutes_bucket'] is not None:
            values['trip_minutes_bucket'] = int(values['trip_minutes_bucket'])
        values['trip_count'] = int(values['trip_count'] or 0)

        return cls(**values)

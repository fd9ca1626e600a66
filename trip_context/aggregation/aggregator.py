"""
Trip aggregation: join trips to ZIP and weather context, bucket duration,
count trips per group
"""

from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from trip_context.config.settings import AggregationConfig
from trip_context.models.records import (
    TRIP_COLUMNS, GROUP_KEY_COLUMNS, AGGREGATE_COLUMNS, AggregateRow, parse_trip_timestamps
)
from trip_context.resolvers.geometry import ZipGeometryResolver
from trip_context.resolvers.metadata import ZipMetadataLookup
from trip_context.resolvers.weather import WeatherLookup
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import ValidationError


STAGE_COUNT_KEYS = [
    'input_trips',
    'outside_year_range',
    'unresolved_geometry',
    'missing_metadata',
    'missing_weather',
    'matched_trips',
]


def round_half_away_from_zero(values, multiple: float):
    """
    Round to the nearest multiple, ties away from zero

    ``numpy.round`` rounds ties to even; this does not (25 -> 30, -15 -> -20).
    """
    values = np.asarray(values, dtype=float)
    return np.sign(values) * np.floor(np.abs(values) / multiple + 0.5) * multiple


def duration_bucket(seconds: float, granularity_minutes: int = 10) -> Optional[int]:
    """
    Bucket one trip duration

    Args:
        seconds: Trip duration in seconds
        granularity_minutes: Bucket width in minutes

    Returns:
        Duration in minutes rounded to the nearest multiple of the
        granularity, or None when the duration is missing
    """
    if seconds is None or pd.isna(seconds):
        return None
    return int(round_half_away_from_zero(float(seconds) / 60, granularity_minutes))


def duration_buckets(seconds: pd.Series, granularity_minutes: int = 10) -> pd.Series:
    """Vectorised ``duration_bucket``; missing durations stay missing"""
    minutes = pd.to_numeric(seconds, errors='coerce').to_numpy(dtype=float) / 60
    buckets = round_half_away_from_zero(minutes, granularity_minutes)
    return pd.Series(buckets, index=seconds.index).round().astype('Int64')


def merge_partial_counts(frames: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """
    Merge per-partition group counts

    Rows sharing a group key across partitions have their trip counts
    summed.
    """
    frames = [frame for frame in frames if frame is not None and not frame.empty]
    if not frames:
        return pd.DataFrame(columns=AGGREGATE_COLUMNS)

    combined = pd.concat(frames, ignore_index=True)
    merged = (
        combined.groupby(GROUP_KEY_COLUMNS, dropna=False, sort=False)['trip_count']
        .sum()
        .reset_index()
    )
    merged['trip_count'] = merged['trip_count'].astype('int64')
    return merged[AGGREGATE_COLUMNS]


def sort_aggregate_rows(df: pd.DataFrame) -> pd.DataFrame:
    """
    Order rows by start_day, most recent first

    Rows on the same start_day are ordered by the remaining group key
    columns ascending, missing values last.
    """
    if df.empty:
        return df.reset_index(drop=True)

    tie_breakers = [column for column in GROUP_KEY_COLUMNS if column != 'start_day']
    return df.sort_values(
        by=['start_day'] + tie_breakers,
        ascending=[False] + [True] * len(tie_breakers),
        kind='mergesort',
        na_position='last'
    ).reset_index(drop=True)


class TripAggregator:
    """
    Joins trips against the three resolvers and counts trips per group

    Every join is an inner join: a trip missing a polygon, a metadata row
    or a weather day is dropped and only counted in the stage statistics.
    """

    def __init__(
        self,
        geometry: ZipGeometryResolver,
        metadata: ZipMetadataLookup,
        weather: WeatherLookup,
        config: Optional[AggregationConfig] = None
    ):
        self.geometry = geometry
        self.metadata = metadata
        self.weather = weather
        self.config = config or AggregationConfig()
        self.logger = get_logger(__name__)
        self.last_run_stats: Dict[str, int] = {}

    def prepare_trips(self, trips: pd.DataFrame) -> pd.DataFrame:
        """
        Select the canonical trip columns and coerce their types

        Raises:
            ValidationError: If a trip column is missing
        """
        missing = [column for column in TRIP_COLUMNS if column not in trips.columns]
        if missing:
            raise ValidationError(
                f"Trip records are missing columns: {missing}",
                context={'columns': list(trips.columns)}
            )

        df = trips[TRIP_COLUMNS].copy().reset_index(drop=True)
        for column in ('start_time', 'stop_time'):
            df[column] = parse_trip_timestamps(df[column])
        for column in ('start_longitude', 'start_latitude', 'end_longitude', 'end_latitude',
                       'trip_duration_seconds'):
            df[column] = pd.to_numeric(df[column], errors='coerce')
        return df

    def aggregate_partial(self, trips: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, int]]:
        """
        Aggregate one partition of trips without the final ordering

        Returns:
            (group counts, stage statistics)
        """
        stats = dict.fromkeys(STAGE_COUNT_KEYS, 0)
        df = self.prepare_trips(trips)
        stats['input_trips'] = len(df)

        years = df['start_time'].dt.year
        in_range = years.between(self.config.year_start, self.config.year_end).fillna(False).astype(bool)
        stats['outside_year_range'] = int((~in_range).sum())
        df = df[in_range].reset_index(drop=True)

        df['zip_start'] = self.geometry.resolve_points(df['start_longitude'], df['start_latitude'])
        df['zip_end'] = self.geometry.resolve_points(df['end_longitude'], df['end_latitude'])
        resolved = df['zip_start'].notna() & df['zip_end'].notna()
        stats['unresolved_geometry'] = int((~resolved).sum())
        df = df[resolved]

        before = len(df)
        df = self.metadata.attach(df, 'zip_start', 'start')
        df = self.metadata.attach(df, 'zip_end', 'end')
        stats['missing_metadata'] = before - len(df)

        df['start_day'] = df['start_time'].dt.normalize().astype('datetime64[ns]')
        df['stop_day'] = df['stop_time'].dt.normalize().astype('datetime64[ns]')

        before = len(df)
        df = self.weather.attach(df, 'start_day')
        stats['missing_weather'] = before - len(df)

        df['trip_minutes_bucket'] = duration_buckets(df['trip_duration_seconds'], self.config.bucket_minutes)
        stats['matched_trips'] = len(df)

        # COUNT(bike_id) semantics: null bike ids do not count
        counts = (
            df.groupby(GROUP_KEY_COLUMNS, dropna=False, sort=False)['bike_id']
            .count()
            .reset_index(name='trip_count')
        )
        counts['trip_count'] = counts['trip_count'].astype('int64')

        return counts[AGGREGATE_COLUMNS], stats

    def aggregate(self, trips: pd.DataFrame) -> pd.DataFrame:
        """
        Aggregate all trips into the ordered output table

        Args:
            trips: DataFrame with the canonical trip columns

        Returns:
            DataFrame with one row per group, start_day descending
        """
        counts, stats = self.aggregate_partial(trips)
        self.last_run_stats = stats
        self.logger.info("Aggregation stage counts", extra={'stage_counts': stats})
        return sort_aggregate_rows(counts)

    @staticmethod
    def to_rows(df: pd.DataFrame) -> List[AggregateRow]:
        """Convert an aggregate DataFrame to AggregateRow objects"""
        return [AggregateRow.from_dict(record) for record in df.to_dict(orient='records')]

"""Trip aggregation"""

from .aggregator import (
    TripAggregator, duration_bucket, duration_buckets, round_half_away_from_zero,
    merge_partial_counts, sort_aggregate_rows, STAGE_COUNT_KEYS
)

__all__ = [
    'TripAggregator', 'duration_bucket', 'duration_buckets', 'round_half_away_from_zero',
    'merge_partial_counts', 'sort_aggregate_rows', 'STAGE_COUNT_KEYS'
]

# tests/unit/test_duration_bucket.py
"""Tests for trip duration bucketing."""

import pytest
import pandas as pd

from trip_context.aggregation.aggregator import (
    duration_bucket, duration_buckets, round_half_away_from_zero
)


class TestDurationBucket:
    """Durations are rounded to the nearest 10 minutes, ties away from zero."""

    @pytest.mark.parametrize("seconds,expected", [
        (630, 10),      # 10.5 min
        (754, 10),      # 12.57 min
        (304, 10),      # 5.07 min
        (720, 10),      # 12 min
        (240, 0),       # 4 min
        (0, 0),
        (900, 20),      # 15 min, tie
        (1500, 30),     # 25 min, tie
        (2100, 40),     # 35 min, tie
        (-900, -20),    # -15 min, tie
        (3540, 60),     # 59 min
    ])
    def test_bucket_values(self, seconds, expected):
        assert duration_bucket(seconds) == expected

    def test_ties_do_not_round_to_even(self):
        assert duration_bucket(1500) == 30
        assert duration_bucket(3900) == 70   # 65 min

    def test_custom_granularity(self):
        assert duration_bucket(630, granularity_minutes=5) == 10
        assert duration_bucket(450, granularity_minutes=5) == 10   # 7.5 min, tie
        assert duration_bucket(630, granularity_minutes=1) == 11   # 10.5 min, tie

    @pytest.mark.parametrize("seconds", [None, float('nan')])
    def test_missing_duration(self, seconds):
        assert duration_bucket(seconds) is None

    def test_returns_int(self):
        assert isinstance(duration_bucket(630.0), int)


class TestDurationBuckets:
    """Vectorised bucketing over a Series."""

    def test_matches_scalar_bucketing(self):
        seconds = pd.Series([630, 754, 900, 1500, 2100, -900, 240])

        result = duration_buckets(seconds)

        assert list(result) == [duration_bucket(s) for s in seconds]
        assert str(result.dtype) == 'Int64'

    def test_missing_values_stay_missing(self):
        result = duration_buckets(pd.Series([630.0, None], index=[5, 9]))

        assert list(result.index) == [5, 9]
        assert result[5] == 10
        assert pd.isna(result[9])

    def test_round_half_away_from_zero(self):
        result = round_half_away_from_zero([15, 25, 35, -15, -25, 14.9], 10)

        assert list(result) == [20, 30, 40, -20, -30, 10]

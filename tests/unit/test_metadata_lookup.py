# tests/unit/test_metadata_lookup.py
"""
Unit tests for ZipMetadataLookup
"""

import pytest
import pandas as pd

from trip_context.resolvers.metadata import ZipMetadataLookup
from trip_context.utils.exceptions import ValidationError


class TestZipMetadataLookup:
    """Test exact-match zip metadata lookup"""

    @pytest.mark.parametrize("zip_code", [10001, "10001", 10001.0, " 10001 "])
    def test_lookup_accepts_any_zip_form(self, metadata_lookup, zip_code):
        result = metadata_lookup.lookup(zip_code)

        assert result.zip_code == '10001'
        assert result.borough == 'Manhattan'
        assert result.neighborhood == 'Chelsea'

    def test_unknown_zip_returns_none(self, metadata_lookup):
        assert metadata_lookup.lookup('10002') is None
        assert metadata_lookup.lookup(None) is None

    def test_leading_zero_zips_match(self):
        lookup = ZipMetadataLookup(pd.DataFrame({
            'zip': [501],
            'borough': ['Suffolk'],
            'neighborhood': ['Holtsville'],
        }))

        assert lookup.lookup('00501').neighborhood == 'Holtsville'

    def test_duplicate_zip_keeps_first_row(self):
        lookup = ZipMetadataLookup(pd.DataFrame({
            'zip': [10001, 10001],
            'borough': ['Manhattan', 'Queens'],
            'neighborhood': ['Chelsea', 'Astoria'],
        }))

        assert len(lookup) == 1
        assert lookup.lookup(10001).borough == 'Manhattan'

    def test_rows_without_zip_are_dropped(self):
        lookup = ZipMetadataLookup(pd.DataFrame({
            'zip': [10001, None],
            'borough': ['Manhattan', 'Queens'],
            'neighborhood': ['Chelsea', 'Astoria'],
        }))

        assert len(lookup) == 1

    def test_missing_columns_raise(self, zip_metadata):
        with pytest.raises(ValidationError) as exc_info:
            ZipMetadataLookup(zip_metadata.drop(columns=['neighborhood']))

        assert "neighborhood" in str(exc_info.value)

    def test_custom_column_names(self):
        lookup = ZipMetadataLookup(
            pd.DataFrame({'postcode': [11201], 'boro': ['Brooklyn'], 'nbhd': ['Downtown']}),
            zip_column='postcode',
            borough_column='boro',
            neighborhood_column='nbhd'
        )

        assert lookup.lookup('11201').borough == 'Brooklyn'


class TestZipMetadataAttach:
    """Test the inner join used by the aggregator"""

    def test_attach_adds_suffixed_labels(self, metadata_lookup):
        trips = pd.DataFrame({'zip_start': ['10001', '11201'], 'bike_id': [1, 2]})

        result = metadata_lookup.attach(trips, 'zip_start', 'start')

        assert list(result['borough_start']) == ['Manhattan', 'Brooklyn']
        assert list(result['neighborhood_start']) == ['Chelsea', 'Downtown']

    def test_attach_drops_unknown_zips(self, metadata_lookup):
        trips = pd.DataFrame({'zip_end': ['10001', '10002'], 'bike_id': [1, 2]})

        result = metadata_lookup.attach(trips, 'zip_end', 'end')

        assert len(result) == 1
        assert result.iloc[0]['bike_id'] == 1
        assert result.iloc[0]['borough_end'] == 'Manhattan'

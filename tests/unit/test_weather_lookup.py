# tests/unit/test_weather_lookup.py
"""
Unit tests for WeatherLookup and observation date reconstruction
"""

import pytest
import pandas as pd
from datetime import date, datetime

from trip_context.resolvers.weather import WeatherLookup, WeatherColumns, compose_observation_dates
from trip_context.utils.exceptions import ValidationError


class TestComposeObservationDates:
    """Test date reconstruction from separate text components"""

    def test_zero_padded_components(self):
        result = compose_observation_dates(
            pd.Series(['2014', '2015']), pd.Series(['06', '12']), pd.Series(['01', '31'])
        )

        assert list(result) == [pd.Timestamp('2014-06-01'), pd.Timestamp('2015-12-31')]

    def test_unpadded_month_is_malformed(self):
        result = compose_observation_dates(pd.Series(['2014']), pd.Series(['6']), pd.Series(['01']))

        assert pd.isna(result.iloc[0])

    def test_missing_component_is_malformed(self):
        result = compose_observation_dates(pd.Series(['2014']), pd.Series([None]), pd.Series(['01']))

        assert pd.isna(result.iloc[0])

    def test_impossible_date_is_malformed(self):
        result = compose_observation_dates(pd.Series(['2014']), pd.Series(['02']), pd.Series(['30']))

        assert pd.isna(result.iloc[0])

    def test_numeric_components_are_zero_padded(self):
        result = compose_observation_dates(pd.Series([2014, 2015]), pd.Series([6, 12]), pd.Series([1.0, 31.0]))

        assert list(result) == [pd.Timestamp('2014-06-01'), pd.Timestamp('2015-12-31')]

    def test_fractional_numeric_component_is_malformed(self):
        result = compose_observation_dates(pd.Series([2014]), pd.Series([6.5]), pd.Series([1]))

        assert pd.isna(result.iloc[0])

    def test_surrounding_whitespace_is_ignored(self):
        result = compose_observation_dates(pd.Series([' 2014']), pd.Series(['06 ']), pd.Series(['01']))

        assert result.iloc[0] == pd.Timestamp('2014-06-01')


class TestWeatherLookup:
    """Test the single-station day lookup"""

    def test_lookup_returns_station_observation(self, weather_lookup):
        observation = weather_lookup.lookup(date(2014, 6, 1))

        assert observation.station_id == '725030'
        assert observation.date == date(2014, 6, 1)
        assert observation.mean_temperature_f == 70.0
        assert observation.mean_wind_speed_knots == 5.0
        assert observation.total_precipitation_inches == 0.0

    def test_other_stations_are_ignored(self, weather_lookup):
        # 725053 reports 80F on the same day
        assert weather_lookup.lookup('2014-06-01').mean_temperature_f == 70.0
        assert len(weather_lookup) == 4

    def test_lookup_accepts_datetimes(self, weather_lookup):
        observation = weather_lookup.lookup(datetime(2014, 6, 2, 17, 45))

        assert observation.mean_temperature_f == 65.5

    def test_missing_day_returns_none(self, weather_lookup):
        assert weather_lookup.lookup(date(2014, 6, 3)) is None
        assert weather_lookup.lookup(None) is None
        assert weather_lookup.covers(date(2014, 6, 1)) is True
        assert weather_lookup.covers(date(2014, 6, 3)) is False

    def test_station_id_is_compared_as_text(self, weather_observations):
        observations = weather_observations.copy()
        observations['stn'] = [725030, 725030, 725030, 725030, 725053]

        lookup = WeatherLookup(observations, ' 725030 ')

        assert lookup.station_id == '725030'
        assert len(lookup) == 4

    def test_numeric_station_and_date_columns(self):
        observations = pd.DataFrame({
            'stn': [725030.0, 725030.0, 725053.0],
            'year': [2014, 2014, 2014],
            'mo': [6, 6, 6],
            'da': [1, 2, 1],
            'temp': [70.0, 65.5, 80.0],
            'wdsp': [5.0, 7.1, 3.0],
            'prcp': [0.0, 0.12, 0.5],
        })

        lookup = WeatherLookup(observations, '725030')

        assert len(lookup) == 2
        assert lookup.lookup(date(2014, 6, 1)).mean_temperature_f == 70.0
        assert lookup.lookup(date(2014, 6, 2)).total_precipitation_inches == 0.12

    def test_unknown_station_gives_empty_lookup(self, weather_observations):
        lookup = WeatherLookup(weather_observations, '999999')

        assert len(lookup) == 0
        assert lookup.lookup(date(2014, 6, 1)) is None

    def test_malformed_dates_are_dropped(self, weather_observations):
        observations = weather_observations.copy()
        observations.loc[0, 'mo'] = '6'

        lookup = WeatherLookup(observations, '725030')

        assert lookup.lookup(date(2014, 6, 1)) is None
        assert len(lookup) == 3

    def test_duplicate_day_keeps_first(self, weather_observations):
        extra = pd.DataFrame({
            'stn': ['725030'], 'year': ['2014'], 'mo': ['06'], 'da': ['01'],
            'temp': [99.0], 'wdsp': [1.0], 'prcp': [1.0],
        })
        observations = pd.concat([weather_observations, extra], ignore_index=True)

        lookup = WeatherLookup(observations, '725030')

        assert lookup.lookup(date(2014, 6, 1)).mean_temperature_f == 70.0

    def test_missing_values_stay_missing(self, weather_observations):
        observations = weather_observations.copy()
        observations['prcp'] = observations['prcp'].astype(object)
        observations.loc[1, 'prcp'] = None

        lookup = WeatherLookup(observations, '725030')

        assert lookup.lookup(date(2014, 6, 2)).total_precipitation_inches is None

    def test_missing_columns_raise(self, weather_observations):
        with pytest.raises(ValidationError):
            WeatherLookup(weather_observations.drop(columns=['wdsp']), '725030')

    def test_custom_columns(self, weather_observations):
        renamed = weather_observations.rename(columns={'stn': 'station', 'temp': 'tavg'})
        columns = WeatherColumns(station='station', temperature='tavg')

        lookup = WeatherLookup(renamed, '725030', columns=columns)

        assert lookup.lookup(date(2015, 12, 31)).mean_temperature_f == 35.0


class TestWeatherAttach:
    """Test the inner join by start day"""

    def test_attach_adds_weather_and_drops_unmatched(self, weather_lookup):
        trips = pd.DataFrame({
            'bike_id': [1, 2],
            'start_day': pd.to_datetime(['2014-06-01', '2014-06-03']).astype('datetime64[ns]'),
        })

        result = weather_lookup.attach(trips, 'start_day')

        assert len(result) == 1
        assert result.iloc[0]['bike_id'] == 1
        assert result.iloc[0]['mean_temperature'] == 70.0
        assert result.iloc[0]['mean_wind_speed'] == 5.0
        assert result.iloc[0]['total_precipitation'] == 0.0
        assert 'weather_day' not in result.columns

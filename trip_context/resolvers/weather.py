"""
Daily weather lookup for a single station
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from trip_context.models.records import WeatherObservation
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import ValidationError


DATE_FORMAT = "%Y%m%d"


@dataclass
class WeatherColumns:
    """Source column names; defaults follow the NOAA GSOD daily schema"""
    station: str = "stn"
    year: str = "year"
    month: str = "mo"
    day: str = "da"
    temperature: str = "temp"
    wind_speed: str = "wdsp"
    precipitation: str = "prcp"


def _component_text(series: pd.Series, width: int = 0) -> pd.Series:
    """
    Station or date component as text; missing stays missing

    Numeric columns carry no leading zeros, so integral values are
    zero-padded to ``width`` and fractional values become missing.
    Text is only stripped.
    """
    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        numbers = pd.to_numeric(series, errors='coerce')
        integral = numbers.notna() & (numbers % 1 == 0)
        text = numbers.where(integral).astype('Int64').astype('string')
        return text.str.zfill(width)
    text = series.astype('string').str.strip()
    return text.replace('', pd.NA)


def compose_observation_dates(year: pd.Series, month: pd.Series, day: pd.Series) -> pd.Series:
    """
    Rebuild observation dates from separate year/month/day fields

    The components are concatenated as text and parsed with the fixed
    ``%Y%m%d`` format. Anything but exactly eight digits after
    concatenation (a missing part, an unpadded text month) gives NaT.
    Numeric components are zero-padded first.
    """
    joined = _component_text(year, 4) + _component_text(month, 2) + _component_text(day, 2)
    well_formed = joined.str.fullmatch(r'\d{8}').fillna(False).astype(bool)
    parsed = pd.to_datetime(joined.where(well_formed), format=DATE_FORMAT, errors='coerce')
    return parsed.astype('datetime64[ns]').dt.normalize()


class WeatherLookup:
    """
    Maps a calendar date to the single observation of a fixed station
    """

    def __init__(
        self,
        observations: pd.DataFrame,
        station_id: str,
        columns: Optional[WeatherColumns] = None
    ):
        self.logger = get_logger(__name__)
        self.station_id = str(station_id).strip()
        self.columns = columns or WeatherColumns()
        cols = self.columns

        required = [cols.station, cols.year, cols.month, cols.day,
                    cols.temperature, cols.wind_speed, cols.precipitation]
        missing = [c for c in required if c not in observations.columns]
        if missing:
            raise ValidationError(
                f"Weather observations are missing columns: {missing}",
                context={'columns': list(observations.columns)}
            )

        station = _component_text(observations[cols.station])
        rows = observations[(station == self.station_id).fillna(False).astype(bool)]

        table = pd.DataFrame({
            'weather_day': compose_observation_dates(rows[cols.year], rows[cols.month], rows[cols.day]),
            'mean_temperature': pd.to_numeric(rows[cols.temperature], errors='coerce'),
            'mean_wind_speed': pd.to_numeric(rows[cols.wind_speed], errors='coerce'),
            'total_precipitation': pd.to_numeric(rows[cols.precipitation], errors='coerce'),
        })

        malformed = table['weather_day'].isna()
        if malformed.any():
            self.logger.warning(
                f"{int(malformed.sum())} weather rows for station {self.station_id} "
                f"have malformed date components and cannot be matched"
            )
        table = table[~malformed]

        duplicated = table['weather_day'].duplicated(keep='first')
        if duplicated.any():
            self.logger.warning(
                f"{int(duplicated.sum())} duplicate weather days for station {self.station_id}; "
                f"first observation per day kept"
            )
        self.table = table[~duplicated].reset_index(drop=True)
        self._index = self.table.set_index('weather_day')

        self.logger.info(
            f"Weather lookup ready with {len(self.table)} days for station {self.station_id}"
        )

    def __len__(self) -> int:
        return len(self.table)

    def lookup(self, day) -> Optional[WeatherObservation]:
        """
        Look up the observation for a calendar date

        Args:
            day: date, datetime or anything ``pd.Timestamp`` accepts

        Returns:
            WeatherObservation, or None when the station has no usable row
        """
        if day is None or pd.isna(day):
            return None
        key = pd.Timestamp(day).normalize()
        if key not in self._index.index:
            return None

        row = self._index.loc[key]
        return WeatherObservation(
            station_id=self.station_id,
            date=key.date(),
            mean_temperature_f=None if pd.isna(row['mean_temperature']) else float(row['mean_temperature']),
            mean_wind_speed_knots=None if pd.isna(row['mean_wind_speed']) else float(row['mean_wind_speed']),
            total_precipitation_inches=(
                None if pd.isna(row['total_precipitation']) else float(row['total_precipitation'])
            ),
        )

    def attach(self, df: pd.DataFrame, day_column: str) -> pd.DataFrame:
        """
        Inner-join weather onto ``df`` by a normalized datetime column

        Adds ``mean_temperature``, ``mean_wind_speed`` and
        ``total_precipitation``; rows without a matching day are dropped.
        """
        keyed = df.assign(weather_day=df[day_column])
        joined = keyed.merge(self.table, on='weather_day', how='inner', sort=False)
        return joined.drop(columns='weather_day')

    def covers(self, day: date) -> bool:
        return self.lookup(day) is not None

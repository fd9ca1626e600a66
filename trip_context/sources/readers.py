# trip_context/sources/readers.py
"""
Readers for the four input datasets of the aggregation job
"""

from pathlib import Path
from typing import Dict, Any, Optional

import geopandas as gpd
import pandas as pd

from trip_context.models.records import (
    TRIP_COLUMNS, TRIP_COLUMN_ALIASES, normalize_zip_code, parse_trip_timestamps
)
from trip_context.resolvers.weather import WeatherColumns
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import DataSourceError


TABULAR_SUFFIXES = {'.csv', '.parquet', '.pq'}
VECTOR_SUFFIXES = {'.geojson', '.json', '.shp', '.gpkg'}


class DatasetReader:
    """
    Reads trips, ZIP polygons, ZIP metadata and weather observations

    This class is responsible for:
    - Picking a parser from the file suffix (CSV, Parquet, vector formats)
    - Mapping source headers onto the canonical trip columns
    - Keeping weather date components as text so leading zeros survive
    - Reporting unreadable inputs as DataSourceError
    """

    def __init__(self, zip_geometry_column: str = "zip_code_geom", zip_column: str = "zip_code"):
        """
        Initialize dataset reader

        Args:
            zip_geometry_column: WKT geometry column for tabular polygon sources
            zip_column: Zip code column of the polygon source
        """
        self.zip_geometry_column = zip_geometry_column
        self.zip_column = zip_column
        self.logger = get_logger(__name__)

    def _check_path(self, path, dataset: str) -> Path:
        if path is None:
            raise DataSourceError(f"No path configured for {dataset}", context={'dataset': dataset})
        path = Path(path)
        if not path.exists():
            raise DataSourceError(
                f"Input file does not exist: {path}",
                error_code="FILE_NOT_FOUND",
                context={'dataset': dataset}
            )
        return path

    def _read_table(self, path: Path, dataset: str, dtype: Optional[Any] = None) -> pd.DataFrame:
        suffix = path.suffix.lower()
        if suffix not in TABULAR_SUFFIXES:
            raise DataSourceError(
                f"Unsupported file format for {dataset}: {suffix}",
                context={'path': str(path)}
            )

        try:
            if suffix == '.csv':
                df = pd.read_csv(path, dtype=dtype)
            else:
                df = pd.read_parquet(path)
                if dtype is not None:
                    # Numeric columns keep their type
                    df = df.astype({
                        k: v for k, v in dtype.items()
                        if k in df.columns and not pd.api.types.is_numeric_dtype(df[k])
                    })
        except Exception as e:
            raise DataSourceError(f"Failed to read {dataset} from {path}: {str(e)}", cause=e) from e

        self.logger.info(f"Read {len(df):,} rows of {dataset} from {path}")
        return df

    def read_trips(self, path) -> pd.DataFrame:
        """
        Read trip records and map them onto the canonical trip columns

        Returns:
            DataFrame with TRIP_COLUMNS

        Raises:
            DataSourceError: If the file cannot be read or lacks trip columns
        """
        path = self._check_path(path, 'trips')
        raw = self._read_table(path, 'trips')
        return self.standardize_trips(raw)

    def standardize_trips(self, raw: pd.DataFrame) -> pd.DataFrame:
        """Rename source headers to canonical trip columns and parse timestamps"""
        renamed = {}
        for column in raw.columns:
            normalized = str(column).strip().lower().replace(' ', '_')
            renamed[column] = TRIP_COLUMN_ALIASES.get(normalized, normalized)
        df = raw.rename(columns=renamed)

        missing = [column for column in TRIP_COLUMNS if column not in df.columns]
        if missing:
            raise DataSourceError(
                f"Trip source is missing columns: {missing}",
                context={'columns': list(raw.columns)}
            )

        df = df[TRIP_COLUMNS].copy()
        for column in ('start_time', 'stop_time'):
            df[column] = parse_trip_timestamps(df[column])

        unparsed = int(df['start_time'].isna().sum())
        if unparsed:
            self.logger.warning(f"{unparsed} trips have an unparseable start time")

        return df

    def read_zip_polygons(self, path) -> gpd.GeoDataFrame:
        """
        Read ZIP polygons

        Vector formats go through ``geopandas.read_file``; CSV/Parquet
        sources must carry WKT geometry in ``zip_geometry_column``.
        """
        path = self._check_path(path, 'zip_polygons')
        suffix = path.suffix.lower()

        if suffix in VECTOR_SUFFIXES:
            try:
                gdf = gpd.read_file(path)
            except Exception as e:
                raise DataSourceError(f"Failed to read ZIP polygons from {path}: {str(e)}", cause=e) from e
        else:
            table = self._read_table(path, 'zip_polygons', dtype={self.zip_column: str})
            if self.zip_geometry_column not in table.columns:
                raise DataSourceError(
                    f"ZIP polygon source has no geometry column '{self.zip_geometry_column}'",
                    context={'columns': list(table.columns)}
                )
            try:
                geometry = gpd.GeoSeries.from_wkt(table[self.zip_geometry_column], crs="EPSG:4326")
            except Exception as e:
                raise DataSourceError(f"Invalid WKT geometry in {path}: {str(e)}", cause=e) from e
            gdf = gpd.GeoDataFrame(
                table.drop(columns=[self.zip_geometry_column]),
                geometry=geometry
            )

        if self.zip_column not in gdf.columns:
            raise DataSourceError(
                f"ZIP polygon source has no '{self.zip_column}' column",
                context={'columns': list(gdf.columns)}
            )

        gdf[self.zip_column] = gdf[self.zip_column].map(normalize_zip_code)
        self.logger.info(f"Read {len(gdf):,} ZIP polygons from {path}")
        return gdf

    def read_zip_metadata(self, path) -> pd.DataFrame:
        """Read ZIP metadata; the zip column is left numeric as stored"""
        path = self._check_path(path, 'zip_metadata')
        return self._read_table(path, 'zip_metadata')

    def read_weather(self, path, columns: Optional[WeatherColumns] = None) -> pd.DataFrame:
        """
        Read daily weather observations

        Station and date components are read as text so ``"06"`` stays
        ``"06"`` for date reconstruction. Parquet sources that store them
        as numbers keep their numeric type.
        """
        path = self._check_path(path, 'weather')
        columns = columns or WeatherColumns()
        text_columns = {
            columns.station: str,
            columns.year: str,
            columns.month: str,
            columns.day: str,
        }
        return self._read_table(path, 'weather', dtype=text_columns)

    def describe(self, path) -> Dict[str, Any]:
        """
        File metadata for an input dataset

        Returns:
            Dictionary with name, path and size
        """
        path = self._check_path(path, 'input')
        stat = path.stat()
        return {
            'filename': path.name,
            'file_path': str(path),
            'size_bytes': stat.st_size,
            'size_mb': stat.st_size / (1024 * 1024),
            'modified_time': stat.st_mtime,
        }

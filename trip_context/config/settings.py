"""
Configuration management for the bike trip context aggregation job
"""

import os
from dataclasses import dataclass
from typing import Optional
from pathlib import Path

from trip_context.utils.exceptions import ConfigurationError


SUPPORTED_OUTPUT_FORMATS = ("parquet", "csv")


@dataclass
class SnowflakeConfig:
    """Snowflake connection configuration for the optional output sink"""
    account: str
    username: str
    password: str
    warehouse: str
    database: str
    schema: str
    role: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'SnowflakeConfig':
        """Load Snowflake config from environment variables"""
        return cls(
            account=os.getenv('SNOWFLAKE_ACCOUNT', ''),
            username=os.getenv('SNOWFLAKE_USERNAME', ''),
            password=os.getenv('SNOWFLAKE_PASSWORD', ''),
            warehouse=os.getenv('SNOWFLAKE_WAREHOUSE', 'COMPUTE_WH'),
            database=os.getenv('SNOWFLAKE_DATABASE', 'BIKE_TRIPS_DB'),
            schema=os.getenv('SNOWFLAKE_SCHEMA', 'ANALYTICS'),
            role=os.getenv('SNOWFLAKE_ROLE')
        )


@dataclass
class AggregationConfig:
    """
    Constants of the aggregation itself

    station_id is the single weather station trips are matched against;
    the year range is inclusive on both ends.
    """
    station_id: str = "725030"
    year_start: int = 2014
    year_end: int = 2015
    bucket_minutes: int = 10

    def __post_init__(self):
        self.station_id = str(self.station_id).strip()
        if not self.station_id:
            raise ConfigurationError("Weather station identifier must not be empty")
        if self.year_start > self.year_end:
            raise ConfigurationError(
                "Year range start must not be after its end",
                context={'year_start': self.year_start, 'year_end': self.year_end}
            )
        if self.bucket_minutes <= 0:
            raise ConfigurationError(
                "Duration bucket granularity must be positive",
                context={'bucket_minutes': self.bucket_minutes}
            )

    @classmethod
    def from_env(cls) -> 'AggregationConfig':
        """Load aggregation constants from environment variables"""
        return cls(
            station_id=os.getenv('WEATHER_STATION_ID', '725030'),
            year_start=int(os.getenv('YEAR_START', '2014')),
            year_end=int(os.getenv('YEAR_END', '2015')),
            bucket_minutes=int(os.getenv('BUCKET_MINUTES', '10'))
        )


@dataclass
class SourceConfig:
    """Locations of the four input datasets"""
    trips_path: Optional[Path] = None
    zip_polygons_path: Optional[Path] = None
    zip_metadata_path: Optional[Path] = None
    weather_path: Optional[Path] = None
    zip_geometry_column: str = "zip_code_geom"

    def __post_init__(self):
        for name in ('trips_path', 'zip_polygons_path', 'zip_metadata_path', 'weather_path'):
            value = getattr(self, name)
            if value:
                setattr(self, name, Path(value))
            else:
                setattr(self, name, None)

    @classmethod
    def from_env(cls) -> 'SourceConfig':
        """Load dataset locations from environment variables"""
        return cls(
            trips_path=os.getenv('TRIPS_PATH'),
            zip_polygons_path=os.getenv('ZIP_POLYGONS_PATH'),
            zip_metadata_path=os.getenv('ZIP_METADATA_PATH'),
            weather_path=os.getenv('WEATHER_PATH'),
            zip_geometry_column=os.getenv('ZIP_GEOMETRY_COLUMN', 'zip_code_geom')
        )

    @property
    def is_complete(self) -> bool:
        return all([
            self.trips_path,
            self.zip_polygons_path,
            self.zip_metadata_path,
            self.weather_path
        ])


@dataclass
class PipelineConfig:
    """Main pipeline configuration"""
    output_dir: Path
    output_format: str = "parquet"
    max_workers: int = 4
    write_to_snowflake: bool = False
    output_table: str = "trip_context_counts"
    log_level: str = "INFO"

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.output_format = self.output_format.lower()
        if self.output_format not in SUPPORTED_OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Unsupported output format: {self.output_format}",
                context={'supported': ", ".join(SUPPORTED_OUTPUT_FORMATS)}
            )


class Settings:
    """
    Main settings class that aggregates all configuration
    """

    def __init__(self):
        self.snowflake = SnowflakeConfig.from_env()
        self.aggregation = AggregationConfig.from_env()
        self.sources = SourceConfig.from_env()
        self.pipeline = PipelineConfig(
            output_dir=os.getenv('OUTPUT_DIR', './output'),
            output_format=os.getenv('OUTPUT_FORMAT', 'parquet'),
            max_workers=int(os.getenv('MAX_WORKERS', '4')),
            write_to_snowflake=os.getenv('WRITE_TO_SNOWFLAKE', 'false').lower() == 'true',
            output_table=os.getenv('OUTPUT_TABLE', 'trip_context_counts'),
            log_level=os.getenv('LOG_LEVEL', 'INFO')
        )

    def validate(self) -> bool:
        """
        Validate that all required configuration is present

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if not self.sources.is_complete:
            return False

        if self.pipeline.write_to_snowflake:
            required_snowflake_fields = [
                self.snowflake.account,
                self.snowflake.username,
                self.snowflake.password
            ]

            if not all(required_snowflake_fields):
                return False

        return True


# Global settings instance
settings = Settings()

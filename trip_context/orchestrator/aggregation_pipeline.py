# trip_context/orchestrator/aggregation_pipeline.py
"""
Main orchestrator for the bike trip context aggregation job
"""

from typing import Dict, List, Any, Optional, Tuple
from datetime import datetime, timezone
import concurrent.futures
from dataclasses import dataclass, field

import geopandas as gpd
import pandas as pd

from trip_context.config.settings import settings as global_settings, Settings
from trip_context.aggregation.aggregator import (
    TripAggregator, merge_partial_counts, sort_aggregate_rows, STAGE_COUNT_KEYS
)
from trip_context.loaders.file_writer import ResultWriter
from trip_context.loaders.snowflake_loader import SnowflakeLoader
from trip_context.models.records import parse_trip_timestamps
from trip_context.resolvers.geometry import ZipGeometryResolver
from trip_context.resolvers.metadata import ZipMetadataLookup
from trip_context.resolvers.weather import WeatherLookup
from trip_context.sources.readers import DatasetReader
from trip_context.utils.logger import get_logger, PerformanceLogger, timed_operation
from trip_context.utils.exceptions import ErrorCollector, ConfigurationError


UNDATED_PARTITION = "undated"


@dataclass
class AggregationResult:
    """Results from one aggregation run"""
    status: str
    input_trips: int
    matched_trips: int
    output_rows: int
    partitions_processed: int
    stage_counts: Dict[str, int]
    processing_time_seconds: float
    warnings: List[Dict[str, Any]]
    output_path: Optional[str] = None
    snowflake_load: Optional[Dict[str, Any]] = None
    table: Optional[pd.DataFrame] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'input_trips': self.input_trips,
            'matched_trips': self.matched_trips,
            'output_rows': self.output_rows,
            'partitions_processed': self.partitions_processed,
            'stage_counts': self.stage_counts,
            'processing_time_seconds': self.processing_time_seconds,
            'warnings': self.warnings,
            'output_path': self.output_path,
            'snowflake_load': self.snowflake_load,
        }


class AggregationPipeline:
    """
    Orchestrates one batch run

    - Reads the four input datasets once
    - Builds the geometry, metadata and weather resolvers
    - Aggregates trips per start month, sequentially or in a thread pool
    - Merges partial counts, orders the table, writes it once

    A failure in any partition aborts the whole batch.
    """

    def __init__(self, config: Optional[Settings] = None, reader: Optional[DatasetReader] = None):
        """
        Initialize the aggregation pipeline

        Args:
            config: Settings to use; defaults to the global settings
            reader: Dataset reader; one is built from the settings if omitted
        """
        self.settings = config or global_settings
        self.logger = get_logger(__name__)
        self.performance_logger = PerformanceLogger(__name__)
        self.reader = reader or DatasetReader(
            zip_geometry_column=self.settings.sources.zip_geometry_column
        )
        self.error_collector = ErrorCollector()

        self.logger.info("Aggregation pipeline initialized")

    def run(self) -> AggregationResult:
        """
        Read the configured sources, aggregate and write the result

        Raises:
            ConfigurationError: If input paths or sink credentials are missing
            PipelineError: If reading, aggregating or writing fails
        """
        if not self.settings.validate():
            raise ConfigurationError(
                "Invalid configuration - check input dataset paths and sink credentials"
            )

        sources = self.settings.sources
        self.logger.info("Input datasets", extra={'inputs': [
            self.reader.describe(path) for path in (
                sources.trips_path, sources.zip_polygons_path, sources.zip_metadata_path, sources.weather_path
            )
        ]})

        with timed_operation("read_sources", self.logger):
            trips = self.reader.read_trips(sources.trips_path)
            zip_polygons = self.reader.read_zip_polygons(sources.zip_polygons_path)
            zip_metadata = self.reader.read_zip_metadata(sources.zip_metadata_path)
            weather = self.reader.read_weather(sources.weather_path)

        return self.run_from_frames(trips, zip_polygons, zip_metadata, weather, write_output=True)

    def run_from_frames(
        self,
        trips: pd.DataFrame,
        zip_polygons: gpd.GeoDataFrame,
        zip_metadata: pd.DataFrame,
        weather: pd.DataFrame,
        write_output: bool = False
    ) -> AggregationResult:
        """
        Aggregate in-memory inputs

        Args:
            trips: Trip records with canonical columns
            zip_polygons: ZIP polygons with a ``zip_code`` column
            zip_metadata: ZIP metadata with ``zip``, ``borough``, ``neighborhood``
            weather: Daily weather observations
            write_output: Whether to write the table to the configured sinks

        Returns:
            AggregationResult; the table itself is on ``result.table``
        """
        start_time = datetime.now(timezone.utc)
        self.error_collector.clear()

        with timed_operation("aggregate_trips", self.logger):
            aggregator = self.build_aggregator(zip_polygons, zip_metadata, weather)
            table, stage_counts, partitions = self.aggregate_trips(aggregator, trips)

        if stage_counts['matched_trips'] == 0:
            self.error_collector.add_warning(
                "No trips matched every join; the aggregate table is empty",
                stage_counts
            )

        output_path = None
        snowflake_load = None
        if write_output:
            output_path, snowflake_load = self.write_output(table)

        processing_time = (datetime.now(timezone.utc) - start_time).total_seconds()

        result = AggregationResult(
            status="completed",
            input_trips=stage_counts['input_trips'],
            matched_trips=stage_counts['matched_trips'],
            output_rows=len(table),
            partitions_processed=partitions,
            stage_counts=stage_counts,
            processing_time_seconds=processing_time,
            warnings=list(self.error_collector.warnings),
            output_path=output_path,
            snowflake_load=snowflake_load,
            table=table
        )

        self.performance_logger.log_stage_counts(
            stage_counts,
            output_rows=result.output_rows,
            partitions=partitions,
            processing_time_seconds=processing_time,
            trips_per_second=result.input_trips / processing_time if processing_time > 0 else 0
        )
        self.logger.info(f"Aggregation completed: {result.output_rows} rows from {result.matched_trips} trips")
        return result

    def build_aggregator(
        self,
        zip_polygons: gpd.GeoDataFrame,
        zip_metadata: pd.DataFrame,
        weather: pd.DataFrame
    ) -> TripAggregator:
        """Build the resolvers once; partitions share them read-only"""
        aggregation = self.settings.aggregation
        return TripAggregator(
            geometry=ZipGeometryResolver(zip_polygons),
            metadata=ZipMetadataLookup(zip_metadata),
            weather=WeatherLookup(weather, aggregation.station_id),
            config=aggregation
        )

    def aggregate_trips(
        self,
        aggregator: TripAggregator,
        trips: pd.DataFrame
    ) -> Tuple[pd.DataFrame, Dict[str, int], int]:
        """
        Aggregate trips partition by partition and merge the counts

        Returns:
            (ordered aggregate table, summed stage counts, partition count)
        """
        partitions = self._partition_trips(trips)
        self.logger.info(f"Aggregating {len(trips):,} trips in {len(partitions)} partitions")

        if self.settings.pipeline.max_workers > 1 and len(partitions) > 1:
            outcomes = self._process_partitions_parallel(aggregator, partitions)
        else:
            outcomes = self._process_partitions_sequential(aggregator, partitions)

        # All or nothing
        self.error_collector.raise_if_errors()

        stage_counts = dict.fromkeys(STAGE_COUNT_KEYS, 0)
        for _, stats in outcomes:
            for key, value in stats.items():
                stage_counts[key] += value

        table = sort_aggregate_rows(merge_partial_counts(frame for frame, _ in outcomes))
        self.logger.info("Aggregation stage counts", extra={'stage_counts': stage_counts})
        return table, stage_counts, len(partitions)

    def _partition_trips(self, trips: pd.DataFrame) -> List[Tuple[str, pd.DataFrame]]:
        """Split trips by start year-month; unparseable start times form their own partition"""
        if trips.empty or "start_time" not in trips.columns:
            return [(UNDATED_PARTITION, trips)]

        start = parse_trip_timestamps(trips['start_time'])
        keys = start.dt.strftime('%Y-%m').fillna(UNDATED_PARTITION)
        return [
            (str(key), group)
            for key, group in trips.groupby(keys.to_numpy(), sort=True)
        ]

    def _process_partitions_sequential(
        self,
        aggregator: TripAggregator,
        partitions: List[Tuple[str, pd.DataFrame]]
    ) -> List[Tuple[pd.DataFrame, Dict[str, int]]]:
        """Process partitions one after another"""
        outcomes = []
        for key, partition in partitions:
            try:
                outcomes.append(aggregator.aggregate_partial(partition))
                self.logger.debug(f"Aggregated partition {key}: {len(partition)} trips")
            except Exception as e:
                self.error_collector.add_error(e, {'partition': key})
                self.performance_logger.log_error_metrics(type(e).__name__, str(e), partition=key)
                self.logger.error(f"Failed to aggregate partition {key}: {str(e)}")
        return outcomes

    def _process_partitions_parallel(
        self,
        aggregator: TripAggregator,
        partitions: List[Tuple[str, pd.DataFrame]]
    ) -> List[Tuple[pd.DataFrame, Dict[str, int]]]:
        """Process partitions in a thread pool"""
        outcomes = []
        max_workers = self.settings.pipeline.max_workers

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_key = {
                executor.submit(aggregator.aggregate_partial, partition): key
                for key, partition in partitions
            }

            for future in concurrent.futures.as_completed(future_to_key):
                key = future_to_key[future]
                try:
                    outcomes.append(future.result())
                    self.logger.debug(f"Aggregated partition {key}")
                except Exception as e:
                    self.error_collector.add_error(e, {'partition': key})
                    self.performance_logger.log_error_metrics(type(e).__name__, str(e), partition=key)
                    self.logger.error(f"Failed to aggregate partition {key}: {str(e)}")

        return outcomes

    def write_output(self, table: pd.DataFrame) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Write the aggregate table to the local file and, if enabled, Snowflake

        Returns:
            (output file path, Snowflake load statistics or None)
        """
        pipeline_config = self.settings.pipeline

        with timed_operation("write_output", self.logger):
            writer = ResultWriter(pipeline_config.output_dir, pipeline_config.output_format)
            file_info = writer.write(table, pipeline_config.output_table)

            snowflake_load = None
            if pipeline_config.write_to_snowflake:
                loader = SnowflakeLoader(self.settings.snowflake)
                loader.create_output_table(pipeline_config.output_table)
                snowflake_load = loader.load_dataframe(table, pipeline_config.output_table)

        return file_info['output_path'], snowflake_load

    def get_pipeline_status(self) -> Dict[str, Any]:
        """Configuration summary of the pipeline"""
        sources = self.settings.sources
        aggregation = self.settings.aggregation
        return {
            'configuration_valid': self.settings.validate(),
            'trips_path': str(sources.trips_path) if sources.trips_path else None,
            'zip_polygons_path': str(sources.zip_polygons_path) if sources.zip_polygons_path else None,
            'zip_metadata_path': str(sources.zip_metadata_path) if sources.zip_metadata_path else None,
            'weather_path': str(sources.weather_path) if sources.weather_path else None,
            'station_id': aggregation.station_id,
            'year_range': [aggregation.year_start, aggregation.year_end],
            'bucket_minutes': aggregation.bucket_minutes,
            'output_dir': str(self.settings.pipeline.output_dir),
            'output_format': self.settings.pipeline.output_format,
            'write_to_snowflake': self.settings.pipeline.write_to_snowflake,
            'max_workers': self.settings.pipeline.max_workers,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

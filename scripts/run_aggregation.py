# scripts/run_aggregation.py
"""
Command-line entry point for the bike trip context aggregation job

Usage Examples:
    # Run with paths from the environment / .env file
    python scripts/run_aggregation.py

    # Explicit inputs and the default 2014-2015 window
    python scripts/run_aggregation.py --trips data/citibike_trips.csv \\
        --zip-polygons data/zip_codes.geojson --zip-metadata data/zip_areas.csv \\
        --weather data/gsod_2014_2015.csv

    # Different station and years, CSV output
    python scripts/run_aggregation.py --station-id 725053 --year-range 2016 2017 --output-format csv

    # Also load the table into Snowflake
    python scripts/run_aggregation.py --snowflake --output-table trip_context_counts
"""

import argparse
import sys
from pathlib import Path
import json

from dotenv import load_dotenv

# Make the package importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from trip_context.utils.logger import setup_pipeline_logging, get_logger
from trip_context.utils.exceptions import PipelineError, ConfigurationError


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Bike trip context aggregation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    # Inputs
    parser.add_argument('--trips', help='Trip records (CSV or Parquet)')
    parser.add_argument('--zip-polygons', help='ZIP polygons (GeoJSON, shapefile, or CSV/Parquet with WKT)')
    parser.add_argument('--zip-metadata', help='ZIP metadata with borough and neighborhood')
    parser.add_argument('--weather', help='Daily weather observations (GSOD layout)')

    # Aggregation constants
    parser.add_argument('--station-id', help='Weather station identifier (default: 725030)')
    parser.add_argument(
        '--year-range',
        nargs=2,
        type=int,
        metavar=('START_YEAR', 'END_YEAR'),
        help='Inclusive range of trip start years (default: 2014 2015)'
    )
    parser.add_argument('--bucket-minutes', type=int, help='Duration bucket width in minutes (default: 10)')

    # Output
    parser.add_argument('--output-dir', help='Directory for the aggregate table (default: ./output)')
    parser.add_argument('--output-format', choices=['parquet', 'csv'], help='Aggregate table file format')
    parser.add_argument('--output-table', help='Output file/table name (default: trip_context_counts)')
    parser.add_argument('--snowflake', action='store_true', help='Also load the table into Snowflake')

    # Processing
    parser.add_argument('--max-workers', type=int, help='Parallel partition workers (default: 4)')

    # Logging
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument('--log-dir', type=str, help='Directory for log files (default: console only)')

    # Utility operations
    parser.add_argument('--validate-config', action='store_true', help='Validate configuration and exit')
    parser.add_argument('--status', action='store_true', help='Print the effective configuration and exit')
    parser.add_argument(
        '--summary-format',
        choices=['text', 'json'],
        default='text',
        help='Format of the run summary (default: text)'
    )

    return parser.parse_args(argv)


def apply_overrides(settings, args):
    """Override environment configuration with command line arguments"""
    from trip_context.config.settings import AggregationConfig

    if args.trips:
        settings.sources.trips_path = Path(args.trips)
    if args.zip_polygons:
        settings.sources.zip_polygons_path = Path(args.zip_polygons)
    if args.zip_metadata:
        settings.sources.zip_metadata_path = Path(args.zip_metadata)
    if args.weather:
        settings.sources.weather_path = Path(args.weather)

    aggregation = settings.aggregation
    year_start, year_end = args.year_range or (aggregation.year_start, aggregation.year_end)
    settings.aggregation = AggregationConfig(
        station_id=args.station_id or aggregation.station_id,
        year_start=year_start,
        year_end=year_end,
        bucket_minutes=args.bucket_minutes or aggregation.bucket_minutes
    )

    if args.output_dir:
        settings.pipeline.output_dir = Path(args.output_dir)
        settings.pipeline.output_dir.mkdir(parents=True, exist_ok=True)
    if args.output_format:
        settings.pipeline.output_format = args.output_format
    if args.output_table:
        settings.pipeline.output_table = args.output_table
    if args.snowflake:
        settings.pipeline.write_to_snowflake = True
    if args.max_workers:
        settings.pipeline.max_workers = args.max_workers

    settings.pipeline.log_level = args.log_level
    return settings


def print_status(status: dict, summary_format: str):
    """Print the effective configuration"""
    if summary_format == 'json':
        print(json.dumps(status, indent=2, default=str))
    else:
        print("=== Pipeline Configuration ===")
        for key, value in status.items():
            print(f"{key.replace('_', ' ').title()}: {value}")


def print_results(result, summary_format: str):
    """Print aggregation results"""
    if summary_format == 'json':
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return

    print("=== Aggregation Results ===")
    print(f"Status: {result.status}")
    print(f"Input Trips: {result.input_trips:,}")
    print(f"Matched Trips: {result.matched_trips:,}")
    print(f"Output Rows: {result.output_rows:,}")
    print(f"Partitions: {result.partitions_processed}")
    print(f"Processing Time: {result.processing_time_seconds:.2f} seconds")

    print("\n=== Excluded Trips ===")
    for key in ('outside_year_range', 'unresolved_geometry', 'missing_metadata', 'missing_weather'):
        print(f"{key.replace('_', ' ').title()}: {result.stage_counts.get(key, 0):,}")

    if result.output_path:
        print(f"\nOutput: {result.output_path}")
    if result.snowflake_load:
        print(f"Snowflake: {result.snowflake_load.get('loaded_records', 0):,} rows "
              f"into {result.snowflake_load.get('table_name')}")

    if result.warnings:
        print(f"\nWarnings: {len(result.warnings)}")
        for warning in result.warnings[:3]:
            print(f"  - {warning.get('message', 'Unknown warning')}")


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)
    load_dotenv()

    try:
        setup_pipeline_logging(log_level=args.log_level, log_dir=args.log_dir)
        logger = get_logger(__name__)
        logger.info("Starting bike trip context aggregation")
        logger.info(f"Arguments: {vars(args)}")

        from trip_context.config.settings import Settings
        from trip_context.orchestrator.aggregation_pipeline import AggregationPipeline

        settings = apply_overrides(Settings(), args)

        if args.validate_config:
            if settings.validate():
                print("✓ Configuration is valid")
                return 0
            print("✗ Configuration is invalid - check input paths and Snowflake credentials")
            return 1

        pipeline = AggregationPipeline(settings)

        if args.status:
            print_status(pipeline.get_pipeline_status(), args.summary_format)
            return 0

        result = pipeline.run()
        print_results(result, args.summary_format)
        logger.info("Aggregation finished successfully")
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}")
        return 1

    except PipelineError as e:
        print(f"Pipeline Error: {e}")
        return 2

    except KeyboardInterrupt:
        print("\nAggregation interrupted by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}")
        if args.log_level == 'DEBUG':
            import traceback
            traceback.print_exc()
        return 3


if __name__ == '__main__':
    sys.exit(main())

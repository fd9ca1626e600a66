# trip_context/loaders/snowflake_loader.py
"""
Snowflake sink for the aggregate table
"""

from typing import Dict, Any
import pandas as pd
import snowflake.connector
from snowflake.connector.pandas_tools import write_pandas
from contextlib import contextmanager

from trip_context.config.settings import SnowflakeConfig
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import LoaderError, retry_on_exception


OUTPUT_TABLE_SCHEMA = """
            USERTYPE VARCHAR(32),
            ZIP_START VARCHAR(10),
            BOROUGH_START VARCHAR(64),
            NEIGHBORHOOD_START VARCHAR(128),
            ZIP_END VARCHAR(10),
            BOROUGH_END VARCHAR(64),
            NEIGHBORHOOD_END VARCHAR(128),
            START_DAY DATE,
            STOP_DAY DATE,
            MEAN_TEMPERATURE FLOAT,
            MEAN_WIND_SPEED FLOAT,
            TOTAL_PRECIPITATION FLOAT,
            TRIP_MINUTES_BUCKET INTEGER,
            TRIP_COUNT INTEGER
"""


class SnowflakeLoader:
    """
    Loads the aggregate table into Snowflake

    - Connection handling through a context manager
    - Output table creation
    - Batched loading with ``write_pandas``, retried on failure
    """

    def __init__(self, config: SnowflakeConfig):
        """
        Initialize Snowflake loader

        Args:
            config: Snowflake configuration object
        """
        self.config = config
        self.logger = get_logger(__name__)
        self._connection = None

    @contextmanager
    def get_connection(self):
        """
        Context manager for Snowflake database connections

        Ensures proper connection handling and cleanup
        """
        connection = None
        try:
            connection = snowflake.connector.connect(
                account=self.config.account,
                user=self.config.username,
                password=self.config.password,
                warehouse=self.config.warehouse,
                database=self.config.database,
                schema=self.config.schema,
                role=self.config.role
            )
            self.logger.info("Connected to Snowflake successfully")
            yield connection

        except snowflake.connector.errors.Error as e:
            self.logger.error(f"Failed to connect to Snowflake: {str(e)}")
            raise LoaderError(f"Snowflake connection failed: {str(e)}") from e

        finally:
            if connection:
                connection.close()
                self.logger.info("Snowflake connection closed")

    def create_output_table(self, table_name: str, replace: bool = True) -> bool:
        """
        Create the aggregate output table

        Args:
            table_name: Name of the table to create
            replace: Replace an existing table, since every run is a full rebuild

        Returns:
            True if table was created successfully

        Raises:
            LoaderError: If table creation fails
        """
        verb = "CREATE OR REPLACE TABLE" if replace else "CREATE TABLE IF NOT EXISTS"
        create_table_sql = f"""
        {verb} {table_name.upper()} (
            {OUTPUT_TABLE_SCHEMA.strip()},
            _LOAD_TIMESTAMP TIMESTAMP DEFAULT CURRENT_TIMESTAMP()
        )
        """

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(create_table_sql)
                cursor.close()

            self.logger.info(f"Successfully created table: {table_name}")
            return True

        except Exception as e:
            raise LoaderError(f"Failed to create table {table_name}: {str(e)}") from e

    @staticmethod
    def prepare_frame(df: pd.DataFrame) -> pd.DataFrame:
        """Upper-case column names and turn day columns into dates"""
        frame = df.copy()
        for column in ('start_day', 'stop_day'):
            if column in frame.columns:
                frame[column] = pd.to_datetime(frame[column]).dt.date
        frame.columns = [column.upper() for column in frame.columns]
        return frame

    @retry_on_exception(max_retries=2, delay_seconds=1.0, exceptions=(LoaderError,))
    def _write_batch(self, conn, batch_df: pd.DataFrame, table_name: str) -> int:
        success, nchunks, nrows, _ = write_pandas(
            conn=conn,
            df=batch_df,
            table_name=table_name.upper(),
            database=self.config.database,
            schema=self.config.schema,
            quote_identifiers=False
        )
        if not success:
            raise LoaderError(f"write_pandas reported failure for {table_name}")
        return nrows

    def load_dataframe(
        self,
        df: pd.DataFrame,
        table_name: str,
        batch_size: int = 50000
    ) -> Dict[str, Any]:
        """
        Load the aggregate table into Snowflake

        Args:
            df: Aggregate DataFrame
            table_name: Target table name
            batch_size: Number of rows per write_pandas call

        Returns:
            Dictionary with load statistics

        Raises:
            LoaderError: If loading fails
        """
        if df.empty:
            self.logger.warning(f"Aggregate table is empty, nothing loaded into {table_name}")
            return {"status": "skipped", "loaded_records": 0, "table_name": table_name}

        frame = self.prepare_frame(df)
        total_records = len(frame)
        loaded_records = 0

        try:
            with self.get_connection() as conn:
                for i in range(0, total_records, batch_size):
                    batch_df = frame.iloc[i:i + batch_size]
                    loaded_records += self._write_batch(conn, batch_df, table_name)
                    self.logger.info(f"Loaded batch {i // batch_size + 1}: {len(batch_df)} records")

        except Exception as e:
            raise LoaderError(f"Failed to load aggregate rows into {table_name}: {str(e)}") from e

        self.logger.info(f"Load completed: {loaded_records}/{total_records} records loaded into {table_name}")

        return {
            "status": "completed",
            "total_records": total_records,
            "loaded_records": loaded_records,
            "table_name": table_name,
            "load_timestamp": pd.Timestamp.now().isoformat(),
        }

    def get_table_info(self, table_name: str) -> Dict[str, Any]:
        """
        Get row count, trip total and day range of the output table
        """
        query = f"""
        SELECT
            COUNT(*) as row_count,
            SUM(TRIP_COUNT) as trip_total,
            MIN(START_DAY) as first_day,
            MAX(START_DAY) as last_day
        FROM {table_name.upper()}
        """

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query)
                result = cursor.fetchone()
                cursor.close()

                return {
                    'table_name': table_name,
                    'row_count': result[0] if result else 0,
                    'trip_total': result[1] if result else 0,
                    'first_day': result[2] if result else None,
                    'last_day': result[3] if result else None,
                }

        except Exception as e:
            self.logger.error(f"Failed to get table info for {table_name}: {str(e)}")
            return {'error': str(e)}

# trip_context/loaders/file_writer.py
"""
Local file output for the aggregate table
"""

from pathlib import Path
from typing import Dict, Any

import pandas as pd

from trip_context.config.settings import SUPPORTED_OUTPUT_FORMATS
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import LoaderError


class ResultWriter:
    """
    Writes the aggregate DataFrame to CSV or Parquet

    Output is written to a temporary file first and renamed into place,
    so a failed write never leaves a partial result behind.
    """

    def __init__(self, output_dir: Path, output_format: str = "parquet"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.output_format = output_format.lower()
        if self.output_format not in SUPPORTED_OUTPUT_FORMATS:
            raise LoaderError(f"Unsupported output format: {output_format}")
        self.logger = get_logger(__name__)

    def write(self, df: pd.DataFrame, name: str = "trip_context_counts") -> Dict[str, Any]:
        """
        Write the aggregate table

        Args:
            df: Aggregate DataFrame
            name: File name without suffix

        Returns:
            Dictionary with output path, row count and size

        Raises:
            LoaderError: If the file cannot be written
        """
        final_path = self.output_dir / f"{name}.{self.output_format}"
        temp_path = final_path.with_suffix(final_path.suffix + '.tmp')

        try:
            if self.output_format == 'csv':
                df.to_csv(temp_path, index=False)
            else:
                df.to_parquet(temp_path, index=False)
            temp_path.replace(final_path)

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise LoaderError(f"Failed to write {final_path}: {str(e)}", cause=e) from e

        size_bytes = final_path.stat().st_size
        self.logger.info(f"Wrote {len(df):,} aggregate rows to {final_path}")

        return {
            'output_path': str(final_path),
            'rows_written': len(df),
            'size_bytes': size_bytes,
            'format': self.output_format,
        }

"""
ZIP code to borough/neighborhood lookup
"""

from typing import Optional

import pandas as pd

from trip_context.models.records import ZipMetadata, normalize_zip_code
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import ValidationError


class ZipMetadataLookup:
    """
    Exact-match lookup of ZIP metadata

    The metadata source stores zips as numbers; they are normalized once,
    here, into the same string form the polygon data uses.
    """

    def __init__(
        self,
        metadata: pd.DataFrame,
        zip_column: str = "zip",
        borough_column: str = "borough",
        neighborhood_column: str = "neighborhood"
    ):
        self.logger = get_logger(__name__)

        missing = [c for c in (zip_column, borough_column, neighborhood_column) if c not in metadata.columns]
        if missing:
            raise ValidationError(
                f"ZIP metadata is missing columns: {missing}",
                context={'columns': list(metadata.columns)}
            )

        table = pd.DataFrame({
            'zip_code': metadata[zip_column].map(normalize_zip_code),
            'borough': metadata[borough_column],
            'neighborhood': metadata[neighborhood_column],
        })

        unusable = table['zip_code'].isna()
        if unusable.any():
            self.logger.warning(f"Dropped {int(unusable.sum())} ZIP metadata rows without a usable zip")
        table = table[~unusable]

        duplicated = table['zip_code'].duplicated(keep='first')
        if duplicated.any():
            self.logger.warning(
                f"{int(duplicated.sum())} duplicate ZIP metadata rows ignored; first row per zip kept"
            )
        self.table = table[~duplicated].reset_index(drop=True)
        self._index = self.table.set_index('zip_code')

        self.logger.info(f"Metadata lookup ready with {len(self.table)} ZIP codes")

    def __len__(self) -> int:
        return len(self.table)

    def lookup(self, zip_code) -> Optional[ZipMetadata]:
        """
        Look up borough and neighborhood for a zip code

        Returns:
            ZipMetadata, or None if the zip is unknown
        """
        key = normalize_zip_code(zip_code)
        if key is None or key not in self._index.index:
            return None
        row = self._index.loc[key]
        return ZipMetadata(zip_code=key, borough=row['borough'], neighborhood=row['neighborhood'])

    def attach(self, df: pd.DataFrame, zip_column: str, suffix: str) -> pd.DataFrame:
        """
        Inner-join metadata onto ``df`` by ``zip_column``

        Adds ``borough_<suffix>`` and ``neighborhood_<suffix>``; rows whose
        zip is unknown are dropped.
        """
        labels = self.table.rename(columns={
            'zip_code': zip_column,
            'borough': f'borough_{suffix}',
            'neighborhood': f'neighborhood_{suffix}',
        })
        return df.merge(labels, on=zip_column, how='inner', sort=False)

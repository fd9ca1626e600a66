"""
Point-in-polygon resolution of coordinates to ZIP codes
"""

from typing import Optional

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import Point
from shapely.strtree import STRtree

from trip_context.models.records import ZipPolygon, normalize_zip_code
from trip_context.utils.logger import get_logger
from trip_context.utils.exceptions import ValidationError


WGS84 = "EPSG:4326"


class ZipGeometryResolver:
    """
    Maps (longitude, latitude) pairs to the ZIP polygon containing them

    Containment is shapely's ``within`` predicate: a point on a polygon
    boundary is not within it and resolves to nothing. When polygons
    overlap, the smallest zip_code containing the point wins.
    """

    def __init__(self, polygons: gpd.GeoDataFrame, zip_column: str = "zip_code"):
        """
        Initialize the resolver

        Args:
            polygons: GeoDataFrame with a zip column and polygon geometry
            zip_column: Name of the zip column in ``polygons``
        """
        self.logger = get_logger(__name__)

        if zip_column not in polygons.columns:
            raise ValidationError(
                f"ZIP polygons are missing column '{zip_column}'",
                context={'columns': list(polygons.columns)}
            )

        frame = polygons[[zip_column, polygons.geometry.name]].copy()
        frame = frame.rename(columns={zip_column: 'zip_code'})
        frame = frame.set_geometry(polygons.geometry.name)

        if frame.crs is None:
            frame = frame.set_crs(WGS84)
        elif frame.crs != WGS84:
            frame = frame.to_crs(WGS84)

        frame['zip_code'] = frame['zip_code'].map(normalize_zip_code)
        usable = frame['zip_code'].notna() & frame.geometry.notna() & ~frame.geometry.is_empty
        dropped = int((~usable).sum())
        if dropped:
            self.logger.warning(f"Dropped {dropped} ZIP polygons without zip code or geometry")

        # Sorting by zip makes the first match the smallest zip code
        self.polygons = (
            frame[usable]
            .sort_values('zip_code', kind='mergesort')
            .reset_index(drop=True)
        )
        self._zip_codes = self.polygons['zip_code'].to_numpy()
        self._tree = STRtree(list(self.polygons.geometry))

        self.logger.info(f"Geometry resolver ready with {len(self.polygons)} ZIP polygons")

    def __len__(self) -> int:
        return len(self.polygons)

    def polygon_for(self, zip_code: str) -> Optional[ZipPolygon]:
        """Return the polygon registered for a zip code, if any"""
        zip_code = normalize_zip_code(zip_code)
        matches = self.polygons[self.polygons['zip_code'] == zip_code]
        if matches.empty:
            return None
        row = matches.iloc[0]
        return ZipPolygon(zip_code=row['zip_code'], geometry=row.geometry)

    def resolve(self, longitude: float, latitude: float) -> Optional[str]:
        """
        Resolve one point to a zip code

        Args:
            longitude: Point longitude (EPSG:4326)
            latitude: Point latitude (EPSG:4326)

        Returns:
            The zip code of the containing polygon, or None
        """
        if pd.isna(longitude) or pd.isna(latitude):
            return None

        indices = self._tree.query(Point(float(longitude), float(latitude)), predicate="within")
        if len(indices) == 0:
            return None
        return str(self._zip_codes[int(np.min(indices))])

    def resolve_points(self, longitudes: pd.Series, latitudes: pd.Series) -> pd.Series:
        """
        Resolve many points at once with a spatial join

        Args:
            longitudes: Longitudes, index-aligned with ``latitudes``
            latitudes: Latitudes

        Returns:
            Series of zip codes aligned with the input index; None where
            no polygon contains the point
        """
        result = pd.Series([None] * len(longitudes), index=longitudes.index, dtype=object)

        valid = longitudes.notna() & latitudes.notna()
        if not valid.any() or self.polygons.empty:
            return result

        points = gpd.GeoDataFrame(
            {'_row': np.arange(int(valid.sum()))},
            geometry=gpd.points_from_xy(longitudes[valid], latitudes[valid]),
            crs=WGS84
        )

        joined = gpd.sjoin(points, self.polygons, how="inner", predicate="within")

        ambiguous = joined['_row'].duplicated(keep=False)
        if ambiguous.any():
            self.logger.warning(
                f"{joined.loc[ambiguous, '_row'].nunique()} points fall inside more than one "
                f"ZIP polygon; using the smallest zip code"
            )

        matches = (
            joined.sort_values(['_row', 'zip_code'], kind='mergesort')
            .drop_duplicates('_row', keep='first')
        )

        valid_index = longitudes.index[valid]
        result.loc[valid_index[matches['_row'].to_numpy()]] = matches['zip_code'].to_numpy()
        return result

"""Serialization keys for concurrent submissions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from cie.models import Coordinate
from cie.utils.geo import EARTH_RADIUS_METERS
from cie.utils.hashing import hash_text
from cie.utils.text import normalize_title


METERS_PER_DEGREE = EARTH_RADIUS_METERS * math.pi / 180

# lon_cell value of a key covering a whole latitude band.
BAND_LON_CELL = -1


@dataclass(frozen=True, order=True)
class IntakeKey:
    """Normalized title plus a coarse grid cell."""

    title: str
    lat_cell: int
    lon_cell: int

    def as_text(self) -> str:
        return f"{self.title}|{self.lat_cell}|{self.lon_cell}"

    def fingerprint(self) -> str:
        """Short hash for logs; avoids writing raw titles."""
        return hash_text(self.as_text())


def is_whole_division(total: float, cell_degrees: float) -> bool:
    cells = total / cell_degrees
    return abs(cells - round(cells)) < 1e-6


@dataclass(frozen=True)
class IntakeGrid:
    """Grid of lat/lon cells sized so that duplicates always share a lock key.

    Any two points within ``radius_meters`` of each other get lock sets with at
    least one key in common. The latitude span covers the radius; the
    longitude span of each band is widened by ``1/cos(lat)`` and wraps at
    ±180°. Bands where that span would exceed ``max_band_keys`` (near the
    poles) are locked as a single key.
    """

    cell_degrees: float
    radius_meters: float
    max_band_keys: int = 64

    def __post_init__(self) -> None:
        if not math.isfinite(self.cell_degrees) or not 0 < self.cell_degrees <= 90:
            raise ValueError("cell_degrees must be in (0, 90]")
        if not is_whole_division(360.0, self.cell_degrees):
            raise ValueError("cell_degrees must divide 360 evenly")
        if not math.isfinite(self.radius_meters) or self.radius_meters <= 0:
            raise ValueError("radius_meters must be a positive finite number")
        if self.max_band_keys < 1:
            raise ValueError("max_band_keys must be >= 1")

    @property
    def lon_cells(self) -> int:
        return round(360.0 / self.cell_degrees)

    @property
    def lat_cells(self) -> int:
        return math.ceil(180.0 / self.cell_degrees - 1e-9)

    @property
    def radius_degrees(self) -> float:
        return self.radius_meters / METERS_PER_DEGREE

    def cell_of(self, coordinate: Coordinate) -> tuple[int, int]:
        lat_cell = min(math.floor((coordinate.lat + 90.0) / self.cell_degrees), self.lat_cells - 1)
        lon_cell = math.floor((coordinate.lon + 180.0) / self.cell_degrees) % self.lon_cells
        return lat_cell, lon_cell

    def lat_span(self) -> int:
        return math.ceil(self.radius_degrees / self.cell_degrees)

    def lon_span(self, lat_cell: int) -> Optional[int]:
        """Longitude cells to lock either side within a band; None locks the band whole.

        Depends on the band only, so every submission touching a band agrees on
        how that band is locked.
        """
        south = lat_cell * self.cell_degrees - 90.0
        north = south + self.cell_degrees
        # A geodesic shorter than the radius never strays further poleward than this.
        lat_bound = max(abs(south), abs(north)) + 2 * self.radius_degrees
        if lat_bound >= 90.0:
            return None

        span_degrees = self.radius_degrees / math.cos(math.radians(lat_bound))
        span = math.ceil(span_degrees / self.cell_degrees)
        if 2 * span + 1 >= min(self.lon_cells, self.max_band_keys):
            return None
        return span

    def home_key(self, title: str, coordinate: Coordinate) -> IntakeKey:
        lat_cell, lon_cell = self.cell_of(coordinate)
        return IntakeKey(normalize_title(title), lat_cell, lon_cell)

    def lock_keys(self, title: str, coordinate: Coordinate) -> list[IntakeKey]:
        """Every key a submission at ``coordinate`` must hold, sorted."""
        home = self.home_key(title, coordinate)
        lat_span = self.lat_span()
        keys: set[IntakeKey] = set()

        for lat_cell in range(home.lat_cell - lat_span, home.lat_cell + lat_span + 1):
            if not 0 <= lat_cell < self.lat_cells:
                continue
            lon_span = self.lon_span(lat_cell)
            if lon_span is None:
                keys.add(IntakeKey(home.title, lat_cell, BAND_LON_CELL))
                continue
            for offset in range(-lon_span, lon_span + 1):
                keys.add(IntakeKey(home.title, lat_cell, (home.lon_cell + offset) % self.lon_cells))

        return sorted(keys)

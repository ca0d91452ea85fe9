"""Proximity matching and merging of road hazard reports."""

import hashlib
import math
from datetime import datetime
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import select, text, update
from sqlalchemy.orm import Session

from .models import RoadEvent

PROXIMITY_TOLERANCE_DEG = 0.001  # ~100 m, absorbs GPS drift

# Twice the tolerance, so two points within tolerance never sit more than
# one cell apart on either axis, whatever the float rounding.
LOCK_CELL_DEG = PROXIMITY_TOLERANCE_DEG * 2


def has_valid_gps(lat: Optional[float], lon: Optional[float]) -> bool:
    """Presence check only: 0.0 is a real coordinate."""
    return lat is not None and lon is not None


def compute_grid_cell(lat: float, lon: float, cell_deg: float = LOCK_CELL_DEG) -> Tuple[int, int]:
    """Compute the lock grid cell containing a coordinate."""
    return math.floor(lat / cell_deg), math.floor(lon / cell_deg)


def neighbourhood_cells(lat: float, lon: float) -> List[Tuple[int, int]]:
    """The 3x3 block of cells around a coordinate."""
    row, col = compute_grid_cell(lat, lon)
    return [(row + d_row, col + d_col) for d_row in (-1, 0, 1) for d_col in (-1, 0, 1)]


def compute_lock_key(event_type: str, cell: Tuple[int, int]) -> int:
    """Signed 64-bit advisory lock key for (event_type, cell)."""
    digest = hashlib.blake2b(
        f"{event_type}:{cell[0]}:{cell[1]}".encode("utf-8"), digest_size=8
    ).digest()
    return int.from_bytes(digest, "big", signed=True)


def lock_neighbourhood(session: Session, event_type: str, lat: float, lon: float) -> None:
    """
    Serialise match-then-mutate for reports of the same type near (lat, lon).

    Must be called inside a transaction; the locks are released at commit or
    rollback. Any two reports within tolerance of each other share at least one
    cell key, so they cannot interleave. On SQLite the engine already holds the
    database write lock for the whole transaction (BEGIN IMMEDIATE).
    """
    if session.get_bind().dialect.name != "postgresql":
        return

    keys = sorted({compute_lock_key(event_type, cell) for cell in neighbourhood_cells(lat, lon)})
    # Sorted acquisition order avoids deadlocks between overlapping neighbourhoods
    for key in keys:
        session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})


def find_nearby_event(
    session: Session,
    event_type: str,
    lat: float,
    lon: float,
    tolerance: float = PROXIMITY_TOLERANCE_DEG,
) -> Optional[int]:
    """
    Find an existing event of the same type within the tolerance box.

    Returns the id of the first match, or None. Which row is returned when
    several boxes overlap is unspecified.
    """
    stmt = (
        select(RoadEvent.id)
        .where(
            RoadEvent.event_type == event_type,
            RoadEvent.latitude.between(lat - tolerance, lat + tolerance),
            RoadEvent.longitude.between(lon - tolerance, lon + tolerance),
        )
        .limit(1)
    )
    event_id = session.execute(stmt).scalar_one_or_none()
    logger.debug("Proximity lookup {} at ({}, {}) -> {}", event_type, lat, lon, event_id)
    return event_id


def merge_event(
    session: Session,
    event_id: int,
    speed_kmph: Optional[float],
    accel_z: Optional[float],
    observed_at: datetime,
) -> None:
    """Fold a new observation into an existing event, in a single UPDATE."""
    stmt = (
        update(RoadEvent)
        .where(RoadEvent.id == event_id)
        .values(
            vehicle_count=RoadEvent.vehicle_count + 1,
            speed_kmph=speed_kmph,
            accel_z=accel_z,
            created_at=observed_at,
        )
        .execution_options(synchronize_session=False)
    )
    session.execute(stmt)

"""Ingestion pipeline: classify, deduplicate, enrich and store a report."""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from .dedup import find_nearby_event, has_valid_gps, lock_neighbourhood, merge_event
from .geocoding import NO_GPS_FIX, AddressResolver
from .models import RoadEvent, Severity, Status
from .severity import classify_severity


@dataclass(frozen=True)
class TelemetryReport:
    """One hazard report sent by a vehicle."""

    event_type: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    speed_kmph: Optional[float] = None
    accel_z: Optional[float] = None
    gyro_y: Optional[float] = None


class IngestKind(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class IngestResult:
    kind: IngestKind
    event_id: int
    # Snapshot taken inside the committing transaction
    event: Dict[str, Any] = field(default_factory=dict)


class IngestionPipeline:
    """
    Fold incoming reports into the hazard catalog.

    Every store interaction runs in its own transaction on a session taken
    from ``session_factory`` and closed on every exit path. For located
    reports the match-then-mutate step is done under the neighbourhood lock,
    so two reports of the same hazard arriving together yield one row with
    ``vehicle_count == 2``.

    The reverse geocoding call runs between transactions: a slow provider
    never holds a lock or a pooled connection. Because another report may
    have created the event meanwhile, the insert transaction matches again
    before inserting.
    """

    def __init__(self, session_factory: sessionmaker, resolver: AddressResolver):
        self.session_factory = session_factory
        self.resolver = resolver

    def ingest(self, report: TelemetryReport) -> IngestResult:
        is_gps_valid = has_valid_gps(report.latitude, report.longitude)
        severity = classify_severity(report.accel_z)

        if is_gps_valid:
            with self.session_factory() as session, session.begin():
                merged = self._merge_if_nearby(session, report)
            if merged is not None:
                return IngestResult(IngestKind.UPDATED, merged["id"], merged)

        location = (
            self.resolver.resolve(report.latitude, report.longitude)
            if is_gps_valid
            else NO_GPS_FIX
        )

        with self.session_factory() as session, session.begin():
            if is_gps_valid:
                merged = self._merge_if_nearby(session, report)
                if merged is not None:
                    return IngestResult(IngestKind.UPDATED, merged["id"], merged)
            created = self._insert(session, report, severity, location)

        return IngestResult(IngestKind.CREATED, created["id"], created)

    def _merge_if_nearby(
        self, session: Session, report: TelemetryReport
    ) -> Optional[Dict[str, Any]]:
        lock_neighbourhood(session, report.event_type, report.latitude, report.longitude)
        event_id = find_nearby_event(
            session, report.event_type, report.latitude, report.longitude
        )
        if event_id is None:
            return None

        merge_event(
            session,
            event_id,
            speed_kmph=report.speed_kmph,
            accel_z=report.accel_z,
            observed_at=datetime.now(timezone.utc),
        )
        logger.info("Incremented vehicle count for {} event {}", report.event_type, event_id)
        return session.get(RoadEvent, event_id, populate_existing=True).to_dict()

    def _insert(
        self,
        session: Session,
        report: TelemetryReport,
        severity: Severity,
        location: str,
    ) -> Dict[str, Any]:
        event = RoadEvent(
            event_type=report.event_type,
            latitude=report.latitude,
            longitude=report.longitude,
            location=location,
            speed_kmph=report.speed_kmph,
            accel_z=report.accel_z,
            gyro_y=report.gyro_y,
            severity=severity,
            status=Status.PENDING,
            vehicle_count=1,
            created_at=datetime.now(timezone.utc),
        )
        session.add(event)
        session.flush()
        session.refresh(event)
        logger.info(
            "Created {} event {} at {} (severity={})",
            report.event_type,
            event.id,
            location,
            severity.value,
        )
        return event.to_dict()

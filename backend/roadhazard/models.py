"""SQLAlchemy models for the road hazard catalog."""

import enum

from sqlalchemy import Column, DateTime, Enum, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Severity(str, enum.Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class Status(str, enum.Enum):
    """Triage state, owned by downstream consumers of the catalog."""

    PENDING = "Pending"
    VERIFIED = "Verified"
    RESOLVED = "Resolved"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class RoadEvent(Base):
    """One deduplicated road hazard, folded from one or more vehicle reports."""

    __tablename__ = "road_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String, nullable=False)  # e.g., "pothole", "debris"
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location = Column(String, nullable=False)
    speed_kmph = Column(Float, nullable=True)
    accel_z = Column(Float, nullable=True)
    gyro_y = Column(Float, nullable=True)
    severity = Column(
        Enum(Severity, name="severity", values_callable=_enum_values),
        nullable=False,
    )
    status = Column(
        Enum(Status, name="status", values_callable=_enum_values),
        nullable=False,
        default=Status.PENDING,
    )
    vehicle_count = Column(Integer, nullable=False, default=1)
    # Last observed time: reset on every merge
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_road_events_type_lat_lon", "event_type", "latitude", "longitude"),
        Index("ix_road_events_created_at", "created_at"),
    )

    def to_dict(self) -> dict:
        """Convert event to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "event_type": self.event_type,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "location": self.location,
            "speed_kmph": self.speed_kmph,
            "accel_z": self.accel_z,
            "gyro_y": self.gyro_y,
            "severity": self.severity.value if self.severity else None,
            "status": self.status.value if self.status else None,
            "vehicle_count": self.vehicle_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

"""Severity tiers from vertical acceleration."""

from typing import Optional

from .models import Severity

HIGH_ACCEL_THRESHOLD = 5.0
MODERATE_ACCEL_THRESHOLD = 3.0


def classify_severity(accel_z: Optional[float]) -> Severity:
    """
    Map a vertical acceleration sample to a severity tier.

    Comparisons are strict and on the absolute value, so a sample of
    exactly 5.0 is Moderate and exactly 3.0 is Low. A missing sample is Low.
    """
    if accel_z is None:
        return Severity.LOW

    magnitude = abs(accel_z)
    if magnitude > HIGH_ACCEL_THRESHOLD:
        return Severity.HIGH
    if magnitude > MODERATE_ACCEL_THRESHOLD:
        return Severity.MODERATE
    return Severity.LOW

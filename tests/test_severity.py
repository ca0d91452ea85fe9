"""Tests for severity classification."""
import math

import pytest

from roadhazard.models import Severity
from roadhazard.severity import classify_severity


@pytest.mark.parametrize(
    "accel_z, expected",
    [
        (0.0, Severity.LOW),
        (3.0, Severity.LOW),
        (3.01, Severity.MODERATE),
        (5.0, Severity.MODERATE),
        (5.01, Severity.HIGH),
        (6.2, Severity.HIGH),
    ],
)
def test_thresholds_are_strict(accel_z, expected):
    assert classify_severity(accel_z) == expected


def test_sign_is_ignored():
    assert classify_severity(-6.2) == Severity.HIGH
    assert classify_severity(-4.0) == Severity.MODERATE
    assert classify_severity(-3.0) == Severity.LOW


def test_missing_or_nan_sample_is_low():
    assert classify_severity(None) == Severity.LOW
    assert classify_severity(math.nan) == Severity.LOW

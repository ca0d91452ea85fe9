"""Tests for the telemetry simulator helpers."""
import simulate


def test_interpolates_between_route_points():
    route = [{"lat": 0.0, "lon": 0.0}, {"lat": 1.0, "lon": 2.0}]

    assert simulate.interpolate_position(route, 0.5) == (0.5, 1.0)
    assert simulate.interpolate_position(route, 2.0) == (1.0, 2.0)


def test_hazard_window():
    progress, event_type, _ = simulate.HAZARDS[0]

    assert simulate.hazard_at(progress)[1] == event_type
    assert simulate.hazard_at(progress + simulate.HAZARD_WINDOW * 2) is None


def test_report_carries_hazard_sample(monkeypatch):
    monkeypatch.setattr(simulate, "GPS_DROP_PROBABILITY", 0.0)

    report = simulate.create_report("pothole", 12.9, 77.6, 6.4)

    assert report["event_type"] == "pothole"
    assert abs(report["latitude"] - 12.9) <= simulate.GPS_JITTER_DEG + 1e-6
    assert 5.9 <= abs(report["accel_z"]) <= 6.9

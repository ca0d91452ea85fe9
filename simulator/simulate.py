#!/usr/bin/env python3
"""
Simulator for generating road hazard telemetry.

Drives a handful of virtual vehicles around a route and posts a report to
the backend whenever one of them hits a hazard:
- event_type: taken from the hazard (pothole, debris, speed_bump)
- latitude/longitude: position on the route plus a little GPS jitter,
  occasionally dropped to mimic a lost GPS fix
- accel_z: the hazard's peak vertical acceleration plus noise
- speed_kmph / gyro_y: random plausible values

Several vehicles cross the same hazards, so the backend is expected to merge
their reports into one event per hazard.
"""

import argparse
import json
import math
import os
import random
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


# Hazards along the route: (route progress 0..1, event_type, peak |accel_z|)
HAZARDS: List[Tuple[float, str, float]] = [
    (0.12, "pothole", 6.4),
    (0.38, "debris", 3.8),
    (0.55, "speed_bump", 2.5),
    (0.81, "pothole", 4.6),
]
HAZARD_WINDOW = 0.004  # progress band in which a vehicle "hits" a hazard
GPS_JITTER_DEG = 0.0003
GPS_DROP_PROBABILITY = 0.05


def load_route(route_path: Path) -> List[Dict[str, float]]:
    """Load route from JSON file."""
    if route_path.exists():
        with open(route_path, "r", encoding="utf-8") as f:
            return json.load(f)
    print(f"Route file not found at {route_path}, generating default route...")
    return generate_default_route()


def generate_default_route() -> List[Dict[str, float]]:
    """Generate a default loop around central Bengaluru."""
    center_lat = 12.9716
    center_lon = 77.5946
    radius = 0.01  # roughly 1km
    num_points = 100

    route = []
    for i in range(num_points):
        angle = 2 * math.pi * i / num_points
        lat = center_lat + radius * math.sin(angle)
        lon = center_lon + radius * math.cos(angle)
        route.append({"lat": lat, "lon": lon})

    return route


def interpolate_position(
    route: List[Dict[str, float]],
    progress: float,
) -> Tuple[float, float]:
    """
    Interpolate position along the route based on progress (0.0 to 1.0).
    """
    if not route:
        return 12.9716, 77.5946

    progress = max(0.0, min(1.0, progress))

    total_segments = len(route) - 1
    if total_segments <= 0:
        return route[0]["lat"], route[0]["lon"]

    exact_position = progress * total_segments
    segment_index = int(exact_position)
    segment_progress = exact_position - segment_index

    if segment_index >= total_segments:
        return route[-1]["lat"], route[-1]["lon"]

    p1 = route[segment_index]
    p2 = route[segment_index + 1]

    lat = p1["lat"] + (p2["lat"] - p1["lat"]) * segment_progress
    lon = p1["lon"] + (p2["lon"] - p1["lon"]) * segment_progress

    return lat, lon


def hazard_at(progress: float) -> Optional[Tuple[float, str, float]]:
    """Return the hazard a vehicle at this progress is crossing, if any."""
    for hazard in HAZARDS:
        if abs(progress - hazard[0]) <= HAZARD_WINDOW:
            return hazard
    return None


def create_report(
    event_type: str,
    lat: float,
    lon: float,
    peak_accel: float,
) -> Dict[str, Any]:
    """Create a telemetry report for one hazard crossing."""
    has_fix = random.random() >= GPS_DROP_PROBABILITY
    return {
        "event_type": event_type,
        "latitude": round(lat + random.uniform(-GPS_JITTER_DEG, GPS_JITTER_DEG), 6) if has_fix else None,
        "longitude": round(lon + random.uniform(-GPS_JITTER_DEG, GPS_JITTER_DEG), 6) if has_fix else None,
        "speed_kmph": round(random.uniform(20, 60), 1),
        "accel_z": round(random.choice((-1, 1)) * (peak_accel + random.uniform(-0.5, 0.5)), 2),
        "gyro_y": round(random.uniform(-1.5, 1.5), 3),
    }


def create_session_with_retry() -> requests.Session:
    """Create a requests session with retry logic."""
    session = requests.Session()

    retry_strategy = Retry(
        total=5,
        backoff_factor=1,  # exponential backoff: 1, 2, 4, 8, 16 seconds
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=None,  # the backend expects devices to resend whole reports
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


def send_report(
    session: requests.Session,
    backend_url: str,
    report: Dict[str, Any],
) -> Optional[Tuple[int, Dict[str, Any]]]:
    """Send report to backend; returns (status_code, body) or None on failure."""
    url = f"{backend_url}/api/road-event"

    try:
        response = session.post(url, json=report, timeout=10)
        response.raise_for_status()
        return response.status_code, response.json()
    except requests.exceptions.RequestException as e:
        print(f"[ERROR] Failed to send report: {e}")
        return None


def wait_for_backend(backend_url: str, max_retries: int = 30, delay: float = 2.0) -> bool:
    """Wait for backend to be available."""
    print(f"Waiting for backend at {backend_url}...")

    for attempt in range(max_retries):
        try:
            response = requests.get(f"{backend_url}/health", timeout=5)
            if response.status_code == 200:
                print("Backend is ready!")
                return True
        except requests.exceptions.RequestException:
            pass

        print(f"  Attempt {attempt + 1}/{max_retries} - Backend not ready, waiting...")
        time.sleep(delay)

    print("Backend did not become available in time.")
    return False


def run_simulation(
    backend_url: str,
    vehicles: int,
    speed: float,
    duration_minutes: float,
    route: List[Dict[str, float]],
):
    """Run the simulation."""
    print(f"\n{'='*60}")
    print("Road Hazard Simulator")
    print(f"{'='*60}")
    print(f"Backend URL: {backend_url}")
    print(f"Vehicles: {vehicles}")
    print(f"Speed: {speed}x")
    print(f"Duration: {duration_minutes} minutes")
    print(f"Route points: {len(route)}")
    print(f"{'='*60}\n")

    session = create_session_with_retry()

    # 1 frame per second of simulation time; one lap per run
    total_frames = int(duration_minutes * 60)
    frame_interval = 1.0 / speed
    offsets = [i / max(vehicles, 1) for i in range(vehicles)]
    last_hazard: Dict[int, Optional[float]] = {v: None for v in range(vehicles)}

    reports_sent = 0
    reports_created = 0
    reports_updated = 0

    print(f"Starting simulation with {total_frames} frames...")
    print(f"Hazards: {HAZARDS}")
    print()

    for frame in range(total_frames):
        for vehicle in range(vehicles):
            progress = (frame / total_frames + offsets[vehicle]) % 1.0
            hazard = hazard_at(progress)

            # One report per hazard crossing
            if hazard is None or last_hazard[vehicle] == hazard[0]:
                if hazard is None:
                    last_hazard[vehicle] = None
                continue
            last_hazard[vehicle] = hazard[0]

            lat, lon = interpolate_position(route, hazard[0])
            report = create_report(hazard[1], lat, lon, hazard[2])

            print(f"[Frame {frame:4d}] vehicle-{vehicle + 1} hit {report['event_type']} "
                  f"at ({report['latitude']}, {report['longitude']}) accel_z={report['accel_z']}")

            result = send_report(session, backend_url, report)
            if result is None:
                continue

            reports_sent += 1
            status_code, body = result
            if status_code == 201:
                reports_created += 1
                print(f"           → NEW event created (ID: {body.get('id')})")
            else:
                reports_updated += 1
                print(f"           → UPDATED existing event (ID: {body.get('id')})")

        time.sleep(frame_interval)

        if frame > 0 and frame % 30 == 0:
            print(f"[Progress] Frame {frame}/{total_frames} "
                  f"({frame/total_frames*100:.0f}%) - "
                  f"Reports: {reports_created} new, {reports_updated} merged")

    print()
    print(f"{'='*60}")
    print("Simulation Complete!")
    print(f"{'='*60}")
    print(f"Total frames: {total_frames}")
    print(f"Reports sent: {reports_sent}")
    print(f"  - New events: {reports_created}")
    print(f"  - Merged: {reports_updated}")
    print(f"{'='*60}")


def main():
    parser = argparse.ArgumentParser(
        description="Road Hazard Telemetry Simulator"
    )
    parser.add_argument(
        "--vehicles",
        type=int,
        default=3,
        help="Number of vehicles on the route (default: 3)",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Simulation speed multiplier (default: 1.0)",
    )
    parser.add_argument(
        "--minutes",
        type=float,
        default=3.0,
        help="Simulation duration in minutes (default: 3)",
    )
    parser.add_argument(
        "--route",
        type=str,
        default=None,
        help="Path to route.json file",
    )

    args = parser.parse_args()

    backend_url = os.environ.get("BACKEND_URL", "http://localhost:8000").rstrip("/")

    if not wait_for_backend(backend_url):
        sys.exit(1)

    if args.route:
        route_path = Path(args.route)
    else:
        route_path = Path(__file__).parent / "sample_data" / "route.json"

    route = load_route(route_path)

    try:
        run_simulation(
            backend_url=backend_url,
            vehicles=args.vehicles,
            speed=args.speed,
            duration_minutes=args.minutes,
            route=route,
        )
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user.")
        sys.exit(0)


if __name__ == "__main__":
    main()

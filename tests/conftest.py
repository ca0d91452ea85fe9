"""Pytest configuration for the project."""
import os

# Keep the module-level app off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import threading

import pytest

from roadhazard.db import create_db_engine, init_db, make_session_factory
from roadhazard.geocoding import NO_GPS_FIX
from roadhazard.ingest import IngestionPipeline


class StubResolver:
    """Stands in for the reverse geocoder; records every lookup."""

    def __init__(self, name="MG Road", delay=0.0):
        self.name = name
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def resolve(self, lat, lon):
        if lat is None or lon is None:
            return NO_GPS_FIX
        with self._lock:
            self.calls.append((lat, lon))
        if self.delay:
            threading.Event().wait(self.delay)
        return self.name


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'road_events.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def write_session_factory(engine):
    return make_session_factory(engine, write_lock=True)


@pytest.fixture
def resolver():
    return StubResolver()


@pytest.fixture
def pipeline(write_session_factory, resolver):
    return IngestionPipeline(write_session_factory, resolver)

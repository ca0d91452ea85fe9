"""Tests for the reverse geocoding fallback ladder."""
from unittest.mock import Mock

import pytest
import requests

from roadhazard.geocoding import (
    LOOKUP_ERROR,
    NO_GPS_FIX,
    STREET_UNKNOWN,
    AddressResolver,
    LookupOutcome,
)


def build_resolver(payload=None, *, error=None, json_error=None):
    """Create a resolver over a mocked requests session to avoid network access."""
    response = Mock()
    response.raise_for_status = Mock()
    if json_error is not None:
        response.json = Mock(side_effect=json_error)
    else:
        response.json = Mock(return_value=payload)

    session = Mock(spec=requests.Session)
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response

    resolver = AddressResolver(
        url="https://geocoder.test/reverse",
        user_agent="RoadHazardMonitor/test",
        timeout=2.5,
        session=session,
    )
    return resolver, session, response


def test_prefers_road_name():
    resolver, session, _ = build_resolver(
        {"address": {"road": "MG Road", "suburb": "Shivajinagar"}, "display_name": "MG Road, Bengaluru"}
    )

    assert resolver.lookup(12.9, 77.6) == (LookupOutcome.FOUND, "MG Road")

    session.get.assert_called_once_with(
        "https://geocoder.test/reverse",
        params={"format": "json", "lat": 12.9, "lon": 77.6},
        headers={"User-Agent": "RoadHazardMonitor/test"},
        timeout=2.5,
    )


def test_falls_back_to_suburb_then_display_name():
    resolver, _, _ = build_resolver({"address": {"suburb": "Shivajinagar"}, "display_name": "Bengaluru"})
    assert resolver.resolve(12.9, 77.6) == "Shivajinagar"

    resolver, _, _ = build_resolver({"address": {"road": ""}, "display_name": "Bengaluru, Karnataka"})
    assert resolver.resolve(12.9, 77.6) == "Bengaluru, Karnataka"


def test_no_usable_field_gives_street_unknown():
    resolver, _, _ = build_resolver({"address": {"country": "India"}})

    assert resolver.lookup(12.9, 77.6) == (LookupOutcome.NO_FIELD, STREET_UNKNOWN)


def test_zero_coordinates_are_looked_up():
    resolver, session, _ = build_resolver({"display_name": "Null Island"})

    assert resolver.resolve(0.0, 0.0) == "Null Island"
    assert session.get.call_count == 1


@pytest.mark.parametrize("lat, lon", [(None, 77.6), (12.9, None), (None, None)])
def test_missing_coordinates_skip_the_call(lat, lon):
    resolver, session, _ = build_resolver({"address": {"road": "MG Road"}})

    assert resolver.resolve(lat, lon) == NO_GPS_FIX
    session.get.assert_not_called()


@pytest.mark.parametrize(
    "error",
    [requests.Timeout("read timed out"), requests.ConnectionError("unreachable")],
)
def test_transport_failure_gives_lookup_error(error):
    resolver, _, _ = build_resolver(error=error)

    assert resolver.lookup(12.9, 77.6) == (LookupOutcome.FAILED, LOOKUP_ERROR)


def test_http_error_gives_lookup_error():
    resolver, _, response = build_resolver({"address": {"road": "MG Road"}})
    response.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")

    assert resolver.resolve(12.9, 77.6) == LOOKUP_ERROR


def test_malformed_body_gives_lookup_error():
    resolver, _, _ = build_resolver(json_error=ValueError("Expecting value"))
    assert resolver.resolve(12.9, 77.6) == LOOKUP_ERROR

    resolver, _, _ = build_resolver(["not", "an", "object"])
    assert resolver.resolve(12.9, 77.6) == LOOKUP_ERROR


def test_provider_error_document_gives_lookup_error():
    resolver, _, _ = build_resolver({"error": "Unable to geocode"})

    assert resolver.resolve(12.9, 77.6) == LOOKUP_ERROR

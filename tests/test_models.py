"""Unit tests for the data model."""
import dataclasses
import httpx
import pytest
from doh_redirect_tracer.models import Hop, ResolvedHost, TraceState


def test_hop_is_immutable():
    """Test that hops cannot be changed once recorded."""
    hop = Hop(url="http://example.com/", status=200)

    with pytest.raises(dataclasses.FrozenInstanceError):
        hop.status = 301


@pytest.mark.parametrize("status, expected", [
    (200, False), (299, False), (300, True), (301, True), (308, True), (399, True), (400, False), (502, False),
])
def test_hop_is_redirect(status, expected):
    """Test the redirect status class boundaries."""
    assert Hop(url="http://example.com/", status=status).is_redirect is expected


def test_hop_to_dict():
    """Test the serialized form of a hop."""
    assert Hop(url="http://example.com/a", status=301).to_dict() == {"url": "http://example.com/a", "status": 301}


def test_resolved_host_equality():
    """Test that resolved hosts compare by value."""
    assert ResolvedHost("example.com", "198.51.100.7") == ResolvedHost(hostname="example.com", ip="198.51.100.7")


def test_trace_state_defaults():
    """Test that a new trace state starts at hop zero."""
    state = TraceState(current_url=httpx.URL("http://example.com/"), host="example.com", ip="192.0.2.1")

    assert state.hop_index == 0
    state.hop_index += 1
    assert state.hop_index == 1

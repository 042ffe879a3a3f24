"""Unit tests for the capability probes over a raw browser snapshot."""
from tracker.capabilities import (
    BrowserSnapshot,
    ConnectionInfo,
    Geometry,
    NavigationTiming,
    PaintEntry,
    ResourceEntry,
    probe_snapshot,
)
from tracker.session import HeapSample


def test_empty_snapshot_means_every_api_absent():
    assert probe_snapshot({}) == BrowserSnapshot()


def test_non_mapping_snapshot_is_tolerated():
    assert probe_snapshot(None) == BrowserSnapshot()
    assert probe_snapshot(["not", "a", "mapping"]) == BrowserSnapshot()


def test_navigation_timing_keeps_missing_milestones_absent():
    snapshot = probe_snapshot({"timing": {"navigationStart": 1000, "domComplete": 1800}})
    assert snapshot.navigation_timing == NavigationTiming(navigation_start=1000, dom_complete=1800)


def test_bad_values_are_dropped_not_raised():
    snapshot = probe_snapshot({
        "timing": {"navigationStart": "soon", "connectStart": True, "connectEnd": float("nan")},
        "memory": {"usedJSHeapSize": None},
        "redirectCount": "2",
    })
    assert snapshot.navigation_timing == NavigationTiming()
    assert snapshot.memory is None
    assert snapshot.redirect_count is None


def test_timeline_absent_versus_empty():
    assert probe_snapshot({}).paint_entries is None
    assert probe_snapshot({"paint": [], "resource": []}).paint_entries == []
    assert probe_snapshot({"paint": [], "resource": []}).resource_entries == []


def test_paint_and_resource_entries():
    snapshot = probe_snapshot({
        "paint": [
            {"name": "first-paint", "startTime": 120},
            {"name": "broken"},
            "junk",
        ],
        "resource": [{
            "name": "https://app.example/static/js/main.abc.chunk.js",
            "encodedBodySize": 500,
            "decodedBodySize": 1200,
            "startTime": 10,
            "responseEnd": 45,
        }],
    })
    assert snapshot.paint_entries == [PaintEntry(name="first-paint", start_time=120)]
    resource = snapshot.resource_entries[0]
    assert resource == ResourceEntry(
        name="https://app.example/static/js/main.abc.chunk.js",
        encoded_body_size=500,
        decoded_body_size=1200,
        start_time=10,
        response_end=45,
    )
    assert resource.file_name == "main.abc.chunk.js"


def test_memory_connection_geometry_and_user_agent():
    snapshot = probe_snapshot({
        "memory": {"usedJSHeapSize": 10_000_000, "totalJSHeapSize": 16_000_000},
        "connection": {"type": "wifi", "effectiveType": "4g", "rtt": 50},
        "window": {"innerWidth": 1280, "innerHeight": 720},
        "screen": {"width": 1920, "height": 1080},
        "userAgent": "Mozilla/5.0",
        "redirectCount": 1,
    })
    assert snapshot.memory == HeapSample(used=10_000_000, total=16_000_000)
    assert snapshot.connection == ConnectionInfo(type="wifi", effective_type="4g", rtt=50)
    assert snapshot.window == Geometry(width=1280, height=720)
    assert snapshot.screen == Geometry(width=1920, height=1080)
    assert snapshot.user_agent == "Mozilla/5.0"
    assert snapshot.redirect_count == 1

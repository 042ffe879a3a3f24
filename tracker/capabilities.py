"""
Capability probes over a raw browser snapshot.

A collector (e.g. `page.evaluate` in a headless browser, or the page itself)
reads the browser performance APIs into one mapping with the browser's own
camelCase names:

    {
      "timing": {...performance.timing...},
      "paint": [{"name": "first-paint", "startTime": 120.5}, ...],
      "resource": [{"name": url, "encodedBodySize": ..., ...}, ...],
      "memory": {"usedJSHeapSize": ..., "totalJSHeapSize": ...},
      "connection": {"type": ..., "effectiveType": ..., "rtt": ...},
      "window": {"innerWidth": ..., "innerHeight": ...},
      "screen": {"width": ..., "height": ...},
      "userAgent": "...",
      "redirectCount": 0,
    }

Each probe turns one API into a typed optional. An API that is missing or
malformed becomes None; probes never raise. Builders consume the result as
plain optionals and do not re-check the raw mapping.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from tracker.session import HeapSample, Number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationTiming:
    """performance.timing milestones (epoch ms). Any milestone may be missing."""
    navigation_start: Optional[Number] = None
    unload_event_end: Optional[Number] = None
    domain_lookup_start: Optional[Number] = None
    domain_lookup_end: Optional[Number] = None
    connect_start: Optional[Number] = None
    connect_end: Optional[Number] = None
    request_start: Optional[Number] = None
    response_end: Optional[Number] = None
    dom_interactive: Optional[Number] = None
    dom_complete: Optional[Number] = None
    load_event_end: Optional[Number] = None


@dataclass(frozen=True)
class PaintEntry:
    name: str
    start_time: Number


@dataclass(frozen=True)
class ResourceEntry:
    name: str
    encoded_body_size: Optional[Number] = None
    decoded_body_size: Optional[Number] = None
    start_time: Optional[Number] = None
    response_end: Optional[Number] = None

    @property
    def file_name(self) -> str:
        """Last path segment of the resource URL."""
        return self.name.split("/")[-1]


@dataclass(frozen=True)
class ConnectionInfo:
    """navigator.connection (Network Information API, Chromium only)."""
    type: Optional[str] = None
    effective_type: Optional[str] = None
    rtt: Optional[Number] = None


@dataclass(frozen=True)
class Geometry:
    width: Optional[Number] = None
    height: Optional[Number] = None


@dataclass(frozen=True)
class BrowserSnapshot:
    navigation_timing: Optional[NavigationTiming] = None
    paint_entries: Optional[List[PaintEntry]] = None
    resource_entries: Optional[List[ResourceEntry]] = None
    memory: Optional[HeapSample] = None
    connection: Optional[ConnectionInfo] = None
    window: Optional[Geometry] = None
    screen: Optional[Geometry] = None
    user_agent: Optional[str] = None
    redirect_count: Optional[int] = None


_TIMING_KEYS = {
    "navigation_start": "navigationStart",
    "unload_event_end": "unloadEventEnd",
    "domain_lookup_start": "domainLookupStart",
    "domain_lookup_end": "domainLookupEnd",
    "connect_start": "connectStart",
    "connect_end": "connectEnd",
    "request_start": "requestStart",
    "response_end": "responseEnd",
    "dom_interactive": "domInteractive",
    "dom_complete": "domComplete",
    "load_event_end": "loadEventEnd",
}


def _number(value: Any) -> Optional[Number]:
    # bool is an int subclass; a boolean is never a timing or a size
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # NaN/Infinity are not valid JSON
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _mapping(raw: Mapping, key: str) -> Optional[Mapping]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else None


def probe_navigation_timing(raw: Mapping) -> Optional[NavigationTiming]:
    timing = _mapping(raw, "timing")
    if timing is None:
        return None
    return NavigationTiming(**{
        attr: _number(timing.get(key)) for attr, key in _TIMING_KEYS.items()
    })


def probe_paint_entries(raw: Mapping) -> Optional[List[PaintEntry]]:
    entries = raw.get("paint")
    if not isinstance(entries, list):
        return None
    paints = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        name = _string(entry.get("name"))
        start_time = _number(entry.get("startTime"))
        if name is None or start_time is None:
            continue
        paints.append(PaintEntry(name=name, start_time=start_time))
    return paints


def probe_resource_entries(raw: Mapping) -> Optional[List[ResourceEntry]]:
    entries = raw.get("resource")
    if not isinstance(entries, list):
        return None
    resources = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        resources.append(ResourceEntry(
            name=_string(entry.get("name")) or "",
            encoded_body_size=_number(entry.get("encodedBodySize")),
            decoded_body_size=_number(entry.get("decodedBodySize")),
            start_time=_number(entry.get("startTime")),
            response_end=_number(entry.get("responseEnd")),
        ))
    return resources


def probe_memory(raw: Mapping) -> Optional[HeapSample]:
    """performance.memory is non-standard (Chromium only)."""
    memory = _mapping(raw, "memory")
    if memory is None:
        return None
    sample = HeapSample(
        used=_number(memory.get("usedJSHeapSize")),
        total=_number(memory.get("totalJSHeapSize")),
    )
    return sample if sample.available else None


def probe_connection(raw: Mapping) -> Optional[ConnectionInfo]:
    connection = _mapping(raw, "connection")
    if connection is None:
        return None
    return ConnectionInfo(
        type=_string(connection.get("type")),
        effective_type=_string(connection.get("effectiveType")),
        rtt=_number(connection.get("rtt")),
    )


def probe_window(raw: Mapping) -> Optional[Geometry]:
    window = _mapping(raw, "window")
    if window is None:
        return None
    return Geometry(width=_number(window.get("innerWidth")), height=_number(window.get("innerHeight")))


def probe_screen(raw: Mapping) -> Optional[Geometry]:
    screen = _mapping(raw, "screen")
    if screen is None:
        return None
    return Geometry(width=_number(screen.get("width")), height=_number(screen.get("height")))


def probe_snapshot(raw: Optional[Mapping]) -> BrowserSnapshot:
    """Run every probe over one raw snapshot."""
    if not isinstance(raw, Mapping):
        logger.warning(f"Browser snapshot is not a mapping ({type(raw).__name__}), all APIs treated as absent")
        return BrowserSnapshot()
    redirect_count = _number(raw.get("redirectCount"))
    return BrowserSnapshot(
        navigation_timing=probe_navigation_timing(raw),
        paint_entries=probe_paint_entries(raw),
        resource_entries=probe_resource_entries(raw),
        memory=probe_memory(raw),
        connection=probe_connection(raw),
        window=probe_window(raw),
        screen=probe_screen(raw),
        user_agent=_string(raw.get("userAgent")),
        redirect_count=int(redirect_count) if redirect_count is not None else None,
    )

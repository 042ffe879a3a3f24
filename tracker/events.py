"""
Wide events for the page lifecycle.

Each event kind is a flat pydantic model with explicitly named optional
fields. `to_record()` drops unset fields instead of sending null, so a
browser that lacks an API simply produces a narrower event.

Timing fields are deltas in ms, measured from navigationStart for absolute
offsets and between their own two endpoints for interval durations.
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from tracker.capabilities import BrowserSnapshot, NavigationTiming, ResourceEntry
from tracker.session import HeapSample, Number, SessionContext

# (file name suffix, field key) for bundles whose size and load time we track
MAIN_BUNDLE_ASSETS = (
    (".chunk.js", "main_chunk_js"),
    (".chunk.css", "main_chunk_css"),
)


class WideEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_record(self) -> dict:
        """Flat JSON-ready mapping; absent values are omitted, never null."""
        return self.model_dump(exclude_none=True)


class PageLoadEvent(WideEvent):
    type: Literal["page-load"] = "page-load"
    page_load_id: int

    user_agent: Optional[str] = None
    window_height: Optional[Number] = None
    window_width: Optional[Number] = None
    screen_height: Optional[Number] = None
    screen_width: Optional[Number] = None

    connection_type: Optional[str] = None
    connection_type_effective: Optional[str] = None
    connection_rtt: Optional[Number] = None

    # offsets from navigationStart
    timing_unload_ms: Optional[Number] = None
    timing_dns_end_ms: Optional[Number] = None
    timing_ssl_end_ms: Optional[Number] = None
    timing_response_end_ms: Optional[Number] = None
    timing_dom_interactive_ms: Optional[Number] = None
    timing_dom_complete_ms: Optional[Number] = None
    timing_dom_loaded_ms: Optional[Number] = None
    timing_ms_first_paint: Optional[Number] = None
    timing_first_contentful_paint_ms: Optional[Number] = None

    # interval durations
    timing_dns_duration_ms: Optional[Number] = None
    timing_ssl_duration_ms: Optional[Number] = None
    timing_server_duration_ms: Optional[Number] = None
    timing_dom_loaded_duration_ms: Optional[Number] = None
    timing_total_duration_ms: Optional[Number] = None

    redirect_count: Optional[int] = None

    js_heap_size_total_b: Optional[Number] = None
    js_heap_size_used_b: Optional[Number] = None

    resource_count: Optional[int] = None
    resource_main_chunk_js_encoded_size_kb: Optional[Number] = None
    resource_main_chunk_js_decoded_size_kb: Optional[Number] = None
    resource_main_chunk_js_timing_duration_ms: Optional[Number] = None
    resource_main_chunk_css_encoded_size_kb: Optional[Number] = None
    resource_main_chunk_css_decoded_size_kb: Optional[Number] = None
    resource_main_chunk_css_timing_duration_ms: Optional[Number] = None


class PageUnloadEvent(WideEvent):
    type: Literal["page-unload"] = "page-unload"
    page_load_id: int
    error_count: int
    user_timing_window_open_duration_s: Optional[Number] = None

    js_heap_size_used_start_b: Optional[Number] = None
    js_heap_size_total_b: Optional[Number] = None
    js_heap_size_used_b: Optional[Number] = None
    js_heap_change_b: Optional[Number] = None


def _delta(end: Optional[Number], start: Optional[Number]) -> Optional[Number]:
    if end is None or start is None:
        return None
    return end - start


def _navigation_fields(nt: NavigationTiming) -> dict:
    ns = nt.navigation_start
    return {
        "timing_unload_ms": _delta(nt.unload_event_end, ns),
        "timing_dns_end_ms": _delta(nt.domain_lookup_end, ns),
        "timing_ssl_end_ms": _delta(nt.connect_end, ns),
        "timing_response_end_ms": _delta(nt.response_end, ns),
        "timing_dom_interactive_ms": _delta(nt.dom_interactive, ns),
        "timing_dom_complete_ms": _delta(nt.dom_complete, ns),
        "timing_dom_loaded_ms": _delta(nt.load_event_end, ns),
        # render-time estimate until a real first-paint entry replaces it
        "timing_ms_first_paint": _delta(nt.dom_complete, ns),
        "timing_dns_duration_ms": _delta(nt.domain_lookup_end, nt.domain_lookup_start),
        "timing_ssl_duration_ms": _delta(nt.connect_end, nt.connect_start),
        "timing_server_duration_ms": _delta(nt.response_end, nt.request_start),
        "timing_dom_loaded_duration_ms": _delta(nt.load_event_end, nt.dom_complete),
        "timing_total_duration_ms": _delta(nt.load_event_end, nt.connect_start),
    }


def main_bundle_key(file_name: str) -> Optional[str]:
    """Field key for a tracked main bundle (main.<hash>.chunk.js|css), else None."""
    if not file_name.startswith("main."):
        return None
    for suffix, key in MAIN_BUNDLE_ASSETS:
        if file_name.endswith(suffix):
            return key
    return None


def _resource_fields(resources: list[ResourceEntry]) -> dict:
    """
    Overall resource count plus size/time of the main bundles.

    Only one main bundle per asset class is expected. If the list holds
    several, the last one wins; they are not aggregated.
    """
    fields: dict = {"resource_count": len(resources)}
    for resource in resources:
        key = main_bundle_key(resource.file_name)
        if key is None:
            continue
        fields[f"resource_{key}_encoded_size_kb"] = resource.encoded_body_size
        fields[f"resource_{key}_decoded_size_kb"] = resource.decoded_body_size
        fields[f"resource_{key}_timing_duration_ms"] = _delta(resource.response_end, resource.start_time)
    return fields


def build_page_load_event(ctx: SessionContext, snapshot: BrowserSnapshot) -> PageLoadEvent:
    """Very wide event of performance and client stats for a finished page load."""
    fields: dict = {
        "page_load_id": ctx.page_load_id,
        "user_agent": snapshot.user_agent,
        "redirect_count": snapshot.redirect_count,
    }

    if snapshot.window is not None:
        fields["window_height"] = snapshot.window.height
        fields["window_width"] = snapshot.window.width
    if snapshot.screen is not None:
        fields["screen_height"] = snapshot.screen.height
        fields["screen_width"] = snapshot.screen.width

    if snapshot.connection is not None:
        fields["connection_type"] = snapshot.connection.type
        fields["connection_type_effective"] = snapshot.connection.effective_type
        fields["connection_rtt"] = snapshot.connection.rtt

    if snapshot.navigation_timing is not None:
        fields.update(_navigation_fields(snapshot.navigation_timing))

    if snapshot.paint_entries is not None:
        for paint in snapshot.paint_entries:
            if paint.name == "first-paint":
                fields["timing_ms_first_paint"] = paint.start_time
            elif paint.name == "first-contentful-paint":
                fields["timing_first_contentful_paint_ms"] = paint.start_time

    if snapshot.memory is not None:
        fields["js_heap_size_total_b"] = snapshot.memory.total
        fields["js_heap_size_used_b"] = snapshot.memory.used

    if snapshot.resource_entries is not None:
        fields.update(_resource_fields(snapshot.resource_entries))

    return PageLoadEvent(**fields)


def build_page_unload_event(
    ctx: SessionContext,
    connect_start: Optional[Number],
    current_heap: Optional[HeapSample],
    now_ms: Number,
) -> PageUnloadEvent:
    """
    Wide event for the end of the page's lifetime.

    open duration is measured from connectStart, the same epoch ms clock
    as now_ms. The heap delta is against the baseline captured when the
    session started and may be negative.
    """
    fields: dict = {
        "page_load_id": ctx.page_load_id,
        "error_count": ctx.error_count,
    }
    if connect_start is not None:
        fields["user_timing_window_open_duration_s"] = (now_ms - connect_start) / 1000

    if current_heap is not None and current_heap.available:
        baseline = ctx.baseline_heap
        fields["js_heap_size_used_start_b"] = baseline.used
        fields["js_heap_size_total_b"] = current_heap.total
        fields["js_heap_size_used_b"] = current_heap.used
        fields["js_heap_change_b"] = _delta(current_heap.used, baseline.used)

    return PageUnloadEvent(**fields)

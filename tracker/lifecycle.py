"""
Page lifecycle wiring: page-load and page-unload wide events.

Known limitation: the before-unload signal fires on navigation and refresh
but not dependably when the tab or browser is closed, so unload events for
closed tabs are missing. Nothing here works around that.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Optional

from tracker.capabilities import probe_snapshot
from tracker.events import build_page_load_event, build_page_unload_event
from tracker.session import HeapSample, Number, SessionContext
from tracker.transport import Transport

logger = logging.getLogger(__name__)

PAGE_LOAD_ACTION = "onPageLoad"
PAGE_UNLOAD_ACTION = "onPageUnload"

SnapshotSource = Callable[[], Optional[Mapping[str, Any]]]


class PageTracker:
    """
    Sends one page-load event and one page-unload event per SessionContext.

    `clock` returns epoch seconds, matching the epoch ms navigation
    timestamps once scaled. Without an explicit ctx, a new one is created
    whose baseline heap comes from `baseline_snapshot`, which should be read
    as soon as the script starts.
    """

    def __init__(
        self,
        transport: Transport,
        ctx: Optional[SessionContext] = None,
        clock: Callable[[], float] = time.time,
        baseline_snapshot: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.transport = transport
        self.ctx = ctx or SessionContext.from_snapshot(baseline_snapshot)
        self.clock = clock

    def on_load(self, snapshot_source: SnapshotSource) -> asyncio.Handle:
        """
        Schedule the page-load event for the next loop tick, so every other
        load handler has finished and the timing data is settled.
        """
        loop = asyncio.get_running_loop()
        return loop.call_soon(self._send_page_load, snapshot_source)

    def _send_page_load(self, snapshot_source: SnapshotSource) -> None:
        try:
            snapshot = probe_snapshot(snapshot_source())
            event = build_page_load_event(self.ctx, snapshot)
        except Exception as e:
            logger.error(f"Page-load event not built: {e}")
            return
        self.transport.send_event(event.to_record(), PAGE_LOAD_ACTION)

    def on_before_unload(
        self,
        connect_start: Optional[Number],
        current_heap: Optional[HeapSample] = None,
    ) -> Optional[asyncio.Task]:
        event = build_page_unload_event(
            self.ctx,
            connect_start=connect_start,
            current_heap=current_heap,
            now_ms=self.clock() * 1000,
        )
        return self.transport.send_event(event.to_record(), PAGE_UNLOAD_ACTION)

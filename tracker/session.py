"""
Per-page-lifecycle session state shared by the load and unload events.

CRITICAL: one SessionContext per page lifecycle. The page_load_id and the
baseline heap are fixed at construction; the error tally only ever grows.
"""
import asyncio
import logging
import random
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

PAGE_LOAD_ID_RANGE = 100_000_000

Number = Union[int, float]
ErrorHandler = Callable[..., object]


def new_page_load_id(rng: random.Random = random) -> int:
    """Random id in [0, 100_000_000) used to join load and unload events. Not secure."""
    return int(rng.random() * PAGE_LOAD_ID_RANGE)


@dataclass(frozen=True)
class HeapSample:
    """JS heap reading (bytes); either value is None when memory sampling is unsupported."""
    used: Optional[Number] = None
    total: Optional[Number] = None

    @property
    def available(self) -> bool:
        return self.used is not None or self.total is not None


@dataclass
class SessionContext:
    """
    Process-wide telemetry state for one page lifecycle.

    baseline_heap should be captured as early as possible after script start
    so the unload event can report how much the heap grew while the page
    was open.
    """
    page_load_id: int = field(default_factory=new_page_load_id)
    baseline_heap: HeapSample = field(default_factory=HeapSample)
    _error_count: int = field(default=0, init=False, repr=False)
    _error_handlers: List[ErrorHandler] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def from_snapshot(cls, raw: Optional[Mapping[str, Any]], **kwargs) -> "SessionContext":
        """New context whose baseline heap is read from a raw browser snapshot."""
        from tracker.capabilities import probe_memory

        baseline = probe_memory(raw) if raw is not None else None
        return cls(baseline_heap=baseline or HeapSample(), **kwargs)

    @property
    def error_count(self) -> int:
        return self._error_count

    def register_error_handler(self, handler: ErrorHandler) -> None:
        """Handlers run in registration order before the error is counted."""
        self._error_handlers.append(handler)

    def report_error(self, *args) -> None:
        """Record one uncaught error. Existing handlers still see it."""
        for handler in list(self._error_handlers):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Error handler {handler!r} failed: {e}")
        self.count_error()

    def count_error(self) -> None:
        """Add one to the tally without running the sys.excepthook-style handlers."""
        self._error_count += 1


def install_error_hook(
    ctx: SessionContext,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Callable[[], None]:
    """
    Count uncaught exceptions via sys.excepthook and the event loop.

    Errors raised in loop callbacks and tasks never reach sys.excepthook, so
    the loop's exception handler is chained too. `loop` defaults to the
    running loop, if any. Previously installed hooks keep running before the
    error is counted. Returns a callable that restores them.
    """
    previous = sys.excepthook
    if previous is not None:
        ctx.register_error_handler(previous)
    sys.excepthook = ctx.report_error

    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
    restore_loop = install_loop_error_hook(ctx, loop) if loop is not None else None

    def restore() -> None:
        sys.excepthook = previous
        if restore_loop is not None:
            restore_loop()

    return restore


def install_loop_error_hook(ctx: SessionContext, loop: asyncio.AbstractEventLoop) -> Callable[[], None]:
    """
    Chain loop's exception handler so errors in callbacks and tasks are counted.

    The loop's previous handler (or its default one, which logs) runs first.
    Loop handlers take (loop, context) rather than sys.excepthook's
    arguments, so the ctx handler list is not invoked here. Context entries
    without an exception, such as a destroyed pending task, are not counted.
    Returns a callable that restores the previous handler.
    """
    previous = loop.get_exception_handler()

    def handle(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        try:
            if previous is not None:
                previous(loop, context)
            else:
                loop.default_exception_handler(context)
        except Exception as e:
            logger.error(f"Loop exception handler {previous!r} failed: {e}")
        if context.get("exception") is not None:
            ctx.count_error()

    loop.set_exception_handler(handle)

    def restore() -> None:
        loop.set_exception_handler(previous)

    return restore

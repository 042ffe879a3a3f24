"""
Action interceptor: emit a telemetry event for every application action.

The wrapped action behaves exactly like the unwrapped one. The event is handed
to the transport before the action runs, and nothing about its delivery can
reach the caller.
"""
import dataclasses
import functools
import logging
from typing import Any, Callable, Mapping, Optional, TypeVar

from tracker.transport import ACTION_NAME_KEY, Transport

logger = logging.getLogger(__name__)

APP_STATE_PREFIX = "appState"
FORM_DATA_KEY = "action_formData"

F = TypeVar("F", bound=Callable[..., Any])


def _own_fields(obj: Any) -> Mapping:
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return obj
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    try:
        return vars(obj)
    except TypeError:
        return {}


def prefix_keys(obj: Any, prefix: str) -> dict:
    """Re-key each own field of obj as `{prefix}_{key}`. Callables are dropped."""
    return {
        f"{prefix}_{key}": value
        for key, value in _own_fields(obj).items()
        if not callable(value)
    }


def build_action_record(args: tuple, event_metadata: Optional[Mapping] = None) -> dict:
    """
    Flat record for one action call: (elements, app_state, form_data).

    app_state is flattened with an appState_ prefix; form_data is kept as is
    and omitted when absent. Elements are not included.
    """
    app_state = args[1] if len(args) > 1 else None
    form_data = args[2] if len(args) > 2 else None
    record = {
        **(event_metadata or {}),
        **prefix_keys(app_state, APP_STATE_PREFIX),
    }
    if form_data is not None:
        record[FORM_DATA_KEY] = form_data
    return record


def intercept(perform: F, transport: Transport, event_metadata: Optional[Mapping] = None) -> F:
    """Wrap perform so each call also sends one action event."""
    metadata = dict(event_metadata or {})
    action_name = metadata.get(ACTION_NAME_KEY) or getattr(perform, "__name__", "action")

    @functools.wraps(perform)
    def wrapper(*args, **kwargs):
        try:
            transport.send_event(build_action_record(args, metadata), action_name)
        except Exception as e:
            logger.error(f"Action telemetry for {action_name} failed: {e}")
        return perform(*args, **kwargs)

    return wrapper  # type: ignore[return-value]

"""
Fire-and-forget transport from the page tracker to the relay.

CRITICAL: producers never await a send. `send_event` schedules the POST on
the running loop and returns at once; failures are logged and handed to
failure listeners, never raised to the producer.
"""
import asyncio
import json
import logging
from typing import Callable, List, Mapping, Optional, Set

import httpx

logger = logging.getLogger(__name__)

RELAY_PATH = "/functions/honeycomb"
ACTION_NAME_KEY = "actionName"

FailureListener = Callable[[str, BaseException], None]


class Transport:
    """
    POSTs one JSON record per event to the relay. No retry, no batching,
    no timeout beyond the HTTP client's default.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        relay_path: str = RELAY_PATH,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}{relay_path}"
        self._client = client
        self._owns_client = client is None
        self._pending: Set[asyncio.Task] = set()
        self._failure_listeners: List[FailureListener] = []

    def add_failure_listener(self, listener: FailureListener) -> None:
        """Called with (action_name, error) for every dropped event."""
        self._failure_listeners.append(listener)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def send_event(self, event: Mapping, action_name: str) -> Optional[asyncio.Task]:
        """
        Submit one event and return immediately.

        The action name is merged under the reserved `actionName` key. Returns
        the scheduled task, or None if the event was dropped before sending.
        """
        payload = {**event, ACTION_NAME_KEY: action_name}
        try:
            body = json.dumps(payload, default=str, allow_nan=False)
        except (TypeError, ValueError) as e:
            self._drop(action_name, e, "not JSON-serializable")
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            self._drop(action_name, e, "no running event loop")
            return None

        task = loop.create_task(self._post(body, action_name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _post(self, body: str, action_name: str) -> None:
        try:
            response = await self._get_client().post(
                self.url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except asyncio.CancelledError:
            # page torn down mid-flight: abandoned silently
            raise
        except Exception as e:
            self._drop(action_name, e, "POST to relay failed")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def _drop(self, action_name: str, error: BaseException, reason: str) -> None:
        logger.error(f"Telemetry event {action_name} dropped, {reason}: {error!r}")
        for listener in list(self._failure_listeners):
            try:
                listener(action_name, error)
            except Exception as e:
                logger.error(f"Transport failure listener {listener!r} failed: {e}")

    async def drain(self) -> None:
        """Wait for every in-flight send. Sends never raise, so neither does this."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

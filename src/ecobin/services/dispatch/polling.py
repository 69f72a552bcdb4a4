"""Polling driver that keeps routes live between collection requests.

Exactly one dispatch cycle runs at a time against the stored state. A
manual request marks itself pending before it waits for the state lock, and
polling does not start a refresh while anything is pending.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ...config import settings
from ...models.domain import CollectionPoint, FleetState
from ...persistence.state_store import StateStore
from .engine import DispatchEngine
from .exceptions import DispatchError, DuplicateRequestError

logger = logging.getLogger(__name__)


class PollingDriver:
    def __init__(
        self,
        engine: DispatchEngine,
        store: StateStore,
        interval_seconds: float | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.interval_seconds = interval_seconds or settings.polling_interval_seconds
        self._state_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: dict[str, CollectionPoint] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def pending(self) -> list[CollectionPoint]:
        with self._pending_lock:
            return list(self._pending.values())

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def state(self) -> FleetState:
        return self.store.load()

    def should_poll(self) -> bool:
        with self._pending_lock:
            if self._pending:
                return False
        return bool(self.store.load().routes)

    def tick(self) -> bool:
        """Run one refresh cycle if polling is allowed. Returns whether it ran."""
        if not self.should_poll():
            return False
        with self._state_lock:
            # A manual request may have arrived while we waited for the lock.
            with self._pending_lock:
                if self._pending:
                    return False
            state = self.store.load()
            self.store.save(self.engine.dispatch(None, state))
        return True

    def request_collection(self, point: CollectionPoint) -> FleetState:
        """Assign a collection point immediately, suspending polling meanwhile."""
        with self._pending_lock:
            if point.dustbin_id in self._pending:
                raise DuplicateRequestError(f"Collection of {point.dustbin_id} is already pending.")
            self._pending[point.dustbin_id] = point
        try:
            with self._state_lock:
                state = self.store.load()
                if state.is_served(point.dustbin_id):
                    raise DuplicateRequestError(f"{point.dustbin_id} is already on a route.")
                new_state = self.engine.dispatch(point, state)
                self.store.save(new_state)
                return new_state
        finally:
            with self._pending_lock:
                self._pending.pop(point.dustbin_id, None)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="ecobin-polling", daemon=True)
        self._thread.start()
        logger.info(f"Polling driver started (interval {self.interval_seconds:.1f}s)")

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout if timeout is not None else self.interval_seconds + 1.0)
            self._thread = None
        logger.info("Polling driver stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.tick()
            except DispatchError as exc:
                logger.warning(f"Refresh cycle failed: {exc}")
            except Exception:
                logger.exception("Unexpected error in polling loop")

"""Backings for the fleet state held between dispatch cycles.

The dispatch engine itself is stateless; whoever drives it (the live polling
driver here, or a browser client over HTTP) owns the state. These stores let
that owner keep it in memory, on disk, or in Supabase behind one interface.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import FleetState
from ..services.outputs.fleet_formatter import fleet_state_from_json, fleet_state_to_json
from .filesystem import FileStorage


class StateStore(Protocol):
    def load(self) -> FleetState:
        ...

    def save(self, state: FleetState) -> None:
        ...


class InMemoryStateStore:
    """Keeps the snapshot for the lifetime of the process."""

    def __init__(self, initial: FleetState | None = None) -> None:
        self._state = initial or FleetState()

    def load(self) -> FleetState:
        return self._state

    def save(self, state: FleetState) -> None:
        self._state = state


class FileStateStore:
    """JSON snapshot under ``<data_root>/state``."""

    def __init__(self, storage: FileStorage | None = None, filename: str = "fleet_state.json") -> None:
        self.storage = storage or FileStorage()
        self.path: Path = self.storage.state_root / filename

    def load(self) -> FleetState:
        return fleet_state_from_json(self.storage.read_json(self.path))

    def save(self, state: FleetState) -> None:
        self.storage.write_json(self.path, fleet_state_to_json(state))


class SupabaseStateStore:
    """One row per state key in the ``dispatch_state`` table."""

    table = "dispatch_state"

    def __init__(self, client=None, state_key: str | None = None) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise ValueError("Supabase is not configured. Set ECOBIN_SUPABASE_URL and ECOBIN_SUPABASE_KEY.")
        self.state_key = state_key or settings.state_key

    def load(self) -> FleetState:
        response = (
            self.client.table(self.table)
            .select("routes, vehicles")
            .eq("state_key", self.state_key)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            logging.info(f"No stored dispatch state for key '{self.state_key}', starting empty")
            return FleetState()
        return fleet_state_from_json(rows[0])

    def save(self, state: FleetState) -> None:
        payload = fleet_state_to_json(state)
        self.client.table(self.table).upsert(
            {
                "state_key": self.state_key,
                "routes": payload["routes"],
                "vehicles": payload["vehicles"],
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            on_conflict="state_key",
        ).execute()


def build_state_store(backend: str | None = None) -> StateStore:
    backend = backend or settings.state_backend
    if backend == "file":
        return FileStateStore()
    if backend == "supabase":
        return SupabaseStateStore()
    return InMemoryStateStore()

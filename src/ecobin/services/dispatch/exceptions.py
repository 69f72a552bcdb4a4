"""Errors surfaced by a dispatch cycle."""

from __future__ import annotations


class DispatchError(Exception):
    """A dispatch cycle failed; the caller keeps its previous state."""


class NoFeasibleVehicleError(DispatchError):
    """No existing vehicle accepted the request and provisioning a new one failed."""


class DuplicateRequestError(DispatchError):
    """The collection point is already pending or already on a route."""

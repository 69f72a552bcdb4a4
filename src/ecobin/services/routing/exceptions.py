"""Errors raised while talking to a route solver."""

from __future__ import annotations


class SolverError(Exception):
    """The solver could not produce a route for the request."""


class SolverTransportError(SolverError):
    """Network, timeout or HTTP failure calling the solver."""


class MalformedSolverResponse(SolverError):
    """The solver answered, but not with a usable route."""

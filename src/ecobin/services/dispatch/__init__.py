"""Dispatch engine, batch optimization and the live polling driver."""

from .engine import DispatchConstraints, DispatchEngine, build_engine
from .exceptions import DispatchError, DuplicateRequestError, NoFeasibleVehicleError
from .polling import PollingDriver

__all__ = [
    "DispatchConstraints",
    "DispatchEngine",
    "DispatchError",
    "DuplicateRequestError",
    "NoFeasibleVehicleError",
    "PollingDriver",
    "build_engine",
]

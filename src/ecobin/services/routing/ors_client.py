"""HTTP client for the OpenRouteService optimization endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx

from ...config import settings
from .exceptions import MalformedSolverResponse, SolverTransportError
from .models import SolverJob, SolverRoute, SolverStep, SolverVehicle

logger = logging.getLogger(__name__)


class ORSOptimizationClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ors_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ors_api_key
        if not self.api_key:
            raise ValueError("OpenRouteService API key is not configured.")
        self.profile = profile or settings.ors_profile
        self.timeout = timeout if timeout is not None else settings.ors_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.ors_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.ors_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        """Create a short-lived HTTP client; one optimization call per client."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            transport=self._transport,
        )

    def build_payload(self, jobs: Sequence[SolverJob], vehicles: Sequence[SolverVehicle]) -> dict:
        vehicle_payloads = []
        for vehicle in vehicles:
            item: dict[str, Any] = {
                "id": vehicle.id,
                "start": list(vehicle.start),
                "capacity": [vehicle.capacity],
                "profile": vehicle.profile,
            }
            if vehicle.end is not None:
                item["end"] = list(vehicle.end)
            vehicle_payloads.append(item)
        return {
            "jobs": [
                {"id": job.id, "location": list(job.location), "service": job.service}
                for job in jobs
            ],
            "vehicles": vehicle_payloads,
            "options": {"g": True},
        }

    def _post(self, payload: dict) -> dict:
        url = f"{self.base_url}/optimization"
        headers = {"Authorization": self.api_key, "Content-Type": "application/json"}

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=payload, headers=headers)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    # Client errors will not succeed on retry.
                    if e.response.status_code < 500:
                        raise SolverTransportError(
                            f"ORS rejected optimization request ({e.response.status_code}): {e.response.text}"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise SolverTransportError(
                            f"ORS optimization failed with status {e.response.status_code}"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"ORS optimization timed out after {self.max_retries} retries: {e}")
                        raise SolverTransportError(f"ORS optimization timed out: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"ORS timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except httpx.TransportError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise SolverTransportError(
                            f"Failed to connect to ORS at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"ORS network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    raise MalformedSolverResponse(f"ORS returned a non-JSON body: {e}") from e
        finally:
            client.close()

    def optimize(self, jobs: Sequence[SolverJob], vehicles: Sequence[SolverVehicle]) -> list[SolverRoute]:
        """Solve jobs over vehicles and return one route per used vehicle."""
        if not jobs:
            raise ValueError("At least one job is required for optimization.")
        data = self._post(self.build_payload(jobs, vehicles))
        return parse_routes(data)

    def solve(self, jobs: Sequence[SolverJob], vehicle: SolverVehicle) -> SolverRoute:
        """Solve jobs for a single vehicle."""
        routes = self.optimize(jobs, [vehicle])
        for route in routes:
            if route.vehicle_id == vehicle.id:
                return route
        raise MalformedSolverResponse(f"ORS response has no route for vehicle {vehicle.id}.")


def parse_routes(data: Any) -> list[SolverRoute]:
    """Decode an optimization response into solver routes.

    Any unassigned job means the plan would silently drop a pickup, so it is
    rejected like a malformed answer.
    """
    if not isinstance(data, dict):
        raise MalformedSolverResponse("ORS response is not a JSON object.")
    unassigned = data.get("unassigned") or []
    if unassigned:
        ids = [item.get("id") for item in unassigned if isinstance(item, dict)]
        raise MalformedSolverResponse(f"ORS left jobs unassigned: {ids}")
    raw_routes = data.get("routes")
    if not isinstance(raw_routes, list) or not raw_routes:
        raise MalformedSolverResponse("ORS response contains no routes.")

    routes: list[SolverRoute] = []
    for raw in raw_routes:
        geometry = raw.get("geometry") if isinstance(raw, dict) else None
        if not isinstance(geometry, str):
            raise MalformedSolverResponse("ORS route geometry is missing or not an encoded polyline.")
        try:
            steps = [
                SolverStep(
                    type=step.get("type"),
                    location=(float(step["location"][0]), float(step["location"][1])),
                    job_id=int(step["id"]) if step.get("id") is not None else None,
                )
                for step in raw.get("steps", [])
            ]
            vehicle_id = int(raw["vehicle"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise MalformedSolverResponse(f"ORS route could not be decoded: {e}") from e
        routes.append(SolverRoute(vehicle_id=vehicle_id, steps=steps, geometry=geometry))
    return routes


def check_health(base_url: str | None = None, api_key: str | None = None) -> bool:
    """Check that the ORS API answers with the configured key."""
    base = (base_url or settings.ors_base_url).rstrip("/")
    key = api_key if api_key is not None else settings.ors_api_key
    if not key:
        return False
    try:
        response = httpx.get(f"{base}/v2/health", headers={"Authorization": key}, timeout=5.0)
        response.raise_for_status()
        return response.json().get("status") == "ready"
    except (httpx.HTTPError, ValueError):
        return False

#!/usr/bin/env python3
"""Script to verify OpenRouteService optimization connectivity."""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from ecobin.config import settings
from ecobin.models.domain import StopId
from ecobin.services.routing.exceptions import SolverError
from ecobin.services.routing.models import SolverJob, SolverVehicle
from ecobin.services.routing.ors_client import ORSOptimizationClient, check_health
from ecobin.services.routing.polyline import decode_polyline


def main():
    print("=" * 60)
    print("ORS Optimization Connection Test")
    print("=" * 60)
    print()

    print("1. Checking ORS configuration...")
    if not settings.ors_api_key:
        print("   [ERROR] ORS API key is not configured")
        print("   Please set ECOBIN_ORS_API_KEY in your .env file")
        return 1
    print(f"   [OK] ORS Base URL: {settings.ors_base_url}")
    print(f"   [OK] ORS Profile: {settings.ors_profile}")
    print()

    print("2. Testing ORS health endpoint...")
    if check_health():
        print("   [OK] ORS reports ready")
    else:
        print("   [WARN] ORS health endpoint did not report ready; trying an optimization anyway")
    print()

    print("3. Testing a one-job optimization from the depot...")
    client = ORSOptimizationClient()
    job = SolverJob(
        id=1,
        location=(75.8267, 26.9239),
        service=settings.service_seconds,
        stop_id=StopId.real("hawa_mahal"),
        name="Hawa Mahal",
    )
    vehicle = SolverVehicle(
        id=1,
        start=settings.depot_location,
        end=settings.treatment_plant_location,
        capacity=settings.max_capacity,
        profile=settings.ors_profile,
    )
    try:
        route = client.solve([job], vehicle)
    except SolverError as e:
        print(f"   [ERROR] Optimization failed: {e}")
        return 1
    print(f"   [OK] Route for vehicle {route.vehicle_id} with {len(route.steps)} steps")
    print(f"   [OK] Geometry decodes to {len(decode_polyline(route.geometry))} points")
    print()

    print("=" * 60)
    print("[SUCCESS] ORS optimization is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())

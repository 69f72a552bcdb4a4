#!/usr/bin/env python3
"""Helper script to check and create the .env file for the dispatch service."""

from pathlib import Path
import os
import sys

TEMPLATE = """# OpenRouteService (required unless ECOBIN_SOLVER_BACKEND=local)
# Get a key from: https://openrouteservice.org/dev/#/signup
ECOBIN_ORS_API_KEY=your-ors-api-key-here
ECOBIN_ORS_PROFILE=driving-hgv
# ECOBIN_SOLVER_BACKEND=local

# Depot and treatment plant as JSON [longitude, latitude]
ECOBIN_DEPOT_LOCATION=[75.7871, 26.9124]
ECOBIN_TREATMENT_PLANT_LOCATION=[75.9330, 26.9660]

# Live dispatch driver (server-side polling)
ECOBIN_LIVE_DISPATCH_ENABLED=false
ECOBIN_STATE_BACKEND=memory

# Supabase Configuration (optional: dustbins table and dispatch_state store)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
ECOBIN_SUPABASE_URL=https://your-project-id.supabase.co
ECOBIN_SUPABASE_KEY=your-service-role-key-here

# Data Paths
ECOBIN_DATA_ROOT=./data
"""

SECRET_KEYS = ("ECOBIN_SUPABASE_KEY", "ECOBIN_ORS_API_KEY")


def _mask(line: str) -> str:
    name, _, value = line.partition("=")
    value = value.strip()
    if name.strip() in SECRET_KEYS and len(value) > 20:
        return f"{name}={value[:8]}...{value[-4:]}"
    return line


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("EcoBin Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        with open(env_file, "w", encoding="utf-8") as f:
            f.write(TEMPLATE)
        print(f"✅ Created template .env file at: {env_file}")
        print("⚠️  Please edit .env and add your OpenRouteService key (and Supabase credentials if used).")
        return 1

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    for name in SECRET_KEYS:
        if os.getenv(name):
            print(f"✅ {name} set in environment")

    sys.path.insert(0, str(project_root / "src"))
    try:
        from ecobin.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return 1

    print(f"Solver backend: {settings.solver_backend}")
    if settings.solver_backend == "ors" and not settings.ors_api_key:
        print("❌ ECOBIN_ORS_API_KEY is not configured")
        return 1
    if settings.state_backend == "supabase" and not (settings.supabase_url and settings.supabase_key):
        print("❌ State backend is 'supabase' but Supabase credentials are missing")
        return 1

    print("=" * 60)
    print("✅ SUCCESS: configuration looks usable")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())

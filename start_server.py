#!/usr/bin/env python3
"""Start the dispatch API, honouring the PORT environment variable of the hosting platform."""

import os
import subprocess
import sys
import traceback

port = os.environ.get("PORT", "8000")
try:
    port_int = int(port)
except ValueError:
    print(f"Warning: Invalid PORT value '{port}', using default 8000", file=sys.stderr)
    port_int = 8000

src_path = os.path.abspath("src")
if not os.path.isdir(src_path):
    print(f"Warning: src directory not found at {src_path}", file=sys.stderr)
    src_path = os.getcwd()

pythonpath = os.environ.get("PYTHONPATH", "")
os.environ["PYTHONPATH"] = f"{src_path}:{pythonpath}" if pythonpath else src_path
sys.path.insert(0, src_path)

# Single worker: the live polling driver keeps its state in this process.
cmd = [
    sys.executable,
    "-m",
    "uvicorn",
    "ecobin.main:app",
    "--host",
    "0.0.0.0",
    "--port",
    str(port_int),
    "--proxy-headers",
    "--forwarded-allow-ips", "*",
]

print(f"Starting server on port {port_int}...", file=sys.stderr)
print(f"PYTHONPATH={os.environ['PYTHONPATH']}", file=sys.stderr)

# Fail fast on configuration errors before handing over to uvicorn
try:
    from ecobin.config import settings

    print(
        f"✅ Configuration loaded (solver={settings.solver_backend}, "
        f"live dispatch={'on' if settings.live_dispatch_enabled else 'off'}, state={settings.state_backend})",
        file=sys.stderr,
    )
    import ecobin.main  # noqa: F401
except Exception as e:
    print(f"❌ Failed to import ecobin.main ({type(e).__name__}): {e}", file=sys.stderr)
    traceback.print_exc(file=sys.stderr)
    sys.exit(1)

print("🚀 Starting uvicorn server...", file=sys.stderr)
try:
    result = subprocess.call(cmd)
    if result != 0:
        print(f"❌ Uvicorn exited with code {result}", file=sys.stderr)
    sys.exit(result)
except KeyboardInterrupt:
    print("⚠️ Server interrupted by user", file=sys.stderr)
    sys.exit(0)

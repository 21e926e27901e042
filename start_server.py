#!/usr/bin/env python3
"""Run the trip planner API under uvicorn, honoring the PORT environment variable."""

import os
import subprocess
import sys

port = os.environ.get("PORT", "8000")
try:
    port_int = int(port)
except ValueError:
    print(f"Warning: Invalid PORT value '{port}', using default 8000", file=sys.stderr)
    port_int = 8000

# The package lives under src/ when running from a checkout
src_path = os.path.abspath("src")
if os.path.isdir(src_path):
    existing = os.environ.get("PYTHONPATH", "")
    os.environ["PYTHONPATH"] = f"{src_path}:{existing}" if existing else src_path
    sys.path.insert(0, src_path)

try:
    import tripplanner.main  # noqa: F401
except ImportError as e:
    print(f"Failed to import tripplanner.main: {e}", file=sys.stderr)
    sys.exit(1)

cmd = [
    sys.executable,
    "-m",
    "uvicorn",
    "tripplanner.main:app",
    "--host",
    "0.0.0.0",
    "--port",
    str(port_int),
    "--proxy-headers",
    "--forwarded-allow-ips", "*",
]

print(f"Starting trip planner on port {port_int}...", file=sys.stderr)
try:
    sys.exit(subprocess.call(cmd))
except KeyboardInterrupt:
    print("Server interrupted by user", file=sys.stderr)
    sys.exit(0)

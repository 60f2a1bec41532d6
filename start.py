#!/usr/bin/env python3
"""
Brasa Forge Service Entrypoint

This script determines which process to run based on the SERVICE_TYPE
environment variable. Set SERVICE_TYPE in each deployed service's settings.

SERVICE_TYPE values:
  - worker (default): Run the site generation worker
  - config: Print which integrations are configured and exit
"""

import os
import sys

SERVICE_TYPE = os.environ.get("SERVICE_TYPE", "worker")

print("=" * 50)
print(f"Brasa Forge Service: {SERVICE_TYPE}")
print("=" * 50)

if SERVICE_TYPE == "worker":
    print("Starting site worker...")
    cmd = [sys.executable, "-m", "brasa.jobs.run_worker"]
elif SERVICE_TYPE == "config":
    cmd = [sys.executable, "-m", "brasa.config"]
else:
    print(f"ERROR: Unknown SERVICE_TYPE: {SERVICE_TYPE}")
    print("Valid values: worker, config")
    sys.exit(1)

print(f"Running: {' '.join(cmd)}")
print("=" * 50)

# Replace this process with the actual command
os.execvp(cmd[0], cmd)

#!/usr/bin/env python3
"""Runner script to start the simulator against a local backend."""
import os
import sys
import subprocess

script_dir = os.path.dirname(os.path.abspath(__file__))
simulator_dir = os.path.join(script_dir, "simulator")

env = dict(os.environ)
env.setdefault("BACKEND_URL", "http://localhost:8000")

subprocess.run(
    [sys.executable, "simulate.py", "--vehicles", "4", "--speed", "5", "--minutes", "3"],
    cwd=simulator_dir,
    env=env,
)

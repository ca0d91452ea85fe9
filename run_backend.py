#!/usr/bin/env python3
"""Runner script to start the backend server."""
import os
import sys

# Set working directory so the default SQLite file lands in backend/data
script_dir = os.path.dirname(os.path.abspath(__file__))
backend_dir = os.path.join(script_dir, "backend")
os.chdir(backend_dir)

sys.path.insert(0, backend_dir)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "roadhazard.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "true").lower() == "true",
    )

#!/usr/bin/env python
"""Script to run the TaskBuddy API server."""
import os
from pathlib import Path

# Run from the repo root so .env and relative sqlite paths resolve
os.chdir(Path(__file__).resolve().parent)

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "taskbuddy.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") not in ("0", "false", "no"),
    )

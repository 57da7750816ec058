#!/usr/bin/env python3
# backend/run.py
"""
Local server runner.

Pass --test-db to point the app at TEST_DATABASE_URL instead of DATABASE_URL.
"""
import argparse
import os
import sys
from pathlib import Path

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn  # noqa: E402

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the time-bank API locally")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--test-db", action="store_true", help="Use TEST_DATABASE_URL")
    parser.add_argument("--no-reload", action="store_true")
    args = parser.parse_args()

    if args.test_db:
        os.environ["IS_TESTING"] = "true"

    print(f"Starting time-bank API at http://localhost:{args.port}")
    print(f"API Docs: http://localhost:{args.port}/docs")

    uvicorn.run(
        "timebank.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        log_level="info",
    )

"""
main.py: server launcher and entry point.

Run this file to start the revenue management API:

    python main.py

API docs are served at http://127.0.0.1:8000/docs

This file does NOT contain application logic. See revenue_core/main.py for the
FastAPI application, service wiring, and startup sequence.

Direct uvicorn usage:
    uvicorn revenue_core.main:app --reload
"""

from __future__ import annotations

import os

import uvicorn


HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))


def main() -> None:
    """Start the API server; the cancellation sweep starts with it."""
    print("=" * 60)
    print("  Revenue Management Core")
    print("=" * 60)
    print(f"  Server   : http://{HOST}:{PORT}")
    print(f"  API docs : http://{HOST}:{PORT}/docs")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    uvicorn.run(
        "revenue_core.main:app",
        host=HOST,
        port=PORT,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()

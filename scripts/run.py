#!/usr/bin/env python3
"""Serve the scheduler (REST and /ws) with Uvicorn."""

import os

import uvicorn

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def main() -> None:
    host = os.getenv("APP_HOST", "127.0.0.1")
    port = int(os.getenv("APP_PORT", "8000"))
    reload = os.getenv("APP_RELOAD", "false").lower() in ("true", "1", "t")
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    print(f"Shift scheduler on http://{host}:{port} (websocket at ws://{host}:{port}/ws)")

    # Realtime channels are in-process, so this must stay a single worker
    uvicorn.run("main:app", host=host, port=port, reload=reload, log_level=log_level, app_dir=PROJECT_ROOT, workers=1)


if __name__ == "__main__":
    main()

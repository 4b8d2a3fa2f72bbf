#!/usr/bin/env python
"""Run the backup trigger API."""

import os

import uvicorn


def main():
    """Run the FastAPI application."""
    uvicorn.run(
        "skyplanner_backup.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info"
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Server startup script for the Assignment Answer API.
"""
import uvicorn

from assignment_api.config import Settings

if __name__ == "__main__":
    settings = Settings.from_env()

    # Ensure required directories exist
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    # Run the server
    uvicorn.run(
        "assignment_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower()
    )

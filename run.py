"""Local/dev entry point: ``python run.py``."""

import os

import uvicorn

from app.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    # One worker per process; classification concurrency lives in the event
    # loop and each worker would hold its own OpenAI/Supabase clients.
    uvicorn.run(
        "app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        workers=int(os.environ.get("WEB_CONCURRENCY", 1)),
        log_level=settings.log_level.lower(),
    )

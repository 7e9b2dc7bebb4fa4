"""Run the FastAPI server."""

import uvicorn

from settings import settings

if __name__ == "__main__":
    # Single worker: rooms, session cache and conversation locks live in process memory
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        workers=1,
    )

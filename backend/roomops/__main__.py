"""Run the API with uvicorn: ``python -m roomops``."""

import uvicorn

from roomops.config import settings

if __name__ == "__main__":
    uvicorn.run("roomops.main:app", host=settings.host, port=settings.port, reload=settings.debug)

import uvicorn

from .config import settings
from .logger import logger

if __name__ == "__main__":
    logger.info(f"Serving TestOps Scheduler on {settings.host}:{settings.port}")
    uvicorn.run("testops.main:app", host=settings.host, port=settings.port)

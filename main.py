# main.py
"""FastAPI entry point for the examiner context service"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from config import settings
from services.logger_config import setup_logging
from api.endpoints import router
from services.async_processor import async_processor
from services.factory import build_document_session

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One document session per process, owning its own vector store
    app.state.document_session = build_document_session()
    logger.info(
        f"{settings.APP_TITLE} {settings.APP_VERSION} started "
        f"(embedding provider: {settings.EMBEDDING_PROVIDER})"
    )
    yield

    # Cancel in-flight loads
    await async_processor.shutdown()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="info")

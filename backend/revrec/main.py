"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from revrec.config import get_settings
from revrec.database import init_db
from revrec.logging_config import configure_logging
from revrec.routers import contracts, revenue

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    await init_db()
    logger.info(
        "Contract revenue service started (env=%s, ocr=%s, ai=%s)",
        settings.app_env,
        "on" if settings.ocr_configured else "off",
        "on" if settings.openai_api_key else "off",
    )
    yield


app = FastAPI(
    title="Contract Revenue Recognition Service",
    description="Contract term extraction, revenue allocation schedules and forward book reporting",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(contracts.router)
app.include_router(revenue.router)


@app.get("/health")
async def health():
    return {"status": "ok"}

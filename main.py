from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from src.api.v1 import router as v1_endpoint
from src.scheduler import start_stats_scheduler, stop_stats_scheduler
from src.utils.logger import api_logger, scheduler_logger
from src.utils.logging_filter import HealthCheckFilter
from src.utils.settings import get_cors_origins, get_env, stats_scheduler_enabled


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Load environment variables
    load_dotenv()
    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter("/health"))
    api_logger.info(f"Starting Amerex Logistics API ({get_env()})")

    # Startup
    enabled = stats_scheduler_enabled()
    if enabled:
        scheduler_logger.info("Starting admin stats scheduler...")
        start_stats_scheduler()
    else:
        scheduler_logger.info("Admin stats scheduler disabled")
    yield
    # Shutdown
    if enabled:
        scheduler_logger.info("Stopping admin stats scheduler...")
        stop_stats_scheduler()


app = FastAPI(
    title="Amerex Logistics API",
    description="Quotes, shipments, payments and tracking for Amerex Logistics",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(v1_endpoint, prefix="/api/v1")


@app.get("/", tags=["Root"])
def read_root():
    return {"status": "ok", "message": "Welcome to the Amerex Logistics API!"}


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "message": "Amerex Logistics API is running", "version": "1.0.0"}


# surfaces schema errors at import time instead of on the first /docs hit
try:
    app.openapi()
    api_logger.info("OpenAPI schema generated successfully")
except Exception as e:
    api_logger.exception("Failed to generate OpenAPI schema: %s", e)

# To run this application for development:
# uvicorn main:app --reload

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from baseline_fund.api import baseline
from baseline_fund.backend.factory import get_backend
from baseline_fund.config import config
from baseline_fund.lib.logger import configure_logger, setup_uvicorn_logging
from baseline_fund.middleware.logging import LoggingMiddleware
from baseline_fund.services.baseline import BaselineService

# Configure module logger
logger = configure_logger(__name__)

# Define app
app = FastAPI(
    title="Baseline Fund",
    description="Agent baseline test, verified voting and fund allocation API",
    version="0.1.0",
)

# Add logging middleware first
app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.baseline_service = BaselineService(
    get_backend(config.storage), pass_threshold=config.baseline.pass_threshold
)


@app.get("/")
async def health_check():
    """Simple health check endpoint."""
    return {"status": "healthy"}


# Load API routes
app.include_router(baseline.router)
app.include_router(baseline.dashboard_router)


@app.on_event("startup")
async def startup_event():
    """Load persisted sessions and ballots."""
    setup_uvicorn_logging()

    logger.info("Starting baseline API...")
    app.state.baseline_service.hydrate()
    logger.info("Baseline API startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Flush sessions and ballots before exit."""
    logger.info("Shutting down baseline API...")
    app.state.baseline_service.flush()
    logger.info("Baseline API shutdown complete")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.api.host, port=config.api.port)

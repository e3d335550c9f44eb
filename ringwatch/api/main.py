from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST

from ringwatch import __version__, setup_metrics
from ringwatch.analyzers import FraudDetectionPipeline
from ringwatch.api.result_store import LatestResultStore
from ringwatch.api.routes import router

SERVICE_NAME = "ringwatch-api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events"""
    logger.info("Ringwatch API starting up...")
    app.state.metrics.set_health_status(True)
    yield
    app.state.metrics.set_health_status(False)
    logger.info("Ringwatch API shutting down gracefully...")


def create_app(pipeline: FraudDetectionPipeline = None) -> FastAPI:
    app = FastAPI(
        title="Ringwatch API",
        description="Upload transaction batches and inspect detected mule rings",
        version=__version__,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    metrics = setup_metrics(SERVICE_NAME)
    app.state.metrics = metrics
    app.state.pipeline = pipeline or FraudDetectionPipeline(metrics_registry=metrics)
    app.state.result_store = LatestResultStore()

    app.include_router(router, prefix="/api", tags=["detection"])

    @app.get("/metrics")
    async def metrics_endpoint():
        return Response(content=metrics.get_metrics_text(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()

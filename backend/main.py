"""
Keyphrase RW Neo4j - FastAPI app

Consumes concept suggestions from the feed, writes keyphrase annotations to
Neo4j, and serves the annotation read/write/delete/count API.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from api import annotations, health
from api.dependencies import json_message
from config import Settings, create_message_feed, create_neo4j_service, get_settings
from services.annotation_service import KeyphraseAnnotationService
from services.exceptions import StoreUnavailableError, TypeResolutionError, ValidationError
from services.ingestion_stats import IngestionStats
from services.message_feed import MessageFeed
from workers.keyphrase_worker import build_keyphrase_ingestion

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    annotation_service: Optional[KeyphraseAnnotationService] = None,
    feed: Optional[MessageFeed] = None,
) -> FastAPI:
    """
    Build the app.

    Services passed in are used as-is and left open on shutdown; anything
    not passed in is created from settings in the lifespan and closed there.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        neo4j = None
        owned_feed = None
        ingestion = None

        service = annotation_service
        if service is None:
            neo4j = await create_neo4j_service(settings)
            service = KeyphraseAnnotationService(neo4j)
            await service.initialise()

        active_feed = feed
        if active_feed is None and settings.consumer_enabled:
            owned_feed = await create_message_feed(settings)
            active_feed = owned_feed

        app.state.annotation_service = service
        app.state.feed = active_feed

        if active_feed is not None and settings.consumer_enabled:
            ingestion = build_keyphrase_ingestion(service, active_feed, settings, app.state.ingestion_stats)
            ingestion.start()
            logger.info(f"✅ Consuming {active_feed.queue_name} at up to {settings.throttle}/s")

        try:
            yield
        finally:
            if ingestion is not None:
                await ingestion.stop()
            if owned_feed is not None:
                await owned_feed.close()
            if neo4j is not None:
                await neo4j.close()
            logger.info("Application closing")

    app = FastAPI(
        title="Keyphrase RW Neo4j",
        description="Consumes concept suggestions, extracts keyphrases and writes them to Neo4j",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.annotation_service = annotation_service
    app.state.feed = feed
    app.state.ingestion_stats = IngestionStats()

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
        return json_message(str(exc), 400)

    @app.exception_handler(TypeResolutionError)
    async def type_resolution_error_handler(request: Request, exc: TypeResolutionError):
        logger.warning(f"Type resolution failed for {request.url.path}: {exc}")
        return json_message(str(exc), 422)

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Store unavailable for {request.method} {request.url.path}: {exc}")
        return json_message(str(exc), 503)

    app.include_router(annotations.router)
    app.include_router(health.router)
    return app

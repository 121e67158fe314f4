"""
Request-scoped access to the services wired up in the app lifespan
"""
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from services.annotation_service import KeyphraseAnnotationService
from services.ingestion_stats import IngestionStats
from services.message_feed import MessageFeed


def get_annotation_service(request: Request) -> KeyphraseAnnotationService:
    return request.app.state.annotation_service


def get_feed(request: Request) -> Optional[MessageFeed]:
    return request.app.state.feed


def get_ingestion_stats(request: Request) -> IngestionStats:
    return request.app.state.ingestion_stats


def json_message(message: str, status_code: int) -> JSONResponse:
    """Error/info body shape shared by every endpoint"""
    return JSONResponse(status_code=status_code, content={"message": message})

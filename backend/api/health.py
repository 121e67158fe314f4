"""
Health and status endpoints

- GET /__health      - per-dependency checks plus ingestion counters
- GET /__gtg         - 503 when any dependency check fails (for load balancers)
- GET /__ping        - liveness
- GET /__build-info  - version
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from redis.exceptions import RedisError

from api.dependencies import get_annotation_service, get_feed, get_ingestion_stats
from services.annotation_service import KeyphraseAnnotationService
from services.exceptions import StoreUnavailableError
from services.ingestion_stats import IngestionStats
from services.message_feed import MessageFeed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def check_neo4j(service: KeyphraseAnnotationService) -> Dict[str, object]:
    try:
        await service.check()
        return {"name": "neo4j", "ok": True, "output": "Can connect to Neo4j instance"}
    except StoreUnavailableError as e:
        logger.error(f"Healthcheck: {e}")
        return {"name": "neo4j", "ok": False, "output": f"Error connecting to Neo4j: {e}"}


async def check_feed(feed: Optional[MessageFeed]) -> Dict[str, object]:
    if feed is None:
        return {"name": "feed", "ok": True, "output": "Feed consumer disabled"}
    try:
        await feed.ping()
        return {"name": "feed", "ok": True, "output": f"Can reach feed {feed.queue_name}"}
    except (RedisError, OSError) as e:
        logger.error(f"Healthcheck: feed unreachable: {e}")
        return {"name": "feed", "ok": False, "output": f"Error connecting to feed: {e}"}


async def run_checks(service: KeyphraseAnnotationService, feed: Optional[MessageFeed]) -> List[Dict[str, object]]:
    return [await check_neo4j(service), await check_feed(feed)]


@router.get("/__health")
async def health(
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
    feed: Optional[MessageFeed] = Depends(get_feed),
    stats: IngestionStats = Depends(get_ingestion_stats),
):
    checks = await run_checks(service, feed)
    return {
        "name": "keyphrase-rw-neo4j",
        "description": "Checks connectivity to the concept suggestion feed and Neo4j",
        "ok": all(check["ok"] for check in checks),
        "checks": checks,
        "ingestion": stats.snapshot(),
    }


@router.get("/__gtg")
async def good_to_go(
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
    feed: Optional[MessageFeed] = Depends(get_feed),
):
    checks = await run_checks(service, feed)
    if not all(check["ok"] for check in checks):
        return PlainTextResponse("Not good to go", status_code=503)
    return PlainTextResponse("OK")


@router.get("/__ping")
async def ping():
    return PlainTextResponse("pong")


@router.get("/__build-info")
async def build_info(request: Request):
    return JSONResponse(content={"version": request.app.version})

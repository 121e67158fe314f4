"""
Keyphrase Annotations API
=========================

Thin handlers over KeyphraseAnnotationService. The GET body mirrors the PUT
body so that what is read back can be written again unchanged.

Endpoints:
- PUT    /content/{uuid}/keyphrase/annotations      - write one annotation
- GET    /content/{uuid}/keyphrase/annotations      - read it back
- DELETE /content/{uuid}/keyphrase/annotations      - delete all keyphrase annotations
- GET    /content/keyphrase/annotations/__count     - count annotations
- GET    /content/keyphrase/popular?period=day      - most popular keyphrases
- GET    /keyphrase/{uuid}/cooccurrences?limit=10   - co-mentioned concepts

Service errors are mapped in main.py:
ValidationError → 400, TypeResolutionError → 422, StoreUnavailableError → 503.
"""
import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PayloadError

from api.dependencies import get_annotation_service, json_message
from models.annotation import Annotation
from services.annotation_service import KeyphraseAnnotationService
from services.exceptions import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Keyphrase annotations"])

YESTERDAY = 86400
ONE_WEEK_AGO = 604800
ONE_MONTH_AGO = 2629743
SIX_MONTHS_AGO = 6 * ONE_MONTH_AGO

POPULAR_PERIODS = {
    "day": YESTERDAY,
    "week": ONE_WEEK_AGO,
    "month": ONE_MONTH_AGO,
    "six-months": SIX_MONTHS_AGO,
}

ANNOTATIONS_PATH = "/content/{uuid}/keyphrase/annotations"


@router.put(ANNOTATIONS_PATH, status_code=201)
async def put_annotation(
    uuid: str,
    request: Request,
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
):
    body = await request.body()
    try:
        annotation = Annotation.model_validate_json(body)
    except PayloadError as e:
        msg = f"Error ({e}) parsing annotation request"
        logger.info(msg)
        return json_message(msg, 400)

    await service.write(uuid, annotation)
    return json_message(f"Annotations for content {uuid} created", 201)


@router.get(ANNOTATIONS_PATH)
async def get_annotation(
    uuid: str,
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
):
    annotation, found = await service.read(uuid)
    if not found:
        return json_message(f"No annotations found for content with uuid {uuid}.", 404)

    logger.debug(f"Annotations for content (uuid:{uuid}): {annotation.to_wire()}")
    return JSONResponse(status_code=200, content=annotation.to_wire())


@router.delete(ANNOTATIONS_PATH)
async def delete_annotations(
    uuid: str,
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
):
    found = await service.delete(uuid)
    if not found:
        return json_message(f"No annotations found for content with uuid {uuid}.", 404)
    return Response(status_code=204)


@router.get("/content/keyphrase/annotations/__count")
async def count_annotations(
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
):
    count = await service.count()
    return JSONResponse(status_code=200, content=count)


@router.get("/content/keyphrase/popular")
async def popular_keyphrases(
    period: str = Query("day"),
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
):
    window = POPULAR_PERIODS.get(period)
    if window is None:
        return json_message(
            f"Unknown period {period!r}, expected one of {sorted(POPULAR_PERIODS)}", 400
        )

    popular = await service.get_popular(window)
    return JSONResponse(status_code=200, content=[p.to_wire() for p in popular])


@router.get("/keyphrase/{uuid}/cooccurrences")
async def keyphrase_cooccurrences(
    uuid: str,
    limit: str = Query("10"),
    skip_unresolved: bool = Query(False),
    service: KeyphraseAnnotationService = Depends(get_annotation_service),
):
    try:
        parsed_limit = int(limit)
    except ValueError:
        raise ValidationError(f"Limit must be a positive integer, got {limit!r}")

    result, found = await service.get_co_occurrence(uuid, parsed_limit, skip_unresolved=skip_unresolved)
    if not found:
        return json_message(f"No co-occurrences found for keyphrase with uuid {uuid}.", 404)
    return JSONResponse(status_code=200, content=result.to_wire())

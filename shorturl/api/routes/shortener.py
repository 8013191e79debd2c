"""URL shortening endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from shorturl.api import schemas
from shorturl.api.dependencies import get_shortener_service
from shorturl.services.shortener import ShortenerService, ShortenResult

router = APIRouter(tags=["shortener"])

# Mounted at the site root rather than under the API prefix
root_router = APIRouter(tags=["shortener"])

RESPONSES = {
    400: {"model": schemas.ErrorResponse, "description": "Empty or undecodable request body"},
    409: {"description": "URL was already shortened; the existing short URL is returned"},
    503: {"model": schemas.ErrorResponse, "description": "No free token could be generated"},
}


def _status_code(result: ShortenResult) -> int:
    return status.HTTP_201_CREATED if result.created else status.HTTP_409_CONFLICT


@root_router.post(
    "/",
    response_class=PlainTextResponse,
    status_code=status.HTTP_201_CREATED,
    responses=RESPONSES,
)
async def shorten_plain(
    request: Request,
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Shorten the URL sent as the raw request body."""
    body = await request.body()
    try:
        original_url = body.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Request body must be UTF-8 text")
    if not original_url:
        raise HTTPException(status_code=400, detail="Request body must contain a URL")

    result = await shortener_service.shorten(original_url)
    logger.debug(f"Shortened URL ({result.status.value}): {result.short_url}")
    return PlainTextResponse(result.short_url, status_code=_status_code(result))


@router.post(
    "/shorten",
    response_model=schemas.ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses=RESPONSES,
)
async def shorten_json(
    payload: schemas.ShortenRequest,
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Shorten the URL given in a JSON body."""
    result = await shortener_service.shorten(payload.url)
    logger.debug(f"Shortened URL ({result.status.value}): {result.short_url}")
    return JSONResponse(
        content=schemas.ShortenResponse(result=result.short_url).model_dump(),
        status_code=_status_code(result),
    )

"""Short URL redirection endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status
from starlette.responses import RedirectResponse
from loguru import logger

from shorturl.api import schemas
from shorturl.api.dependencies import get_shortener_service
from shorturl.services.exceptions import URLNotFoundError
from shorturl.services.shortener import ShortenerService

router = APIRouter(tags=["redirect"])


@router.get(
    "/{short_token}",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    responses={400: {"model": schemas.ErrorResponse, "description": "Unknown token"}},
)
async def redirect_to_original_url(
    short_token: str,
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Redirect to the original URL behind a token."""
    try:
        original_url = await shortener_service.resolve(short_token)
    except URLNotFoundError as e:
        logger.info(f"Unknown token requested: {short_token}")
        raise HTTPException(status_code=400, detail=str(e))

    return RedirectResponse(
        url=original_url,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )

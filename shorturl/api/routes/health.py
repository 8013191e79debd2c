"""Health check endpoints for monitoring service status."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from shorturl.api import schemas
from shorturl.api.dependencies import get_repository
from shorturl.repositories.base import RepositoryError, URLRepository

router = APIRouter(tags=["health"])


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def liveness_probe():
    """Simple check that the service is running."""
    return {"alive": True}


@router.get(
    "/health/ready",
    response_model=schemas.ReadinessResponse,
    summary="Readiness probe",
    responses={503: {"model": schemas.ReadinessResponse}},
)
async def readiness_probe(repository: URLRepository = Depends(get_repository)):
    """Check that the storage backend answers."""
    try:
        mappings = await repository.next_id()
    except RepositoryError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=schemas.ReadinessResponse(
                ready=False,
                storage=repository.backend_name,
                error=str(e),
            ).model_dump(),
        )

    return schemas.ReadinessResponse(
        ready=True,
        storage=repository.backend_name,
        mappings=mappings,
    )

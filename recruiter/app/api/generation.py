"""Generation API endpoints: job posting and interview kit."""

from fastapi import APIRouter, Depends, Request

from recruiter.app.api.schemas import (
    ErrorResponse,
    KitRequest,
    KitResponse,
    PostingRequest,
    PostingResponse,
)
from recruiter.app.core.logging import get_log_context, get_logger
from recruiter.app.exceptions import ServiceNotConfiguredError
from recruiter.app.middleware.request_id import get_request_id
from recruiter.app.services.recruiting import RecruitingService

router = APIRouter(prefix="/api", tags=["generation"])
logger = get_logger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


def get_recruiting_service(request: Request) -> RecruitingService:
    """FastAPI dependency returning the service built at startup.

    Raises:
        ServiceNotConfiguredError: No completion API key was configured.
    """
    service = getattr(request.app.state, "recruiting_service", None)
    if service is None:
        raise ServiceNotConfiguredError()
    return service


@router.post("/generate-posting", response_model=PostingResponse, responses=_ERROR_RESPONSES)
@router.post(
    "/generate-job-description",
    response_model=PostingResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
async def generate_posting(
    payload: PostingRequest,
    request: Request,
    service: RecruitingService = Depends(get_recruiting_service),
) -> PostingResponse:
    """Generate an HTML job posting from role attributes."""
    logger.info(
        "Generating job posting",
        extra=get_log_context(request_id=get_request_id(request), title=payload.title),
    )
    html = await service.generate_posting(payload)
    return PostingResponse(html=html)


@router.post("/generate-kit", response_model=KitResponse, responses=_ERROR_RESPONSES)
@router.post(
    "/generate-interview-kit-answers",
    response_model=KitResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
async def generate_kit(
    payload: KitRequest,
    request: Request,
    service: RecruitingService = Depends(get_recruiting_service),
) -> KitResponse:
    """Generate interview questions with model answers for a role."""
    logger.info(
        "Generating interview kit",
        extra=get_log_context(request_id=get_request_id(request), role_title=payload.role_title),
    )
    kit = await service.generate_kit(payload)
    return KitResponse(kit=kit)

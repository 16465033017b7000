from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_session
from app.schemas.notification_schemas import JobTriggerRequest
from app.services.notifications.registry import JobRegistry
from app.utils.errors import UnknownJobError
from app.utils.logging import get_logger
from app.utils.responses import ResponseBuilder

logger = get_logger()

jobs_router = APIRouter()


@jobs_router.get("")
async def list_jobs(request: Request):
    """List the reminder jobs that can be triggered by name"""
    return ResponseBuilder.success(
        request=request,
        data={"jobs": JobRegistry.list_registered_jobs()},
        message="Registered jobs retrieved successfully",
    )


@jobs_router.post("/{job_name}")
async def trigger_job(
    request: Request,
    job_name: str,
    trigger: Optional[JobTriggerRequest] = Body(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Run a reminder job once and return its outcome.

    Responds 200 with the run summary when the job completed, even if some
    candidates failed, and 500 when the run itself aborted.
    """
    job = JobRegistry.create_job(
        job_name,
        db,
        now=trigger.now if trigger else None,
        limit=trigger.limit if trigger else None,
        request_id=getattr(request.state, "request_id", None),
    )
    if job is None:
        raise UnknownJobError(job_name)

    logger.info("Job triggered over HTTP", job=job_name)
    result = await job.run()

    return JSONResponse(
        status_code=(
            status.HTTP_200_OK
            if result.success
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        ),
        content=result.to_response(),
    )

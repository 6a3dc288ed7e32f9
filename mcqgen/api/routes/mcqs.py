from fastapi import APIRouter, Body, Depends, Query, Response, status

from mcqgen.api.deps import get_job_runtime
from mcqgen.api.models import CreateMcqJobRequest, JobCreateResponse, JobRetryRequest, JobRetryResponse, JobStatusResponse
from mcqgen.services import jobs as job_service
from mcqgen.services.csv_export import CSV_MEDIA_TYPE
from mcqgen.services.jobs import JobRuntime

router = APIRouter()


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_mcq_job(  # noqa: B008
  request: CreateMcqJobRequest,
  runtime: JobRuntime = Depends(get_job_runtime),  # noqa: B008
) -> JobCreateResponse:
  """Start a background MCQ generation job."""
  return await job_service.create_job(request, runtime)


@router.get("/status", response_model=JobStatusResponse)
async def get_mcq_job_status(  # noqa: B008
  job_id: str | None = Query(default=None, alias="jobId"),
  runtime: JobRuntime = Depends(get_job_runtime),  # noqa: B008
) -> JobStatusResponse:
  """Return the status document of a job."""
  return job_service.get_job_status(job_id, runtime)


@router.get("/result")
async def get_mcq_job_result(  # noqa: B008
  job_id: str | None = Query(default=None, alias="jobId"),
  runtime: JobRuntime = Depends(get_job_runtime),  # noqa: B008
) -> Response:
  """Download the CSV produced by a succeeded job."""
  content, filename = job_service.get_job_result(job_id, runtime)
  return Response(content=content, media_type=CSV_MEDIA_TYPE, headers={"Content-Disposition": f'attachment; filename="{filename}"'})


@router.post("/retry-validation", response_model=JobRetryResponse)
async def retry_mcq_validation(  # noqa: B008
  payload: JobRetryRequest | None = Body(default=None),  # noqa: B008
  runtime: JobRuntime = Depends(get_job_runtime),  # noqa: B008
) -> JobRetryResponse:
  """Re-run validation and persistence from the stored snapshot."""
  return await job_service.retry_validation(payload, runtime)


@router.post("/retry-persist", response_model=JobRetryResponse)
async def retry_mcq_persistence(  # noqa: B008
  payload: JobRetryRequest | None = Body(default=None),  # noqa: B008
  runtime: JobRuntime = Depends(get_job_runtime),  # noqa: B008
) -> JobRetryResponse:
  """Re-run persistence without regenerating questions."""
  return await job_service.retry_persistence(payload, runtime)

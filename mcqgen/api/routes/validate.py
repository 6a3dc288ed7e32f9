from fastapi import APIRouter, Body, Depends

from mcqgen.api.deps import get_job_runtime
from mcqgen.api.models import ValidateMcqsRequest, ValidateMcqsResponse
from mcqgen.services import validation as validation_service
from mcqgen.services.jobs import JobRuntime

router = APIRouter()


@router.post("", response_model=ValidateMcqsResponse)
async def validate_mcqs(  # noqa: B008
  request: ValidateMcqsRequest | None = Body(default=None),  # noqa: B008
  runtime: JobRuntime = Depends(get_job_runtime),  # noqa: B008
) -> ValidateMcqsResponse:
  """Validate caller-supplied MCQs per topic without starting a job."""
  return await validation_service.validate_mcqs(request, runtime)

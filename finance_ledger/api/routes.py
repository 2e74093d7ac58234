"""FastAPI endpoints for statement uploads and health checks.

This module defines the routes for uploading a bank CSV, polling the background import job, confirming the staged
transactions into the ledger, and listing the supported bank formats. It wires together the file service, the job
runner and the upload service.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from finance_ledger.api.dependencies import get_file_service, get_settings, get_upload_service
from finance_ledger.core.errors import JobNotCompletedError, JobNotFoundError, PersistenceError, RecordNotFoundError
from finance_ledger.core.models import ConfirmRequest, ConfirmResponse, UploadJobStatus
from finance_ledger.core.utils import get_logger
from finance_ledger.services.file_service import FileService, UploadTooLargeError, save_upload_file
from finance_ledger.services.upload_service import UploadService
from finance_ledger.workers.job_runner import run_job

router = APIRouter()
logger = get_logger("finance-ledger.api")


@router.post(
    "/api/upload",
    status_code=202,
    summary="Upload a bank statement CSV and start an import job",
    description=(
        "Upload a CSV export from a supported bank. "
        "The server detects the bank format, parses the transactions and, when an LLM key is configured, "
        "suggests a category for each one in a background job. "
        "Returns a job_id to poll with the status endpoint.\n\n"
        "**Request:**\n"
        "- Content-Type: multipart/form-data\n"
        "- Form field: `file` (CSV file)\n\n"
        "**Response:**\n"
        "- 202 Accepted: `{ 'job_id': '<uuid>' }` if upload is accepted.\n"
        "- 400 Bad Request: If the file is not a CSV.\n"
        "- 413 Payload Too Large: If the file exceeds the upload limit.\n"
        "- 500 Internal Server Error: If the file could not be stored."
    ),
    response_description="Job accepted. Returns job_id.",
    responses={
        202: {
            "description": "Job accepted. Returns job_id.",
            "content": {"application/json": {"example": {"job_id": "123e4567-e89b-12d3-a456-426614174000"}}},
        },
        400: {
            "description": "Only CSV files accepted.",
            "content": {"application/json": {"example": {"detail": "Only CSV files are allowed"}}},
        },
        413: {"description": "File too large."},
        500: {"description": "Upload could not be stored."},
    },
)
async def upload_csv(
    background_tasks: BackgroundTasks,
    file: UploadFile,
    upload_service: UploadService = Depends(get_upload_service),
    file_service: FileService = Depends(get_file_service),
) -> JSONResponse:
    """Accept a CSV upload and schedule its import job."""
    logger.info(f"Received upload request: filename={file.filename}")
    if not file.filename or not file.filename.lower().endswith(".csv"):
        logger.warning(f"Rejected file (not CSV): {file.filename}")
        raise HTTPException(400, "Only CSV files are allowed")
    job = upload_service.create_job(file.filename)
    try:
        upload_path = save_upload_file(file, file_service, job.id, get_settings().max_upload_size)
    except UploadTooLargeError as exc:
        upload_service.discard(job.id)
        raise HTTPException(413, str(exc)) from exc
    except Exception as exc:
        upload_service.discard(job.id)
        logger.exception(f"Failed to store upload for job {job.id}")
        raise HTTPException(500, "Failed to store the uploaded file") from exc
    background_tasks.add_task(run_job, job.id, upload_path, upload_service, file_service)
    logger.info(f"Background job scheduled: job_id={job.id}")
    return JSONResponse({"job_id": job.id}, status_code=202)


@router.get(
    "/api/upload/banks",
    summary="List supported bank formats",
    response_description="Bank names in detection order.",
)
async def supported_banks(upload_service: UploadService = Depends(get_upload_service)) -> dict:
    """List the bank formats the importer recognizes."""
    return {"banks": upload_service.supported_banks()}


@router.get(
    "/api/upload/{job_id}/status",
    response_model=UploadJobStatus,
    summary="Get import job status",
    description=(
        "Check the status of an import job by job_id.\n\n"
        "**Response:**\n"
        "- 200 OK: Status, counts, detected bank and error if any; staged transactions once completed.\n"
        "- 404 Not Found: If the job_id does not exist (or was already confirmed)."
    ),
    responses={
        404: {
            "description": "Job not found.",
            "content": {"application/json": {"example": {"detail": "Upload job not found: <job_id>"}}},
        },
    },
)
async def get_status(job_id: str, upload_service: UploadService = Depends(get_upload_service)) -> UploadJobStatus:
    """Get the status of an import job."""
    try:
        return upload_service.job_status(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc


@router.post(
    "/api/upload/{job_id}/confirm",
    response_model=ConfirmResponse,
    summary="Confirm a completed import job",
    description=(
        "Save the staged transactions of a completed job to the ledger, optionally overriding categories.\n\n"
        "**Body:** `{ 'corrections': [{ 'transactionId': 0, 'categoryId': 3 }] }` (optional)\n\n"
        "**Response:**\n"
        "- 200 OK: `{ 'success': true, 'saved_count': n }`.\n"
        "- 404 Not Found: If the job does not exist or was already confirmed.\n"
        "- 409 Conflict: If the job is not completed.\n"
        "- 422 Unprocessable Entity: If a correction names a category that does not exist.\n"
        "- 500 Internal Server Error: If the ledger write failed; the job stays staged for retry."
    ),
    responses={
        404: {"description": "Job not found."},
        409: {"description": "Job not completed."},
        422: {"description": "Unknown category in corrections."},
        500: {"description": "Database write failed."},
    },
)
async def confirm_upload(
    job_id: str,
    body: ConfirmRequest | None = None,
    upload_service: UploadService = Depends(get_upload_service),
) -> ConfirmResponse:
    """Persist the staged transactions of a completed job."""
    corrections = body.corrections if body else None
    try:
        saved = upload_service.confirm(job_id, corrections)
    except JobNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except JobNotCompletedError as exc:
        raise HTTPException(409, str(exc)) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(422, str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(500, str(exc)) from exc
    return ConfirmResponse(saved_count=saved)


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}

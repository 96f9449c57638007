import logging
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..config import MAX_UPLOAD_BYTES, UPLOAD_DIR
from ..database import get_db
from ..services.candidate_service import add_candidate, get_candidate
from ..utils.error_handlers import (
    AppError,
    NotFoundError,
    ValidationError,
    create_error_response,
    get_error_message,
)
from ..utils.validation import sanitize_filename

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Candidates"])

ALLOWED_EXTENSIONS = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",  # sometimes used incorrectly for docx by browsers
    "application/octet-stream",  # allow when extension is trusted
}


def _format_size(num_bytes: int) -> str:
    for unit, factor in (("MB", 1024 * 1024), ("KB", 1024)):
        if num_bytes >= factor:
            return f"{num_bytes / factor:g}{unit}"
    return f"{num_bytes} bytes"


async def _read_json_object(request: Request) -> dict | None:
    try:
        body = await request.json()
    except ValueError:
        # Empty or malformed body
        return None
    if not isinstance(body, dict) or not body:
        return None
    return body


@router.post("/candidates", status_code=201)
async def create_candidate_route(request: Request, db: Session = Depends(get_db)):
    payload = await _read_json_object(request)
    if payload is None:
        return create_error_response(400, get_error_message("candidate_add_failed"))

    try:
        # Blocking session work runs off the event loop
        result = await run_in_threadpool(add_candidate, db, payload)
    except Exception as e:
        logger.exception("Unexpected error adding candidate: %s", e)
        return create_error_response(400, get_error_message("candidate_add_failed"))

    if not result.success:
        return create_error_response(400, result.message or get_error_message("candidate_add_failed"))

    return JSONResponse(
        status_code=201,
        content={
            "message": get_error_message("candidate_added"),
            "data": result.data,
        },
    )


@router.get("/candidates/{candidate_id}")
def get_candidate_route(candidate_id: int, db: Session = Depends(get_db)):
    try:
        candidate = get_candidate(db, candidate_id)
        if candidate is None:
            raise NotFoundError(get_error_message("candidate_not_found"))
    except AppError as e:
        return create_error_response(e.status_code, e.message)
    return candidate


@router.post("/upload")
async def upload_resume_file(file: UploadFile = File(...)):
    """Store a PDF/DOCX resume and return the reference the candidate form submits as `cv`."""
    try:
        original_filename = sanitize_filename(Path(file.filename or "").name)
    except ValidationError as e:
        return create_error_response(400, e.message)

    ext = Path(original_filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        return create_error_response(400, get_error_message("invalid_file_type"))
    if file.content_type and file.content_type not in ALLOWED_CONTENT_TYPES:
        return create_error_response(400, get_error_message("invalid_file_type"))

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        return create_error_response(
            413, get_error_message("file_too_large").format(limit=_format_size(MAX_UPLOAD_BYTES))
        )

    stored_filename = f"{uuid4().hex}{ext}"
    base_dir = Path(UPLOAD_DIR) / "resumes"
    try:
        base_dir.mkdir(parents=True, exist_ok=True)
        (base_dir / stored_filename).write_bytes(content)
    except OSError as e:
        logger.error("Failed to store upload %s: %s", original_filename, e)
        return create_error_response(500, get_error_message("file_processing_failed"))

    logger.info("Stored resume upload %s as %s (%d bytes)", original_filename, stored_filename, len(content))
    return {
        # Relative path under UPLOAD_DIR (portable across machines)
        "filePath": f"resumes/{stored_filename}",
        "fileType": ALLOWED_EXTENSIONS[ext],
    }

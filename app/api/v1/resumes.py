import logging

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.parsing.models import empty_document
from app.schemas.resume import ParseResumeResponse
from app.services.resume_service import ResumeUploadError, is_allowed_mime_type, parse_uploaded_resume

logger = logging.getLogger(__name__)

router = APIRouter()

_CHUNK_BYTES = 1024 * 64


def _error(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/resumes/parse", response_model=ParseResumeResponse, summary="Parse an uploaded resume")
@rate_limit()
async def resumes_parse(
    request: Request,
    file: UploadFile | None = File(default=None),
    candidate_id: str | None = Form(default=None, alias="candidateId"),
    application_id: str | None = Form(default=None, alias="applicationId"),
):
    _ = request
    if file is None:
        return _error("Resume file is required")
    if not is_allowed_mime_type(file.content_type):
        return _error("Invalid file type. Please upload PDF, DOC, DOCX, or TXT file.")

    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_bytes:
            return _error(f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)}MB.")
        chunks.append(chunk)
    content = b"".join(chunks)

    try:
        parsed = await parse_uploaded_resume(
            content,
            file.content_type,
            candidate_id=candidate_id,
            application_id=application_id,
        )
    except ResumeUploadError as exc:
        return _error(str(exc), exc.status_code)
    except Exception:
        # the client still has its form data to fall back on
        logger.exception("resume_parse_failed filename=%s", file.filename or "-")
        parsed = empty_document().to_transport(settings.resume_preview_chars)

    return ParseResumeResponse(parsed=parsed)

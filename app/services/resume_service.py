from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any

from starlette.concurrency import run_in_threadpool

from app.ai import factory
from app.core.config import settings
from app.parsing.ai_structuring import structure_with_model
from app.parsing.models import ParsedDocument
from app.parsing.parse import parse_resume
from app.storage import db

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class ResumeUploadError(ValueError):
    status_code = 400


def is_allowed_mime_type(mime_type: str | None) -> bool:
    # browsers send an empty type for some .txt uploads
    return not mime_type or mime_type.split(";")[0].strip().lower() in ALLOWED_MIME_TYPES


def is_uuid(value: str | None) -> bool:
    return bool(value and _UUID_RE.match(value.strip()))


def validate_upload(content: bytes, mime_type: str | None) -> None:
    if not is_allowed_mime_type(mime_type):
        raise ResumeUploadError("Invalid file type. Please upload PDF, DOC, DOCX, or TXT file.")
    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise ResumeUploadError(f"File too large. Maximum size is {limit_mb}MB.")


async def _structure(parsed: ParsedDocument) -> ParsedDocument:
    if parsed.is_fallback or not settings.resume_ai_parsing:
        return parsed
    client = factory.get_platform_ai_client()
    if client is None:
        return parsed
    return await structure_with_model(parsed, client, model=settings.resume_model)


def _persist(parsed: ParsedDocument, *, candidate_id: str | None, application_id: str | None) -> None:
    if parsed.is_fallback:
        return
    if application_id:
        try:
            if not db.save_resume_text(application_id, parsed.raw_text):
                logger.warning("resume_text_store_skipped application_id=%s reason=application_not_found", application_id)
        except sqlite3.Error as exc:
            logger.error("resume_text_store_failed application_id=%s error=%s", application_id, exc)
    if candidate_id and is_uuid(candidate_id):
        try:
            db.update_candidate_profile(
                candidate_id,
                full_name=parsed.name,
                phone=parsed.phone,
                location=parsed.location,
            )
        except sqlite3.Error as exc:
            logger.error("candidate_profile_update_failed candidate_id=%s error=%s", candidate_id, exc)


async def parse_uploaded_resume(
    content: bytes,
    mime_type: str | None,
    *,
    candidate_id: str | None = None,
    application_id: str | None = None,
) -> dict[str, Any]:
    """Parse an upload and return the transport form of the parsed document.

    Extraction failures come back as the empty document, not as errors.
    """
    validate_upload(content, mime_type)
    parsed = await run_in_threadpool(parse_resume, content, mime_type or "")
    parsed = await _structure(parsed)
    _persist(parsed, candidate_id=candidate_id, application_id=application_id)
    logger.info(
        "resume_upload_parsed bytes=%d fallback=%s application_id=%s",
        len(content),
        parsed.is_fallback,
        application_id or "-",
    )
    return parsed.to_transport(settings.resume_preview_chars)

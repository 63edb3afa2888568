from __future__ import annotations

import io
import logging
import re
import zipfile

from defusedxml import ElementTree as SafeET

from app.core.config.scoring import get_scoring_value
from app.normalize.normalize_resume import normalize_resume

from .models import ParsedDocument, empty_document

_module_logger = logging.getLogger(__name__)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")
_INVISIBLE_RE = re.compile(r"[\u200b-\u200d\u2060\ufeff\u00ad\ufffd]")
_LIGATURES = {
    "\ufb00": "ff",
    "\ufb01": "fi",
    "\ufb02": "fl",
    "\ufb03": "ffi",
    "\ufb04": "ffl",
    "\ufb05": "st",
    "\ufb06": "st",
}
_PDF_OPERATOR_LINE_RE = re.compile(
    r"^[ \t]*(?:\d+[ \t]+\d+[ \t]+obj|endobj|stream|endstream|xref|trailer|startxref|BT|ET|"
    r"/F\d+[ \t]+[\d.]+[ \t]+Tf|[\d. \t-]+[ \t]+(?:Td|TD|Tm|cm|re)|%%EOF)[ \t]*(?:\n|$)",
    re.MULTILINE,
)
_PRINTABLE_RUN_RE = re.compile(rb"[\x20-\x7E\t\r\n]{4,}")
_WORD_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


class ExtractionError(RuntimeError):
    pass


def clean_text(text: str) -> str:
    """Strip control bytes and extraction artifacts. Idempotent."""
    if not text:
        return ""
    value = text.replace("\r\n", "\n").replace("\r", "\n")
    value = _CONTROL_CHARS_RE.sub("", value)
    value = _INVISIBLE_RE.sub("", value)
    for ligature, replacement in _LIGATURES.items():
        value = value.replace(ligature, replacement)
    value = _PDF_OPERATOR_LINE_RE.sub("", value)
    value = re.sub(r"\n{3,}", "\n\n", value)
    return value.strip()


def _extract_pdf(content: bytes) -> tuple[str, list[str]]:
    from pypdf import PdfReader

    warnings: list[str] = []
    reader = PdfReader(io.BytesIO(content))
    text_parts: list[str] = []
    for page in reader.pages:
        page_text = (page.extract_text() or "").strip()
        if page_text:
            text_parts.append(page_text)
    if not text_parts:
        warnings.append("No extractable text found in PDF.")
    return "\n".join(text_parts), warnings


def _extract_docx_xml(content: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        xml_bytes = archive.read("word/document.xml")
    root = SafeET.fromstring(xml_bytes)
    paragraphs: list[str] = []
    for paragraph in root.iter(f"{_WORD_NS}p"):
        runs = [node.text or "" for node in paragraph.iter(f"{_WORD_NS}t")]
        line = "".join(runs).strip()
        if line:
            paragraphs.append(line)
    return "\n".join(paragraphs)


def _extract_docx(content: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        from docx import Document

        document = Document(io.BytesIO(content))
        lines = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text and cell.text.strip()]
                if cells:
                    lines.append(" | ".join(dict.fromkeys(cells)))
        text = "\n".join(lines)
    except Exception as exc:
        warnings.append(f"python-docx failed, reading document XML directly: {exc}")
        text = _extract_docx_xml(content)
    if not text.strip():
        warnings.append("No extractable text found in DOCX.")
    return text, warnings


def _extract_legacy_doc(content: bytes) -> tuple[str, list[str]]:
    if zipfile.is_zipfile(io.BytesIO(content)):
        return _extract_docx(content)
    runs = [run.decode("ascii", errors="ignore").strip() for run in _PRINTABLE_RUN_RE.findall(content)]
    text = "\n".join(run for run in runs if len(run.split()) >= 2)
    return text, ["Legacy .doc read via printable text runs; formatting is lost."]


def _extract_plain(content: bytes) -> tuple[str, list[str]]:
    return content.decode("utf-8", errors="replace"), []


def _select_strategy(mime_type: str):
    kind = (mime_type or "").lower()
    if "pdf" in kind:
        return "pdf", _extract_pdf
    if "officedocument" in kind or "docx" in kind:
        return "docx", _extract_docx
    if "msword" in kind or "word" in kind:
        return "doc", _extract_legacy_doc
    return "txt", _extract_plain


def extract_text(content: bytes, mime_type: str) -> tuple[str, list[str]]:
    """Raw text for ``content`` using the strategy chosen by ``mime_type``; raises ExtractionError."""
    source_type, strategy = _select_strategy(mime_type)
    try:
        text, warnings = strategy(content)
    except Exception as exc:
        raise ExtractionError(f"{source_type} extraction failed: {exc}") from exc
    return clean_text(text), warnings


def parse_resume(
    content: bytes,
    mime_type: str,
    *,
    logger: logging.Logger | None = None,
) -> ParsedDocument:
    """Normalize an uploaded resume. Never raises: failures return an empty document."""
    log = logger or _module_logger
    try:
        text, warnings = extract_text(content, mime_type)
    except ExtractionError as exc:
        log.warning("resume_extraction_failed mime_type=%s error=%s", mime_type or "unknown", exc)
        return empty_document(str(exc))

    min_chars = int(get_scoring_value("parsing.min_meaningful_chars", 50))
    if len(text) < min_chars:
        log.info("resume_text_too_short mime_type=%s chars=%d", mime_type or "unknown", len(text))
        return empty_document(*warnings, "Could not extract meaningful text from resume.")

    try:
        parsed = normalize_resume(text)
    except Exception:
        # heuristics are best-effort; the extracted text alone is still usable
        log.exception("resume_normalization_failed mime_type=%s", mime_type or "unknown")
        return ParsedDocument(raw_text=text, parsing_warnings=warnings)

    log.info(
        "resume_parsed mime_type=%s chars=%d skills=%d experience=%d education=%d",
        mime_type or "unknown",
        len(text),
        len(parsed.skills),
        len(parsed.experience),
        len(parsed.education),
    )
    if warnings:
        return parsed.model_copy(update={"parsing_warnings": warnings})
    return parsed

from __future__ import annotations

import logging
from typing import Any

from app.ai.types import AIClient, ChatMessage
from app.core.config.scoring import get_scoring_value
from app.core.errors import EvaluationError
from app.evaluation.coerce import as_dict, as_dict_list, as_optional_str, as_text_list
from app.evaluation.json_output import extract_json_object

from .models import EducationEntry, ExperienceEntry, ParsedDocument

_module_logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a resume parser. Extract structured information from resumes and return valid JSON only."

_SHAPE = """{
  "name": "Full Name",
  "email": "email@example.com",
  "phone": "+1234567890",
  "location": "City, Country",
  "summary": "Professional summary or objective",
  "skills": ["skill1", "skill2"],
  "experience": [{"company": "", "title": "", "location": "", "startDate": "Jan 2020", "endDate": "Present", "description": ""}],
  "education": [{"school": "", "degree": "", "field": "", "startYear": "2016", "endYear": "2020"}],
  "certifications": ["AWS Certified"],
  "languages": ["English"],
  "links": [{"type": "linkedin", "url": "https://linkedin.com/in/username"}]
}"""


def build_structuring_prompt(text: str) -> str:
    max_chars = int(get_scoring_value("parsing.llm_max_chars", 20000))
    if len(text) > max_chars:
        text = f"{text[:max_chars]}\n\n[Resume truncated due to length...]"
    return (
        "Parse this resume and extract all relevant information.\n\n"
        f"RESUME TEXT:\n{text}\n\n"
        f"Return this exact JSON structure:\n{_SHAPE}\n\n"
        "Rules:\n"
        "- Extract ALL skills mentioned (technical, soft skills, tools, frameworks, languages)\n"
        "- Include all work experience with dates\n"
        "- Find LinkedIn, GitHub and portfolio URLs\n"
        "- If a field is not found, use null\n"
        "- Return ONLY the JSON object"
    )


def _links(value: Any) -> list[str]:
    urls: list[str] = []
    if not isinstance(value, list):
        return urls
    for item in value:
        url = as_optional_str(as_dict(item).get("url")) if isinstance(item, dict) else as_optional_str(item)
        if url and url not in urls:
            urls.append(url)
    return urls


def merge_structured(parsed: ParsedDocument, data: dict[str, Any]) -> ParsedDocument:
    """Overlay model-extracted fields on the heuristic result. Invalid or empty fields keep the heuristic value."""
    update: dict[str, Any] = {}
    for key in ("name", "email", "phone", "location", "summary"):
        value = as_optional_str(data.get(key))
        if value:
            update[key] = value
    for key in ("skills", "certifications", "languages"):
        values = as_text_list(data.get(key))
        if values:
            update[key] = values
    links = _links(data.get("links"))
    if links:
        update["links"] = links

    experience = [
        ExperienceEntry(
            company=as_optional_str(item.get("company")),
            title=as_optional_str(item.get("title")),
            location=as_optional_str(item.get("location")),
            start_date=as_optional_str(item.get("startDate")),
            end_date=as_optional_str(item.get("endDate")),
            description=as_optional_str(item.get("description")),
        )
        for item in as_dict_list(data.get("experience"))
    ]
    if experience:
        update["experience"] = experience
    education = [
        EducationEntry(
            school=as_optional_str(item.get("school")),
            degree=as_optional_str(item.get("degree")),
            field=as_optional_str(item.get("field")),
            start_year=as_optional_str(item.get("startYear")),
            end_year=as_optional_str(item.get("endYear")),
        )
        for item in as_dict_list(data.get("education"))
    ]
    if education:
        update["education"] = education
    return parsed.model_copy(update=update) if update else parsed


async def structure_with_model(
    parsed: ParsedDocument,
    client: AIClient,
    *,
    model: str | None = None,
    logger: logging.Logger | None = None,
) -> ParsedDocument:
    """Refine a heuristically parsed resume with the model. Never raises."""
    log = logger or _module_logger
    if parsed.is_fallback:
        return parsed
    messages = [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=build_structuring_prompt(parsed.raw_text)),
    ]
    try:
        raw = await client.complete(messages, model=model, temperature=0.1, max_tokens=3000, json_mode=True)
        data = extract_json_object(raw)
        merged = merge_structured(parsed, data)
    except EvaluationError as exc:
        log.warning("resume_structuring_failed error=%s message=%s", exc.code, exc.message)
        return parsed
    except Exception:
        log.exception("resume_structuring_failed error=unexpected")
        return parsed
    log.info("resume_structured skills=%d experience=%d", len(merged.skills), len(merged.experience))
    return merged

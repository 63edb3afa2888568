from __future__ import annotations

import re

from app.parsing.models import EducationEntry, ExperienceEntry, ParsedDocument

from .utils import (
    DATE_RANGE_RE,
    EMAIL_RE,
    PHONE_RE,
    URL_RE,
    YEAR_RE,
    dedupe_keep_order,
    enumerate_lines,
    is_bullet_like,
    is_contact_or_url,
    is_section_heading,
    normalize_line,
    section_key,
    split_list_items,
    strip_bullet_prefix,
)

COMMON_SKILLS: tuple[str, ...] = (
    "JavaScript", "TypeScript", "Python", "Java", "C++", "C#", "Ruby", "PHP", "Go", "Rust",
    "React", "Angular", "Vue", "Next.js", "Node.js", "Express", "Django", "Flask", "FastAPI", "Spring",
    "HTML", "CSS", "SASS", "Tailwind", "Bootstrap",
    "SQL", "PostgreSQL", "MySQL", "MongoDB", "Redis", "DynamoDB",
    "AWS", "Azure", "GCP", "Docker", "Kubernetes", "Terraform", "CI/CD",
    "Git", "GitHub", "GitLab", "Agile", "Scrum",
    "REST API", "GraphQL", "Microservices",
    "Machine Learning", "AI", "Data Science", "TensorFlow", "PyTorch", "Pandas",
    "UiPath", "Automation Anywhere", "Blue Prism", "Power Automate",
)

KNOWN_LANGUAGES: tuple[str, ...] = (
    "English", "Hindi", "Spanish", "French", "German", "Mandarin", "Japanese",
    "Arabic", "Portuguese", "Italian", "Russian", "Bengali", "Tamil", "Telugu", "Marathi", "Urdu",
)

_DEGREE_RE = re.compile(
    r"\b(ph\.?d|doctorate|master(?:'?s)?|mba|m\.?tech|m\.?sc|m\.?s\.?|mca|bachelor(?:'?s)?|b\.?tech|b\.?e\.?|"
    r"b\.?sc|b\.?s\.?|bca|b\.?a\.?|diploma|associate(?:'?s)?)\b",
    re.IGNORECASE,
)
_SCHOOL_RE = re.compile(r"\b(university|college|institute|school|academy|polytechnic)\b", re.IGNORECASE)
_FIELD_RE = re.compile(r"\bin\s+([A-Za-z][A-Za-z &/.-]{2,60})", re.IGNORECASE)
_LOCATION_RE = re.compile(r"^[A-Z][A-Za-z .'-]+,\s*[A-Z][A-Za-z .'-]+(?:,\s*[A-Z][A-Za-z .'-]+)?$")
_NAME_TOKEN_RE = re.compile(r"^[A-Z][A-Za-z'.-]*$")
_HEADER_SPLIT_RE = re.compile(r"\s+(?:at|@|\||–|—|-)\s+|,\s+")
_MAX_SUMMARY_CHARS = 800


def _skill_pattern(skill: str) -> re.Pattern[str]:
    flags = 0 if len(skill) <= 2 else re.IGNORECASE
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(skill)}(?![A-Za-z0-9+#])", flags)


_SKILL_PATTERNS = [(skill, _skill_pattern(skill)) for skill in COMMON_SKILLS]
_LANGUAGE_PATTERNS = [(language, _skill_pattern(language)) for language in KNOWN_LANGUAGES]


def extract_basic_skills(text: str) -> list[str]:
    """Dictionary skills in order of first appearance in ``text``."""
    hits: list[tuple[int, str]] = []
    for skill, pattern in _SKILL_PATTERNS:
        match = pattern.search(text)
        if match:
            hits.append((match.start(), skill))
    hits.sort(key=lambda item: item[0])
    return dedupe_keep_order([skill for _, skill in hits])


def _split_sections(text: str) -> dict[str, list[str]]:
    sections: dict[str, list[str]] = {"header": []}
    current = "header"
    for _, raw_line in enumerate_lines(text):
        stripped = normalize_line(raw_line)
        if not stripped:
            continue
        key = section_key(stripped)
        if key is not None:
            current = key
            sections.setdefault(current, [])
            continue
        if current != "header" and is_section_heading(stripped):
            current = "other"
            sections.setdefault(current, [])
            continue
        sections.setdefault(current, []).append(raw_line.rstrip())
    return sections


def _first_match(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(0).strip() if match else None


def _extract_phone(text: str) -> str | None:
    for match in PHONE_RE.finditer(text):
        candidate = match.group(0).strip()
        digits = re.sub(r"\D", "", candidate)
        if 10 <= len(digits) <= 15 and not DATE_RANGE_RE.search(candidate):
            return candidate
    return None


def _extract_name(header_lines: list[str]) -> str | None:
    for raw_line in header_lines[:5]:
        line = normalize_line(raw_line)
        if not line or is_contact_or_url(line) or _LOCATION_RE.match(line):
            continue
        tokens = line.split()
        if 2 <= len(tokens) <= 4 and all(_NAME_TOKEN_RE.match(token) for token in tokens):
            return line
    return None


def _extract_location(header_lines: list[str]) -> str | None:
    for raw_line in header_lines[:8]:
        for part in re.split(r"\s*[|•·]\s*", normalize_line(raw_line)):
            if part and not is_contact_or_url(part) and _LOCATION_RE.match(part):
                return part
    return None


def _split_role_header(header: str) -> tuple[str | None, str | None]:
    parts = [part.strip() for part in _HEADER_SPLIT_RE.split(header) if part and part.strip()]
    if not parts:
        return None, None
    if len(parts) == 1:
        return parts[0], None
    return parts[0], parts[1]


def _parse_experience(lines: list[str]) -> list[ExperienceEntry]:
    entries: list[dict[str, str | None]] = []
    current: dict[str, str | None] | None = None
    has_dates = any(DATE_RANGE_RE.search(line) for line in lines)

    for raw_line in lines:
        line = normalize_line(raw_line)
        bullet = is_bullet_like(raw_line)
        date_match = DATE_RANGE_RE.search(line)
        starts_entry = bool(date_match) if has_dates else not bullet

        if starts_entry and not bullet:
            header = line
            start_date = end_date = None
            if date_match:
                start_date, end_date = date_match.group(1), date_match.group(2)
                header = normalize_line(line[: date_match.start()] + line[date_match.end():]).strip(" |,-–—()")
            if not header and current is not None and not current.get("start_date"):
                # dates on their own line below the role header
                current["start_date"], current["end_date"] = start_date, end_date
                continue
            title, company = _split_role_header(header)
            current = {
                "title": title,
                "company": company,
                "start_date": start_date,
                "end_date": end_date,
                "description": None,
            }
            entries.append(current)
            continue

        if current is None:
            title, company = _split_role_header(line)
            current = {"title": title, "company": company, "start_date": None, "end_date": None, "description": None}
            entries.append(current)
            continue

        text = strip_bullet_prefix(line)
        current["description"] = f"{current['description']} {text}" if current["description"] else text

    return [ExperienceEntry(**entry) for entry in entries]


def _parse_education(lines: list[str]) -> list[EducationEntry]:
    entries: list[dict[str, str | None]] = []
    current: dict[str, str | None] | None = None

    for raw_line in lines:
        line = strip_bullet_prefix(normalize_line(raw_line))
        if not line:
            continue
        degree_match = _DEGREE_RE.search(line)
        school_match = _SCHOOL_RE.search(line)
        years = YEAR_RE.findall(line)

        starts_new = current is None or (degree_match and current.get("degree")) or (
            school_match and current.get("school") and not degree_match
        )
        if starts_new:
            current = {"school": None, "degree": None, "field": None, "start_year": None, "end_year": None}
            entries.append(current)

        segments = [segment.strip() for segment in re.split(r"\s*[|,]\s*|\s+[–—-]\s+", line) if segment.strip()]
        if degree_match and not current.get("degree"):
            degree_segment = next((s for s in segments if _DEGREE_RE.search(s)), line)
            current["degree"] = YEAR_RE.sub("", degree_segment).strip(" -–—()")
            field_match = _FIELD_RE.search(degree_segment)
            if field_match:
                current["field"] = field_match.group(1).strip(" .")
        if school_match and not current.get("school"):
            current["school"] = next((s for s in segments if _SCHOOL_RE.search(s)), line)
        if years:
            if len(years) >= 2:
                current["start_year"], current["end_year"] = years[0], years[-1]
            elif not current.get("end_year"):
                current["end_year"] = years[0]

    return [EducationEntry(**entry) for entry in entries if any(entry.values())]


def _section_items(lines: list[str]) -> list[str]:
    items: list[str] = []
    for raw_line in lines:
        items.extend(split_list_items(normalize_line(raw_line)))
    return dedupe_keep_order(items)


def _extract_languages(text: str, section_lines: list[str]) -> list[str]:
    if section_lines:
        return [
            re.sub(r"\s*[(:-].*$", "", item).strip() or item
            for item in _section_items(section_lines)
        ]
    return [language for language, pattern in _LANGUAGE_PATTERNS if pattern.search(text)]


def normalize_resume(text: str) -> ParsedDocument:
    """Heuristic structured fields for already-cleaned resume text."""
    sections = _split_sections(text)
    header_lines = sections.get("header", [])

    skill_section_items = [
        item for item in _section_items(sections.get("skills", [])) if len(item) <= 40 and not item.endswith(":")
    ]
    skills = dedupe_keep_order(skill_section_items + extract_basic_skills(text))

    summary_lines = [strip_bullet_prefix(normalize_line(line)) for line in sections.get("summary", [])]
    summary = " ".join(line for line in summary_lines if line)[:_MAX_SUMMARY_CHARS] or None

    return ParsedDocument(
        raw_text=text,
        name=_extract_name(header_lines),
        email=_first_match(EMAIL_RE, text),
        phone=_extract_phone(text),
        location=_extract_location(header_lines),
        summary=summary,
        skills=skills,
        experience=_parse_experience(sections.get("experience", [])),
        education=_parse_education(sections.get("education", [])),
        certifications=_section_items(sections.get("certifications", [])),
        languages=_extract_languages(text, sections.get("languages", [])),
        links=dedupe_keep_order([match.group(0).rstrip(".") for match in URL_RE.finditer(text)]),
    )

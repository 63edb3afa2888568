from __future__ import annotations

import re

_BULLET_CHARS = "•◦▪▫●○■□◆◇▶►-–—*·"
_BULLET_PATTERN = re.compile(rf"^\s*(?:[{re.escape(_BULLET_CHARS)}]|(?:\d+[\.\)]))\s+")
EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_RE = re.compile(r"(?<![\w])\+?\d[\d\s().-]{7,}\d(?![\w])")
URL_RE = re.compile(
    r"(?:https?://[^\s,;|<>()]+|www\.[^\s,;|<>()]+|(?:linkedin|github)\.com/[^\s,;|<>()]+)",
    re.IGNORECASE,
)
YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
DATE_RANGE_RE = re.compile(
    rf"((?:{_MONTH}\s+)?(?:\d{{1,2}}/)?(?:19|20)\d{{2}})\s*(?:-|–|—|to)\s*"
    rf"((?:{_MONTH}\s+)?(?:\d{{1,2}}/)?(?:19|20)\d{{2}}|present|current|now|till date)",
    re.IGNORECASE,
)

SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "summary": ("summary", "objective", "profile", "professional summary", "career objective", "about me"),
    "experience": (
        "experience",
        "work experience",
        "professional experience",
        "employment history",
        "work history",
        "employment",
    ),
    "skills": ("skills", "technical skills", "core skills", "key skills", "core competencies", "technologies"),
    "education": ("education", "academic background", "qualifications", "academic qualifications"),
    "certifications": ("certifications", "certificates", "licenses", "licenses & certifications", "certification"),
    "languages": ("languages", "language skills", "language"),
    "projects": ("projects", "personal projects", "key projects"),
}
_SECTION_LOOKUP = {alias: key for key, aliases in SECTION_ALIASES.items() for alias in aliases}


def enumerate_lines(text: str) -> list[tuple[int, str]]:
    return [(index + 1, line) for index, line in enumerate(text.splitlines())]


def normalize_line(line: str) -> str:
    return re.sub(r"\s+", " ", line).strip()


def is_bullet_like(line: str) -> bool:
    return bool(_BULLET_PATTERN.match(line))


def strip_bullet_prefix(line: str) -> str:
    return _BULLET_PATTERN.sub("", line).strip()


def contains_any(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def section_key(line: str) -> str | None:
    """Canonical section name for a heading line, or None when the line is not a known heading."""
    lowered = normalize_line(line).lower().rstrip(":").strip()
    return _SECTION_LOOKUP.get(lowered)


def is_section_heading(line: str) -> bool:
    stripped = normalize_line(line)
    if not stripped:
        return False
    if section_key(stripped) is not None:
        return True
    return bool(stripped.isupper() and len(stripped.split()) <= 5 and len(stripped) <= 36)


def is_contact_or_url(line: str) -> bool:
    stripped = normalize_line(line)
    if not stripped:
        return False
    return bool(EMAIL_RE.search(stripped) or PHONE_RE.search(stripped) or URL_RE.search(stripped))


def split_list_items(line: str) -> list[str]:
    parts = re.split(r"\s*(?:,|;|\||•|·)\s*", strip_bullet_prefix(line))
    return [part.strip(" .") for part in parts if part and part.strip(" .")]


def dedupe_keep_order(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        key = value.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        ordered.append(value.strip())
    return ordered

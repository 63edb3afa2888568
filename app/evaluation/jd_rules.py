"""Deterministic resume-vs-job-description rules.

Eligibility gates, rule-based dimension scores, risk signals and tenure buckets.
Everything here is a pure function of the two texts and the extracted profile.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache

from app.schemas.resume import Eligibility, ExtractedCertification, ExtractedEducation, ExtractedProfile, MatchLevel

KNOWN_PLATFORMS: tuple[str, ...] = (
    # RPA
    "uipath", "automation anywhere", "blue prism", "power automate", "workfusion", "pega", "nice", "kofax",
    # backend
    "java", "python", "node.js", "nodejs", "spring", "django", "flask", "express", ".net", "c#", "golang", "rust",
    # frontend
    "react", "angular", "vue", "svelte", "next.js", "nextjs", "typescript", "javascript",
    # data
    "spark", "hadoop", "kafka", "airflow", "snowflake", "databricks", "pandas", "tensorflow", "pytorch",
    # devops
    "kubernetes", "docker", "aws", "azure", "gcp", "terraform", "jenkins", "gitlab", "github actions",
    # databases
    "postgresql", "mysql", "mongodb", "redis", "elasticsearch", "sql server", "oracle",
    # other
    "salesforce", "sap", "servicenow", "jira", "confluence",
)

EQUIVALENT_TOOL_GROUPS: tuple[tuple[str, ...], ...] = (
    ("uipath", "automation anywhere", "blue prism", "power automate", "workfusion", "pega", "nice", "kofax", "a360", "a2019"),
    ("spring", "django", "flask", "express", "fastapi", "rails"),
    ("react", "angular", "vue", "svelte"),
    ("aws", "azure", "gcp", "google cloud"),
    ("kubernetes", "docker swarm", "openshift", "ecs"),
    ("jenkins", "gitlab", "github actions", "circleci", "azure devops"),
    ("postgresql", "mysql", "sql server", "oracle", "mariadb"),
    ("mongodb", "dynamodb", "couchdb", "cassandra"),
)

COMMON_LANGUAGES: tuple[str, ...] = ("english", "hindi", "spanish", "french", "german", "mandarin", "japanese")

INDIA_CITIES: tuple[str, ...] = (
    "mumbai", "delhi", "bangalore", "bengaluru", "hyderabad", "chennai", "pune",
    "kolkata", "ahmedabad", "noida", "gurgaon", "gurugram",
)

_REQUIREMENT_WORDS_RE = re.compile(r"required|mandatory|must|essential|critical", re.IGNORECASE)
_CRITICAL_PATTERNS = (
    re.compile(r"(?:must\s+have|required|mandatory|essential|critical)[:\s]+[^.\n]*?\b([a-z][a-z0-9.#+\-]+)\b", re.IGNORECASE),
    re.compile(r"(?:experience\s+(?:with|in)|proficiency\s+in|expertise\s+in)[:\s]*([a-z][a-z0-9.#+\-]+)", re.IGNORECASE),
    re.compile(r"\b([a-z][a-z0-9.#+\-]+)\s+(?:is\s+)?(?:required|mandatory|must)", re.IGNORECASE),
)
_CRITICAL_SECTION_PATTERNS = (
    re.compile(
        r"(?:required\s+skills?|must\s+have|mandatory|essential\s+skills?|key\s+requirements?|responsibilities)[:\s]*"
        r"(.*?)(?=\n\n|nice\s+to\s+have|preferred|good\s+to\s+have|\Z)",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(r"(?:critical|necessary|minimum\s+requirements?)[:\s]*(.*?)(?=\n\n|nice|preferred|\Z)", re.IGNORECASE | re.DOTALL),
)
_IMPORTANT_SECTION_PATTERNS = (
    re.compile(r"(?:nice\s+to\s+have|preferred|good\s+to\s+have|bonus|desired|optional)[:\s]*(.*?)(?=\n\n|\Z)", re.IGNORECASE | re.DOTALL),
    re.compile(r"(?:additional\s+skills?|plus\s+points?)[:\s]*(.*?)(?=\n\n|\Z)", re.IGNORECASE | re.DOTALL),
)
_SKILL_TOKEN_RE = re.compile(r"\b([A-Za-z][A-Za-z0-9.#+\-]{1,20})\b")
_SKILL_STOPWORDS = frozenset(
    {
        "the", "and", "or", "with", "for", "to", "in", "of", "a", "an", "is", "are",
        "have", "has", "will", "be", "been", "being", "experience", "years", "year",
        "knowledge", "understanding", "skills", "skill", "ability", "strong", "good",
        "excellent", "proficient", "working", "hands-on", "minimum", "required",
        "preferred", "must", "should", "can", "may", "etc", "including", "such",
        "we", "you", "our", "your", "on", "at", "as", "by", "from", "this", "that", "who",
        "plus", "using", "use", "within", "across", "team", "work",
    }
)
_LANGUAGE_PATTERNS = (
    re.compile(r"(?:must|should|required|fluent|proficient)\s+(?:in|with)?\s*(english|hindi|spanish|french|german|mandarin|japanese)", re.IGNORECASE),
    re.compile(r"(english|hindi|spanish|french|german|mandarin|japanese)\s+(?:required|mandatory|must)", re.IGNORECASE),
    re.compile(r"languages?[:\s]+(english|hindi|spanish|french|german|mandarin|japanese)", re.IGNORECASE),
)
_EXPERIENCE_PATTERNS = (
    re.compile(r"(\d+)\s*[-–to]+\s*(\d+)\s*\+?\s*years?", re.IGNORECASE),
    re.compile(r"(\d+)\s*\+\s*years?", re.IGNORECASE),
    re.compile(r"(?:minimum|min|at least)\s*(\d+)\s*years?", re.IGNORECASE),
    re.compile(r"(\d+)\s*years?\s*(?:of)?\s*experience", re.IGNORECASE),
)
_JOB_LOCATION_PATTERNS = (
    re.compile(r"location[:\s]+([^,.\n]+)", re.IGNORECASE),
    re.compile(r"based\s+(?:in|at)\s+([^,.\n]+)", re.IGNORECASE),
    re.compile(r"(mumbai|delhi|bangalore|bengaluru|hyderabad|chennai|pune|kolkata|ahmedabad|noida|gurgaon|gurugram)", re.IGNORECASE),
)
PRODUCTION_KEYWORDS: tuple[str, ...] = (
    "production", "prod environment", "live system", "deployment",
    "operations", "support", "maintenance", "monitoring",
    "post-deployment", "deployment support", "production support",
    "live environment", "production environment", "on-call",
)
PRODUCTION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"prod(?:uction)?\s+(?:deployment|support|environment)", re.IGNORECASE), "Production deployment/support"),
    (re.compile(r"deployed\s+(?:to|in)\s+prod", re.IGNORECASE), "Deployed to production"),
    (re.compile(r"live\s+(?:environment|system|server)", re.IGNORECASE), "Live environment experience"),
    (re.compile(r"post[\-\s]deployment", re.IGNORECASE), "Post-deployment experience"),
    (re.compile(r"on[\-\s]call", re.IGNORECASE), "On-call support"),
    (re.compile(r"production\s+(?:system|server|app|application)", re.IGNORECASE), "Production system experience"),
    (re.compile(r"(?:24x7|24/7)\s+support", re.IGNORECASE), "24x7 support"),
    (re.compile(r"incident\s+(?:management|response)", re.IGNORECASE), "Incident management"),
    (re.compile(r"monitoring\s+(?:tools?|systems?)", re.IGNORECASE), "Monitoring experience"),
)
CERTIFICATION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"uipath\s+certif", re.IGNORECASE), "UiPath Certified"),
    (re.compile(r"automation anywhere\s+certif", re.IGNORECASE), "AA Certified"),
    (re.compile(r"blue prism\s+certif", re.IGNORECASE), "Blue Prism Certified"),
    (re.compile(r"aws\s+certif", re.IGNORECASE), "AWS Certified"),
    (re.compile(r"azure\s+certif", re.IGNORECASE), "Azure Certified"),
    (re.compile(r"gcp\s+certif|google\s+cloud\s+certif", re.IGNORECASE), "GCP Certified"),
    (re.compile(r"kubernetes\s+certif|\bcka\b|\bckad\b", re.IGNORECASE), "Kubernetes Certified"),
    (re.compile(r"docker\s+certif", re.IGNORECASE), "Docker Certified"),
    (re.compile(r"pmp\s+certif|project\s+management\s+professional", re.IGNORECASE), "PMP Certified"),
    (re.compile(r"scrum\s+master|csm\s+certif", re.IGNORECASE), "Scrum Master Certified"),
    (re.compile(r"cissp", re.IGNORECASE), "CISSP Certified"),
    (re.compile(r"ceh\s+certif|certified\s+ethical\s+hacker", re.IGNORECASE), "CEH Certified"),
)
# "nice" is also a platform name; the JD phrase is not a mention of it.
_TERM_EXCLUSIONS = {"nice": r"\s+to\s+have"}
_TECH_FIELDS = ("computer", "software", "it", "information technology", "electronics", "engineering")
_REMOTE_MARKERS = ("remote", "work from home", "wfh", "hybrid")


@dataclass(frozen=True)
class DomainFit:
    passed: bool
    critical_platforms: list[str]
    found_platforms: list[str]
    reason: str | None = None


@dataclass(frozen=True)
class MustHaveSkills:
    critical: list[str] = field(default_factory=list)
    important: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MustHaveCheck:
    passed: bool
    missing_critical: list[str]
    missing_important: list[str]


@dataclass(frozen=True)
class ExperienceRequirement:
    min_years: int
    max_years: int | None
    raw: str


@dataclass(frozen=True)
class RuleScore:
    score: int
    match_level: MatchLevel = "Within"
    detail: str = ""


def _append_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


@lru_cache(maxsize=512)
def _term_pattern(term: str) -> re.Pattern[str]:
    exclusion = _TERM_EXCLUSIONS.get(term)
    tail = rf"(?![A-Za-z0-9+#])(?!{exclusion})" if exclusion else r"(?![A-Za-z0-9+#])"
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(term)}{tail}", re.IGNORECASE)


def find_term(text: str, term: str) -> re.Match[str] | None:
    """Whole-word match, so ``java`` does not hit ``javascript``."""
    return _term_pattern(term.lower()).search(text)


def mentions(text: str, term: str) -> bool:
    return find_term(text, term) is not None


def extract_critical_platforms(jd: str, *, limit: int = 5) -> list[str]:
    """Known platforms the job description marks as required, in detection order."""
    jd_lower = jd.lower()
    platforms: list[str] = []
    for pattern in _CRITICAL_PATTERNS:
        for match in pattern.finditer(jd):
            candidate = (match.group(1) or "").lower().strip()
            if len(candidate) > 1 and candidate in KNOWN_PLATFORMS:
                _append_unique(platforms, candidate)

    for platform in KNOWN_PLATFORMS:
        match = find_term(jd_lower, platform)
        if match is None:
            continue
        context = jd_lower[max(0, match.start() - 50) : match.end() + 50]
        if _REQUIREMENT_WORDS_RE.search(context):
            _append_unique(platforms, platform)
    return platforms[:limit]


def get_equivalent_tools(platform: str) -> tuple[str, ...]:
    lowered = platform.lower()
    for group in EQUIVALENT_TOOL_GROUPS:
        if any(lowered in tool or tool in lowered for tool in group):
            return group
    return (lowered,)


def check_domain_fit(resume_text: str, jd: str) -> DomainFit:
    critical = extract_critical_platforms(jd)
    text_lower = resume_text.lower()
    jd_lower = jd.lower()

    found = [platform for platform in critical if mentions(text_lower, platform)]
    if found or not critical:
        return DomainFit(passed=True, critical_platforms=critical, found_platforms=found)

    for platform in critical:
        equivalents = get_equivalent_tools(platform)
        jd_mentions_group = any(mentions(jd_lower, tool) for tool in equivalents)
        for tool in equivalents:
            if jd_mentions_group and mentions(text_lower, tool):
                return DomainFit(passed=True, critical_platforms=critical, found_platforms=[tool])

    reason = f"Domain mismatch: JD requires {'/'.join(critical[:3])} but resume shows none of these"
    return DomainFit(passed=False, critical_platforms=critical, found_platforms=[], reason=reason)


def _skill_tokens(text: str) -> list[str]:
    tokens: list[str] = []
    for match in _SKILL_TOKEN_RE.finditer(text):
        word = match.group(1).lower()
        if len(word) > 1 and word not in _SKILL_STOPWORDS:
            _append_unique(tokens, word)
    return tokens


def extract_must_have_skills(jd: str) -> MustHaveSkills:
    critical: list[str] = list(extract_critical_platforms(jd))
    important: list[str] = []

    for pattern in _CRITICAL_SECTION_PATTERNS:
        for match in pattern.finditer(jd):
            for skill in _skill_tokens(match.group(1) or ""):
                if skill not in critical and skill not in important:
                    critical.append(skill)

    for pattern in _IMPORTANT_SECTION_PATTERNS:
        for match in pattern.finditer(jd):
            for skill in _skill_tokens(match.group(1) or ""):
                if skill not in critical and skill not in important:
                    important.append(skill)

    return MustHaveSkills(critical=critical[:5], important=important[:10])


def check_must_have_skills(resume_text: str, skills: MustHaveSkills) -> MustHaveCheck:
    text_lower = resume_text.lower()
    missing_critical: list[str] = []
    for skill in skills.critical:
        if mentions(text_lower, skill):
            continue
        if not any(mentions(text_lower, tool) for tool in get_equivalent_tools(skill)):
            missing_critical.append(skill)
    missing_important = [skill for skill in skills.important if not mentions(text_lower, skill)]
    return MustHaveCheck(
        passed=not missing_critical,
        missing_critical=missing_critical,
        missing_important=missing_important,
    )


def extract_required_language(jd: str) -> str | None:
    for pattern in _LANGUAGE_PATTERNS:
        match = pattern.search(jd)
        if match:
            return match.group(1).lower()
    if "english" in jd.lower():
        return "english"
    return None


def extract_experience_requirement(jd: str) -> ExperienceRequirement | None:
    for pattern in _EXPERIENCE_PATTERNS:
        match = pattern.search(jd)
        if not match:
            continue
        groups = match.groups()
        max_years = int(groups[1]) if len(groups) > 1 and groups[1] else None
        return ExperienceRequirement(min_years=int(groups[0]), max_years=max_years, raw=match.group(0))
    return None


def run_eligibility_gates(
    resume_text: str,
    jd: str,
    years_actual: float | None,
    *,
    buffer_years: float = 0.5,
) -> Eligibility:
    fail_reasons: list[str] = []

    domain = check_domain_fit(resume_text, jd)
    if not domain.passed and domain.reason:
        fail_reasons.append(domain.reason)

    must_have = check_must_have_skills(resume_text, extract_must_have_skills(jd))
    if not must_have.passed:
        fail_reasons.append(f"Missing critical skills: {', '.join(must_have.missing_critical)}")

    experience_fit = "PASS"
    requirement = extract_experience_requirement(jd)
    if requirement and years_actual is not None and years_actual < requirement.min_years - buffer_years:
        experience_fit = "FAIL"
        fail_reasons.append(
            f"Experience below requirement: {years_actual:g} years vs {requirement.raw} required "
            f"(min {requirement.min_years - buffer_years:g} allowed)"
        )

    language_fit = "PASS"
    language = extract_required_language(jd)
    if language and language not in resume_text.lower():
        language_fit = "FAIL"
        fail_reasons.append(f"Required language not found: {language}")

    return Eligibility(
        domain_fit="PASS" if domain.passed else "FAIL",
        must_have_fit="PASS" if must_have.passed else "FAIL",
        experience_fit=experience_fit,
        language_fit=language_fit,
        fail_reasons=fail_reasons,
        missing_must_have=must_have.missing_critical + must_have.missing_important,
    )


def experience_score(years_actual: float | None, jd: str, *, buffer_years: float = 0.5) -> RuleScore:
    requirement = extract_experience_requirement(jd)
    if requirement is None:
        return RuleScore(score=70, match_level="Within", detail="Not specified")
    if years_actual is None:
        return RuleScore(score=50, match_level="Within", detail=requirement.raw)

    low, high = requirement.min_years, requirement.max_years
    if years_actual < low - buffer_years:
        ratio = years_actual / low if low else 0.0
        return RuleScore(score=max(20, int(ratio * 60 + 0.5)), match_level="Below", detail=requirement.raw)
    if high is not None and years_actual > high + 2:
        return RuleScore(score=75, match_level="Above", detail=requirement.raw)
    if years_actual >= low and (high is None or years_actual <= high):
        return RuleScore(score=95, match_level="Within", detail=requirement.raw)
    return RuleScore(score=85, match_level="Above", detail=requirement.raw)


def extract_job_location(jd: str) -> str | None:
    for pattern in _JOB_LOCATION_PATTERNS:
        match = pattern.search(jd)
        if match:
            return match.group(1).strip()
    return None


def is_remote_possible(jd: str) -> bool:
    lowered = jd.lower()
    return any(marker in lowered for marker in _REMOTE_MARKERS)


def location_score(candidate_location: str | None, job_location: str | None, jd: str) -> RuleScore:
    if is_remote_possible(jd):
        return RuleScore(score=90, detail="remote")
    if not candidate_location or not job_location:
        return RuleScore(score=60, detail="unknown")
    candidate, job = candidate_location.lower(), job_location.lower()
    if candidate in job or job in candidate:
        return RuleScore(score=100, detail="same city")
    if any(city in candidate for city in INDIA_CITIES) and any(city in job for city in INDIA_CITIES):
        return RuleScore(score=70, detail="same country")
    return RuleScore(score=40, detail="different location")


def education_score(profile: ExtractedProfile) -> int:
    score = 50
    if profile.education:
        degree = (profile.education[0].degree or "").lower()
        if any(marker in degree for marker in ("master", "mba", "m.tech", "mca")):
            score += 30
        elif any(marker in degree for marker in ("bachelor", "b.tech", "bca", "b.e")):
            score += 20
        elif "diploma" in degree:
            score += 10
    issued = sum(1 for cert in profile.certifications if cert.status == "issued")
    score += min(issued * 5, 20)
    return min(score, 100)


def field_match(education: list[ExtractedEducation], jd: str) -> bool:
    jd_lower = jd.lower()
    for entry in education:
        field_name = (entry.field or "").lower()
        if any(item in field_name or item in jd_lower for item in _TECH_FIELDS):
            return True
    return False


def missing_certifications(certifications: list[ExtractedCertification], jd: str) -> list[str]:
    missing: list[str] = []
    for pattern, name in CERTIFICATION_PATTERNS:
        if not pattern.search(jd):
            continue
        prefix = name.lower().split(" ")[0]
        if not any(prefix in cert.name.lower() for cert in certifications):
            missing.append(name)
    return missing


def is_production_role(jd: str) -> bool:
    lowered = jd.lower()
    return any(keyword in lowered for keyword in PRODUCTION_KEYWORDS)


def production_evidence(resume_text: str) -> list[str]:
    return [label for pattern, label in PRODUCTION_PATTERNS if pattern.search(resume_text)]


def job_hopping_risk(average_tenure_months: float | None, *, high_below: int = 12, medium_below: int = 24) -> str:
    if average_tenure_months is None:
        return "Low"
    if average_tenure_months < high_below:
        return "High"
    if average_tenure_months < medium_below:
        return "Medium"
    return "Low"

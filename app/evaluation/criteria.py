from __future__ import annotations

from dataclasses import dataclass

GENERAL_CRITERION = "General"
MAX_CRITERIA_SELECTION = 5
DEFAULT_FOCUS = "general relevance and completeness"


@dataclass(frozen=True)
class Criterion:
    id: str
    name: str
    description: str


STANDARD_CRITERIA: tuple[Criterion, ...] = (
    Criterion("technical_skills", "Technical Skills", "Assesses technical knowledge, tools, frameworks, and domain expertise"),
    Criterion("problem_solving", "Problem Solving", "Evaluates analytical thinking, debugging, and solution design abilities"),
    Criterion("communication", "Communication", "Measures clarity, articulation, and ability to explain complex concepts"),
    Criterion("experience", "Experience", "Validates relevant work history, projects, and professional background"),
    Criterion("culture_fit", "Culture Fit", "Assesses alignment with company values, motivation, and career goals"),
    Criterion("teamwork", "Teamwork / Collaboration", "Evaluates ability to work with others, share knowledge, and collaborate"),
    Criterion("leadership", "Leadership", "Measures ability to guide, mentor, and influence others"),
    Criterion("adaptability", "Adaptability / Learning", "Assesses flexibility, willingness to learn, and handling change"),
    Criterion("work_ethic", "Work Ethic / Reliability", "Evaluates dependability, commitment, and professional responsibility"),
)

_TECHNICAL = "technical accuracy, depth of knowledge, specific tools/technologies mentioned, practical experience"
_CULTURE = "alignment with company values, motivation, career goals, enthusiasm for the role"
_TEAM = "collaboration examples, teamwork experience, interpersonal skills, conflict resolution"
_ADAPT = "flexibility, learning new skills, handling change, resilience"

EVALUATION_FOCUS: dict[str, str] = {
    "technical": _TECHNICAL,
    "technical skills": _TECHNICAL,
    "communication": "clarity of expression, logical structure, articulation, ability to explain concepts clearly",
    "problem solving": "analytical approach, step-by-step reasoning, creative solutions, handling of challenges",
    "cultural fit": _CULTURE,
    "culture fit": _CULTURE,
    "team player": _TEAM,
    "teamwork": _TEAM,
    "teamwork / collaboration": _TEAM,
    "leadership": "leadership examples, decision-making, mentoring experience, taking initiative",
    "experience": "relevant work history, specific project examples, domain expertise",
    "behavioral": "past behavior examples, situational responses, work ethics, professionalism",
    "adaptability": _ADAPT,
    "adaptability / learning": _ADAPT,
    "work ethic / reliability": "dependability, ownership of commitments, follow-through, professional responsibility",
}


def validate_selection(selected: list[str]) -> str | None:
    """Error message for an invalid criteria selection, None when valid."""
    if not selected:
        return "Please select at least one evaluation criterion"
    if len(selected) > MAX_CRITERIA_SELECTION:
        return f"Maximum {MAX_CRITERIA_SELECTION} criteria can be selected"
    valid_names = {item.name for item in STANDARD_CRITERIA}
    invalid = [name for name in selected if name not in valid_names]
    if invalid:
        return f"Invalid criteria: {', '.join(invalid)}"
    return None


def evaluation_focus(label: str | None) -> str:
    return EVALUATION_FOCUS.get((label or "").strip().lower(), DEFAULT_FOCUS)


def is_explicit_criterion(label: str | None) -> bool:
    value = (label or "").strip()
    return bool(value) and value.lower() != GENERAL_CRITERION.lower()

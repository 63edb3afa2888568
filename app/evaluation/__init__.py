from .answer_scoring import AnswerScorer, JobContext, normalize_job_level, score_band
from .criteria import (
    GENERAL_CRITERION,
    MAX_CRITERIA_SELECTION,
    STANDARD_CRITERIA,
    Criterion,
    evaluation_focus,
    validate_selection,
)
from .criterion_resolver import (
    CriterionAssignment,
    CriterionResolver,
    FirstEntryFallback,
    LLMCriterionClassifier,
    match_label,
)
from .json_output import extract_json_object
from .resume_scoring import ResumeScorer
from .two_phase import OutputSchema, TwoPhasePrompt, run_two_phase

__all__ = [
    "AnswerScorer",
    "JobContext",
    "normalize_job_level",
    "score_band",
    "GENERAL_CRITERION",
    "MAX_CRITERIA_SELECTION",
    "STANDARD_CRITERIA",
    "Criterion",
    "evaluation_focus",
    "validate_selection",
    "CriterionAssignment",
    "CriterionResolver",
    "FirstEntryFallback",
    "LLMCriterionClassifier",
    "match_label",
    "extract_json_object",
    "ResumeScorer",
    "OutputSchema",
    "TwoPhasePrompt",
    "run_two_phase",
]

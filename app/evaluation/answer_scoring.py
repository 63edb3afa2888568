from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from app.ai.types import AIClient
from app.core.config.scoring import get_answer_bands, get_scoring_value
from app.schemas.evaluation import AnswerAnalysis, AnswerEvaluation, CriterionMatch, JobLevel

from .coerce import as_bool, as_choice, as_dict, as_text_list, clamp_score
from .criteria import GENERAL_CRITERION, evaluation_focus
from .two_phase import OutputSchema, TwoPhasePrompt, run_two_phase

_module_logger = logging.getLogger(__name__)

MODEL_SOURCE = "openai-realtime"
EMPTY_ANSWER_SOURCE = "empty-answer-rule"

SYSTEM_PROMPT = (
    "You are a STRICT expert interview evaluator for a highly competitive hiring process. "
    "You analyse what the candidate actually said before you judge it, and you never invent "
    "content that is not in the answer. Respond with a single JSON object only."
)

LEVEL_EXPECTATIONS: dict[str, str] = {
    "junior": (
        "Junior candidate: reward clear thinking, sound fundamentals and evidence of learning. "
        "Guided or team contributions are acceptable when the candidate explains their reasoning. "
        "Do not penalise missing large-scale ownership."
    ),
    "mid": (
        "Mid-level candidate: expect independent delivery with concrete examples, some awareness "
        "of trade-offs, and a clear account of what the candidate did versus the team."
    ),
    "senior": (
        "Senior candidate: expect ownership, measurable impact and individual-contribution language "
        "(\"I designed\", \"I led\", \"I decided\"), plus trade-offs, scale and risk. Vague or "
        "team-only descriptions score lower at this level."
    ),
}

_LEVEL_ALIASES = {
    "entry": "junior",
    "entry-level": "junior",
    "intern": "junior",
    "graduate": "junior",
    "associate": "junior",
    "jr": "junior",
    "intermediate": "mid",
    "mid-level": "mid",
    "middle": "mid",
    "sr": "senior",
    "lead": "senior",
    "staff": "senior",
    "principal": "senior",
}

_COMPLETENESS = ("complete", "partial", "incomplete", "off_topic")
_RECOMMENDATIONS = ("proceed", "needs_improvement", "insufficient")

ANSWER_SCHEMA = OutputSchema(
    qualitative={
        "key_points_covered": "[string]",
        "missing_elements": "[string]",
        "matches_question": "true|false",
        "completeness": '"complete"|"partial"|"incomplete"|"off_topic"',
        "strengths": "[string]",
        "gaps": "[string]",
        "criterion_match": '{"matches_criterion": true|false, "criterion_reasoning": string}',
    },
    scoring={
        "score": "integer 0-100",
        "reasoning": "string",
        "recommendation": '"proceed"|"needs_improvement"|"insufficient"',
    },
)


@dataclass(frozen=True)
class JobContext:
    job_title: str | None = None
    company_name: str | None = None
    job_level: str | None = None
    question_number: int | None = None
    total_questions: int | None = None


def normalize_job_level(value: str | None) -> JobLevel:
    default = str(get_scoring_value("answer.default_job_level", "mid"))
    lowered = (value or "").strip().lower()
    if not lowered:
        return default  # type: ignore[return-value]
    lowered = _LEVEL_ALIASES.get(lowered, lowered)
    if lowered in LEVEL_EXPECTATIONS:
        return lowered  # type: ignore[return-value]
    return default  # type: ignore[return-value]


def score_band(score: int) -> str:
    for lower, label in get_answer_bands():
        if score >= lower:
            return label
    return str(get_scoring_value("answer.poor_label", "poor"))


def _rubric_lines() -> list[str]:
    lines: list[str] = []
    upper = 100
    for lower, label in get_answer_bands():
        lines.append(f"{lower}-{upper}: {label.replace('_', ' ').upper()}")
        upper = lower - 1
    poor = str(get_scoring_value("answer.poor_label", "poor")).upper()
    lines.append(f"0-{upper}: {poor}")
    return lines


class AnswerScorer:
    """Score one interview answer with the content-then-score discipline."""

    def __init__(
        self,
        client: AIClient,
        *,
        model: str | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._client = client
        self._model = model
        self._logger = logger or _module_logger
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build_prompt(self, question: str, answer: str, criterion: str, context: JobContext) -> TwoPhasePrompt:
        level = normalize_job_level(context.job_level)
        position = f"Question {context.question_number or '?'} of {context.total_questions or '?'}"
        return TwoPhasePrompt(
            task="Evaluate one candidate answer from a live interview.",
            context=(
                ("POSITION", context.job_title or "Not specified"),
                ("COMPANY", context.company_name or "Not specified"),
                ("QUESTION", f"{position}\n\"{question}\""),
                ("ASSIGNED CRITERION", f"{criterion}\nEvaluation focus: {evaluation_focus(criterion)}"),
                ("CANDIDATE ANSWER", f"\"{answer}\""),
            ),
            content_analysis=(
                "List the concrete skills, tools, actions, decisions and claims the candidate actually stated (key_points_covered).",
                "List what the question asked for that the answer does not address (missing_elements).",
                "Decide whether the answer addresses the question at all (matches_question) and how fully (completeness).",
                "Judge how well the answer demonstrates the assigned criterion (criterion_match).",
            ),
            feedback_rules=(
                "Each strength is a complete sentence grounded only in what was said, and names a concrete detail "
                "from the answer (a tool, concept, action or domain).",
                "Each gap states the missing element, why it matters for this specific question, and what the "
                "candidate could have added.",
                "If nothing in the answer deserves credit, strengths is an empty list. Never pad either list.",
            ),
            scoring_preamble=LEVEL_EXPECTATIONS[level],
            scoring_rules=tuple(_rubric_lines())
            + (
                "Most answers score 50-70. 80+ requires multiple specific examples and real depth.",
                "Brief answers (under 30 words) score below 50 unless perfectly targeted.",
                "Off-topic content scores below 30; \"I don't know\" or a skipped question scores 0.",
                f"reasoning explains the score against the {level} expectations, citing the feedback above.",
                "recommendation: proceed for 60+, needs_improvement for 40-59, insufficient below 40.",
            ),
            schema=ANSWER_SCHEMA,
        )

    def _empty_answer(self, question: str, criterion: str, context: JobContext, level: JobLevel) -> AnswerEvaluation:
        return AnswerEvaluation(
            question_number=context.question_number,
            question_text=question,
            full_answer="",
            criterion=criterion,
            matches_question=False,
            completeness="off_topic",
            strengths=[],
            gaps=["No answer was given, so the question could not be assessed; any relevant example would have helped."],
            score=0,
            reasoning="The candidate did not provide an answer.",
            recommendation="insufficient",
            criterion_match=CriterionMatch(
                assigned_criterion=criterion,
                matches_criterion=False,
                criterion_reasoning="No answer to assess against this criterion.",
            ),
            answer_analysis=AnswerAnalysis(missing_elements=["An answer to the question"]),
            job_level=level,
            evaluated_at=self._clock(),
            source=EMPTY_ANSWER_SOURCE,
        )

    def build_evaluation(
        self,
        data: dict[str, Any],
        *,
        question: str,
        answer: str,
        criterion: str,
        context: JobContext,
    ) -> AnswerEvaluation:
        """Validate a parsed model response, applying safe defaults to missing fields."""
        analysis = as_dict(data.get("answer_analysis"))
        strengths = as_text_list(data.get("strengths")) or as_text_list(analysis.get("strengths"))
        gaps = (
            as_text_list(data.get("gaps"))
            or as_text_list(data.get("weaknesses"))
            or as_text_list(analysis.get("weaknesses"))
        )
        raw_match = as_dict(data.get("criterion_match"))
        reasoning = data.get("reasoning")

        return AnswerEvaluation(
            question_number=context.question_number,
            question_text=question,
            full_answer=answer,
            criterion=criterion,
            matches_question=as_bool(data.get("matches_question"), True),
            completeness=as_choice(data.get("completeness"), _COMPLETENESS, "partial"),
            strengths=strengths,
            gaps=gaps,
            score=clamp_score(data.get("score")),
            reasoning=reasoning.strip() if isinstance(reasoning, str) else "",
            recommendation=as_choice(data.get("recommendation"), _RECOMMENDATIONS, "proceed"),
            criterion_match=CriterionMatch(
                assigned_criterion=criterion,
                matches_criterion=as_bool(raw_match.get("matches_criterion"), True),
                criterion_reasoning=str(raw_match.get("criterion_reasoning") or ""),
            ),
            answer_analysis=AnswerAnalysis(
                key_points_covered=as_text_list(data.get("key_points_covered"))
                or as_text_list(analysis.get("key_points_covered")),
                missing_elements=as_text_list(data.get("missing_elements"))
                or as_text_list(analysis.get("missing_elements")),
            ),
            job_level=normalize_job_level(context.job_level),
            evaluated_at=self._clock(),
            source=MODEL_SOURCE,
        )

    async def score_answer(
        self,
        question: str,
        answer: str,
        criterion: str | None,
        context: JobContext | None = None,
    ) -> AnswerEvaluation:
        context = context or JobContext()
        label = (criterion or "").strip() or GENERAL_CRITERION
        level = normalize_job_level(context.job_level)

        if not (answer or "").strip():
            self._logger.info("answer_scored source=%s score=0 reason=empty_answer", EMPTY_ANSWER_SOURCE)
            return self._empty_answer(question, label, context, level)

        data = await run_two_phase(
            self._client,
            self.build_prompt(question, answer, label, context),
            system=SYSTEM_PROMPT,
            model=self._model,
            temperature=float(get_scoring_value("answer.temperature", 0.3)),
            max_tokens=int(get_scoring_value("answer.max_tokens", 1200)),
            logger=self._logger,
        )
        evaluation = self.build_evaluation(data, question=question, answer=answer, criterion=label, context=context)
        self._logger.info(
            "answer_scored criterion=%s level=%s score=%d band=%s completeness=%s",
            label,
            level,
            evaluation.score,
            score_band(evaluation.score),
            evaluation.completeness,
        )
        return evaluation

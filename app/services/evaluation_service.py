from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from typing import Awaitable, Callable, TypeVar

from app.ai import factory
from app.ai.types import AIClient
from app.core.config import settings
from app.core.errors import EvaluationError, ValidationError
from app.evaluation import (
    MAX_CRITERIA_SELECTION,
    STANDARD_CRITERIA,
    AnswerScorer,
    CriterionResolver,
    JobContext,
    LLMCriterionClassifier,
    ResumeScorer,
)
from app.schemas.evaluation import AnswerEvaluation, CriteriaCatalogResponse, CriterionItem, EvaluateAnswerRequest
from app.schemas.resume import EvaluateCvRequest, ResumeEvaluation
from app.services.credentials import load_company_credentials
from app.storage import db

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _record_run(
    *,
    run_id: str,
    kind: str,
    model: str,
    company_id: str | None,
    status: str,
    error_code: str | None,
    latency_ms: int,
) -> None:
    try:
        db.log_evaluation_run(
            run_id=run_id,
            kind=kind,
            model=model,
            company_id=company_id,
            status=status,
            error_code=error_code,
            latency_ms=latency_ms,
        )
    except sqlite3.Error as exc:
        logger.debug("evaluation_run_log_failed kind=%s error=%s", kind, exc)


async def _tracked(
    kind: str,
    model: str,
    company_id: str | None,
    call: Callable[[], Awaitable[T]],
) -> T:
    run_id = str(uuid.uuid4())
    started_at = time.perf_counter()
    try:
        result = await call()
    except EvaluationError as exc:
        _record_run(
            run_id=run_id,
            kind=kind,
            model=model,
            company_id=company_id,
            status="error",
            error_code=exc.code,
            latency_ms=int((time.perf_counter() - started_at) * 1000),
        )
        raise
    _record_run(
        run_id=run_id,
        kind=kind,
        model=model,
        company_id=company_id,
        status="ok",
        error_code=None,
        latency_ms=int((time.perf_counter() - started_at) * 1000),
    )
    return result


def _company_client(company_id: str | None, model: str) -> AIClient:
    credentials = load_company_credentials(company_id)
    return factory.get_ai_client(credentials, model=model)


def _round_criteria(application_id: str | None) -> list[str]:
    if not application_id:
        return []
    try:
        return db.get_round_criteria(application_id)
    except sqlite3.Error as exc:
        logger.warning("round_criteria_query_failed application_id=%s error=%s", application_id, exc)
        return []


def criteria_catalog() -> CriteriaCatalogResponse:
    return CriteriaCatalogResponse(
        criteria=[CriterionItem(id=item.id, name=item.name, description=item.description) for item in STANDARD_CRITERIA],
        max_selection=MAX_CRITERIA_SELECTION,
    )


async def evaluate_answer(payload: EvaluateAnswerRequest) -> AnswerEvaluation:
    question = (payload.question or "").strip()
    if not question:
        raise ValidationError("Question is required", code="missing_question")
    if payload.answer is None:
        raise ValidationError("Answer is required", code="missing_answer")
    if not (payload.company_id or "").strip():
        raise ValidationError("companyId is required to load model credentials", code="missing_company_id")

    answer = payload.answer.strip()
    client = _company_client(payload.company_id, settings.evaluation_model)

    catalog = _round_criteria(payload.application_id)
    # blank answers are scored by rule, so they never spend a classifier call either
    classifier = LLMCriterionClassifier(client, model=settings.classifier_model) if answer else None
    resolver = CriterionResolver(classifier)
    if classifier is not None and catalog:
        assignment = await _tracked(
            "criterion",
            settings.classifier_model,
            payload.company_id,
            lambda: resolver.resolve(question, catalog, explicit=payload.criterion),
        )
    else:
        assignment = await resolver.resolve(question, catalog, explicit=payload.criterion)

    context = JobContext(
        job_title=payload.job_title,
        company_name=payload.company_name,
        job_level=payload.job_level,
        question_number=payload.question_number,
        total_questions=payload.total_questions,
    )
    scorer = AnswerScorer(client, model=settings.evaluation_model)
    if answer:
        evaluation = await _tracked(
            "answer",
            settings.evaluation_model,
            payload.company_id,
            lambda: scorer.score_answer(question, answer, assignment.resolved_label, context),
        )
    else:
        evaluation = await scorer.score_answer(question, answer, assignment.resolved_label, context)

    logger.info(
        "answer_evaluated application_id=%s criterion=%s criterion_source=%s score=%d",
        payload.application_id or "-",
        assignment.resolved_label,
        assignment.source,
        evaluation.score,
    )
    if payload.application_id:
        _store_answer_evaluation(payload.application_id, evaluation)
    return evaluation


def _store_answer_evaluation(application_id: str, evaluation: AnswerEvaluation) -> None:
    try:
        stored = db.append_answer_evaluation(application_id, evaluation.model_dump(mode="json"))
    except sqlite3.Error as exc:
        logger.error("answer_evaluation_store_failed application_id=%s error=%s", application_id, exc)
        return
    if not stored:
        logger.warning("answer_evaluation_store_skipped application_id=%s reason=application_not_found", application_id)


async def evaluate_cv(payload: EvaluateCvRequest) -> ResumeEvaluation:
    resume_text = (payload.resume_text or "").strip()
    job_description = (payload.job_description or "").strip()
    if not resume_text:
        raise ValidationError("resumeText is required", code="missing_resume_text")
    if not job_description:
        raise ValidationError("jobDescription is required", code="missing_job_description")

    client = _company_client(payload.company_id, settings.resume_model)
    scorer = ResumeScorer(client, model=settings.resume_model)
    evaluation = await _tracked(
        "resume",
        settings.resume_model,
        payload.company_id,
        lambda: scorer.score_resume(resume_text, job_description, payload.pass_threshold),
    )

    if payload.application_id:
        try:
            stored = db.save_resume_evaluation(
                payload.application_id,
                score=evaluation.overall.score_percent,
                qualified=evaluation.overall.qualified,
                explanations=evaluation.explanations(),
            )
        except sqlite3.Error as exc:
            logger.error("resume_evaluation_store_failed application_id=%s error=%s", payload.application_id, exc)
        else:
            if not stored:
                logger.warning(
                    "resume_evaluation_store_skipped application_id=%s reason=application_not_found",
                    payload.application_id,
                )
    return evaluation

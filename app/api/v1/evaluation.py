from fastapi import APIRouter, Request

from app.core.rate_limit import rate_limit
from app.schemas.evaluation import (
    CriteriaCatalogResponse,
    ErrorResponse,
    EvaluateAnswerRequest,
    EvaluateAnswerResponse,
)
from app.schemas.resume import EvaluateCvRequest, EvaluateCvResponse
from app.services.evaluation_service import criteria_catalog, evaluate_answer, evaluate_cv

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/interview/evaluate-answer",
    response_model=EvaluateAnswerResponse,
    responses=_ERROR_RESPONSES,
    summary="Evaluate one interview answer",
)
@rate_limit()
async def interview_evaluate_answer(request: Request, payload: EvaluateAnswerRequest):
    _ = request
    evaluation = await evaluate_answer(payload)
    return EvaluateAnswerResponse(evaluation=evaluation)


@router.post(
    "/applications/evaluate-cv",
    response_model=EvaluateCvResponse,
    responses=_ERROR_RESPONSES,
    summary="Evaluate a resume against a job description",
)
@rate_limit()
async def applications_evaluate_cv(request: Request, payload: EvaluateCvRequest):
    _ = request
    evaluation = await evaluate_cv(payload)
    return EvaluateCvResponse(evaluation=evaluation)


@router.get("/evaluation/criteria", response_model=CriteriaCatalogResponse, summary="Standard evaluation criteria")
async def evaluation_criteria():
    return criteria_catalog()

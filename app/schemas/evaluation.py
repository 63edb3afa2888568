from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Completeness = Literal["complete", "partial", "incomplete", "off_topic"]
AnswerRecommendation = Literal["proceed", "needs_improvement", "insufficient"]
JobLevel = Literal["junior", "mid", "senior"]


class EvaluateAnswerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str | None = Field(default=None, max_length=5000)
    answer: str | None = Field(default=None, max_length=50000)
    criterion: str | None = Field(default=None, max_length=120)
    question_number: int | None = Field(default=None, alias="questionNumber", ge=0)
    total_questions: int | None = Field(default=None, alias="totalQuestions", ge=0)
    job_title: str | None = Field(default=None, alias="jobTitle", max_length=300)
    company_name: str | None = Field(default=None, alias="companyName", max_length=300)
    company_id: str | None = Field(default=None, alias="companyId", max_length=100)
    application_id: str | None = Field(default=None, alias="applicationId", max_length=100)
    job_level: str | None = Field(default=None, alias="jobLevel", max_length=40)


class CriterionMatch(BaseModel):
    assigned_criterion: str
    matches_criterion: bool = True
    criterion_reasoning: str = ""


class AnswerAnalysis(BaseModel):
    key_points_covered: list[str] = Field(default_factory=list)
    missing_elements: list[str] = Field(default_factory=list)


class AnswerEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_number: int | None = None
    question_text: str
    full_answer: str
    criterion: str
    matches_question: bool = True
    completeness: Completeness = "partial"
    strengths: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    score: int = Field(default=0, ge=0, le=100)
    reasoning: str = ""
    recommendation: AnswerRecommendation = "proceed"
    criterion_match: CriterionMatch
    answer_analysis: AnswerAnalysis = Field(default_factory=AnswerAnalysis)
    job_level: JobLevel = "mid"
    evaluated_at: datetime
    source: str = "openai-realtime"


class EvaluateAnswerResponse(BaseModel):
    ok: bool = True
    evaluation: AnswerEvaluation


class CriterionItem(BaseModel):
    id: str
    name: str
    description: str


class CriteriaCatalogResponse(BaseModel):
    criteria: list[CriterionItem]
    max_selection: int


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    message: str
    upstream_status: int | None = None
    details: str | None = None

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

GateStatus = Literal["PASS", "FAIL"]
Verdict = Literal["Strong Match", "Good Match", "Borderline", "Reject"]
MatchLevel = Literal["Below", "Within", "Above"]
CertStatus = Literal["issued", "pursuing", "expired"]
JobHoppingRisk = Literal["Low", "Medium", "High"]


class EvaluateCvRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resume_text: str | None = Field(default=None, alias="resumeText", max_length=200000)
    job_description: str | None = Field(default=None, alias="jobDescription", max_length=100000)
    pass_threshold: int | None = Field(default=None, alias="passThreshold", ge=0, le=100)
    company_id: str | None = Field(default=None, alias="companyId", max_length=100)
    application_id: str | None = Field(default=None, alias="applicationId", max_length=100)


class Eligibility(BaseModel):
    domain_fit: GateStatus = "PASS"
    must_have_fit: GateStatus = "PASS"
    experience_fit: GateStatus = "PASS"
    language_fit: GateStatus = "PASS"
    fail_reasons: list[str] = Field(default_factory=list)
    missing_must_have: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.fail_reasons


class SkillMatchScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    weight: int = 30
    matched_critical: list[str] = Field(default_factory=list)
    matched_important: list[str] = Field(default_factory=list)
    missing_critical: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


class ProjectRelevanceScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    weight: int = 20
    relevant_projects: int = 0
    recent_skills_used: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


class ExperienceMatchScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    weight: int = 20
    years_actual: float | None = None
    years_required: str = "Not specified"
    match_level: MatchLevel = "Within"
    evidence: list[str] = Field(default_factory=list)


class EducationScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    weight: int = 15
    degree: str | None = None
    field_match: bool = False
    issued_certs: list[str] = Field(default_factory=list)
    pursuing_certs: list[str] = Field(default_factory=list)
    missing_required_certs: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


class LocationScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    weight: int = 10
    candidate_location: str | None = None
    job_location: str | None = None
    remote_possible: bool = False
    joining_time_days: int | None = None
    evidence: list[str] = Field(default_factory=list)


class ResumeQualityScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    weight: int = 5
    clarity: int = Field(default=0, ge=0, le=100)
    structure: int = Field(default=0, ge=0, le=100)
    completeness: int = Field(default=0, ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


class ResumeScores(BaseModel):
    skill_match: SkillMatchScore
    project_relevance: ProjectRelevanceScore
    experience_match: ExperienceMatchScore
    education_and_certs: EducationScore
    location_and_availability: LocationScore
    resume_quality: ResumeQualityScore


class DocumentAnalysis(BaseModel):
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class RiskAdjustments(BaseModel):
    critical_gaps: list[str] = Field(default_factory=list)
    risk_flags: list[str] = Field(default_factory=list)
    score_cap_applied: int | None = None


class ProductionExposure(BaseModel):
    has_prod_experience: bool = False
    evidence: list[str] = Field(default_factory=list)


class TenureAnalysis(BaseModel):
    average_tenure_months: float | None = None
    job_hopping_risk: JobHoppingRisk = "Low"


class ExplainableScore(BaseModel):
    skill_contribution: float = 0.0
    project_contribution: float = 0.0
    experience_contribution: float = 0.0
    edu_certs_contribution: float = 0.0
    location_contribution: float = 0.0
    quality_contribution: float = 0.0


class ExtractedEducation(BaseModel):
    degree: str | None = None
    field: str | None = None
    institution: str | None = None
    year: str | None = None


class ExtractedWork(BaseModel):
    company: str = ""
    title: str = ""
    start_date: str | None = None
    end_date: str | None = None
    duration: str = ""


class ExtractedCertification(BaseModel):
    name: str
    status: CertStatus = "issued"
    year: str | None = None


class ExtractedLanguage(BaseModel):
    language: str
    proficiency: str = ""


class ExtractedProject(BaseModel):
    title: str = ""
    duration: str = ""
    technologies: list[str] = Field(default_factory=list)


class ExtractedProfile(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    total_experience_years_estimate: float | None = None
    titles: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    education: list[ExtractedEducation] = Field(default_factory=list)
    work_experience: list[ExtractedWork] = Field(default_factory=list)
    certifications: list[ExtractedCertification] = Field(default_factory=list)
    languages: list[ExtractedLanguage] = Field(default_factory=list)
    recent_projects: list[ExtractedProject] = Field(default_factory=list)


class Overall(BaseModel):
    score_percent: int = Field(ge=0, le=100)
    qualified: bool
    verdict: Verdict
    reason_summary: str
    pass_threshold: int


class ResumeEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: Overall
    analysis: DocumentAnalysis = Field(default_factory=DocumentAnalysis)
    eligibility: Eligibility
    scores: ResumeScores
    risk_adjustments: RiskAdjustments
    production_exposure: ProductionExposure
    tenure_analysis: TenureAnalysis
    explainable_score: ExplainableScore
    extracted: ExtractedProfile = Field(default_factory=ExtractedProfile)
    evaluated_at: datetime
    source: str

    def explanations(self) -> dict[str, Any]:
        """Subset persisted as the application's qualification explanations."""
        return {
            "verdict": self.overall.verdict,
            "reason_summary": self.overall.reason_summary,
            "analysis": self.analysis.model_dump(),
            "eligibility": self.eligibility.model_dump(),
            "scores": self.scores.model_dump(),
            "risk_adjustments": self.risk_adjustments.model_dump(),
            "explainable_score": self.explainable_score.model_dump(),
            "extracted": self.extracted.model_dump(),
        }


class EvaluateCvResponse(BaseModel):
    ok: bool = True
    evaluation: ResumeEvaluation


class ParseResumeResponse(BaseModel):
    success: bool = True
    parsed: dict[str, Any]

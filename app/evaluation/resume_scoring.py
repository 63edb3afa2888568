from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from app.ai.types import AIClient
from app.core.config.scoring import get_scoring_value
from app.schemas.resume import (
    DocumentAnalysis,
    EducationScore,
    Eligibility,
    ExperienceMatchScore,
    ExplainableScore,
    ExtractedCertification,
    ExtractedEducation,
    ExtractedLanguage,
    ExtractedProfile,
    ExtractedProject,
    ExtractedWork,
    LocationScore,
    Overall,
    ProductionExposure,
    ProjectRelevanceScore,
    ResumeEvaluation,
    ResumeQualityScore,
    ResumeScores,
    RiskAdjustments,
    SkillMatchScore,
    TenureAnalysis,
    Verdict,
)

from . import jd_rules
from .coerce import (
    as_bool,
    as_choice,
    as_dict,
    as_dict_list,
    as_optional_float,
    as_optional_str,
    as_text_list,
    clamp_score,
)
from .two_phase import OutputSchema, TwoPhasePrompt, run_two_phase

_module_logger = logging.getLogger(__name__)

MODEL_SOURCE = "openai-cv-evaluator"
RULES_SOURCE = "eligibility-rules"

SYSTEM_PROMPT = """You are a senior ATS CV parser and evaluator. Your role is EXTRACTION and LIMITED SCORING only.
- Extract structured data from the resume accurately. Do not invent skills or experience that are not clearly stated.
- Distinguish between issued certifications and those being pursued.
- Cite evidence by quoting short spans from the resume (max 20 words each).
- Do NOT score experience years, location or language; those are rule-based.
- Output ONLY valid JSON matching the provided schema."""

_CERT_STATUSES = ("issued", "pursuing", "expired")

RESUME_SCHEMA = OutputSchema(
    qualitative={
        "strengths": "[string]",
        "weaknesses": "[string]",
        "extracted": (
            '{"name": string|null, "email": string|null, "phone": string|null, "location": string|null, '
            '"total_experience_years_estimate": number|null, "titles": [string], "skills": [string], '
            '"education": [{"degree": string|null, "field": string|null, "institution": string|null, "year": string|null}], '
            '"work_experience": [{"company": string, "title": string, "start_date": string|null, "end_date": string|null, "duration": string}], '
            '"certifications": [{"name": string, "status": "issued"|"pursuing"|"expired", "year": string|null}], '
            '"languages": [{"language": string, "proficiency": string}], '
            '"recent_projects": [{"title": string, "duration": string, "technologies": [string]}]}'
        ),
        "detected_platforms": "[string]",
        "has_production_deployment": "true|false",
        "has_debugging_experience": "true|false",
        "has_cloud_exposure": "true|false",
        "average_tenure_months": "number|null",
        "career_gaps_months": "[number]",
    },
    scoring={
        "llm_scores": (
            '{"skill_match": {"score": number, "matched_critical": [string], "matched_important": [string], '
            '"missing_critical": [string], "evidence": [string]}, '
            '"project_relevance": {"score": number, "relevant_projects": number, "recent_skills_used": [string], "evidence": [string]}, '
            '"resume_quality": {"score": number, "clarity": number, "structure": number, "completeness": number, '
            '"issues": [string], "evidence": [string]}}'
        ),
    },
)


def truncate_input(text: str, max_chars: int, marker: str) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n\n{marker}"


def _weights() -> dict[str, int]:
    configured = get_scoring_value("resume.weights", {}) or {}
    defaults = {
        "skill_match": 30,
        "project_relevance": 20,
        "experience_match": 20,
        "education_and_certs": 15,
        "location_and_availability": 10,
        "resume_quality": 5,
    }
    return {key: int(configured.get(key, value)) for key, value in defaults.items()}


def _contribution(score: int, weight: int) -> float:
    return round(score * weight / 100, 2)


def explain_scores(scores: ResumeScores) -> ExplainableScore:
    return ExplainableScore(
        skill_contribution=_contribution(scores.skill_match.score, scores.skill_match.weight),
        project_contribution=_contribution(scores.project_relevance.score, scores.project_relevance.weight),
        experience_contribution=_contribution(scores.experience_match.score, scores.experience_match.weight),
        edu_certs_contribution=_contribution(scores.education_and_certs.score, scores.education_and_certs.weight),
        location_contribution=_contribution(
            scores.location_and_availability.score, scores.location_and_availability.weight
        ),
        quality_contribution=_contribution(scores.resume_quality.score, scores.resume_quality.weight),
    )


def weighted_score(scores: ResumeScores) -> int:
    explained = explain_scores(scores)
    total = sum(explained.model_dump().values())
    return max(0, min(100, int(total + 0.5)))


def determine_verdict(score: int, eligibility: Eligibility, has_missing_critical: bool) -> Verdict:
    strong = int(get_scoring_value("resume.verdict.strong_match", 80))
    good = int(get_scoring_value("resume.verdict.good_match", 65))
    borderline = int(get_scoring_value("resume.verdict.borderline", 55))
    if not eligibility.passed or score < borderline:
        return "Reject"
    if score >= strong:
        return "Good Match" if has_missing_critical else "Strong Match"
    if score >= good:
        return "Good Match"
    return "Borderline"


def reason_summary(
    verdict: Verdict,
    eligibility: Eligibility,
    scores: ResumeScores,
    risk: RiskAdjustments,
) -> str:
    parts: list[str] = []
    if eligibility.fail_reasons:
        parts.append(f"Eligibility failed: {eligibility.fail_reasons[0]}")
    if verdict == "Strong Match":
        parts.append("Excellent skill match with relevant project experience")
    elif verdict == "Good Match":
        parts.append("Good overall fit with some areas for development")
    elif verdict == "Borderline":
        parts.append("Partial match - requires careful consideration")
    if scores.skill_match.missing_critical:
        parts.append(f"Missing: {', '.join(scores.skill_match.missing_critical[:3])}")
    if risk.score_cap_applied:
        parts.append(f"Score capped at {risk.score_cap_applied} due to risk factors")
    return ". ".join(parts) or "Evaluation complete"


def parse_extracted(data: dict[str, Any]) -> ExtractedProfile:
    return ExtractedProfile(
        name=as_optional_str(data.get("name")),
        email=as_optional_str(data.get("email")),
        phone=as_optional_str(data.get("phone")),
        location=as_optional_str(data.get("location")),
        total_experience_years_estimate=as_optional_float(data.get("total_experience_years_estimate")),
        titles=as_text_list(data.get("titles")),
        skills=as_text_list(data.get("skills")),
        education=[
            ExtractedEducation(
                degree=as_optional_str(item.get("degree")),
                field=as_optional_str(item.get("field")),
                institution=as_optional_str(item.get("institution")),
                year=as_optional_str(item.get("year")),
            )
            for item in as_dict_list(data.get("education"))
        ],
        work_experience=[
            ExtractedWork(
                company=as_optional_str(item.get("company")) or "",
                title=as_optional_str(item.get("title")) or "",
                start_date=as_optional_str(item.get("start_date")),
                end_date=as_optional_str(item.get("end_date")),
                duration=as_optional_str(item.get("duration")) or "",
            )
            for item in as_dict_list(data.get("work_experience"))
        ],
        certifications=[
            ExtractedCertification(
                name=as_optional_str(item.get("name")) or "",
                status=as_choice(item.get("status"), _CERT_STATUSES, "issued"),
                year=as_optional_str(item.get("year")),
            )
            for item in as_dict_list(data.get("certifications"))
            if as_optional_str(item.get("name"))
        ],
        languages=[
            ExtractedLanguage(
                language=as_optional_str(item.get("language")) or "",
                proficiency=as_optional_str(item.get("proficiency")) or "",
            )
            for item in as_dict_list(data.get("languages"))
            if as_optional_str(item.get("language"))
        ],
        recent_projects=[
            ExtractedProject(
                title=as_optional_str(item.get("title")) or "",
                duration=as_optional_str(item.get("duration")) or "",
                technologies=as_text_list(item.get("technologies")),
            )
            for item in as_dict_list(data.get("recent_projects"))
        ],
    )


class ResumeScorer:
    """Score a resume against a job description.

    Deterministic eligibility gates run first; a domain mismatch rejects without a
    model call. The model then writes whole-document strengths and weaknesses and the
    extracted profile before its three dimension scores, and rule-based dimensions,
    weights, caps and the verdict are applied on top.
    """

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

    def build_prompt(self, resume_text: str, jd_text: str) -> TwoPhasePrompt:
        return TwoPhasePrompt(
            task="Extract data from this resume and evaluate it against the job description.",
            context=(("JOB DESCRIPTION", jd_text), ("RESUME", resume_text)),
            content_analysis=(
                "Extract every structured field in the 'extracted' object from the resume text only.",
                "Identify the platforms and tools the resume mentions (detected_platforms).",
                "Record whether the resume shows production deployment, debugging/maintenance work and cloud exposure.",
                "Estimate average tenure per role in months and any career gaps longer than one month.",
            ),
            feedback_rules=(
                "strengths: complete sentences about what the resume demonstrates for this job, each citing a concrete "
                "skill, project or responsibility from the resume.",
                "weaknesses: each names a job requirement the resume does not evidence and why it matters for this role.",
            ),
            scoring_rules=(
                "skill_match (0-100): 90-100 all critical skills present, 70-89 most present, 50-69 partial, <50 major "
                "gaps. Direct matches weigh more than related technologies.",
                "project_relevance (0-100): how many job-required skills appear in projects from the last 3-5 years.",
                "resume_quality (0-100): clarity, structure, completeness and professional presentation.",
                "Do not score experience years, location or language.",
            ),
            schema=RESUME_SCHEMA,
        )

    def _rejection(self, reason: str, critical_platforms: list[str], pass_threshold: int) -> ResumeEvaluation:
        weights = _weights()
        scores = ResumeScores(
            skill_match=SkillMatchScore(score=10, weight=weights["skill_match"], missing_critical=["Required Platform"]),
            project_relevance=ProjectRelevanceScore(score=10, weight=weights["project_relevance"]),
            experience_match=ExperienceMatchScore(
                score=20, weight=weights["experience_match"], years_required="Unknown", match_level="Below"
            ),
            education_and_certs=EducationScore(score=30, weight=weights["education_and_certs"]),
            location_and_availability=LocationScore(score=50, weight=weights["location_and_availability"]),
            resume_quality=ResumeQualityScore(
                score=50, weight=weights["resume_quality"], clarity=50, structure=50, completeness=50
            ),
        )
        return ResumeEvaluation(
            overall=Overall(
                score_percent=int(get_scoring_value("resume.rejection_score", 15)),
                qualified=False,
                verdict="Reject",
                reason_summary=reason,
                pass_threshold=pass_threshold,
            ),
            eligibility=Eligibility(
                domain_fit="FAIL",
                fail_reasons=[reason],
                missing_must_have=critical_platforms or ["Required Platform"],
            ),
            scores=scores,
            risk_adjustments=RiskAdjustments(critical_gaps=["Required platform/skill not found"]),
            production_exposure=ProductionExposure(),
            tenure_analysis=TenureAnalysis(),
            explainable_score=explain_scores(scores),
            evaluated_at=self._clock(),
            source=RULES_SOURCE,
        )

    def _risk_adjustments(
        self,
        raw_score: int,
        scores: ResumeScores,
        data: dict[str, Any],
        production_role: bool,
        has_production: bool,
    ) -> tuple[int, RiskAdjustments]:
        critical_gaps: list[str] = []
        risk_flags: list[str] = []
        if scores.skill_match.missing_critical:
            critical_gaps.append(f"Missing critical skills: {', '.join(scores.skill_match.missing_critical)}")

        if not as_bool(data.get("has_debugging_experience"), False):
            risk_flags.append("No debugging/maintenance experience mentioned")
        if not as_bool(data.get("has_cloud_exposure"), False):
            risk_flags.append("No cloud exposure mentioned")
        raw_gaps = data.get("career_gaps_months")
        gaps = [as_optional_float(item) for item in raw_gaps] if isinstance(raw_gaps, list) else []
        if any(gap is not None and gap > 6 for gap in gaps):
            risk_flags.append("Career gap > 6 months detected")
        if production_role and not has_production:
            risk_flags.append("No production deployment experience")
        tenure = as_optional_float(data.get("average_tenure_months"))
        if tenure is not None and tenure < int(get_scoring_value("resume.tenure.high_risk_months", 12)):
            risk_flags.append("High job hopping risk")

        final_score = raw_score
        cap_applied: int | None = None

        def apply_cap(cap: int) -> None:
            nonlocal final_score, cap_applied
            if final_score > cap:
                final_score = cap
                cap_applied = cap

        if critical_gaps:
            apply_cap(int(get_scoring_value("resume.caps.missing_critical", 75)))
        if production_role and not has_production:
            apply_cap(int(get_scoring_value("resume.caps.no_production_exposure", 65)))
        if len(risk_flags) >= int(get_scoring_value("resume.caps.many_risk_flags_count", 3)):
            apply_cap(int(get_scoring_value("resume.caps.many_risk_flags", 65)))

        return final_score, RiskAdjustments(
            critical_gaps=critical_gaps,
            risk_flags=risk_flags,
            score_cap_applied=cap_applied,
        )

    async def score_resume(
        self,
        resume_text: str,
        jd_text: str,
        pass_threshold: int | None = None,
    ) -> ResumeEvaluation:
        threshold = int(
            pass_threshold if pass_threshold is not None else get_scoring_value("resume.default_pass_threshold", 40)
        )
        resume = truncate_input(
            resume_text,
            int(get_scoring_value("resume.max_resume_chars", 15000)),
            "[Resume truncated due to length...]",
        )
        jd = truncate_input(jd_text, int(get_scoring_value("resume.max_jd_chars", 5000)), "[JD truncated...]")
        buffer_years = float(get_scoring_value("resume.experience_buffer_years", 0.5))

        domain = jd_rules.check_domain_fit(resume, jd)
        if not domain.passed:
            self._logger.info("resume_scored verdict=Reject reason=domain_mismatch platforms=%s", domain.critical_platforms)
            return self._rejection(
                domain.reason or "Domain mismatch: Required platforms/tools not found in resume",
                domain.critical_platforms,
                threshold,
            )

        data = await run_two_phase(
            self._client,
            self.build_prompt(resume, jd),
            system=SYSTEM_PROMPT,
            model=self._model,
            temperature=float(get_scoring_value("resume.temperature", 0.1)),
            max_tokens=int(get_scoring_value("resume.max_tokens", 3000)),
            logger=self._logger,
        )
        extracted = parse_extracted(as_dict(data.get("extracted")))
        llm_scores = as_dict(data.get("llm_scores"))
        skill = as_dict(llm_scores.get("skill_match"))
        project = as_dict(llm_scores.get("project_relevance"))
        quality = as_dict(llm_scores.get("resume_quality"))
        years = extracted.total_experience_years_estimate

        eligibility = jd_rules.run_eligibility_gates(resume, jd, years, buffer_years=buffer_years)
        experience = jd_rules.experience_score(years, jd, buffer_years=buffer_years)
        job_location = jd_rules.extract_job_location(jd)
        location = jd_rules.location_score(extracted.location, job_location, jd)
        weights = _weights()

        scores = ResumeScores(
            skill_match=SkillMatchScore(
                score=clamp_score(skill.get("score")),
                weight=weights["skill_match"],
                matched_critical=as_text_list(skill.get("matched_critical")),
                matched_important=as_text_list(skill.get("matched_important")),
                missing_critical=as_text_list(skill.get("missing_critical")),
                evidence=as_text_list(skill.get("evidence")),
            ),
            project_relevance=ProjectRelevanceScore(
                score=clamp_score(project.get("score")),
                weight=weights["project_relevance"],
                relevant_projects=int(as_optional_float(project.get("relevant_projects")) or 0),
                recent_skills_used=as_text_list(project.get("recent_skills_used")),
                evidence=as_text_list(project.get("evidence")),
            ),
            experience_match=ExperienceMatchScore(
                score=experience.score,
                weight=weights["experience_match"],
                years_actual=years,
                years_required=experience.detail,
                match_level=experience.match_level,
                evidence=[f"Calculated {years:g} years from work history" if years is not None else "Experience years unknown"],
            ),
            education_and_certs=EducationScore(
                score=jd_rules.education_score(extracted),
                weight=weights["education_and_certs"],
                degree=extracted.education[0].degree if extracted.education else None,
                field_match=jd_rules.field_match(extracted.education, jd),
                issued_certs=[cert.name for cert in extracted.certifications if cert.status == "issued"],
                pursuing_certs=[cert.name for cert in extracted.certifications if cert.status == "pursuing"],
                missing_required_certs=jd_rules.missing_certifications(extracted.certifications, jd),
            ),
            location_and_availability=LocationScore(
                score=location.score,
                weight=weights["location_and_availability"],
                candidate_location=extracted.location,
                job_location=job_location,
                remote_possible=jd_rules.is_remote_possible(jd),
            ),
            resume_quality=ResumeQualityScore(
                score=clamp_score(quality.get("score")),
                weight=weights["resume_quality"],
                clarity=clamp_score(quality.get("clarity")),
                structure=clamp_score(quality.get("structure")),
                completeness=clamp_score(quality.get("completeness")),
                issues=as_text_list(quality.get("issues")),
                evidence=as_text_list(quality.get("evidence")),
            ),
        )

        evidence = jd_rules.production_evidence(resume)
        has_production = as_bool(data.get("has_production_deployment"), False) or bool(evidence)
        raw_score = weighted_score(scores)
        final_score, risk = self._risk_adjustments(
            raw_score, scores, data, jd_rules.is_production_role(jd), has_production
        )

        tenure = as_optional_float(data.get("average_tenure_months"))
        has_missing_critical = bool(scores.skill_match.missing_critical or risk.critical_gaps)
        verdict = determine_verdict(final_score, eligibility, has_missing_critical)
        qualified = eligibility.passed and final_score >= threshold

        result = ResumeEvaluation(
            overall=Overall(
                score_percent=final_score,
                qualified=qualified,
                verdict=verdict,
                reason_summary=reason_summary(verdict, eligibility, scores, risk),
                pass_threshold=threshold,
            ),
            analysis=DocumentAnalysis(
                strengths=as_text_list(data.get("strengths")),
                weaknesses=as_text_list(data.get("weaknesses")),
            ),
            eligibility=eligibility,
            scores=scores,
            risk_adjustments=risk,
            production_exposure=ProductionExposure(has_prod_experience=has_production, evidence=evidence),
            tenure_analysis=TenureAnalysis(
                average_tenure_months=tenure,
                job_hopping_risk=jd_rules.job_hopping_risk(
                    tenure,
                    high_below=int(get_scoring_value("resume.tenure.high_risk_months", 12)),
                    medium_below=int(get_scoring_value("resume.tenure.medium_risk_months", 24)),
                ),
            ),
            explainable_score=explain_scores(scores),
            extracted=extracted,
            evaluated_at=self._clock(),
            source=MODEL_SOURCE,
        )
        self._logger.info(
            "resume_scored verdict=%s score=%d raw=%d qualified=%s cap=%s gates_failed=%d",
            verdict,
            final_score,
            raw_score,
            qualified,
            risk.score_cap_applied,
            len(eligibility.fail_reasons),
        )
        return result

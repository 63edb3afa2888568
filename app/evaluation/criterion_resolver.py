from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol, Sequence

from app.ai.types import AIClient, ChatMessage
from app.core.config.scoring import get_scoring_value

from .criteria import GENERAL_CRITERION, is_explicit_criterion

_module_logger = logging.getLogger(__name__)

ResolutionSource = Literal["explicit", "classifier", "fallback", "general"]

CLASSIFIER_SYSTEM_PROMPT = "You are an expert at categorizing interview questions. Respond with ONLY the criterion name."

MAPPING_RULES: tuple[str, ...] = (
    "If the question asks about tools/technologies/coding/technical skills -> Technical",
    "If the question asks about teamwork/collaboration/working with others/conflicts -> Team Player",
    "If the question asks about company/motivation/values/salary/location/role preferences -> Culture Fit",
    "If the question asks about explaining/presenting/communication skills -> Communication",
    "If the question asks about problem-solving/challenges/analytical thinking -> Problem Solving",
    "If the question asks about leadership/managing/mentoring -> Leadership",
)


@dataclass(frozen=True)
class CriterionAssignment:
    question: str
    resolved_label: str
    source: ResolutionSource


class CriterionClassifier(Protocol):
    async def classify(self, question: str, catalog: Sequence[str]) -> str | None: ...


class FallbackPolicy(Protocol):
    def choose(self, catalog: Sequence[str]) -> str: ...


class FirstEntryFallback:
    """Deterministic default: the first configured criterion."""

    def choose(self, catalog: Sequence[str]) -> str:
        return catalog[0]


def build_mapping_prompt(question: str, catalog: Sequence[str]) -> str:
    criteria_lines = "\n".join(f"- {label}" for label in catalog)
    rules = "\n".join(f"- {rule}" for rule in MAPPING_RULES)
    return (
        "Given this interview question and the available evaluation criteria, "
        "determine which criterion best matches the question.\n\n"
        f'Question: "{question}"\n\n'
        f"Available criteria:\n{criteria_lines}\n\n"
        f"Mapping rules:\n{rules}\n\n"
        "You MUST choose from ONLY the available criteria listed above. Do not invent new criteria.\n"
        'Respond with ONLY the criterion name, nothing else. Example response: "Technical"'
    )


def match_label(suggestion: str | None, catalog: Sequence[str]) -> str | None:
    """Catalog entry matching ``suggestion`` case-insensitively, exact first, then substring either way."""
    value = (suggestion or "").strip().strip("\"'`.").strip().lower()
    if not value:
        return None
    for label in catalog:
        if label.lower() == value:
            return label
    for label in catalog:
        lowered = label.lower()
        if value in lowered or lowered in value:
            return label
    return None


class LLMCriterionClassifier:
    def __init__(self, client: AIClient, *, model: str | None = None):
        self._client = client
        self._model = model

    async def classify(self, question: str, catalog: Sequence[str]) -> str | None:
        messages = [
            ChatMessage(role="system", content=CLASSIFIER_SYSTEM_PROMPT),
            ChatMessage(role="user", content=build_mapping_prompt(question, catalog)),
        ]
        raw = await self._client.complete(
            messages,
            model=self._model,
            temperature=float(get_scoring_value("classifier.temperature", 0.1)),
            max_tokens=int(get_scoring_value("classifier.max_tokens", 50)),
        )
        return (raw or "").strip() or None


class CriterionResolver:
    """Assign a question to a configured criterion.

    An explicit criterion short-circuits. Otherwise the classifier is asked and its
    answer is validated against the catalog; an unmatched answer or a failed call
    falls back to the fallback policy. An empty catalog resolves to "General".
    """

    def __init__(
        self,
        classifier: CriterionClassifier | None,
        *,
        fallback: FallbackPolicy | None = None,
        logger: logging.Logger | None = None,
    ):
        self._classifier = classifier
        self._fallback = fallback or FirstEntryFallback()
        self._logger = logger or _module_logger

    async def resolve(
        self,
        question: str,
        catalog: Sequence[str],
        *,
        explicit: str | None = None,
    ) -> CriterionAssignment:
        if is_explicit_criterion(explicit):
            return CriterionAssignment(question=question, resolved_label=explicit.strip(), source="explicit")

        labels = [label.strip() for label in catalog if label and label.strip()]
        labels = list(dict.fromkeys(labels))
        if not labels:
            self._logger.info("criterion_resolved source=general reason=empty_catalog")
            return CriterionAssignment(question=question, resolved_label=GENERAL_CRITERION, source="general")

        suggestion: str | None = None
        if self._classifier is not None:
            try:
                suggestion = await self._classifier.classify(question, labels)
            except Exception as exc:
                self._logger.warning("criterion_classifier_failed error=%s", exc)
                suggestion = None

        matched = match_label(suggestion, labels)
        if matched is not None:
            self._logger.info("criterion_resolved source=classifier label=%s", matched)
            return CriterionAssignment(question=question, resolved_label=matched, source="classifier")

        label = self._fallback.choose(labels)
        self._logger.info("criterion_resolved source=fallback label=%s suggestion=%s", label, suggestion)
        return CriterionAssignment(question=question, resolved_label=label, source="fallback")

"""Content-then-score prompting shared by answer and resume evaluation.

Every evaluation prompt is rendered in the same fixed order: the material under
review, a content-only analysis step, the qualitative feedback rules, and only
then the scoring rubric. Qualitative fields are requested before the score in
the output schema too, so the model commits to strengths and gaps before it sees
any instruction about numbers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from app.ai.types import AIClient, ChatMessage

from .json_output import extract_json_object

_module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputSchema:
    """JSON shape requested from the model.

    ``qualitative`` keys are listed before ``scoring`` keys in the rendered
    template and in the instructions.
    """

    qualitative: dict[str, str]
    scoring: dict[str, str]

    def render(self) -> str:
        lines = ["{"]
        items = list(self.qualitative.items()) + list(self.scoring.items())
        for index, (key, shape) in enumerate(items):
            comma = "," if index < len(items) - 1 else ""
            lines.append(f'  "{key}": {shape}{comma}')
        lines.append("}")
        return "\n".join(lines)


@dataclass(frozen=True)
class TwoPhasePrompt:
    task: str
    context: Sequence[tuple[str, str]]
    content_analysis: Sequence[str]
    feedback_rules: Sequence[str]
    scoring_rules: Sequence[str]
    schema: OutputSchema
    scoring_preamble: str = ""
    extra_sections: Sequence[tuple[str, str]] = field(default_factory=tuple)

    def render(self) -> str:
        parts: list[str] = [self.task.strip(), ""]
        for label, body in self.context:
            parts.append(f"[{label}]")
            parts.append(body.strip() if body and body.strip() else "(none)")
            parts.append("")

        parts.append("STEP 1 - CONTENT ANALYSIS (do not think about a score yet)")
        parts.extend(f"- {rule}" for rule in self.content_analysis)
        parts.append("")

        parts.append("STEP 2 - QUALITATIVE FEEDBACK (fixed before any scoring)")
        parts.extend(f"- {rule}" for rule in self.feedback_rules)
        qualitative_keys = ", ".join(self.schema.qualitative)
        parts.append(f"- The fields {qualitative_keys} must not mention or depend on a score.")
        parts.append("")

        for label, body in self.extra_sections:
            parts.append(label)
            parts.append(body.strip())
            parts.append("")

        parts.append("STEP 3 - SCORING (only after steps 1 and 2 are complete)")
        if self.scoring_preamble:
            parts.append(self.scoring_preamble.strip())
        parts.extend(f"- {rule}" for rule in self.scoring_rules)
        parts.append("- The score must be consistent with the feedback above. Do not revise the feedback to fit the score.")
        parts.append("")

        parts.append("Return ONLY one JSON object with this shape, fields in this order:")
        parts.append(self.schema.render())
        return "\n".join(parts)


async def run_two_phase(
    client: AIClient,
    prompt: TwoPhasePrompt,
    *,
    system: str,
    temperature: float,
    max_tokens: int,
    model: str | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Send a rendered two-phase prompt and return the parsed JSON object.

    UpstreamError from the client and ParseError from extraction propagate.
    """
    log = logger or _module_logger
    messages = [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=prompt.render()),
    ]
    raw = await client.complete(
        messages,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        json_mode=True,
    )
    log.debug("two_phase_response chars=%d", len(raw or ""))
    return extract_json_object(raw)

import json
import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import ParseError, UpstreamError  # noqa: E402
from app.evaluation.answer_scoring import (  # noqa: E402
    AnswerScorer,
    JobContext,
    normalize_job_level,
    score_band,
)

FIXED_NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

QUESTION = "Tell me about a backend system you built."
ANSWER = (
    "I built a REST API in Node.js and used Redis for caching; I personally designed the schema "
    "and load-tested it to 5k rps."
)

SENIOR_RESPONSE = {
    "key_points_covered": ["REST API in Node.js", "Redis caching", "schema design", "load test to 5k rps"],
    "missing_elements": ["failure handling"],
    "matches_question": True,
    "completeness": "complete",
    "strengths": [
        "The candidate used Redis for caching, which shows awareness of read-heavy performance needs.",
        "The candidate personally designed the schema and load-tested the API to 5k rps.",
    ],
    "gaps": ["The answer does not explain how failures or cache invalidation were handled."],
    "criterion_match": {"matches_criterion": True, "criterion_reasoning": "Concrete technical ownership."},
    "score": 78,
    "reasoning": "Clear individual ownership with a measured outcome, as expected at senior level.",
    "recommendation": "proceed",
}


class FakeAIClient:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    async def complete(self, messages, *, model=None, temperature=0.2, max_tokens=800, json_mode=False):
        self.calls.append(
            {"messages": list(messages), "temperature": temperature, "max_tokens": max_tokens, "json_mode": json_mode}
        )
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return json.dumps(response) if isinstance(response, dict) else response


def _scorer(*responses):
    client = FakeAIClient(*responses)
    return AnswerScorer(client, clock=lambda: FIXED_NOW), client


class JobLevelTests(unittest.TestCase):
    def test_aliases_and_default(self):
        self.assertEqual(normalize_job_level("Senior"), "senior")
        self.assertEqual(normalize_job_level("lead"), "senior")
        self.assertEqual(normalize_job_level("intern"), "junior")
        self.assertEqual(normalize_job_level(None), "mid")
        self.assertEqual(normalize_job_level("wizard"), "mid")

    def test_score_bands(self):
        self.assertEqual(score_band(95), "exceptional")
        self.assertEqual(score_band(70), "good")
        self.assertEqual(score_band(12), "poor")


class AnswerScorerTests(unittest.IsolatedAsyncioTestCase):
    async def test_senior_answer_with_ownership(self):
        scorer, client = _scorer(SENIOR_RESPONSE)
        evaluation = await scorer.score_answer(
            QUESTION, ANSWER, "Technical", JobContext(job_level="senior", question_number=2, total_questions=5)
        )
        self.assertGreaterEqual(evaluation.score, 70)
        self.assertTrue(
            any(term in strength for strength in evaluation.strengths for term in ("Redis", "schema", "load-tested"))
        )
        self.assertEqual(evaluation.job_level, "senior")
        self.assertEqual(evaluation.question_number, 2)
        self.assertEqual(evaluation.criterion_match.assigned_criterion, "Technical")
        self.assertEqual(evaluation.answer_analysis.missing_elements, ["failure handling"])
        self.assertEqual(evaluation.source, "openai-realtime")
        self.assertEqual(evaluation.evaluated_at, FIXED_NOW)

        call = client.calls[0]
        self.assertTrue(call["json_mode"])
        self.assertEqual(call["temperature"], 0.3)
        self.assertEqual(call["max_tokens"], 1200)

    async def test_empty_answer_scores_zero_without_model_call(self):
        scorer, client = _scorer()
        evaluation = await scorer.score_answer(QUESTION, "   ", "Technical")
        self.assertEqual(evaluation.completeness, "off_topic")
        self.assertEqual(evaluation.score, 0)
        self.assertEqual(evaluation.strengths, [])
        self.assertEqual(evaluation.recommendation, "insufficient")
        self.assertEqual(evaluation.source, "empty-answer-rule")
        self.assertEqual(client.calls, [])

    async def test_scores_are_clamped_integers(self):
        for raw, expected in ((150, 100), (-5, 0), (72.6, 73), ("81", 81), ("high", 0), (None, 0), (True, 0)):
            scorer, _ = _scorer({**SENIOR_RESPONSE, "score": raw})
            evaluation = await scorer.score_answer(QUESTION, ANSWER, "Technical")
            self.assertEqual(evaluation.score, expected, msg=repr(raw))
            self.assertIsInstance(evaluation.score, int)

    async def test_non_finite_scores_fall_back_to_zero(self):
        for raw in ('{"score": 1e999, "completeness": "partial"}', '{"score": -Infinity}', '{"score": NaN}'):
            scorer, _ = _scorer(raw)
            evaluation = await scorer.score_answer(QUESTION, ANSWER, "Technical")
            self.assertEqual(evaluation.score, 0, msg=raw)

    async def test_missing_fields_get_safe_defaults(self):
        scorer, _ = _scorer({"score": 55})
        evaluation = await scorer.score_answer(QUESTION, ANSWER, None)
        self.assertEqual(evaluation.criterion, "General")
        self.assertEqual(evaluation.completeness, "partial")
        self.assertEqual(evaluation.strengths, [])
        self.assertEqual(evaluation.gaps, [])
        self.assertEqual(evaluation.recommendation, "proceed")
        self.assertTrue(evaluation.matches_question)

    async def test_prose_wrapped_response_is_parsed(self):
        wrapped = "Here is my evaluation:\n```json\n" + json.dumps(SENIOR_RESPONSE) + "\n```\nThanks."
        scorer, _ = _scorer(wrapped)
        evaluation = await scorer.score_answer(QUESTION, ANSWER, "Technical")
        self.assertEqual(evaluation.score, 78)

    async def test_invalid_json_surfaces_parse_error(self):
        scorer, _ = _scorer("I cannot evaluate this answer.")
        with self.assertRaises(ParseError) as ctx:
            await scorer.score_answer(QUESTION, ANSWER, "Technical")
        self.assertEqual(ctx.exception.status_code, 500)

    async def test_upstream_failure_propagates(self):
        scorer, _ = _scorer(UpstreamError("Model request failed: 429", upstream_status=429, details="rate limited"))
        with self.assertRaises(UpstreamError) as ctx:
            await scorer.score_answer(QUESTION, ANSWER, "Technical")
        self.assertEqual(ctx.exception.to_payload()["upstream_status"], 429)


class TwoPhasePromptTests(unittest.TestCase):
    def setUp(self):
        self.scorer = AnswerScorer(FakeAIClient(), clock=lambda: FIXED_NOW)

    def _render(self, level):
        return self.scorer.build_prompt(QUESTION, ANSWER, "Technical", JobContext(job_level=level)).render()

    def test_qualitative_steps_do_not_depend_on_level(self):
        prompts = [self._render(level) for level in ("junior", "mid", "senior")]
        prefixes = {prompt.split("STEP 3")[0] for prompt in prompts}
        self.assertEqual(len(prefixes), 1)
        self.assertNotIn("Senior candidate", prompts[2].split("STEP 3")[0])
        self.assertIn("Senior candidate", prompts[2].split("STEP 3")[1])

    def test_feedback_precedes_scoring(self):
        prompt = self._render("mid")
        self.assertLess(prompt.index("STEP 1"), prompt.index("STEP 2"))
        self.assertLess(prompt.index("STEP 2"), prompt.index("STEP 3"))
        schema = prompt[prompt.index("Return ONLY one JSON object"):]
        self.assertLess(schema.index('"strengths"'), schema.index('"score"'))
        self.assertLess(schema.index('"gaps"'), schema.index('"score"'))

    def test_criterion_focus_is_injected(self):
        prompt = self.scorer.build_prompt(QUESTION, ANSWER, "Team Player", JobContext()).render()
        self.assertIn("conflict resolution", prompt)


if __name__ == "__main__":
    unittest.main()

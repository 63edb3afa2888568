import logging
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import UpstreamError  # noqa: E402
from app.evaluation.criteria import evaluation_focus, validate_selection  # noqa: E402
from app.evaluation.criterion_resolver import (  # noqa: E402
    CriterionResolver,
    FirstEntryFallback,
    LLMCriterionClassifier,
    build_mapping_prompt,
    match_label,
)

CATALOG = ["Technical", "Team Player", "Culture Fit"]


class FakeAIClient:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    async def complete(self, messages, *, model=None, temperature=0.2, max_tokens=800, json_mode=False):
        self.calls.append({"messages": list(messages), "temperature": temperature, "max_tokens": max_tokens})
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    def prompt(self, index=0):
        return self.calls[index]["messages"][-1].content


class StaticClassifier:
    def __init__(self, suggestion):
        self.suggestion = suggestion
        self.calls = 0

    async def classify(self, question, catalog):
        self.calls += 1
        return self.suggestion


class MatchLabelTests(unittest.TestCase):
    def test_exact_match_is_case_insensitive(self):
        self.assertEqual(match_label("team player", CATALOG), "Team Player")

    def test_quotes_and_trailing_period_are_ignored(self):
        self.assertEqual(match_label('"Culture Fit".', CATALOG), "Culture Fit")

    def test_substring_either_direction(self):
        self.assertEqual(match_label("Technical Skills", CATALOG), "Technical")
        self.assertEqual(match_label("Team", CATALOG), "Team Player")

    def test_unknown_label(self):
        self.assertIsNone(match_label("Leadership", CATALOG))
        self.assertIsNone(match_label("", CATALOG))


class CriterionResolverTests(unittest.IsolatedAsyncioTestCase):
    async def test_team_conflict_question_resolves_to_team_player(self):
        client = FakeAIClient("Team Player")
        resolver = CriterionResolver(LLMCriterionClassifier(client))
        assignment = await resolver.resolve("How do you handle team conflicts?", CATALOG, explicit="")
        self.assertEqual(assignment.resolved_label, "Team Player")
        self.assertEqual(assignment.source, "classifier")
        self.assertEqual(client.calls[0]["temperature"], 0.1)
        self.assertEqual(client.calls[0]["max_tokens"], 50)
        self.assertIn("- Team Player", client.prompt())

    async def test_explicit_criterion_short_circuits(self):
        classifier = StaticClassifier("Technical")
        resolver = CriterionResolver(classifier)
        assignment = await resolver.resolve("Anything", CATALOG, explicit="Leadership")
        self.assertEqual(assignment.resolved_label, "Leadership")
        self.assertEqual(assignment.source, "explicit")
        self.assertEqual(classifier.calls, 0)

    async def test_general_is_not_explicit(self):
        resolver = CriterionResolver(StaticClassifier("Culture Fit"))
        assignment = await resolver.resolve("Why us?", CATALOG, explicit="General")
        self.assertEqual(assignment.resolved_label, "Culture Fit")

    async def test_general_is_not_explicit_in_any_case(self):
        for explicit in ("general", " GENERAL "):
            resolver = CriterionResolver(StaticClassifier("Team Player"))
            assignment = await resolver.resolve("How do you handle conflict?", CATALOG, explicit=explicit)
            self.assertEqual(assignment.resolved_label, "Team Player", msg=explicit)
            self.assertNotEqual(assignment.source, "explicit")

    async def test_empty_catalog_resolves_to_general(self):
        classifier = StaticClassifier("Technical")
        assignment = await CriterionResolver(classifier).resolve("Anything", [])
        self.assertEqual(assignment.resolved_label, "General")
        self.assertEqual(assignment.source, "general")
        self.assertEqual(classifier.calls, 0)

    async def test_unknown_suggestion_falls_back_to_first_entry(self):
        assignment = await CriterionResolver(StaticClassifier("Leadership")).resolve("Lead a team?", CATALOG)
        self.assertEqual(assignment.resolved_label, "Technical")
        self.assertEqual(assignment.source, "fallback")

    async def test_classifier_failure_falls_back_and_logs(self):
        client = FakeAIClient(UpstreamError("Model request failed: 500", upstream_status=500))
        logger = logging.getLogger("tests.criterion")
        resolver = CriterionResolver(LLMCriterionClassifier(client), logger=logger)
        with self.assertLogs(logger, level="WARNING") as captured:
            assignment = await resolver.resolve("Question", CATALOG)
        self.assertEqual(assignment.resolved_label, "Technical")
        self.assertTrue(any("criterion_classifier_failed" in line for line in captured.output))

    async def test_resolution_is_always_a_catalog_member(self):
        suggestions = ["", None, "Technical", "technical.", "Nonsense", "Culture", "TEAM PLAYER"]
        questions = ["Tell me about Python", "Conflicts?", "Why this company?", ""]
        for suggestion in suggestions:
            resolver = CriterionResolver(StaticClassifier(suggestion))
            for question in questions:
                assignment = await resolver.resolve(question, CATALOG)
                self.assertIn(assignment.resolved_label, CATALOG)

    async def test_catalog_is_cleaned_before_use(self):
        resolver = CriterionResolver(None)
        assignment = await resolver.resolve("Q", ["  ", " Communication ", "Communication"])
        self.assertEqual(assignment.resolved_label, "Communication")


class FallbackPolicyTests(unittest.TestCase):
    def test_first_entry(self):
        self.assertEqual(FirstEntryFallback().choose(["B", "A"]), "B")

    def test_mapping_prompt_lists_only_catalog(self):
        prompt = build_mapping_prompt("Q?", ["Alpha", "Beta"])
        self.assertIn("- Alpha\n- Beta", prompt)
        self.assertIn("You MUST choose from ONLY the available criteria", prompt)


class CriteriaCatalogTests(unittest.TestCase):
    def test_selection_rules(self):
        self.assertIsNone(validate_selection(["Technical Skills", "Leadership"]))
        self.assertEqual(validate_selection([]), "Please select at least one evaluation criterion")
        self.assertEqual(
            validate_selection(["Technical Skills"] * 6),
            "Maximum 5 criteria can be selected",
        )
        self.assertEqual(validate_selection(["Vibes"]), "Invalid criteria: Vibes")

    def test_focus_lookup(self):
        self.assertIn("collaboration", evaluation_focus("Team Player"))
        self.assertEqual(evaluation_focus("Unknown"), "general relevance and completeness")


if __name__ == "__main__":
    unittest.main()

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import ParseError  # noqa: E402
from app.evaluation.json_output import extract_json_object  # noqa: E402
from app.evaluation.two_phase import OutputSchema  # noqa: E402


class ExtractJsonObjectTests(unittest.TestCase):
    def test_plain_object(self):
        self.assertEqual(extract_json_object('{"score": 70}'), {"score": 70})

    def test_leading_and_trailing_prose(self):
        raw = 'Sure! Here is the result: {"score": 64, "strengths": ["Clear"]} Let me know if you need more.'
        self.assertEqual(extract_json_object(raw), {"score": 64, "strengths": ["Clear"]})

    def test_markdown_fence(self):
        raw = '```json\n{"completeness": "partial"}\n```'
        self.assertEqual(extract_json_object(raw), {"completeness": "partial"})

    def test_braces_inside_strings_do_not_end_the_object(self):
        raw = 'note {"reasoning": "uses {curly} braces and \\"quotes\\"", "score": 50} end'
        self.assertEqual(
            extract_json_object(raw),
            {"reasoning": 'uses {curly} braces and "quotes"', "score": 50},
        )

    def test_skips_invalid_candidates(self):
        raw = '{not json} then {"score": 12}'
        self.assertEqual(extract_json_object(raw), {"score": 12})

    def test_unclosed_brace_in_prose_is_skipped(self):
        raw = 'Here is my evaluation { note: see below\n{"score": 80}'
        self.assertEqual(extract_json_object(raw), {"score": 80})

    def test_no_object_raises_parse_error(self):
        for raw in ("", "no json here", "[1, 2, 3]", '{"unterminated": '):
            with self.assertRaises(ParseError, msg=repr(raw)) as ctx:
                extract_json_object(raw)
            self.assertEqual(ctx.exception.code, "invalid_model_json")


class OutputSchemaTests(unittest.TestCase):
    def test_qualitative_keys_render_before_scoring_keys(self):
        schema = OutputSchema(qualitative={"strengths": "[string]"}, scoring={"score": "integer"})
        self.assertEqual(schema.render(), '{\n  "strengths": [string],\n  "score": integer\n}')


if __name__ == "__main__":
    unittest.main()

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.normalize.normalize_resume import extract_basic_skills, normalize_resume  # noqa: E402
from app.normalize.utils import section_key, split_list_items, strip_bullet_prefix  # noqa: E402


class SkillDictionaryTests(unittest.TestCase):
    def test_skills_follow_first_appearance_without_duplicates(self):
        text = "Worked with Docker and python. Later moved Python services to AWS with Docker."
        self.assertEqual(extract_basic_skills(text), ["Docker", "Python", "AWS"])

    def test_short_skills_are_case_sensitive(self):
        self.assertNotIn("Go", extract_basic_skills("I like to go hiking and ai is overrated"))
        self.assertNotIn("AI", extract_basic_skills("I like to go hiking and ai is overrated"))
        self.assertIn("Go", extract_basic_skills("Services written in Go"))

    def test_java_does_not_match_javascript(self):
        self.assertEqual(extract_basic_skills("JavaScript only"), ["JavaScript"])


class NormalizeHelpersTests(unittest.TestCase):
    def test_section_aliases(self):
        self.assertEqual(section_key("Work Experience:"), "experience")
        self.assertEqual(section_key("TECHNICAL SKILLS"), "skills")
        self.assertIsNone(section_key("Built APIs"))

    def test_list_item_splitting(self):
        self.assertEqual(split_list_items("- Python, Go; Rust | SQL."), ["Python", "Go", "Rust", "SQL"])
        self.assertEqual(strip_bullet_prefix("3. Led migration"), "Led migration")


class NormalizeResumeTests(unittest.TestCase):
    def test_sections_become_structured_fields(self):
        text = (
            "John Smith\n"
            "john@example.com | +1 415 555 0100\n"
            "github.com/jsmith\n"
            "\n"
            "EXPERIENCE\n"
            "Backend Engineer at Globex  Mar 2019 - Present\n"
            "- Built billing APIs\n"
            "Developer at Initech  2016 - 2019\n"
            "- Maintained reports\n"
            "\n"
            "EDUCATION\n"
            "B.Tech in Computer Science\n"
            "Pune Institute of Technology 2012 - 2016\n"
            "\n"
            "CERTIFICATIONS\n"
            "AWS Certified Developer\n"
            "\n"
            "LANGUAGES\n"
            "English (fluent), Hindi\n"
        )
        parsed = normalize_resume(text)

        self.assertEqual(parsed.name, "John Smith")
        self.assertEqual(parsed.email, "john@example.com")
        self.assertEqual(parsed.phone, "+1 415 555 0100")
        self.assertEqual(parsed.links, ["github.com/jsmith"])

        self.assertEqual(len(parsed.experience), 2)
        first = parsed.experience[0]
        self.assertEqual(first.title, "Backend Engineer")
        self.assertEqual(first.company, "Globex")
        self.assertEqual(first.start_date, "Mar 2019")
        self.assertEqual(first.end_date, "Present")
        self.assertEqual(first.description, "Built billing APIs")

        self.assertEqual(len(parsed.education), 1)
        self.assertEqual(parsed.education[0].field, "Computer Science")
        self.assertEqual(parsed.education[0].start_year, "2012")
        self.assertEqual(parsed.education[0].end_year, "2016")

        self.assertEqual(parsed.certifications, ["AWS Certified Developer"])
        self.assertEqual(parsed.languages, ["English", "Hindi"])
        self.assertIn("AWS", parsed.skills)

    def test_languages_detected_without_section(self):
        parsed = normalize_resume("Engineer fluent in English and German, working with Python daily.")
        self.assertEqual(parsed.languages, ["English", "German"])


if __name__ == "__main__":
    unittest.main()

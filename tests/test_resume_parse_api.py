import dataclasses
import sys
import tempfile
import unittest
import uuid
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.main import app  # noqa: E402
from app.services import resume_service  # noqa: E402
from app.storage import db  # noqa: E402

PARSE_URL = "/v1/resumes/parse"

RESUME_TEXT = (
    "Jane Doe\n"
    "Pune, India\n"
    "jane.doe@example.com | +91 98765 43210\n"
    "\n"
    "SKILLS\n"
    "Python, FastAPI, PostgreSQL\n"
    "\n"
    "EXPERIENCE\n"
    "Senior Engineer at Acme Corp  Jan 2020 - Present\n"
    "- Built REST API services in Python\n"
)


class ResumeParseApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        limiter.reset()
        self._tmp = tempfile.TemporaryDirectory()
        self._db_patch = patch.object(db, "_get_db_path", return_value=Path(self._tmp.name) / "parse.db")
        self._db_patch.start()
        self._platform_patch = patch("app.ai.factory.get_platform_ai_client", return_value=None)
        self._platform_patch.start()
        db.init_db()

    def tearDown(self):
        self._platform_patch.stop()
        self._db_patch.stop()
        self._tmp.cleanup()

    def test_missing_file(self):
        response = self.client.post(PARSE_URL, data={"candidateId": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Resume file is required"})

    def test_malformed_upload_field_uses_error_shape(self):
        response = self.client.post(PARSE_URL, data={"file": "not-a-file"})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(set(body), {"error"})
        self.assertIn("file", body["error"])

    def test_unsupported_type(self):
        response = self.client.post(PARSE_URL, files={"file": ("photo.png", b"\x89PNG", "image/png")})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid file type", response.json()["error"])

    def test_oversized_upload(self):
        small_limit = dataclasses.replace(settings, max_upload_bytes=1024 * 1024)
        with patch("app.api.v1.resumes.settings", small_limit):
            response = self.client.post(
                PARSE_URL,
                files={"file": ("resume.txt", b"a" * (1024 * 1024 + 1), "text/plain")},
            )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "File too large. Maximum size is 1MB."})

    def test_plain_text_resume_is_parsed_and_stored(self):
        candidate_id = db.create_candidate(candidate_id=str(uuid.uuid4()))
        application_id = db.create_application(job_id=None, candidate_id=candidate_id)

        response = self.client.post(
            PARSE_URL,
            files={"file": ("resume.txt", RESUME_TEXT.encode("utf-8"), "text/plain")},
            data={"candidateId": candidate_id, "applicationId": application_id},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        parsed = body["parsed"]
        self.assertEqual(parsed["name"], "Jane Doe")
        self.assertEqual(parsed["email"], "jane.doe@example.com")
        self.assertIn("Python", parsed["skills"])
        self.assertEqual(parsed["experience"][0]["startDate"], "Jan 2020")
        self.assertTrue(parsed["rawText"].startswith("Jane Doe"))

        self.assertTrue(db.get_application(application_id).resume_text.startswith("Jane Doe"))
        candidate = db.get_candidate(candidate_id)
        self.assertEqual(candidate["full_name"], "Jane Doe")
        self.assertEqual(candidate["phone"], "+91 98765 43210")

    def test_non_uuid_candidate_is_not_updated(self):
        with patch.object(resume_service.db, "update_candidate_profile") as update:
            response = self.client.post(
                PARSE_URL,
                files={"file": ("resume.txt", RESUME_TEXT.encode("utf-8"), "text/plain")},
                data={"candidateId": "candidate-42"},
            )
        self.assertEqual(response.status_code, 200)
        update.assert_not_called()

    def test_corrupted_pdf_returns_empty_fields(self):
        response = self.client.post(
            PARSE_URL,
            files={"file": ("resume.pdf", b"%PDF-1.4\n\x00\x01 broken", "application/pdf")},
        )
        self.assertEqual(response.status_code, 200)
        parsed = response.json()["parsed"]
        self.assertEqual(parsed["rawText"], "")
        self.assertEqual(parsed["skills"], [])
        self.assertEqual(parsed["experience"], [])
        self.assertNotIn("name", parsed)

    def test_unexpected_failure_still_returns_empty_document(self):
        with patch("app.api.v1.resumes.parse_uploaded_resume", side_effect=RuntimeError("boom")):
            with self.assertLogs("app.api.v1.resumes", level="ERROR"):
                response = self.client.post(
                    PARSE_URL,
                    files={"file": ("resume.txt", b"Jane Doe", "text/plain")},
                )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["parsed"]["rawText"], "")


class UploadValidationTests(unittest.TestCase):
    def test_mime_types(self):
        self.assertTrue(resume_service.is_allowed_mime_type("application/pdf"))
        self.assertTrue(resume_service.is_allowed_mime_type("text/plain; charset=utf-8"))
        self.assertTrue(resume_service.is_allowed_mime_type(""))
        self.assertFalse(resume_service.is_allowed_mime_type("image/png"))

    def test_uuid_detection(self):
        self.assertTrue(resume_service.is_uuid(str(uuid.uuid4())))
        self.assertFalse(resume_service.is_uuid("candidate-42"))
        self.assertFalse(resume_service.is_uuid(None))


if __name__ == "__main__":
    unittest.main()

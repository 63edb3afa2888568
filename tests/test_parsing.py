import io
import logging
import sys
import unittest
import zipfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.parsing.parse import clean_text, extract_text, parse_resume  # noqa: E402

RESUME_TEXT = (
    "Jane Doe\n"
    "Pune, India\n"
    "jane.doe@example.com | +91 98765 43210\n"
    "linkedin.com/in/janedoe\n"
    "\n"
    "SUMMARY\n"
    "Backend engineer building payment APIs.\n"
    "\n"
    "SKILLS\n"
    "Python, FastAPI, PostgreSQL\n"
    "\n"
    "EXPERIENCE\n"
    "Senior Engineer at Acme Corp  Jan 2020 - Present\n"
    "- Built REST API services in Python\n"
)


def _docx_bytes(paragraphs):
    body = "".join(
        f'<w:p><w:r><w:t>{text}</w:t></w:r></w:p>' for text in paragraphs
    )
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("word/document.xml", document)
    return buffer.getvalue()


class CleanTextTests(unittest.TestCase):
    def test_removes_control_and_invisible_characters(self):
        raw = "Py\x00thon\u200b dev\ufeff\r\nline\x07 two"
        self.assertEqual(clean_text(raw), "Python dev\nline two")

    def test_expands_ligatures_and_collapses_blank_lines(self):
        raw = "\ufb01nance\n\n\n\n\ufb02ow"
        self.assertEqual(clean_text(raw), "finance\n\nflow")

    def test_drops_pdf_operator_lines(self):
        raw = "Summary\n12 0 obj\nendobj\nBT\nReal content"
        self.assertEqual(clean_text(raw), "Summary\nReal content")

    def test_is_idempotent(self):
        samples = [
            "",
            "plain",
            "a\r\n\r\n\r\n\r\nb\x0c c",
            "\ufb03\u00ad x \n\n\n endstream\n y",
            "  leading and trailing  \n\n",
            "xref\n\n\ntrailer\nstartxref\n%%EOF",
        ]
        for sample in samples:
            once = clean_text(sample)
            self.assertEqual(clean_text(once), once, msg=repr(sample))


class ExtractTextTests(unittest.TestCase):
    def test_plain_text_by_mime_substring(self):
        text, warnings = extract_text(b"hello\r\nworld", "text/plain; charset=utf-8")
        self.assertEqual(text, "hello\nworld")
        self.assertEqual(warnings, [])

    def test_unknown_mime_is_read_as_text(self):
        text, _ = extract_text(b"some text", "")
        self.assertEqual(text, "some text")

    def test_docx_xml_fallback(self):
        content = _docx_bytes(["Jane Doe", "Python developer"])
        text, warnings = extract_text(
            content, "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )
        self.assertEqual(text, "Jane Doe\nPython developer")
        self.assertTrue(warnings)

    def test_legacy_doc_reads_printable_runs(self):
        content = b"\xd0\xcf\x11\xe0\x00\x00Senior Python developer\x00\x01\x02Built payment systems\x00"
        text, warnings = extract_text(content, "application/msword")
        self.assertIn("Senior Python developer", text)
        self.assertIn("Built payment systems", text)
        self.assertTrue(warnings)


class ParseResumeTests(unittest.TestCase):
    def test_corrupted_pdf_returns_empty_document(self):
        parsed = parse_resume(b"%PDF-1.4\n\x00\x01\x02 this is not really a pdf", "application/pdf")
        self.assertEqual(parsed.raw_text, "")
        self.assertEqual(parsed.skills, [])
        self.assertTrue(parsed.is_fallback)

    def test_garbage_bytes_never_raise(self):
        for mime in ("application/pdf", "application/msword", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"):
            parsed = parse_resume(b"\x89\x00\xff\xfe garbage", mime)
            self.assertEqual(parsed.raw_text, "", msg=mime)

    def test_short_text_is_treated_as_unreadable(self):
        parsed = parse_resume(b"Too short", "text/plain")
        self.assertTrue(parsed.is_fallback)
        self.assertIn("Could not extract meaningful text from resume.", parsed.parsing_warnings)

    def test_plain_resume_is_structured(self):
        parsed = parse_resume(RESUME_TEXT.encode("utf-8"), "text/plain")
        self.assertEqual(parsed.name, "Jane Doe")
        self.assertEqual(parsed.email, "jane.doe@example.com")
        self.assertEqual(parsed.location, "Pune, India")
        self.assertIn("Python", parsed.skills)
        self.assertIn("FastAPI", parsed.skills)
        self.assertEqual(len(parsed.experience), 1)

    def test_transport_form_uses_camel_case_and_truncates(self):
        parsed = parse_resume(RESUME_TEXT.encode("utf-8"), "text/plain")
        payload = parsed.to_transport(20)
        self.assertEqual(len(payload["rawText"]), 20)
        self.assertIn("startDate", payload["experience"][0])
        self.assertNotIn("parsing_warnings", payload)

    def test_logs_extraction_failure_on_injected_logger(self):
        logger = logging.getLogger("tests.parsing")
        docx_mime = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        with self.assertLogs(logger, level="WARNING") as captured:
            parse_resume(b"not a zip archive", docx_mime, logger=logger)
        self.assertTrue(any("resume_extraction_failed" in line for line in captured.output))


if __name__ == "__main__":
    unittest.main()

import sqlite3
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.encryption import DecryptionError, decrypt, encrypt  # noqa: E402
from app.core.errors import CredentialError, NotFoundError, StorageError, ValidationError  # noqa: E402
from app.services import credentials  # noqa: E402
from app.storage.db import CompanyCredentialsRecord  # noqa: E402


class EncryptionTests(unittest.TestCase):
    def test_round_trip_uses_three_part_layout(self):
        sealed = encrypt("sk-test-123", secret="unit-secret")
        self.assertEqual(len(sealed.split(":")), 3)
        self.assertNotIn("sk-test-123", sealed)
        self.assertEqual(decrypt(sealed, secret="unit-secret"), "sk-test-123")

    def test_each_encryption_uses_a_fresh_iv(self):
        self.assertNotEqual(encrypt("same", secret="unit-secret"), encrypt("same", secret="unit-secret"))

    def test_wrong_key_is_rejected(self):
        sealed = encrypt("sk-test-123", secret="unit-secret")
        with self.assertRaises(DecryptionError):
            decrypt(sealed, secret="another-secret")

    def test_malformed_input_is_rejected(self):
        for value in ("plain-text", "a:b", "!!:??:**"):
            with self.assertRaises(DecryptionError, msg=value):
                decrypt(value, secret="unit-secret")

    def test_empty_values_pass_through(self):
        self.assertEqual(encrypt("", secret="unit-secret"), "")
        self.assertEqual(decrypt("", secret="unit-secret"), "")


class UnwrapApiKeyTests(unittest.TestCase):
    def test_plain_key(self):
        self.assertEqual(credentials.unwrap_api_key("  sk-plain  "), "sk-plain")

    def test_json_wrapped_key(self):
        self.assertEqual(credentials.unwrap_api_key('{"value": "sk-wrapped"}'), "sk-wrapped")
        self.assertEqual(credentials.unwrap_api_key('{"apiKey": "sk-camel"}'), "sk-camel")
        self.assertEqual(credentials.unwrap_api_key('{"api_key": "sk-snake"}'), "sk-snake")

    def test_unrecognised_json_is_returned_unchanged(self):
        self.assertEqual(credentials.unwrap_api_key('{"other": 1}'), '{"other": 1}')
        self.assertEqual(credentials.unwrap_api_key("{broken"), "{broken")


def _record(api_key, project_id=None):
    return CompanyCredentialsRecord(
        company_id="company-1",
        name="Acme",
        encrypted_api_key=api_key,
        encrypted_project_id=project_id,
    )


class LoadCompanyCredentialsTests(unittest.TestCase):
    def _load(self, record=None, side_effect=None):
        with patch.object(credentials, "get_company_credentials", return_value=record, side_effect=side_effect):
            return credentials.load_company_credentials("company-1")

    def test_missing_company_id(self):
        with self.assertRaises(ValidationError) as ctx:
            credentials.load_company_credentials("  ")
        self.assertEqual(ctx.exception.code, "missing_company_id")

    def test_unknown_company(self):
        with self.assertRaises(NotFoundError) as ctx:
            self._load(None)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_company_without_key(self):
        with self.assertRaises(CredentialError) as ctx:
            self._load(_record(None))
        self.assertEqual(ctx.exception.code, "credentials_missing")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_undecryptable_key(self):
        with self.assertRaises(CredentialError) as ctx:
            self._load(_record("not:valid:cipher"))
        self.assertEqual(ctx.exception.code, "credentials_decrypt_failed")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_database_failure(self):
        with self.assertRaises(StorageError):
            self._load(side_effect=sqlite3.OperationalError("no such table: companies"))

    def test_decrypts_key_and_project(self):
        loaded = self._load(_record(encrypt('{"value": "sk-live"}'), encrypt("proj_42")))
        self.assertEqual(loaded.api_key, "sk-live")
        self.assertEqual(loaded.project_id, "proj_42")

    def test_plaintext_project_id_is_accepted(self):
        loaded = self._load(_record(encrypt("sk-live"), "proj_plain"))
        self.assertEqual(loaded.project_id, "proj_plain")


if __name__ == "__main__":
    unittest.main()

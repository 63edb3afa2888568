from __future__ import annotations

import json
import logging
import sqlite3

from app.ai.types import ModelCredentials
from app.core.encryption import DecryptionError, decrypt
from app.core.errors import CredentialError, NotFoundError, StorageError, ValidationError
from app.storage.db import get_company_credentials

logger = logging.getLogger(__name__)

_WRAPPED_KEY_FIELDS = ("value", "apiKey", "api_key", "key")


def unwrap_api_key(decrypted: str) -> str:
    """Keys saved by older dashboards are JSON objects around the actual key."""
    value = decrypted.strip()
    if not value.startswith("{"):
        return value
    try:
        payload = json.loads(value)
    except ValueError:
        return value
    if not isinstance(payload, dict):
        return value
    for field_name in _WRAPPED_KEY_FIELDS:
        candidate = payload.get(field_name)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return value


def _project_id(raw: str | None) -> str | None:
    if not raw:
        return None
    try:
        return decrypt(raw).strip() or None
    except DecryptionError:
        return raw.strip() or None


def load_company_credentials(company_id: str | None) -> ModelCredentials:
    company_id = (company_id or "").strip()
    if not company_id:
        raise ValidationError("companyId is required to load model credentials", code="missing_company_id")

    try:
        record = get_company_credentials(company_id)
    except sqlite3.Error as exc:
        logger.error("company_credentials_query_failed company_id=%s error=%s", company_id, exc)
        raise StorageError("Failed to load company credentials") from exc

    if record is None:
        raise NotFoundError("Company not found", code="company_not_found")
    if not record.encrypted_api_key:
        raise CredentialError(
            "OpenAI credentials are not configured for this company",
            code="credentials_missing",
        )

    try:
        api_key = unwrap_api_key(decrypt(record.encrypted_api_key))
    except DecryptionError as exc:
        logger.error("company_credentials_decrypt_failed company_id=%s", company_id)
        raise CredentialError(
            "Failed to decrypt company OpenAI credentials",
            code="credentials_decrypt_failed",
            status_code=500,
        ) from exc
    if not api_key:
        raise CredentialError(
            "OpenAI credentials are not configured for this company",
            code="credentials_missing",
        )

    return ModelCredentials(api_key=api_key, project_id=_project_id(record.encrypted_project_id))

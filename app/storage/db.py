from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.config import settings

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class CompanyCredentialsRecord:
    company_id: str
    name: str
    encrypted_api_key: str | None
    encrypted_project_id: str | None


@dataclass(frozen=True)
class ApplicationRecord:
    application_id: str
    job_id: str | None
    candidate_id: str | None
    resume_text: str | None = None
    qualification_score: int | None = None
    is_qualified: bool | None = None
    qualification_explanations: dict[str, Any] | None = None
    answer_evaluations: list[dict[str, Any]] = field(default_factory=list)
    updated_at: str | None = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.database_path)


def _connect() -> sqlite3.Connection:
    return sqlite3.connect(_get_db_path())


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def _load_json(raw: Any, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    if isinstance(raw, (dict, list)):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


def init_db() -> None:
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS companies (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                openai_service_account_key TEXT,
                openai_project_id TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS jobs (
                id TEXT PRIMARY KEY,
                company_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                level TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS job_rounds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id TEXT NOT NULL,
                configuration TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS candidates (
                id TEXT PRIMARY KEY,
                full_name TEXT,
                email TEXT,
                phone TEXT,
                location TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS applications (
                id TEXT PRIMARY KEY,
                job_id TEXT,
                candidate_id TEXT,
                resume_text TEXT,
                qualification_score INTEGER,
                is_qualified INTEGER,
                qualification_explanations TEXT,
                answer_evaluations TEXT,
                updated_at TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS evaluation_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                model TEXT NOT NULL,
                company_id TEXT,
                status TEXT NOT NULL,
                error_code TEXT,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_evaluation_runs_created_at
            ON evaluation_runs (created_at)
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_job_rounds_job_id
            ON job_rounds (job_id)
            """
        )
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        conn.commit()


def create_company(
    *,
    name: str,
    encrypted_api_key: str | None,
    encrypted_project_id: str | None = None,
    company_id: str | None = None,
) -> str:
    company_id = company_id or str(uuid.uuid4())
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO companies (id, name, openai_service_account_key, openai_project_id, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (company_id, name, encrypted_api_key, encrypted_project_id, _utc_now()),
        )
        conn.commit()
    return company_id


def create_job(
    *,
    company_id: str,
    title: str,
    description: str = "",
    level: str | None = None,
    job_id: str | None = None,
) -> str:
    job_id = job_id or str(uuid.uuid4())
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO jobs (id, company_id, title, description, level, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (job_id, company_id, title, description, level, _utc_now()),
        )
        conn.commit()
    return job_id


def add_job_round(*, job_id: str, configuration: dict[str, Any]) -> None:
    with _connect() as conn:
        conn.execute(
            "INSERT INTO job_rounds (job_id, configuration) VALUES (?, ?)",
            (job_id, json.dumps(configuration, ensure_ascii=False)),
        )
        conn.commit()


def create_candidate(
    *,
    full_name: str | None = None,
    email: str | None = None,
    candidate_id: str | None = None,
) -> str:
    candidate_id = candidate_id or str(uuid.uuid4())
    with _connect() as conn:
        conn.execute(
            "INSERT INTO candidates (id, full_name, email) VALUES (?, ?, ?)",
            (candidate_id, full_name, email),
        )
        conn.commit()
    return candidate_id


def create_application(
    *,
    job_id: str | None,
    candidate_id: str | None,
    application_id: str | None = None,
) -> str:
    application_id = application_id or str(uuid.uuid4())
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO applications (id, job_id, candidate_id, answer_evaluations, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (application_id, job_id, candidate_id, "[]", _utc_now()),
        )
        conn.commit()
    return application_id


def get_company_credentials(company_id: str) -> CompanyCredentialsRecord | None:
    with _connect() as conn:
        cur = conn.execute(
            """
            SELECT id, name, openai_service_account_key, openai_project_id
            FROM companies
            WHERE id = ?
            LIMIT 1
            """,
            (company_id,),
        )
        row = cur.fetchone()
    if row is None:
        return None
    return CompanyCredentialsRecord(
        company_id=row[0],
        name=row[1],
        encrypted_api_key=row[2],
        encrypted_project_id=row[3],
    )


def get_round_criteria(application_id: str) -> list[str]:
    """Union of configured criteria across the application's job rounds, first-seen order."""
    with _connect() as conn:
        cur = conn.execute(
            """
            SELECT jr.configuration
            FROM applications a
            JOIN job_rounds jr ON jr.job_id = a.job_id
            WHERE a.id = ?
            ORDER BY jr.id
            """,
            (application_id,),
        )
        rows = cur.fetchall()

    criteria: list[str] = []
    for (raw_configuration,) in rows:
        configuration = _load_json(raw_configuration, {})
        if not isinstance(configuration, dict):
            continue
        for item in configuration.get("criteria") or []:
            if isinstance(item, str) and item.strip() and item not in criteria:
                criteria.append(item)
    return criteria


def get_application(application_id: str) -> ApplicationRecord | None:
    with _connect() as conn:
        cur = conn.execute(
            """
            SELECT id, job_id, candidate_id, resume_text, qualification_score, is_qualified,
                   qualification_explanations, answer_evaluations, updated_at
            FROM applications
            WHERE id = ?
            """,
            (application_id,),
        )
        row = cur.fetchone()
        if row is None:
            return None
        data = _row_to_dict(cur, row)
    return ApplicationRecord(
        application_id=data["id"],
        job_id=data["job_id"],
        candidate_id=data["candidate_id"],
        resume_text=data["resume_text"],
        qualification_score=data["qualification_score"],
        is_qualified=None if data["is_qualified"] is None else bool(data["is_qualified"]),
        qualification_explanations=_load_json(data["qualification_explanations"], None),
        answer_evaluations=_load_json(data["answer_evaluations"], []),
        updated_at=data["updated_at"],
    )


def get_candidate(candidate_id: str) -> dict[str, Any] | None:
    with _connect() as conn:
        cur = conn.execute(
            "SELECT id, full_name, email, phone, location FROM candidates WHERE id = ?",
            (candidate_id,),
        )
        row = cur.fetchone()
        return _row_to_dict(cur, row) if row else None


def save_resume_text(application_id: str, resume_text: str) -> bool:
    with _connect() as conn:
        cur = conn.execute(
            "UPDATE applications SET resume_text = ?, updated_at = ? WHERE id = ?",
            (resume_text, _utc_now(), application_id),
        )
        conn.commit()
        return bool(cur.rowcount)


def update_candidate_profile(
    candidate_id: str,
    *,
    full_name: str | None = None,
    phone: str | None = None,
    location: str | None = None,
) -> bool:
    updates: list[str] = []
    params: list[Any] = []
    for column, value in (("full_name", full_name), ("phone", phone), ("location", location)):
        if value:
            updates.append(f"{column} = ?")
            params.append(value)
    if not updates:
        return False
    params.append(candidate_id)
    with _connect() as conn:
        cur = conn.execute(f"UPDATE candidates SET {', '.join(updates)} WHERE id = ?", params)
        conn.commit()
        return bool(cur.rowcount)


def append_answer_evaluation(application_id: str, evaluation: dict[str, Any]) -> bool:
    with _connect() as conn:
        # one transaction so concurrent appends to the same row do not drop entries
        conn.execute("BEGIN IMMEDIATE")
        cur = conn.execute("SELECT answer_evaluations FROM applications WHERE id = ?", (application_id,))
        row = cur.fetchone()
        if row is None:
            conn.rollback()
            return False
        evaluations = _load_json(row[0], [])
        if not isinstance(evaluations, list):
            evaluations = []
        evaluations.append(evaluation)
        conn.execute(
            "UPDATE applications SET answer_evaluations = ?, updated_at = ? WHERE id = ?",
            (json.dumps(evaluations, ensure_ascii=False), _utc_now(), application_id),
        )
        conn.commit()
        return True


def save_resume_evaluation(
    application_id: str,
    *,
    score: int,
    qualified: bool,
    explanations: dict[str, Any],
) -> bool:
    with _connect() as conn:
        cur = conn.execute(
            """
            UPDATE applications
            SET qualification_score = ?, is_qualified = ?, qualification_explanations = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                int(score),
                1 if qualified else 0,
                json.dumps(explanations, ensure_ascii=False),
                _utc_now(),
                application_id,
            ),
        )
        conn.commit()
        return bool(cur.rowcount)


def log_evaluation_run(
    *,
    run_id: str,
    kind: str,
    model: str,
    company_id: str | None,
    status: str,
    error_code: str | None = None,
    latency_ms: int | None = None,
) -> None:
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO evaluation_runs (
                created_at, run_id, kind, model, company_id, status, error_code, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (_utc_now(), run_id, kind, model, company_id, status, error_code, latency_ms),
        )
        conn.commit()


def get_evaluation_runs(limit: int = 20) -> list[dict[str, Any]]:
    with _connect() as conn:
        cur = conn.execute(
            """
            SELECT created_at, run_id, kind, model, company_id, status, error_code, latency_ms
            FROM evaluation_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = cur.fetchall()
        return [_row_to_dict(cur, row) for row in rows]


def purge_old_runs() -> int:
    retention = max(1, int(settings.eval_run_retention_days))
    with _connect() as conn:
        cur = conn.execute(
            "DELETE FROM evaluation_runs WHERE created_at < datetime('now', ?)",
            (f"-{retention} days",),
        )
        conn.commit()
        return int(cur.rowcount or 0)

from __future__ import annotations

import argparse
import json

from app.core.encryption import encrypt
from app.storage.db import (
    add_job_round,
    create_application,
    create_candidate,
    create_company,
    create_job,
    init_db,
)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Create a company with encrypted model credentials, plus an optional job and application."
    )
    parser.add_argument("--name", required=True, help="Company name")
    parser.add_argument("--api-key", required=True, help="OpenAI service-account key (stored encrypted)")
    parser.add_argument("--project-id", default=None, help="OpenAI project id (stored encrypted)")
    parser.add_argument("--job-title", default=None, help="Also create a job with this title")
    parser.add_argument("--job-level", default=None, choices=["junior", "mid", "senior"])
    parser.add_argument(
        "--criteria",
        default=None,
        help="Comma separated criteria for one interview round, e.g. 'Technical,Team Player'",
    )
    parser.add_argument("--candidate-name", default=None, help="Also create a candidate and an application")
    args = parser.parse_args()

    init_db()
    company_id = create_company(
        name=args.name,
        encrypted_api_key=encrypt(args.api_key),
        encrypted_project_id=encrypt(args.project_id) if args.project_id else None,
    )
    created: dict[str, str] = {"company_id": company_id}

    if args.job_title:
        job_id = create_job(company_id=company_id, title=args.job_title, level=args.job_level)
        created["job_id"] = job_id
        if args.criteria:
            criteria = [item.strip() for item in args.criteria.split(",") if item.strip()]
            add_job_round(job_id=job_id, configuration={"criteria": criteria})
        if args.candidate_name:
            candidate_id = create_candidate(full_name=args.candidate_name)
            created["candidate_id"] = candidate_id
            created["application_id"] = create_application(job_id=job_id, candidate_id=candidate_id)

    print(json.dumps(created, indent=2))


if __name__ == "__main__":
    main()

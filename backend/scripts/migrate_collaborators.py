#!/usr/bin/env python
"""Backfill primary collaborators for legacy documents.

Creates the PRIMARY_STUDENT / PRIMARY_ADVISOR collaborator records for
documents that only carry the legacy single student/advisor fields. Safe
to run repeatedly: documents that already have a primary of a family are
skipped for that family.

Usage:
    python backend/scripts/migrate_collaborators.py

Environment Variables:
    DATABASE_URL: Database connection string
"""

import sys

from thesisflow.collaborators.migration import migrate_existing_documents
from thesisflow.config import get_settings
from thesisflow.database import get_db_session
from thesisflow.domain.errors import ThesisFlowError
from thesisflow.observability.logging_config import configure_logging


def main():
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=False)

    try:
        with get_db_session() as session:
            report = migrate_existing_documents(session)
    except ThesisFlowError as e:
        print(f"ERROR: Migration failed: {e.message}")
        sys.exit(1)

    print("SUCCESS: Collaborator migration finished")
    for key, value in report.to_dict().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()

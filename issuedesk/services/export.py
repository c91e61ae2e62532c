"""
CSV export of the issue set (admin download).
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from datetime import datetime

from issuedesk.core.exceptions import ExportFailure
from issuedesk.core.policy import canonical_id
from issuedesk.models.issue import Issue
from issuedesk.schemas.issue import ensure_utc

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "issues_export.csv"

EXPORT_COLUMNS = (
    "id",
    "title",
    "description",
    "location",
    "department",
    "status",
    "user_id",
    "username",
    "user_email",
    "user_phone_number",
    "created_at",
)


def format_timestamp(ts: datetime | None) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2024-05-01T09:30:00.000Z``."""
    if ts is None:
        return ""
    return ensure_utc(ts).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _row(issue: Issue) -> list[str]:
    status = issue.status.value if hasattr(issue.status, "value") else issue.status
    return [
        canonical_id(issue.id),
        issue.title,
        issue.description or "",
        issue.location,
        issue.department,
        status,
        canonical_id(issue.user_id),
        issue.username,
        issue.user_email,
        issue.user_phone_number or "",
        format_timestamp(issue.created_at),
    ]


def render_issues_csv(issues: Iterable[Issue]) -> str:
    """Render every issue as one CSV document with a header row.

    The document is built in full before it is returned; any failure
    raises ``ExportFailure`` rather than yielding a partial file.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    count = 0
    try:
        writer.writerow(EXPORT_COLUMNS)
        for issue in issues:
            writer.writerow(_row(issue))
            count += 1
    except (AttributeError, TypeError, ValueError, csv.Error) as exc:
        logger.error("Error generating CSV after %d rows: %s", count, exc, exc_info=True)
        raise ExportFailure() from exc
    logger.info("Exported %d issues to CSV", count)
    return buffer.getvalue()

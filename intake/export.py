"""
CSV export of submissions for the admin dashboard.
"""

import csv
import io
from datetime import date
from typing import Iterable

from intake.models import Submission
from intake.utils import format_timestamp


CSV_HEADERS = [
    'Timestamp',
    'Submission ID',
    'Submitter Name',
    'Submitter Email',
    'Organization',
    'Status',
    'Completion Score',
]


def export_submissions_csv(records: Iterable[Submission]) -> str:
    """
    Render submissions as CSV text.

    One header row, then one row per record in the order given. Fields are
    quoted as needed, so commas, quotes and newlines survive.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\r\n')
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow([
            format_timestamp(record.created_at),
            record.submission_id,
            record.submitter_name,
            record.submitter_email,
            record.organization,
            record.status,
            record.completion_score,
        ])
    return buffer.getvalue()


def export_filename(day: date) -> str:
    return f'telus-cio-submissions-{day.isoformat()}.csv'

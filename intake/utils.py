"""
Utility functions for formatting, hashing, and text processing.
"""

import hashlib
from datetime import datetime, date
from typing import Optional, Any


def calculate_sha256(data: bytes) -> str:
    """
    Calculate SHA256 hash of data.

    Args:
        data: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(data).hexdigest()


def generate_submission_id(prefix: str, day: date, sequence: int) -> str:
    """
    Build a human-readable submission reference.

    Args:
        prefix: Organisation prefix, e.g. 'TELUS-CIO'
        day: Submission date
        sequence: 1-based sequence number within that day

    Returns:
        Reference of the form PREFIX-YYYYMMDD-NNNN
    """
    return f'{prefix}-{day.strftime("%Y%m%d")}-{sequence:04d}'


def parse_submission_sequence(submission_id: str) -> int:
    """Return the trailing sequence number of a submission reference, or 0."""
    if not submission_id:
        return 0
    tail = submission_id.rsplit('-', 1)[-1]
    return int(tail) if tail.isdigit() else 0


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a stored UTC timestamp as 'YYYY-MM-DD HH:MM:SS'."""
    if value is None:
        return ''
    return value.strftime('%Y-%m-%d %H:%M:%S')


def format_date(value: Any) -> str:
    """
    Format a date value into a standard string.

    Args:
        value: datetime, date or ISO string

    Returns:
        Formatted date string (DD Month YYYY)
    """
    if value is None or value == '':
        return ''

    if isinstance(value, (datetime, date)):
        return value.strftime('%d %B %Y')

    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).strftime('%d %B %Y')
        except ValueError:
            pass

    return str(value)


def escape_text(text: str) -> str:
    """
    Escape special characters in text for safe PDF rendering.

    Args:
        text: Input text

    Returns:
        Escaped text safe for ReportLab
    """
    if not text:
        return ''

    # ReportLab uses XML-like escaping for special characters
    replacements = [
        ('&', '&amp;'),
        ('<', '&lt;'),
        ('>', '&gt;'),
        ('"', '&quot;'),
    ]

    result = text
    for old, new in replacements:
        result = result.replace(old, new)

    return result

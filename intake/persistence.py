"""
Submission persistence.

Wraps the Submission model behind a small store with structured results, so
callers (the wizard's submit, the admin views) never see database exceptions.
Every failure rolls the session back, is logged, and comes back as a result
with `success=False`.
"""

from dataclasses import dataclass, field
from datetime import datetime, date, time
from typing import List, Dict, Any, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError

from intake import db
from intake.form_data import FormData
from intake.models import Submission, SubmissionStatus
from intake.validation import validate_form
from intake.utils import generate_submission_id, parse_submission_sequence


DEFAULT_PREFIX = 'TELUS-CIO'
SUBMISSION_SOURCE = 'web-form'


@dataclass
class CreateResult:
    success: bool
    submission_id: str = ''
    message: str = ''
    record: Optional[Submission] = None


@dataclass
class ListResult:
    success: bool
    records: List[Submission] = field(default_factory=list)
    error: str = ''


@dataclass
class UpdateResult:
    success: bool
    error: str = ''


def _create_error_message(error: Exception) -> str:
    """Map a database failure onto a message the submitter can act on."""
    if isinstance(error, IntegrityError):
        return 'Another submission was saved at the same moment. Please submit again.'
    if isinstance(error, OperationalError):
        return 'The submission database is unavailable. Please try again later.'
    return 'An unexpected error occurred while submitting your form.'


def _start_of_day(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _end_of_day(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max)


class SubmissionStore:
    """
    Database-backed store for submitted intake forms.

    Args:
        prefix: Reference prefix; defaults to SUBMISSION_ID_PREFIX from config
        user_agent: Recorded in the submission metadata
    """

    def __init__(self, prefix: Optional[str] = None, user_agent: Optional[str] = None):
        self.prefix = prefix or current_app.config.get('SUBMISSION_ID_PREFIX', DEFAULT_PREFIX)
        self.user_agent = (user_agent or 'Unknown')[:500]

    def next_submission_id(self, now: Optional[datetime] = None) -> str:
        """Next free PREFIX-YYYYMMDD-NNNN reference for the given day."""
        now = now or datetime.utcnow()
        day_prefix = generate_submission_id(self.prefix, now.date(), 0)[:-4]
        # Sequences past 9999 grow a digit, so compare numerically rather than lexically
        day_ids = db.session.query(Submission.submission_id) \
            .filter(Submission.submission_id.startswith(day_prefix, autoescape=True)) \
            .all()
        latest = max((parse_submission_sequence(submission_id) for (submission_id,) in day_ids), default=0)
        return generate_submission_id(self.prefix, now.date(), latest + 1)

    def create(self, form_data: FormData, now: Optional[datetime] = None) -> CreateResult:
        """
        Persist a snapshot of the form as a new submission.

        The record starts in status 'New' with no reviewer or notes. The
        completion score is the form's overall completion at submit time.
        """
        now = now or datetime.utcnow()
        try:
            submission_id = self.next_submission_id(now)
            submitter = form_data.submitter_info

            submission = Submission(
                submission_id=submission_id,
                created_at=now,
                submitter_name=submitter.name,
                submitter_email=submitter.email,
                organization=submitter.organization,
                status=SubmissionStatus.NEW.value,
                assigned_reviewer='',
                review_notes='',
                completion_score=round(validate_form(form_data).overall_completion_percentage),
                submission_source=SUBMISSION_SOURCE,
                user_agent=self.user_agent
            )
            submission.set_payload(form_data.to_dict(include_ai_feedback=False))
            db.session.add(submission)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f'Failed to store submission: {str(e)}')
            return CreateResult(success=False, message=_create_error_message(e))

        current_app.logger.info(f'Stored submission {submission_id}')
        return CreateResult(
            success=True,
            submission_id=submission_id,
            message=f'Form submitted successfully! Your submission ID is: {submission_id}.',
            record=submission
        )

    def query(self, status: Optional[str] = None, submitter: Optional[str] = None,
              date_from: Optional[date] = None, date_to: Optional[date] = None):
        """Filtered query over submissions, newest first."""
        query = Submission.query
        if status:
            query = query.filter(Submission.status == status)
        if submitter:
            query = query.filter(Submission.submitter_email == submitter)
        if date_from:
            query = query.filter(Submission.created_at >= _start_of_day(date_from))
        if date_to:
            query = query.filter(Submission.created_at <= _end_of_day(date_to))
        return query.order_by(Submission.created_at.desc(), Submission.id.desc())

    def list(self, status: Optional[str] = None, submitter: Optional[str] = None,
             date_from: Optional[date] = None, date_to: Optional[date] = None) -> ListResult:
        """
        List submissions, newest first.

        Args:
            status: Exact status to match
            submitter: Exact submitter email to match
            date_from: Earliest submission date (inclusive)
            date_to: Latest submission date (inclusive)
        """
        try:
            records = self.query(status, submitter, date_from, date_to).all()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f'Failed to list submissions: {str(e)}')
            return ListResult(success=False, error=str(e))
        return ListResult(success=True, records=records)

    def get(self, submission_id: str) -> Optional[Submission]:
        return Submission.query.filter_by(submission_id=submission_id).first()

    def status_counts(self) -> Dict[str, int]:
        """Number of submissions per status, plus 'total'."""
        rows = db.session.query(Submission.status, func.count(Submission.id)) \
            .group_by(Submission.status).all()
        counts = {status: 0 for status in SubmissionStatus.values()}
        counts.update({status: count for status, count in rows})
        counts['total'] = sum(count for _, count in rows)
        return counts

    def update_status(self, submission_id: str, status: str,
                      reviewer: Optional[str] = None, notes: Optional[str] = None) -> UpdateResult:
        """
        Move a submission to a new review status.

        Reviewer and notes are only overwritten when given.
        """
        if status not in SubmissionStatus.values():
            return UpdateResult(success=False, error=f'Invalid status: {status}')

        try:
            submission = self.get(submission_id)
            if submission is None:
                return UpdateResult(success=False, error=f'Submission not found: {submission_id}')

            submission.status = status
            if reviewer is not None:
                submission.assigned_reviewer = reviewer
            if notes is not None:
                submission.review_notes = notes
            submission.last_updated = datetime.utcnow()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f'Failed to update submission {submission_id}: {str(e)}')
            return UpdateResult(success=False, error=str(e))

        return UpdateResult(success=True)

"""
Database models for the Project Intake application.

Submissions are created only at submit time; the wizard's form data has
no identity before that.
"""

import json
import hashlib
import secrets
from datetime import datetime
from enum import Enum as PyEnum
from intake import db


class SubmissionStatus(PyEnum):
    """Review lifecycle states."""
    NEW = 'New'
    UNDER_REVIEW = 'Under Review'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'

    @classmethod
    def values(cls):
        return [status.value for status in cls]


class Submission(db.Model):
    """
    A submitted intake form plus its review metadata.

    `id` is the server-assigned key; `submission_id` is the human-readable
    PREFIX-YYYYMMDD-NNNN reference shown to the submitter.
    """
    __tablename__ = 'submissions'

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.String(40), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Submitter fields are denormalised for listing and search
    submitter_name = db.Column(db.String(200), nullable=False, default='')
    submitter_email = db.Column(db.String(254), nullable=False, default='', index=True)
    organization = db.Column(db.String(20), nullable=False, default='')

    payload_json = db.Column(db.Text, nullable=False)

    # Review
    status = db.Column(db.String(20), default=SubmissionStatus.NEW.value, nullable=False, index=True)
    assigned_reviewer = db.Column(db.String(200), nullable=False, default='')
    review_notes = db.Column(db.Text, nullable=False, default='')
    last_updated = db.Column(db.DateTime, nullable=True)

    # Metadata
    completion_score = db.Column(db.Integer, nullable=False, default=0)
    submission_source = db.Column(db.String(50), nullable=False, default='web-form')
    user_agent = db.Column(db.String(500), nullable=False, default='Unknown')

    audit_logs = db.relationship('AuditLog', backref='submission', lazy='dynamic')

    def __repr__(self):
        return f'<Submission {self.submission_id} - {self.status}>'

    def to_dict(self, include_payload=False):
        """Convert submission to dictionary for API responses and export."""
        data = {
            'id': self.id,
            'submission_id': self.submission_id,
            'timestamp': self.created_at.isoformat() if self.created_at else None,
            'submitter_info': {
                'name': self.submitter_name,
                'email': self.submitter_email,
                'organization': self.organization,
            },
            'status': self.status,
            'assigned_reviewer': self.assigned_reviewer,
            'review_notes': self.review_notes,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
            'metadata': {
                'completion_score': self.completion_score,
                'submission_source': self.submission_source,
                'user_agent': self.user_agent,
            },
        }
        if include_payload:
            data['payload'] = self.get_payload()
        return data

    def get_payload(self):
        """Deserialize the JSON payload."""
        return json.loads(self.payload_json)

    def set_payload(self, payload):
        """Serialize the payload to JSON with stable ordering."""
        self.payload_json = json.dumps(payload, indent=2, sort_keys=True)


class AuditLog(db.Model):
    """
    Append-only audit trail for submissions and admin activity.
    """
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    actor_type = db.Column(db.String(20), nullable=False)  # 'user', 'admin', 'system'
    actor_id = db.Column(db.String(100), nullable=True)

    action = db.Column(db.String(50), nullable=False)
    action_category = db.Column(db.String(20), nullable=False)

    submission_id = db.Column(db.Integer, db.ForeignKey('submissions.id'), nullable=True)
    resource_type = db.Column(db.String(50), nullable=False)
    resource_id = db.Column(db.String(100), nullable=True)

    details_json = db.Column(db.Text, nullable=True)

    success = db.Column(db.Boolean, nullable=False)
    error_message = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)

    integrity_hash = db.Column(db.String(64), nullable=False)

    def __repr__(self):
        return f'<AuditLog {self.id} - {self.action} by {self.actor_type}>'

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'actor_type': self.actor_type,
            'actor_id': self.actor_id,
            'action': self.action,
            'action_category': self.action_category,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'submission_id': self.submission_id,
            'details': json.loads(self.details_json) if self.details_json else None,
            'success': self.success,
            'error_message': self.error_message
        }

    def compute_integrity_hash(self):
        """Hash of this record's content for tamper detection."""
        content = f"{self.timestamp}{self.actor_type}{self.actor_id}{self.action}{self.resource_type}{self.resource_id}{self.details_json}"
        return hashlib.sha256(content.encode()).hexdigest()

    def verify_integrity(self):
        return self.integrity_hash == self.compute_integrity_hash()


class AdminSession(db.Model):
    """
    Tracks admin sessions for the review dashboard.
    """
    __tablename__ = 'admin_sessions'

    id = db.Column(db.Integer, primary_key=True)
    session_token = db.Column(db.String(64), unique=True, nullable=False)
    admin_username = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    last_activity_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    terminated_at = db.Column(db.DateTime, nullable=True)
    termination_reason = db.Column(db.String(100), nullable=True)

    ip_address = db.Column(db.String(45), nullable=False)
    user_agent = db.Column(db.String(500), nullable=False)

    def __repr__(self):
        return f'<AdminSession {self.id} - {self.admin_username}>'

    def is_expired(self):
        return datetime.utcnow() > self.expires_at

    def terminate(self, reason='logout'):
        self.is_active = False
        self.terminated_at = datetime.utcnow()
        self.termination_reason = reason

    @classmethod
    def open(cls, username, ip_address=None, user_agent=None, duration=None):
        """Build a new active session; the caller adds and commits it."""
        now = datetime.utcnow()
        return cls(
            session_token=secrets.token_urlsafe(32),
            admin_username=username,
            created_at=now,
            last_activity_at=now,
            expires_at=now + duration,
            ip_address=ip_address or 'unknown',
            user_agent=(user_agent or 'unknown')[:500]
        )

    @classmethod
    def find_active(cls, token):
        if not token:
            return None
        return cls.query.filter_by(session_token=token, is_active=True).first()

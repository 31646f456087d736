"""
Audit logging module for an append-only audit trail.

Records submissions, review status changes, AI feedback requests, briefing
downloads and admin activity, each with an integrity hash.
"""

import json
from datetime import datetime
from typing import Dict, Any, Optional
from flask import request, current_app, has_request_context
from sqlalchemy.exc import SQLAlchemyError

from intake import db
from intake.models import AuditLog


class AuditAction:
    """Constants for audit actions."""
    # Submission actions
    SUBMISSION_CREATED = 'submission_created'
    SUBMISSION_FAILED = 'submission_failed'
    STATUS_UPDATED = 'status_updated'

    # Wizard actions
    AI_FEEDBACK_REQUESTED = 'ai_feedback_requested'
    BRIEFING_GENERATED = 'briefing_generated'

    # Admin actions
    ADMIN_LOGIN = 'admin_login'
    ADMIN_LOGIN_FAILED = 'admin_login_failed'
    ADMIN_LOGOUT = 'admin_logout'
    ADMIN_SUBMISSION_VIEWED = 'admin_submission_viewed'
    SUBMISSIONS_EXPORTED = 'submissions_exported'


class AuditCategory:
    """Constants for audit action categories."""
    CREATE = 'create'
    READ = 'read'
    UPDATE = 'update'
    GENERATE = 'generate'
    AUTH = 'auth'


def log_action(
    action: str,
    action_category: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    submission_id: Optional[int] = None,
    actor_type: str = 'system',
    actor_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
    error_message: Optional[str] = None
) -> Optional[AuditLog]:
    """
    Log an action to the audit trail.

    Args:
        action: The action performed (use AuditAction constants)
        action_category: Category of action (use AuditCategory constants)
        resource_type: Type of resource affected
        resource_id: Identifier of the resource
        submission_id: Primary key of the associated submission, if any
        actor_type: Type of actor ('user', 'admin', 'system')
        actor_id: Identifier of the actor (IP, username, etc.)
        details: Additional structured details
        success: Whether the action succeeded
        error_message: Error message if action failed

    Returns:
        The created AuditLog record, or None when it could not be written
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get('User-Agent')
        if actor_type == 'user' and not actor_id:
            actor_id = ip_address

    audit_log = AuditLog(
        action=action,
        action_category=action_category,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id else None,
        submission_id=submission_id,
        actor_type=actor_type,
        actor_id=actor_id,
        details_json=json.dumps(details, sort_keys=True) if details else None,
        success=success,
        error_message=error_message,
        ip_address=ip_address,
        user_agent=user_agent
    )

    try:
        # Timestamp default is applied on flush; set it now so the hash covers it
        audit_log.timestamp = audit_log.timestamp or datetime.utcnow()
        audit_log.integrity_hash = audit_log.compute_integrity_hash()
        db.session.add(audit_log)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        # Audit failures are logged, never raised
        current_app.logger.error(f'Failed to create audit log: {str(e)}')
        return None

    return audit_log


def log_submission_created(submission) -> Optional[AuditLog]:
    """Log a stored submission."""
    return log_action(
        action=AuditAction.SUBMISSION_CREATED,
        action_category=AuditCategory.CREATE,
        resource_type='submission',
        resource_id=submission.submission_id,
        submission_id=submission.id,
        actor_type='user',
        details={'completion_score': submission.completion_score}
    )


def log_submission_failed(message: str) -> Optional[AuditLog]:
    return log_action(
        action=AuditAction.SUBMISSION_FAILED,
        action_category=AuditCategory.CREATE,
        resource_type='submission',
        actor_type='user',
        success=False,
        error_message=message
    )


def log_status_updated(submission, admin_username: str, old_status: str,
                       success: bool = True, error: str = None) -> Optional[AuditLog]:
    """Log a review status change."""
    return log_action(
        action=AuditAction.STATUS_UPDATED,
        action_category=AuditCategory.UPDATE,
        resource_type='submission',
        resource_id=submission.submission_id,
        submission_id=submission.id,
        actor_type='admin',
        actor_id=admin_username,
        details={
            'old_status': old_status,
            'new_status': submission.status,
            'assigned_reviewer': submission.assigned_reviewer,
        },
        success=success,
        error_message=error
    )


def log_ai_feedback_requested(section_key: str, score: int, is_fallback: bool) -> Optional[AuditLog]:
    return log_action(
        action=AuditAction.AI_FEEDBACK_REQUESTED,
        action_category=AuditCategory.GENERATE,
        resource_type='ai_feedback',
        resource_id=section_key,
        actor_type='user',
        details={'completeness_score': score, 'is_fallback': is_fallback},
        success=not is_fallback
    )


def log_briefing_generated(reference: str, pdf_hash: str, submission_id: Optional[int] = None,
                           actor_type: str = 'user', actor_id: Optional[str] = None) -> Optional[AuditLog]:
    """Log a briefing PDF download."""
    return log_action(
        action=AuditAction.BRIEFING_GENERATED,
        action_category=AuditCategory.GENERATE,
        resource_type='briefing_pdf',
        resource_id=reference,
        submission_id=submission_id,
        actor_type=actor_type,
        actor_id=actor_id,
        details={'pdf_hash': pdf_hash}
    )


def log_admin_login(username: str, success: bool, error: str = None) -> Optional[AuditLog]:
    """Log admin login attempt."""
    return log_action(
        action=AuditAction.ADMIN_LOGIN if success else AuditAction.ADMIN_LOGIN_FAILED,
        action_category=AuditCategory.AUTH,
        resource_type='admin_session',
        resource_id=username,
        actor_type='admin',
        actor_id=username,
        success=success,
        error_message=error
    )


def log_admin_logout(username: str) -> Optional[AuditLog]:
    return log_action(
        action=AuditAction.ADMIN_LOGOUT,
        action_category=AuditCategory.AUTH,
        resource_type='admin_session',
        resource_id=username,
        actor_type='admin',
        actor_id=username
    )


def log_admin_submission_viewed(submission, admin_username: str) -> Optional[AuditLog]:
    return log_action(
        action=AuditAction.ADMIN_SUBMISSION_VIEWED,
        action_category=AuditCategory.READ,
        resource_type='submission',
        resource_id=submission.submission_id,
        submission_id=submission.id,
        actor_type='admin',
        actor_id=admin_username
    )


def log_submissions_exported(admin_username: str, count: int, filters: Dict[str, Any]) -> Optional[AuditLog]:
    return log_action(
        action=AuditAction.SUBMISSIONS_EXPORTED,
        action_category=AuditCategory.READ,
        resource_type='submission_export',
        actor_type='admin',
        actor_id=admin_username,
        details={'count': count, 'filters': filters}
    )


def verify_audit_integrity() -> tuple:
    """
    Verify integrity of all audit log records.

    Returns:
        Tuple of (valid_count, invalid_count, invalid_ids)
    """
    valid_count = 0
    invalid_ids = []

    for log in AuditLog.query.all():
        if log.verify_integrity():
            valid_count += 1
        else:
            invalid_ids.append(log.id)

    return valid_count, len(invalid_ids), invalid_ids


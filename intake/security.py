"""
Security hardening module.

Provides CSRF protection, rate limiting, input sanitization,
and admin session security for the application.
"""

import re
import hmac
import hashlib
from functools import wraps
from datetime import datetime, timedelta
from typing import Optional, Any

from flask import request, session, current_app, redirect, url_for, render_template, g
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect


# Initialize extensions at module level
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"]
)


def add_security_headers(response):
    """
    Add security headers to response.
    This is a standalone function that can be used as an after_request handler.
    """
    response.headers['Content-Security-Policy'] = (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; "
        "connect-src 'self';"
    )
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    return response


def init_security(app):
    """Initialize security extensions with the app."""
    csrf.init_app(app)
    limiter.init_app(app)


# Rate limit configurations
RATE_LIMITS = {
    'wizard': "120 per minute",
    'validate': "60 per minute",
    'submit': "10 per hour",
    'ai_feedback': "20 per hour",
    'admin_login': "5 per minute",
    'admin_actions': "60 per minute",
}


def rate_limit(name: str):
    """Decorator applying one of the named rate limits."""
    return limiter.limit(RATE_LIMITS[name])


# Input sanitization
HTML_TAG_PATTERN = re.compile(r'<[^>]+>')
SCRIPT_PATTERN = re.compile(r'<script[^>]*>.*?</script>', re.DOTALL | re.IGNORECASE)
EVENT_HANDLER_PATTERN = re.compile(r'on\w+\s*=', re.IGNORECASE)


def sanitize_string(value: str, max_length: int = 10000) -> str:
    """
    Sanitize a string value for safe storage and display.

    Leading and trailing whitespace is kept: validation trims where it
    matters, and the email rule deliberately sees the raw value.

    Args:
        value: Input string
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if value is None:
        return ''

    if not isinstance(value, str):
        value = str(value)

    value = SCRIPT_PATTERN.sub('', value)
    value = EVENT_HANDLER_PATTERN.sub('', value)
    value = HTML_TAG_PATTERN.sub('', value)

    return value[:max_length]


def sanitize_payload(payload: Any) -> Any:
    """
    Recursively sanitize all string values in a payload.

    Non-string leaves (booleans, numbers, None) pass through unchanged.
    """
    if isinstance(payload, dict):
        return {k: sanitize_payload(v) for k, v in payload.items()}
    elif isinstance(payload, list):
        return [sanitize_payload(item) for item in payload]
    elif isinstance(payload, str):
        return sanitize_string(payload)
    else:
        return payload


# Admin authentication
ADMIN_SESSION_DURATION = timedelta(hours=1)
ADMIN_TOKEN_KEY = 'admin_session_token'


def hash_admin_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def verify_admin_password(password: str, password_hash: str) -> bool:
    """Verify admin password against its SHA256 hex digest."""
    if not password_hash:
        return False
    return hmac.compare_digest(hash_admin_password(password or ''), password_hash)


def admin_configured() -> bool:
    return bool(current_app.config.get('ADMIN_USERNAME')) and \
        bool(current_app.config.get('ADMIN_PASSWORD_HASH'))


def sign_in_reviewer(username: str):
    """
    Open a tracked admin session and bind it to the browser session.

    Returns:
        The new AdminSession
    """
    from intake import db
    from intake.models import AdminSession

    admin_session = AdminSession.open(
        username,
        ip_address=get_client_ip(),
        user_agent=request.headers.get('User-Agent'),
        duration=ADMIN_SESSION_DURATION
    )
    db.session.add(admin_session)
    db.session.commit()

    session[ADMIN_TOKEN_KEY] = admin_session.session_token
    session['admin_username'] = username
    return admin_session


def current_admin_session():
    """The live admin session for this browser, or None. Expired sessions are closed."""
    from intake import db
    from intake.models import AdminSession

    admin_session = AdminSession.find_active(session.get(ADMIN_TOKEN_KEY))
    if admin_session is None:
        return None

    if admin_session.is_expired():
        admin_session.terminate('expired')
        db.session.commit()
        return None

    admin_session.last_activity_at = datetime.utcnow()
    db.session.commit()
    return admin_session


def sign_out_reviewer(reason: str = 'logout') -> Optional[str]:
    """Close the tracked session. Returns the username that was signed in."""
    from intake import db
    from intake.models import AdminSession

    admin_session = AdminSession.find_active(session.pop(ADMIN_TOKEN_KEY, None))
    if admin_session is not None:
        admin_session.terminate(reason)
        db.session.commit()
    return session.pop('admin_username', None)


def admin_required(f):
    """Decorator to require a live admin session; sets g.admin_username."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not admin_configured():
            return render_template('admin_login.html',
                                   error='Admin access is not configured'), 503

        admin_session = current_admin_session()
        if admin_session is None:
            session.pop(ADMIN_TOKEN_KEY, None)
            return redirect(url_for('admin.login'))

        g.admin_username = admin_session.admin_username
        return f(*args, **kwargs)
    return decorated_function


def get_client_ip() -> str:
    """Get the client IP address, handling proxies."""
    forwarded_for = request.headers.get('X-Forwarded-For')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()

    real_ip = request.headers.get('X-Real-Ip')
    if real_ip:
        return real_ip

    return request.remote_addr or 'unknown'

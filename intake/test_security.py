"""
Security Tests

Tests for security features:
- Input sanitization
- Admin password verification
- Security headers
- Admin session handling
"""

import unittest

from flask import Response

from intake.security import (
    sanitize_string, sanitize_payload, hash_admin_password,
    verify_admin_password, add_security_headers
)


class TestInputSanitization(unittest.TestCase):
    """Test input sanitization functions."""

    def test_sanitize_string_removes_script(self):
        sanitized = sanitize_string('<script>alert("xss")</script>Portal')
        self.assertEqual(sanitized, 'Portal')

    def test_sanitize_string_removes_tags_and_handlers(self):
        sanitized = sanitize_string('<img src=x onerror=alert(1)>Plan')
        self.assertNotIn('<', sanitized)
        self.assertNotIn('onerror=', sanitized)

    def test_sanitize_string_preserves_safe_text(self):
        safe = 'Reduce call volume by 20% & improve NPS'
        self.assertEqual(sanitize_string(safe), safe)

    def test_sanitize_string_keeps_whitespace(self):
        """Email validation must see the untrimmed value."""
        self.assertEqual(sanitize_string(' alex@telus.com '), ' alex@telus.com ')

    def test_sanitize_string_empty_input(self):
        self.assertEqual(sanitize_string(''), '')
        self.assertEqual(sanitize_string(None), '')

    def test_sanitize_string_max_length(self):
        self.assertEqual(len(sanitize_string('a' * 20, max_length=5)), 5)

    def test_sanitize_payload_nested(self):
        payload = {
            'objective': {
                'description': '<b>Portal</b> rebuild',
                'organizational_alignment': ['<i>Customers</i> first'],
            },
            'funding_status': {'is_funded': True, 'ig_code': None},
            'customer_impact': {'user_groups': [{'group': 'A', 'estimated_users': 10}]},
        }
        sanitized = sanitize_payload(payload)
        self.assertEqual(sanitized['objective']['description'], 'Portal rebuild')
        self.assertEqual(sanitized['objective']['organizational_alignment'], ['Customers first'])
        self.assertIs(sanitized['funding_status']['is_funded'], True)
        self.assertIsNone(sanitized['funding_status']['ig_code'])
        self.assertEqual(sanitized['customer_impact']['user_groups'][0]['estimated_users'], 10)


class TestAdminPassword(unittest.TestCase):

    def test_verify(self):
        password_hash = hash_admin_password('s3cret')
        self.assertTrue(verify_admin_password('s3cret', password_hash))
        self.assertFalse(verify_admin_password('wrong', password_hash))

    def test_empty_hash_never_verifies(self):
        self.assertFalse(verify_admin_password('', ''))


class TestSecurityHeaders(unittest.TestCase):

    def test_headers_added(self):
        response = add_security_headers(Response('ok'))
        self.assertEqual(response.headers['X-Frame-Options'], 'DENY')
        self.assertEqual(response.headers['X-Content-Type-Options'], 'nosniff')
        self.assertIn("default-src 'self'", response.headers['Content-Security-Policy'])


class TestAdminAccess:
    """Route-level checks, using the pytest app fixture."""

    def test_dashboard_requires_login(self, client):
        response = client.get('/admin/submissions')
        assert response.status_code == 302
        assert '/admin/login' in response.headers['Location']

    def test_wrong_password(self, client):
        response = client.post('/admin/login', data={'username': 'reviewer', 'password': 'nope'})
        assert response.status_code == 401

    def test_logout_ends_session(self, admin_client):
        assert admin_client.get('/admin/submissions').status_code == 200
        admin_client.get('/admin/logout')
        assert admin_client.get('/admin/submissions').status_code == 302

    def test_unconfigured_admin(self, app, client):
        app.config['ADMIN_PASSWORD_HASH'] = ''
        assert client.get('/admin/submissions').status_code == 503

    def test_responses_carry_headers(self, client):
        response = client.get('/')
        assert response.headers['X-Frame-Options'] == 'DENY'


if __name__ == '__main__':
    unittest.main()

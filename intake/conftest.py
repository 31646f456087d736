"""
Shared pytest fixtures: an app on in-memory SQLite, clients, a complete
valid form payload and a stub HTTP session for the AI client.
"""

import copy

import pytest

from intake import create_app, db
from intake.ai_feedback import AIFeedbackClient
from intake.security import hash_admin_password


ADMIN_USERNAME = 'reviewer'
ADMIN_PASSWORD = 'correct horse battery staple'


VALID_PAYLOAD = {
    'submitter_info': {
        'name': 'Alex Morgan',
        'email': 'alex.morgan@telus.com',
        'organization': 'CIO',
        'role': 'Product Manager',
        'department': 'Digital Platforms',
    },
    'funding_status': {
        'is_funded': True,
        'ig_code': 'IG-2024-001',
        'initiative_name': 'Customer Portal Modernization',
        'has_been_through_tct': None,
    },
    'objective': {
        'description': 'Replace the legacy customer portal so customers can manage plans without calling support.',
        'organizational_alignment': ['Customers first'],
    },
    'business_impact': {
        'expected_outcomes': ['Reduce support call volume by 20%'],
        'success_metrics': ['Self-service completion rate'],
        'budget_range': '$500K - $1M',
        'timeline': {
            'critical_dates': ['2025-06-30'],
            'milestones': ['Discovery complete'],
        },
    },
    'cross_org_context': {
        'strategic_alignment': 'Supports the digital-first strategy by moving routine account tasks online.',
        'dependencies': ['Identity platform team'],
        'stakeholder_groups': [
            {'group': 'Customer Care', 'impact': 'Fewer routine calls, retraining on new tools'},
            {'group': 'Billing', 'impact': 'New self-service payment flows to support'},
        ],
        'compliance_considerations': 'Privacy impact assessment required.',
    },
    'business_unit_impact': {
        'impacted_units': ['TELUS Digital'],
        'primary_unit': 'TELUS Digital',
        'requires_convergence': False,
        'convergence_description': '',
        'impact_descriptions': [
            {'unit': 'TELUS Digital', 'description': 'Owns the new portal platform'},
        ],
    },
    'customer_impact': {
        'user_groups': [{'group': 'Consumer customers', 'estimated_users': 250000}],
        'service_changes': ['Plan changes move from phone support to a guided online flow.'],
        'experience_improvements': ['Plan changes in under two minutes', 'No hold times'],
    },
}


@pytest.fixture
def valid_payload():
    return copy.deepcopy(VALID_PAYLOAD)


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
        'SESSION_COOKIE_SECURE': False,
        'SESSION_FILE_DIR': str(tmp_path / 'sessions'),
        'ADMIN_USERNAME': ADMIN_USERNAME,
        'ADMIN_PASSWORD_HASH': hash_admin_password(ADMIN_PASSWORD),
        'SUBMISSION_ID_PREFIX': 'TEST',
        'AI_FEEDBACK_API_KEY': '',
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = client.post('/admin/login', data={
        'username': ADMIN_USERNAME,
        'password': ADMIN_PASSWORD,
    })
    assert response.status_code == 302
    return client


class StubResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ''

    def json(self):
        if self._body is None:
            raise ValueError('No JSON body')
        return self._body


class StubSession:
    """Stands in for requests.Session; replays queued responses or errors."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, response):
        self.responses.append(response)

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'headers': headers, 'timeout': timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def stub_session():
    return StubSession()


@pytest.fixture
def ai_client(stub_session):
    return AIFeedbackClient(
        api_url='https://ai.example.test/v1/',
        api_key='test-key',
        models=['model-a', 'model-b', 'model-c'],
        timeout=5,
        session=stub_session
    )


def chat_reply(content):
    """Chat-completions body wrapping `content` as the assistant message."""
    return StubResponse(200, {'choices': [{'message': {'role': 'assistant', 'content': content}}]})

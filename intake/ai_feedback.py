"""
AI Feedback Client

Asks a chat-completions endpoint to review one form section against its
acceptance criteria and returns structured feedback.

Feedback is advisory: it never changes validation, and every failure
(missing key, transport error, HTTP error, unparseable reply) comes back as
a fallback response with a neutral score rather than an exception.

Pass a stub `session` in tests to intercept HTTP calls.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://api-beta.fuelix.ai'
DEFAULT_MODELS = [
    'claude-3-5-sonnet',
    'claude-3-sonnet',
    'claude-3-haiku',
    'gpt-4o',
    'gpt-4',
    'gpt-3.5-turbo',
    'gemini-pro',
    'llama-2-70b',
    'mistral-large',
]
DEFAULT_TIMEOUT = 30
NEUTRAL_SCORE = 50

# Provider error text meaning "try the next model"
MODEL_ACCESS_ERROR = 'invalid model or no access'

SYSTEM_PROMPT = (
    'You are an expert product manager helping to validate project intake forms '
    'for TELUS CIO. Provide constructive, specific feedback to help improve '
    'project proposals.'
)

JSON_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')


@dataclass
class AIFeedbackResponse:
    feedback: str
    suggestions: List[str] = field(default_factory=list)
    completeness_score: int = NEUTRAL_SCORE
    improvements: List[str] = field(default_factory=list)
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'feedback': self.feedback,
            'suggestions': list(self.suggestions),
            'completeness_score': self.completeness_score,
            'improvements': list(self.improvements),
        }


@dataclass
class ConnectionResult:
    success: bool
    message: str
    status_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'success': self.success, 'message': self.message, 'status_code': self.status_code}


class AIServiceError(Exception):
    """A failed call to the AI endpoint."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 provider_message: str = '', network: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.provider_message = provider_message
        self.network = network

    @property
    def is_model_access_error(self) -> bool:
        return MODEL_ACCESS_ERROR in self.provider_message


def build_prompt(section_name: str, section_data: Dict[str, Any], acceptance_criteria: List[str]) -> str:
    criteria = '\n'.join(f'- {c}' for c in acceptance_criteria)
    return (
        'You are an AI assistant helping to validate a TELUS CIO project intake form section.\n\n'
        f'Section: {section_name}\n'
        f'Data provided: {json.dumps(section_data, indent=2)}\n\n'
        f'Acceptance Criteria:\n{criteria}\n\n'
        'Please analyze the provided data against the acceptance criteria and provide:\n'
        '1. Overall feedback on completeness and quality\n'
        '2. Specific suggestions for improvement\n'
        '3. A completeness score (0-100)\n'
        '4. Any missing or unclear information\n\n'
        'Respond in JSON format:\n'
        '{\n'
        '  "feedback": "Overall assessment of the section",\n'
        '  "suggestions": ["specific suggestion 1", "specific suggestion 2"],\n'
        '  "completenessScore": 85,\n'
        '  "improvements": ["improvement 1", "improvement 2"]\n'
        '}\n'
    )


def _as_text(content: Any) -> str:
    """Content may be a string, a list of content parts or an object."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [p.get('text') for p in content if isinstance(p, dict)]
        if parts and all(isinstance(p, str) for p in parts):
            return ''.join(parts)
    return json.dumps(content)


def extract_reply_text(body: Any) -> str:
    """Pull the assistant text out of the known response shapes."""
    if isinstance(body, str):
        return body
    if isinstance(body, dict):
        choices = body.get('choices')
        if isinstance(choices, list) and choices:
            message = choices[0].get('message') if isinstance(choices[0], dict) else None
            if isinstance(message, dict) and message.get('content'):
                return _as_text(message['content'])
        if body.get('content'):
            return _as_text(body['content'])
    return json.dumps(body)


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _as_score(value: Any) -> int:
    try:
        score = int(float(value))
    except (TypeError, ValueError):
        return NEUTRAL_SCORE
    return max(0, min(100, score))


def parse_feedback(text: str) -> AIFeedbackResponse:
    """
    Parse the first JSON object found in a model reply.

    A reply with no JSON object is returned as plain feedback text with a
    neutral score.
    """
    match = JSON_OBJECT_PATTERN.search(text or '')
    if not match:
        return AIFeedbackResponse(feedback=text or '', completeness_score=NEUTRAL_SCORE)

    try:
        data = json.loads(match.group(0))
        if not isinstance(data, dict):
            raise ValueError('Reply JSON is not an object')
    except ValueError as e:
        logger.warning(f'Could not parse AI reply: {str(e)}')
        return AIFeedbackResponse(
            feedback=text or 'Unable to process AI feedback at this time.',
            suggestions=['Please review your responses for completeness'],
            completeness_score=NEUTRAL_SCORE,
            improvements=['Consider adding more detail to your responses']
        )

    score = data.get('completenessScore', data.get('completeness_score'))
    return AIFeedbackResponse(
        feedback=str(data.get('feedback') or ''),
        suggestions=_as_str_list(data.get('suggestions')),
        completeness_score=_as_score(score),
        improvements=_as_str_list(data.get('improvements'))
    )


def fallback_message(error: Exception) -> str:
    """User-facing explanation for a failed feedback request."""
    if isinstance(error, AIServiceError):
        if error.status_code == 401:
            if error.is_model_access_error:
                return ('No AI models are accessible with your current API key. '
                        'Please contact your AI provider to enable model access.')
            return 'API authentication failed. Please check your API key.'
        if error.status_code == 404:
            return 'API endpoint not found. Please check the API configuration.'
        if error.status_code == 403:
            return 'Access forbidden. Please check your API permissions.'
        if 'API key' in str(error):
            return 'API key is not configured properly.'
    return 'AI validation is temporarily unavailable.'


def fallback_response(error: Exception) -> AIFeedbackResponse:
    return AIFeedbackResponse(
        feedback=f'{fallback_message(error)} Please review your responses manually.',
        suggestions=['Ensure all required fields are completed', 'Provide specific, measurable details'],
        completeness_score=NEUTRAL_SCORE,
        improvements=['Review acceptance criteria for this section'],
        is_fallback=True
    )


class AIFeedbackClient:
    """
    Client for the AI section reviewer.

    Args:
        api_url: Base URL; requests go to {api_url}/chat/completions
        api_key: Bearer token. Without one every call falls back.
        models: Models to try, in order of preference
        timeout: Per-request timeout in seconds
        session: Optional requests.Session (inject a stub in tests)
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, api_key: str = '',
                 models: Optional[List[str]] = None, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.api_url = (api_url or DEFAULT_API_URL).rstrip('/')
        self.api_key = api_key or ''
        self.models = list(models) if models else list(DEFAULT_MODELS)
        self.timeout = timeout
        self._session = session

    @classmethod
    def from_config(cls, config: Dict[str, Any], session: Optional[requests.Session] = None) -> 'AIFeedbackClient':
        models = config.get('AI_FEEDBACK_MODELS') or DEFAULT_MODELS
        if isinstance(models, str):
            models = [m.strip() for m in models.split(',') if m.strip()]
        return cls(
            api_url=config.get('AI_FEEDBACK_API_URL', DEFAULT_API_URL),
            api_key=config.get('AI_FEEDBACK_API_KEY', ''),
            models=models,
            timeout=float(config.get('AI_FEEDBACK_TIMEOUT', DEFAULT_TIMEOUT)),
            session=session
        )

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @property
    def endpoint(self) -> str:
        return f'{self.api_url}/chat/completions'

    def _post(self, model: str, messages: List[Dict[str, str]]) -> Any:
        """POST one chat completion and return the decoded body."""
        try:
            response = self.session.post(
                self.endpoint,
                json={'model': model, 'messages': messages},
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json',
                },
                timeout=self.timeout
            )
        except requests.ConnectionError as e:
            raise AIServiceError(f'Cannot reach AI endpoint: {str(e)}', network=True) from e
        except requests.RequestException as e:
            raise AIServiceError(f'AI request failed: {str(e)}') from e

        try:
            body = response.json()
        except ValueError:
            body = response.text

        if response.status_code >= 400:
            provider_message = ''
            if isinstance(body, dict) and isinstance(body.get('error'), dict):
                provider_message = str(body['error'].get('message') or '')
            raise AIServiceError(
                f'AI endpoint returned HTTP {response.status_code}',
                status_code=response.status_code,
                provider_message=provider_message
            )
        return body

    def validate(self, section_name: str, section_data: Dict[str, Any],
                 acceptance_criteria: List[str]) -> AIFeedbackResponse:
        """
        Review one section against its acceptance criteria.

        Models are tried in order; only a model-access error moves on to the
        next model. Any other failure ends the attempt with a fallback.
        """
        messages = [
            {'role': 'system', 'content': SYSTEM_PROMPT},
            {'role': 'user', 'content': build_prompt(section_name, section_data, acceptance_criteria)},
        ]

        try:
            if not self.api_key:
                raise AIServiceError('API key is not configured')

            last_error = None
            for model in self.models:
                try:
                    body = self._post(model, messages)
                except AIServiceError as e:
                    logger.info(f'Model {model} failed: {str(e)}')
                    last_error = e
                    if e.is_model_access_error:
                        continue
                    break
                logger.info(f'AI feedback for {section_name} from {model}')
                try:
                    return parse_feedback(extract_reply_text(body))
                except (TypeError, ValueError) as e:
                    raise AIServiceError(f'Unreadable AI reply: {str(e)}') from e

            raise last_error or AIServiceError('No AI models configured')
        except AIServiceError as e:
            logger.error(f'AI feedback unavailable for {section_name}: {str(e)}')
            return fallback_response(e)

    def test_connection(self) -> ConnectionResult:
        """Send a trivial prompt to the first configured model."""
        if not self.api_key:
            return ConnectionResult(success=False, message='API key is not configured')

        model = self.models[0]
        try:
            self._post(model, [{
                'role': 'user',
                'content': 'Hello, this is a test message. Please respond with "Test successful".'
            }])
        except AIServiceError as e:
            logger.warning(f'AI connection test failed: {str(e)}')
            return ConnectionResult(success=False, message=self._connection_error_message(e),
                                    status_code=e.status_code)

        return ConnectionResult(success=True, message=f'API connection successful with {model}', status_code=200)

    @staticmethod
    def _connection_error_message(error: AIServiceError) -> str:
        if error.status_code == 401:
            if error.is_model_access_error:
                return 'API connected but no model access - contact your AI provider to enable models'
            return 'Authentication failed - invalid API key'
        if error.status_code == 404:
            return 'Endpoint not found - check API URL'
        if error.status_code == 403:
            return 'Access forbidden - check API permissions'
        if error.network:
            return 'Network error - cannot reach API server'
        return 'API connection failed'

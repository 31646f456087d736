"""
Wizard State Machine

Holds the current step and the form data for one intake session.

Navigation is never blocked by validation; only `submit` is gated on the
whole form being valid. Section edits are shallow merges that rebuild the
section, so nested values such as `timeline` are replaced wholesale.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

from intake.form_data import (
    FormData, AIFeedbackEntry, SECTION_TYPES, build_form_data, section_field_names
)
from intake.validation import validate_form, FormValidation

logger = logging.getLogger(__name__)


class WizardError(ValueError):
    """Raised when the wizard is driven outside its contract."""


@dataclass(frozen=True)
class WizardStep:
    id: str
    title: str
    section_key: Optional[str] = None


STEPS = [
    WizardStep('submitter', 'Submitter Information', 'submitter_info'),
    WizardStep('funding', 'Funding Status', 'funding_status'),
    WizardStep('objective', 'Project Objective', 'objective'),
    WizardStep('business-impact', 'Business Impact', 'business_impact'),
    WizardStep('cross-org', 'Cross-Organizational Context', 'cross_org_context'),
    WizardStep('business-unit', 'Business Unit Impact', 'business_unit_impact'),
    WizardStep('customer', 'Customer Impact', 'customer_impact'),
    WizardStep('review', 'Review & Submit', None),
]

REVIEW_STEP = len(STEPS) - 1


@dataclass
class SubmitResult:
    success: bool
    submission_id: str = ''
    message: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'submission_id': self.submission_id,
            'message': self.message,
        }


class IntakeWizard:
    """State container for one pass through the intake wizard."""

    def __init__(self, form_data: Optional[FormData] = None, current_step: int = 0,
                 submission_id: Optional[str] = None):
        self.form_data = form_data if form_data is not None else FormData()
        self.current_step = current_step
        self.submission_id = submission_id
        if not 0 <= current_step < len(STEPS):
            raise WizardError(f'Step {current_step} is out of range')

    @property
    def step_count(self) -> int:
        return len(STEPS)

    @property
    def current(self) -> WizardStep:
        return STEPS[self.current_step]

    # Navigation

    def go_next(self) -> int:
        """Advance one step. Incomplete sections do not block this."""
        if self.current_step < len(STEPS) - 1:
            self.current_step += 1
        return self.current_step

    def go_previous(self) -> int:
        if self.current_step > 0:
            self.current_step -= 1
        return self.current_step

    def jump_to(self, step: int) -> int:
        """Go directly to any step, e.g. from the review page."""
        if not isinstance(step, int) or isinstance(step, bool) or not 0 <= step < len(STEPS):
            raise WizardError(f'Step {step} is out of range')
        self.current_step = step
        return self.current_step

    # Editing

    def update_section(self, section_key: str, partial: Dict[str, Any]) -> FormData:
        """
        Shallow-merge `partial` into one section.

        Callers pass whole nested values (e.g. the full `timeline`), not
        deeper partials.
        """
        if section_key not in SECTION_TYPES:
            raise WizardError(f'Unknown section: {section_key}')
        if not isinstance(partial, dict):
            raise WizardError('Section update must be an object')

        allowed = set(section_field_names(section_key))
        unknown = sorted(set(partial) - allowed)
        if unknown:
            raise WizardError(f'Unknown fields for {section_key}: {", ".join(unknown)}')

        merged = self.form_data.section(section_key).to_dict()
        merged.update(partial)
        section = SECTION_TYPES[section_key].from_dict(merged)
        self.form_data = self.form_data.with_section(section_key, section)
        return self.form_data

    def add_ai_feedback(self, section_key: str, feedback: Dict[str, Any]) -> AIFeedbackEntry:
        """Store AI feedback for a section. The latest response wins."""
        if section_key not in SECTION_TYPES:
            raise WizardError(f'Unknown section: {section_key}')
        entry = AIFeedbackEntry.from_dict(dict(
            feedback,
            timestamp=datetime.now(timezone.utc).isoformat()
        ))
        self.form_data = self.form_data.with_ai_feedback(section_key, entry)
        return entry

    # Derived state

    def validate(self) -> FormValidation:
        return validate_form(self.form_data)

    def step_status(self, index: int, validation: Optional[FormValidation] = None) -> Dict[str, Any]:
        """Validity and completion of a step. The review step is always complete."""
        step = STEPS[index]
        if step.section_key is None:
            return {'is_valid': True, 'completion_percentage': 100.0}
        validation = validation or self.validate()
        section = validation.sections[step.section_key]
        return {
            'is_valid': section.is_valid,
            'completion_percentage': section.completion_percentage,
        }

    def steps_overview(self, validation: Optional[FormValidation] = None) -> List[Dict[str, Any]]:
        validation = validation or self.validate()
        overview = []
        for index, step in enumerate(STEPS):
            status = self.step_status(index, validation)
            overview.append({
                'index': index,
                'id': step.id,
                'title': step.title,
                'section_key': step.section_key,
                'is_current': index == self.current_step,
                'is_valid': status['is_valid'],
                'completion_percentage': status['completion_percentage'],
            })
        return overview

    # Submission

    def submit(self, store) -> SubmitResult:
        """
        Hand the current snapshot to the persistence collaborator.

        Only runs when the form is valid. Neither the step nor the data is
        reset afterwards, whatever the outcome.
        """
        validation = self.validate()
        if not validation.is_form_valid:
            return SubmitResult(
                success=False,
                message='Please complete all required fields before submitting.'
            )

        snapshot = self.form_data
        try:
            result = store.create(snapshot)
        except Exception as e:
            logger.error(f'Submission failed: {str(e)}')
            return SubmitResult(
                success=False,
                message='An unexpected error occurred while submitting your form.'
            )

        if result.success:
            self.submission_id = result.submission_id
        return SubmitResult(
            success=result.success,
            submission_id=result.submission_id,
            message=result.message
        )

    # Serialisation

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_step': self.current_step,
            'submission_id': self.submission_id,
            'form_data': self.form_data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'IntakeWizard':
        """Restore a wizard, starting fresh when the stored state is unusable."""
        if not isinstance(data, dict):
            return cls()
        step = data.get('current_step', 0)
        if not isinstance(step, int) or not 0 <= step < len(STEPS):
            step = 0
        return cls(
            form_data=build_form_data(data.get('form_data')),
            current_step=step,
            submission_id=data.get('submission_id')
        )

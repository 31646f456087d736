"""
Review Module

Builds the review step's view of the form: whether submission is allowed,
each section's errors with the step to jump to for fixing them, and the
overall progress. Derived entirely from the validation result.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from intake.form_data import FormData
from intake.validation import validate_form, FormValidation, ValidationError
from intake.wizard import STEPS


@dataclass
class SectionReview:
    """Review line for one data section."""
    section_key: str
    title: str
    step_index: int
    is_valid: bool
    completion_percentage: float
    errors: List[ValidationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'section_key': self.section_key,
            'title': self.title,
            'step_index': self.step_index,
            'is_valid': self.is_valid,
            'completion_percentage': self.completion_percentage,
            'error_count': len(self.errors),
            'errors': [e.to_dict() for e in self.errors],
        }


@dataclass
class ReviewSummary:
    can_submit: bool = False
    overall_completion_percentage: float = 0.0
    sections: List[SectionReview] = field(default_factory=list)

    @property
    def total_error_count(self) -> int:
        return sum(len(s.errors) for s in self.sections)

    @property
    def sections_needing_attention(self) -> List[SectionReview]:
        return [s for s in self.sections if not s.is_valid]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'can_submit': self.can_submit,
            'overall_completion_percentage': self.overall_completion_percentage,
            'total_error_count': self.total_error_count,
            'sections': [s.to_dict() for s in self.sections],
        }


def build_review(form_data: FormData, validation: Optional[FormValidation] = None) -> ReviewSummary:
    """Compose the submit gate and per-section fix list."""
    validation = validation or validate_form(form_data)

    sections = []
    for index, step in enumerate(STEPS):
        if step.section_key is None:
            continue
        result = validation.sections[step.section_key]
        sections.append(SectionReview(
            section_key=step.section_key,
            title=step.title,
            step_index=index,
            is_valid=result.is_valid,
            completion_percentage=result.completion_percentage,
            errors=list(result.errors)
        ))

    return ReviewSummary(
        can_submit=validation.is_form_valid,
        overall_completion_percentage=validation.overall_completion_percentage,
        sections=sections
    )

"""
Section-by-section validation for intake form data.

Validation Rules Documentation:
===============================

1. SUBMITTER INFO (5 checks)
   - name, organization, role, department: required
   - email: required, single '@', a '.' after it, no whitespace

2. FUNDING STATUS (1 check, 2 when funded)
   - is_funded: must be answered (tri-state, None fails)
   - initiative_name: required when is_funded is True

3. OBJECTIVE (2 checks)
   - description: required, at least 50 characters
   - organizational_alignment: at least one entry (blank entries count)

4. BUSINESS IMPACT (4 checks)
   - expected_outcomes, success_metrics: at least one non-blank entry
   - budget_range: required
   - timeline.milestones: at least one non-blank entry

5. CROSS-ORG CONTEXT (4 checks)
   - strategic_alignment: required, at least 50 characters
   - dependencies: at least one non-blank entry
   - stakeholder_groups: at least two, each named with a 25+ character
     impact (one error for the whole list)
   - compliance_considerations: required

6. BUSINESS UNIT IMPACT (3 checks, 4 when convergence is required)
   - impacted_units: at least one
   - requires_convergence: must be answered (tri-state)
   - convergence_description: required when requires_convergence is True
   - impact_descriptions: every selected unit needs a non-blank description

7. CUSTOMER IMPACT (3 checks)
   - user_groups: at least one named group, and every named group needs
     estimated_users > 0
   - service_changes: at least one non-blank entry, each non-blank entry
     at least 50 characters
   - experience_improvements: at least two non-blank entries

Completion percentage is checks passed over applicable checks. A rule whose
condition does not hold is neither evaluated nor counted. Validity is "no
errors" and is computed independently of the percentage.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Any, Optional, Union

from intake.form_data import FormData, SECTION_KEYS, build_form_data


@dataclass
class ValidationError:
    """A single failed check."""
    field: str
    message: str
    section: str = ''

    def to_dict(self) -> Dict[str, str]:
        return {'field': self.field, 'message': self.message, 'section': self.section}


@dataclass
class SectionValidation:
    """Validation outcome for one section."""
    is_valid: bool = True
    errors: List[ValidationError] = field(default_factory=list)
    completion_percentage: float = 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'errors': [e.to_dict() for e in self.errors],
            'completion_percentage': self.completion_percentage,
        }


@dataclass
class FormValidation:
    """Validation outcome for the whole form."""
    is_form_valid: bool = False
    sections: Dict[str, SectionValidation] = field(default_factory=dict)
    overall_completion_percentage: float = 0.0
    total_errors: List[ValidationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_form_valid': self.is_form_valid,
            'sections': {key: s.to_dict() for key, s in self.sections.items()},
            'overall_completion_percentage': self.overall_completion_percentage,
            'total_errors': [e.to_dict() for e in self.total_errors],
        }


# Thresholds
MIN_DESCRIPTION_LENGTH = 50
MIN_STRATEGIC_ALIGNMENT_LENGTH = 50
MIN_STAKEHOLDER_GROUPS = 2
MIN_STAKEHOLDER_IMPACT_LENGTH = 25
MIN_SERVICE_CHANGE_LENGTH = 50
MIN_EXPERIENCE_IMPROVEMENTS = 2

EMAIL_PATTERN = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')


def is_blank(value: Optional[str]) -> bool:
    return not (value or '').strip()


def non_blank_count(values: List[str]) -> int:
    return len([v for v in values or [] if not is_blank(v)])


def is_valid_email(value: str) -> bool:
    """Match local@domain.tld against the whole, untrimmed value."""
    return EMAIL_PATTERN.fullmatch(value or '') is not None


@dataclass(frozen=True)
class Rule:
    """
    One required check.

    `check` returns an error message or None. `when` gates both evaluation
    and counting, which is how conditional denominators arise.
    """
    field: str
    check: Callable[[Any], Optional[str]]
    when: Optional[Callable[[Any], bool]] = None

    def applies(self, section) -> bool:
        return self.when is None or bool(self.when(section))


def required(attr: str, message: str) -> Callable[[Any], Optional[str]]:
    """Check that a string attribute is non-blank."""
    def check(section) -> Optional[str]:
        return message if is_blank(getattr(section, attr)) else None
    return check


def min_length(attr: str, length: int, missing: str, too_short: str) -> Callable[[Any], Optional[str]]:
    """Check that a string attribute is present and long enough once trimmed."""
    def check(section) -> Optional[str]:
        value = (getattr(section, attr) or '').strip()
        if not value:
            return missing
        if len(value) < length:
            return too_short
        return None
    return check


def non_blank_entries(getter: Callable[[Any], List[str]], minimum: int,
                      message: str) -> Callable[[Any], Optional[str]]:
    """Check that a list holds at least `minimum` non-blank entries."""
    def check(section) -> Optional[str]:
        return message if non_blank_count(getter(section)) < minimum else None
    return check


def answered(attr: str, message: str) -> Callable[[Any], Optional[str]]:
    """Check that a tri-state attribute is no longer unset."""
    def check(section) -> Optional[str]:
        return message if getattr(section, attr) is None else None
    return check


# Section-specific checks

def _check_email(section) -> Optional[str]:
    if is_blank(section.email):
        return 'Email is required'
    if not is_valid_email(section.email):
        return 'Valid email is required'
    return None


def _check_alignment(section) -> Optional[str]:
    if not section.organizational_alignment:
        return 'At least one organizational alignment is required'
    return None


def _check_stakeholders(section) -> Optional[str]:
    groups = section.stakeholder_groups
    if len(groups) < MIN_STAKEHOLDER_GROUPS:
        return 'At least two stakeholder groups are required'
    incomplete = [
        s for s in groups
        if is_blank(s.group) or len(s.impact.strip()) < MIN_STAKEHOLDER_IMPACT_LENGTH
    ]
    if incomplete:
        return ('All stakeholder groups must have names and impact '
                'descriptions (25+ characters)')
    return None


def _check_unit_descriptions(section) -> Optional[str]:
    if not section.impacted_units:
        return None
    descriptions = {}
    for entry in section.impact_descriptions:
        descriptions.setdefault(entry.unit, entry.description)
    missing = [u for u in section.impacted_units if is_blank(descriptions.get(u))]
    if missing:
        return 'Impact descriptions are required for all selected business units'
    return None


def _check_user_groups(section) -> Optional[str]:
    named = [g for g in section.user_groups if not is_blank(g.group)]
    if not named:
        return 'At least one user group is required'
    if any(g.estimated_users <= 0 for g in named):
        return 'All user groups must have estimated user counts greater than 0'
    return None


def _check_service_changes(section) -> Optional[str]:
    filled = [s.strip() for s in section.service_changes if not is_blank(s)]
    if not filled:
        return 'At least one service change is required'
    if any(len(s) < MIN_SERVICE_CHANGE_LENGTH for s in filled):
        return 'Service changes must be at least 50 characters each'
    return None


SECTION_RULES: Dict[str, List[Rule]] = {
    'submitter_info': [
        Rule('name', required('name', 'Name is required')),
        Rule('email', _check_email),
        Rule('organization', required('organization', 'Organization is required')),
        Rule('role', required('role', 'Role is required')),
        Rule('department', required('department', 'Department is required')),
    ],
    'funding_status': [
        Rule('is_funded', answered('is_funded', 'Funding status is required')),
        Rule('initiative_name',
             required('initiative_name', 'Initiative name is required when funded'),
             when=lambda s: s.is_funded is True),
    ],
    'objective': [
        Rule('description', min_length(
            'description', MIN_DESCRIPTION_LENGTH,
            'Project description is required',
            'Project description must be at least 50 characters')),
        Rule('organizational_alignment', _check_alignment),
    ],
    'business_impact': [
        Rule('expected_outcomes', non_blank_entries(
            lambda s: s.expected_outcomes, 1,
            'At least one expected outcome is required')),
        Rule('success_metrics', non_blank_entries(
            lambda s: s.success_metrics, 1,
            'At least one success metric is required')),
        Rule('budget_range', required('budget_range', 'Budget range is required')),
        Rule('milestones', non_blank_entries(
            lambda s: s.timeline.milestones, 1,
            'At least one milestone is required')),
    ],
    'cross_org_context': [
        Rule('strategic_alignment', min_length(
            'strategic_alignment', MIN_STRATEGIC_ALIGNMENT_LENGTH,
            'Strategic alignment is required',
            'Strategic alignment must be at least 50 characters')),
        Rule('dependencies', non_blank_entries(
            lambda s: s.dependencies, 1,
            'At least one dependency is required')),
        Rule('stakeholder_groups', _check_stakeholders),
        Rule('compliance_considerations', required(
            'compliance_considerations', 'Compliance considerations are required')),
    ],
    'business_unit_impact': [
        Rule('impacted_units', lambda s: None if s.impacted_units
             else 'At least one business unit must be selected'),
        Rule('requires_convergence', answered(
            'requires_convergence', 'Convergence assessment is required')),
        Rule('convergence_description',
             required('convergence_description',
                      'Convergence description is required when convergence is needed'),
             when=lambda s: s.requires_convergence is True),
        Rule('impact_descriptions', _check_unit_descriptions),
    ],
    'customer_impact': [
        Rule('user_groups', _check_user_groups),
        Rule('service_changes', _check_service_changes),
        Rule('experience_improvements', non_blank_entries(
            lambda s: s.experience_improvements, MIN_EXPERIENCE_IMPROVEMENTS,
            'At least two experience improvements are required')),
    ],
}


def validate_section(section_key: str, section) -> SectionValidation:
    """Run one section's rule table."""
    errors = []
    applicable = 0
    for rule in SECTION_RULES[section_key]:
        if not rule.applies(section):
            continue
        applicable += 1
        message = rule.check(section)
        if message:
            errors.append(ValidationError(rule.field, message, section_key))

    if applicable:
        completion = (applicable - len(errors)) / applicable * 100
    else:
        completion = 100.0

    return SectionValidation(
        is_valid=len(errors) == 0,
        errors=errors,
        completion_percentage=completion
    )


def validate_form(form_data: Union[FormData, Dict[str, Any], None]) -> FormValidation:
    """
    Validate the whole form.

    Pure and total: raw dicts (or None) are normalised first, so a missing
    section is treated as empty rather than raising.
    """
    if not isinstance(form_data, FormData):
        form_data = build_form_data(form_data)

    sections = {
        key: validate_section(key, form_data.section(key))
        for key in SECTION_KEYS
    }

    results = list(sections.values())
    total_errors = []
    for result in results:
        total_errors.extend(result.errors)

    return FormValidation(
        is_form_valid=all(r.is_valid for r in results),
        sections=sections,
        overall_completion_percentage=sum(r.completion_percentage for r in results) / len(results),
        total_errors=total_errors
    )

"""
Form Data Module

Typed representation of the intake form.

Sections are frozen dataclasses: attributes cannot be reassigned. List and
dict fields stay plain containers so they serialise straight to JSON; they
are read-only by convention. from_dict and to_dict copy every container, so
a section never shares a list with the payload it was built from or the dict
it produced. Edits go through from_dict, FormData.with_section or
FormData.with_ai_feedback, which return new objects.

Conversion from raw payloads is total: missing or malformed values fall back
to the section defaults instead of raising.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Dict, List, Any, Optional


SECTION_KEYS = (
    'submitter_info',
    'funding_status',
    'objective',
    'business_impact',
    'cross_org_context',
    'business_unit_impact',
    'customer_impact',
)


def coerce_str(value: Any) -> str:
    """Coerce a raw value to a string, treating None as empty."""
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    return str(value)


def coerce_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return coerce_str(value)


def coerce_tristate(value: Any) -> Optional[bool]:
    """
    Coerce a tri-state answer.

    None and '' mean "not answered yet"; anything else is read as a boolean.
    """
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', '1', 'yes', 'on'):
            return True
        if lowered in ('false', '0', 'no', 'off'):
            return False
        return None
    if isinstance(value, (int, float)):
        return value != 0
    return None


def coerce_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            try:
                return int(float(value.strip()))
            except ValueError:
                return default
    return default


def coerce_str_list(value: Any) -> List[str]:
    """Coerce to a list of strings, keeping order and blank entries."""
    if not isinstance(value, (list, tuple)):
        return []
    return [coerce_str(item) for item in value]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item if isinstance(item, dict) else {} for item in value]


@dataclass(frozen=True)
class SubmitterInfo:
    """Who is submitting the proposal."""
    name: str = ''
    email: str = ''
    organization: str = ''
    role: str = ''
    department: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SubmitterInfo':
        data = _as_dict(data)
        return cls(
            name=coerce_str(data.get('name')),
            email=coerce_str(data.get('email')),
            organization=coerce_str(data.get('organization')),
            role=coerce_str(data.get('role')),
            department=coerce_str(data.get('department'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'email': self.email,
            'organization': self.organization,
            'role': self.role,
            'department': self.department,
        }


@dataclass(frozen=True)
class FundingStatus:
    """Funding state of the initiative. `is_funded` is tri-state."""
    is_funded: Optional[bool] = None
    ig_code: Optional[str] = None
    initiative_name: str = ''
    has_been_through_tct: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FundingStatus':
        data = _as_dict(data)
        return cls(
            is_funded=coerce_tristate(data.get('is_funded')),
            ig_code=coerce_optional_str(data.get('ig_code')),
            initiative_name=coerce_str(data.get('initiative_name')),
            has_been_through_tct=coerce_tristate(data.get('has_been_through_tct'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_funded': self.is_funded,
            'ig_code': self.ig_code,
            'initiative_name': self.initiative_name,
            'has_been_through_tct': self.has_been_through_tct,
        }


@dataclass(frozen=True)
class Objective:
    description: str = ''
    organizational_alignment: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Objective':
        data = _as_dict(data)
        return cls(
            description=coerce_str(data.get('description')),
            organizational_alignment=coerce_str_list(data.get('organizational_alignment'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'organizational_alignment': list(self.organizational_alignment),
        }


@dataclass(frozen=True)
class Timeline:
    critical_dates: List[str] = field(default_factory=list)
    milestones: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Timeline':
        data = _as_dict(data)
        return cls(
            critical_dates=coerce_str_list(data.get('critical_dates')),
            milestones=coerce_str_list(data.get('milestones'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'critical_dates': list(self.critical_dates),
            'milestones': list(self.milestones),
        }


@dataclass(frozen=True)
class BusinessImpact:
    expected_outcomes: List[str] = field(default_factory=list)
    success_metrics: List[str] = field(default_factory=list)
    budget_range: str = ''
    timeline: Timeline = field(default_factory=Timeline)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BusinessImpact':
        data = _as_dict(data)
        return cls(
            expected_outcomes=coerce_str_list(data.get('expected_outcomes')),
            success_metrics=coerce_str_list(data.get('success_metrics')),
            budget_range=coerce_str(data.get('budget_range')),
            timeline=Timeline.from_dict(data.get('timeline'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'expected_outcomes': list(self.expected_outcomes),
            'success_metrics': list(self.success_metrics),
            'budget_range': self.budget_range,
            'timeline': self.timeline.to_dict(),
        }


@dataclass(frozen=True)
class StakeholderGroup:
    group: str = ''
    impact: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StakeholderGroup':
        data = _as_dict(data)
        return cls(
            group=coerce_str(data.get('group')),
            impact=coerce_str(data.get('impact'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'group': self.group, 'impact': self.impact}


@dataclass(frozen=True)
class CrossOrgContext:
    strategic_alignment: str = ''
    dependencies: List[str] = field(default_factory=list)
    stakeholder_groups: List[StakeholderGroup] = field(default_factory=list)
    compliance_considerations: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CrossOrgContext':
        data = _as_dict(data)
        return cls(
            strategic_alignment=coerce_str(data.get('strategic_alignment')),
            dependencies=coerce_str_list(data.get('dependencies')),
            stakeholder_groups=[
                StakeholderGroup.from_dict(s) for s in _dict_list(data.get('stakeholder_groups'))
            ],
            compliance_considerations=coerce_str(data.get('compliance_considerations'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategic_alignment': self.strategic_alignment,
            'dependencies': list(self.dependencies),
            'stakeholder_groups': [s.to_dict() for s in self.stakeholder_groups],
            'compliance_considerations': self.compliance_considerations,
        }


@dataclass(frozen=True)
class UnitImpact:
    unit: str = ''
    description: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UnitImpact':
        data = _as_dict(data)
        return cls(
            unit=coerce_str(data.get('unit')),
            description=coerce_str(data.get('description'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'unit': self.unit, 'description': self.description}


@dataclass(frozen=True)
class BusinessUnitImpact:
    """
    Business units touched by the proposal.

    `impact_descriptions` is kept in lock-step with `impacted_units`
    by `toggle_unit`. `requires_convergence` is tri-state.
    """
    impacted_units: List[str] = field(default_factory=list)
    primary_unit: Optional[str] = None
    requires_convergence: Optional[bool] = None
    convergence_description: Optional[str] = None
    impact_descriptions: List[UnitImpact] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BusinessUnitImpact':
        data = _as_dict(data)
        return cls(
            impacted_units=coerce_str_list(data.get('impacted_units')),
            primary_unit=coerce_optional_str(data.get('primary_unit')),
            requires_convergence=coerce_tristate(data.get('requires_convergence')),
            convergence_description=coerce_optional_str(data.get('convergence_description')),
            impact_descriptions=[
                UnitImpact.from_dict(d) for d in _dict_list(data.get('impact_descriptions'))
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'impacted_units': list(self.impacted_units),
            'primary_unit': self.primary_unit,
            'requires_convergence': self.requires_convergence,
            'convergence_description': self.convergence_description,
            'impact_descriptions': [d.to_dict() for d in self.impact_descriptions],
        }

    def toggle_unit(self, unit: str) -> Dict[str, Any]:
        """
        Build the partial update for selecting or deselecting a unit.

        Selecting appends the unit with an empty impact description;
        deselecting drops the unit and its description.
        """
        if unit in self.impacted_units:
            return {
                'impacted_units': [u for u in self.impacted_units if u != unit],
                'impact_descriptions': [
                    d.to_dict() for d in self.impact_descriptions if d.unit != unit
                ],
            }
        return {
            'impacted_units': list(self.impacted_units) + [unit],
            'impact_descriptions': [d.to_dict() for d in self.impact_descriptions]
            + [{'unit': unit, 'description': ''}],
        }


@dataclass(frozen=True)
class UserGroup:
    group: str = ''
    estimated_users: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserGroup':
        data = _as_dict(data)
        return cls(
            group=coerce_str(data.get('group')),
            estimated_users=coerce_int(data.get('estimated_users'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'group': self.group, 'estimated_users': self.estimated_users}


@dataclass(frozen=True)
class CustomerImpact:
    user_groups: List[UserGroup] = field(default_factory=list)
    service_changes: List[str] = field(default_factory=list)
    experience_improvements: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomerImpact':
        data = _as_dict(data)
        return cls(
            user_groups=[UserGroup.from_dict(g) for g in _dict_list(data.get('user_groups'))],
            service_changes=coerce_str_list(data.get('service_changes')),
            experience_improvements=coerce_str_list(data.get('experience_improvements'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_groups': [g.to_dict() for g in self.user_groups],
            'service_changes': list(self.service_changes),
            'experience_improvements': list(self.experience_improvements),
        }


@dataclass(frozen=True)
class AIFeedbackEntry:
    """AI feedback stored against one section. Never affects validity."""
    feedback: str = ''
    suggestions: List[str] = field(default_factory=list)
    completeness_score: int = 0
    improvements: List[str] = field(default_factory=list)
    timestamp: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AIFeedbackEntry':
        data = _as_dict(data)
        score = coerce_int(data.get('completeness_score'))
        return cls(
            feedback=coerce_str(data.get('feedback')),
            suggestions=coerce_str_list(data.get('suggestions')),
            completeness_score=max(0, min(100, score)),
            improvements=coerce_str_list(data.get('improvements')),
            timestamp=coerce_str(data.get('timestamp'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'feedback': self.feedback,
            'suggestions': list(self.suggestions),
            'completeness_score': self.completeness_score,
            'improvements': list(self.improvements),
            'timestamp': self.timestamp,
        }


SECTION_TYPES = {
    'submitter_info': SubmitterInfo,
    'funding_status': FundingStatus,
    'objective': Objective,
    'business_impact': BusinessImpact,
    'cross_org_context': CrossOrgContext,
    'business_unit_impact': BusinessUnitImpact,
    'customer_impact': CustomerImpact,
}


def section_field_names(section_key: str) -> List[str]:
    """Top-level field names of a section, in declaration order."""
    return [f.name for f in fields(SECTION_TYPES[section_key])]


@dataclass(frozen=True)
class FormData:
    """The complete intake form. Has no identity until it is submitted."""
    submitter_info: SubmitterInfo = field(default_factory=SubmitterInfo)
    funding_status: FundingStatus = field(default_factory=FundingStatus)
    objective: Objective = field(default_factory=Objective)
    business_impact: BusinessImpact = field(default_factory=BusinessImpact)
    cross_org_context: CrossOrgContext = field(default_factory=CrossOrgContext)
    business_unit_impact: BusinessUnitImpact = field(default_factory=BusinessUnitImpact)
    customer_impact: CustomerImpact = field(default_factory=CustomerImpact)
    ai_feedback: Dict[str, AIFeedbackEntry] = field(default_factory=dict)

    def section(self, key: str):
        if key not in SECTION_TYPES:
            raise KeyError(key)
        return getattr(self, key)

    def with_section(self, key: str, section) -> 'FormData':
        """Return a copy with one section replaced."""
        if key not in SECTION_TYPES:
            raise KeyError(key)
        return replace(self, **{key: section})

    def with_ai_feedback(self, key: str, entry: AIFeedbackEntry) -> 'FormData':
        feedback = dict(self.ai_feedback)
        feedback[key] = entry
        return replace(self, ai_feedback=feedback)

    def to_dict(self, include_ai_feedback: bool = True) -> Dict[str, Any]:
        data = {key: getattr(self, key).to_dict() for key in SECTION_KEYS}
        if include_ai_feedback:
            data['ai_feedback'] = {k: v.to_dict() for k, v in self.ai_feedback.items()}
        return data


def build_form_data(payload: Optional[Dict[str, Any]]) -> FormData:
    """
    Build a FormData from a raw payload.

    Absent sections take their empty defaults so the result is always usable
    by the validation engine.
    """
    payload = _as_dict(payload)
    sections = {
        key: SECTION_TYPES[key].from_dict(payload.get(key))
        for key in SECTION_KEYS
    }
    ai_feedback = {
        coerce_str(key): AIFeedbackEntry.from_dict(value)
        for key, value in _as_dict(payload.get('ai_feedback')).items()
    }
    return FormData(ai_feedback=ai_feedback, **sections)

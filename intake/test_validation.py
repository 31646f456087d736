"""
Unit tests for validation module.
"""

import pytest

from intake.conftest import VALID_PAYLOAD
from intake.form_data import (
    SubmitterInfo, FundingStatus, Objective, BusinessImpact, Timeline,
    CrossOrgContext, StakeholderGroup, BusinessUnitImpact, UnitImpact,
    CustomerImpact, UserGroup, FormData, build_form_data
)
from intake.validation import (
    validate_section, validate_form, is_valid_email, SECTION_RULES
)


LONG_TEXT = 'x' * 50


def messages(result):
    return [e.message for e in result.errors]


class TestEmailValidation:
    @pytest.mark.parametrize('email', [
        'a@b.co',
        'first.last@telus.com',
        'x+tag@sub.domain.ca',
    ])
    def test_valid_emails(self, email):
        assert is_valid_email(email) is True

    @pytest.mark.parametrize('email', [
        'no-at-sign',
        'a@b',
        'a@@b.com',
        'a b@c.com',
        ' a@b.com',
        'a@b.com ',
        '',
    ])
    def test_invalid_emails(self, email):
        assert is_valid_email(email) is False


class TestSubmitterInfo:
    def test_empty_section_has_five_errors(self):
        result = validate_section('submitter_info', SubmitterInfo())
        assert result.is_valid is False
        assert len(result.errors) == 5
        assert result.completion_percentage == 0
        assert 'Name is required' in messages(result)
        assert 'Email is required' in messages(result)

    def test_bad_email_is_one_error(self):
        section = SubmitterInfo(name='Alex', email='alex@', organization='CIO',
                                role='PM', department='Digital')
        result = validate_section('submitter_info', section)
        assert messages(result) == ['Valid email is required']
        assert result.completion_percentage == 80

    def test_whitespace_name_is_blank(self):
        section = SubmitterInfo(name='   ', email='a@b.co', organization='CIO',
                                role='PM', department='Digital')
        result = validate_section('submitter_info', section)
        assert messages(result) == ['Name is required']

    def test_errors_carry_field_and_section(self):
        result = validate_section('submitter_info', SubmitterInfo())
        assert result.errors[0].field == 'name'
        assert result.errors[0].section == 'submitter_info'


class TestFundingStatus:
    def test_unanswered_counts_one_check(self):
        result = validate_section('funding_status', FundingStatus())
        assert messages(result) == ['Funding status is required']
        assert result.completion_percentage == 0

    def test_not_funded_is_complete(self):
        result = validate_section('funding_status', FundingStatus(is_funded=False))
        assert result.is_valid is True
        assert result.completion_percentage == 100

    def test_funded_requires_initiative_name(self):
        result = validate_section('funding_status', FundingStatus(is_funded=True))
        assert messages(result) == ['Initiative name is required when funded']
        assert result.completion_percentage == 50

    def test_funded_with_initiative_name(self):
        section = FundingStatus(is_funded=True, initiative_name='Portal')
        assert validate_section('funding_status', section).is_valid is True


class TestObjective:
    def test_short_description(self):
        section = Objective(description='Too short', organizational_alignment=['x'])
        result = validate_section('objective', section)
        assert messages(result) == ['Project description must be at least 50 characters']

    def test_description_is_trimmed_before_length_check(self):
        section = Objective(description='  ' + 'x' * 49 + '  ', organizational_alignment=['x'])
        assert validate_section('objective', section).is_valid is False

    def test_blank_alignment_entry_counts(self):
        section = Objective(description=LONG_TEXT, organizational_alignment=[''])
        assert validate_section('objective', section).is_valid is True

    def test_missing_alignment(self):
        section = Objective(description=LONG_TEXT)
        result = validate_section('objective', section)
        assert messages(result) == ['At least one organizational alignment is required']


class TestBusinessImpact:
    def test_blank_entries_do_not_count(self):
        section = BusinessImpact(
            expected_outcomes=['  '],
            success_metrics=['Metric'],
            budget_range='$1M',
            timeline=Timeline(milestones=['M1'])
        )
        result = validate_section('business_impact', section)
        assert messages(result) == ['At least one expected outcome is required']
        assert result.completion_percentage == 75

    def test_milestone_required(self):
        section = BusinessImpact(
            expected_outcomes=['Outcome'],
            success_metrics=['Metric'],
            budget_range='$1M',
        )
        result = validate_section('business_impact', section)
        assert messages(result) == ['At least one milestone is required']


class TestCrossOrgContext:
    def _section(self, **overrides):
        values = dict(
            strategic_alignment=LONG_TEXT,
            dependencies=['Identity team'],
            stakeholder_groups=[
                StakeholderGroup('Care', 'y' * 25),
                StakeholderGroup('Billing', 'z' * 25),
            ],
            compliance_considerations='PIA'
        )
        values.update(overrides)
        return CrossOrgContext(**values)

    def test_complete(self):
        assert validate_section('cross_org_context', self._section()).is_valid is True

    def test_one_stakeholder_group(self):
        section = self._section(stakeholder_groups=[StakeholderGroup('Care', 'y' * 25)])
        result = validate_section('cross_org_context', section)
        assert messages(result) == ['At least two stakeholder groups are required']

    def test_short_stakeholder_impact(self):
        section = self._section(stakeholder_groups=[
            StakeholderGroup('Care', 'y' * 25),
            StakeholderGroup('Billing', 'short'),
        ])
        result = validate_section('cross_org_context', section)
        assert len(result.errors) == 1
        assert result.errors[0].field == 'stakeholder_groups'

    def test_short_strategic_alignment(self):
        section = self._section(strategic_alignment='short')
        result = validate_section('cross_org_context', section)
        assert messages(result) == ['Strategic alignment must be at least 50 characters']


class TestBusinessUnitImpact:
    def test_empty_has_three_checks(self):
        result = validate_section('business_unit_impact', BusinessUnitImpact())
        # Unit descriptions pass vacuously with nothing selected
        assert len(result.errors) == 2
        assert result.completion_percentage == pytest.approx(100 / 3)

    def test_convergence_adds_fourth_check(self):
        section = BusinessUnitImpact(
            impacted_units=['TELUS Digital'],
            requires_convergence=True,
            impact_descriptions=[UnitImpact('TELUS Digital', 'Owns it')]
        )
        result = validate_section('business_unit_impact', section)
        assert messages(result) == ['Convergence description is required when convergence is needed']
        assert result.completion_percentage == 75

    def test_every_selected_unit_needs_description(self):
        section = BusinessUnitImpact(
            impacted_units=['TELUS Digital', 'TELUS Health'],
            requires_convergence=False,
            impact_descriptions=[UnitImpact('TELUS Digital', 'Owns it'), UnitImpact('TELUS Health', ' ')]
        )
        result = validate_section('business_unit_impact', section)
        assert messages(result) == ['Impact descriptions are required for all selected business units']

    def test_description_for_missing_unit_entry(self):
        section = BusinessUnitImpact(
            impacted_units=['TELUS Digital'],
            requires_convergence=False,
        )
        assert validate_section('business_unit_impact', section).is_valid is False


class TestCustomerImpact:
    def _section(self, **overrides):
        values = dict(
            user_groups=[UserGroup('Consumers', 10)],
            service_changes=[LONG_TEXT],
            experience_improvements=['Faster', 'Simpler']
        )
        values.update(overrides)
        return CustomerImpact(**values)

    def test_complete(self):
        assert validate_section('customer_impact', self._section()).is_valid is True

    def test_zero_users(self):
        section = self._section(user_groups=[UserGroup('Consumers', 0)])
        result = validate_section('customer_impact', section)
        assert messages(result) == ['All user groups must have estimated user counts greater than 0']

    def test_unnamed_user_groups_are_ignored(self):
        section = self._section(user_groups=[UserGroup('', 0), UserGroup('Consumers', 5)])
        assert validate_section('customer_impact', section).is_valid is True

    def test_short_service_change(self):
        section = self._section(service_changes=[LONG_TEXT, 'short'])
        result = validate_section('customer_impact', section)
        assert messages(result) == ['Service changes must be at least 50 characters each']

    def test_one_experience_improvement(self):
        section = self._section(experience_improvements=['Faster', ''])
        result = validate_section('customer_impact', section)
        assert messages(result) == ['At least two experience improvements are required']


class TestValidateForm:
    def test_valid_payload(self):
        result = validate_form(build_form_data(VALID_PAYLOAD))
        assert result.is_form_valid is True
        assert result.total_errors == []
        assert result.overall_completion_percentage == 100

    def test_accepts_raw_dict(self):
        assert validate_form(VALID_PAYLOAD).is_form_valid is True

    def test_none_is_empty_form(self):
        result = validate_form(None)
        assert result.is_form_valid is False
        assert set(result.sections) == set(SECTION_RULES)

    def test_overall_is_mean_of_sections(self):
        result = validate_form(FormData())
        sections = result.sections.values()
        expected = sum(s.completion_percentage for s in sections) / len(result.sections)
        assert result.overall_completion_percentage == pytest.approx(expected)

    def test_total_errors_concatenates_sections(self):
        result = validate_form(FormData())
        assert len(result.total_errors) == sum(len(s.errors) for s in result.sections.values())

    def test_to_dict(self):
        d = validate_form(FormData()).to_dict()
        assert d['is_form_valid'] is False
        assert 'submitter_info' in d['sections']
        assert d['total_errors'][0]['section'] == 'submitter_info'


class TestThresholds:
    @pytest.mark.parametrize('impact, errors', [('y' * 24, 1), ('y' * 25, 0)])
    def test_stakeholder_impact_boundary(self, impact, errors):
        section = CrossOrgContext(
            strategic_alignment=LONG_TEXT,
            dependencies=['Identity team'],
            stakeholder_groups=[StakeholderGroup('Care', 'z' * 25), StakeholderGroup('Billing', impact)],
            compliance_considerations='PIA'
        )
        result = validate_section('cross_org_context', section)
        assert len(result.errors) == errors
        if errors:
            assert result.errors[0].field == 'stakeholder_groups'

    @pytest.mark.parametrize('text, valid', [
        ('x' * 49, False),
        ('x' * 50, True),
        ('   ' + 'x' * 49 + '   ', False),
        ('   ' + 'x' * 50 + '   ', True),
    ])
    def test_description_boundary(self, text, valid):
        section = Objective(description=text, organizational_alignment=['x'])
        assert validate_section('objective', section).is_valid is valid

    @pytest.mark.parametrize('text, valid', [
        ('x' * 49, False),
        ('x' * 50, True),
        (' ' + 'x' * 49 + ' ', False),
    ])
    def test_strategic_alignment_boundary(self, text, valid):
        section = CrossOrgContext(
            strategic_alignment=text,
            dependencies=['Identity team'],
            stakeholder_groups=[StakeholderGroup('Care', 'y' * 25), StakeholderGroup('Billing', 'z' * 25)],
            compliance_considerations='PIA'
        )
        assert validate_section('cross_org_context', section).is_valid is valid

    @pytest.mark.parametrize('text, valid', [
        ('x' * 49, False),
        ('x' * 50, True),
        ('  ' + 'x' * 49 + '  ', False),
    ])
    def test_service_change_boundary(self, text, valid):
        section = CustomerImpact(
            user_groups=[UserGroup('Consumers', 10)],
            service_changes=[text],
            experience_improvements=['Faster', 'Simpler']
        )
        assert validate_section('customer_impact', section).is_valid is valid


class TestMonotonicity:
    """Filling in a missing required field never lowers completion."""

    def test_submitter_fields_one_at_a_time(self):
        values = {'name': 'Alex', 'email': 'alex@telus.com', 'organization': 'CIO',
                  'role': 'PM', 'department': 'Digital'}
        data = {}
        previous = validate_section('submitter_info', SubmitterInfo()).completion_percentage
        for key, value in values.items():
            data[key] = value
            current = validate_section('submitter_info', SubmitterInfo(**data)).completion_percentage
            assert current > previous
            previous = current
        assert previous == 100

    def test_whole_form_filled_section_by_section(self):
        payload = {}
        previous = validate_form(payload).overall_completion_percentage
        for key, section in VALID_PAYLOAD.items():
            payload[key] = section
            current = validate_form(payload).overall_completion_percentage
            assert current >= previous
            previous = current
        assert previous == 100
